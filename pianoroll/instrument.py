"""The sound-producing boundary.

pianoroll makes no sound itself: playback drives an ``Instrument``, which in
this package means a General MIDI program on a mido output port.  Only one
instrument handle is live at a time.  ``InstrumentSlot`` owns it, disposes the
old handle before building a new one when the user switches instrument, and
drops any trigger aimed at a handle that is not ready.
"""

import asyncio
import logging
import typing

import mido

import pianoroll.constants.velocity
import pianoroll.midi_utils
import pianoroll.note_store


logger = logging.getLogger(__name__)


# General MIDI programs (0-based) for the instrument choices offered by the editor.
INSTRUMENT_PROGRAMS: typing.Dict[str, int] = {
	"piano": 0,    # Acoustic Grand Piano
	"guitar": 29,  # Overdriven Guitar
	"bass": 38,    # Synth Bass 1
	"bell": 14,    # Tubular Bells
	"pad": 89,     # Pad 2 (warm)
}

DEFAULT_INSTRUMENT = "piano"


@typing.runtime_checkable
class Instrument (typing.Protocol):

	"""
	Protocol for anything playback can trigger.

	Velocities at this boundary are normalized to 0.0-1.0.
	"""

	@property
	def ready (self) -> bool:

		...

	def trigger_attack (self, pitch: int, velocity: float) -> None:

		...

	def trigger_release (self, pitch: int) -> None:

		...

	def trigger_attack_release (self, pitch: int, duration: float, velocity: float) -> None:

		...

	def release_all (self) -> None:

		...

	def dispose (self) -> None:

		...


class MidiInstrument:

	"""One General MIDI program on a MIDI output port.

	The port is borrowed, not owned: disposing the instrument silences it and
	makes it refuse further triggers, but leaves the port open for the next
	instrument.

	Parameters:
		midi_out: An open mido output port, or None for a silent instrument.
		program: General MIDI program number (0-127).
		channel: MIDI channel (0-15).
	"""

	def __init__ (self, midi_out: typing.Any, program: int = 0, channel: int = 0) -> None:

		self.midi_out = midi_out
		self.program = program
		self.channel = channel
		self._disposed = False
		self._sounding: typing.Set[int] = set()

		self._send(mido.Message("program_change", channel=self.channel, program=self.program))

	@property
	def ready (self) -> bool:

		"""True until disposed, as long as there is a port to send to."""

		return not self._disposed and self.midi_out is not None

	@property
	def sounding (self) -> typing.FrozenSet[int]:

		return frozenset(self._sounding)

	def _send (self, message: mido.Message) -> None:

		if self.midi_out is None:
			return

		try:
			self.midi_out.send(message)
		except Exception:
			logger.exception("MIDI send failed (device may be disconnected)")

	def trigger_attack (self, pitch: int, velocity: float) -> None:

		"""Start *pitch*.  A pitch that is already sounding is released first, so repeats retrigger."""

		if not self.ready:
			logger.debug(f"Dropped attack on {pitch}: instrument not ready")
			return

		if pitch in self._sounding:
			self._send(mido.Message("note_off", channel=self.channel, note=pitch, velocity=0))

		self._send(mido.Message(
			"note_on",
			channel = self.channel,
			note = pitch,
			velocity = pianoroll.note_store.unit_to_velocity(velocity)
		))

		self._sounding.add(pitch)

	def trigger_release (self, pitch: int) -> None:

		if not self.ready:
			logger.debug(f"Dropped release on {pitch}: instrument not ready")
			return

		self._send(mido.Message(
			"note_off",
			channel = self.channel,
			note = pitch,
			velocity = pianoroll.constants.velocity.DEFAULT_RELEASE_VELOCITY
		))

		self._sounding.discard(pitch)

	def trigger_attack_release (self, pitch: int, duration: float, velocity: float) -> None:

		"""Start *pitch* and release it after *duration* seconds.  Needs a running event loop."""

		self.trigger_attack(pitch, velocity)
		asyncio.get_running_loop().call_later(duration, self.trigger_release, pitch)

	def release_all (self) -> None:

		for pitch in list(self._sounding):
			self.trigger_release(pitch)

	def dispose (self) -> None:

		if self._disposed:
			return

		self.release_all()
		self._disposed = True


InstrumentFactory = typing.Callable[[str], Instrument]


class InstrumentSlot:

	"""Holder for the single live instrument handle.

	The slot itself satisfies the ``Instrument`` protocol by forwarding to the
	current handle, so the scheduler keeps working across instrument switches.

	Parameters:
		midi_out: Output port shared by every handle the slot creates.
		channel: MIDI channel for created handles.
		factory: Optional replacement for building handles by name; used by tests
			and by callers that drive something other than a MIDI port.
	"""

	def __init__ (self, midi_out: typing.Any = None, channel: int = 0, factory: typing.Optional[InstrumentFactory] = None) -> None:

		self.midi_out = midi_out
		self.channel = channel
		self._factory = factory
		self.name: typing.Optional[str] = None
		self.current: typing.Optional[Instrument] = None

	@classmethod
	def open (cls, device_name: typing.Optional[str] = None, channel: int = 0) -> "InstrumentSlot":

		"""Open an output port with the device selection helper and wrap it in a slot."""

		_, midi_out = pianoroll.midi_utils.select_output_device(device_name)

		return cls(midi_out=midi_out, channel=channel)

	@property
	def ready (self) -> bool:

		return self.current is not None and self.current.ready

	def _build (self, name: str) -> Instrument:

		if self._factory is not None:
			return self._factory(name)

		if name not in INSTRUMENT_PROGRAMS:
			raise ValueError(f"Unknown instrument {name!r}. Choose from: {sorted(INSTRUMENT_PROGRAMS)}")

		return MidiInstrument(self.midi_out, program=INSTRUMENT_PROGRAMS[name], channel=self.channel)

	def select (self, name: str) -> Instrument:

		"""Dispose the current handle, then build and install the one called *name*."""

		if self._factory is None and name not in INSTRUMENT_PROGRAMS:
			raise ValueError(f"Unknown instrument {name!r}. Choose from: {sorted(INSTRUMENT_PROGRAMS)}")

		if self.current is not None:
			self.current.dispose()
			self.current = None

		self.current = self._build(name)
		self.name = name

		logger.info(f"Instrument set to {name}")

		return self.current

	def trigger_attack (self, pitch: int, velocity: float) -> None:

		if not self.ready:
			logger.debug(f"Dropped attack on {pitch}: no ready instrument")
			return

		assert self.current is not None
		self.current.trigger_attack(pitch, velocity)

	def trigger_release (self, pitch: int) -> None:

		if not self.ready:
			logger.debug(f"Dropped release on {pitch}: no ready instrument")
			return

		assert self.current is not None
		self.current.trigger_release(pitch)

	def trigger_attack_release (self, pitch: int, duration: float, velocity: float) -> None:

		if not self.ready:
			logger.debug(f"Dropped preview of {pitch}: no ready instrument")
			return

		assert self.current is not None
		self.current.trigger_attack_release(pitch, duration, velocity)

	def release_all (self) -> None:

		if self.current is not None and self.current.ready:
			self.current.release_all()

	def dispose (self) -> None:

		"""Dispose the current handle.  The port stays open until ``close()``."""

		if self.current is not None:
			self.current.dispose()
			self.current = None
			self.name = None

	def close (self) -> None:

		"""Dispose the handle and close the output port."""

		self.dispose()

		if self.midi_out is not None:
			try:
				self.midi_out.close()
			except Exception:
				logger.exception("Failed to close MIDI output")
			self.midi_out = None
