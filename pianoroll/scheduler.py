"""Playback scheduling and the play cursor.

``PlaybackScheduler`` turns a snapshot of the note store into attack/release
triggers on a transport, then follows the transport with a cursor:

	STOPPED --start()--> PLAYING --stop() / end of timeline--> STOPPED

There is no paused state; a UI "pause" is ``stop()``.

The cursor is never stepped.  Each poll recomputes it from the transport's
elapsed seconds, ``seconds / 60 * bpm * ppq``, so a late poll does not make it
drift from what is actually sounding.  A cursor at or past ``end_tick`` stops
playback.

Cancelled triggers must never sound.  Every trigger carries the generation
number it was scheduled under and checks it, together with the playing flag,
before touching the instrument - a callback whose time had already come when
``stop()`` ran is ignored rather than played.
"""

import asyncio
import enum
import logging
import typing

import pianoroll.clock
import pianoroll.constants
import pianoroll.constants.ticks
import pianoroll.event_emitter
import pianoroll.instrument
import pianoroll.note_store
import pianoroll.transport


logger = logging.getLogger(__name__)


class PlaybackState (enum.Enum):

	STOPPED = "stopped"
	PLAYING = "playing"


class NoteSource (typing.Protocol):

	"""Anything that can hand the scheduler a read snapshot of notes."""

	def snapshot (self) -> typing.Sequence[pianoroll.note_store.Note]:

		...


class PlaybackScheduler:

	"""
	Plays a note source through an instrument, in time with a transport.

	Events (via ``self.events``):
		``"start"`` - playback began (async emit).
		``"stop"`` - playback ended, by request or at the end of the timeline (async emit).
		``"cursor"`` - the cursor moved; argument is the tick (sync emit).
		``"note_on"`` / ``"note_off"`` - a trigger fired; argument is the note (sync emit).
	"""

	def __init__ (
		self,
		notes: NoteSource,
		clock: pianoroll.clock.Clock,
		instrument: pianoroll.instrument.Instrument,
		transport: typing.Optional[pianoroll.transport.Transport] = None,
		bars: int = pianoroll.constants.DEFAULT_BARS,
		end_tick: typing.Optional[int] = None,
		poll_interval: float = pianoroll.constants.ticks.CURSOR_POLL_INTERVAL,
	) -> None:

		"""Set up a stopped scheduler.

		Parameters:
			notes: Usually the ``NoteStore``; read only through ``snapshot()``.
			clock: Tempo and resolution for tick/second conversion.
			instrument: Receives the attack and release triggers.
			transport: Fires the triggers; defaults to a real-time ``AsyncioTransport``.
			bars: Timeline length in bars when *end_tick* is not given.
			end_tick: Explicit end-of-timeline tick.
			poll_interval: Seconds between cursor updates while playing.
		"""

		if poll_interval <= 0:
			raise ValueError("Poll interval must be positive")

		self.notes = notes
		self.clock = clock
		self.instrument = instrument
		self.transport: pianoroll.transport.Transport = transport if transport is not None else pianoroll.transport.AsyncioTransport()
		self.bars = bars
		self._end_tick = end_tick
		self.poll_interval = poll_interval

		self.state = PlaybackState.STOPPED
		self.cursor_tick: float = 0.0
		self.events = pianoroll.event_emitter.EventEmitter()

		self._generation = 0
		self._poll_task: typing.Optional[asyncio.Task] = None
		self._sounding: typing.Dict[str, pianoroll.note_store.Note] = {}
		self.scheduled_count = 0

	@property
	def playing (self) -> bool:

		return self.state is PlaybackState.PLAYING

	@property
	def end_tick (self) -> int:

		"""End-of-timeline tick: explicit, or ``bars`` bars at the clock's meter (``ppq * 16`` for 4 bars of 4/4)."""

		if self._end_tick is not None:
			return self._end_tick

		return self.clock.ticks_per_bar * self.bars

	def set_clock (self, clock: pianoroll.clock.Clock) -> None:

		"""Replace the clock.  Only allowed while stopped; triggers already scheduled assume the old tempo.

		An explicit end tick is kept in step with a change of resolution.
		"""

		if self.playing:
			logger.warning("Clock change ignored while playing - stop first")
			return

		if self._end_tick is not None and clock.ppq != self.clock.ppq:
			self._end_tick = self.clock.rescale_tick(self._end_tick, clock.ppq)

		self.clock = clock

	# ------------------------------------------------------------------
	# Transport control
	# ------------------------------------------------------------------

	async def start (self) -> bool:

		"""Schedule every note and start the transport.

		Only valid from STOPPED.  Called while already playing it does nothing
		and returns False - the existing triggers stay scheduled exactly once.
		"""

		if self.playing:
			logger.warning("start() ignored - playback already running")
			return False

		self._generation += 1
		generation = self._generation
		self.cursor_tick = 0.0
		self._sounding = {}

		snapshot = list(self.notes.snapshot())
		self.scheduled_count = self._schedule_notes(snapshot, generation)

		self.state = PlaybackState.PLAYING
		self.transport.start()
		self._poll_task = asyncio.create_task(self._poll_loop(generation))

		logger.info(f"Playback started: {len(snapshot)} notes at {self.clock.bpm:g} BPM, ends at tick {self.end_tick}")

		self.events.emit_sync("cursor", self.cursor_tick)
		await self.events.emit_async("start")

		return True

	def _schedule_notes (self, notes: typing.List[pianoroll.note_store.Note], generation: int) -> int:

		"""Hand the attack and release of each note to the transport in time order.

		At equal times releases go before attacks, so a note that ends where
		another of the same pitch begins does not cut the new one off.  A note
		dragged before zero starts at zero but still ends at its own end tick.
		"""

		triggers: typing.List[typing.Tuple[float, int, int, pianoroll.note_store.Note]] = []

		for index, note in enumerate(notes):

			# Entirely before zero: nothing to hear, and the export writes it with zero length.
			if note.end_tick <= 0:
				continue

			attack_at = self.clock.ticks_to_seconds(max(0, note.start_tick))
			release_at = max(attack_at, self.clock.ticks_to_seconds(note.end_tick))
			triggers.append((attack_at, 1, index, note))
			triggers.append((release_at, 0, index, note))

		triggers.sort(key=lambda trigger: (trigger[0], trigger[1], trigger[2]))

		for seconds, is_attack, _, note in triggers:

			if is_attack:
				self.transport.schedule(seconds, self._make_attack(note, generation))
			else:
				self.transport.schedule(seconds, self._make_release(note, generation))

		logger.debug(f"Scheduled {len(triggers)} triggers")

		return len(triggers)

	def _live (self, generation: int) -> bool:

		return self.playing and generation == self._generation

	def _make_attack (self, note: pianoroll.note_store.Note, generation: int) -> pianoroll.transport.TriggerCallback:

		def attack (_: float) -> None:

			if not self._live(generation):
				return

			self._sounding[note.id] = note
			self.instrument.trigger_attack(note.pitch, pianoroll.note_store.velocity_to_unit(note.velocity))
			self.events.emit_sync("note_on", note)

		return attack

	def _make_release (self, note: pianoroll.note_store.Note, generation: int) -> pianoroll.transport.TriggerCallback:

		def release (_: float) -> None:

			if not self._live(generation):
				return

			if self._sounding.pop(note.id, None) is None:
				return

			# The instrument releases by pitch; an overlapping note of the same pitch keeps it sounding.
			if not any(other.pitch == note.pitch for other in self._sounding.values()):
				self.instrument.trigger_release(note.pitch)

			self.events.emit_sync("note_off", note)

		return release

	async def stop (self) -> bool:

		"""Cancel pending triggers, silence sounding notes and reset the cursor.

		Idempotent: from STOPPED it only makes sure the cursor is at 0 and
		returns False.
		"""

		if not self.playing:
			self.cursor_tick = 0.0
			return False

		self.state = PlaybackState.STOPPED
		self._generation += 1

		self.transport.cancel_all()
		self.transport.stop()

		for pitch in sorted({note.pitch for note in self._sounding.values()}):
			self.instrument.trigger_release(pitch)

		for note in self._sounding.values():
			self.events.emit_sync("note_off", note)

		self._sounding = {}
		self.cursor_tick = 0.0

		task, self._poll_task = self._poll_task, None

		if task is not None and task is not asyncio.current_task():
			task.cancel()

			try:
				await task
			except asyncio.CancelledError:
				pass

		logger.info("Playback stopped")

		self.events.emit_sync("cursor", self.cursor_tick)
		await self.events.emit_async("stop")

		return True

	async def toggle (self) -> bool:

		"""Stop when playing, start when stopped.  Returns True if now playing."""

		if self.playing:
			await self.stop()
			return False

		await self.start()
		return True

	# ------------------------------------------------------------------
	# Cursor
	# ------------------------------------------------------------------

	def sample_cursor (self) -> float:

		"""Recompute the cursor from transport time.  Never moves it backwards while playing."""

		if not self.playing:
			return self.cursor_tick

		tick = self.clock.seconds_to_ticks(self.transport.seconds)
		self.cursor_tick = max(self.cursor_tick, tick)

		return self.cursor_tick

	async def poll (self) -> float:

		"""Sample the cursor, notify listeners and stop at the end of the timeline."""

		if not self.playing:
			return self.cursor_tick

		tick = self.sample_cursor()

		if tick >= self.end_tick:
			logger.info(f"End of timeline reached at tick {self.end_tick}")
			await self.stop()
			return self.cursor_tick

		self.events.emit_sync("cursor", tick)

		return tick

	async def _poll_loop (self, generation: int) -> None:

		while self._live(generation):

			await asyncio.sleep(self.poll_interval)

			if not self._live(generation):
				break

			await self.poll()
