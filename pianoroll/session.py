"""An editing session: one document and everything that acts on it.

``Session`` owns the clock, the note store, the editor, the instrument slot and
the playback scheduler, and keeps any attached drawing surfaces up to date.  It
is also the error boundary - import and export failures are logged and
reported through ``session.events`` rather than raised to the caller.

```python
session = pianoroll.Session(pianoroll.config.load_config())
session.editor.pointer_down(tick=0, pitch=60)
session.editor.pointer_up()
session.export_file("pianoroll.mid")
```
"""

import logging
import os
import random
import typing

import pianoroll.clock
import pianoroll.config
import pianoroll.display
import pianoroll.editor
import pianoroll.event_emitter
import pianoroll.instrument
import pianoroll.midi_file
import pianoroll.midi_import
import pianoroll.note_store
import pianoroll.scheduler
import pianoroll.suggestions
import pianoroll.transport


logger = logging.getLogger(__name__)


PathLike = typing.Union[str, "os.PathLike[str]"]


class Session:

	"""
	The editing session for a single piano-roll document.

	Events (via ``self.events``):
		``"exported"`` - ``(path, byte_count)`` after a successful file export.
		``"export_failed"`` - ``(path, error)``.
		``"imported"`` - ``(source, result)`` after notes were recovered.
		``"import_empty"`` - ``(source, result)`` when the source held no usable notes.
		``"import_failed"`` - ``(source, error)`` when the source could not be read.
	"""

	def __init__ (
		self,
		config: typing.Optional[pianoroll.config.Config] = None,
		instruments: typing.Optional[pianoroll.instrument.InstrumentSlot] = None,
		transport: typing.Optional[pianoroll.transport.Transport] = None,
	) -> None:

		"""Create an empty document.

		Parameters:
			config: Session settings; defaults throughout when omitted.
			instruments: The instrument slot playback drives.  When omitted a
				silent slot (no MIDI port) is used - open a real one with
				``InstrumentSlot.open()``.
			transport: Playback transport; a real-time ``AsyncioTransport`` by default.
		"""

		self.config = config if config is not None else pianoroll.config.Config()
		self.clock = self.config.clock()
		self.store = pianoroll.note_store.NoteStore()
		self.events = pianoroll.event_emitter.EventEmitter()
		self.surfaces: typing.List[pianoroll.display.DrawingSurface] = []

		self.editor = pianoroll.editor.Editor(
			self.store,
			self.clock,
			grid_division = self.config.grid_division,
			default_velocity = self.config.default_velocity,
			default_length = self.config.default_length_ticks
		)

		self.instruments = instruments if instruments is not None else pianoroll.instrument.InstrumentSlot()

		if self.instruments.current is None:
			self.instruments.select(self.config.instrument)

		self.scheduler = pianoroll.scheduler.PlaybackScheduler(
			self.store,
			self.clock,
			self.instruments,
			transport = transport,
			bars = self.config.bars,
			poll_interval = self.config.poll_interval
		)

		self.store.events.on("change", lambda _: self.refresh())
		self.editor.events.on("selection", lambda _: self.refresh())
		self.scheduler.events.on("cursor", lambda _: self.refresh())

	# ------------------------------------------------------------------
	# Drawing surfaces
	# ------------------------------------------------------------------

	def attach_surface (self, surface: pianoroll.display.DrawingSurface) -> None:

		"""Register a read-only drawing surface and draw it once immediately."""

		self.surfaces.append(surface)
		self.refresh()

	def refresh (self) -> None:

		"""Push the current snapshot, cursor and selection to every surface."""

		if not self.surfaces:
			return

		snapshot = self.store.snapshot()

		for surface in self.surfaces:
			surface.render(snapshot, self.scheduler.cursor_tick, self.editor.selected, self.scheduler.playing)

	# ------------------------------------------------------------------
	# Notes
	# ------------------------------------------------------------------

	def add_note (
		self,
		pitch: int,
		start_tick: int,
		length_ticks: typing.Optional[int] = None,
		velocity: typing.Optional[int] = None,
	) -> pianoroll.note_store.Note:

		"""Add a note, with the editor's default length and velocity when not given."""

		return self.store.add(
			pitch,
			start_tick,
			length_ticks if length_ticks is not None else self.editor.default_length,
			velocity if velocity is not None else self.config.default_velocity
		)

	def remove_note (self, note_id: str) -> bool:

		if note_id == self.editor.selected:
			self.editor.select(None)

		return self.store.remove(note_id)

	def move_note (self, note_id: str, start_tick: int, pitch: int) -> bool:

		"""Move a note, keeping it on the timeline (ticks below zero are clamped here)."""

		return self.store.move_to(note_id, max(0, int(start_tick)), pitch)

	async def clear (self) -> None:

		"""Remove every note, stopping playback first if it is running."""

		if self.scheduler.playing:
			await self.scheduler.stop()

		self.editor.pointer_up()
		self.editor.select(None)
		self.store.clear()

		logger.info("Cleared all notes")

	# ------------------------------------------------------------------
	# Tempo and grid
	# ------------------------------------------------------------------

	async def set_bpm (self, bpm: float) -> None:

		"""Change the tempo.  Playback is stopped first, since scheduled triggers assume the old tempo."""

		clock = self.clock.with_bpm(bpm)

		if self.scheduler.playing:
			await self.scheduler.stop()

		self._set_clock(clock)

		logger.info(f"BPM set to {bpm:g}")

	def _set_clock (self, clock: pianoroll.clock.Clock) -> None:

		self.clock = clock
		self.editor.set_clock(clock)
		self.scheduler.set_clock(clock)

		for surface in self.surfaces:
			if isinstance(surface, pianoroll.display.Display):
				surface.set_clock(clock)

		self.refresh()

	async def set_ppq (self, ppq: int) -> None:

		"""Change the resolution, rescaling every stored note."""

		clock = self.clock.rescale(ppq)
		pianoroll.clock.validate_grid_division(ppq, self.editor.grid_division)

		if self.scheduler.playing:
			await self.scheduler.stop()

		old_ppq = self.clock.ppq
		self._set_clock(clock)
		self.store.rescale(old_ppq, ppq)

	def set_grid_division (self, division: int) -> None:

		self.editor.set_grid_division(division)
		self.refresh()

	# ------------------------------------------------------------------
	# Playback
	# ------------------------------------------------------------------

	async def play (self) -> bool:

		return await self.scheduler.start()

	async def stop (self) -> bool:

		return await self.scheduler.stop()

	async def toggle_play (self) -> bool:

		"""Play/stop button: stop when playing, start when stopped.  Returns True if now playing."""

		return await self.scheduler.toggle()

	def select_instrument (self, name: str) -> None:

		"""Switch instrument.  The old handle is disposed before the new one exists."""

		self.instruments.select(name)

	def preview_note (self, pitch: int, velocity: float = 0.5) -> None:

		"""Sound *pitch* for an eighth note, as when clicking a piano key.  Needs a running event loop."""

		duration = self.clock.ticks_to_seconds(self.clock.ppq // 2)
		self.instruments.trigger_attack_release(pitch, duration, velocity)

	# ------------------------------------------------------------------
	# Export / import
	# ------------------------------------------------------------------

	def export_bytes (self) -> bytes:

		"""The document as Standard MIDI File bytes, ordered by start tick then insertion."""

		notes = sorted(self.store.snapshot(), key=lambda note: note.start_tick)

		return pianoroll.midi_file.write_midi(notes, self.clock)

	def export_file (self, path: typing.Optional[PathLike] = None) -> typing.Optional[PathLike]:

		"""Write the document to *path* (default ``config.export_filename``).

		Returns the path, or None if the file could not be written.
		"""

		target = path if path is not None else self.config.export_filename
		data = self.export_bytes()

		try:
			with open(target, "wb") as f:
				f.write(data)
		except OSError as e:
			logger.error(f"Failed to export MIDI to {target}: {e}")
			self.events.emit_sync("export_failed", target, e)
			return None

		logger.info(f"Exported {len(self.store)} notes ({len(data)} bytes) to {target}")
		self.events.emit_sync("exported", target, len(data))

		return target

	def _apply_import (self, source: typing.Any, result: pianoroll.midi_import.ImportResult, mode: typing.Optional[str]) -> pianoroll.midi_import.ImportResult:

		mode = mode if mode is not None else self.config.import_mode

		if mode not in pianoroll.config.IMPORT_MODES:
			raise ValueError(f"Import mode must be one of {pianoroll.config.IMPORT_MODES}, got {mode!r}")

		if not result:
			logger.warning(f"No valid notes found in {source}")
			self.events.emit_sync("import_empty", source, result)
			return result

		self.editor.pointer_up()
		self.editor.select(None)

		if mode == "replace":
			self.store.replace_all(result.notes)
		else:
			self.store.extend(result.notes)

		logger.info(f"Imported {len(result)} notes from {source} ({mode})")
		self.events.emit_sync("imported", source, result)

		return result

	def import_file (self, path: PathLike, mode: typing.Optional[str] = None) -> typing.Optional[pianoroll.midi_import.ImportResult]:

		"""Recover notes from a MIDI file into the store.

		Returns the scan result (possibly empty), or None when the file could not
		be read.  An empty result leaves the store unchanged.
		"""

		try:
			result = pianoroll.midi_import.read_midi(path, ppq=self.clock.ppq)
		except pianoroll.midi_import.MidiReadError as e:
			logger.error(str(e))
			self.events.emit_sync("import_failed", path, e)
			return None

		return self._apply_import(path, result, mode)

	def import_bytes (self, data: bytes, mode: typing.Optional[str] = None) -> pianoroll.midi_import.ImportResult:

		"""Recover notes from an in-memory buffer."""

		result = pianoroll.midi_import.scan_note_ons(data, ppq=self.clock.ppq)

		return self._apply_import("buffer", result, mode)

	# ------------------------------------------------------------------
	# Suggestions
	# ------------------------------------------------------------------

	def suggestions (self, position_tick: typing.Optional[int] = None, rng: typing.Optional[random.Random] = None) -> typing.List[pianoroll.suggestions.Suggestion]:

		"""Suggest notes for *position_tick* (the cursor when omitted)."""

		position = int(self.scheduler.cursor_tick) if position_tick is None else position_tick

		return pianoroll.suggestions.suggest(self.store.all(), position, self.clock, self.editor.grid_division, rng=rng)

	def accept_suggestion (self, suggestion: pianoroll.suggestions.Suggestion) -> typing.List[pianoroll.note_store.Note]:

		"""Commit every note of *suggestion* to the store."""

		return [
			self.store.add(note.pitch, note.start_tick, note.length_ticks, note.velocity)
			for note in suggestion.notes
		]

	# ------------------------------------------------------------------
	# Lifecycle
	# ------------------------------------------------------------------

	async def close (self) -> None:

		"""Stop playback and release the instrument and its port."""

		await self.scheduler.stop()
		self.instruments.close()
