"""The authoritative in-memory collection of notes.

Every edit - drawing, dragging, deleting, importing - goes through a
``NoteStore``.  Each operation either commits completely or leaves the store
unchanged, and listeners subscribed to ``"change"`` are told after every
committed mutation.  The exporter and the scheduler only ever read a
``snapshot()``.

Validation follows one rule: clamp where a sane value exists (pitch, velocity,
length) and do nothing where it does not (an unknown note id).
"""

import dataclasses
import logging
import typing
import uuid

import pianoroll.constants.pitch
import pianoroll.constants.velocity
import pianoroll.event_emitter


logger = logging.getLogger(__name__)


def clamp (value: int, low: int, high: int) -> int:

	"""Clamp *value* into ``[low, high]``."""

	return max(low, min(high, value))


def velocity_to_unit (velocity: int) -> float:

	"""Convert a MIDI velocity (0-127) to the normalized 0.0-1.0 form used at the instrument boundary."""

	return clamp(int(velocity), pianoroll.constants.velocity.MIN_VELOCITY, pianoroll.constants.velocity.MAX_VELOCITY) / pianoroll.constants.velocity.MAX_VELOCITY


def unit_to_velocity (level: float) -> int:

	"""Convert a normalized level back to a MIDI velocity.

	``unit_to_velocity(velocity_to_unit(v)) == v`` for every integer v in 0-127.
	"""

	return clamp(int(round(level * pianoroll.constants.velocity.MAX_VELOCITY)), pianoroll.constants.velocity.MIN_VELOCITY, pianoroll.constants.velocity.MAX_VELOCITY)


def new_note_id () -> str:

	return uuid.uuid4().hex


@dataclasses.dataclass
class Note:

	"""
	A timed note event on the tick timeline.
	"""

	id: str
	pitch: int
	start_tick: int
	length_ticks: int
	velocity: int = pianoroll.constants.velocity.DEFAULT_VELOCITY

	@property
	def end_tick (self) -> int:

		"""Tick of the note-off: ``start_tick + length_ticks``."""

		return self.start_tick + self.length_ticks

	def contains (self, tick: float) -> bool:

		"""True when *tick* lies in the half-open interval ``[start_tick, end_tick)``."""

		return self.start_tick <= tick < self.end_tick


class NoteStore:

	"""
	Holds the notes of a document and applies edits to them.

	Notes are keyed by id.  Multiple notes may share a pitch and overlap in time;
	there is no uniqueness constraint beyond the id.
	"""

	def __init__ (self) -> None:

		"""Create an empty store."""

		self._notes: typing.Dict[str, Note] = {}
		self.events = pianoroll.event_emitter.EventEmitter()

	def __len__ (self) -> int:

		return len(self._notes)

	def __iter__ (self) -> typing.Iterator[Note]:

		return iter(list(self._notes.values()))

	def __contains__ (self, note_id: object) -> bool:

		return note_id in self._notes

	def _changed (self) -> None:

		self.events.emit_sync("change", self.snapshot())

	# ------------------------------------------------------------------
	# Mutation
	# ------------------------------------------------------------------

	def add (
		self,
		pitch: int,
		start_tick: int,
		length_ticks: int,
		velocity: int = pianoroll.constants.velocity.DEFAULT_VELOCITY,
	) -> Note:

		"""Add a note and return it.

		The start tick is used as given - snapping is the caller's job - except
		that a negative start is clamped to 0.  Pitch and velocity are clamped to
		0-127 and the length to at least one tick.
		"""

		note = Note(
			id = new_note_id(),
			pitch = clamp(int(pitch), pianoroll.constants.pitch.MIN_PITCH, pianoroll.constants.pitch.MAX_PITCH),
			start_tick = max(0, int(start_tick)),
			length_ticks = max(1, int(length_ticks)),
			velocity = clamp(int(velocity), pianoroll.constants.velocity.MIN_VELOCITY, pianoroll.constants.velocity.MAX_VELOCITY)
		)

		self._notes[note.id] = note
		logger.debug(f"Added note {note.id} pitch={note.pitch} start={note.start_tick} length={note.length_ticks}")
		self._changed()

		return note

	def remove (self, note_id: str) -> bool:

		"""Remove a note.  Unknown ids are ignored; returns whether a note was removed."""

		if self._notes.pop(note_id, None) is None:
			logger.debug(f"remove() ignored unknown note {note_id}")
			return False

		self._changed()
		return True

	def move_to (self, note_id: str, new_start_tick: int, new_pitch: int) -> bool:

		"""Move a note in time and pitch.

		Pitch is clamped to 0-127.  The tick is not clamped: callers that accept
		pointer input must keep it non-negative themselves.
		"""

		note = self._notes.get(note_id)

		if note is None:
			logger.debug(f"move_to() ignored unknown note {note_id}")
			return False

		note.start_tick = int(new_start_tick)
		note.pitch = clamp(int(new_pitch), pianoroll.constants.pitch.MIN_PITCH, pianoroll.constants.pitch.MAX_PITCH)
		self._changed()

		return True

	def resize (self, note_id: str, new_length_ticks: int) -> bool:

		"""Change a note's length, keeping at least one tick."""

		note = self._notes.get(note_id)

		if note is None:
			logger.debug(f"resize() ignored unknown note {note_id}")
			return False

		note.length_ticks = max(1, int(new_length_ticks))
		self._changed()

		return True

	def clear (self) -> None:

		"""Remove every note."""

		self._notes = {}
		self._changed()

	def replace_all (self, notes: typing.Iterable[Note]) -> None:

		"""Swap the whole contents of the store for *notes* in one commit."""

		self._notes = {note.id: note for note in notes}
		self._changed()

	def extend (self, notes: typing.Iterable[Note]) -> None:

		"""Append *notes* in one commit.  Notes whose id is already present get a fresh id."""

		incoming: typing.Dict[str, Note] = {}

		for note in notes:
			if note.id in self._notes or note.id in incoming:
				note = dataclasses.replace(note, id=new_note_id())
			incoming[note.id] = note

		self._notes.update(incoming)
		self._changed()

	def rescale (self, old_ppq: int, new_ppq: int) -> None:

		"""Convert every stored tick value from resolution *old_ppq* to *new_ppq*."""

		if old_ppq <= 0 or new_ppq <= 0:
			raise ValueError("PPQ must be positive")

		for note in self._notes.values():
			note.start_tick = int(round(note.start_tick * new_ppq / old_ppq))
			note.length_ticks = max(1, int(round(note.length_ticks * new_ppq / old_ppq)))

		logger.info(f"Rescaled {len(self._notes)} notes from PPQ {old_ppq} to {new_ppq}")
		self._changed()

	# ------------------------------------------------------------------
	# Queries
	# ------------------------------------------------------------------

	def get (self, note_id: str) -> typing.Optional[Note]:

		return self._notes.get(note_id)

	def find_at (self, pitch: int, tick: float) -> typing.Optional[Note]:

		"""Return a note of *pitch* sounding at *tick*, or None.

		When several notes overlap there, the most recently added one wins - it is
		the one drawn on top.
		"""

		for note in reversed(list(self._notes.values())):
			if note.pitch == pitch and note.contains(tick):
				return note

		return None

	def all (self) -> typing.List[Note]:

		"""Every note, in no guaranteed order."""

		return list(self._notes.values())

	def snapshot (self) -> typing.Tuple[Note, ...]:

		"""Immutable copy of the current notes for readers such as the exporter and scheduler."""

		return tuple(dataclasses.replace(note) for note in self._notes.values())

	def last_end_tick (self) -> int:

		"""Latest note-off tick in the store, 0 when empty."""

		return max((note.end_tick for note in self._notes.values()), default=0)
