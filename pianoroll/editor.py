"""Pointer interaction for the note grid.

The editor is a small explicit state machine driven by pointer events in grid
coordinates (tick, pitch).  Converting pixels to ticks and pitches is the
drawing surface's job.

	Idle --down on note--> Dragging(note, origin) --up--> Idle
	Idle --down on note edge--> Resizing(note, origin) --up--> Idle
	Idle --down on empty cell--> Idle (a new note is drawn and selected)

Every event has a transition from every state; the ones with nothing to do are
explicit no-ops.
"""

import dataclasses
import logging
import typing

import pianoroll.clock
import pianoroll.constants
import pianoroll.constants.pitch
import pianoroll.constants.velocity
import pianoroll.event_emitter
import pianoroll.note_store


logger = logging.getLogger(__name__)


@dataclasses.dataclass (frozen=True)
class Origin:

	"""
	Where a drag began: the pointer position and the note as it was.
	"""

	tick: int
	pitch: int
	note_start: int
	note_pitch: int
	note_length: int


@dataclasses.dataclass (frozen=True)
class Idle:

	pass


@dataclasses.dataclass (frozen=True)
class Dragging:

	note_id: str
	origin: Origin


@dataclasses.dataclass (frozen=True)
class Resizing:

	note_id: str
	origin: Origin


EditorState = typing.Union[Idle, Dragging, Resizing]


class Editor:

	"""
	Applies pointer gestures to a note store.

	Parameters:
		store: The note store to edit.
		clock: Supplies the grid for snapping.
		grid_division: Grid lines per quarter note (4 = 16th notes).
		default_velocity: Velocity of newly drawn notes.
		default_length: Length of newly drawn notes in ticks; one grid step when omitted.
		pitch_range: Lowest and highest pitch reachable by drawing and dragging.

	Events (via ``self.events``):
		``"selection"`` - the selected note id changed (None when cleared).
	"""

	def __init__ (
		self,
		store: pianoroll.note_store.NoteStore,
		clock: pianoroll.clock.Clock,
		grid_division: int = pianoroll.constants.DEFAULT_GRID_DIVISION,
		default_velocity: int = pianoroll.constants.velocity.DEFAULT_VELOCITY,
		default_length: typing.Optional[int] = None,
		pitch_range: typing.Tuple[int, int] = (pianoroll.constants.pitch.PIANO_LOWEST, pianoroll.constants.pitch.PIANO_HIGHEST),
	) -> None:

		pianoroll.clock.validate_grid_division(clock.ppq, grid_division)

		self.store = store
		self.clock = clock
		self.grid_division = grid_division
		self.default_velocity = default_velocity
		self._default_length = default_length
		self.pitch_range = pitch_range

		self.state: EditorState = Idle()
		self.selected: typing.Optional[str] = None
		self.events = pianoroll.event_emitter.EventEmitter()

	@property
	def grid_step (self) -> int:

		return self.clock.grid_step(self.grid_division)

	@property
	def default_length (self) -> int:

		return self._default_length if self._default_length is not None else self.grid_step

	def set_clock (self, clock: pianoroll.clock.Clock) -> None:

		"""Replace the clock, rescaling an explicit default length to the new resolution."""

		pianoroll.clock.validate_grid_division(clock.ppq, self.grid_division)

		if self._default_length is not None and clock.ppq != self.clock.ppq:
			self._default_length = max(1, self.clock.rescale_tick(self._default_length, clock.ppq))

		self.clock = clock

	def set_grid_division (self, division: int) -> None:

		pianoroll.clock.validate_grid_division(self.clock.ppq, division)
		self.grid_division = division

	def snap (self, tick: int) -> int:

		return self.clock.snap_to_grid(max(0, int(tick)), self.grid_division)

	def _clamp_pitch (self, pitch: int) -> int:

		return pianoroll.note_store.clamp(int(pitch), *self.pitch_range)

	def select (self, note_id: typing.Optional[str]) -> None:

		if note_id == self.selected:
			return

		self.selected = note_id
		self.events.emit_sync("selection", note_id)

	# ------------------------------------------------------------------
	# Pointer events
	# ------------------------------------------------------------------

	def pointer_down (self, tick: int, pitch: int, edge: bool = False) -> typing.Optional[pianoroll.note_store.Note]:

		"""Begin a gesture at (tick, pitch).

		On a note, select it and start dragging it - or resizing it when *edge*
		says the pointer is on its right edge.  On empty grid, draw a new note
		at the snapped tick.  Ignored mid-gesture.  Returns the note hit or drawn.
		"""

		if not isinstance(self.state, Idle):
			return None

		note = self.store.find_at(pitch, tick)

		if note is not None:

			origin = Origin(
				tick = int(tick),
				pitch = int(pitch),
				note_start = note.start_tick,
				note_pitch = note.pitch,
				note_length = note.length_ticks
			)

			self.state = Resizing(note.id, origin) if edge else Dragging(note.id, origin)
			self.select(note.id)

			return note

		note = self.store.add(
			pitch = self._clamp_pitch(pitch),
			start_tick = self.snap(tick),
			length_ticks = self.default_length,
			velocity = self.default_velocity
		)

		self.select(note.id)

		return note

	def pointer_move (self, tick: int, pitch: int) -> None:

		"""Continue a drag or resize.  No-op when idle."""

		state = self.state

		if isinstance(state, Idle):
			return

		if state.note_id not in self.store:
			# The note was deleted under the pointer.
			self.state = Idle()
			return

		delta_tick = int(tick) - state.origin.tick

		if isinstance(state, Dragging):

			delta_pitch = int(pitch) - state.origin.pitch
			new_start = self.snap(state.origin.note_start + delta_tick)
			new_pitch = self._clamp_pitch(state.origin.note_pitch + delta_pitch)

			self.store.move_to(state.note_id, new_start, new_pitch)

		else:

			step = self.grid_step
			new_length = max(step, self.clock.snap_to_grid(max(0, state.origin.note_length + delta_tick), self.grid_division))

			self.store.resize(state.note_id, new_length)

	def pointer_up (self) -> None:

		"""End any gesture.  The selection is kept so the note can be deleted."""

		self.state = Idle()

	def secondary_click (self, tick: int, pitch: int) -> bool:

		"""Delete the note under the pointer.  Returns whether one was deleted."""

		note = self.store.find_at(pitch, tick)

		if note is None:
			return False

		if isinstance(self.state, (Dragging, Resizing)) and self.state.note_id == note.id:
			self.state = Idle()

		self.store.remove(note.id)
		self.select(None)

		return True

	def delete_selected (self) -> bool:

		if self.selected is None:
			return False

		removed = self.store.remove(self.selected)
		self.select(None)

		return removed
