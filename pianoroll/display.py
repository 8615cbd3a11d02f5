"""Terminal piano-roll display.

A read-only drawing surface.  It is handed the note snapshot, the cursor tick
and the selection whenever any of them change, and redraws an ASCII grid with
a status line beneath it (``*`` marks the selected note):

	C5  |. . . . O - - - . . . . . . . .|
	B4  |. . . . . . . . . . . . . . . .|
	A4  |O - . . . . . . * - . . . . . .|
	    |^                              |
	120 BPM  Bar: 1.1  Notes: 2  [playing]

Log messages scroll above the grid without disruption.
"""

import logging
import shutil
import sys
import typing

import pianoroll.clock
import pianoroll.constants
import pianoroll.constants.pitch
import pianoroll.note_store


_NOTE_NAMES = ["C", "C#", "D", "D#", "E", "F", "F#", "G", "G#", "A", "A#", "B"]

_MAX_ROWS = 24
_LABEL_WIDTH = 5
_MIN_TERMINAL_WIDTH = 40
_SUSTAIN = -1


def note_name (pitch: int) -> str:

	"""Convert a MIDI note number to a name: 60 → ``"C4"``, 42 → ``"F#2"``."""

	return f"{_NOTE_NAMES[pitch % 12]}{(pitch // 12) - 1}"


@typing.runtime_checkable
class DrawingSurface (typing.Protocol):

	"""Protocol for read-only consumers of editor state."""

	def render (
		self,
		notes: typing.Sequence[pianoroll.note_store.Note],
		cursor_tick: float,
		selection: typing.Optional[str],
		playing: bool = False,
	) -> None:

		...


class GridDisplay:

	"""Builds the grid lines for a note snapshot.

	One row per pitch, highest at the top, one column per grid step from tick 0
	to the end of the timeline.  Rows cover the pitches in use (padded by a
	couple of semitones) or an octave around Middle C when there are no notes.
	"""

	def __init__ (self, clock: pianoroll.clock.Clock, end_tick: int, grid_division: int = pianoroll.constants.DEFAULT_GRID_DIVISION) -> None:

		self.clock = clock
		self.end_tick = end_tick
		self.grid_division = grid_division
		self.lines: typing.List[str] = []

	@staticmethod
	def velocity_char (velocity: int) -> str:

		"""Map a velocity to a cell character: ``-`` sustain, ``.`` empty/ghost, ``o`` soft, ``O`` medium, ``X`` loud."""

		if velocity == _SUSTAIN:
			return "-"
		if velocity <= 40:
			return "."
		if velocity <= 80:
			return "o"
		if velocity <= 110:
			return "O"
		return "X"

	def pitch_rows (self, notes: typing.Sequence[pianoroll.note_store.Note]) -> typing.List[int]:

		if notes:
			low = max(pianoroll.constants.pitch.MIN_PITCH, min(note.pitch for note in notes) - 2)
			high = min(pianoroll.constants.pitch.MAX_PITCH, max(note.pitch for note in notes) + 2)
		else:
			low = pianoroll.constants.pitch.MIDDLE_C - 6
			high = pianoroll.constants.pitch.MIDDLE_C + 6

		high = min(high, low + _MAX_ROWS - 1)

		return list(range(high, low - 1, -1))

	def build (
		self,
		notes: typing.Sequence[pianoroll.note_store.Note],
		cursor_tick: float,
		selection: typing.Optional[str] = None,
		term_width: typing.Optional[int] = None,
	) -> typing.List[str]:

		"""Rebuild and return the grid lines."""

		if term_width is None:
			term_width = shutil.get_terminal_size(fallback=(80, 24)).columns

		if term_width < _MIN_TERMINAL_WIDTH:
			self.lines = []
			return self.lines

		step = self.clock.grid_step(self.grid_division)
		columns = self._fit_columns(-(-self.end_tick // step), term_width)
		rows = self.pitch_rows(notes)
		lines: typing.List[str] = []

		for pitch in rows:

			cells = [0] * columns
			selected_cols: typing.Set[int] = set()

			for note in notes:

				if note.pitch != pitch:
					continue

				first = note.start_tick // step

				for col in range(max(0, first), columns):

					if col * step >= note.end_tick:
						break

					if col == first:
						cells[col] = max(cells[col], note.velocity)
						if note.id == selection:
							selected_cols.add(col)
					elif cells[col] == 0:
						cells[col] = _SUSTAIN

			rendered = ["*" if i in selected_cols else self.velocity_char(v) for i, v in enumerate(cells)]
			label = note_name(pitch).ljust(_LABEL_WIDTH)
			lines.append(f"{label}|{' '.join(rendered)}|")

		cursor_col = int(cursor_tick // step)
		marker = [" "] * max(0, columns * 2 - 1)

		if 0 <= cursor_col < columns:
			marker[cursor_col * 2] = "^"

		lines.append(f"{' ' * _LABEL_WIDTH}|{''.join(marker)}|")

		self.lines = lines

		return lines

	@staticmethod
	def _fit_columns (grid_size: int, term_width: int) -> int:

		"""Determine how many grid columns fit in the terminal (two characters each)."""

		available = term_width - _LABEL_WIDTH - 2

		if available <= 0:
			return 0

		return min(grid_size, (available + 1) // 2)


class DisplayLogHandler (logging.Handler):

	"""Logging handler that clears and redraws the display around log output.

	Installed by ``Display.start()`` and removed by ``Display.stop()``.
	"""

	def __init__ (self, display: "Display") -> None:

		super().__init__()
		self._display = display

	def emit (self, record: logging.LogRecord) -> None:

		try:
			self._display.clear()

			msg = self.format(record)
			self._display.stream.write(msg + "\n")
			self._display.stream.flush()

			self._display.draw()

		except Exception:
			self.handleError(record)


class Display:

	"""Live terminal drawing surface for a session.

	Example:
		```python
		display = pianoroll.display.Display(clock, end_tick=clock.ticks_per_bar * 4)
		session.attach_surface(display)
		display.start()
		```
	"""

	def __init__ (
		self,
		clock: pianoroll.clock.Clock,
		end_tick: int,
		grid_division: int = pianoroll.constants.DEFAULT_GRID_DIVISION,
		stream: typing.Optional[typing.TextIO] = None,
	) -> None:

		self.clock = clock
		self.grid = GridDisplay(clock, end_tick, grid_division)
		self._stream = stream
		self._active: bool = False
		self._handler: typing.Optional[DisplayLogHandler] = None
		self._saved_handlers: typing.List[logging.Handler] = []
		self._status: str = ""
		self._drawn_line_count: int = 0

	@property
	def stream (self) -> typing.TextIO:

		return self._stream if self._stream is not None else sys.stderr

	def start (self) -> None:

		"""Install the log handler and activate the display.

		Existing root handlers are saved and restored by ``stop()``.
		"""

		if self._active:
			return

		self._active = True

		root_logger = logging.getLogger()
		self._saved_handlers = list(root_logger.handlers)
		self._handler = DisplayLogHandler(self)

		if self._saved_handlers and self._saved_handlers[0].formatter:
			self._handler.setFormatter(self._saved_handlers[0].formatter)
		else:
			self._handler.setFormatter(logging.Formatter("%(levelname)s:%(name)s:%(message)s"))

		root_logger.handlers.clear()
		root_logger.addHandler(self._handler)

	def stop (self) -> None:

		"""Clear the display and restore the original log handlers."""

		if not self._active:
			return

		self.clear()
		self._active = False

		root_logger = logging.getLogger()
		root_logger.handlers.clear()

		for handler in self._saved_handlers:
			root_logger.addHandler(handler)

		self._saved_handlers = []
		self._handler = None

	def set_clock (self, clock: pianoroll.clock.Clock) -> None:

		self.clock = clock
		self.grid.clock = clock

	def format_status (self, notes: typing.Sequence[pianoroll.note_store.Note], cursor_tick: float, playing: bool) -> str:

		tick = int(cursor_tick)
		bar = self.clock.bar_of(tick) + 1
		beat = self.clock.beat_in_bar(tick) + 1
		state = "playing" if playing else "stopped"

		return f"{self.clock.bpm:g} BPM  Bar: {bar}.{beat}  Notes: {len(notes)}  [{state}]"

	def render (
		self,
		notes: typing.Sequence[pianoroll.note_store.Note],
		cursor_tick: float,
		selection: typing.Optional[str],
		playing: bool = False,
	) -> None:

		"""Rebuild the grid and status line from a snapshot, then redraw if active."""

		self.grid.build(notes, cursor_tick, selection)
		self._status = self.format_status(notes, cursor_tick, playing)
		self.draw()

	def draw (self) -> None:

		if not self._active or not self._status:
			return

		out = self.stream
		grid_lines = self.grid.lines

		if self._drawn_line_count > 1:
			out.write(f"\033[{self._drawn_line_count - 1}A")

		for line in grid_lines:
			out.write(f"\r\033[K{line}\n")

		out.write(f"\r\033[K{self._status}")
		out.flush()

		self._drawn_line_count = len(grid_lines) + 1

	def clear (self) -> None:

		"""Erase the drawn region."""

		if not self._active:
			return

		out = self.stream

		if self._drawn_line_count > 1:
			out.write(f"\033[{self._drawn_line_count - 1}A")

			for _ in range(self._drawn_line_count):
				out.write("\r\033[K\n")

			out.write(f"\033[{self._drawn_line_count}A")
		else:
			out.write("\r\033[K")

		out.flush()
		self._drawn_line_count = 0
