"""Tick clock: conversion between musical time and wall-clock time.

A ``Clock`` is a small immutable value holding the document resolution (PPQ),
the tempo and the meter.  It is passed explicitly to every component that needs
tick/second conversion - the note store, the exporter and the playback scheduler
never read a global tempo.

```python
clock = pianoroll.clock.Clock(ppq=480, bpm=120)
clock.ticks_to_seconds(480)      # 0.5
clock.snap_to_grid(250, 4)       # 240 (16th-note grid)
```
"""

import dataclasses
import logging
import typing

import mido

import pianoroll.constants
import pianoroll.constants.ticks


logger = logging.getLogger(__name__)


def validate_grid_division (ppq: int, division: int) -> None:

	"""Raise ``ValueError`` unless *division* is a power of two that divides *ppq*."""

	if division <= 0 or division & (division - 1):
		raise ValueError(f"Grid division must be a positive power of two, got {division}")

	if ppq % division:
		raise ValueError(f"Grid division {division} does not divide PPQ {ppq}")


@dataclasses.dataclass (frozen=True)
class Clock:

	"""
	The resolution, tempo and meter of a document.

	Parameters:
		ppq: Ticks per quarter note.
		bpm: Tempo in quarter notes per minute.
		beats_per_bar: Quarter-note beats in a bar (4 for 4/4).
	"""

	ppq: int = pianoroll.constants.DEFAULT_PPQ
	bpm: float = pianoroll.constants.DEFAULT_BPM
	beats_per_bar: int = pianoroll.constants.DEFAULT_BEATS_PER_BAR

	def __post_init__ (self) -> None:

		"""Reject non-positive values and warn about unusual tempos."""

		if self.ppq <= 0:
			raise ValueError("PPQ must be positive")

		if self.bpm <= 0:
			raise ValueError("BPM must be positive")

		if self.beats_per_bar <= 0:
			raise ValueError("Beats per bar must be positive")

		if not pianoroll.constants.ticks.MIN_RECOMMENDED_BPM <= self.bpm <= pianoroll.constants.ticks.MAX_RECOMMENDED_BPM:
			logger.warning(f"BPM {self.bpm} is outside the recommended range "
				f"{pianoroll.constants.ticks.MIN_RECOMMENDED_BPM}-{pianoroll.constants.ticks.MAX_RECOMMENDED_BPM}")

	# ------------------------------------------------------------------
	# Derived values
	# ------------------------------------------------------------------

	@property
	def ticks_per_beat (self) -> int:

		"""Ticks in one quarter-note beat (the PPQ)."""

		return self.ppq

	@property
	def ticks_per_bar (self) -> int:

		"""Ticks in one bar."""

		return self.ppq * self.beats_per_bar

	@property
	def seconds_per_beat (self) -> float:

		return 60.0 / self.bpm

	@property
	def microseconds_per_quarter (self) -> int:

		"""Tempo as written in a Set Tempo meta event, e.g. 500000 at 120 BPM."""

		return mido.bpm2tempo(self.bpm)

	# ------------------------------------------------------------------
	# Conversion
	# ------------------------------------------------------------------

	def ticks_to_seconds (self, ticks: float) -> float:

		"""Convert a tick count to seconds at the current tempo."""

		return (ticks / self.ppq) * self.seconds_per_beat

	def seconds_to_ticks (self, seconds: float) -> float:

		"""Convert seconds to a (fractional) tick count at the current tempo."""

		return seconds / 60.0 * self.bpm * self.ppq

	def grid_step (self, division: int) -> int:

		"""Ticks between grid lines for *division* subdivisions of a quarter note."""

		validate_grid_division(self.ppq, division)

		return self.ppq // division

	def snap_to_grid (self, tick: int, division: int) -> int:

		"""Floor *tick* to the nearest grid line below it.

		Flooring (rather than rounding) makes snapping idempotent: a snapped tick
		is already on the grid and snaps to itself.
		"""

		step = self.grid_step(division)

		return (int(tick) // step) * step

	# ------------------------------------------------------------------
	# Bar / beat math
	# ------------------------------------------------------------------

	def bar_of (self, tick: int) -> int:

		"""Zero-based bar containing *tick*."""

		return int(tick) // self.ticks_per_bar

	def beat_in_bar (self, tick: int) -> int:

		"""Zero-based beat within its bar."""

		return (int(tick) % self.ticks_per_bar) // self.ppq

	def is_bar_line (self, tick: int) -> bool:

		return int(tick) % self.ticks_per_bar == 0

	def grid_lines (self, start: int, end: int, division: int) -> typing.Iterator[typing.Tuple[int, str]]:

		"""Yield ``(tick, strength)`` for every grid line in ``[start, end)``.

		Strength is ``"bar"`` on bar boundaries, ``"beat"`` on other beats and
		``"sub"`` for subdivisions - a drawing surface uses it to pick line weight.
		"""

		step = self.grid_step(division)
		tick = -(-int(start) // step) * step

		while tick < end:

			if tick % self.ticks_per_bar == 0:
				yield tick, "bar"
			elif tick % self.ppq == 0:
				yield tick, "beat"
			else:
				yield tick, "sub"

			tick += step

	# ------------------------------------------------------------------
	# Derived clocks
	# ------------------------------------------------------------------

	def with_bpm (self, bpm: float) -> "Clock":

		"""Return a copy of this clock at a different tempo."""

		return dataclasses.replace(self, bpm=bpm)

	def rescale (self, ppq: int) -> "Clock":

		"""Return a copy of this clock at a different resolution.

		Stored tick values must be rescaled alongside - see
		``NoteStore.rescale``.
		"""

		return dataclasses.replace(self, ppq=ppq)

	def rescale_tick (self, tick: int, ppq: int) -> int:

		"""Convert a tick at this clock's resolution to the resolution *ppq*."""

		return int(round(tick * ppq / self.ppq))
