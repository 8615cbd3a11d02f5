import pytest

import pianoroll.clock


def test_ticks_to_seconds_at_120_bpm (clock: pianoroll.clock.Clock) -> None:

	"""One quarter note at 120 BPM lasts half a second."""

	assert clock.ticks_to_seconds(480) == pytest.approx(0.5)
	assert clock.ticks_to_seconds(0) == 0.0
	assert clock.ticks_to_seconds(240) == pytest.approx(0.25)


def test_seconds_to_ticks_is_inverse (clock: pianoroll.clock.Clock) -> None:

	for ticks in (0, 1, 120, 480, 7680, 12345):
		assert clock.seconds_to_ticks(clock.ticks_to_seconds(ticks)) == pytest.approx(ticks)


def test_seconds_to_ticks_uses_bpm_and_ppq () -> None:

	"""Cursor formula: elapsed / 60 * bpm * ppq."""

	clock = pianoroll.clock.Clock(ppq=96, bpm=90)

	assert clock.seconds_to_ticks(2.0) == pytest.approx(2.0 / 60 * 90 * 96)


def test_snap_to_grid_floors (clock: pianoroll.clock.Clock) -> None:

	"""Division 4 snaps down to 16th notes (120 ticks at PPQ 480)."""

	assert clock.snap_to_grid(0, 4) == 0
	assert clock.snap_to_grid(119, 4) == 0
	assert clock.snap_to_grid(120, 4) == 120
	assert clock.snap_to_grid(239, 4) == 120
	assert clock.snap_to_grid(250, 1) == 0
	assert clock.snap_to_grid(500, 1) == 480


@pytest.mark.parametrize("division", [1, 2, 4, 8, 16, 32])
def test_snap_to_grid_is_idempotent (clock: pianoroll.clock.Clock, division: int) -> None:

	for tick in range(0, 2000, 7):
		once = clock.snap_to_grid(tick, division)
		assert clock.snap_to_grid(once, division) == once
		assert once <= tick


def test_invalid_grid_division_raises (clock: pianoroll.clock.Clock) -> None:

	with pytest.raises(ValueError):
		clock.snap_to_grid(100, 3)

	with pytest.raises(ValueError):
		clock.snap_to_grid(100, 0)

	with pytest.raises(ValueError):
		pianoroll.clock.Clock(ppq=24).grid_step(16)


def test_bar_math (clock: pianoroll.clock.Clock) -> None:

	assert clock.ticks_per_bar == 1920
	assert clock.bar_of(1919) == 0
	assert clock.bar_of(1920) == 1
	assert clock.beat_in_bar(1920 + 960) == 2
	assert clock.is_bar_line(3840)
	assert not clock.is_bar_line(480)


def test_grid_lines_mark_strength (clock: pianoroll.clock.Clock) -> None:

	lines = list(clock.grid_lines(0, 1920 + 1, 2))

	assert lines[0] == (0, "bar")
	assert lines[1] == (240, "sub")
	assert lines[2] == (480, "beat")
	assert lines[-1] == (1920, "bar")
	assert len(lines) == 9


def test_grid_lines_start_off_grid (clock: pianoroll.clock.Clock) -> None:

	lines = list(clock.grid_lines(100, 500, 4))

	assert [tick for tick, _ in lines] == [120, 240, 360, 480]


def test_microseconds_per_quarter () -> None:

	assert pianoroll.clock.Clock(bpm=120).microseconds_per_quarter == 500000
	assert pianoroll.clock.Clock(bpm=60).microseconds_per_quarter == 1000000
	assert pianoroll.clock.Clock(bpm=90).microseconds_per_quarter == 666667


def test_non_positive_values_raise () -> None:

	with pytest.raises(ValueError):
		pianoroll.clock.Clock(bpm=0)

	with pytest.raises(ValueError):
		pianoroll.clock.Clock(ppq=-1)


def test_out_of_range_bpm_only_warns (caplog: pytest.LogCaptureFixture) -> None:

	clock = pianoroll.clock.Clock(bpm=240)

	assert clock.bpm == 240
	assert "outside the recommended range" in caplog.text


def test_with_bpm_and_rescale_return_new_clocks (clock: pianoroll.clock.Clock) -> None:

	faster = clock.with_bpm(140)
	finer = clock.rescale(960)

	assert faster.bpm == 140 and faster.ppq == 480
	assert finer.ppq == 960 and finer.bpm == 120
	assert clock.bpm == 120 and clock.ppq == 480
	assert clock.rescale_tick(240, 960) == 480
