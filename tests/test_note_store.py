import typing

import pytest

import pianoroll.note_store


@pytest.mark.parametrize("pitch,start,length,velocity", [
	(60, 0, 480, 100),
	(21, 1000, 1, 1),
	(108, 7, 333, 127),
	(0, 0, 1920, 0),
])
def test_add_then_find_at_covers_the_whole_interval (store: pianoroll.note_store.NoteStore, pitch: int, start: int, length: int, velocity: int) -> None:

	"""find_at returns the note for every tick in [start, start + length)."""

	note = store.add(pitch, start, length, velocity)

	for tick in range(start, start + length):
		assert store.find_at(pitch, tick) is note

	assert store.find_at(pitch, start + length) is None
	assert store.find_at(pitch, start - 1) is None
	assert store.find_at(pitch + 1 if pitch < 127 else pitch - 1, start) is None


def test_add_generates_unique_ids (store: pianoroll.note_store.NoteStore) -> None:

	ids = {store.add(60, 0, 120).id for _ in range(50)}

	assert len(ids) == 50
	assert len(store) == 50


def test_add_keeps_start_tick_unsnapped (store: pianoroll.note_store.NoteStore) -> None:

	note = store.add(60, 123, 50)

	assert note.start_tick == 123
	assert note.end_tick == 173


def test_add_clamps_out_of_range_values (store: pianoroll.note_store.NoteStore) -> None:

	note = store.add(200, -5, 0, 300)

	assert note.pitch == 127
	assert note.start_tick == 0
	assert note.length_ticks == 1
	assert note.velocity == 127

	low = store.add(-3, 0, 10, -1)

	assert low.pitch == 0
	assert low.velocity == 0


def test_overlapping_notes_of_same_pitch_are_allowed (store: pianoroll.note_store.NoteStore) -> None:

	first = store.add(60, 0, 480)
	second = store.add(60, 0, 480)

	assert first.id != second.id
	assert len(store) == 2
	assert store.find_at(60, 100) is second


def test_remove_and_unknown_id_is_noop (store: pianoroll.note_store.NoteStore) -> None:

	note = store.add(60, 0, 480)

	assert store.remove("missing") is False
	assert len(store) == 1

	assert store.remove(note.id) is True
	assert len(store) == 0
	assert store.remove(note.id) is False


def test_move_to_clamps_pitch_but_not_tick (store: pianoroll.note_store.NoteStore) -> None:

	note = store.add(60, 480, 240)

	assert store.move_to(note.id, -120, 140)
	assert note.pitch == 127
	assert note.start_tick == -120

	assert store.move_to("missing", 0, 60) is False


def test_resize_keeps_at_least_one_tick (store: pianoroll.note_store.NoteStore) -> None:

	note = store.add(60, 0, 480)

	store.resize(note.id, 960)
	assert note.length_ticks == 960

	store.resize(note.id, 0)
	assert note.length_ticks == 1

	assert store.resize("missing", 10) is False


def test_clear_empties_store (store: pianoroll.note_store.NoteStore) -> None:

	store.add(60, 0, 480)
	store.add(62, 0, 480)
	store.clear()

	assert len(store) == 0
	assert store.all() == []


def test_change_event_fires_after_each_commit (store: pianoroll.note_store.NoteStore) -> None:

	seen: typing.List[int] = []
	store.events.on("change", lambda snapshot: seen.append(len(snapshot)))

	note = store.add(60, 0, 480)
	store.move_to(note.id, 120, 62)
	store.remove("missing")
	store.remove(note.id)

	assert seen == [1, 1, 0]


def test_snapshot_is_detached_from_store (store: pianoroll.note_store.NoteStore) -> None:

	note = store.add(60, 0, 480)
	snapshot = store.snapshot()

	store.move_to(note.id, 960, 72)

	assert snapshot[0].start_tick == 0
	assert snapshot[0].pitch == 60


def test_replace_all_and_extend (store: pianoroll.note_store.NoteStore) -> None:

	existing = store.add(60, 0, 480)
	incoming = [pianoroll.note_store.Note(id="a", pitch=64, start_tick=0, length_ticks=120)]

	store.extend(incoming)
	assert len(store) == 2
	assert existing.id in store

	store.extend([pianoroll.note_store.Note(id="a", pitch=65, start_tick=0, length_ticks=120)])
	assert len(store) == 3

	store.replace_all([pianoroll.note_store.Note(id="b", pitch=67, start_tick=0, length_ticks=120)])
	assert [note.id for note in store] == ["b"]


def test_rescale_converts_ticks (store: pianoroll.note_store.NoteStore) -> None:

	note = store.add(60, 240, 120)
	store.rescale(480, 96)

	assert note.start_tick == 48
	assert note.length_ticks == 24


def test_last_end_tick (store: pianoroll.note_store.NoteStore) -> None:

	assert store.last_end_tick() == 0

	store.add(60, 0, 480)
	store.add(62, 960, 240)

	assert store.last_end_tick() == 1200


def test_velocity_conversion_is_lossless () -> None:

	for velocity in range(128):
		assert pianoroll.note_store.unit_to_velocity(pianoroll.note_store.velocity_to_unit(velocity)) == velocity

	assert pianoroll.note_store.velocity_to_unit(127) == 1.0
	assert pianoroll.note_store.unit_to_velocity(1.5) == 127
	assert pianoroll.note_store.unit_to_velocity(-0.2) == 0
