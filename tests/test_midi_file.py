import io

import mido
import pytest

import pianoroll.clock
import pianoroll.midi_file
import pianoroll.note_store


def _note (pitch: int, start: int, length: int, velocity: int = 100, note_id: str = "") -> pianoroll.note_store.Note:

	return pianoroll.note_store.Note(id=note_id or f"n{pitch}-{start}", pitch=pitch, start_tick=start, length_ticks=length, velocity=velocity)


@pytest.mark.parametrize("value,expected", [
	(0, b"\x00"),
	(64, b"\x40"),
	(127, b"\x7f"),
	(128, b"\x81\x00"),
	(240, b"\x81\x70"),
	(16383, b"\xff\x7f"),
	(16384, b"\x81\x80\x00"),
	(0x0FFFFFFF, b"\xff\xff\xff\x7f"),
])
def test_encode_vlq (value: int, expected: bytes) -> None:

	assert pianoroll.midi_file.encode_vlq(value) == expected


def test_encode_vlq_rejects_negative () -> None:

	with pytest.raises(ValueError):
		pianoroll.midi_file.encode_vlq(-1)


def test_header_layout () -> None:

	assert pianoroll.midi_file.header_chunk(480) == b"MThd\x00\x00\x00\x06\x00\x00\x00\x01\x01\xe0"
	assert pianoroll.midi_file.header_chunk(96)[-2:] == b"\x00\x60"


def test_tempo_event_bytes (clock: pianoroll.clock.Clock) -> None:

	event = pianoroll.midi_file.tempo_event(clock)

	assert event.tick == 0
	assert event.payload == bytes([0xFF, 0x51, 0x03, 0x07, 0xA1, 0x20])


def test_empty_document (clock: pianoroll.clock.Clock) -> None:

	"""No notes still yields a valid file: tempo then end of track."""

	data = pianoroll.midi_file.write_midi([], clock)

	assert data[:14] == pianoroll.midi_file.header_chunk(480)
	assert data[14:18] == b"MTrk"
	assert data[18:22] == (11).to_bytes(4, "big")
	assert data[22:] == bytes([0x00, 0xFF, 0x51, 0x03, 0x07, 0xA1, 0x20, 0x00, 0xFF, 0x2F, 0x00])


def test_single_note_exact_bytes (clock: pianoroll.clock.Clock) -> None:

	data = pianoroll.midi_file.write_midi([_note(60, 0, 120, 100)], clock)

	track = bytes([
		0x00, 0xFF, 0x51, 0x03, 0x07, 0xA1, 0x20,
		0x00, 0x90, 0x3C, 0x64,
		0x78, 0x80, 0x3C, 0x40,
		0x00, 0xFF, 0x2F, 0x00,
	])

	assert len(track) == 19
	assert data == pianoroll.midi_file.header_chunk(480) + b"MTrk" + (19).to_bytes(4, "big") + track


def test_simultaneous_notes_ordering (clock: pianoroll.clock.Clock) -> None:

	"""Both note-ons come before both note-offs, each group in insertion order."""

	notes = [_note(60, 0, 240, 100), _note(64, 0, 240, 90)]
	data = pianoroll.midi_file.write_midi(notes, clock)

	expected_track = bytes([
		0x00, 0xFF, 0x51, 0x03, 0x07, 0xA1, 0x20,
		0x00, 0x90, 60, 100,
		0x00, 0x90, 64, 90,
		0x81, 0x70, 0x80, 60, 0x40,
		0x00, 0x80, 64, 0x40,
		0x00, 0xFF, 0x2F, 0x00,
	])

	assert data[22:] == expected_track
	assert int.from_bytes(data[18:22], "big") == len(expected_track)


def test_events_are_sorted_by_tick (clock: pianoroll.clock.Clock) -> None:

	notes = [_note(67, 960, 480), _note(60, 0, 480), _note(64, 480, 480)]
	events = pianoroll.midi_file.build_events(notes, clock)
	ticks = [event.tick for event in events]

	assert ticks == sorted(ticks)
	assert events[0].payload[:2] == bytes([0xFF, 0x51])


def test_note_off_before_note_on_at_same_tick_when_inserted_first (clock: pianoroll.clock.Clock) -> None:

	"""A note ending where the next one starts: its off was inserted first, so it stays first."""

	events = pianoroll.midi_file.build_events([_note(60, 0, 480), _note(60, 480, 480)], clock)
	at_480 = [event.payload[0] for event in events if event.tick == 480]

	assert at_480 == [0x80, 0x90]


def test_export_is_deterministic (clock: pianoroll.clock.Clock) -> None:

	notes = [_note(60, 0, 480), _note(62, 480, 240, 70), _note(64, 720, 1000, 127)]

	assert pianoroll.midi_file.write_midi(notes, clock) == pianoroll.midi_file.write_midi(notes, clock)


def test_negative_start_is_clamped (clock: pianoroll.clock.Clock) -> None:

	data = pianoroll.midi_file.write_midi([_note(60, -100, 220)], clock)

	# Note-on at delta 0, note-off at tick 120.
	assert data[29:33] == bytes([0x00, 0x90, 60, 100])
	assert data[33:37] == bytes([0x78, 0x80, 60, 0x40])


def test_output_parses_with_mido (clock: pianoroll.clock.Clock) -> None:

	notes = [_note(60, 0, 480, 100), _note(64, 480, 480, 80), _note(67, 960, 960, 60)]
	data = pianoroll.midi_file.write_midi(notes, clock.with_bpm(90))

	mid = mido.MidiFile(file=io.BytesIO(data))

	assert mid.type == 0
	assert mid.ticks_per_beat == 480
	assert len(mid.tracks) == 1

	messages = list(mid.tracks[0])
	tempo = [msg for msg in messages if msg.type == "set_tempo"]
	note_ons = [(msg.note, msg.velocity) for msg in messages if msg.type == "note_on"]
	note_offs = [msg for msg in messages if msg.type == "note_off"]

	assert tempo[0].tempo == 666667
	assert note_ons == [(60, 100), (64, 80), (67, 60)]
	assert len(note_offs) == 3
	assert all(msg.velocity == 64 for msg in note_offs)
	assert messages[-1].type == "end_of_track"


def test_save_midi (tmp_path, clock: pianoroll.clock.Clock) -> None:

	path = tmp_path / "out.mid"
	notes = [_note(60, 0, 480)]

	written = pianoroll.midi_file.save_midi(path, notes, clock)

	assert path.read_bytes() == pianoroll.midi_file.write_midi(notes, clock)
	assert written == path.stat().st_size


def test_very_slow_tempo_is_clamped (caplog: pytest.LogCaptureFixture) -> None:

	"""Below about 3.58 BPM the tempo no longer fits in 24 bits; the slowest tempo is written instead."""

	clock = pianoroll.clock.Clock(ppq=480, bpm=3)
	data = pianoroll.midi_file.write_midi([_note(60, 0, 480)], clock)

	assert data[22:29] == bytes([0x00, 0xFF, 0x51, 0x03, 0xFF, 0xFF, 0xFF])
	assert "too slow" in caplog.text

	mid = mido.MidiFile(file=io.BytesIO(data))

	assert [msg.tempo for msg in mid.tracks[0] if msg.type == "set_tempo"] == [0xFFFFFF]
