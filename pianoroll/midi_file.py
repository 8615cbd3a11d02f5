"""Standard MIDI File writer.

Serializes a set of notes plus the document clock into a format 0 (single
track) Standard MIDI File:

	MThd <len=6> <format=0> <tracks=1> <division=PPQ>
	MTrk <len>   <delta><event> ... 00 FF 2F 00

The byte layout is written out explicitly rather than delegated to a MIDI
library so that the output is exactly reproducible - the same notes and clock
always yield identical bytes, which tests and external tools rely on.
"""

import dataclasses
import logging
import os
import struct
import typing

import pianoroll.clock
import pianoroll.constants.velocity
import pianoroll.note_store


logger = logging.getLogger(__name__)


DEFAULT_EXPORT_FILENAME = "pianoroll.mid"

HEADER_MAGIC = b"MThd"
TRACK_MAGIC = b"MTrk"
HEADER_LENGTH = 6
FORMAT_SINGLE_TRACK = 0

NOTE_ON = 0x90
NOTE_OFF = 0x80
META = 0xFF
META_SET_TEMPO = 0x51
META_END_OF_TRACK = 0x2F

# Set Tempo carries 24 bits of microseconds per quarter note (about 3.58 BPM at the slowest).
MAX_TEMPO = 0xFFFFFF

END_OF_TRACK = bytes([0x00, META, META_END_OF_TRACK, 0x00])


@dataclasses.dataclass (frozen=True)
class TrackEvent:

	"""
	An event at an absolute tick, holding its status and data bytes (no delta).
	"""

	tick: int
	payload: bytes


def encode_vlq (value: int) -> bytes:

	"""Encode a non-negative integer as a MIDI variable-length quantity.

	Seven bits per byte, most significant group first, with the high bit set on
	every byte but the last.  Zero encodes as a single ``0x00``.

	Examples: 127 → ``7F``, 128 → ``81 00``, 16383 → ``FF 7F``.
	"""

	if value < 0:
		raise ValueError(f"Variable-length quantity cannot be negative: {value}")

	groups = [value & 0x7F]
	value >>= 7

	while value:
		groups.append((value & 0x7F) | 0x80)
		value >>= 7

	return bytes(reversed(groups))


def tempo_event (clock: pianoroll.clock.Clock) -> TrackEvent:

	"""Set Tempo meta event at tick 0: ``FF 51 03`` followed by 24-bit microseconds per quarter."""

	mpq = clock.microseconds_per_quarter

	if mpq > MAX_TEMPO:
		logger.warning(f"Tempo of {clock.bpm:g} BPM is too slow for a Set Tempo event - writing the slowest representable tempo")
		mpq = MAX_TEMPO

	return TrackEvent(0, bytes([META, META_SET_TEMPO, 0x03]) + mpq.to_bytes(3, "big"))


def note_events (note: pianoroll.note_store.Note) -> typing.Tuple[TrackEvent, TrackEvent]:

	"""Note-on at the note's start and note-off at its end, channel 1."""

	on = TrackEvent(note.start_tick, bytes([NOTE_ON, note.pitch & 0x7F, note.velocity & 0x7F]))
	off = TrackEvent(note.end_tick, bytes([NOTE_OFF, note.pitch & 0x7F, pianoroll.constants.velocity.DEFAULT_RELEASE_VELOCITY]))

	return on, off


def build_events (notes: typing.Iterable[pianoroll.note_store.Note], clock: pianoroll.clock.Clock) -> typing.List[TrackEvent]:

	"""Collect the tempo event and every note's on/off pair, sorted by tick.

	The sort is stable, so events sharing a tick keep insertion order: the tempo
	event first, then each note's on and off in the order the notes were given.
	"""

	events = [tempo_event(clock)]

	for note in notes:
		events.extend(note_events(note))

	# Notes dragged before zero sort as if at zero, after the tempo event.
	return sorted(events, key=lambda event: max(0, event.tick))


def encode_track (events: typing.Iterable[TrackEvent]) -> bytes:

	"""Delta-encode sorted events and terminate the stream with End of Track."""

	out = bytearray()
	last_tick = 0

	for event in events:

		# Unclamped edits can leave a note before zero; it plays from the start.
		tick = max(0, event.tick)
		delta = max(0, tick - last_tick)
		last_tick = max(last_tick, tick)

		out += encode_vlq(delta)
		out += event.payload

	out += END_OF_TRACK

	return bytes(out)


def header_chunk (ppq: int, tracks: int = 1) -> bytes:

	return HEADER_MAGIC + struct.pack(">IHHH", HEADER_LENGTH, FORMAT_SINGLE_TRACK, tracks, ppq)


def track_chunk (track_data: bytes) -> bytes:

	return TRACK_MAGIC + struct.pack(">I", len(track_data)) + track_data


def write_midi (notes: typing.Iterable[pianoroll.note_store.Note], clock: pianoroll.clock.Clock) -> bytes:

	"""Serialize *notes* at *clock*'s resolution and tempo into SMF bytes."""

	note_list = list(notes)
	track_data = encode_track(build_events(note_list, clock))

	logger.debug(f"Encoded {len(note_list)} notes into {len(track_data)} track bytes")

	return header_chunk(clock.ppq) + track_chunk(track_data)


def save_midi (path: typing.Union[str, "os.PathLike[str]"], notes: typing.Iterable[pianoroll.note_store.Note], clock: pianoroll.clock.Clock) -> int:

	"""Write an SMF to *path* and return the number of bytes written."""

	data = write_midi(notes, clock)

	with open(path, "wb") as f:
		f.write(data)

	logger.info(f"Exported {len(data)} bytes to {path}")

	return len(data)
