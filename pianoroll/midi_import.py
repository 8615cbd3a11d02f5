"""Best-effort note recovery from arbitrary MIDI bytes.

This is a scanner, not a parser.  It walks the raw buffer looking for any byte
with a note-on status nibble (``0x9n``) and reads the next two bytes as pitch
and velocity.  Delta times are never decoded: recovered notes are laid out one
after another on a fixed synthetic step, with a fixed length.  Re-exporting an
imported file will therefore not reproduce its timing - the point is to get the
pitches back into the editor, not to round-trip the file.

Two outcomes are kept apart:

- the source could not be read → ``MidiReadError`` (an ``OSError``)
- the source was read but held no usable note-ons → an empty ``ImportResult``
"""

import dataclasses
import logging
import os
import typing

import pianoroll.constants
import pianoroll.constants.pitch
import pianoroll.note_store


logger = logging.getLogger(__name__)


class MidiReadError (OSError):

	"""
	The import source could not be read.
	"""


@dataclasses.dataclass
class ImportResult:

	"""
	Notes recovered by a scan, plus how many bytes were examined.
	"""

	notes: typing.List[pianoroll.note_store.Note] = dataclasses.field(default_factory=list)
	scanned_bytes: int = 0

	@property
	def found (self) -> bool:

		"""True when at least one note was recovered."""

		return bool(self.notes)

	def __bool__ (self) -> bool:

		return self.found

	def __len__ (self) -> int:

		return len(self.notes)


def scan_note_ons (data: typing.Union[bytes, bytearray, memoryview], ppq: int = pianoroll.constants.DEFAULT_PPQ) -> ImportResult:

	"""Recover notes from *data* by scanning for note-on status bytes.

	A candidate at offset ``i`` is accepted when its velocity ``data[i+2]`` is
	non-zero (a zero-velocity note-on is a note-off) and its pitch ``data[i+1]``
	lies on the 88-key piano.  Each accepted note starts ``ppq // 8`` ticks after
	the previous one and lasts ``ppq // 4`` ticks.

	Never raises on malformed or truncated input.
	"""

	buffer = bytes(data)
	step = max(1, ppq // 8)
	length = max(1, ppq // 4)
	notes: typing.List[pianoroll.note_store.Note] = []
	tick = 0

	for i in range(len(buffer) - 2):

		if buffer[i] & 0xF0 != 0x90:
			continue

		pitch = buffer[i + 1]
		velocity = buffer[i + 2]

		if velocity == 0 or not pianoroll.constants.pitch.PIANO_LOWEST <= pitch <= pianoroll.constants.pitch.PIANO_HIGHEST:
			continue

		# Velocities above 127 only appear when the scan lands on non-MIDI bytes.
		notes.append(pianoroll.note_store.Note(
			id = f"imported-{i}-{pianoroll.note_store.new_note_id()}",
			pitch = pitch,
			start_tick = tick,
			length_ticks = length,
			velocity = min(velocity, 127)
		))

		tick += step

	logger.debug(f"Scanned {len(buffer)} bytes, recovered {len(notes)} notes")

	return ImportResult(notes=notes, scanned_bytes=len(buffer))


def read_midi (path: typing.Union[str, "os.PathLike[str]"], ppq: int = pianoroll.constants.DEFAULT_PPQ) -> ImportResult:

	"""Read *path* and scan it.  Raises ``MidiReadError`` when the file cannot be read."""

	try:
		with open(path, "rb") as f:
			data = f.read()
	except OSError as e:
		raise MidiReadError(f"Could not read MIDI file {path}: {e}") from e

	return scan_note_ons(data, ppq=ppq)
