"""Rule-based note suggestions.

A pure function of the current notes and the cursor position.  It guesses a key
from pitch-class counts, then proposes a short melodic continuation (steps,
skips and a return to the tonic, from the last note) and a diatonic third above
whatever is sounding at the cursor.  Nothing here touches the note store;
``Session.accept_suggestion`` commits a suggestion when the user takes it.
"""

import collections
import dataclasses
import random
import typing

import pianoroll.clock
import pianoroll.constants
import pianoroll.constants.pitch
import pianoroll.constants.velocity
import pianoroll.note_store


SCALE_DEFINITIONS: typing.Dict[str, typing.List[int]] = {
	"major_ionian": [0, 2, 4, 5, 7, 9, 11],
	"natural_minor": [0, 2, 3, 5, 7, 8, 10],
}

MELODY_CONFIDENCE = 0.8
HARMONY_CONFIDENCE = 0.7
MAX_MELODY_SUGGESTIONS = 3
HISTORY_LENGTH = 4


@dataclasses.dataclass (frozen=True)
class SuggestedNote:

	pitch: int
	start_tick: int
	length_ticks: int
	velocity: int


@dataclasses.dataclass (frozen=True)
class Suggestion:

	"""
	A group of notes offered together, with a confidence in [0, 1] and a style label.
	"""

	notes: typing.Tuple[SuggestedNote, ...]
	confidence: float
	style: str


def analyze_key (notes: typing.Sequence[pianoroll.note_store.Note]) -> typing.Tuple[int, bool]:

	"""Return ``(tonic_pitch_class, is_minor)``.

	The most frequent pitch class is taken as the tonic (the higher pitch class
	wins a tie).  The key is minor when the minor third above it occurs more
	often than the major third.  No notes means C major.
	"""

	if not notes:
		return 0, False

	counts = collections.Counter(note.pitch % 12 for note in notes)
	key = max(sorted(counts, reverse=True), key=lambda pc: counts[pc])

	return key, counts[(key + 3) % 12] > counts[(key + 4) % 12]


def _scale (is_minor: bool) -> typing.List[int]:

	return SCALE_DEFINITIONS["natural_minor" if is_minor else "major_ionian"]


def _in_range (pitch: int) -> bool:

	return pianoroll.constants.pitch.SUGGESTION_LOWEST <= pitch <= pianoroll.constants.pitch.SUGGESTION_HIGHEST


def melody_suggestions (
	recent: typing.Sequence[pianoroll.note_store.Note],
	key: int,
	is_minor: bool,
	position: int,
	length: int,
	rng: typing.Optional[random.Random] = None,
) -> typing.List[SuggestedNote]:

	"""Candidate next notes after the last of *recent*, at *position*."""

	if not recent:
		return [SuggestedNote(pianoroll.constants.pitch.MIDDLE_C + key, position, length, pianoroll.constants.velocity.DEFAULT_VELOCITY)]

	scale = _scale(is_minor)
	last = recent[-1]
	offset = (last.pitch % 12 - key) % 12
	index = scale.index(offset) if offset in scale else -1

	# Step up, step down, skip up, skip down, back to the tonic.
	moves = [index + 1, index - 1, index + 2, index - 2, 0]
	octave_base = (last.pitch // 12) * 12

	suggestions: typing.List[SuggestedNote] = []

	for move in moves:

		if not 0 <= move < len(scale):
			continue

		pitch = octave_base + key + scale[move]

		if not _in_range(pitch):
			continue

		velocity = last.velocity - 10 + (rng.random() * 20 if rng is not None else 0)
		velocity = max(pianoroll.constants.velocity.MELODY_VELOCITY_FLOOR, int(velocity))

		suggestions.append(SuggestedNote(pitch, position, length, min(velocity, pianoroll.constants.velocity.MAX_VELOCITY)))

	return suggestions[:MAX_MELODY_SUGGESTIONS]


def harmony_suggestions (
	notes: typing.Sequence[pianoroll.note_store.Note],
	key: int,
	is_minor: bool,
	position: int,
) -> typing.List[SuggestedNote]:

	"""A diatonic third above every in-key note sounding at *position*."""

	scale = _scale(is_minor)
	suggestions: typing.List[SuggestedNote] = []

	for note in notes:

		if not note.contains(position):
			continue

		offset = (note.pitch % 12 - key) % 12

		if offset not in scale:
			continue

		third = scale[(scale.index(offset) + 2) % len(scale)]
		pitch = (note.pitch // 12) * 12 + key + third

		if pitch == note.pitch or not _in_range(pitch):
			continue

		velocity = max(pianoroll.constants.velocity.HARMONY_VELOCITY_FLOOR, note.velocity - 20)
		suggestions.append(SuggestedNote(pitch, position, note.length_ticks, velocity))

	return suggestions


def suggest (
	notes: typing.Sequence[pianoroll.note_store.Note],
	position_tick: int,
	clock: pianoroll.clock.Clock,
	grid_division: int = pianoroll.constants.DEFAULT_GRID_DIVISION,
	rng: typing.Optional[random.Random] = None,
) -> typing.List[Suggestion]:

	"""Suggest melody and harmony notes for the cursor at *position_tick*.

	Melody suggestions land one grid step after the cursor, or after the last
	note ends if that is later.  Harmony suggestions land at the cursor itself.
	Pass *rng* to add the small random velocity variation; without it the
	result is fully deterministic.
	"""

	step = clock.grid_step(grid_division)
	ordered = sorted(notes, key=lambda note: note.start_tick)
	recent = ordered[-HISTORY_LENGTH:]
	key, is_minor = analyze_key(ordered)

	last_end = max((note.end_tick for note in ordered), default=0)
	next_position = max(int(position_tick) + step, last_end)

	melody = melody_suggestions(recent, key, is_minor, next_position, step, rng=rng)
	harmony = harmony_suggestions(ordered, key, is_minor, int(position_tick))

	suggestions: typing.List[Suggestion] = []

	if melody:
		suggestions.append(Suggestion(tuple(melody), MELODY_CONFIDENCE, "melody"))

	if harmony:
		suggestions.append(Suggestion(tuple(harmony), HARMONY_CONFIDENCE, "harmony"))

	return suggestions
