"""Pitch range constants.

MIDI note numbers, C4 = 60 (Middle C).  Stored notes may use the whole MIDI
range; the editor and the importer restrict themselves to the 88 keys of a
standard piano (A0-C8).
"""

MIN_PITCH = 0
MAX_PITCH = 127

MIDDLE_C = 60

# Standard 88-key piano
PIANO_LOWEST = 21    # A0
PIANO_HIGHEST = 108  # C8

# Range used by the suggestion generator
SUGGESTION_LOWEST = 48   # C3
SUGGESTION_HIGHEST = 84  # C6
