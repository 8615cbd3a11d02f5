"""MIDI velocity constants.

Velocity is the MIDI attack strength (0-127). These constants define sensible
defaults for notes created in the editor and written to exported files.
"""

# Primary defaults
DEFAULT_VELOCITY = 80           # Notes drawn with the pointer
DEFAULT_RELEASE_VELOCITY = 64   # Fixed note-off velocity written on export (0x40)

# Suggestion floors
MELODY_VELOCITY_FLOOR = 60
HARMONY_VELOCITY_FLOOR = 50

# MIDI standard range
MIN_VELOCITY = 0
MAX_VELOCITY = 127
