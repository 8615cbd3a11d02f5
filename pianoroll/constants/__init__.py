"""Constants for pianoroll.

This package contains three sets of constants:

- ``pianoroll.constants.ticks`` - Tempo range and cursor polling defaults
- ``pianoroll.constants.velocity`` - MIDI velocity constants
- ``pianoroll.constants.pitch`` - Pitch ranges for storage, editing and import

The most common values are re-exported here so ``pianoroll.constants.DEFAULT_PPQ``
works without importing the submodules.
"""

DEFAULT_PPQ = 480
DEFAULT_BPM = 120
DEFAULT_BEATS_PER_BAR = 4
DEFAULT_BARS = 4
DEFAULT_GRID_DIVISION = 4
