"""Tick-based timing constants.

A document expresses every position and duration in ticks, ``PPQ`` ticks per
quarter note.  The default resolution of 480 matches what most sequencers write
to Standard MIDI Files, so exports open at their native resolution.
"""

# Recommended tempo range - values outside are accepted with a warning.
MIN_RECOMMENDED_BPM = 60
MAX_RECOMMENDED_BPM = 200

# Cursor polling interval for playback, in seconds.
CURSOR_POLL_INTERVAL = 0.05
