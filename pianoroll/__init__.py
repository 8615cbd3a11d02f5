"""
pianoroll - a tick-based piano-roll editor core with MIDI export and playback.

Every note lives on a tick timeline (``PPQ`` ticks per quarter note, 480 by
default).  A ``Clock`` maps ticks to seconds and to the bar/beat grid, a
``NoteStore`` holds the notes, and from there:

- **Export.** ``pianoroll.midi_file.write_midi()`` produces a byte-exact,
  single-track Standard MIDI File that any DAW can open.
- **Import.** ``pianoroll.midi_import.scan_note_ons()`` pulls note-ons back out
  of arbitrary MIDI bytes - a best-effort scan, not a parser.
- **Playback.** ``PlaybackScheduler`` schedules every note against a transport
  and drives a play cursor computed from transport time, so the cursor never
  drifts from the sound.
- **Editing.** ``Editor`` turns pointer gestures (draw, drag, resize, delete)
  into store edits with grid snapping.
- **Suggestions.** ``pianoroll.suggestions.suggest()`` proposes melody and
  harmony notes from simple scale rules.

Minimal example:

    ```python
    import pianoroll

    session = pianoroll.Session()
    session.add_note(pitch=60, start_tick=0, length_ticks=480)
    session.add_note(pitch=64, start_tick=480, length_ticks=480)
    session.export_file("pianoroll.mid")
    ```

Package-level exports: ``Clock``, ``Config``, ``Note``, ``NoteStore``,
``PlaybackScheduler``, ``Session``.
"""

import pianoroll.clock
import pianoroll.config
import pianoroll.note_store
import pianoroll.scheduler
import pianoroll.session


Clock = pianoroll.clock.Clock
Config = pianoroll.config.Config
Note = pianoroll.note_store.Note
NoteStore = pianoroll.note_store.NoteStore
PlaybackScheduler = pianoroll.scheduler.PlaybackScheduler
Session = pianoroll.session.Session
