"""Command-line entry point.

Usage:
    python -m pianoroll export NOTES.yaml OUT.mid [--bpm BPM] [--ppq PPQ]
    python -m pianoroll import IN.mid [--yaml OUT.yaml]
    python -m pianoroll play IN.mid [--device NAME] [--instrument NAME]
    python -m pianoroll info IN.mid

A notes file is YAML:

    bpm: 120
    notes:
      - {pitch: 60, start: 0, length: 480, velocity: 100}
      - {pitch: 64, start: 480, length: 480}

Settings not given on the command line come from ``--config`` (default
``config.yaml``).
"""

import argparse
import asyncio
import dataclasses
import logging
import sys
import typing

import mido
import yaml

import pianoroll.config
import pianoroll.display
import pianoroll.instrument
import pianoroll.session


logger = logging.getLogger(__name__)


def _config_from_args (args: argparse.Namespace, overrides: typing.Optional[typing.Dict[str, typing.Any]] = None) -> pianoroll.config.Config:

	config = pianoroll.config.load_config(args.config)
	changes: typing.Dict[str, typing.Any] = dict(overrides or {})

	if args.bpm is not None:
		changes["bpm"] = args.bpm

	if args.ppq is not None:
		changes["ppq"] = args.ppq

	return dataclasses.replace(config, **changes) if changes else config


def load_notes_file (path: str) -> typing.Dict[str, typing.Any]:

	"""Read a YAML notes file into a mapping with a ``notes`` list."""

	with open(path, "r") as f:
		data = yaml.safe_load(f) or {}

	if not isinstance(data, dict) or not isinstance(data.get("notes", []), list):
		raise ValueError(f"{path}: expected a mapping with a 'notes' list")

	return data


def cmd_export (args: argparse.Namespace) -> int:

	data = load_notes_file(args.notes)
	overrides = {key: data[key] for key in ("bpm", "ppq") if key in data}
	session = pianoroll.session.Session(_config_from_args(args, overrides))

	for entry in data.get("notes", []):
		session.add_note(
			pitch = int(entry["pitch"]),
			start_tick = int(entry.get("start", 0)),
			length_ticks = entry.get("length"),
			velocity = entry.get("velocity")
		)

	return 0 if session.export_file(args.output) is not None else 1


def cmd_import (args: argparse.Namespace) -> int:

	session = pianoroll.session.Session(_config_from_args(args))
	result = session.import_file(args.input)

	if result is None:
		return 1

	notes = [
		{"pitch": note.pitch, "start": note.start_tick, "length": note.length_ticks, "velocity": note.velocity}
		for note in sorted(session.store.all(), key=lambda note: note.start_tick)
	]

	document = {"bpm": session.clock.bpm, "ppq": session.clock.ppq, "notes": notes}

	if args.yaml:
		with open(args.yaml, "w") as f:
			yaml.safe_dump(document, f, sort_keys=False)
		logger.info(f"Wrote {len(notes)} notes to {args.yaml}")
	else:
		print(yaml.safe_dump(document, sort_keys=False), end="")

	return 0


async def _play (session: pianoroll.session.Session) -> None:

	finished = asyncio.Event()
	session.scheduler.events.on("stop", lambda: finished.set())

	await session.play()

	try:
		await finished.wait()
	finally:
		await session.close()


def cmd_play (args: argparse.Namespace) -> int:

	config = _config_from_args(args)

	if args.device is not None:
		config.output_device = args.device

	if args.instrument is not None:
		config.instrument = args.instrument

	slot = pianoroll.instrument.InstrumentSlot.open(config.output_device)
	session = pianoroll.session.Session(config, instruments=slot)

	if session.import_file(args.input) is None:
		slot.close()
		return 1

	display = pianoroll.display.Display(session.clock, session.scheduler.end_tick, config.grid_division)
	display.start()
	session.attach_surface(display)

	try:
		asyncio.run(_play(session))
	except KeyboardInterrupt:
		logger.info("Stopping...")
	finally:
		display.stop()

	return 0


def cmd_info (args: argparse.Namespace) -> int:

	try:
		mid = mido.MidiFile(args.input)
	except (OSError, EOFError, ValueError) as e:
		logger.error(f"Could not parse {args.input}: {e}")
		return 1

	note_ons = sum(1 for track in mid.tracks for msg in track if msg.type == "note_on" and msg.velocity > 0)
	tempos = [mido.tempo2bpm(msg.tempo) for track in mid.tracks for msg in track if msg.type == "set_tempo"]

	print(f"Format:  {mid.type}")
	print(f"Tracks:  {len(mid.tracks)}")
	print(f"PPQ:     {mid.ticks_per_beat}")
	print(f"Tempo:   {', '.join(f'{bpm:g}' for bpm in tempos) or 'none'} BPM")
	print(f"Notes:   {note_ons}")
	print(f"Length:  {mid.length:.2f} s")

	return 0


def build_parser () -> argparse.ArgumentParser:

	parser = argparse.ArgumentParser(prog="pianoroll", description="Piano-roll MIDI export, import and playback.")
	parser.add_argument("--config", default="config.yaml", help="YAML settings file (default: config.yaml)")
	parser.add_argument("--bpm", type=float, default=None, help="Tempo override")
	parser.add_argument("--ppq", type=int, default=None, help="Resolution override (ticks per quarter note)")
	parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

	commands = parser.add_subparsers(dest="command", required=True)

	export = commands.add_parser("export", help="Write a MIDI file from a YAML notes file")
	export.add_argument("notes")
	export.add_argument("output")
	export.set_defaults(func=cmd_export)

	imp = commands.add_parser("import", help="Recover notes from a MIDI file")
	imp.add_argument("input")
	imp.add_argument("--yaml", default=None, help="Write notes here instead of stdout")
	imp.set_defaults(func=cmd_import)

	play = commands.add_parser("play", help="Import a MIDI file and play it through a MIDI output")
	play.add_argument("input")
	play.add_argument("--device", default=None, help="MIDI output device name")
	play.add_argument("--instrument", default=None, choices=sorted(pianoroll.instrument.INSTRUMENT_PROGRAMS))
	play.set_defaults(func=cmd_play)

	info = commands.add_parser("info", help="Summarize a MIDI file")
	info.add_argument("input")
	info.set_defaults(func=cmd_info)

	return parser


def main (argv: typing.Optional[typing.List[str]] = None) -> int:

	"""
	Main entry point for the pianoroll command line.
	"""

	args = build_parser().parse_args(argv)

	logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO)

	return int(args.func(args))


if __name__ == "__main__":
	sys.exit(main())
