"""Document and application settings.

Settings come from a YAML file, grouped or flat:

```yaml
clock:
  ppq: 480
  bpm: 120
  beats_per_bar: 4
editor:
  grid_division: 4
  default_velocity: 80
playback:
  bars: 4
  poll_interval: 0.05
midi:
  output_device: "IAC Driver Bus 1"
  instrument: piano
```

A missing file is not an error - every setting has a default.
"""

import dataclasses
import logging
import os
import typing

import yaml

import pianoroll.clock
import pianoroll.constants
import pianoroll.constants.ticks
import pianoroll.constants.velocity
import pianoroll.instrument
import pianoroll.midi_file


logger = logging.getLogger(__name__)


IMPORT_MODES = ("replace", "append")


@dataclasses.dataclass
class Config:

	"""
	Settings for one editing session.
	"""

	ppq: int = pianoroll.constants.DEFAULT_PPQ
	bpm: float = pianoroll.constants.DEFAULT_BPM
	beats_per_bar: int = pianoroll.constants.DEFAULT_BEATS_PER_BAR
	bars: int = pianoroll.constants.DEFAULT_BARS
	grid_division: int = pianoroll.constants.DEFAULT_GRID_DIVISION
	default_velocity: int = pianoroll.constants.velocity.DEFAULT_VELOCITY
	default_length_ticks: typing.Optional[int] = None
	poll_interval: float = pianoroll.constants.ticks.CURSOR_POLL_INTERVAL
	output_device: typing.Optional[str] = None
	instrument: str = pianoroll.instrument.DEFAULT_INSTRUMENT
	import_mode: str = "replace"
	export_filename: str = pianoroll.midi_file.DEFAULT_EXPORT_FILENAME

	def __post_init__ (self) -> None:

		"""Check the settings that have no sensible fallback."""

		if self.bars <= 0:
			raise ValueError("Timeline length in bars must be positive")

		if self.import_mode not in IMPORT_MODES:
			raise ValueError(f"import_mode must be one of {IMPORT_MODES}, got {self.import_mode!r}")

		# Clock validates ppq, bpm and meter; the grid must divide the resolution.
		clock = self.clock()
		pianoroll.clock.validate_grid_division(clock.ppq, self.grid_division)

	def clock (self) -> pianoroll.clock.Clock:

		return pianoroll.clock.Clock(ppq=self.ppq, bpm=self.bpm, beats_per_bar=self.beats_per_bar)

	@classmethod
	def from_dict (cls, data: typing.Optional[typing.Mapping[str, typing.Any]]) -> "Config":

		"""Build a config from a parsed YAML mapping, flattening known sections."""

		if not data:
			return cls()

		known = {field.name for field in dataclasses.fields(cls)}
		values: typing.Dict[str, typing.Any] = {}

		for key, value in data.items():

			if key in ("clock", "editor", "playback", "midi") and isinstance(value, dict):
				items = value.items()
			else:
				items = [(key, value)]

			for name, setting in items:
				if name in known:
					values[name] = setting
				else:
					logger.warning(f"Ignoring unknown config setting {name!r}")

		return cls(**values)


def load_config (config_path: typing.Union[str, "os.PathLike[str]"] = "config.yaml") -> Config:

	"""
	Load configuration from a YAML file, falling back to defaults when it does not exist.
	"""

	if not os.path.exists(config_path):
		logger.warning(f"Config file {config_path} not found. Using defaults.")
		return Config()

	with open(config_path, "r") as f:
		data = yaml.safe_load(f)

	logger.info(f"Loaded config from {config_path}")

	return Config.from_dict(data)
