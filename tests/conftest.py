import typing

import mido
import pytest

import pianoroll.clock
import pianoroll.instrument
import pianoroll.note_store
import pianoroll.scheduler
import pianoroll.transport


class FakeMidiOut:

	"""MIDI output stub that keeps every message sent to it."""

	def __init__ (self) -> None:

		self.sent: typing.List[mido.Message] = []
		self.closed = False

	def send (self, message: mido.Message) -> None:

		self.sent.append(message)

	def close (self) -> None:

		self.closed = True


class RecordingInstrument:

	"""Instrument that records triggers as (kind, pitch, velocity) tuples."""

	def __init__ (self, name: str = "test") -> None:

		self.name = name
		self.calls: typing.List[typing.Tuple[str, int, float]] = []
		self.disposed = False

	@property
	def ready (self) -> bool:

		return not self.disposed

	def trigger_attack (self, pitch: int, velocity: float) -> None:

		self.calls.append(("attack", pitch, velocity))

	def trigger_release (self, pitch: int) -> None:

		self.calls.append(("release", pitch, 0.0))

	def trigger_attack_release (self, pitch: int, duration: float, velocity: float) -> None:

		self.calls.append(("attack_release", pitch, velocity))

	def release_all (self) -> None:

		return None

	def dispose (self) -> None:

		self.disposed = True

	def kinds (self) -> typing.List[str]:

		return [kind for kind, _, _ in self.calls]


_last_fake_output: typing.Optional[FakeMidiOut] = None


def _fake_get_output_names () -> list[str]:

	"""Return a fixed list of MIDI output names for tests."""

	return ["Dummy MIDI"]


def _fake_open_output (name: str) -> FakeMidiOut:

	"""Return a fresh fake output regardless of the name."""

	global _last_fake_output
	_last_fake_output = FakeMidiOut()
	return _last_fake_output


@pytest.fixture
def patch_midi (monkeypatch: pytest.MonkeyPatch) -> None:

	"""Patch mido so opening an output port yields a FakeMidiOut."""

	monkeypatch.setattr(mido, "get_output_names", _fake_get_output_names)
	monkeypatch.setattr(mido, "open_output", _fake_open_output)


@pytest.fixture
def clock () -> pianoroll.clock.Clock:

	return pianoroll.clock.Clock(ppq=480, bpm=120)


@pytest.fixture
def store () -> pianoroll.note_store.NoteStore:

	return pianoroll.note_store.NoteStore()


@pytest.fixture
def instrument () -> RecordingInstrument:

	return RecordingInstrument()


@pytest.fixture
def transport () -> pianoroll.transport.ManualTransport:

	return pianoroll.transport.ManualTransport()


@pytest.fixture
def scheduler (
	store: pianoroll.note_store.NoteStore,
	clock: pianoroll.clock.Clock,
	instrument: RecordingInstrument,
	transport: pianoroll.transport.ManualTransport,
) -> pianoroll.scheduler.PlaybackScheduler:

	"""A scheduler on a manual transport; the background poll is slowed so tests drive the cursor."""

	return pianoroll.scheduler.PlaybackScheduler(store, clock, instrument, transport=transport, poll_interval=60.0)


@pytest.fixture
def fake_output () -> FakeMidiOut:

	return FakeMidiOut()
