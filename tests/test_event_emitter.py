import asyncio

import pytest

import pianoroll.event_emitter


def test_on_and_emit_sync () -> None:

	"""Registered sync callbacks are called on emit_sync."""

	emitter = pianoroll.event_emitter.EventEmitter()
	received: list[int] = []

	emitter.on("cursor", lambda v: received.append(v))
	emitter.emit_sync("cursor", 480)

	assert received == [480]


def test_listeners_called_in_registration_order () -> None:

	emitter = pianoroll.event_emitter.EventEmitter()
	order: list[str] = []

	emitter.on("change", lambda: order.append("surface"))
	emitter.on("change", lambda: order.append("session"))
	emitter.emit_sync("change")

	assert order == ["surface", "session"]


def test_off_only_removes_target_callback () -> None:

	"""off() leaves other callbacks for the same event intact."""

	emitter = pianoroll.event_emitter.EventEmitter()
	a: list[int] = []
	b: list[int] = []

	def cb_a (v: int) -> None:
		a.append(v)

	def cb_b (v: int) -> None:
		b.append(v)

	emitter.on("cursor", cb_a)
	emitter.on("cursor", cb_b)
	emitter.off("cursor", cb_a)
	emitter.emit_sync("cursor", 7)

	assert a == []
	assert b == [7]
	assert emitter.listener_count("cursor") == 1


def test_off_raises_for_unregistered_callback () -> None:

	"""off() raises ValueError when the callback was never registered."""

	emitter = pianoroll.event_emitter.EventEmitter()

	with pytest.raises(ValueError, match="cursor"):
		emitter.off("cursor", lambda: None)


def test_emit_sync_rejects_async_listener () -> None:

	emitter = pianoroll.event_emitter.EventEmitter()

	async def listener () -> None:
		return None

	emitter.on("stop", listener)

	with pytest.raises(ValueError):
		emitter.emit_sync("stop")


def test_emit_without_listeners () -> None:

	emitter = pianoroll.event_emitter.EventEmitter()
	emitter.emit_sync("nothing")

	assert emitter.listener_count("nothing") == 0


@pytest.mark.asyncio
async def test_emit_async_mixes_sync_and_async () -> None:

	"""Plain listeners run immediately; async listeners are awaited."""

	emitter = pianoroll.event_emitter.EventEmitter()
	received: list[str] = []

	async def slow () -> None:
		await asyncio.sleep(0)
		received.append("async")

	emitter.on("stop", slow)
	emitter.on("stop", lambda: received.append("sync"))

	await emitter.emit_async("stop")

	assert sorted(received) == ["async", "sync"]
