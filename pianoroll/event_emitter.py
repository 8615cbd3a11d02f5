import asyncio
import typing


Listener = typing.Callable[..., typing.Any]


class EventEmitter:

	"""
	Named-event fan-out used by the note store, the editor and the scheduler.

	The drawing surface and the session subscribe to ``"change"``, ``"cursor"``,
	``"selection"``, ``"start"`` and ``"stop"`` without the emitting component
	knowing who is listening.
	"""

	def __init__ (self) -> None:

		self._listeners: typing.Dict[str, typing.List[Listener]] = {}


	def on (self, event_name: str, callback: Listener) -> None:

		"""
		Subscribe *callback* to *event_name*.
		"""

		self._listeners.setdefault(event_name, []).append(callback)


	def off (self, event_name: str, callback: Listener) -> None:

		"""
		Unsubscribe *callback* from *event_name*.

		Raises ``ValueError`` if the callback was never subscribed.
		"""

		if callback not in self._listeners.get(event_name, []):
			raise ValueError(f"Callback not registered for event {event_name!r}")

		self._listeners[event_name].remove(callback)


	def listener_count (self, event_name: str) -> int:

		return len(self._listeners.get(event_name, []))


	def emit_sync (self, event_name: str, *args: typing.Any, **kwargs: typing.Any) -> None:

		"""
		Call every plain listener for *event_name* immediately.

		Store and editor mutations happen on the caller's thread with no event
		loop guaranteed, so async listeners are rejected here.
		"""

		for callback in list(self._listeners.get(event_name, [])):

			if asyncio.iscoroutinefunction(callback):
				raise ValueError(f"Async callback encountered in emit_sync for {event_name!r}")

			callback(*args, **kwargs)


	async def emit_async (self, event_name: str, *args: typing.Any, **kwargs: typing.Any) -> None:

		"""
		Call plain listeners immediately and await async listeners together.
		"""

		pending: typing.List[typing.Awaitable[typing.Any]] = []

		for callback in list(self._listeners.get(event_name, [])):

			if asyncio.iscoroutinefunction(callback):
				pending.append(callback(*args, **kwargs))

			else:
				callback(*args, **kwargs)

		if pending:
			await asyncio.gather(*pending)
