"""Transports: the clocks that fire scheduled playback triggers.

A transport owns elapsed playback time and calls back at absolute offsets from
its start.  The scheduler never sleeps on its own account for note timing - it
hands every trigger to a transport up front and reads ``seconds`` back to place
the cursor, so the cursor and the audio stay on the same time base.

- ``AsyncioTransport`` runs in real time on the asyncio event loop.
- ``ManualTransport`` only moves when told to, for tests and offline use.
"""

import asyncio
import heapq
import itertools
import logging
import typing


logger = logging.getLogger(__name__)


TriggerCallback = typing.Callable[[float], typing.Any]


@typing.runtime_checkable
class Transport (typing.Protocol):

	"""
	Protocol for objects that can fire callbacks at offsets from their start.
	"""

	running: bool

	@property
	def seconds (self) -> float:

		"""Elapsed transport time since ``start()``, 0.0 when stopped."""

		...

	def schedule (self, seconds: float, callback: TriggerCallback) -> typing.Any:

		"""Call ``callback(seconds)`` when the transport reaches *seconds*."""

		...

	def cancel_all (self) -> None:

		"""Drop every callback that has not fired yet."""

		...

	def start (self) -> None:

		...

	def stop (self) -> None:

		...


class AsyncioTransport:

	"""Real-time transport driven by ``loop.call_at``.

	Callbacks scheduled before ``start()`` are held and armed when the transport
	starts; callbacks scheduled while running are armed immediately.  Times are
	measured on the loop's monotonic clock so they are immune to wall-clock
	adjustments.

	Parameters:
		start_delay: Seconds between ``start()`` and transport time zero.  A
			short lead lets the first triggers be armed before they are due.
	"""

	def __init__ (self, start_delay: float = 0.0) -> None:

		self.running = False
		self.start_delay = start_delay
		self._loop: typing.Optional[asyncio.AbstractEventLoop] = None
		self._origin: float = 0.0
		self._pending: typing.List[typing.Tuple[float, TriggerCallback]] = []
		self._handles: typing.List[asyncio.TimerHandle] = []

	@property
	def seconds (self) -> float:

		if not self.running or self._loop is None:
			return 0.0

		return max(0.0, self._loop.time() - self._origin)

	def schedule (self, seconds: float, callback: TriggerCallback) -> typing.Optional[asyncio.TimerHandle]:

		if not self.running or self._loop is None:
			self._pending.append((seconds, callback))
			return None

		handle = self._loop.call_at(self._origin + seconds, callback, seconds)
		self._handles.append(handle)

		return handle

	def cancel_all (self) -> None:

		for handle in self._handles:
			handle.cancel()

		cancelled = len(self._handles) + len(self._pending)
		self._handles = []
		self._pending = []

		logger.debug(f"Cancelled {cancelled} scheduled triggers")

	def start (self) -> None:

		"""Set transport time zero and arm held callbacks.  Requires a running event loop."""

		if self.running:
			return

		self._loop = asyncio.get_running_loop()
		self._origin = self._loop.time() + self.start_delay
		self.running = True

		pending, self._pending = self._pending, []

		for seconds, callback in pending:
			self.schedule(seconds, callback)

	def stop (self) -> None:

		"""Halt the transport and drop anything still scheduled."""

		if not self.running:
			return

		self.cancel_all()
		self.running = False


class ManualTransport:

	"""Deterministic transport that advances only via ``advance()``.

	Callbacks fire in time order; callbacks due at the same time fire in the
	order they were scheduled.
	"""

	def __init__ (self) -> None:

		self.running = False
		self._now: float = 0.0
		self._queue: typing.List[typing.Tuple[float, int, TriggerCallback]] = []
		self._counter = itertools.count()

	@property
	def seconds (self) -> float:

		return self._now if self.running else 0.0

	@property
	def pending (self) -> int:

		"""Number of callbacks waiting to fire."""

		return len(self._queue)

	def schedule (self, seconds: float, callback: TriggerCallback) -> int:

		counter = next(self._counter)
		heapq.heappush(self._queue, (seconds, counter, callback))

		return counter

	def cancel_all (self) -> None:

		self._queue = []

	def start (self) -> None:

		if self.running:
			return

		self._now = 0.0
		self.running = True

	def stop (self) -> None:

		if not self.running:
			return

		self.cancel_all()
		self.running = False
		self._now = 0.0

	def advance (self, seconds: float) -> int:

		"""Move time forward by *seconds*, firing everything that comes due.  Returns the number fired."""

		if not self.running:
			return 0

		target = self._now + seconds
		fired = 0

		while self.running and self._queue and self._queue[0][0] <= target:
			when, _, callback = heapq.heappop(self._queue)
			self._now = max(self._now, when)
			callback(when)
			fired += 1

		if self.running:
			self._now = target

		return fired
