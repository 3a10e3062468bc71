"""Timers and cross-thread entry points.

Nothing in the dispatch protocol suspends. Asynchronous work happens outside
and comes back as a fresh top-level ``send``; this module is how it comes
back. Callbacks run on the asyncio loop, so each one is its own dispatch
chain.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import TYPE_CHECKING, Any, ParamSpec, Protocol, TypeVar, override

from anyio import from_thread

if TYPE_CHECKING:
	from cascade.node import Node

T = TypeVar("T")
P = ParamSpec("P")


class TimerHandleLike(Protocol):
	def cancel(self) -> None: ...
	def cancelled(self) -> bool: ...
	def when(self) -> float: ...


def _running_loop() -> asyncio.AbstractEventLoop | None:
	try:
		return asyncio.get_running_loop()
	except RuntimeError:
		return None


def schedule_on_loop(
	callback: Callable[[], None], loop: asyncio.AbstractEventLoop | None = None
) -> None:
	"""Schedule a callback to run ASAP on ``loop``, from any thread.

	Without a live ``loop`` the callback goes to the loop running in the
	calling thread or, from an anyio worker thread, to the loop that owns it.
	"""
	running = _running_loop()
	if loop is not None and not loop.is_closed():
		if loop is running:
			loop.call_soon(callback)
		else:
			loop.call_soon_threadsafe(callback)
		return
	if running is not None:
		running.call_soon(callback)
		return

	async def _runner():
		asyncio.get_running_loop().call_soon(callback)

	try:
		from_thread.run(_runner)
	except RuntimeError as exc:
		raise RuntimeError(
			"No event loop to schedule on: pass loop= to Runtime or dispatch "
			+ "on the loop before sending from other threads"
		) from exc


def _schedule_later(
	delay: float,
	fn: Callable[P, Any],
	*args: P.args,
	**kwargs: P.kwargs,
) -> asyncio.TimerHandle:
	loop = _running_loop()
	if loop is None:
		raise RuntimeError("send_later() requires a running event loop")

	def _run():
		try:
			fn(*args, **kwargs)
		except Exception as exc:
			# Surface exceptions via the loop's exception handler and continue
			loop.call_exception_handler(
				{
					"message": "Unhandled exception in scheduled send",
					"exception": exc,
					"context": {"callback": fn},
				}
			)

	return loop.call_later(delay, _run)


def send_later(delay: float, node: "Node", message: Any) -> TimerHandleLike:
	"""Send ``message`` to ``node`` after ``delay`` seconds, as a new
	top-level dispatch. Returns a handle; call .cancel() to cancel."""
	from cascade.dispatch import send

	if delay < 0:
		raise ValueError("send_later() delay must be non-negative")
	return node.runtime.timers.later(delay, send, node, message)


def send_soon(node: "Node", message: Any) -> None:
	"""Send ``message`` to ``node`` on the next iteration of the runtime's loop.
	Safe to call from any thread once the runtime knows its loop."""
	from cascade.dispatch import send

	schedule_on_loop(
		lambda: _send_reporting(send, node, message), node.runtime.capture_loop()
	)


def _send_reporting(send: Callable[[Node, Any], Any], node: "Node", message: Any):
	try:
		send(node, message)
	except Exception as exc:
		asyncio.get_running_loop().call_exception_handler(
			{
				"message": "Unhandled exception in send_soon()",
				"exception": exc,
				"context": {"node": repr(node), "message": repr(message)},
			}
		)


class RepeatHandle:
	task: asyncio.Task[None] | None
	cancelled: bool

	def __init__(self) -> None:
		self.task = None
		self.cancelled = False

	def cancel(self):
		if self.cancelled:
			return
		self.cancelled = True
		if self.task is not None and not self.task.done():
			self.task.cancel()


def repeat(interval: float, node: "Node", message: Any) -> RepeatHandle:
	"""
	Send ``message`` to ``node`` every ``interval`` seconds until the returned
	handle is cancelled. A failing send is reported to the loop's exception
	handler and the next one still happens.
	"""
	from cascade.dispatch import send

	if interval <= 0:
		raise ValueError("repeat() interval must be positive")
	loop = asyncio.get_running_loop()
	handle = RepeatHandle()

	async def _runner():
		try:
			while not handle.cancelled:
				await asyncio.sleep(interval)
				if handle.cancelled or not node.mounted:
					break
				try:
					send(node, message)
				except Exception as exc:
					loop.call_exception_handler(
						{
							"message": "Unhandled exception in repeat() send",
							"exception": exc,
							"context": {"node": repr(node)},
						}
					)
		except asyncio.CancelledError:
			# Swallow task cancellation to avoid noisy "exception was never retrieved"
			pass

	handle.task = loop.create_task(_runner())
	node.runtime.tasks.track(handle.task)
	return handle


class TaskRegistry:
	_tasks: set[asyncio.Task[Any]]
	name: str | None

	def __init__(self, name: str | None = None) -> None:
		self._tasks = set()
		self.name = name

	def track(self, task: asyncio.Task[T]) -> asyncio.Task[T]:
		self._tasks.add(task)
		task.add_done_callback(self._tasks.discard)
		return task

	def cancel_all(self) -> None:
		for task in list(self._tasks):
			if not task.done():
				task.cancel()
		self._tasks.clear()


class TimerRegistry:
	_handles: set[TimerHandleLike]
	name: str | None

	def __init__(self, name: str | None = None) -> None:
		self._handles = set()
		self.name = name

	def discard(self, handle: TimerHandleLike | None) -> None:
		if handle is None:
			return
		self._handles.discard(handle)

	def later(
		self,
		delay: float,
		fn: Callable[P, Any],
		*args: P.args,
		**kwargs: P.kwargs,
	) -> TimerHandleLike:
		tracked_box: list[_TrackedTimerHandle] = []

		def _wrapped():
			try:
				return fn(*args, **kwargs)
			finally:
				self.discard(tracked_box[0] if tracked_box else None)

		handle = _schedule_later(delay, _wrapped)
		tracked = _TrackedTimerHandle(handle, self)
		tracked_box.append(tracked)
		self._handles.add(tracked)
		return tracked

	def __len__(self) -> int:
		return len(self._handles)

	def cancel_all(self) -> None:
		for handle in list(self._handles):
			handle.cancel()
		self._handles.clear()


class _TrackedTimerHandle:
	__slots__: tuple[str, ...] = ("_handle", "_registry")
	_handle: asyncio.TimerHandle
	_registry: "TimerRegistry"

	def __init__(self, handle: asyncio.TimerHandle, registry: "TimerRegistry") -> None:
		self._handle = handle
		self._registry = registry

	def cancel(self) -> None:
		if not self._handle.cancelled():
			self._handle.cancel()
		self._registry.discard(self)

	def cancelled(self) -> bool:
		return self._handle.cancelled()

	def when(self) -> float:
		return self._handle.when()

	@override
	def __hash__(self) -> int:
		return hash(self._handle)

	@override
	def __eq__(self, other: object) -> bool:
		if isinstance(other, _TrackedTimerHandle):
			return self._handle is other._handle
		return self._handle is other


__all__ = [
	"RepeatHandle",
	"TaskRegistry",
	"TimerHandleLike",
	"TimerRegistry",
	"repeat",
	"schedule_on_loop",
	"send_later",
	"send_soon",
]
