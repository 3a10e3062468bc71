import asyncio
import logging
from collections.abc import Callable, Sequence
from typing import TYPE_CHECKING, Any

from cascade.env import env
from cascade.errors import Errors
from cascade.helpers import Comparator, Equality, comparator
from cascade.scheduling import TaskRegistry, TimerRegistry

if TYPE_CHECKING:
	from cascade.node import Node

logger = logging.getLogger(__name__)

CommitListener = Callable[[Sequence["Node"]], Any]


class Runtime:
	"""Shared configuration and services for a tree of nodes.

	Every node belongs to one runtime. The runtime never holds state values
	itself; it carries the comparator used by the update-skip heuristic, the
	dispatch depth limit, commit listeners (the hook an external renderer
	uses to learn which nodes changed after a dispatch chain), timers, the
	error reporter and the event loop that cross-thread sends are posted to.
	The loop is either given or captured from the first dispatch chain that
	runs on one.
	"""

	max_dispatch_depth: int
	log_dropped_actions: bool
	equality: Equality
	errors: Errors
	timers: TimerRegistry
	tasks: TaskRegistry
	loop: asyncio.AbstractEventLoop | None
	_equal: Comparator
	_listeners: list[CommitListener]

	def __init__(
		self,
		*,
		max_dispatch_depth: int | None = None,
		log_dropped_actions: bool | None = None,
		equality: Equality | None = None,
		name: str | None = None,
		loop: asyncio.AbstractEventLoop | None = None,
	) -> None:
		self.max_dispatch_depth = (
			max_dispatch_depth
			if max_dispatch_depth is not None
			else env.max_dispatch_depth
		)
		if self.max_dispatch_depth < 1:
			raise ValueError("max_dispatch_depth must be positive")
		self.log_dropped_actions = (
			log_dropped_actions
			if log_dropped_actions is not None
			else env.log_dropped_actions
		)
		self.equality = equality if equality is not None else env.equality
		self._equal = comparator(self.equality)
		self.errors = Errors()
		self.timers = TimerRegistry(name=name)
		self.tasks = TaskRegistry(name=name)
		self._listeners = []
		self.loop = loop
		self.capture_loop()

	def capture_loop(self) -> asyncio.AbstractEventLoop | None:
		"""Remember the running loop unless a live one is already bound."""
		if self.loop is not None and not self.loop.is_closed():
			return self.loop
		try:
			self.loop = asyncio.get_running_loop()
		except RuntimeError:
			self.loop = None
		return self.loop

	def equal(self, a: Any, b: Any) -> bool:
		return self._equal(a, b)

	def on_commit(self, listener: CommitListener) -> Callable[[], None]:
		"""Register a listener called with the changed nodes after each
		top-level dispatch chain. Returns an unsubscribe function."""
		self._listeners.append(listener)

		def _remove() -> None:
			if listener in self._listeners:
				self._listeners.remove(listener)

		return _remove

	def notify_commit(self, nodes: Sequence["Node"]) -> None:
		for listener in list(self._listeners):
			try:
				listener(nodes)
			except Exception as exc:
				self.errors.report(
					exc,
					code="listener",
					details={"listener": repr(listener)},
				)

	def close(self) -> None:
		self.timers.cancel_all()
		self.tasks.cancel_all()
		self._listeners.clear()


_DEFAULT_RUNTIME: Runtime | None = None


def default_runtime() -> Runtime:
	global _DEFAULT_RUNTIME
	if _DEFAULT_RUNTIME is None:
		_DEFAULT_RUNTIME = Runtime(name="default")
	return _DEFAULT_RUNTIME


__all__ = ["CommitListener", "Runtime", "default_runtime"]
