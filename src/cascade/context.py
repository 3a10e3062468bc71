"""Scoped dispatch context.

One top-level ``send`` (and every nested send, reaction and action routed
from it) runs inside a single :class:`DispatchContext`. Commits made during
the chain land in the context's overlay first, so reads of a node's current
app state, local state and locals see the most recent value of the chain.
When the outermost chain ends the overlay is written to the nodes, cleared,
and the runtime's commit listeners are told which nodes changed.

The context lives in a ``ContextVar``; it is never module-global state.
"""

from __future__ import annotations

import logging
from collections.abc import Generator
from contextlib import contextmanager
from contextvars import ContextVar, Token
from types import TracebackType
from typing import TYPE_CHECKING, Any, Literal

from cascade.errors import DispatchDepthExceeded, error_code
from cascade.helpers import MISSING

if TYPE_CHECKING:
	from cascade.locals import Locals
	from cascade.node import Node
	from cascade.runtime import Runtime

logger = logging.getLogger(__name__)


class DispatchContext:
	runtime: "Runtime"
	app_states: dict["Node", Any]
	local_states: dict["Node", Any]
	locals: dict["Node", "Locals"]
	touched: dict["Node", None]
	depth: int
	_token: "Token[DispatchContext | None] | None"

	def __init__(self, runtime: "Runtime") -> None:
		self.runtime = runtime
		self.app_states = {}
		self.local_states = {}
		self.locals = {}
		self.touched = {}
		self.depth = 0
		self._token = None

	@staticmethod
	def current() -> "DispatchContext | None":
		return DISPATCH_CONTEXT.get()

	@classmethod
	@contextmanager
	def chain(cls, runtime: "Runtime") -> Generator["DispatchContext", None, None]:
		"""Join the active chain, or start a top-level one."""
		ctx = DISPATCH_CONTEXT.get()
		if ctx is not None:
			yield ctx
			return
		with cls(runtime) as ctx:
			yield ctx

	@contextmanager
	def descend(self, node: "Node") -> Generator[None, None, None]:
		if self.depth >= self.runtime.max_dispatch_depth:
			raise DispatchDepthExceeded(
				f"Dispatch to {node!r} nested deeper than "
				+ f"{self.runtime.max_dispatch_depth} sends"
			)
		self.depth += 1
		try:
			yield
		except RecursionError as exc:
			# max_dispatch_depth is set higher than the interpreter stack allows.
			raise DispatchDepthExceeded(
				"Dispatch ran out of interpreter stack after "
				+ f"{self.depth} nested sends"
			) from exc
		finally:
			self.depth -= 1

	# ------------------------------------------------------------------
	# Overlay
	# ------------------------------------------------------------------

	def read_app_state(self, node: "Node") -> Any:
		return self.app_states.get(node, MISSING)

	def read_local_state(self, node: "Node") -> Any:
		return self.local_states.get(node, MISSING)

	def read_locals(self, node: "Node") -> Any:
		return self.locals.get(node, MISSING)

	def commit_app_state(self, node: "Node", app_state: Any) -> None:
		self.app_states[node] = app_state
		self.touched[node] = None

	def commit_local_state(self, node: "Node", local_state: Any) -> None:
		self.local_states[node] = local_state
		self.touched[node] = None

	def commit_locals(self, node: "Node", locals: "Locals") -> None:
		self.locals[node] = locals
		self.touched[node] = None

	def flush(self) -> list["Node"]:
		"""Write the overlay to the nodes and clear it."""
		touched = list(self.touched)
		for node in touched:
			node._store(  # pyright: ignore[reportPrivateUsage]
				app_state=self.app_states.get(node, MISSING),
				local_state=self.local_states.get(node, MISSING),
				locals=self.locals.get(node, MISSING),
			)
		self.app_states.clear()
		self.local_states.clear()
		self.locals.clear()
		self.touched.clear()
		return touched

	def __enter__(self) -> "DispatchContext":
		self.runtime.capture_loop()
		self._token = DISPATCH_CONTEXT.set(self)
		return self

	def __exit__(
		self,
		exc_type: type[BaseException] | None = None,
		exc_val: BaseException | None = None,
		exc_tb: TracebackType | None = None,
	) -> Literal[False]:
		if self._token is None:
			return False
		DISPATCH_CONTEXT.reset(self._token)
		self._token = None
		# Whatever was committed before a failure stands.
		touched = self.flush()
		if exc_val is not None and isinstance(exc_val, Exception):
			self.runtime.errors.report(
				exc_val,
				code=error_code(exc_val),
				details={"touched": [repr(node) for node in touched]},
			)
		if touched:
			logger.debug("Dispatch chain committed %d node(s)", len(touched))
			self.runtime.notify_commit(touched)
		return False


DISPATCH_CONTEXT: ContextVar["DispatchContext | None"] = ContextVar(
	"cascade_dispatch_context", default=None
)


__all__ = ["DISPATCH_CONTEXT", "DispatchContext"]
