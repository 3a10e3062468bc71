"""Helpers for testing components.

```python
def test_counter():
	harness = ComponentHarness(Counter, 0)
	harness.after(Increment(), the_app_state(lambda s: s == 1))
```
"""

import asyncio
import time
from collections.abc import Callable, Sequence
from typing import Any

from cascade.component import Component
from cascade.effects import Effect, resolve_effects
from cascade.helpers import call_user
from cascade.locals import compute_locals
from cascade.node import Node
from cascade.runtime import Runtime

Check = Callable[["ComponentHarness"], Any]


def handle_message(
	component: Component,
	message: Any,
	*,
	app_state: Any = None,
	local_state: Any = None,
	args: Sequence[Any] = (),
) -> Effect:
	"""Run a component's message handler in isolation and resolve its result.

	No node is created and nothing is applied; actions are returned as
	emitted, without reduction.
	"""
	handler = component.handle_message
	if handler is None:
		raise ValueError(f"{component.name} has no message handler")
	args = tuple(args)
	locals = compute_locals(component, app_state, args)
	result = call_user(
		"handler",
		f"Message handler of {component.name}",
		handler,
		message,
		app_state,
		local_state,
		locals,
		args,
	)
	return resolve_effects(result)


class ComponentHarness:
	"""Mounts a component as a root and records the actions reaching it."""

	node: Node
	actions: list[Any]

	def __init__(
		self,
		component: Component,
		app_state: Any = None,
		*args: Any,
		runtime: Runtime | None = None,
	) -> None:
		self.actions = []
		self.node = Node.toplevel(
			component,
			app_state,
			*args,
			reduce_action=self._record,
			runtime=runtime if runtime is not None else Runtime(name="testing"),
		)

	def _record(self, app_state: Any, action: Any) -> None:
		self.actions.append(action)

	@property
	def app_state(self) -> Any:
		return self.node.app_state

	@property
	def local_state(self) -> Any:
		return self.node.local_state

	@property
	def locals(self) -> tuple[Any, ...]:
		return self.node.locals

	def send(self, message: Any) -> Effect:
		return self.node.send(message)

	def after(self, message: Any, *checks: Check) -> Effect:
		"""Send ``message``, then run every check against the harness.

		A check returning ``False`` fails with an AssertionError.
		"""
		effect = self.send(message)
		for check in checks:
			if check(self) is False:
				raise AssertionError(f"Check {check!r} failed after {message!r}")
		return effect


def the_app_state(predicate: Callable[[Any], Any]) -> Check:
	return lambda harness: predicate(harness.app_state)


def the_local_state(predicate: Callable[[Any], Any]) -> Check:
	return lambda harness: predicate(harness.local_state)


async def wait_for(
	condition: Callable[[], Any], *, timeout: float = 1.0, interval: float = 0.005
) -> bool:
	"""Poll ``condition`` on the running loop until it holds or ``timeout``
	seconds pass. Returns whether it held."""
	deadline = time.monotonic() + timeout
	while True:
		if condition():
			return True
		if time.monotonic() >= deadline:
			return False
		await asyncio.sleep(interval)


__all__ = [
	"Check",
	"ComponentHarness",
	"handle_message",
	"the_app_state",
	"the_local_state",
	"wait_for",
]
