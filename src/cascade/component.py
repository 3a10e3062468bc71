"""Component definitions.

A :class:`Component` bundles the callables the authoring layer supplies for
one kind of node. Only the name is required; everything else is optional.

```python
@component(initial_state=lambda app_state, locals, args: 0)
def Counter(msg, app_state, local_state, locals, args):
	if isinstance(msg, Increment):
		return ret("app-state", app_state + 1)
```
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, overload, override

from cascade.effects import Effects

MessageHandler = Callable[[Any, Any, Any, tuple[Any, ...], tuple[Any, ...]], Effects | None]
InitialState = Callable[[Any, tuple[Any, ...], tuple[Any, ...]], Any]
LocalsFn = Callable[[Any, tuple[Any, ...]], Any]
MountHook = Callable[[Any, Any, tuple[Any, ...], tuple[Any, ...]], Effects | None]
ReceiveArgsHook = Callable[
	[Any, Any, tuple[Any, ...], tuple[Any, ...], tuple[Any, ...]], Effects | None
]
UpdateHook = Callable[
	[Any, Any, tuple[Any, ...], tuple[Any, ...], Any, Any, tuple[Any, ...]], Any
]
UnmountHook = Callable[[Any, Any, tuple[Any, ...], tuple[Any, ...]], Any]
ShouldUpdate = Callable[
	[Any, Any, tuple[Any, ...], tuple[Any, ...], Any, Any, tuple[Any, ...]], bool
]
RenderFn = Callable[[Any, Any, tuple[Any, ...], tuple[Any, ...], Any], Any]


class Component:
	"""The authoring-layer contract for one kind of node.

	Attributes:
		name: Display name, used in logs and diagnostics.
		handle_message: ``(message, app_state, local_state, locals, args)``
			returning ``ret(...)`` or ``None``.
		initial_state: ``(app_state, locals, args)`` returning the initial
			local state. Without it the local state starts as ``None``.
		locals: ``(app_state, args)`` returning the derived bindings.
		render: ``(app_state, local_state, locals, args, instantiate)``.
		will_mount, did_mount: ``(app_state, local_state, locals, args)``;
			a ``ret(...)`` result is applied like a handler result.
		will_receive_args: as above plus ``next_args``; result applied too.
		will_update: as above plus ``next_app_state, next_local_state,
			next_args``.
		did_update: as above plus ``prev_app_state, prev_local_state,
			prev_args``.
		will_unmount: ``(app_state, local_state, locals, args)``.
		should_update: replaces the default update-skip policy, same
			arguments as ``will_update``.
	"""

	name: str
	handle_message: MessageHandler | None
	initial_state: InitialState | None
	locals: LocalsFn | None
	render: RenderFn | None
	will_mount: MountHook | None
	did_mount: MountHook | None
	will_receive_args: ReceiveArgsHook | None
	will_update: UpdateHook | None
	did_update: UpdateHook | None
	will_unmount: UnmountHook | None
	should_update: ShouldUpdate | None

	def __init__(
		self,
		name: str,
		*,
		handle_message: MessageHandler | None = None,
		initial_state: InitialState | None = None,
		locals: LocalsFn | None = None,
		render: RenderFn | None = None,
		will_mount: MountHook | None = None,
		did_mount: MountHook | None = None,
		will_receive_args: ReceiveArgsHook | None = None,
		will_update: UpdateHook | None = None,
		did_update: UpdateHook | None = None,
		will_unmount: UnmountHook | None = None,
		should_update: ShouldUpdate | None = None,
	) -> None:
		if not isinstance(name, str) or not name:  # pyright: ignore[reportUnnecessaryIsInstance]
			raise ValueError("Component name must be a non-empty string")
		self.name = name
		self.handle_message = handle_message
		self.initial_state = initial_state
		self.locals = locals
		self.render = render
		self.will_mount = will_mount
		self.did_mount = did_mount
		self.will_receive_args = will_receive_args
		self.will_update = will_update
		self.did_update = did_update
		self.will_unmount = will_unmount
		self.should_update = should_update

	@override
	def __repr__(self) -> str:
		return f"Component(name={self.name!r})"

	@override
	def __str__(self) -> str:
		return self.name


@overload
def component(fn: MessageHandler) -> Component: ...


@overload
def component(
	fn: None = None, *, name: str | None = None, **clauses: Any
) -> Callable[[MessageHandler], Component]: ...


def component(
	fn: MessageHandler | None = None, *, name: str | None = None, **clauses: Any
) -> Component | Callable[[MessageHandler], Component]:
	"""Decorator turning a message handler into a :class:`Component`.

	Works with or without parentheses; keyword arguments are the other
	clauses of :class:`Component`.
	"""

	def decorator(handler: MessageHandler) -> Component:
		return Component(
			name or getattr(handler, "__name__", "Component"),
			handle_message=handler,
			**clauses,
		)

	if fn is not None:
		return decorator(fn)
	return decorator


__all__ = [
	"Component",
	"InitialState",
	"LocalsFn",
	"MessageHandler",
	"MountHook",
	"ReceiveArgsHook",
	"RenderFn",
	"ShouldUpdate",
	"UnmountHook",
	"UpdateHook",
	"component",
]
