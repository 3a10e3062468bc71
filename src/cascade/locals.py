from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

from cascade.helpers import call_user

if TYPE_CHECKING:
	from cascade.component import Component

Locals = tuple[Any, ...]


def compute_locals(component: "Component", app_state: Any, args: Sequence[Any]) -> Locals:
	"""Derive the read-only bindings a component sees during render and
	message handling. Components without a ``locals`` clause have none."""
	derive = component.locals
	if derive is None:
		return ()
	result = call_user(
		"locals", f"Locals of {component.name}", derive, app_state, tuple(args)
	)
	if result is None:
		return ()
	if isinstance(result, tuple):
		return result
	if isinstance(result, Sequence) and not isinstance(result, (str, bytes)):
		return tuple(result)  # pyright: ignore[reportUnknownArgumentType]
	return (result,)


__all__ = ["Locals", "compute_locals"]
