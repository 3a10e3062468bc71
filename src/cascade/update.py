"""The update-skip heuristic an external renderer consults before it
recomputes a node's subtree.

Skipping when an update was needed leaves stale output on screen, updating
needlessly only costs time, so every ambiguity resolves to "update".
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from cascade.helpers import MISSING, call_user
from cascade.reactions import Reaction

if TYPE_CHECKING:
	from cascade.node import Node


@dataclass(frozen=True, slots=True)
class Proposed:
	"""The state, args and reaction a node would have after re-instantiation."""

	app_state: Any
	local_state: Any
	args: tuple[Any, ...]
	reaction: Reaction | None = None

	@classmethod
	def of(
		cls,
		node: "Node",
		*,
		app_state: Any = MISSING,
		local_state: Any = MISSING,
		args: tuple[Any, ...] | None = None,
		reaction: Reaction | None | Any = MISSING,
	) -> "Proposed":
		"""Snapshot ``node``, overriding the given fields."""
		current = cls(
			app_state=node.app_state,
			local_state=node.local_state,
			args=node.args,
			reaction=node.reaction,
		)
		changes: dict[str, Any] = {}
		if app_state is not MISSING:
			changes["app_state"] = app_state
		if local_state is not MISSING:
			changes["local_state"] = local_state
		if args is not None:
			changes["args"] = tuple(args)
		if reaction is not MISSING:
			changes["reaction"] = reaction
		return dataclasses.replace(current, **changes) if changes else current


def reaction_changed(current: Reaction | None, proposed: Reaction | None) -> bool:
	if current is None and proposed is None:
		return False
	return current != proposed


def default_should_update(node: "Node", proposed: Proposed) -> bool:
	# Views are compared on app state as well: they render from their owner's.
	equal = node.runtime.equal
	if not equal(node.app_state, proposed.app_state):
		return True
	if not equal(node.local_state, proposed.local_state):
		return True
	return not equal(tuple(node.args), tuple(proposed.args))


def should_update(node: "Node", proposed: Proposed) -> bool:
	"""Whether the subtree rooted at ``node`` must be recomputed.

	A changed reaction always forces an update, even when the component
	overrides the policy: the state may be identical but the wiring is not.
	"""
	if reaction_changed(node.reaction, proposed.reaction):
		return True
	override = node.component.should_update
	if override is not None:
		return bool(
			call_user(
				"lifecycle",
				f"should_update of {node.component.name}",
				override,
				node.app_state,
				node.local_state,
				node.locals,
				node.args,
				proposed.app_state,
				proposed.local_state,
				tuple(proposed.args),
			)
		)
	return default_should_update(node, proposed)


__all__ = [
	"Proposed",
	"default_should_update",
	"reaction_changed",
	"should_update",
]
