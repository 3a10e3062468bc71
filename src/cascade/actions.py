"""Action routing.

Actions are unaddressed and travel strictly upward. Each ancestor applies the
reducer it was instantiated with to its own current app state; the reducer
can change that state, pass the action on, replace it, or absorb it. An
action that is still outstanding after the root has reduced it is dropped
silently: applications observe actions by giving the root a reducer.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from cascade.effects import KEEP, reduce_action

if TYPE_CHECKING:
	from cascade.node import Node

logger = logging.getLogger(__name__)


def _reduce_at(node: "Node", action: Any) -> tuple[Any, ...]:
	# Local import to avoid the cycle cascade.dispatch -> cascade.actions.
	from cascade.dispatch import commit_app_state

	change, actions = reduce_action(node.reducer, node.app_state, action)
	if change is not KEEP:
		commit_app_state(node, change)
	return actions


def route(origin: "Node", action: Any) -> None:
	"""Route an action emitted (and already self-reduced) by ``origin`` to
	its ancestors. Must run inside a dispatch chain."""
	ancestor = origin.parent
	if ancestor is None:
		if origin.runtime.log_dropped_actions:
			logger.debug("Dropping unconsumed action %r at root %r", action, origin)
		return
	for next_action in _reduce_at(ancestor, action):
		route(ancestor, next_action)


def emit(node: "Node", action: Any) -> None:
	"""Reduce ``action`` at ``node`` itself, then route what remains."""
	for next_action in _reduce_at(node, action):
		route(node, next_action)


__all__ = ["emit", "route"]
