"""The message dispatcher.

``send(node, message)`` runs the node's message handler, resolves the result,
and applies it in a fixed order: local state, then app state (recomputing
locals and firing the owner's reaction, which may re-enter ``send`` on
another node), then every emitted action, each routed to completion before
the next one starts. Everything happens synchronously on the caller's stack.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from cascade.actions import emit, route
from cascade.context import DispatchContext
from cascade.effects import KEEP, Effect, Effects, resolve
from cascade.errors import MissingMessageHandler, NodeUnmounted
from cascade.helpers import call_user
from cascade.reactions import EmbedAppState, fire

if TYPE_CHECKING:
	from cascade.node import Node

logger = logging.getLogger(__name__)


def send(node: "Node", message: Any) -> Effect:
	"""Send ``message`` to ``node`` and return the resolved Effect."""
	if not node.mounted:
		raise NodeUnmounted(f"Cannot send {message!r} to unmounted {node!r}")
	with DispatchContext.chain(node.runtime) as ctx, ctx.descend(node):
		logger.debug("send %r <- %r", node, message)
		effect = handle_message(node, message)
		handle_returned(node, effect)
		return effect


def handle_message(node: "Node", message: Any) -> Effect:
	"""Resolve what ``message`` does to ``node`` without applying it."""
	match message:
		case EmbedAppState(app_state=child_state, embed=embed):
			embedded = call_user(
				"reaction",
				f"Embedding into {node.component.name}",
				embed,
				node.app_state,
				child_state,
			)
			return Effect(app_state=embedded)
		case _:
			handler = node.component.handle_message
			if handler is None:
				raise MissingMessageHandler(
					f"{node.component.name} has no message handler for {message!r}"
				)
			result = call_user(
				"handler",
				f"Message handler of {node.component.name}",
				handler,
				message,
				node.app_state,
				node.local_state,
				node.locals,
				node.args,
			)
			return resolve(node, result)


def commit_app_state(node: "Node", app_state: Any) -> None:
	"""Commit a new app state on behalf of ``node``.

	A view forwards the change to the ancestor owning the state it reads.
	After the commit the owner's reaction fires.
	"""
	owner = node.state_owner()
	with DispatchContext.chain(owner.runtime) as ctx:
		owner.commit_app_state(ctx, app_state)
		logger.debug("commit %r app_state=%r", owner, app_state)
		if owner.reaction is not None:
			fire(owner, owner.reaction, app_state)


def handle_returned(node: "Node", effect: Effect) -> None:
	"""Apply an already resolved Effect to ``node``."""
	with DispatchContext.chain(node.runtime) as ctx:
		if effect.local_state is not KEEP:
			ctx.commit_local_state(node, effect.local_state)
			logger.debug("commit %r local_state=%r", node, effect.local_state)
		if effect.app_state is not KEEP:
			commit_app_state(node, effect.app_state)
		for action in effect.actions:
			route(node, action)


def handle_effects(node: "Node", result: Effects | None) -> Effect:
	"""Resolve a handler-shaped result for ``node`` and apply it."""
	with DispatchContext.chain(node.runtime):
		effect = resolve(node, result)
		handle_returned(node, effect)
		return effect


def dispatch_action(node: "Node", action: Any) -> None:
	"""Emit ``action`` from ``node`` outside of a message handler.

	The action goes through the node's own reducer first, then up the tree.
	"""
	if not node.mounted:
		raise NodeUnmounted(f"Cannot dispatch {action!r} from unmounted {node!r}")
	with DispatchContext.chain(node.runtime):
		emit(node, action)


__all__ = [
	"commit_app_state",
	"dispatch_action",
	"handle_effects",
	"handle_message",
	"handle_returned",
	"send",
]
