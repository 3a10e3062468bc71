"""Reactions: how a node's new app state turns into a message for another
node.

A reaction is attached at instantiation. Whenever the node commits a new app
state, ``transform(new_state, *args)`` builds a message that is sent to the
target. The target is either a concrete node or :data:`PARENT`, which is
looked up through the firing node's parent link at the moment it fires.
"""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, override

from cascade.errors import UnresolvedReactionTarget
from cascade.helpers import call_user

if TYPE_CHECKING:
	from cascade.effects import Effect
	from cascade.node import Node

logger = logging.getLogger(__name__)


class ParentTarget:
	__slots__ = ()  # pyright: ignore[reportUnannotatedClassAttribute]
	_instance: "ParentTarget | None" = None

	def __new__(cls) -> "ParentTarget":
		if cls._instance is None:
			cls._instance = super().__new__(cls)
		return cls._instance

	@override
	def __repr__(self) -> str:
		return "PARENT"


PARENT = ParentTarget()


@dataclass(frozen=True, slots=True)
class Reaction:
	target: "Node | ParentTarget"
	transform: Callable[..., Any]
	args: tuple[Any, ...] = ()

	def make_message(self, value: Any) -> Any:
		return call_user(
			"reaction", "Reaction transform", self.transform, value, *self.args
		)


NO_REACTION: None = None


def reaction(
	target: "Node | ParentTarget", transform: Callable[..., Any], *args: Any
) -> Reaction:
	"""Send ``transform(new_app_state, *args)`` to ``target`` on every app-state
	change."""
	if target is None:  # pyright: ignore[reportUnnecessaryComparison]
		raise ValueError("reaction() needs a target node or PARENT")
	if transform is None:  # pyright: ignore[reportUnnecessaryComparison]
		raise ValueError("reaction() needs a transform")
	return Reaction(target, transform, tuple(args))


def _identity(value: Any) -> Any:
	return value


def pass_through_reaction(target: "Node | ParentTarget") -> Reaction:
	"""Send the new app state itself as the message."""
	return reaction(target, _identity)


@dataclass(frozen=True, slots=True)
class EmbedAppState:
	"""Reserved message: fold a child's new app state into the receiver's.

	``embed(receiver_state, child_state)`` returns the receiver's new state.
	It never reaches a user message handler.
	"""

	app_state: Any
	embed: Callable[[Any, Any], Any]


def embed_reaction(embed: Callable[[Any, Any], Any]) -> Reaction:
	return Reaction(PARENT, EmbedAppState, (embed,))


@dataclass(frozen=True, slots=True)
class KeyEmbedder:
	"""Embed a child's state under ``key`` of a mapping or dataclass parent
	state."""

	key: Any

	def __call__(self, outer: Any, inner: Any) -> Any:
		if dataclasses.is_dataclass(outer) and not isinstance(outer, type):
			return dataclasses.replace(outer, **{self.key: inner})
		if isinstance(outer, Mapping):
			return {**outer, self.key: inner}
		raise TypeError(
			f"KeyEmbedder({self.key!r}) cannot embed into {type(outer).__name__}"
		)


def resolve_target(node: "Node", reaction: Reaction) -> "Node":
	match reaction.target:
		case ParentTarget():
			parent = node.parent
			if parent is None:
				raise UnresolvedReactionTarget(
					f"{node!r} fired a reaction to its parent but has no parent"
				)
			return parent
		case target:
			return target


def fire(node: "Node", reaction: Reaction | None, value: Any) -> "Effect | None":
	"""Deliver ``value`` through ``reaction``. Returns the target's Effect."""
	# Local import to avoid the cycle cascade.dispatch -> cascade.reactions.
	from cascade.dispatch import send

	if reaction is None:
		return None
	target = resolve_target(node, reaction)
	message = reaction.make_message(value)
	logger.debug("Reaction of %r -> %r: %r", node, target, message)
	return send(target, message)


__all__ = [
	"NO_REACTION",
	"PARENT",
	"EmbedAppState",
	"KeyEmbedder",
	"ParentTarget",
	"Reaction",
	"embed_reaction",
	"fire",
	"pass_through_reaction",
	"reaction",
	"resolve_target",
]
