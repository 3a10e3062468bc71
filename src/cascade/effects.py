"""Handler results and their resolution into effects.

Message handlers, lifecycle hooks and action reducers describe what should
happen by returning ``ret(...)``, an alternating sequence of tags and values:

```python
def handle(msg, app_state, local_state, locals, args):
	if isinstance(msg, Increment):
		return ret("app-state", app_state + 1, "action", Incremented())
```

The resolver turns that into an :class:`Effect`. ``app-state`` and
``local-state`` are last-write-wins, ``action`` entries accumulate in order.
A slot that was never written holds :data:`KEEP`, which is distinct from
every state value including ``None``.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, Any, override

from cascade.errors import InvalidEffectTag, MalformedHandlerResult
from cascade.helpers import call_user

if TYPE_CHECKING:
	from cascade.node import Node


class KeepState:
	"""Type of the :data:`KEEP` marker. There is exactly one instance."""

	__slots__ = ()  # pyright: ignore[reportUnannotatedClassAttribute]
	_instance: "KeepState | None" = None

	def __new__(cls) -> "KeepState":
		if cls._instance is None:
			cls._instance = super().__new__(cls)
		return cls._instance

	@override
	def __repr__(self) -> str:
		return "KEEP"


KEEP = KeepState()


class Tag(StrEnum):
	APP_STATE = "app-state"
	LOCAL_STATE = "local-state"
	ACTION = "action"


_TAGS: dict[str, Tag] = {
	"app-state": Tag.APP_STATE,
	"app_state": Tag.APP_STATE,
	"local-state": Tag.LOCAL_STATE,
	"local_state": Tag.LOCAL_STATE,
	"action": Tag.ACTION,
}


def parse_tag(tag: Any) -> Tag:
	if isinstance(tag, Tag):
		return tag
	if isinstance(tag, str) and tag in _TAGS:
		return _TAGS[tag]
	raise InvalidEffectTag(tag)


@dataclass(frozen=True, slots=True)
class Effects:
	"""The unresolved value returned from a handler via :func:`ret`."""

	options: tuple[Any, ...]

	def pairs(self) -> list[tuple[Tag, Any]]:
		if len(self.options) % 2 != 0:
			raise MalformedHandlerResult(
				f"ret() expects tag/value pairs, got a dangling {self.options[-1]!r}"
			)
		return [
			(parse_tag(self.options[i]), self.options[i + 1])
			for i in range(0, len(self.options), 2)
		]


def ret(*options: Any) -> Effects:
	"""Build a handler result from alternating tags and values."""
	return Effects(options)


@dataclass(frozen=True, slots=True)
class Effect:
	"""A resolved handler result."""

	app_state: Any = KEEP
	local_state: Any = KEEP
	actions: tuple[Any, ...] = ()

	@property
	def has_app_state(self) -> bool:
		return self.app_state is not KEEP

	@property
	def has_local_state(self) -> bool:
		return self.local_state is not KEEP

	@classmethod
	def empty(cls) -> "Effect":
		return _EMPTY


_EMPTY = Effect()

ActionReducer = Callable[[Any, Any], "Effects | None"]


def pass_through(app_state: Any, action: Any) -> Effects:
	"""The default action reducer: hand the action on, leave state alone."""
	return ret(Tag.ACTION, action)


def _pairs(result: Any) -> list[tuple[Tag, Any]]:
	if not isinstance(result, Effects):
		raise MalformedHandlerResult(
			f"Handlers must return ret(...) or None, got {type(result).__name__}"
		)
	return result.pairs()


def resolve_effects(result: Effects | None) -> Effect:
	"""Resolve a handler result without any action reduction."""
	if result is None:
		return _EMPTY
	app_state: Any = KEEP
	local_state: Any = KEEP
	actions: list[Any] = []
	for tag, value in _pairs(result):
		match tag:
			case Tag.APP_STATE:
				app_state = value
			case Tag.LOCAL_STATE:
				local_state = value
			case Tag.ACTION:
				actions.append(value)
	return Effect(app_state, local_state, tuple(actions))


def reduce_action(
	reducer: ActionReducer | None, app_state: Any, action: Any
) -> tuple[Any, tuple[Any, ...]]:
	"""Apply one reducer to one action.

	Returns the app-state change (or KEEP) and the actions to hand on. A
	reducer returning ``None`` passes the action through unchanged; local-state
	options in a reducer result are ignored.
	"""
	if reducer is None:
		return KEEP, (action,)
	result = call_user("reducer", "Action reducer", reducer, app_state, action)
	if result is None:
		return KEEP, (action,)
	effect = resolve_effects(result)
	return effect.app_state, effect.actions


def resolve(node: "Node", result: Effects | None) -> Effect:
	"""Resolve a handler result for ``node``.

	Every emitted action first goes through the node's own reducer, which sees
	the in-flight app state: the pending ``app-state`` option if one came
	earlier, the node's current app state otherwise. The reducer may turn the
	action into an app-state change of its own, or replace it with other
	actions.
	"""
	if result is None:
		return _EMPTY
	app_state: Any = KEEP
	local_state: Any = KEEP
	actions: list[Any] = []
	for tag, value in _pairs(result):
		match tag:
			case Tag.APP_STATE:
				app_state = value
			case Tag.LOCAL_STATE:
				local_state = value
			case Tag.ACTION:
				current = node.app_state if app_state is KEEP else app_state
				change, reduced = reduce_action(node.reducer, current, value)
				if change is not KEEP:
					app_state = change
				actions.extend(reduced)
	return Effect(app_state, local_state, tuple(actions))


__all__ = [
	"KEEP",
	"ActionReducer",
	"Effect",
	"Effects",
	"KeepState",
	"Tag",
	"parse_tag",
	"pass_through",
	"reduce_action",
	"resolve",
	"resolve_effects",
	"ret",
]
