from dataclasses import dataclass
from typing import Any

import pytest
from cascade.component import Component
from cascade.effects import (
	KEEP,
	Effect,
	KeepState,
	Tag,
	parse_tag,
	reduce_action,
	resolve,
	resolve_effects,
	ret,
)
from cascade.errors import DerivationFailure, InvalidEffectTag, MalformedHandlerResult
from cascade.node import Node
from cascade.runtime import Runtime


@dataclass(frozen=True)
class Act:
	name: str


def test_keep_is_a_singleton_distinct_from_none():
	assert KeepState() is KEEP
	assert KEEP is not None
	assert repr(KEEP) == "KEEP"
	effect = resolve_effects(ret("app-state", None))
	assert effect.app_state is None
	assert effect.has_app_state
	assert not effect.has_local_state


def test_none_resolves_to_empty_effect():
	effect = resolve_effects(None)
	assert effect == Effect()
	assert effect.app_state is KEEP
	assert effect.local_state is KEEP
	assert effect.actions == ()
	assert Effect.empty() == effect


def test_app_state_last_write_wins():
	effect = resolve_effects(ret("app-state", "A", "local-state", 1, "app-state", "B"))
	assert effect.app_state == "B"
	assert effect.local_state == 1


def test_actions_accumulate_in_order_with_duplicates():
	x, y = Act("x"), Act("y")
	effect = resolve_effects(ret("action", x, "action", y, "action", x))
	assert effect.actions == (x, y, x)


def test_tags_accept_enum_and_underscored_names():
	effect = resolve_effects(ret(Tag.APP_STATE, 1, "local_state", 2, "app_state", 3))
	assert effect.app_state == 3
	assert effect.local_state == 2
	assert parse_tag("action") is Tag.ACTION


def test_unknown_tag_is_rejected():
	with pytest.raises(InvalidEffectTag) as info:
		resolve_effects(ret("app-state", 1, "global-state", 2))
	assert info.value.tag == "global-state"


def test_dangling_tag_is_malformed():
	with pytest.raises(MalformedHandlerResult):
		resolve_effects(ret("app-state"))


def test_non_ret_result_is_malformed():
	with pytest.raises(MalformedHandlerResult):
		resolve_effects(("app-state", 1))  # pyright: ignore[reportArgumentType]


def test_reduce_action_pass_through_absorb_and_replace():
	act = Act("a")
	assert reduce_action(None, 0, act) == (KEEP, (act,))
	assert reduce_action(lambda s, a: None, 0, act) == (KEEP, (act,))
	assert reduce_action(lambda s, a: ret("app-state", s + 1), 0, act) == (1, ())
	replaced = reduce_action(lambda s, a: ret("action", Act("b")), 0, act)
	assert replaced == (KEEP, (Act("b"),))


def test_reduce_action_ignores_local_state():
	change, actions = reduce_action(lambda s, a: ret("local-state", 5), 0, Act("a"))
	assert change is KEEP
	assert actions == ()


def test_reduce_action_wraps_reducer_failures():
	def reducer(app_state: Any, action: Any):
		raise KeyError(action)

	with pytest.raises(DerivationFailure) as info:
		reduce_action(reducer, 0, Act("a"))
	assert info.value.stage == "reducer"
	assert isinstance(info.value.__cause__, KeyError)


def test_resolve_self_reduces_actions_with_in_flight_app_state():
	seen: list[Any] = []

	def reducer(app_state: Any, action: Any):
		seen.append(app_state)
		if action == Act("count"):
			return ret("app-state", app_state + 10)
		return ret("action", Act("renamed"))

	node = Node.toplevel(
		Component("Self"), 1, reduce_action=reducer, runtime=Runtime(name="t")
	)
	effect = resolve(
		node,
		ret("app-state", 5, "action", Act("count"), "action", Act("other")),
	)
	assert seen == [5, 15]
	assert effect.app_state == 15
	assert effect.actions == (Act("renamed"),)


def test_resolve_uses_current_app_state_when_no_pending_change():
	seen: list[Any] = []

	def reducer(app_state: Any, action: Any):
		seen.append(app_state)
		return None

	node = Node.toplevel(
		Component("Self"), "current", reduce_action=reducer, runtime=Runtime(name="t")
	)
	effect = resolve(node, ret("action", Act("a")))
	assert seen == ["current"]
	assert effect.app_state is KEEP
	assert effect.actions == (Act("a"),)


def test_later_app_state_overrides_reducer_change():
	node = Node.toplevel(
		Component("Self"),
		0,
		reduce_action=lambda s, a: ret("app-state", 99),
		runtime=Runtime(name="t"),
	)
	effect = resolve(node, ret("action", Act("a"), "app-state", 1))
	assert effect.app_state == 1
	assert effect.actions == ()
