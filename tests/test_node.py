from dataclasses import dataclass
from typing import Any

import pytest
from cascade.component import Component, component
from cascade.dispatch import send
from cascade.effects import ret
from cascade.errors import DerivationFailure, NodeUnmounted
from cascade.node import Instantiate, Node, NodeKind
from cascade.reactions import PARENT, pass_through_reaction, reaction
from cascade.runtime import Runtime
from cascade.update import Proposed


@dataclass(frozen=True)
class Set:
	value: Any


@dataclass(frozen=True)
class Note:
	text: str


def _setter(msg: Any, *rest: Any):
	match msg:
		case Set(value=value):
			return ret("app-state", value)
		case Note(text=text):
			return ret("local-state", text)


def test_toplevel_creates_a_mounted_root(runtime: Runtime):
	node = Node.toplevel(Component("Root"), {"a": 1}, "x", runtime=runtime)
	assert node.kind is NodeKind.ROOT
	assert node.mounted
	assert node.parent is None
	assert node.app_state == {"a": 1}
	assert node.local_state is None
	assert node.args == ("x",)
	assert repr(node) == "<Node Root root>"


def test_children_inherit_the_runtime(runtime: Runtime):
	root = Node.toplevel(Component("Root"), None, runtime=runtime)
	assert root.instantiate(Component("View")).runtime is runtime
	assert root.embed(Component("Embedded"), 1).runtime is runtime


def test_view_cannot_carry_a_reaction(runtime: Runtime):
	root = Node.toplevel(Component("Root"), None, runtime=runtime)
	with pytest.raises(ValueError):
		Node(
			Component("View"),
			kind=NodeKind.VIEW,
			parent=root,
			reaction=reaction(PARENT, str),
		)


def test_non_root_needs_a_parent():
	with pytest.raises(ValueError):
		Node(Component("Orphan"), kind=NodeKind.EMBEDDED)


def test_initial_state_sees_app_state_locals_and_args(runtime: Runtime):
	Greeter = Component(
		"Greeter",
		locals=lambda app_state, args: app_state.upper(),
		initial_state=lambda app_state, locals, args: f"{locals[0]} {args[0]}",
	)
	node = Node.toplevel(Greeter, "hello", "world", runtime=runtime)
	assert node.locals == ("HELLO",)
	assert node.local_state == "HELLO world"


def test_lifecycle_order(runtime: Runtime):
	events: list[str] = []

	def hook(name: str):
		def run(*args: Any):
			events.append(name)

		return run

	def initial(*args: Any):
		events.append("initial_state")
		return "local"

	Tracked = Component(
		"Tracked",
		initial_state=initial,
		will_mount=hook("will_mount"),
		did_mount=hook("did_mount"),
		will_unmount=hook("will_unmount"),
	)
	node = Node.toplevel(Tracked, 0, runtime=runtime)
	node.unmount()
	assert events == ["initial_state", "will_mount", "did_mount", "will_unmount"]
	assert not node.mounted


def test_mount_hooks_results_are_applied(runtime: Runtime):
	seen: list[Any] = []
	Loader = Component(
		"Loader",
		did_mount=lambda app_state, *_: ret("app-state", "loaded", "action", "ready"),
	)
	root = Node.toplevel(
		Component("Root"),
		{},
		reduce_action=lambda app_state, action: seen.append(action),
		runtime=runtime,
	)
	child = root.embed(Loader, "empty")
	assert child.app_state == "loaded"
	assert seen == ["ready"]


def test_hook_failure_is_a_lifecycle_derivation_failure(runtime: Runtime):
	def explode(*args: Any):
		raise RuntimeError("mount")

	with pytest.raises(DerivationFailure) as info:
		Node.toplevel(Component("Bad", did_mount=explode), 0, runtime=runtime)
	assert info.value.stage == "lifecycle"


def test_locals_follow_app_state_not_local_state(runtime: Runtime):
	calls: list[Any] = []

	def derive(app_state: Any, args: Any):
		calls.append(app_state)
		return app_state * 10

	Derived = Component("Derived", handle_message=_setter, locals=derive)
	node = Node.toplevel(Derived, 1, runtime=runtime)
	assert node.locals == (10,)

	send(node, Note("only local"))
	assert calls == [1]

	send(node, Set(2))
	assert node.locals == (20,)
	assert calls == [1, 2]


def test_view_locals_follow_the_owner(runtime: Runtime):
	Derived = Component("Derived", locals=lambda app_state, args: app_state + len(args))
	root = Node.toplevel(Component("Root", handle_message=_setter), 1, runtime=runtime)
	view = root.instantiate(Derived, "a", "b")
	assert view.locals == (3,)
	send(root, Set(10))
	assert view.locals == (12,)


def test_locals_failure_is_reported_with_its_stage(runtime: Runtime):
	def derive(app_state: Any, args: Any):
		return 1 // app_state

	node = Node.toplevel(
		Component("Divider", handle_message=_setter, locals=derive), 1, runtime=runtime
	)
	with pytest.raises(DerivationFailure) as info:
		send(node, Set(0))
	assert info.value.stage == "locals"


def test_view_has_no_app_state_of_its_own(runtime: Runtime):
	root = Node.toplevel(Component("Root"), "shared", runtime=runtime)
	view = root.instantiate(Component("View"))
	assert view.kind is NodeKind.VIEW
	assert not view.owns_app_state
	assert view.state_owner() is root
	assert view.app_state == "shared"
	assert list(root.views()) == [view]


def test_unmount_children_first_in_reverse(runtime: Runtime):
	events: list[str] = []

	def tracked(name: str):
		return Component(name, will_unmount=lambda *_: events.append(name))

	parent = Node.toplevel(tracked("parent"), None, runtime=runtime)
	c1 = parent.instantiate(tracked("c1"))
	c1.instantiate(tracked("c1.1"))
	parent.embed(tracked("c2"), 0)

	parent.unmount()

	assert events == ["c2", "c1.1", "c1", "parent"]
	assert parent.children == []


def test_mount_under_unmounted_parent_fails(runtime: Runtime):
	root = Node.toplevel(Component("Root"), None, runtime=runtime)
	root.unmount()
	with pytest.raises(NodeUnmounted):
		root.instantiate(Component("Late"))


def test_reinstantiate_with_same_inputs_skips_hooks(runtime: Runtime):
	events: list[str] = []
	Quiet = Component(
		"Quiet",
		will_receive_args=lambda *_: events.append("will_receive_args"),
		will_update=lambda *_: events.append("will_update"),
		did_update=lambda *_: events.append("did_update"),
	)
	node = Node.toplevel(Quiet, 0, "a", runtime=runtime)
	assert not node.reinstantiate(Proposed.of(node))
	assert events == []


def test_reinstantiate_with_new_args(runtime: Runtime):
	events: list[tuple[Any, ...]] = []

	def receive(app_state: Any, local_state: Any, locals: Any, args: Any, next_args: Any):
		events.append(("will_receive_args", args, next_args))
		return ret("local-state", f"got {next_args[0]}")

	def will_update(*params: Any):
		events.append(("will_update", params[3], params[6]))

	def did_update(*params: Any):
		events.append(("did_update", params[3], params[5], params[6]))

	Labelled = Component(
		"Labelled",
		locals=lambda app_state, args: args[0].upper(),
		will_receive_args=receive,
		will_update=will_update,
		did_update=did_update,
	)
	node = Node.toplevel(Labelled, 0, "a", runtime=runtime)

	assert node.reinstantiate(Proposed.of(node, args=("b",)))

	assert events == [
		("will_receive_args", ("a",), ("b",)),
		("will_update", ("a",), ("b",)),
		("did_update", ("b",), None, ("a",)),
	]
	assert node.args == ("b",)
	assert node.locals == ("B",)
	assert node.local_state == "got b"


def test_reinstantiate_takes_over_app_state_without_reacting(runtime: Runtime):
	received: list[Any] = []
	observer = Node.toplevel(
		Component("Observer", handle_message=lambda msg, *_: received.append(msg)),
		None,
		runtime=runtime,
	)
	parent = Node.toplevel(Component("Parent"), None, runtime=runtime)
	child = parent.embed(
		Component("Child", locals=lambda app_state, args: app_state * 2),
		1,
		reaction=pass_through_reaction(observer),
	)

	assert child.reinstantiate(Proposed.of(child, app_state=5))

	assert child.app_state == 5
	assert child.locals == (10,)
	assert received == []


def test_reinstantiate_never_writes_local_state(runtime: Runtime):
	node = Node.toplevel(
		Component("Keeper", initial_state=lambda *_: "mine"), 0, runtime=runtime
	)
	assert node.reinstantiate(Proposed.of(node, local_state="theirs"))
	assert node.local_state == "mine"


def test_render_instantiates_children(runtime: Runtime):
	Item = Component("Item", render=lambda app_state, local_state, locals, args, _: args[0])

	def render_list(app_state: Any, local_state: Any, locals: Any, args: Any, instantiate: Instantiate):
		labels = [instantiate(Item, label).render() for label in app_state["labels"]]
		editor = instantiate.embed(Item, app_state["draft"], "editor")
		return labels, editor

	TodoList = Component("TodoList", render=render_list)
	root = Node.toplevel(TodoList, {"labels": ["a", "b"], "draft": ""}, runtime=runtime)

	labels, editor = root.render()

	assert labels == ["a", "b"]
	assert editor.kind is NodeKind.EMBEDDED
	assert editor.app_state == ""
	assert [child.kind for child in root.children] == [
		NodeKind.VIEW,
		NodeKind.VIEW,
		NodeKind.EMBEDDED,
	]


def test_render_without_render_clause(runtime: Runtime):
	assert Node.toplevel(Component("Blank"), None, runtime=runtime).render() is None


def test_component_decorator(runtime: Runtime):
	@component
	def Plain(msg: Any, *rest: Any):
		return None

	@component(name="Named", initial_state=lambda *_: "start")
	def handler(msg: Any, *rest: Any):
		return ret("local-state", msg)

	assert Plain.name == "Plain"
	assert handler.name == "Named"
	assert str(handler) == "Named"
	node = Node.toplevel(handler, None, runtime=runtime)
	assert node.local_state == "start"
	send(node, "next")
	assert node.local_state == "next"


def test_component_requires_a_name():
	with pytest.raises(ValueError):
		Component("")
