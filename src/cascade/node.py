"""Nodes: instantiated components.

A node either owns its application state (a root, or an embedded child wired
to its parent through a reaction) or is a view that reads the app state of
its nearest owning ancestor. Local state always belongs to the node itself.

Children are owned by their parent; the link back to the parent is a weak
reference and is only used for action routing and ``PARENT`` reactions.
"""

from __future__ import annotations

import logging
import weakref
from collections.abc import Callable, Iterator
from enum import Enum
from typing import Any, override

from cascade.component import Component
from cascade.context import DispatchContext
from cascade.dispatch import dispatch_action, handle_effects, send
from cascade.effects import ActionReducer, Effect, pass_through
from cascade.errors import NodeUnmounted
from cascade.helpers import MISSING, call_user
from cascade.locals import Locals, compute_locals
from cascade.reactions import Reaction, embed_reaction
from cascade.runtime import Runtime, default_runtime
from cascade.update import Proposed, should_update

logger = logging.getLogger(__name__)


class NodeKind(Enum):
	ROOT = "root"
	EMBEDDED = "embedded"
	VIEW = "view"


def _pick_reaction(
	reaction: Reaction | None, embed_app_state: Callable[[Any, Any], Any] | None
) -> Reaction | None:
	if reaction is not None and embed_app_state is not None:
		raise ValueError("Pass either reaction or embed_app_state, not both")
	if embed_app_state is not None:
		return embed_reaction(embed_app_state)
	return reaction


class Node:
	component: Component
	kind: NodeKind
	args: tuple[Any, ...]
	reaction: Reaction | None
	reducer: ActionReducer
	runtime: Runtime
	children: list["Node"]
	mounted: bool
	_parent: "weakref.ReferenceType[Node] | None"
	_app_state: Any
	_local_state: Any
	_locals: Locals

	def __init__(
		self,
		component: Component,
		*,
		kind: NodeKind,
		app_state: Any = None,
		args: tuple[Any, ...] = (),
		reaction: Reaction | None = None,
		reducer: ActionReducer | None = None,
		parent: "Node | None" = None,
		runtime: Runtime | None = None,
	) -> None:
		if kind is NodeKind.ROOT and parent is not None:
			raise ValueError("A root node cannot have a parent")
		if kind is not NodeKind.ROOT and parent is None:
			raise ValueError(f"A {kind.value} node needs a parent")
		if kind is NodeKind.VIEW and reaction is not None:
			raise ValueError("Only nodes owning their app state can carry a reaction")
		self.component = component
		self.kind = kind
		self.args = tuple(args)
		self.reaction = reaction
		self.reducer = reducer if reducer is not None else pass_through
		if runtime is None:
			runtime = parent.runtime if parent is not None else default_runtime()
		self.runtime = runtime
		self.children = []
		self.mounted = False
		self._parent = weakref.ref(parent) if parent is not None else None
		self._app_state = app_state if kind is not NodeKind.VIEW else None
		self._local_state = None
		self._locals = compute_locals(component, self.app_state, self.args)

	# ------------------------------------------------------------------
	# Instantiation
	# ------------------------------------------------------------------

	@classmethod
	def toplevel(
		cls,
		component: Component,
		app_state: Any = None,
		*args: Any,
		reaction: Reaction | None = None,
		embed_app_state: Callable[[Any, Any], Any] | None = None,
		reduce_action: ActionReducer | None = None,
		runtime: Runtime | None = None,
	) -> "Node":
		"""Create and mount a root node owning ``app_state``."""
		node = cls(
			component,
			kind=NodeKind.ROOT,
			app_state=app_state,
			args=args,
			reaction=_pick_reaction(reaction, embed_app_state),
			reducer=reduce_action,
			runtime=runtime,
		)
		return node.mount()

	def instantiate(
		self,
		component: Component,
		*args: Any,
		reduce_action: ActionReducer | None = None,
	) -> "Node":
		"""Create and mount a child that views this node's app state."""
		child = Node(
			component,
			kind=NodeKind.VIEW,
			args=args,
			reducer=reduce_action,
			parent=self,
		)
		return child.mount()

	def embed(
		self,
		component: Component,
		app_state: Any,
		*args: Any,
		reaction: Reaction | None = None,
		embed_app_state: Callable[[Any, Any], Any] | None = None,
		reduce_action: ActionReducer | None = None,
	) -> "Node":
		"""Create and mount a child owning ``app_state``.

		With ``embed_app_state`` the child's state changes are folded back
		into this node's app state; with ``reaction`` they become arbitrary
		messages; with neither they stay local to the child.
		"""
		child = Node(
			component,
			kind=NodeKind.EMBEDDED,
			app_state=app_state,
			args=args,
			reaction=_pick_reaction(reaction, embed_app_state),
			reducer=reduce_action,
			parent=self,
		)
		return child.mount()

	# ------------------------------------------------------------------
	# State access
	# ------------------------------------------------------------------

	@property
	def parent(self) -> "Node | None":
		if self._parent is None:
			return None
		return self._parent()

	@property
	def owns_app_state(self) -> bool:
		return self.kind is not NodeKind.VIEW

	def state_owner(self) -> "Node":
		node: Node | None = self
		while node is not None:
			if node.owns_app_state:
				return node
			node = node.parent
		raise NodeUnmounted(f"{self!r} lost the ancestor owning its app state")

	@property
	def app_state(self) -> Any:
		owner = self.state_owner()
		ctx = DispatchContext.current()
		if ctx is not None:
			value = ctx.read_app_state(owner)
			if value is not MISSING:
				return value
		return owner._app_state

	@property
	def local_state(self) -> Any:
		ctx = DispatchContext.current()
		if ctx is not None:
			value = ctx.read_local_state(self)
			if value is not MISSING:
				return value
		return self._local_state

	@property
	def locals(self) -> Locals:
		ctx = DispatchContext.current()
		if ctx is not None:
			value = ctx.read_locals(self)
			if value is not MISSING:
				return value
		return self._locals

	def views(self) -> Iterator["Node"]:
		"""Descendants reading this node's app state."""
		for child in self.children:
			if child.kind is NodeKind.VIEW:
				yield child
				yield from child.views()

	def commit_app_state(self, ctx: DispatchContext, app_state: Any) -> None:
		"""Record a new app state and recompute the locals depending on it.

		Only valid on the owning node. Reactions are the dispatcher's job.
		"""
		if not self.owns_app_state:
			raise ValueError(f"{self!r} does not own its app state")
		ctx.commit_app_state(self, app_state)
		ctx.commit_locals(self, compute_locals(self.component, app_state, self.args))
		for view in self.views():
			ctx.commit_locals(view, compute_locals(view.component, app_state, view.args))

	def _store(self, *, app_state: Any, local_state: Any, locals: Any) -> None:
		if app_state is not MISSING:
			self._app_state = app_state
		if local_state is not MISSING:
			self._local_state = local_state
		if locals is not MISSING:
			self._locals = locals

	# ------------------------------------------------------------------
	# Messages and actions
	# ------------------------------------------------------------------

	def send(self, message: Any) -> Effect:
		return send(self, message)

	def dispatch_action(self, action: Any) -> None:
		dispatch_action(self, action)

	# ------------------------------------------------------------------
	# Lifecycle
	# ------------------------------------------------------------------

	def _run_hook(self, name: str, hook: Callable[..., Any], *extra: Any) -> Any:
		return call_user(
			"lifecycle",
			f"{name} of {self.component.name}",
			hook,
			self.app_state,
			self.local_state,
			self.locals,
			self.args,
			*extra,
		)

	def mount(self) -> "Node":
		if self.mounted:
			return self
		parent = self.parent
		if parent is not None and not parent.mounted:
			raise NodeUnmounted(f"Cannot mount {self!r} under unmounted {parent!r}")
		component = self.component
		if component.initial_state is not None:
			self._local_state = call_user(
				"lifecycle",
				f"initial_state of {component.name}",
				component.initial_state,
				self.app_state,
				self.locals,
				self.args,
			)
		self.mounted = True
		if parent is not None:
			parent.children.append(self)
		logger.debug("Mounted %r", self)
		with DispatchContext.chain(self.runtime):
			if component.will_mount is not None:
				handle_effects(self, self._run_hook("will_mount", component.will_mount))
			if component.did_mount is not None:
				handle_effects(self, self._run_hook("did_mount", component.did_mount))
		return self

	def reinstantiate(
		self,
		proposed: Proposed,
		*,
		reduce_action: ActionReducer | None = None,
	) -> bool:
		"""Apply a new instantiation of the same logical child.

		Owning nodes take over the proposed app state (without firing their
		reaction), args and reaction are replaced and locals recomputed. The
		proposed local state is only compared: a node's local state is never
		written from outside. Returns whether the subtree must re-render.
		"""
		if not self.mounted:
			raise NodeUnmounted(f"Cannot reinstantiate unmounted {self!r}")
		component = self.component
		next_args = tuple(proposed.args)
		with DispatchContext.chain(self.runtime) as ctx:
			prev_app_state = self.app_state
			prev_local_state = self.local_state
			prev_args = self.args
			args_changed = not self.runtime.equal(self.args, next_args)
			if args_changed and component.will_receive_args is not None:
				handle_effects(
					self,
					self._run_hook(
						"will_receive_args", component.will_receive_args, next_args
					),
				)
			changed = should_update(self, proposed)
			current_app_state = self.app_state
			if changed and component.will_update is not None:
				self._run_hook(
					"will_update",
					component.will_update,
					proposed.app_state,
					proposed.local_state,
					next_args,
				)
			self.args = next_args
			if reduce_action is not None:
				self.reducer = reduce_action
			if self.owns_app_state:
				self.reaction = proposed.reaction
				if proposed.app_state is not current_app_state:
					self.commit_app_state(ctx, proposed.app_state)
				elif args_changed:
					ctx.commit_locals(
						self, compute_locals(component, current_app_state, next_args)
					)
			elif args_changed:
				ctx.commit_locals(
					self, compute_locals(component, current_app_state, next_args)
				)
			if changed and component.did_update is not None:
				self._run_hook(
					"did_update",
					component.did_update,
					prev_app_state,
					prev_local_state,
					prev_args,
				)
		return changed

	def unmount(self) -> None:
		if not self.mounted:
			return
		for child in reversed(list(self.children)):
			child.unmount()
		if self.component.will_unmount is not None:
			self._run_hook("will_unmount", self.component.will_unmount)
		self.mounted = False
		parent = self.parent
		if parent is not None and self in parent.children:
			parent.children.remove(self)
		logger.debug("Unmounted %r", self)

	def render(self) -> Any:
		render = self.component.render
		if render is None:
			return None
		return render(
			self.app_state, self.local_state, self.locals, self.args, Instantiate(self)
		)

	@override
	def __repr__(self) -> str:
		return f"<Node {self.component.name} {self.kind.value}>"


class Instantiate:
	"""The child factory handed to render functions."""

	__slots__: tuple[str, ...] = ("_parent",)
	_parent: Node

	def __init__(self, parent: Node) -> None:
		self._parent = parent

	def __call__(
		self,
		component: Component,
		*args: Any,
		reduce_action: ActionReducer | None = None,
	) -> Node:
		return self._parent.instantiate(component, *args, reduce_action=reduce_action)

	def embed(
		self,
		component: Component,
		app_state: Any,
		*args: Any,
		reaction: Reaction | None = None,
		embed_app_state: Callable[[Any, Any], Any] | None = None,
		reduce_action: ActionReducer | None = None,
	) -> Node:
		return self._parent.embed(
			component,
			app_state,
			*args,
			reaction=reaction,
			embed_app_state=embed_app_state,
			reduce_action=reduce_action,
		)


__all__ = ["Instantiate", "Node", "NodeKind"]
