from rich.console import Console
from rich.markup import escape
from rich.tree import Tree

from cascade.node import Node, NodeKind


def _label(node: Node) -> str:
	label = f"[bold]{escape(node.component.name)}[/bold] [dim]{node.kind.value}[/dim]"
	if node.kind is not NodeKind.VIEW:
		label += f" app_state={escape(repr(node.app_state))}"
	if node.local_state is not None:
		label += f" local_state={escape(repr(node.local_state))}"
	if node.args:
		label += f" args={escape(repr(node.args))}"
	if node.reaction is not None:
		label += " [cyan]reaction[/cyan]"
	if not node.mounted:
		label += " [red]unmounted[/red]"
	return label


def tree(node: Node) -> Tree:
	"""Build a rich Tree of ``node`` and its mounted descendants."""
	root = Tree(_label(node))
	pending = [(node, root)]
	while pending:
		current, branch = pending.pop()
		for child in current.children:
			pending.append((child, branch.add(_label(child))))
	return root


def print_tree(node: Node, console: Console | None = None) -> None:
	(console or Console()).print(tree(node))


__all__ = ["print_tree", "tree"]
