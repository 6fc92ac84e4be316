"""Tree widget rendering Object Explorer sessions and expansion results."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from rich.text import Text
from textual.widgets import Tree
from textual.widgets.tree import TreeNode as UiNode

from clusterui.explorer import ExpandNodeInfo, ExpandResult, ObjectExplorerProvider, SessionResult, SessionState
from clusterui.tree import NodeInfo


@dataclass(frozen=True, slots=True)
class ExplorerItem:
    """Payload stored on each rendered tree node."""

    session_id: str
    info: NodeInfo


class ExplorerTree(Tree[ExplorerItem]):
    """Lazily expanded cluster tree; every expansion goes through the provider."""

    DEFAULT_CSS = """
    ExplorerTree {
        height: 1fr;
        padding: 0 1;
    }
    """

    def __init__(self, provider: ObjectExplorerProvider) -> None:
        super().__init__("Clusters", id="explorer-tree")
        self.show_root = False
        self._provider = provider
        self._ui_nodes: dict[tuple[str, str], UiNode[ExplorerItem]] = {}
        self._unsubscribes: list[Callable[[], None]] = []

    def on_mount(self) -> None:
        self._unsubscribes = [
            self._provider.subscribe_session_created(self._handle_session_created),
            self._provider.subscribe_expand_completed(self._handle_expand_completed),
        ]
        # Sessions that became active before the tree was mounted.
        for session in self._provider.sessions:
            if session.state is SessionState.ACTIVE and session.root is not None:
                self._handle_session_created(
                    SessionResult(session_id=session.session_id, success=True, root_node=session.root.get_node_info())
                )

    def on_unmount(self) -> None:
        for unsubscribe in self._unsubscribes:
            unsubscribe()
        self._unsubscribes = []

    def on_tree_node_expanded(self, event: Tree.NodeExpanded[ExplorerItem]) -> None:
        item = event.node.data
        if item is None or item.info.is_leaf:
            return
        self._provider.expand_node(ExpandNodeInfo(session_id=item.session_id, node_path=item.info.node_path))

    def refresh_selected(self) -> bool:
        """Re-list the highlighted node; returns whether a request was accepted."""

        node = self.cursor_node
        if node is None or node.data is None or node.data.info.is_leaf:
            return False
        item = node.data
        ticket = self._provider.refresh_node(ExpandNodeInfo(session_id=item.session_id, node_path=item.info.node_path))
        return ticket.accepted

    def ui_node(self, session_id: str, node_path: str) -> UiNode[ExplorerItem] | None:
        return self._ui_nodes.get((session_id, node_path))

    def _handle_session_created(self, result: SessionResult) -> None:
        if not result.success or result.root_node is None:
            self.root.add_leaf(Text(f"{result.session_id}: {result.error_message}"))
            return
        if (result.session_id, result.root_node.node_path) in self._ui_nodes:
            return
        item = ExplorerItem(session_id=result.session_id, info=result.root_node)
        node = self.root.add(Text(result.root_node.label), data=item, expand=False)
        self._ui_nodes[(result.session_id, result.root_node.node_path)] = node

    def _handle_expand_completed(self, result: ExpandResult) -> None:
        node = self._ui_nodes.get((result.session_id, result.node_path))
        if node is None:
            return
        self._forget_children(node)
        node.remove_children()
        for info in result.nodes:
            item = ExplorerItem(session_id=result.session_id, info=info)
            if info.is_leaf:
                child = node.add_leaf(Text(info.label), data=item)
            else:
                child = node.add(Text(info.label), data=item)
            self._ui_nodes[(result.session_id, info.node_path)] = child
        if result.error_message and not result.nodes:
            node.add_leaf(Text(f"Error: {result.error_message}"))

    def _forget_children(self, node: UiNode[ExplorerItem]) -> None:
        for child in node.children:
            self._forget_children(child)
            if child.data is not None:
                self._ui_nodes.pop((child.data.session_id, child.data.info.node_path), None)


__all__ = ["ExplorerItem", "ExplorerTree"]
