"""
Graph Edit Engine - structural operations on the active document.

Every mutating operation follows the same order:
1. Validate ids against the active document (ReferenceNotFound, no snapshot)
2. Snapshot the document's graph into the history
3. Mutate
4. Resolve collisions with the newly created node locked, where applicable

Operations are reachable directly, through the typed `dispatch` entry point,
or through `handle_key` for keyboard bindings.
"""

import logging
from typing import Callable, Optional

from .collision import resolve_collisions
from .documents import DocumentHierarchy
from .errors import InvalidConnection, ReferenceNotFound
from .history import HistoryManager
from .interchange import export_graph, parse_graph
from .layout import apply_layout
from .models import (
    DEFAULT_NODE_LABEL,
    CommandKind,
    Document,
    GraphEdge,
    GraphNode,
    LayoutMode,
    NodeColor,
    NodeCommand,
    generate_node_id,
)
from .positioning import (
    child_position,
    duplicate_position,
    edge_template,
    parent_position,
    sibling_position,
)


logger = logging.getLogger(__name__)

KEY_BINDINGS: dict[str, CommandKind] = {
    "Tab": CommandKind.ADD_CHILD,
    "Enter": CommandKind.ADD_SIBLING,
    "Delete": CommandKind.DELETE,
    "Backspace": CommandKind.DELETE,
    "p": CommandKind.TOGGLE_PORTAL,
    "P": CommandKind.TOGGLE_PORTAL,
    "Ctrl+X": CommandKind.DELETE,
    "Meta+X": CommandKind.DELETE,
}

# Shortcuts that act on the document, not on a selected node
HISTORY_SHORTCUTS: dict[str, str] = {
    "Ctrl+Z": "undo",
    "Meta+Z": "undo",
    "Ctrl+Y": "redo",
    "Ctrl+Shift+Z": "redo",
    "Meta+Shift+Z": "redo",
}

_MODIFIERS = {
    "ctrl": "Ctrl",
    "control": "Ctrl",
    "meta": "Meta",
    "cmd": "Meta",
    "command": "Meta",
    "alt": "Alt",
    "option": "Alt",
    "shift": "Shift",
}
_MODIFIER_ORDER = ["Ctrl", "Meta", "Alt", "Shift"]


def normalize_key(key: str) -> str:
    """
    Canonical form of a key chord, e.g. "shift+cmd+z" -> "Meta+Shift+Z".

    Plain keys are returned unchanged so "p" and "P" stay distinct.
    """
    parts = key.split("+")
    if len(parts) == 1 or not parts[-1]:
        return key
    modifiers = set()
    for part in parts[:-1]:
        name = _MODIFIERS.get(part.strip().lower())
        if name is None:
            return key
        modifiers.add(name)
    base = parts[-1].strip()
    if len(base) == 1:
        base = base.upper()
    return "+".join([m for m in _MODIFIER_ORDER if m in modifiers] + [base])


class GraphEditor:
    """
    Applies structural edits to the hierarchy's active document.

    Change callbacks fire after every successful mutation, undo and redo.
    """

    def __init__(self, hierarchy: DocumentHierarchy, history: HistoryManager):
        self._hierarchy = hierarchy
        self._history = history
        self._on_change_callbacks: list[Callable] = []

    # --- Properties ---

    @property
    def layout_mode(self) -> LayoutMode:
        return self._hierarchy.state.layout_mode

    @layout_mode.setter
    def layout_mode(self, mode: LayoutMode):
        self._hierarchy.state.layout_mode = LayoutMode(mode)

    @property
    def history(self) -> HistoryManager:
        return self._history

    # --- Change Callbacks ---

    def on_change(self, callback: Callable):
        """Register a callback for graph changes."""
        self._on_change_callbacks.append(callback)

    def _notify_change(self):
        for callback in self._on_change_callbacks:
            callback()

    # --- Helpers ---

    def _document(self) -> Document:
        return self._hierarchy.require_active()

    @staticmethod
    def _require_node(document: Document, node_id: str) -> GraphNode:
        node = document.get_node(node_id)
        if node is None:
            raise ReferenceNotFound("node", node_id)
        return node

    def _new_edge(self, source: str, target: str) -> GraphEdge:
        return GraphEdge(source=source, target=target, **edge_template(self.layout_mode))

    def _commit(self, document: Document):
        document.touch()
        self._notify_change()

    def _place(self, document: Document, node: GraphNode):
        """Append a node and push its neighbours out of the way."""
        document.nodes.append(node)
        resolve_collisions(document.nodes, self.layout_mode, locked_id=node.id)

    # --- Insertion ---

    def add_root_node(self, x: float, y: float, label: str = DEFAULT_NODE_LABEL) -> GraphNode:
        """Insert an unconnected node at an explicit position."""
        document = self._document()
        self._history.snapshot(document)

        node = GraphNode(x=x, y=y, label=label)
        document.nodes.append(node)
        self._commit(document)
        logger.debug("Added root node %s at (%s, %s)", node.id, x, y)
        return node

    def add_child(self, source_id: str) -> GraphNode:
        """Insert a child of `source_id`, placed by the layout mode's strategy."""
        document = self._document()
        parent = self._require_node(document, source_id)
        x, y = child_position(parent, len(document.outgoing_edges(source_id)), self.layout_mode)

        self._history.snapshot(document)
        child = GraphNode(x=x, y=y, label="Child")
        document.edges.append(self._new_edge(source_id, child.id))
        self._place(document, child)
        self._commit(document)
        logger.debug("Added child %s under %s", child.id, source_id)
        return child

    def add_parent(self, node_id: str) -> GraphNode:
        """
        Splice a new node into the incoming edges of `node_id`.

        Every edge that targeted the node now targets the new parent, and the
        new parent is connected to the node.
        """
        document = self._document()
        node = self._require_node(document, node_id)
        x, y = parent_position(node, self.layout_mode)

        self._history.snapshot(document)
        parent = GraphNode(x=x, y=y, label="Parent")
        incoming = document.incoming_edges(node_id)
        document.edges = [e for e in document.edges if e.target != node_id]
        document.edges.append(self._new_edge(parent.id, node_id))
        document.edges.extend(self._new_edge(e.source, parent.id) for e in incoming)
        self._place(document, parent)
        self._commit(document)
        logger.debug("Spliced parent %s above %s (%d edges rewired)", parent.id, node_id, len(incoming))
        return parent

    def add_sibling(self, selected_id: str) -> GraphNode:
        """
        Insert a sibling of `selected_id`.

        With a parent edge the sibling becomes one more child of the same
        parent; without one it is placed at a fixed offset, unconnected.
        """
        document = self._document()
        selected = self._require_node(document, selected_id)
        parent_edges = document.incoming_edges(selected_id)
        parent = document.get_node(parent_edges[0].source) if parent_edges else None
        x, y = sibling_position(
            selected,
            self.layout_mode,
            parent=parent,
            parent_child_count=len(document.outgoing_edges(parent.id)) if parent else 0,
        )

        self._history.snapshot(document)
        sibling = GraphNode(x=x, y=y, label="Sibling", color=selected.color)
        if parent is not None:
            document.edges.append(self._new_edge(parent.id, sibling.id))
        self._place(document, sibling)
        self._commit(document)
        logger.debug("Added sibling %s next to %s", sibling.id, selected_id)
        return sibling

    def duplicate(self, node_id: str) -> GraphNode:
        """Clone a node's data at a fixed offset. Edges are not duplicated."""
        document = self._document()
        node = self._require_node(document, node_id)
        x, y = duplicate_position(node)

        self._history.snapshot(document)
        clone = node.model_copy(update={"id": generate_node_id(), "x": x, "y": y}, deep=True)
        document.nodes.append(clone)
        self._commit(document)
        return clone

    # --- Removal ---

    def delete_node(self, node_id: str) -> GraphNode:
        """
        Delete a node and every edge where it is source or target.

        A document the node portals into is left in place.
        """
        document = self._document()
        node = self._require_node(document, node_id)

        self._history.snapshot(document)
        document.nodes = [n for n in document.nodes if n.id != node_id]
        document.edges = [e for e in document.edges if not e.connects(node_id)]
        self._commit(document)
        logger.debug("Deleted node %s", node_id)
        return node

    def delete_edge(self, edge_id: str) -> GraphEdge:
        document = self._document()
        edge = document.get_edge(edge_id)
        if edge is None:
            raise ReferenceNotFound("edge", edge_id)

        self._history.snapshot(document)
        document.edges = [e for e in document.edges if e.id != edge_id]
        self._commit(document)
        return edge

    # --- Connection ---

    def connect(self, source_id: str, target_id: str) -> GraphEdge:
        """
        Connect two nodes of the active document.

        Self-loops are rejected with InvalidConnection. Connecting an ordered
        pair that is already connected returns the existing edge unchanged.
        """
        document = self._document()
        self._require_node(document, source_id)
        self._require_node(document, target_id)
        if source_id == target_id:
            raise InvalidConnection(f"Cannot connect node {source_id} to itself")

        existing = document.find_edge(source_id, target_id)
        if existing is not None:
            return existing

        self._history.snapshot(document)
        edge = self._new_edge(source_id, target_id)
        document.edges.append(edge)
        self._commit(document)
        return edge

    # --- Node data ---

    def update_node(
        self,
        node_id: str,
        label: Optional[str] = None,
        color: Optional[NodeColor] = None,
    ) -> GraphNode:
        """Edit a node's label and/or color. Only provided fields change."""
        document = self._document()
        node = self._require_node(document, node_id)
        if label is None and color is None:
            return node

        self._history.snapshot(document)
        if label is not None:
            node.label = label
        if color is not None:
            node.color = NodeColor(color)
        self._commit(document)
        return node

    def move_node(self, node_id: str, x: float, y: float) -> GraphNode:
        """Move a node (drag end)."""
        document = self._document()
        node = self._require_node(document, node_id)
        if (node.x, node.y) == (x, y):
            return node

        self._history.snapshot(document)
        node.x, node.y = x, y
        self._commit(document)
        return node

    # --- Portals ---

    def toggle_portal(self, node_id: str) -> bool:
        """
        Turn a node into a portal, or back into a plain node.

        Turning a portal on creates its child document, unless the node
        already owns one (then it is reconnected). Turning it off leaves the
        child document in place.

        Returns:
            The node's new portal flag
        """
        document = self._document()
        node = self._require_node(document, node_id)

        self._history.snapshot(document)
        if node.is_portal:
            node.is_portal = False
        else:
            existing = self._hierarchy.find_portal_document(document.id, node_id)
            if existing is not None:
                sub_document_id = existing.id
            else:
                sub_document_id = self._hierarchy.create_document(
                    name=f"Sub: {node.label}",
                    parent_document_id=document.id,
                    parent_node_id=node_id,
                    activate=False,
                )
            node.is_portal = True
            node.sub_document_id = sub_document_id

        self._commit(document)
        logger.debug("Node %s portal=%s", node_id, node.is_portal)
        return node.is_portal

    def open_portal(self, node_id: str) -> Optional[str]:
        """
        Navigate into the document a portal node opens.

        Returns:
            The entered document's id, or None if the node is not a portal
        """
        document = self._document()
        node = self._require_node(document, node_id)
        if not node.is_portal:
            return None

        target = self._hierarchy.state.get_document(node.sub_document_id)
        if target is None:
            target = self._hierarchy.find_portal_document(document.id, node_id)
        if target is None:
            return None

        self._hierarchy.push_breadcrumb(target.id)
        self._notify_change()
        return target.id

    # --- Bulk ---

    def apply_auto_layout(self) -> bool:
        """Lay out the whole active document. No-op on an empty document."""
        document = self._document()
        if not document.nodes:
            return False

        self._history.snapshot(document)
        apply_layout(document.nodes, document.edges, self.layout_mode)
        self._commit(document)
        return True

    def import_graph(self, payload: str | bytes) -> Document:
        """
        Replace the active document's graph with an interchange payload.

        The payload is fully parsed before anything is touched, so a rejected
        import (InvalidImport) leaves the state and history unchanged.
        """
        document = self._document()
        nodes, edges = parse_graph(payload)

        self._history.snapshot(document)
        document.nodes = nodes
        document.edges = edges
        self._commit(document)
        logger.info("Imported %d nodes and %d edges into %s", len(nodes), len(edges), document.id)
        return document

    def export_graph(self) -> str:
        return export_graph(self._document())

    # --- Undo/Redo ---

    def undo(self) -> bool:
        """Undo the last action. Returns False if there was nothing to undo."""
        document = self._hierarchy.active_document
        if document is None or not self._history.undo(document):
            return False
        self._notify_change()
        return True

    def redo(self) -> bool:
        """Redo the last undone action. Returns False if there was nothing to redo."""
        document = self._hierarchy.active_document
        if document is None or not self._history.redo(document):
            return False
        self._notify_change()
        return True

    # --- Dispatch ---

    def dispatch(self, command: NodeCommand):
        """Single entry point for node commands from menus and shortcuts."""
        handlers: dict[CommandKind, Callable[[str], object]] = {
            CommandKind.ADD_CHILD: self.add_child,
            CommandKind.ADD_PARENT: self.add_parent,
            CommandKind.ADD_SIBLING: self.add_sibling,
            CommandKind.DUPLICATE: self.duplicate,
            CommandKind.DELETE: self.delete_node,
            CommandKind.TOGGLE_PORTAL: self.toggle_portal,
        }
        return handlers[command.kind](command.node_id)

    def handle_key(self, key: str, node_id: Optional[str] = None):
        """
        Run the action bound to `key`.

        Undo/redo chords need no selection. Node bindings run on `node_id`
        and do nothing without one. Returns None when nothing is bound.
        """
        key = normalize_key(key)
        action = HISTORY_SHORTCUTS.get(key)
        if action is not None:
            return getattr(self, action)()

        kind = KEY_BINDINGS.get(key)
        if kind is None or node_id is None:
            return None
        return self.dispatch(NodeCommand(kind=kind, node_id=node_id))
