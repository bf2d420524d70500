"""
Document hierarchy management.

Documents form a tree through `parent_document_id`; a portal node in a
document owns at most one child document whose `parent_node_id` is that
node's id. This module implements:
- Creation, deletion (full-subtree cascade), rename, pin and reorder
- Breadcrumb navigation through portals
- History reset whenever the active document changes
"""

import logging
from collections import deque
from typing import Optional

from .errors import PortalConflict, ReferenceNotFound
from .history import HistoryManager
from .models import AppState, Document


logger = logging.getLogger(__name__)


class DocumentHierarchy:
    """
    Owns the document list, the active document id and the breadcrumb.

    Every navigation (activate, push, pop, jump) clears the shared
    HistoryManager: undo/redo never crosses documents.
    """

    def __init__(self, state: AppState, history: HistoryManager):
        self._state = state
        self._history = history

    # --- Properties ---

    @property
    def state(self) -> AppState:
        return self._state

    @property
    def documents(self) -> list[Document]:
        return self._state.documents

    @property
    def active_document(self) -> Optional[Document]:
        return self._state.active_document

    @property
    def breadcrumb(self) -> list[str]:
        return list(self._state.breadcrumb)

    # --- Lookups ---

    def get_document(self, document_id: str) -> Document:
        """Get a document by ID, raising ReferenceNotFound if absent."""
        document = self._state.get_document(document_id)
        if document is None:
            raise ReferenceNotFound("document", document_id)
        return document

    def require_active(self) -> Document:
        """Get the active document, raising ReferenceNotFound if there is none."""
        document = self.active_document
        if document is None:
            raise ReferenceNotFound("document", str(self._state.active_document_id))
        return document

    def child_documents(self, document_id: str) -> list[Document]:
        """Direct children of a document, in stored order."""
        return [d for d in self._state.documents if d.parent_document_id == document_id]

    def descendants(self, document_id: str) -> list[str]:
        """All transitive descendants of a document (BFS order)."""
        found: list[str] = []
        queue = deque([document_id])
        while queue:
            current = queue.popleft()
            for child in self.child_documents(current):
                if child.id not in found:
                    found.append(child.id)
                    queue.append(child.id)
        return found

    def find_portal_document(self, document_id: str, node_id: str) -> Optional[Document]:
        """Find the child document owned by a portal node."""
        for document in self._state.documents:
            if document.parent_document_id == document_id and document.parent_node_id == node_id:
                return document
        return None

    def top_level_documents(self) -> list[Document]:
        """Top-level documents: pinned first, then newest first."""
        top = [d for d in self._state.documents if d.is_top_level]
        return sorted(top, key=lambda d: (not d.pinned, -d.created_at.timestamp()))

    # --- Lifecycle ---

    def create_document(
        self,
        name: Optional[str] = None,
        parent_document_id: Optional[str] = None,
        parent_node_id: Optional[str] = None,
        activate: bool = True,
    ) -> str:
        """
        Create a document with a single default root node.

        Args:
            name: Display name (defaults to "Untitled Map")
            parent_document_id: Owning document, None for top-level
            parent_node_id: Portal node in the owning document
            activate: Make the new document active (resets breadcrumb/history)

        Returns:
            The new document's id
        """
        if parent_node_id is not None and parent_document_id is None:
            raise ValueError("A portal node requires a parent document")

        if parent_document_id is not None:
            parent = self.get_document(parent_document_id)
            if parent_node_id is not None:
                if parent.get_node(parent_node_id) is None:
                    raise ReferenceNotFound("node", parent_node_id)
                if self.find_portal_document(parent_document_id, parent_node_id):
                    raise PortalConflict(
                        f"Node {parent_node_id} already owns a child document"
                    )

        document = Document.new(
            name=name,
            parent_document_id=parent_document_id,
            parent_node_id=parent_node_id,
        )
        self._state.documents.append(document)
        logger.info("Created document %s (%s)", document.id, document.name)

        if activate:
            self.set_active_document(document.id)
        return document.id

    def delete_document(self, document_id: str) -> list[str]:
        """
        Delete a document and its whole subtree.

        Every surviving node that portals into a deleted document loses its
        portal flag, including duplicated portals. When that rewrites the
        active document, or the active document owned a deleted document,
        the history is cleared: its snapshots may still hold those portals.
        If the active document was removed, the first remaining top-level
        document (or any remaining document) becomes active.

        Returns:
            Ids of every deleted document
        """
        document = self.get_document(document_id)
        doomed = [document_id] + self.descendants(document_id)
        doomed_set = set(doomed)

        rewritten = self._clear_portals_into(doomed_set)
        owner = self._state.get_document(document.parent_document_id)
        portal = owner.get_node(document.parent_node_id) if owner is not None and document.parent_node_id else None
        if portal is not None and owner.id not in doomed_set and portal.is_portal and portal.sub_document_id is None:
            portal.is_portal = False
            owner.touch()
            rewritten.add(owner.id)

        active_id = self._state.active_document_id
        if active_id not in doomed_set and (
            active_id in rewritten
            or any(self.get_document(d).parent_document_id == active_id for d in doomed)
        ):
            self._history.clear()

        self._state.documents = [d for d in self._state.documents if d.id not in doomed_set]
        self._state.breadcrumb = [d for d in self._state.breadcrumb if d not in doomed_set]
        logger.info("Deleted document %s and %d descendants", document_id, len(doomed) - 1)

        if active_id in doomed_set:
            remaining = self.top_level_documents() or self._state.documents
            if remaining:
                self.set_active_document(remaining[0].id)
            else:
                self._state.active_document_id = None
                self._state.breadcrumb = []
                self._history.clear()

        return doomed

    def _clear_portals_into(self, document_ids: set[str]) -> set[str]:
        """Turn off every portal into `document_ids`. Returns the ids of the documents changed."""
        changed: set[str] = set()
        for document in self._state.documents:
            if document.id in document_ids:
                continue
            for node in document.nodes:
                if node.sub_document_id in document_ids:
                    node.is_portal = False
                    node.sub_document_id = None
                    changed.add(document.id)
            if document.id in changed:
                document.touch()
        return changed

    def rename_document(self, document_id: str, name: str) -> bool:
        """Rename a document. Blank names are ignored."""
        document = self.get_document(document_id)
        name = name.strip()
        if not name:
            return False
        document.name = name
        document.touch()
        return True

    def toggle_pin(self, document_id: str) -> bool:
        """
        Flip a document's pinned flag and re-insert it at the boundary of its
        parent group: pinned documents go to the front of the group, unpinned
        ones right after the last pinned one.

        Returns:
            The new pinned value
        """
        document = self.get_document(document_id)
        ordered = list(self._state.documents)
        ordered.remove(document)
        document.pinned = not document.pinned
        document.touch()

        group = [
            i for i, d in enumerate(ordered)
            if d.parent_document_id == document.parent_document_id
        ]
        if not group:
            ordered.append(document)
        elif document.pinned:
            ordered.insert(group[0], document)
        else:
            first_unpinned = next((i for i in group if not ordered[i].pinned), None)
            ordered.insert(
                first_unpinned if first_unpinned is not None else group[-1] + 1,
                document,
            )

        self._state.documents = ordered
        return document.pinned

    def reorder_documents(self, source_id: str, target_id: str) -> bool:
        """
        Move `source_id` into the slot of `target_id`.

        Only allowed within the same parent group and the same pinned group;
        anything else is a no-op.
        """
        if source_id == target_id:
            return False
        source = self.get_document(source_id)
        target = self.get_document(target_id)

        if source.parent_document_id != target.parent_document_id:
            return False
        if source.pinned != target.pinned:
            return False

        ordered = list(self._state.documents)
        ordered.remove(source)
        ordered.insert(ordered.index(target), source)
        self._state.documents = ordered
        return True

    # --- Navigation ---

    def set_active_document(self, document_id: str):
        """Activate a document as the root of a fresh navigation path."""
        self.get_document(document_id)
        self._state.active_document_id = document_id
        self._state.breadcrumb = [document_id]
        self._history.clear()

    def push_breadcrumb(self, document_id: str):
        """Navigate one level deeper."""
        self.get_document(document_id)
        self._state.breadcrumb.append(document_id)
        self._state.active_document_id = document_id
        self._history.clear()

    def pop_breadcrumb(self) -> bool:
        """Navigate one level back out. A single-entry path cannot be popped."""
        if len(self._state.breadcrumb) <= 1:
            return False
        self._state.breadcrumb.pop()
        self._state.active_document_id = self._state.breadcrumb[-1]
        self._history.clear()
        return True

    def navigate_to(self, index: int) -> bool:
        """Jump back to the breadcrumb entry at `index`."""
        if index < 0 or index >= len(self._state.breadcrumb) - 1:
            return False
        del self._state.breadcrumb[index + 1:]
        self._state.active_document_id = self._state.breadcrumb[-1]
        self._history.clear()
        return True
