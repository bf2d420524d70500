"""
Bounded undo/redo history over (nodes, edges) snapshots.

The history system works via snapshots:
- Each mutation first pushes a full snapshot of the document's graph
- Undo restores the previous snapshot, parking the current state for redo
- Redo re-applies a parked state, parking the current state for undo

History is scoped to one document at a time: the owner clears it whenever
the active document changes.
"""

from typing import TYPE_CHECKING

from .models import Snapshot

if TYPE_CHECKING:
    from .models import Document


MAX_HISTORY = 50


class HistoryManager:
    """Two bounded snapshot stacks for the active document."""

    def __init__(self, max_entries: int = MAX_HISTORY):
        self._undo: list[Snapshot] = []  # Past states
        self._redo: list[Snapshot] = []  # Future states
        self._max_entries = max_entries

    # --- Properties ---

    @property
    def can_undo(self) -> bool:
        return len(self._undo) > 0

    @property
    def can_redo(self) -> bool:
        return len(self._redo) > 0

    @property
    def undo_depth(self) -> int:
        return len(self._undo)

    @property
    def redo_depth(self) -> int:
        return len(self._redo)

    @property
    def max_entries(self) -> int:
        return self._max_entries

    def peek_undo(self) -> Snapshot | None:
        return self._undo[-1] if self._undo else None

    def peek_redo(self) -> Snapshot | None:
        return self._redo[-1] if self._redo else None

    # --- Stack helpers ---

    def _push(self, stack: list[Snapshot], snapshot: Snapshot):
        stack.append(snapshot)
        # Evict the oldest entry past the cap
        while len(stack) > self._max_entries:
            stack.pop(0)

    @staticmethod
    def _restore(document: "Document", snapshot: Snapshot):
        document.nodes, document.edges = snapshot.restore()
        document.touch()

    # --- Operations ---

    def snapshot(self, document: "Document"):
        """
        Save the document's current graph before a mutation.

        Must be called before the mutation, never after. A new action
        invalidates the redo stack.
        """
        self._push(self._undo, Snapshot.capture(document.nodes, document.edges))
        self._redo.clear()

    def undo(self, document: "Document") -> bool:
        """Restore the most recent snapshot. Returns False if nothing to undo."""
        if not self._undo:
            return False

        previous = self._undo.pop()
        self._push(self._redo, Snapshot.capture(document.nodes, document.edges))
        self._restore(document, previous)
        return True

    def redo(self, document: "Document") -> bool:
        """Re-apply the most recently undone state. Returns False if nothing to redo."""
        if not self._redo:
            return False

        following = self._redo.pop()
        self._push(self._undo, Snapshot.capture(document.nodes, document.edges))
        self._restore(document, following)
        return True

    def clear(self):
        """Empty both stacks."""
        self._undo.clear()
        self._redo.clear()
