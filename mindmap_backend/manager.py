"""
Mind Map Manager - Application state owner, persistence and change hooks.

This module implements:
- One controller owning the AppState, history, hierarchy and editor
- Document lifecycle and breadcrumb navigation entry points
- Debounced auto-save through the JSON file store
- Change events and save callbacks for real-time sync
"""

import logging
from pathlib import Path
from typing import Callable, Optional

from mindmap_core.documents import DocumentHierarchy
from mindmap_core.editor import GraphEditor
from mindmap_core.history import MAX_HISTORY, HistoryManager
from mindmap_core.models import AppState, Document, LayoutMode, ThemeMode
from mindmap_core.validation import ValidationIssue, validate_state

from .autosave import DebouncedSave
from .config import Settings, settings
from .persistence import JsonFileStore


logger = logging.getLogger(__name__)


class MindMapManager:
    """
    Owns the application state and is its only mutation entry point.

    Graph edits go through `editor` (which reports back via on_change);
    document and settings changes go through the methods below. Every change
    re-arms the debounced save and passes an event dict to the registered
    change callbacks (see `mindmap_backend.live` for the event types).
    """

    def __init__(
        self,
        store: Optional[JsonFileStore] = None,
        autosave_delay: float = 0.3,
        max_history: int = MAX_HISTORY,
    ):
        self._store = store
        self._max_history = max_history
        self._saver = DebouncedSave(
            self._write_payload,
            autosave_delay,
            prepare=self._prepare_payload,
            on_written=self._saved,
        )
        self._on_change_callbacks: list[Callable] = []
        self._on_save_callbacks: list[Callable] = []
        self._attach(AppState())

    @classmethod
    def from_settings(cls, config: Settings) -> "MindMapManager":
        return cls(
            store=JsonFileStore(config.state_file),
            autosave_delay=config.autosave_delay,
            max_history=config.max_history,
        )

    def _attach(self, state: AppState):
        """Wire a fresh history, hierarchy and editor around `state`."""
        self._state = state
        self._history = HistoryManager(self._max_history)
        self._hierarchy = DocumentHierarchy(state, self._history)
        self._editor = GraphEditor(self._hierarchy, self._history)
        self._editor.on_change(self._on_editor_change)
        self._seen_breadcrumb = list(state.breadcrumb)

    # --- Properties ---

    @property
    def state(self) -> AppState:
        return self._state

    @property
    def editor(self) -> GraphEditor:
        return self._editor

    @property
    def hierarchy(self) -> DocumentHierarchy:
        return self._hierarchy

    @property
    def history(self) -> HistoryManager:
        return self._history

    @property
    def active_document(self) -> Optional[Document]:
        return self._state.active_document

    @property
    def is_dirty(self) -> bool:
        """Check if there are unsaved changes."""
        return self._saver.pending

    @property
    def can_undo(self) -> bool:
        return self._history.can_undo

    @property
    def can_redo(self) -> bool:
        return self._history.can_redo

    # --- Change Callbacks ---

    def on_change(self, callback: Callable[[dict], None]):
        """Register a callback receiving every change event."""
        self._on_change_callbacks.append(callback)

    def _notify_change(self, event: dict):
        """Re-arm the auto-save and pass `event` to all registered callbacks."""
        self._seen_breadcrumb = list(self._state.breadcrumb)
        self._saver.arm()
        for callback in self._on_change_callbacks:
            callback(event)

    def _updated(self, document_id: Optional[str]) -> dict:
        return {"type": "state_updated", "document_id": document_id}

    def _navigated(self) -> dict:
        return {
            "type": "navigation",
            "active_document_id": self._state.active_document_id,
            "breadcrumb": list(self._state.breadcrumb),
        }

    def _settings_changed(self) -> dict:
        return {
            "type": "settings_updated",
            "layout_mode": self._state.layout_mode.value,
            "theme": self._state.theme.value,
            "sidebar_open": self._state.sidebar_open,
        }

    def _on_editor_change(self):
        # Opening a portal is the one editor operation that navigates
        if self._state.breadcrumb != self._seen_breadcrumb:
            self._notify_change(self._navigated())
        else:
            self._notify_change(self._updated(self._state.active_document_id))

    # --- Save Callbacks ---

    def on_save(self, callback: Callable):
        """Register a callback for saves.

        Callback receives (path: Path, state_info: dict) where state_info contains:
        - document_count: number of documents
        - active_document_id: the active document
        """
        self._on_save_callbacks.append(callback)

    def _notify_save(self, path: Path):
        state_info = {
            "document_count": len(self._state.documents),
            "active_document_id": self._state.active_document_id,
        }
        for callback in self._on_save_callbacks:
            try:
                callback(path, state_info)
            except Exception:
                logger.exception("Save callback failed")

    # --- Persistence ---

    def load(self) -> AppState:
        """
        Load the persisted state and make it consistent.

        Guarantees an active document with a non-empty breadcrumb ending in it.
        """
        state = self._store.load() if self._store else AppState()
        self._attach(state)

        if not state.documents:
            self._hierarchy.create_document()
        elif state.active_document is None:
            top = self._hierarchy.top_level_documents() or state.documents
            self._hierarchy.set_active_document(top[0].id)
        elif not state.breadcrumb or state.breadcrumb[-1] != state.active_document_id:
            self._hierarchy.set_active_document(state.active_document_id)

        self._seen_breadcrumb = list(state.breadcrumb)
        logger.info("Loaded %d documents, active %s", len(state.documents), state.active_document_id)
        return state

    def _prepare_payload(self) -> dict:
        # Runs on the loop thread; the write only sees this copy
        return self._state.to_json_dict()

    def _write_payload(self, payload: dict) -> Optional[Path]:
        if self._store is None:
            return None
        return self._store.write(payload)

    def _saved(self, path: Optional[Path]):
        if path is not None:
            self._notify_save(path)

    def save_now(self) -> Optional[Path]:
        """Save immediately, dropping any pending debounced save."""
        self._saver.cancel()
        path = self._write_payload(self._prepare_payload())
        self._saved(path)
        return path

    def flush(self) -> bool:
        """Run a pending debounced save now (e.g. on shutdown)."""
        return self._saver.flush()

    async def wait_for_save(self):
        """Wait for an auto-save that is already being written."""
        await self._saver.wait_idle()

    # --- Documents ---

    def create_document(
        self,
        name: Optional[str] = None,
        parent_document_id: Optional[str] = None,
        parent_node_id: Optional[str] = None,
    ) -> Document:
        document_id = self._hierarchy.create_document(name, parent_document_id, parent_node_id)
        self._notify_change(self._navigated())
        return self._hierarchy.get_document(document_id)

    def delete_document(self, document_id: str) -> list[str]:
        deleted = self._hierarchy.delete_document(document_id)
        self._notify_change({
            "type": "document_deleted",
            "document_ids": deleted,
            "active_document_id": self._state.active_document_id,
            "breadcrumb": list(self._state.breadcrumb),
        })
        return deleted

    def rename_document(self, document_id: str, name: str) -> bool:
        renamed = self._hierarchy.rename_document(document_id, name)
        if renamed:
            self._notify_change(self._updated(document_id))
        return renamed

    def toggle_pin(self, document_id: str) -> bool:
        pinned = self._hierarchy.toggle_pin(document_id)
        self._notify_change(self._updated(document_id))
        return pinned

    def reorder_documents(self, source_id: str, target_id: str) -> bool:
        moved = self._hierarchy.reorder_documents(source_id, target_id)
        if moved:
            self._notify_change(self._updated(source_id))
        return moved

    def set_active_document(self, document_id: str):
        self._hierarchy.set_active_document(document_id)
        self._notify_change(self._navigated())

    def push_breadcrumb(self, document_id: str):
        self._hierarchy.push_breadcrumb(document_id)
        self._notify_change(self._navigated())

    def pop_breadcrumb(self) -> bool:
        popped = self._hierarchy.pop_breadcrumb()
        if popped:
            self._notify_change(self._navigated())
        return popped

    def navigate_to(self, index: int) -> bool:
        moved = self._hierarchy.navigate_to(index)
        if moved:
            self._notify_change(self._navigated())
        return moved

    def list_documents(self) -> list[dict]:
        """Document summaries: top-level documents in sidebar order, each followed by its subtree."""
        summaries: list[dict] = []

        def visit(document: Document, depth: int):
            summaries.append({
                "id": document.id,
                "name": document.name,
                "pinned": document.pinned,
                "parentDocumentId": document.parent_document_id,
                "parentNodeId": document.parent_node_id,
                "depth": depth,
                "nodeCount": len(document.nodes),
                "edgeCount": len(document.edges),
                "createdAt": document.created_at.isoformat(),
                "updatedAt": document.updated_at.isoformat(),
            })
            for child in self._hierarchy.child_documents(document.id):
                visit(child, depth + 1)

        for document in self._hierarchy.top_level_documents():
            visit(document, 0)
        return summaries

    # --- Settings ---

    def set_layout_mode(self, mode: LayoutMode) -> LayoutMode:
        self._editor.layout_mode = mode
        self._notify_change(self._settings_changed())
        return self._state.layout_mode

    def toggle_theme(self) -> ThemeMode:
        self._state.theme = ThemeMode.LIGHT if self._state.theme == ThemeMode.DARK else ThemeMode.DARK
        self._notify_change(self._settings_changed())
        return self._state.theme

    def toggle_sidebar(self) -> bool:
        self._state.sidebar_open = not self._state.sidebar_open
        self._notify_change(self._settings_changed())
        return self._state.sidebar_open

    # --- Views ---

    def validate(self) -> list[ValidationIssue]:
        return validate_state(self._state)

    def get_state(self) -> dict:
        """Get the full current state for API responses."""
        active = self.active_document
        return {
            "state": self._state.to_json_dict(),
            "active_document": active.to_json_dict() if active else None,
            "is_dirty": self.is_dirty,
            "can_undo": self.can_undo,
            "can_redo": self.can_redo,
        }


# Global instance for the application
mindmap_manager = MindMapManager.from_settings(settings)
