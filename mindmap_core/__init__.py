"""
Mind Map Core - Shared models, editing, placement and layout algorithms.

This module provides the graph-editing core used by both the backend API
and the MCP tools, ensuring a single source of truth for all mind map logic.
"""

from .models import (
    # Enums
    LayoutMode,
    ThemeMode,
    NodeColor,
    Handle,
    EdgeType,
    CommandKind,
    # Core models
    GraphNode,
    GraphEdge,
    Document,
    Snapshot,
    AppState,
    NodeCommand,
    # Request models (for API)
    CreateNodeRequest,
    UpdateNodeRequest,
    MoveNodeRequest,
    ConnectRequest,
    CreateDocumentRequest,
    RenameDocumentRequest,
    ReorderDocumentsRequest,
    BreadcrumbPushRequest,
    BreadcrumbNavigateRequest,
    KeyPressRequest,
    LayoutModeRequest,
    ImportRequest,
)

from .errors import MindMapError, ReferenceNotFound, InvalidImport, InvalidConnection, PortalConflict
from .positioning import child_position, sibling_position, parent_position, edge_template
from .collision import resolve_collisions, find_overlaps, CollisionResult
from .layout import apply_layout, compute_layout, LayoutResult
from .history import HistoryManager
from .documents import DocumentHierarchy
from .editor import GraphEditor, HISTORY_SHORTCUTS, KEY_BINDINGS, normalize_key
from .interchange import export_graph, parse_graph
from .validation import validate_document, validate_state, validation_summary, ValidationIssue, IssueSeverity

__all__ = [
    # Enums
    "LayoutMode",
    "ThemeMode",
    "NodeColor",
    "Handle",
    "EdgeType",
    "CommandKind",
    # Models
    "GraphNode",
    "GraphEdge",
    "Document",
    "Snapshot",
    "AppState",
    "NodeCommand",
    # Request models
    "CreateNodeRequest",
    "UpdateNodeRequest",
    "MoveNodeRequest",
    "ConnectRequest",
    "CreateDocumentRequest",
    "RenameDocumentRequest",
    "ReorderDocumentsRequest",
    "BreadcrumbPushRequest",
    "BreadcrumbNavigateRequest",
    "KeyPressRequest",
    "LayoutModeRequest",
    "ImportRequest",
    # Errors
    "MindMapError",
    "ReferenceNotFound",
    "InvalidImport",
    "InvalidConnection",
    "PortalConflict",
    # Placement
    "child_position",
    "sibling_position",
    "parent_position",
    "edge_template",
    # Collisions
    "resolve_collisions",
    "find_overlaps",
    "CollisionResult",
    # Layout
    "apply_layout",
    "compute_layout",
    "LayoutResult",
    # Editing
    "HistoryManager",
    "DocumentHierarchy",
    "GraphEditor",
    "KEY_BINDINGS",
    "HISTORY_SHORTCUTS",
    "normalize_key",
    # Interchange
    "export_graph",
    "parse_graph",
    # Validation
    "validate_document",
    "validate_state",
    "validation_summary",
    "ValidationIssue",
    "IssueSeverity",
]
