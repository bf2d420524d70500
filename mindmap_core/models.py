"""
Core data models for mind maps.

These models define the canonical schema:
- Nodes with a position, label, palette color and optional portal link
- Edges connecting nodes (source/target plus optional anchor handles)
- Documents forming a tree through portal nodes
- The persisted application state that crosses the storage boundary

Field Naming Convention:
- Python attributes are snake_case
- JSON serialization outputs camelCase (`isPortal`, `sourceHandle`, ...)
- Both spellings are accepted on input, and the nested canvas export shape
  (`position: {x, y}`, `data: {...}`) is converted for backward compatibility
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Any
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel
import uuid


CAMEL_CONFIG = ConfigDict(alias_generator=to_camel, populate_by_name=True)

ROOT_NODE_ID = "root"
ROOT_NODE_LABEL = "Central Idea"
DEFAULT_NODE_LABEL = "New Node"
DEFAULT_DOCUMENT_NAME = "Untitled Map"


class LayoutMode(str, Enum):
    """Placement/layout philosophies."""
    MINDMAP = "mindmap"    # Radial
    ORGCHART = "orgchart"  # Tiered-horizontal
    LOGIC = "logic"        # Stacked-vertical


class ThemeMode(str, Enum):
    DARK = "dark"
    LIGHT = "light"


class NodeColor(str, Enum):
    """Palette tags for nodes."""
    DEFAULT = "default"
    INDIGO = "indigo"
    VIOLET = "violet"
    ROSE = "rose"
    AMBER = "amber"
    EMERALD = "emerald"
    CYAN = "cyan"
    PINK = "pink"
    SKY = "sky"


NODE_COLOR_HEX: dict[NodeColor, str] = {
    NodeColor.INDIGO: "#6366f1",
    NodeColor.VIOLET: "#8b5cf6",
    NodeColor.ROSE: "#f43f5e",
    NodeColor.AMBER: "#f59e0b",
    NodeColor.EMERALD: "#10b981",
    NodeColor.CYAN: "#06b6d4",
    NodeColor.PINK: "#ec4899",
    NodeColor.SKY: "#0ea5e9",
}

_HEX_TO_COLOR = {hex_value: color for color, hex_value in NODE_COLOR_HEX.items()}


class Handle(str, Enum):
    """Named anchor points on a node's sides."""
    TOP = "top"
    RIGHT = "right"
    BOTTOM = "bottom"
    LEFT = "left"


class EdgeType(str, Enum):
    """Line routing styles for edges."""
    SMOOTHSTEP = "smoothstep"
    STEP = "step"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def generate_node_id() -> str:
    """Generate a unique node ID."""
    return f"n{uuid.uuid4().hex[:8]}"


def generate_edge_id() -> str:
    """Generate a unique edge ID."""
    return f"e{uuid.uuid4().hex[:8]}"


def generate_document_id() -> str:
    """Generate a unique document ID."""
    return f"doc-{uuid.uuid4().hex[:8]}"


class GraphNode(BaseModel):
    """A node in a mind map document."""
    model_config = CAMEL_CONFIG

    id: str = Field(default_factory=generate_node_id)
    x: float = 0
    y: float = 0
    label: str = DEFAULT_NODE_LABEL
    color: NodeColor = NodeColor.DEFAULT
    is_portal: bool = False
    # Child document this node opens; kept after the portal flag is cleared
    sub_document_id: Optional[str] = None

    @model_validator(mode='before')
    @classmethod
    def convert_canvas_shape(cls, data: Any) -> Any:
        """Flatten the nested `position`/`data` canvas export shape."""
        if not isinstance(data, dict):
            return data
        data = dict(data)
        position = data.pop('position', None)
        if isinstance(position, dict):
            data.setdefault('x', position.get('x', 0))
            data.setdefault('y', position.get('y', 0))
        payload = data.pop('data', None)
        if isinstance(payload, dict):
            for key in ('label', 'color', 'isPortal'):
                if key in payload:
                    data.setdefault(key, payload[key])
            if 'subFileId' in payload:
                data.setdefault('subDocumentId', payload['subFileId'])
        return data

    @field_validator('color', mode='before')
    @classmethod
    def normalize_color(cls, value: Any) -> Any:
        """Accept empty strings and palette hex values."""
        if value in (None, ""):
            return NodeColor.DEFAULT
        if isinstance(value, str) and value.lower() in _HEX_TO_COLOR:
            return _HEX_TO_COLOR[value.lower()]
        return value

    @property
    def position(self) -> tuple[float, float]:
        return (self.x, self.y)

    def to_json_dict(self) -> dict:
        """Convert to JSON-serializable dict with camelCase keys."""
        return self.model_dump(mode="json", by_alias=True)


class GraphEdge(BaseModel):
    """
    A directed edge connecting two nodes of the same document.

    Uses `source` and `target` as canonical field names.
    Accepts `from`/`to` on input for backward compatibility.
    """
    model_config = CAMEL_CONFIG

    id: str = Field(default_factory=generate_edge_id)
    source: str  # Source node ID
    target: str  # Target node ID
    # Which side of each node the line leaves/enters, None for auto
    source_handle: Optional[Handle] = None
    target_handle: Optional[Handle] = None
    type: str = EdgeType.SMOOTHSTEP.value

    @model_validator(mode='before')
    @classmethod
    def convert_legacy_fields(cls, data: Any) -> Any:
        """Convert legacy 'from'/'to' fields to 'source'/'target'."""
        if isinstance(data, dict):
            data = dict(data)
            if 'from' in data and 'source' not in data:
                data['source'] = data.pop('from')
            if 'to' in data and 'target' not in data:
                data['target'] = data.pop('to')
        return data

    def to_json_dict(self) -> dict:
        """Convert to JSON-serializable dict, omitting unset handles."""
        result = self.model_dump(mode="json", by_alias=True)
        if self.source_handle is None:
            result.pop("sourceHandle")
        if self.target_handle is None:
            result.pop("targetHandle")
        return result

    def connects(self, node_id: str) -> bool:
        return self.source == node_id or self.target == node_id


@dataclass(frozen=True)
class Snapshot:
    """An immutable deep copy of one document's nodes and edges."""
    nodes: tuple[GraphNode, ...]
    edges: tuple[GraphEdge, ...]

    @classmethod
    def capture(cls, nodes: list[GraphNode], edges: list[GraphEdge]) -> "Snapshot":
        return cls(
            nodes=tuple(n.model_copy(deep=True) for n in nodes),
            edges=tuple(e.model_copy(deep=True) for e in edges),
        )

    def restore(self) -> tuple[list[GraphNode], list[GraphEdge]]:
        """Return fresh copies so the snapshot itself is never mutated."""
        return (
            [n.model_copy(deep=True) for n in self.nodes],
            [e.model_copy(deep=True) for e in self.edges],
        )


class Document(BaseModel):
    """
    One mind map: its graph plus its position in the document tree.
    This is what gets saved to/loaded from the persistence store.
    """
    model_config = CAMEL_CONFIG

    id: str = Field(default_factory=generate_document_id)
    name: str = DEFAULT_DOCUMENT_NAME
    pinned: bool = False
    parent_document_id: Optional[str] = None  # None = top-level
    parent_node_id: Optional[str] = None      # Portal node that owns this document
    nodes: list[GraphNode] = Field(default_factory=list)
    edges: list[GraphEdge] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @model_validator(mode='before')
    @classmethod
    def convert_legacy_fields(cls, data: Any) -> Any:
        """Convert legacy 'parentFileId' to 'parentDocumentId'."""
        if isinstance(data, dict) and 'parentFileId' in data:
            data = dict(data)
            data.setdefault('parentDocumentId', data.pop('parentFileId'))
        return data

    @classmethod
    def new(
        cls,
        name: Optional[str] = None,
        parent_document_id: Optional[str] = None,
        parent_node_id: Optional[str] = None,
    ) -> "Document":
        """Create a document holding the single default root node."""
        return cls(
            name=name or DEFAULT_DOCUMENT_NAME,
            parent_document_id=parent_document_id,
            parent_node_id=parent_node_id,
            nodes=[GraphNode(id=ROOT_NODE_ID, label=ROOT_NODE_LABEL, x=0, y=0)],
        )

    @property
    def is_top_level(self) -> bool:
        return self.parent_document_id is None

    def touch(self):
        """Bump the last-modified timestamp."""
        self.updated_at = utcnow()

    def get_node(self, node_id: str) -> Optional[GraphNode]:
        """Get a node by ID (O(n))."""
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def get_edge(self, edge_id: str) -> Optional[GraphEdge]:
        """Get an edge by ID (O(n))."""
        for edge in self.edges:
            if edge.id == edge_id:
                return edge
        return None

    def outgoing_edges(self, node_id: str) -> list[GraphEdge]:
        return [e for e in self.edges if e.source == node_id]

    def incoming_edges(self, node_id: str) -> list[GraphEdge]:
        return [e for e in self.edges if e.target == node_id]

    def find_edge(self, source: str, target: str) -> Optional[GraphEdge]:
        """Find an edge by its ordered endpoint pair."""
        for edge in self.edges:
            if edge.source == source and edge.target == target:
                return edge
        return None

    def to_json_dict(self) -> dict:
        """Convert to JSON-serializable dict with proper field names."""
        result = self.model_dump(mode="json", by_alias=True, exclude={"nodes", "edges"})
        result["nodes"] = [n.to_json_dict() for n in self.nodes]
        result["edges"] = [e.to_json_dict() for e in self.edges]
        return result

    @classmethod
    def from_json_dict(cls, data: dict) -> "Document":
        """Create a Document from a JSON dict (handles legacy formats)."""
        return cls.model_validate(data)


class AppState(BaseModel):
    """
    The complete persisted application state.

    Documents are an order-relevant list: their order is the pin/reorder
    order within each parent group.
    """
    model_config = CAMEL_CONFIG

    documents: list[Document] = Field(default_factory=list)
    active_document_id: Optional[str] = None
    breadcrumb: list[str] = Field(default_factory=list)
    layout_mode: LayoutMode = LayoutMode.MINDMAP
    sidebar_open: bool = True
    theme: ThemeMode = ThemeMode.DARK
    authenticated: bool = False

    @model_validator(mode='before')
    @classmethod
    def convert_legacy_fields(cls, data: Any) -> Any:
        """Convert legacy 'files'/'activeFileId' keys."""
        if isinstance(data, dict):
            data = dict(data)
            if 'files' in data and 'documents' not in data:
                data['documents'] = data.pop('files')
            if 'activeFileId' in data and 'activeDocumentId' not in data:
                data['activeDocumentId'] = data.pop('activeFileId')
        return data

    def get_document(self, document_id: Optional[str]) -> Optional[Document]:
        if document_id is None:
            return None
        for document in self.documents:
            if document.id == document_id:
                return document
        return None

    @property
    def active_document(self) -> Optional[Document]:
        return self.get_document(self.active_document_id)

    def to_json_dict(self) -> dict:
        result = self.model_dump(mode="json", by_alias=True, exclude={"documents"})
        result["documents"] = [d.to_json_dict() for d in self.documents]
        return result

    @classmethod
    def from_json_dict(cls, data: dict) -> "AppState":
        return cls.model_validate(data)


# --- Commands ---

class CommandKind(str, Enum):
    """Structural node operations reachable from menus and shortcuts."""
    ADD_CHILD = "addChild"
    ADD_PARENT = "addParent"
    ADD_SIBLING = "addSibling"
    DUPLICATE = "duplicate"
    DELETE = "delete"
    TOGGLE_PORTAL = "togglePortal"


class NodeCommand(BaseModel):
    """A tagged command addressed at one node."""
    kind: CommandKind
    node_id: str


# --- API Request/Response Models ---

class CreateNodeRequest(BaseModel):
    """Request to create an unconnected node at a position."""
    x: float = 0
    y: float = 0
    label: str = DEFAULT_NODE_LABEL


class UpdateNodeRequest(BaseModel):
    """Request to edit a node's label or color (partial update)."""
    label: Optional[str] = None
    color: Optional[NodeColor] = None


class MoveNodeRequest(BaseModel):
    x: float
    y: float


class ConnectRequest(BaseModel):
    """Request to connect two nodes."""
    source: str = ""
    target: str = ""

    @model_validator(mode='before')
    @classmethod
    def convert_legacy_fields(cls, data: Any) -> Any:
        """Convert legacy 'from'/'to' fields to 'source'/'target'."""
        if isinstance(data, dict):
            data = dict(data)
            if 'from' in data and 'source' not in data:
                data['source'] = data.pop('from')
            if 'to' in data and 'target' not in data:
                data['target'] = data.pop('to')
        return data


class CreateDocumentRequest(BaseModel):
    name: Optional[str] = None
    parent_document_id: Optional[str] = None
    parent_node_id: Optional[str] = None


class RenameDocumentRequest(BaseModel):
    name: str


class ReorderDocumentsRequest(BaseModel):
    source_id: str
    target_id: str


class BreadcrumbPushRequest(BaseModel):
    document_id: str


class BreadcrumbNavigateRequest(BaseModel):
    index: int


class KeyPressRequest(BaseModel):
    key: str
    node_id: Optional[str] = None


class LayoutModeRequest(BaseModel):
    mode: LayoutMode


class ImportRequest(BaseModel):
    """Raw JSON text of a `{nodes, edges}` interchange file."""
    payload: str
