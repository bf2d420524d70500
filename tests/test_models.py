"""Unit tests for the data models."""

import pytest
from pydantic import ValidationError

from mindmap_core import AppState, Document, GraphEdge, GraphNode, Handle, NodeColor, Snapshot
from mindmap_core.models import ROOT_NODE_ID, ROOT_NODE_LABEL


class TestGraphNode:
    """Tests for GraphNode."""

    def test_defaults(self):
        node = GraphNode()
        assert node.id.startswith("n")
        assert node.label == "New Node"
        assert node.color == NodeColor.DEFAULT
        assert node.is_portal is False
        assert node.sub_document_id is None

    def test_json_uses_camel_case(self):
        node = GraphNode(id="a", is_portal=True, sub_document_id="doc-1")
        data = node.to_json_dict()
        assert data["isPortal"] is True
        assert data["subDocumentId"] == "doc-1"
        assert "is_portal" not in data

    def test_accepts_canvas_shape(self):
        node = GraphNode.model_validate({
            "id": "a",
            "position": {"x": 10, "y": 20},
            "data": {"label": "Idea", "color": "#f43f5e", "isPortal": True, "subFileId": "doc-9"},
        })
        assert node.position == (10, 20)
        assert node.label == "Idea"
        assert node.color == NodeColor.ROSE
        assert node.is_portal is True
        assert node.sub_document_id == "doc-9"

    def test_empty_color_is_default(self):
        assert GraphNode(color="").color == NodeColor.DEFAULT

    def test_unknown_color_rejected(self):
        with pytest.raises(ValidationError):
            GraphNode(color="chartreuse")


class TestGraphEdge:
    """Tests for GraphEdge."""

    def test_legacy_from_to(self):
        edge = GraphEdge.model_validate({"from": "a", "to": "b"})
        assert edge.source == "a"
        assert edge.target == "b"

    def test_unset_handles_omitted(self):
        data = GraphEdge(source="a", target="b").to_json_dict()
        assert "sourceHandle" not in data
        assert "targetHandle" not in data
        assert data["type"] == "smoothstep"

    def test_handles_serialized(self):
        edge = GraphEdge(source="a", target="b", source_handle=Handle.BOTTOM, target_handle=Handle.TOP)
        data = edge.to_json_dict()
        assert data["sourceHandle"] == "bottom"
        assert data["targetHandle"] == "top"

    def test_connects(self):
        edge = GraphEdge(source="a", target="b")
        assert edge.connects("a")
        assert edge.connects("b")
        assert not edge.connects("c")


class TestDocument:
    """Tests for Document."""

    def test_new_has_root_node(self):
        document = Document.new()
        assert document.name == "Untitled Map"
        assert len(document.nodes) == 1
        root = document.nodes[0]
        assert root.id == ROOT_NODE_ID
        assert root.label == ROOT_NODE_LABEL
        assert root.position == (0, 0)
        assert document.edges == []
        assert document.is_top_level

    def test_edge_lookups(self):
        document = Document(
            nodes=[GraphNode(id="a"), GraphNode(id="b"), GraphNode(id="c")],
            edges=[GraphEdge(id="e1", source="a", target="b"), GraphEdge(id="e2", source="b", target="c")],
        )
        assert [e.id for e in document.outgoing_edges("b")] == ["e2"]
        assert [e.id for e in document.incoming_edges("b")] == ["e1"]
        assert document.find_edge("a", "b").id == "e1"
        assert document.find_edge("b", "a") is None
        assert document.get_edge("e2").target == "c"
        assert document.get_node("missing") is None

    def test_json_roundtrip_keeps_tree_links(self):
        document = Document.new(name="Child", parent_document_id="doc-p", parent_node_id="n1")
        restored = Document.from_json_dict(document.to_json_dict())
        assert restored.parent_document_id == "doc-p"
        assert restored.parent_node_id == "n1"
        assert restored.created_at == document.created_at

    def test_legacy_parent_file_id(self):
        document = Document.from_json_dict({"id": "d", "parentFileId": "p"})
        assert document.parent_document_id == "p"


class TestAppState:
    """Tests for AppState."""

    def test_legacy_keys(self):
        state = AppState.from_json_dict({
            "files": [{"id": "d1", "name": "One"}],
            "activeFileId": "d1",
        })
        assert state.active_document.name == "One"

    def test_active_document_missing(self):
        state = AppState(active_document_id="nope")
        assert state.active_document is None
        assert state.get_document(None) is None


class TestSnapshot:
    """Tests for Snapshot."""

    def test_capture_is_deep(self):
        nodes = [GraphNode(id="a", label="before")]
        snapshot = Snapshot.capture(nodes, [])
        nodes[0].label = "after"
        assert snapshot.nodes[0].label == "before"

    def test_restore_returns_fresh_copies(self):
        snapshot = Snapshot.capture([GraphNode(id="a")], [])
        restored, _ = snapshot.restore()
        restored[0].label = "changed"
        assert snapshot.nodes[0].label == "New Node"
