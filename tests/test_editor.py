"""Tests for the graph edit engine."""

import pytest

from mindmap_core import (
    CommandKind, Handle, InvalidConnection, InvalidImport, LayoutMode,
    NodeColor, NodeCommand, ReferenceNotFound, normalize_key,
)


def edge_pairs(document):
    return [(e.source, e.target) for e in document.edges]


class TestAddChild:
    """Tests for child insertion."""

    def test_first_child_above_root(self, editor, document):
        child = editor.add_child("root")
        assert child.x == pytest.approx(0)
        assert child.y == pytest.approx(-200)
        assert edge_pairs(document) == [("root", child.id)]

    def test_mindmap_edge_has_no_handles(self, editor, document):
        editor.add_child("root")
        edge = document.edges[0]
        assert edge.type == "smoothstep"
        assert edge.source_handle is None

    def test_orgchart_edge_handles(self, editor, document):
        editor.layout_mode = LayoutMode.ORGCHART
        editor.add_child("root")
        edge = document.edges[0]
        assert edge.type == "step"
        assert (edge.source_handle, edge.target_handle) == (Handle.BOTTOM, Handle.TOP)

    def test_position_depends_only_on_child_count(self, editor):
        first = editor.add_child("root")
        editor.undo()
        again = editor.add_child("root")
        assert again.position == first.position

    def test_unknown_source_takes_no_snapshot(self, editor, history):
        with pytest.raises(ReferenceNotFound):
            editor.add_child("missing")
        assert not history.can_undo

    def test_three_children_then_delete_second(self, editor, document):
        first = editor.add_child("root")
        second = editor.add_child("root")
        third = editor.add_child("root")

        editor.delete_node(second.id)

        assert sorted(edge_pairs(document)) == sorted([("root", first.id), ("root", third.id)])
        assert {n.id for n in document.nodes} == {"root", first.id, third.id}

    def test_new_child_is_kept_clear_of_neighbours(self, editor, document):
        for _ in range(4):
            child = editor.add_child("root")
        # The newest node never moves; everything else was pushed off it
        overlapping = [
            n.id for n in document.nodes
            if n.id != child.id and abs(n.x - child.x) < 240 and abs(n.y - child.y) < 120
        ]
        assert overlapping == []


class TestAddParent:
    """Tests for parent splicing."""

    def test_splices_into_incoming_edges(self, editor, document):
        child = editor.add_child("root")
        parent = editor.add_parent(child.id)

        assert ("root", child.id) not in edge_pairs(document)
        assert ("root", parent.id) in edge_pairs(document)
        assert (parent.id, child.id) in edge_pairs(document)
        assert len(document.edges) == 2

    def test_parent_of_unconnected_node(self, editor, document):
        parent = editor.add_parent("root")
        assert edge_pairs(document) == [(parent.id, "root")]
        assert parent.label == "Parent"


class TestAddSibling:
    """Tests for sibling insertion."""

    def test_sibling_shares_parent(self, editor, document):
        child = editor.add_child("root")
        editor.update_node(child.id, color=NodeColor.AMBER)
        sibling = editor.add_sibling(child.id)

        assert ("root", sibling.id) in edge_pairs(document)
        assert sibling.color == NodeColor.AMBER

    def test_sibling_without_parent_is_offset(self, editor, document):
        sibling = editor.add_sibling("root")
        assert sibling.position == (0, 120)
        assert document.edges == []


class TestDuplicateAndDelete:
    """Tests for duplicate and delete."""

    def test_duplicate_clones_data(self, editor, document):
        editor.update_node("root", label="Topic", color=NodeColor.SKY)
        clone = editor.duplicate("root")
        assert clone.id != "root"
        assert clone.label == "Topic"
        assert clone.color == NodeColor.SKY
        assert clone.position == (40, 40)
        assert document.edges == []

    def test_delete_removes_connected_edges(self, editor, document):
        child = editor.add_child("root")
        grandchild = editor.add_child(child.id)
        editor.delete_node(child.id)
        assert document.edges == []
        assert document.get_node(grandchild.id) is not None

    def test_delete_edge(self, editor, document):
        editor.add_child("root")
        edge_id = document.edges[0].id
        editor.delete_edge(edge_id)
        assert document.edges == []
        with pytest.raises(ReferenceNotFound):
            editor.delete_edge(edge_id)


class TestConnect:
    """Tests for manual connections."""

    def test_connect(self, editor, document):
        node = editor.add_root_node(500, 500, "Loose")
        edge = editor.connect("root", node.id)
        assert edge_pairs(document) == [("root", node.id)]
        assert edge.type == "smoothstep"

    def test_self_loop_rejected(self, editor, history):
        with pytest.raises(InvalidConnection):
            editor.connect("root", "root")
        assert not history.can_undo

    def test_existing_pair_returned(self, editor, document, history):
        child = editor.add_child("root")
        depth = history.undo_depth
        edge = editor.connect("root", child.id)
        assert edge is document.edges[0]
        assert len(document.edges) == 1
        assert history.undo_depth == depth

    def test_unknown_target(self, editor):
        with pytest.raises(ReferenceNotFound):
            editor.connect("root", "missing")


class TestNodeData:
    """Tests for label, color and position edits."""

    def test_update_label(self, editor, document):
        editor.update_node("root", label="Renamed")
        assert document.get_node("root").label == "Renamed"

    def test_empty_update_takes_no_snapshot(self, editor, history):
        editor.update_node("root")
        assert not history.can_undo

    def test_move(self, editor, document, history):
        editor.move_node("root", 10, 20)
        assert document.get_node("root").position == (10, 20)
        editor.move_node("root", 10, 20)
        assert history.undo_depth == 1


class TestPortals:
    """Tests for portal nodes and their documents."""

    def test_toggle_creates_child_document(self, editor, hierarchy, document):
        assert editor.toggle_portal("root") is True

        node = document.get_node("root")
        child = hierarchy.get_document(node.sub_document_id)
        assert child.parent_document_id == document.id
        assert child.parent_node_id == "root"
        assert child.name == "Sub: Central Idea"
        assert hierarchy.active_document is document

    def test_toggle_off_keeps_document(self, editor, hierarchy, document):
        editor.toggle_portal("root")
        sub_id = document.get_node("root").sub_document_id

        assert editor.toggle_portal("root") is False
        assert hierarchy.get_document(sub_id) is not None

        editor.toggle_portal("root")
        assert document.get_node("root").sub_document_id == sub_id
        assert len(hierarchy.documents) == 2

    def test_breadcrumb_round_trip(self, editor, hierarchy, history, document):
        editor.toggle_portal("root")
        sub_id = document.get_node("root").sub_document_id
        assert history.can_undo

        hierarchy.push_breadcrumb(sub_id)
        assert hierarchy.active_document.id == sub_id
        assert not history.can_undo

        editor.add_child("root")
        assert history.can_undo

        assert hierarchy.pop_breadcrumb()
        assert hierarchy.active_document.id == document.id
        assert not history.can_undo
        assert not history.can_redo

    def test_open_portal(self, editor, hierarchy, document):
        editor.toggle_portal("root")
        entered = editor.open_portal("root")
        assert hierarchy.breadcrumb == [document.id, entered]

    def test_open_plain_node(self, editor):
        assert editor.open_portal("root") is None


class TestImportExport:
    """Tests for replacing a document's graph."""

    def test_import_empty(self, editor, document):
        editor.import_graph('{"nodes": [], "edges": []}')
        assert document.nodes == []
        assert document.edges == []

    def test_invalid_import_leaves_state(self, editor, document, history):
        editor.add_child("root")
        before = document.to_json_dict()
        depth = history.undo_depth

        with pytest.raises(InvalidImport):
            editor.import_graph("not json")

        assert document.to_json_dict() == before
        assert history.undo_depth == depth

    def test_import_is_undoable(self, editor, document):
        editor.import_graph('{"nodes": [{"id": "x", "label": "X"}]}')
        assert [n.id for n in document.nodes] == ["x"]
        editor.undo()
        assert [n.id for n in document.nodes] == ["root"]

    def test_export_then_import(self, editor, document):
        child = editor.add_child("root")
        payload = editor.export_graph()
        editor.delete_node(child.id)
        editor.import_graph(payload)
        assert edge_pairs(document) == [("root", child.id)]


class TestUndoRedo:
    """Tests for undo/redo through the editor."""

    def test_undo_redo_add_child(self, editor, document):
        child = editor.add_child("root")
        assert editor.undo()
        assert document.get_node(child.id) is None
        assert editor.redo()
        assert document.get_node(child.id) is not None

    def test_nothing_to_undo(self, editor):
        assert not editor.undo()
        assert not editor.redo()


def graph(document):
    return (
        [n.model_dump() for n in document.nodes],
        [e.model_dump() for e in document.edges],
    )


OPERATIONS = {
    "add_child": lambda editor, ids: editor.add_child(ids["a"]),
    "add_parent": lambda editor, ids: editor.add_parent(ids["b"]),
    "add_sibling": lambda editor, ids: editor.add_sibling(ids["b"]),
    "duplicate": lambda editor, ids: editor.duplicate(ids["a"]),
    "connect": lambda editor, ids: editor.connect(ids["b"], "root"),
    "toggle_portal": lambda editor, ids: editor.toggle_portal(ids["a"]),
    "apply_auto_layout": lambda editor, ids: editor.apply_auto_layout(),
    "move_node": lambda editor, ids: editor.move_node(ids["a"], 999, -999),
    "delete_node": lambda editor, ids: editor.delete_node(ids["a"]),
    "update_node": lambda editor, ids: editor.update_node(ids["b"], label="Renamed", color=NodeColor.ROSE),
    "delete_edge": lambda editor, ids: editor.delete_edge(ids["edge"]),
}


class TestUndoRedoInverse:
    """Undo restores the exact graph before an operation, redo the exact graph after it."""

    @pytest.mark.parametrize("mode", list(LayoutMode))
    @pytest.mark.parametrize("operation", sorted(OPERATIONS))
    def test_undo_then_redo(self, editor, document, mode, operation):
        editor.layout_mode = mode
        a = editor.add_child("root")
        b = editor.add_child(a.id)
        ids = {"a": a.id, "b": b.id, "edge": document.edges[0].id}

        before = graph(document)
        OPERATIONS[operation](editor, ids)
        after = graph(document)
        assert after != before

        assert editor.undo()
        assert graph(document) == before
        assert editor.redo()
        assert graph(document) == after

    @pytest.mark.parametrize("mode", list(LayoutMode))
    def test_repeated_undo_walks_back_to_start(self, editor, document, mode):
        editor.layout_mode = mode
        start = graph(document)
        child = editor.add_child("root")
        editor.add_sibling(child.id)
        editor.add_parent(child.id)
        editor.apply_auto_layout()

        while editor.undo():
            pass
        assert graph(document) == start


class TestLayoutAndDispatch:
    """Tests for auto-layout, command dispatch and key bindings."""

    def test_auto_layout(self, editor, document):
        child = editor.add_child("root")
        assert editor.apply_auto_layout()
        root = document.get_node("root")
        assert child.x > root.x
        assert child.y == root.y

    def test_auto_layout_empty(self, editor):
        editor.delete_node("root")
        assert not editor.apply_auto_layout()

    def test_dispatch(self, editor, document):
        node = editor.dispatch(NodeCommand(kind=CommandKind.ADD_CHILD, node_id="root"))
        assert edge_pairs(document) == [("root", node.id)]
        editor.dispatch(NodeCommand(kind="delete", node_id=node.id))
        assert document.get_node(node.id) is None

    def test_key_bindings(self, editor, document):
        child = editor.handle_key("Tab", "root")
        sibling = editor.handle_key("Enter", child.id)
        assert ("root", sibling.id) in edge_pairs(document)
        editor.handle_key("Delete", sibling.id)
        assert document.get_node(sibling.id) is None
        assert editor.handle_key("p", "root") is True

    def test_unbound_key(self, editor, history):
        assert editor.handle_key("q", "root") is None
        assert not history.can_undo

    def test_undo_redo_chords(self, editor, document):
        child = editor.add_child("root")
        assert editor.handle_key("Ctrl+Z") is True
        assert document.get_node(child.id) is None
        assert editor.handle_key("Ctrl+Shift+Z") is True
        assert document.get_node(child.id) is not None
        assert editor.handle_key("Meta+Z") is True
        assert editor.handle_key("Ctrl+Y") is True
        assert editor.handle_key("Ctrl+Y") is False

    def test_cut_deletes_selected_node(self, editor, document):
        child = editor.add_child("root")
        editor.handle_key("Meta+X", child.id)
        assert document.get_node(child.id) is None

    def test_node_binding_without_selection(self, editor, history):
        assert editor.handle_key("Tab") is None
        assert editor.handle_key("Ctrl+X") is None
        assert not history.can_undo

    @pytest.mark.parametrize("key,expected", [
        ("shift+cmd+z", "Meta+Shift+Z"),
        ("control+y", "Ctrl+Y"),
        ("Ctrl+Shift+Z", "Ctrl+Shift+Z"),
        ("p", "p"),
        ("+", "+"),
        ("Hyper+Z", "Hyper+Z"),
    ])
    def test_normalize_key(self, key, expected):
        assert normalize_key(key) == expected

    def test_change_callback(self, editor):
        calls = []
        editor.on_change(lambda: calls.append(1))
        editor.add_child("root")
        editor.undo()
        editor.undo()
        assert len(calls) == 2
