"""Unit tests for new-node placement."""

import math

import pytest

from mindmap_core import GraphNode, Handle, LayoutMode, child_position, edge_template, parent_position, sibling_position
from mindmap_core.positioning import RADIAL_RADIUS, duplicate_position


@pytest.fixture
def parent():
    return GraphNode(id="p", x=100, y=50)


class TestRadialPlacement:
    """Tests for the mindmap (radial) geometry."""

    def test_first_child_directly_above(self, parent):
        x, y = child_position(parent, 0, LayoutMode.MINDMAP)
        assert x == pytest.approx(100)
        assert y == pytest.approx(50 - RADIAL_RADIUS)

    def test_second_child_sixty_degrees_on(self, parent):
        x, y = child_position(parent, 1, LayoutMode.MINDMAP)
        angle = -math.pi / 2 + math.pi / 3
        assert x == pytest.approx(100 + math.cos(angle) * 200)
        assert y == pytest.approx(50 + math.sin(angle) * 200)

    def test_crowded_parent_shrinks_step(self, parent):
        # Seventh child: the circle is split into seven slots
        x, y = child_position(parent, 6, LayoutMode.MINDMAP)
        angle = -math.pi / 2 + (2 * math.pi / 7) * 6
        assert x == pytest.approx(100 + math.cos(angle) * 200)
        assert y == pytest.approx(50 + math.sin(angle) * 200)

    def test_children_stay_on_circle(self, parent):
        for count in range(10):
            x, y = child_position(parent, count, LayoutMode.MINDMAP)
            assert math.hypot(x - parent.x, y - parent.y) == pytest.approx(RADIAL_RADIUS)


class TestTieredPlacement:
    """Tests for the orgchart geometry."""

    def test_first_child_below(self, parent):
        assert child_position(parent, 0, LayoutMode.ORGCHART) == (100, 220)

    def test_later_children_move_right(self, parent):
        assert child_position(parent, 1, LayoutMode.ORGCHART) == (240, 220)
        assert child_position(parent, 2, LayoutMode.ORGCHART) == (380, 220)


class TestStackedPlacement:
    """Tests for the logic geometry."""

    def test_first_child_right(self, parent):
        assert child_position(parent, 0, LayoutMode.LOGIC) == (400, 50)

    def test_later_children_move_down(self, parent):
        assert child_position(parent, 1, LayoutMode.LOGIC) == (400, 110)
        assert child_position(parent, 2, LayoutMode.LOGIC) == (400, 170)


class TestOtherPlacements:
    """Tests for sibling, parent and duplicate offsets."""

    def test_placement_is_deterministic(self, parent):
        for mode in LayoutMode:
            assert child_position(parent, 3, mode) == child_position(parent, 3, mode)

    def test_sibling_with_parent_is_next_child(self, parent):
        selected = GraphNode(id="s", x=0, y=0)
        assert sibling_position(selected, LayoutMode.ORGCHART, parent=parent, parent_child_count=1) == \
            child_position(parent, 1, LayoutMode.ORGCHART)

    def test_sibling_without_parent_uses_offset(self):
        selected = GraphNode(id="s", x=10, y=10)
        assert sibling_position(selected, LayoutMode.MINDMAP) == (10, 130)
        assert sibling_position(selected, LayoutMode.ORGCHART) == (290, 10)
        assert sibling_position(selected, LayoutMode.LOGIC) == (10, 130)

    def test_parent_position(self, parent):
        assert parent_position(parent, LayoutMode.MINDMAP) == (100, -100)
        assert parent_position(parent, LayoutMode.LOGIC) == (-200, 50)

    def test_duplicate_position(self, parent):
        assert duplicate_position(parent) == (140, 90)


class TestEdgeTemplate:
    """Tests for mode-dependent edge styling."""

    def test_mindmap_leaves_handles_unset(self):
        template = edge_template(LayoutMode.MINDMAP)
        assert template["type"] == "smoothstep"
        assert template["source_handle"] is None

    def test_orgchart_bottom_to_top(self):
        template = edge_template(LayoutMode.ORGCHART)
        assert template["type"] == "step"
        assert (template["source_handle"], template["target_handle"]) == (Handle.BOTTOM, Handle.TOP)

    def test_logic_right_to_left(self):
        template = edge_template("logic")
        assert (template["source_handle"], template["target_handle"]) == (Handle.RIGHT, Handle.LEFT)
