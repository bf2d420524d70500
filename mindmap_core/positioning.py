"""
Placement strategies for newly created nodes.

Pure functions that compute where a new node should appear relative to an
existing one, one geometry per layout mode:
- Mindmap (radial): children on a circle around the parent
- Orgchart (tiered-horizontal): children on a row below the parent
- Logic (stacked-vertical): children in a column to the right of the parent

All functions are deterministic: the same reference node, sibling count and
mode always give the same position.
"""

import math
from typing import TYPE_CHECKING, Optional

from .models import EdgeType, Handle, LayoutMode

if TYPE_CHECKING:
    from .models import GraphNode


# Radial placement
RADIAL_RADIUS = 200
RADIAL_MIN_SLOTS = 6
RADIAL_START_ANGLE = -math.pi / 2  # Directly above the parent

# Tiered placement
ORGCHART_GAP_X = 280
ORGCHART_GAP_Y = 170

# Stacked placement
LOGIC_GAP_X = 300
LOGIC_GAP_Y = 120

# Sibling fallback offsets when the selected node has no parent edge
SIBLING_OFFSETS: dict[LayoutMode, tuple[float, float]] = {
    LayoutMode.MINDMAP: (0, 120),
    LayoutMode.ORGCHART: (280, 0),
    LayoutMode.LOGIC: (0, 120),
}

# New parents go above the node, or before it in left-to-right modes
PARENT_OFFSETS: dict[LayoutMode, tuple[float, float]] = {
    LayoutMode.MINDMAP: (0, -150),
    LayoutMode.ORGCHART: (0, -150),
    LayoutMode.LOGIC: (-LOGIC_GAP_X, 0),
}

DUPLICATE_OFFSET = (40, 40)


def child_position(
    parent: "GraphNode",
    sibling_count: int,
    mode: LayoutMode,
) -> tuple[float, float]:
    """
    Compute the position of a new child of `parent`.

    Args:
        parent: The node receiving the child
        sibling_count: Number of children the parent already has
        mode: Layout mode selecting the geometry

    Returns:
        (x, y) for the new child
    """
    mode = LayoutMode(mode)

    if mode == LayoutMode.MINDMAP:
        # Fewer than RADIAL_MIN_SLOTS children keep the generous spacing
        angle_step = 2 * math.pi / max(sibling_count + 1, RADIAL_MIN_SLOTS)
        angle = RADIAL_START_ANGLE + angle_step * sibling_count
        return (
            parent.x + math.cos(angle) * RADIAL_RADIUS,
            parent.y + math.sin(angle) * RADIAL_RADIUS,
        )

    if mode == LayoutMode.ORGCHART:
        # Center the span of sibling_count + 1 slots under the parent
        start_x = parent.x - (sibling_count * ORGCHART_GAP_X) / 2
        return (
            start_x + sibling_count * ORGCHART_GAP_X,
            parent.y + ORGCHART_GAP_Y,
        )

    # LOGIC
    start_y = parent.y - (sibling_count * LOGIC_GAP_Y) / 2
    return (
        parent.x + LOGIC_GAP_X,
        start_y + sibling_count * LOGIC_GAP_Y,
    )


def sibling_position(
    selected: "GraphNode",
    mode: LayoutMode,
    parent: Optional["GraphNode"] = None,
    parent_child_count: int = 0,
) -> tuple[float, float]:
    """
    Compute the position of a new sibling of `selected`.

    When the selected node has a parent, the sibling is placed as one more
    child of that parent; otherwise it gets a small fixed offset.
    """
    if parent is not None:
        return child_position(parent, parent_child_count, mode)

    dx, dy = SIBLING_OFFSETS[LayoutMode(mode)]
    return (selected.x + dx, selected.y + dy)


def parent_position(node: "GraphNode", mode: LayoutMode) -> tuple[float, float]:
    """Compute the position of a new parent spliced in above `node`."""
    dx, dy = PARENT_OFFSETS[LayoutMode(mode)]
    return (node.x + dx, node.y + dy)


def duplicate_position(node: "GraphNode") -> tuple[float, float]:
    dx, dy = DUPLICATE_OFFSET
    return (node.x + dx, node.y + dy)


def edge_template(mode: LayoutMode) -> dict:
    """
    Mode-appropriate edge styling and anchor handles.

    Orthogonal modes pin the sides edges leave and enter; the radial mode
    leaves handles unset so the renderer picks the nearest side.
    """
    mode = LayoutMode(mode)
    if mode == LayoutMode.ORGCHART:
        return {
            "type": EdgeType.STEP.value,
            "source_handle": Handle.BOTTOM,
            "target_handle": Handle.TOP,
        }
    if mode == LayoutMode.LOGIC:
        return {
            "type": EdgeType.STEP.value,
            "source_handle": Handle.RIGHT,
            "target_handle": Handle.LEFT,
        }
    return {
        "type": EdgeType.SMOOTHSTEP.value,
        "source_handle": None,
        "target_handle": None,
    }
