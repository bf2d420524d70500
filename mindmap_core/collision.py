"""
Collision resolution for node sets.

Treats every node as an axis-aligned rectangle of a fixed approximate
footprint and pushes overlapping nodes apart along a mode-dependent axis:
- Orgchart: horizontally (siblings share a row)
- Mindmap and logic: vertically

This is a best-effort relaxation, not a packer. It always terminates within
MAX_PASSES passes but may leave residual overlap in crowded regions.
Nodes are modified in-place.
"""

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

from .models import LayoutMode

if TYPE_CHECKING:
    from .models import GraphNode


logger = logging.getLogger(__name__)

APPROX_NODE_WIDTH = 240
APPROX_NODE_HEIGHT = 120
COLLISION_PADDING = 40
MAX_PASSES = 20


@dataclass(frozen=True)
class Rect:
    """An axis-aligned node footprint."""
    x1: float
    y1: float
    x2: float
    y2: float

    @classmethod
    def of(cls, node: "GraphNode") -> "Rect":
        return cls(node.x, node.y, node.x + APPROX_NODE_WIDTH, node.y + APPROX_NODE_HEIGHT)

    @property
    def center(self) -> tuple[float, float]:
        return ((self.x1 + self.x2) / 2, (self.y1 + self.y2) / 2)

    def overlaps(self, other: "Rect") -> bool:
        """Strict overlap; rectangles that only touch do not collide."""
        return (
            self.x1 < other.x2 and self.x2 > other.x1
            and self.y1 < other.y2 and self.y2 > other.y1
        )


@dataclass
class CollisionResult:
    """Outcome of a resolver run."""
    passes: int = 0
    moves: int = 0
    settled: bool = False  # A full pass produced no movement


def push_axis(mode: LayoutMode) -> str:
    """The axis along which overlapping nodes are displaced."""
    return "x" if LayoutMode(mode) == LayoutMode.ORGCHART else "y"


def resolve_collisions(
    nodes: list["GraphNode"],
    mode: LayoutMode,
    locked_id: Optional[str] = None,
    max_passes: int = MAX_PASSES,
) -> CollisionResult:
    """
    Push overlapping nodes apart.

    Each pass examines every ordered pair (i, j). When their footprints
    overlap, node j moves away from node i by exactly one footprint plus
    padding: right/down if j's center is at or beyond i's center on the push
    axis, else left/up. The locked node is never moved, but still pushes
    others.

    Args:
        nodes: Nodes to resolve (modified in-place)
        mode: Layout mode selecting the push axis
        locked_id: Optional node exempt from being moved
        max_passes: Pass budget

    Returns:
        CollisionResult with the number of passes run and moves made
    """
    result = CollisionResult()
    axis = push_axis(mode)
    step = (
        APPROX_NODE_WIDTH + COLLISION_PADDING
        if axis == "x"
        else APPROX_NODE_HEIGHT + COLLISION_PADDING
    )

    for _ in range(max_passes):
        result.passes += 1
        moved = False

        for i, a in enumerate(nodes):
            for j, b in enumerate(nodes):
                if i == j:
                    continue
                if locked_id is not None and b.id == locked_id:
                    continue

                rect_a = Rect.of(a)
                rect_b = Rect.of(b)
                if not rect_a.overlaps(rect_b):
                    continue

                (ax, ay), (bx, by) = rect_a.center, rect_b.center
                if axis == "x":
                    b.x += step if bx >= ax else -step
                else:
                    b.y += step if by >= ay else -step

                result.moves += 1
                moved = True

        if not moved:
            result.settled = True
            break

    logger.debug(
        "Collision pass finished: %d passes, %d moves", result.passes, result.moves
    )
    return result


def find_overlaps(nodes: list["GraphNode"]) -> list[tuple[str, str]]:
    """List unordered pairs of node ids whose footprints overlap."""
    pairs = []
    for i, a in enumerate(nodes):
        for b in nodes[i + 1:]:
            if Rect.of(a).overlaps(Rect.of(b)):
                pairs.append((a.id, b.id))
    return pairs
