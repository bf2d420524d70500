"""
Automatic global layout for a document's node set.

Uses networkx for a layered (Sugiyama-style) layout:
- Cycle breaking by removing DFS back edges
- Rank assignment by longest path from the sources
- Node ordering within ranks by barycenter sweeps
- Coordinate assignment per layout mode preset

Each mode picks a rank direction and separations. After layout every node
is re-anchored so its footprint is centered on its computed cell center.
Layout functions modify nodes in-place.
"""

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import networkx as nx

from .models import LayoutMode

if TYPE_CHECKING:
    from .models import GraphNode, GraphEdge


logger = logging.getLogger(__name__)

LAYOUT_NODE_WIDTH = 200
LAYOUT_NODE_HEIGHT = 60
LAYOUT_MARGIN = 40
ORDERING_SWEEPS = 4


@dataclass(frozen=True)
class LayoutPreset:
    """Per-mode layout parameters."""
    direction: str   # "LR" (left-to-right) or "TB" (top-to-bottom)
    rank_sep: float  # Gap between consecutive ranks
    node_sep: float  # Gap between nodes within a rank


LAYOUT_PRESETS: dict[LayoutMode, LayoutPreset] = {
    LayoutMode.MINDMAP: LayoutPreset(direction="LR", rank_sep=140, node_sep=80),
    LayoutMode.ORGCHART: LayoutPreset(direction="TB", rank_sep=150, node_sep=120),
    LayoutMode.LOGIC: LayoutPreset(direction="LR", rank_sep=170, node_sep=120),
}


@dataclass
class LayoutResult:
    """Result of the layout algorithm."""
    ranks: dict[str, int] = field(default_factory=dict)
    layers: list[list[str]] = field(default_factory=list)
    centers: dict[str, tuple[float, float]] = field(default_factory=dict)
    back_edges: set[tuple[str, str]] = field(default_factory=set)

    @property
    def has_cycles(self) -> bool:
        return bool(self.back_edges)


def build_graph(nodes: list["GraphNode"], edges: list["GraphEdge"]) -> nx.DiGraph:
    """Build a DiGraph of the nodes, skipping self-loops and dangling edges."""
    graph = nx.DiGraph()
    for index, node in enumerate(nodes):
        graph.add_node(node.id, index=index)
    for edge in edges:
        if edge.source == edge.target:
            continue
        if edge.source in graph and edge.target in graph:
            graph.add_edge(edge.source, edge.target)
    return graph


def find_back_edges(graph: nx.DiGraph) -> set[tuple[str, str]]:
    """
    Find edges whose removal makes the graph acyclic.

    Iterative DFS starting from the sources (in insertion order), then from
    any node not yet reached. An edge into a node on the current DFS stack is
    a back edge.
    """
    order = list(graph.nodes())
    starts = [n for n in order if graph.in_degree(n) == 0] + order

    visited: set[str] = set()
    on_stack: set[str] = set()
    back_edges: set[tuple[str, str]] = set()

    for start in starts:
        if start in visited:
            continue
        visited.add(start)
        on_stack.add(start)
        stack = [(start, iter(graph.successors(start)))]

        while stack:
            node, children = stack[-1]
            for child in children:
                if child not in visited:
                    visited.add(child)
                    on_stack.add(child)
                    stack.append((child, iter(graph.successors(child))))
                    break
                if child in on_stack:
                    back_edges.add((node, child))
            else:
                stack.pop()
                on_stack.discard(node)

    return back_edges


def assign_ranks(graph: nx.DiGraph) -> dict[str, int]:
    """Longest-path rank assignment on an acyclic graph."""
    index = nx.get_node_attributes(graph, "index")
    ranks: dict[str, int] = {}
    for node in nx.lexicographical_topological_sort(graph, key=lambda n: index[n]):
        predecessors = list(graph.predecessors(node))
        ranks[node] = max((ranks[p] for p in predecessors), default=-1) + 1
    return ranks


def order_layers(graph: nx.DiGraph, ranks: dict[str, int]) -> list[list[str]]:
    """
    Group nodes by rank and order each rank to reduce edge crossings.
    Uses the barycenter heuristic, alternating downward and upward sweeps.
    """
    if not ranks:
        return []

    index = nx.get_node_attributes(graph, "index")
    layers: list[list[str]] = [[] for _ in range(max(ranks.values()) + 1)]
    for node in sorted(ranks, key=lambda n: index[n]):
        layers[ranks[node]].append(node)

    if len(layers) <= 1:
        return layers

    def slot_map() -> dict[str, int]:
        return {n: i for layer in layers for i, n in enumerate(layer)}

    def reorder(layer: list[str], neighbors, slots: dict[str, int]) -> list[str]:
        def barycenter(node: str) -> float:
            linked = [slots[n] for n in neighbors(node)]
            if not linked:
                return float(slots[node])
            return sum(linked) / len(linked)
        return sorted(layer, key=barycenter)

    for _ in range(ORDERING_SWEEPS):
        for i in range(1, len(layers)):
            layers[i] = reorder(layers[i], graph.predecessors, slot_map())
        for i in range(len(layers) - 2, -1, -1):
            layers[i] = reorder(layers[i], graph.successors, slot_map())

    return layers


def compute_layout(
    nodes: list["GraphNode"],
    edges: list["GraphEdge"],
    mode: LayoutMode,
) -> LayoutResult:
    """
    Compute cell centers for every node without moving anything.

    Args:
        nodes: Nodes to lay out
        edges: Edges defining the ranks
        mode: Layout mode selecting direction and separations

    Returns:
        LayoutResult with ranks, ordered layers and cell centers
    """
    result = LayoutResult()
    if not nodes:
        return result

    preset = LAYOUT_PRESETS[LayoutMode(mode)]
    graph = build_graph(nodes, edges)

    result.back_edges = find_back_edges(graph)
    working = graph.copy()
    working.remove_edges_from(result.back_edges)

    result.ranks = assign_ranks(working)
    result.layers = order_layers(working, result.ranks)

    if preset.direction == "LR":
        rank_size, cell_size = LAYOUT_NODE_WIDTH, LAYOUT_NODE_HEIGHT
    else:
        rank_size, cell_size = LAYOUT_NODE_HEIGHT, LAYOUT_NODE_WIDTH

    def extent(count: int) -> float:
        return count * cell_size + max(count - 1, 0) * preset.node_sep

    widest = max(extent(len(layer)) for layer in result.layers)

    for rank, layer in enumerate(result.layers):
        rank_center = LAYOUT_MARGIN + rank * (rank_size + preset.rank_sep) + rank_size / 2
        # Center each rank against the widest one
        offset = (widest - extent(len(layer))) / 2
        for slot, node_id in enumerate(layer):
            cross_center = (
                LAYOUT_MARGIN + offset + slot * (cell_size + preset.node_sep) + cell_size / 2
            )
            if preset.direction == "LR":
                result.centers[node_id] = (rank_center, cross_center)
            else:
                result.centers[node_id] = (cross_center, rank_center)

    return result


def apply_layout(
    nodes: list["GraphNode"],
    edges: list["GraphEdge"],
    mode: LayoutMode,
) -> LayoutResult:
    """
    Lay out all nodes and move them into place.

    A node's position is its top-left anchor, so it is set to the cell center
    minus half the layout footprint. No-op on an empty node set.
    """
    result = compute_layout(nodes, edges, mode)

    for node in nodes:
        cx, cy = result.centers[node.id]
        node.x = cx - LAYOUT_NODE_WIDTH / 2
        node.y = cy - LAYOUT_NODE_HEIGHT / 2

    if nodes:
        logger.debug(
            "Laid out %d nodes in %d ranks (%s)", len(nodes), len(result.layers), LayoutMode(mode).value
        )
    return result
