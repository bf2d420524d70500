"""
JSON interchange for a single document's graph.

The file format is `{"nodes": [...], "edges": [...]}`. Import tolerates
missing keys and the nested canvas export shape, and rejects anything that
does not parse into a consistent graph.
"""

import json
import logging
from typing import TYPE_CHECKING

from pydantic import ValidationError

from .errors import InvalidImport
from .models import GraphEdge, GraphNode
from .validation import IssueSeverity, validate_graph

if TYPE_CHECKING:
    from .models import Document


logger = logging.getLogger(__name__)


def export_graph(document: "Document") -> str:
    """Serialize a document's nodes and edges as pretty JSON."""
    return json.dumps({
        "nodes": [n.to_json_dict() for n in document.nodes],
        "edges": [e.to_json_dict() for e in document.edges],
    }, indent=2)


def parse_graph(payload: str | bytes) -> tuple[list[GraphNode], list[GraphEdge]]:
    """
    Parse an interchange payload.

    Missing `nodes`/`edges` keys default to empty lists.

    Raises:
        InvalidImport: malformed JSON, a non-object document, records that
            fail validation, or edges referencing nodes not in the payload
    """
    try:
        data = json.loads(payload)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        logger.warning("Rejected import: %s", e)
        raise InvalidImport(f"Invalid JSON: {e}") from e

    if not isinstance(data, dict):
        raise InvalidImport("Import must be a JSON object with 'nodes' and 'edges'")

    raw_nodes = data.get("nodes") or []
    raw_edges = data.get("edges") or []
    if not isinstance(raw_nodes, list) or not isinstance(raw_edges, list):
        raise InvalidImport("'nodes' and 'edges' must be lists")

    try:
        nodes = [GraphNode.model_validate(n) for n in raw_nodes]
        edges = [GraphEdge.model_validate(e) for e in raw_edges]
    except ValidationError as e:
        logger.warning("Rejected import: %d invalid records", e.error_count())
        raise InvalidImport(f"Invalid graph records: {e}") from e

    errors = [i for i in validate_graph(nodes, edges) if i.severity == IssueSeverity.ERROR]
    if errors:
        raise InvalidImport("; ".join(i.message for i in errors))

    return nodes, edges
