"""
Mind map validation - Check documents and state for structural issues.

Provides validation used by the import path, the backend and the tests to
ensure graph integrity.
"""

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .models import AppState, Document, GraphEdge, GraphNode


class IssueSeverity(str, Enum):
    """Severity levels for validation issues."""
    ERROR = "error"      # Invalid state, must be fixed
    WARNING = "warning"  # Potential problem, should review
    INFO = "info"        # Informational, may be intentional


@dataclass
class ValidationIssue:
    """A single validation issue."""
    severity: IssueSeverity
    message: str
    node_id: str | None = None
    edge_id: str | None = None
    document_id: str | None = None

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        result = {
            "type": self.severity.value,
            "message": self.message
        }
        if self.node_id:
            result["node_id"] = self.node_id
        if self.edge_id:
            result["edge_id"] = self.edge_id
        if self.document_id:
            result["document_id"] = self.document_id
        return result


def validate_graph(nodes: list["GraphNode"], edges: list["GraphEdge"]) -> list[ValidationIssue]:
    """
    Validate a node/edge set and return a list of issues.

    Checks for:
    - Empty graph - INFO
    - Duplicate node ids - ERROR
    - Invalid edge references (source/target doesn't exist) - ERROR
    - Self-referencing edges - WARNING
    - Duplicate edges (same source->target) - WARNING
    - Portal flag without a sub-document - WARNING
    """
    issues: list[ValidationIssue] = []

    if not nodes:
        issues.append(ValidationIssue(
            severity=IssueSeverity.INFO,
            message="Graph has no nodes"
        ))

    node_ids: set[str] = set()
    for node in nodes:
        if node.id in node_ids:
            issues.append(ValidationIssue(
                severity=IssueSeverity.ERROR,
                message=f"Duplicate node id: {node.id}",
                node_id=node.id
            ))
        node_ids.add(node.id)

        if node.is_portal and not node.sub_document_id:
            issues.append(ValidationIssue(
                severity=IssueSeverity.WARNING,
                message="Portal node has no sub-document",
                node_id=node.id
            ))

    for edge in edges:
        if edge.source not in node_ids:
            issues.append(ValidationIssue(
                severity=IssueSeverity.ERROR,
                message=f"Edge references non-existent source node: {edge.source}",
                edge_id=edge.id
            ))
        if edge.target not in node_ids:
            issues.append(ValidationIssue(
                severity=IssueSeverity.ERROR,
                message=f"Edge references non-existent target node: {edge.target}",
                edge_id=edge.id
            ))

    for edge in edges:
        if edge.source == edge.target:
            issues.append(ValidationIssue(
                severity=IssueSeverity.WARNING,
                message="Self-referencing edge (node points to itself)",
                edge_id=edge.id,
                node_id=edge.source
            ))

    seen_pairs: set[tuple[str, str]] = set()
    for edge in edges:
        pair = (edge.source, edge.target)
        if pair in seen_pairs:
            issues.append(ValidationIssue(
                severity=IssueSeverity.WARNING,
                message=f"Duplicate edge from {edge.source} to {edge.target}",
                edge_id=edge.id
            ))
        else:
            seen_pairs.add(pair)

    return issues


def validate_document(document: "Document") -> list[ValidationIssue]:
    """Validate one document's graph, tagging issues with its id."""
    issues = validate_graph(document.nodes, document.edges)
    for issue in issues:
        issue.document_id = document.id
    return issues


def validate_state(state: "AppState") -> list[ValidationIssue]:
    """
    Validate every document plus the cross-document invariants.

    Checks for:
    - Per-document graph issues
    - Dangling parent document references - ERROR
    - More than one document per portal node - ERROR
    - Portal node pointing at a missing document - ERROR
    - Active document missing - ERROR
    """
    issues: list[ValidationIssue] = []
    document_ids = {d.id for d in state.documents}

    for document in state.documents:
        issues.extend(validate_document(document))
        for node in document.nodes:
            if node.is_portal and node.sub_document_id and node.sub_document_id not in document_ids:
                issues.append(ValidationIssue(
                    severity=IssueSeverity.ERROR,
                    message=f"Portal node points to missing document: {node.sub_document_id}",
                    node_id=node.id,
                    document_id=document.id
                ))

    owners: dict[tuple[str, str], str] = {}
    for document in state.documents:
        if document.parent_document_id is None:
            continue
        if document.parent_document_id not in document_ids:
            issues.append(ValidationIssue(
                severity=IssueSeverity.ERROR,
                message=f"Parent document not found: {document.parent_document_id}",
                document_id=document.id
            ))
        if document.parent_node_id is None:
            continue
        key = (document.parent_document_id, document.parent_node_id)
        if key in owners:
            issues.append(ValidationIssue(
                severity=IssueSeverity.ERROR,
                message=f"Portal node {document.parent_node_id} owns more than one document",
                node_id=document.parent_node_id,
                document_id=document.id
            ))
        else:
            owners[key] = document.id

    if state.active_document_id is not None and state.active_document_id not in document_ids:
        issues.append(ValidationIssue(
            severity=IssueSeverity.ERROR,
            message=f"Active document not found: {state.active_document_id}",
            document_id=state.active_document_id
        ))

    return issues


def has_errors(issues: list[ValidationIssue]) -> bool:
    return any(i.severity == IssueSeverity.ERROR for i in issues)


def validation_summary(issues: list[ValidationIssue]) -> dict:
    """
    Create a summary of validation issues.

    Args:
        issues: List of validation issues

    Returns:
        Dictionary with counts by severity
    """
    return {
        "total": len(issues),
        "errors": len([i for i in issues if i.severity == IssueSeverity.ERROR]),
        "warnings": len([i for i in issues if i.severity == IssueSeverity.WARNING]),
        "info": len([i for i in issues if i.severity == IssueSeverity.INFO]),
        "valid": not has_errors(issues)
    }
