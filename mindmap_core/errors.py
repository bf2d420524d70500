"""
Error hierarchy for mind map operations.

Every error subclasses ValueError as well as MindMapError, so callers that
only care about "bad input" can keep catching ValueError.
"""


class MindMapError(Exception):
    """Base for all mind map errors."""


class ReferenceNotFound(MindMapError, ValueError):
    """A node, edge or document id is absent from the current state."""

    def __init__(self, kind: str, ref_id: str):
        self.kind = kind
        self.ref_id = ref_id
        super().__init__(f"{kind.capitalize()} not found: {ref_id}")


class InvalidImport(MindMapError, ValueError):
    """An import payload could not be parsed into a graph."""


class InvalidConnection(MindMapError, ValueError):
    """A connect request that would produce an illegal edge (self-loop)."""


class PortalConflict(MindMapError, ValueError):
    """A portal node already owns a child document."""
