#!/usr/bin/env python3
"""
Mind Map Tool MCP Server

Provides MCP tools for AI agents to build and navigate mind maps.
All changes are immediately reflected in the frontend via WebSocket updates.
"""

import json
import os
from typing import Optional

import httpx
from mcp.server.fastmcp import FastMCP

# Backend API URL
API_BASE = os.environ.get("MINDMAP_API_URL", "http://127.0.0.1:8765/api")

# Create MCP server
mcp = FastMCP("mindmap-tool")


# --- HTTP Client Helper ---

def api_request(method: str, endpoint: str, **kwargs) -> dict:
    """Make a request to the mind map backend."""
    url = f"{API_BASE}{endpoint}"
    with httpx.Client(timeout=30.0) as client:
        response = client.request(method, url, json=kwargs.get("json"), params=kwargs.get("params"))

        if response.status_code >= 400:
            error = response.json().get("detail", "Unknown error")
            raise RuntimeError(f"API error: {error}")

        if response.headers.get("content-type", "").startswith("application/json"):
            return response.json()
        return {"content": response.text}


def _dump(result: dict) -> str:
    return json.dumps(result, indent=2)


# ============================================================================
# STATE & DOCUMENT TOOLS
# ============================================================================

@mcp.tool()
def mindmap_get_state() -> str:
    """
    Get the full application state.

    Returns every document, the breadcrumb, the layout mode and the active
    document's nodes and edges. Call this before making changes.
    """
    return _dump(api_request("GET", "/state"))


@mcp.tool()
def mindmap_list_documents() -> str:
    """
    List documents in sidebar order (pinned first, newest first).

    Nested sub-documents follow their parent with a higher `depth`.
    """
    return _dump(api_request("GET", "/documents"))


@mcp.tool()
def mindmap_create_document(name: Optional[str] = None) -> str:
    """
    Create a new top-level document and switch to it.

    Args:
        name: Document name (defaults to "Untitled Map")
    """
    return _dump(api_request("POST", "/documents", json={"name": name}))


@mcp.tool()
def mindmap_open_document(document_id: str) -> str:
    """
    Make a document active, resetting the breadcrumb to it.

    Args:
        document_id: ID of the document to open
    """
    return _dump(api_request("POST", f"/documents/{document_id}/activate"))


@mcp.tool()
def mindmap_rename_document(document_id: str, name: str) -> str:
    """
    Rename a document.

    Args:
        document_id: ID of the document
        name: New name (blank names are ignored)
    """
    return _dump(api_request("PATCH", f"/documents/{document_id}", json={"name": name}))


@mcp.tool()
def mindmap_delete_document(document_id: str) -> str:
    """
    Delete a document together with every sub-document nested under it.

    Args:
        document_id: ID of the document to delete
    """
    return _dump(api_request("DELETE", f"/documents/{document_id}"))


# ============================================================================
# NODE TOOLS
# ============================================================================

@mcp.tool()
def mindmap_add_node(label: str = "New Node", x: float = 0, y: float = 0) -> str:
    """
    Add an unconnected node to the active document.

    Args:
        label: Display text
        x: X coordinate on canvas
        y: Y coordinate on canvas
    """
    return _dump(api_request("POST", "/nodes", json={"label": label, "x": x, "y": y}))


@mcp.tool()
def mindmap_run_command(command: str, node_id: str) -> str:
    """
    Run a structural command on a node of the active document.

    New nodes are placed by the current layout mode and pushed clear of
    overlapping neighbours.

    Args:
        command: One of addChild, addParent, addSibling, duplicate, delete, togglePortal
        node_id: ID of the node the command applies to
    """
    return _dump(api_request("POST", "/commands", json={"kind": command, "node_id": node_id}))


@mcp.tool()
def mindmap_update_node(node_id: str, label: Optional[str] = None, color: Optional[str] = None) -> str:
    """
    Edit a node's label and/or color.

    Args:
        node_id: ID of the node
        label: New label
        color: Palette name (default, indigo, violet, rose, amber, emerald, cyan, pink, sky)
    """
    payload = {k: v for k, v in {"label": label, "color": color}.items() if v is not None}
    return _dump(api_request("PATCH", f"/nodes/{node_id}", json=payload))


@mcp.tool()
def mindmap_open_portal(node_id: str) -> str:
    """
    Enter the sub-document behind a portal node.

    Args:
        node_id: ID of a portal node in the active document
    """
    return _dump(api_request("POST", f"/nodes/{node_id}/open"))


@mcp.tool()
def mindmap_go_back() -> str:
    """Leave the current sub-document and return to its parent."""
    return _dump(api_request("POST", "/breadcrumb/pop"))


# ============================================================================
# EDGE TOOLS
# ============================================================================

@mcp.tool()
def mindmap_connect(source: str, target: str) -> str:
    """
    Connect two nodes of the active document.

    Args:
        source: Source node ID
        target: Target node ID
    """
    return _dump(api_request("POST", "/edges", json={"source": source, "target": target}))


@mcp.tool()
def mindmap_delete_edge(edge_id: str) -> str:
    """
    Delete an edge.

    Args:
        edge_id: ID of the edge to delete
    """
    return _dump(api_request("DELETE", f"/edges/{edge_id}"))


# ============================================================================
# LAYOUT, HISTORY & INTERCHANGE
# ============================================================================

@mcp.tool()
def mindmap_set_layout_mode(mode: str) -> str:
    """
    Switch the layout mode used for placing new nodes and auto-layout.

    Args:
        mode: mindmap, orgchart or logic
    """
    return _dump(api_request("PUT", "/settings/layout-mode", json={"mode": mode}))


@mcp.tool()
def mindmap_auto_layout() -> str:
    """Re-arrange the active document with the current layout mode."""
    return _dump(api_request("POST", "/layout"))


@mcp.tool()
def mindmap_undo() -> str:
    """Undo the last change to the active document."""
    return _dump(api_request("POST", "/undo"))


@mcp.tool()
def mindmap_redo() -> str:
    """Redo the last undone change."""
    return _dump(api_request("POST", "/redo"))


@mcp.tool()
def mindmap_export() -> str:
    """Export the active document as `{nodes, edges}` JSON."""
    return _dump(api_request("GET", "/export"))


@mcp.tool()
def mindmap_import(payload: str) -> str:
    """
    Replace the active document's graph with `{nodes, edges}` JSON.

    Args:
        payload: The JSON text to import
    """
    return _dump(api_request("POST", "/import", json={"payload": payload}))


@mcp.tool()
def mindmap_validate() -> str:
    """
    Check every document for structural problems.

    Reports dangling edges, self-loops, duplicate edges, portals without a
    sub-document and broken parent links.
    """
    return _dump(api_request("GET", "/validate"))


# ============================================================================
# MAIN
# ============================================================================

if __name__ == "__main__":
    mcp.run()
