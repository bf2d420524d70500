"""
Mind Map Tool Backend - FastAPI Application

This is the main entry point for the mind map backend.
It provides:
- REST API for document, node and edge operations, undo/redo and import/export
- WebSocket endpoint streaming change events
- CORS configuration for local frontend development
"""
import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, WebSocket, WebSocketDisconnect, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse

from mindmap_core import (
    BreadcrumbNavigateRequest, BreadcrumbPushRequest, ConnectRequest,
    CreateDocumentRequest, CreateNodeRequest, GraphNode, ImportRequest,
    KeyPressRequest, LayoutModeRequest, MindMapError, MoveNodeRequest,
    NodeCommand, ReferenceNotFound, RenameDocumentRequest,
    ReorderDocumentsRequest, UpdateNodeRequest,
)
from mindmap_core.validation import validation_summary

from .config import settings
from .manager import MindMapManager, mindmap_manager
from .live import LiveChannel


logger = logging.getLogger(__name__)


def _command_result(result) -> dict:
    """Shape a dispatch/key result for the response body."""
    if isinstance(result, GraphNode):
        return {"node": result.to_json_dict()}
    if isinstance(result, bool):
        return {"value": result}
    return {}


def create_app(manager: MindMapManager) -> FastAPI:
    """Build the API around one manager instance."""
    channel = LiveChannel()
    # Registered once per app; the channel drops events while the server is down
    manager.on_change(channel.emit)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Lifespan handler for startup/shutdown tasks."""
        manager.load()
        pump = channel.start()

        yield

        channel.stop()
        pump.cancel()
        try:
            await pump
        except asyncio.CancelledError:
            pass
        await manager.wait_for_save()
        if manager.flush():
            logger.info("Flushed pending save on shutdown")

    app = FastAPI(
        title="Mind Map Tool API",
        description="Backend API for the hierarchical mind map editor",
        version="1.0.0",
        lifespan=lifespan
    )
    app.state.manager = manager
    app.state.channel = channel

    # CORS for local development
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # --- Error mapping ---

    @app.exception_handler(ReferenceNotFound)
    async def not_found_handler(request: Request, exc: ReferenceNotFound):
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.exception_handler(MindMapError)
    async def mindmap_error_handler(request: Request, exc: MindMapError):
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError):
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    def editor():
        # load() rebuilds the editor, so never hold on to one
        return manager.editor

    # --- Health Check ---

    @app.get("/api/health")
    async def health_check():
        """Health check endpoint."""
        return {"status": "ok", "connections": channel.connection_count}

    # --- State ---

    @app.get("/api/state")
    async def get_state():
        """Get the full application state plus the active document."""
        return manager.get_state()

    # --- Documents ---

    @app.get("/api/documents")
    async def list_documents():
        """List documents in sidebar order."""
        return {"success": True, "documents": manager.list_documents()}

    @app.post("/api/documents")
    async def create_document(request: CreateDocumentRequest):
        """Create a document and make it active."""
        document = manager.create_document(
            name=request.name,
            parent_document_id=request.parent_document_id,
            parent_node_id=request.parent_node_id
        )
        return {"success": True, "document": document.to_json_dict()}

    # Reorder MUST be before the parameterized routes
    @app.post("/api/documents/reorder")
    async def reorder_documents(request: ReorderDocumentsRequest):
        """Move a document to another's position in the sidebar."""
        moved = manager.reorder_documents(request.source_id, request.target_id)
        return {"success": moved}

    @app.patch("/api/documents/{document_id}")
    async def rename_document(document_id: str, request: RenameDocumentRequest):
        """Rename a document. Blank names are ignored."""
        renamed = manager.rename_document(document_id, request.name)
        document = manager.hierarchy.get_document(document_id)
        return {"success": renamed, "document": document.to_json_dict()}

    @app.delete("/api/documents/{document_id}")
    async def delete_document(document_id: str):
        """Delete a document and every document nested under it."""
        deleted = manager.delete_document(document_id)
        return {"success": True, "deleted": deleted,
                "active_document_id": manager.state.active_document_id}

    @app.post("/api/documents/{document_id}/pin")
    async def toggle_pin(document_id: str):
        """Pin or unpin a document."""
        return {"success": True, "pinned": manager.toggle_pin(document_id)}

    @app.post("/api/documents/{document_id}/activate")
    async def activate_document(document_id: str):
        """Open a document from the sidebar (resets the breadcrumb)."""
        manager.set_active_document(document_id)
        return {"success": True, "breadcrumb": manager.state.breadcrumb}

    # --- Breadcrumb ---

    @app.post("/api/breadcrumb/push")
    async def push_breadcrumb(request: BreadcrumbPushRequest):
        manager.push_breadcrumb(request.document_id)
        return {"success": True, "breadcrumb": manager.state.breadcrumb}

    @app.post("/api/breadcrumb/pop")
    async def pop_breadcrumb():
        popped = manager.pop_breadcrumb()
        return {"success": popped, "breadcrumb": manager.state.breadcrumb}

    @app.post("/api/breadcrumb/navigate")
    async def navigate_breadcrumb(request: BreadcrumbNavigateRequest):
        moved = manager.navigate_to(request.index)
        return {"success": moved, "breadcrumb": manager.state.breadcrumb}

    # --- Undo/Redo ---

    @app.post("/api/undo")
    async def undo():
        """Undo the last action on the active document."""
        if editor().undo():
            return {"success": True, "document": manager.active_document.to_json_dict()}
        return {"success": False, "message": "Nothing to undo"}

    @app.post("/api/redo")
    async def redo():
        """Redo the last undone action on the active document."""
        if editor().redo():
            return {"success": True, "document": manager.active_document.to_json_dict()}
        return {"success": False, "message": "Nothing to redo"}

    # --- Node Operations ---

    @app.post("/api/nodes")
    async def create_node(request: CreateNodeRequest):
        """Create an unconnected node (pane double-click)."""
        node = editor().add_root_node(request.x, request.y, request.label)
        return {"success": True, "node": node.to_json_dict()}

    @app.patch("/api/nodes/{node_id}")
    async def update_node(node_id: str, request: UpdateNodeRequest):
        """Edit a node's label or color."""
        node = editor().update_node(node_id, label=request.label, color=request.color)
        return {"success": True, "node": node.to_json_dict()}

    @app.post("/api/nodes/{node_id}/move")
    async def move_node(node_id: str, request: MoveNodeRequest):
        """Commit a drag."""
        node = editor().move_node(node_id, request.x, request.y)
        return {"success": True, "node": node.to_json_dict()}

    @app.post("/api/nodes/{node_id}/open")
    async def open_portal(node_id: str):
        """Enter the document behind a portal node."""
        document_id = editor().open_portal(node_id)
        if document_id is None:
            return {"success": False, "message": "Node is not a portal"}
        return {"success": True, "document_id": document_id,
                "breadcrumb": manager.state.breadcrumb}

    @app.post("/api/commands")
    async def run_command(command: NodeCommand):
        """Run a structural node command (add child/parent/sibling, duplicate, delete, portal)."""
        result = editor().dispatch(command)
        return {"success": True, "command": command.kind.value, **_command_result(result)}

    @app.post("/api/keys")
    async def press_key(request: KeyPressRequest):
        """Run the shortcut bound to a key: undo/redo, or a command on the selected node."""
        result = editor().handle_key(request.key, request.node_id)
        if result is None:
            return {"success": False, "message": f"Nothing bound to {request.key} here"}
        return {"success": True, **_command_result(result)}

    # --- Edge Operations ---

    @app.post("/api/edges")
    async def create_edge(request: ConnectRequest):
        """Connect two nodes."""
        edge = editor().connect(request.source, request.target)
        return {"success": True, "edge": edge.to_json_dict()}

    @app.delete("/api/edges/{edge_id}")
    async def delete_edge(edge_id: str):
        """Delete an edge."""
        editor().delete_edge(edge_id)
        return {"success": True}

    # --- Layout & Settings ---

    @app.post("/api/layout")
    async def auto_layout():
        """Re-layout the active document with the current layout mode."""
        if editor().apply_auto_layout():
            return {"success": True, "mode": manager.state.layout_mode.value}
        raise HTTPException(status_code=400, detail="No nodes to layout")

    @app.put("/api/settings/layout-mode")
    async def set_layout_mode(request: LayoutModeRequest):
        mode = manager.set_layout_mode(request.mode)
        return {"success": True, "mode": mode.value}

    @app.post("/api/settings/theme")
    async def toggle_theme():
        return {"success": True, "theme": manager.toggle_theme().value}

    @app.post("/api/settings/sidebar")
    async def toggle_sidebar():
        return {"success": True, "sidebar_open": manager.toggle_sidebar()}

    # --- Import/Export ---

    @app.get("/api/export")
    async def export_document(filename: Optional[str] = None):
        """Download the active document as `{nodes, edges}` JSON."""
        document = manager.hierarchy.require_active()
        name = filename or f"{document.name}.json"
        return PlainTextResponse(
            editor().export_graph(),
            media_type="application/json",
            headers={"Content-Disposition": f'attachment; filename="{name}"'}
        )

    @app.post("/api/import")
    async def import_document(request: ImportRequest):
        """Replace the active document's graph with an uploaded file."""
        document = editor().import_graph(request.payload)
        return {"success": True, "document": document.to_json_dict()}

    # --- Validation ---

    @app.get("/api/validate")
    async def validate():
        """
        Validate every document and the hierarchy links between them.

        Returns a list of issues (errors, warnings, info) and a summary.
        """
        issues = manager.validate()
        return {
            "success": True,
            "issues": [issue.to_dict() for issue in issues],
            "summary": validation_summary(issues)
        }

    # --- WebSocket ---

    @app.websocket("/ws")
    async def websocket_endpoint(websocket: WebSocket):
        """
        WebSocket endpoint for real-time updates.

        Clients receive change events and may send "ping" or a
        subscribe/unsubscribe request for one document.
        """
        await channel.connect(websocket)

        try:
            while True:
                reply = channel.handle_message(websocket, await websocket.receive_text())
                if reply is not None:
                    await websocket.send_json(reply)
        except WebSocketDisconnect:
            channel.disconnect(websocket)

    return app


app = create_app(mindmap_manager)


def run():
    """Console entry point: run the API with uvicorn."""
    import uvicorn

    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )
    uvicorn.run(app, host=settings.host, port=settings.port)


if __name__ == "__main__":
    run()
