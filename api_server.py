import json
from typing import Any, Set

from fastapi import FastAPI, Request, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.core.container import Container
from errors import exception_message
from observability import build_log_context, log_event
from rpc.envelope import JSONRPC_VERSION, generic_internal_error

# Initial context
API_CTX = build_log_context(tool="api_server")


def greeting(container: Container) -> dict:
    """Unsolicited envelope pushed to every WebSocket client on connect."""
    return {
        "jsonrpc": JSONRPC_VERSION,
        "result": {"server": container.server_identity(), "tools": container.registry.names()},
        "id": None,
    }


def create_app(container: Container) -> FastAPI:
    settings = container.settings
    engine = container.engine

    app = FastAPI(title=f"{settings.PROJECT_NAME} JSON-RPC", version=settings.VERSION)
    app.state.container = container

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if settings.CORS_ALLOW_ALL else sorted(settings.CORS_ORIGINS),
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Active WebSocket connections
    active_connections: Set[WebSocket] = set()
    app.state.active_connections = active_connections

    @app.post("/rpc")
    async def rpc(request: Request):
        """
        One JSON-RPC document per POST body. JSON-RPC level failures are still HTTP 200.
        """
        try:
            payload = json.loads(await request.body())
            result = await engine.invoke(payload)
            return JSONResponse(content=result)
        except Exception as e:
            log_event("api_rpc_error", ctx=API_CTX, data={"error": str(e)}, level="error")
            return JSONResponse(status_code=500, content=generic_internal_error(exception_message(e)))

    @app.websocket("/")
    @app.websocket("/ws")
    async def websocket_endpoint(websocket: WebSocket):
        await websocket.accept()
        active_connections.add(websocket)
        log_event("api_client_connected", ctx=API_CTX, data={"active_connections": len(active_connections)})
        try:
            await websocket.send_text(json.dumps(greeting(container)))
            while True:
                message = await websocket.receive()
                if message["type"] == "websocket.disconnect":
                    break
                await websocket.send_text(await _answer(message))
        except WebSocketDisconnect:
            pass
        finally:
            active_connections.discard(websocket)
            log_event("api_client_disconnected", ctx=API_CTX, data={"active_connections": len(active_connections)})

    async def _answer(message: dict) -> str:
        """One reply per frame; text and binary frames both carry UTF-8 JSON."""
        try:
            text = message.get("text")
            if text is None:
                text = message["bytes"].decode("utf-8")
            result: Any = await engine.invoke(json.loads(text))
            return json.dumps(result)
        except Exception as e:
            log_event("api_ws_message_error", ctx=API_CTX, data={"error": str(e)}, level="error")
            return json.dumps(generic_internal_error(exception_message(e)))

    @app.get("/api/health")
    async def health_check():
        return {
            "status": "ok",
            "transport": settings.MCP_TRANSPORT.value,
            "server": container.server_identity(),
            "tools": len(container.registry),
        }

    @app.get("/api/metrics")
    async def get_metrics():
        return container.metrics.snapshot()

    return app


def run_http(container: Container) -> None:
    import uvicorn

    settings = container.settings
    log_event("api_server_started", ctx=API_CTX, data={"port": settings.MCP_PORT, "host": settings.MCP_HOST})
    uvicorn.run(create_app(container), host=settings.MCP_HOST, port=settings.MCP_PORT, log_config=None)
