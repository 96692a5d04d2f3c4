from __future__ import annotations

from typing import Any, Dict

from errors import RpcError, internal_error

JSONRPC_VERSION = "2.0"


def success(result: Any, request_id: Any = None) -> Dict[str, Any]:
    return {"jsonrpc": JSONRPC_VERSION, "result": result, "id": request_id}


def failure(error: RpcError, request_id: Any = None) -> Dict[str, Any]:
    return {"jsonrpc": JSONRPC_VERSION, "error": error.to_dict(), "id": request_id}


def generic_internal_error(data: Any = None) -> Dict[str, Any]:
    """Envelope for adapter-level failures, where no request id is known."""
    return failure(internal_error(data), None)
