from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict

INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INTERNAL_ERROR = -32603


@dataclass
class RpcError(Exception):
    code: int
    message: str
    data: Any = None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"code": self.code, "message": self.message}
        if self.data is not None:
            out["data"] = self.data
        return out


def invalid_request(data: Any = None) -> RpcError:
    return RpcError(INVALID_REQUEST, "Invalid Request", data)


def method_not_found(method: str) -> RpcError:
    return RpcError(METHOD_NOT_FOUND, f"Method not found: {method}")


def internal_error(data: Any = None) -> RpcError:
    return RpcError(INTERNAL_ERROR, "Internal error", data)


def exception_message(e: BaseException) -> str:
    return str(e) or e.__class__.__name__


def classify_exception(e: Exception) -> RpcError:
    """
    Map an arbitrary failure raised by a tool handler or adapter into a stable RPC error.

    Handler failures always surface as Internal Error, carrying the human-readable
    message in `data`.
    """
    return internal_error(exception_message(e))
