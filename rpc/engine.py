"""
Invocation engine.

Turns one decoded request object (or a batch of them) into response envelopes.
The engine knows nothing about transports: adapters hand it whatever JSON
value they decoded and serialize whatever it returns.
"""

from __future__ import annotations

import asyncio
import inspect
import time
from typing import Any, Callable, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, StrictStr, ValidationError

from errors import classify_exception, invalid_request, method_not_found
from observability import Metrics, build_log_context, log_event
from observability.logging import set_current_context

from .envelope import failure, success
from .registry import ToolRegistry

Envelope = Dict[str, Any]

RESERVED_INITIALIZE = "initialize"
RESERVED_LIST_TOOLS = "system.listTools"
RESERVED_SERVER_INFO = "system.getServerInfo"


class RpcRequest(BaseModel):
    model_config = ConfigDict(extra="allow")

    method: StrictStr
    params: Optional[Dict[str, Any]] = None
    id: Any = None


def _request_id(raw: Any) -> Any:
    if isinstance(raw, dict):
        return raw.get("id")
    return None


class InvocationEngine:
    def __init__(
        self,
        registry: ToolRegistry,
        server_info: Dict[str, Any],
        *,
        metrics: Optional[Metrics] = None,
    ) -> None:
        self.registry = registry
        self.server_info = dict(server_info)
        self.metrics = metrics or Metrics()
        self._reserved: Dict[str, Callable[[], Any]] = {
            RESERVED_INITIALIZE: self._initialize,
            RESERVED_LIST_TOOLS: self._list_tools,
            RESERVED_SERVER_INFO: self._server_info,
        }

    async def invoke(self, request: Any) -> Union[Envelope, List[Envelope]]:
        """
        Dispatch a single request object or a batch (list) of them.

        Batch elements run concurrently; the returned list is in input order.
        """
        if isinstance(request, list):
            self.metrics.inc("rpc_batches_total", 1)
            return list(await asyncio.gather(*(self.invoke_single(r) for r in request)))
        return await self.invoke_single(request)

    async def invoke_single(self, raw: Any) -> Envelope:
        self.metrics.inc("rpc_requests_total", 1)
        request_id = _request_id(raw)

        try:
            req = RpcRequest.model_validate(raw)
        except ValidationError as e:
            self.metrics.inc("rpc_invalid_request_total", 1)
            fields = sorted({str(err["loc"][0]) for err in e.errors() if err.get("loc")})
            log_event("rpc_invalid_request", data={"fields": fields, "id": request_id}, level="warn")
            return failure(invalid_request(), request_id)

        reserved = self._reserved.get(req.method)
        if reserved is not None:
            return success(reserved(), req.id)

        tool = self.registry.lookup(req.method)
        if tool is None:
            self.metrics.inc("rpc_method_not_found_total", 1)
            log_event("rpc_method_not_found", data={"method": req.method, "id": req.id}, level="warn")
            return failure(method_not_found(req.method), req.id)

        return await self._call_tool(req.method, tool.handler, req.params or {}, req.id)

    async def _call_tool(self, name: str, handler: Callable[..., Any], params: Dict[str, Any], request_id: Any) -> Envelope:
        ctx = build_log_context(tool=name, rpc_id=request_id)
        started = time.time()
        log_event("tool_start", ctx=ctx, level="debug")
        set_current_context(ctx)
        try:
            result = handler(params)
            if inspect.isawaitable(result):
                result = await result
        except Exception as e:
            self.metrics.inc(f"tool_{name}_error_total", 1)
            log_event("tool_error", ctx=ctx, data={"error": str(e), "type": e.__class__.__name__}, level="error")
            return failure(classify_exception(e), request_id)
        finally:
            elapsed_ms = (time.time() - started) * 1000.0
            self.metrics.observe_ms(f"tool_{name}_latency_ms", elapsed_ms)
            log_event("tool_end", ctx=ctx, data={"elapsed_ms": round(elapsed_ms, 3)}, level="debug")
            set_current_context(None)

        self.metrics.inc(f"tool_{name}_ok_total", 1)
        return success(result, request_id)

    def _initialize(self) -> Dict[str, Any]:
        return {
            "serverInfo": {
                "name": self.server_info.get("name"),
                "version": self.server_info.get("version"),
                "capabilities": {},
            },
            "tools": self.registry.list_all(),
        }

    def _list_tools(self) -> Dict[str, Any]:
        return {"tools": self.registry.list_all()}

    def _server_info(self) -> Dict[str, Any]:
        return {
            "name": self.server_info.get("name"),
            "description": self.server_info.get("description"),
            "version": self.server_info.get("version"),
        }
