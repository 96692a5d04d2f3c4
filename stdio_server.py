"""
JSON-RPC over stdin/stdout.

One JSON document per line in each direction. stdout carries protocol
traffic only; all diagnostics go through `observability.log_event` to stderr.

The loop is strictly sequential: every message parsed from chunk N is
dispatched and answered before chunk N+1 is read, so responses leave in the
order their requests arrived. The flip side is that a handler that never
returns stalls every request queued behind it on this transport.
"""

from __future__ import annotations

import asyncio
import json
import sys
from typing import Any, List, Optional, TextIO

from errors import exception_message
from observability import build_log_context, log_event
from rpc.engine import InvocationEngine
from rpc.envelope import generic_internal_error
from rpc.framer import StreamFramer

STDIO_CTX = build_log_context(tool="stdio_server")


class StdioServer:
    def __init__(
        self,
        engine: InvocationEngine,
        *,
        stdin: Any = None,
        stdout: Optional[TextIO] = None,
        chunk_size: int = 65536,
    ) -> None:
        self.engine = engine
        self.framer = StreamFramer()
        self._stdin = stdin if stdin is not None else sys.stdin.buffer
        self._stdout = stdout if stdout is not None else sys.stdout
        self._chunk_size = chunk_size

    def _read_chunk(self) -> bytes:
        read = getattr(self._stdin, "read1", None) or self._stdin.read
        return read(self._chunk_size)

    async def serve(self) -> None:
        """Read stdin until EOF, answering every framed message."""
        loop = asyncio.get_running_loop()
        log_event("stdio_server_started", ctx=STDIO_CTX, data={"chunk_size": self._chunk_size})
        while True:
            chunk = await loop.run_in_executor(None, self._read_chunk)
            if not chunk:
                break
            await self.handle_chunk(chunk)

        tail = self.framer.flush()
        if tail.strip():
            log_event("stdio_unterminated_input", ctx=STDIO_CTX, data={"bytes": len(tail.encode("utf-8"))}, level="warn")
        log_event("stdio_server_stopped", ctx=STDIO_CTX)

    async def handle_chunk(self, chunk: Any) -> List[Any]:
        """
        Feed one chunk through the framer and answer each complete message in order.

        Returns the envelopes written, for callers that want to inspect them.
        """
        written: List[Any] = []
        for message in self.framer.feed(chunk):
            try:
                envelope: Any = await self.engine.invoke(message)
            except Exception as e:
                log_event("stdio_invoke_error", ctx=STDIO_CTX, data={"error": str(e)}, level="error")
                envelope = generic_internal_error(exception_message(e))
            written.append(self.write(envelope))
        return written

    def write(self, envelope: Any) -> Any:
        try:
            line = json.dumps(envelope)
        except (TypeError, ValueError) as e:
            log_event("stdio_serialize_error", ctx=STDIO_CTX, data={"error": str(e)}, level="error")
            envelope = generic_internal_error(exception_message(e))
            line = json.dumps(envelope)
        self._stdout.write(line + "\n")
        self._stdout.flush()
        return envelope


def run_stdio(engine: InvocationEngine, chunk_size: int = 65536) -> None:
    asyncio.run(StdioServer(engine, chunk_size=chunk_size).serve())
