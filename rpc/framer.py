"""
Newline framing for the stdio transport.

stdin is an append-only pipe with no message boundaries other than newlines,
and chunks arrive split at arbitrary points. `StreamFramer` keeps the
unterminated tail between chunks and emits each complete, non-blank line that
parses as JSON. A line that fails to parse is logged and dropped; it never
aborts the stream and is never answered, since there is no id to address.

Until a newline arrives nothing is emitted and the tail keeps growing. A
client that never sends a newline therefore grows the buffer without bound;
that is accepted for this transport.
"""

from __future__ import annotations

import codecs
import json
from typing import Any, List, Union

from observability import log_event

_PREVIEW_CHARS = 200


class StreamFramer:
    def __init__(self) -> None:
        self._pending = ""
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")

    @property
    def pending(self) -> str:
        return self._pending

    def feed(self, chunk: Union[str, bytes]) -> List[Any]:
        if isinstance(chunk, (bytes, bytearray)):
            chunk = self._decoder.decode(bytes(chunk))
        self._pending += chunk

        *lines, tail = self._pending.split("\n")
        self._pending = tail

        messages: List[Any] = []
        for raw in lines:
            line = raw.strip()
            if not line:
                continue
            try:
                messages.append(json.loads(line))
            except ValueError as e:
                log_event(
                    "framer_parse_error",
                    data={"error": str(e), "line": line[:_PREVIEW_CHARS]},
                    level="warn",
                )
        return messages

    def flush(self) -> str:
        """Return and clear the unterminated tail (used at end of stream)."""
        tail = self._pending + self._decoder.decode(b"", final=True)
        self._pending = ""
        return tail
