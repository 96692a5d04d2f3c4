"""
Crypto-Signal canonical entrypoint.

Builds settings, the tool registry and the invocation engine once, then hands
them to the transport selected by `MCP_TRANSPORT` (stdio by default, or http).
"""

from __future__ import annotations

import sys
from typing import Optional

from app.core.container import Container, build_container
from app.core.settings import Settings, SettingsValidationError, TransportType
from observability import build_log_context, configure_logging, log_event

SERVER_CTX = build_log_context(tool="server")


def load_settings() -> Optional[Settings]:
    try:
        return Settings()
    except SettingsValidationError as e:
        configure_logging()
        log_event("settings_invalid", ctx=SERVER_CTX, data={"field": e.field, "error": str(e)}, level="error")
        return None


def serve(container: Container) -> None:
    settings = container.settings
    if settings.MCP_TRANSPORT is TransportType.HTTP:
        from api_server import run_http

        run_http(container)
    else:
        from stdio_server import run_stdio

        run_stdio(container.engine, chunk_size=settings.STDIO_READ_CHUNK_SIZE)


def main() -> int:
    settings = load_settings()
    if settings is None:
        return 1
    configure_logging(settings.LOG_LEVEL)

    container = build_container(settings)
    log_event(
        "server_starting",
        ctx=SERVER_CTX,
        data={
            "server": container.server_identity(),
            "transport": settings.MCP_TRANSPORT.value,
            "tools": container.registry.names(),
            "settings": settings.to_dict(),
        },
    )
    serve(container)
    return 0


if __name__ == "__main__":
    sys.exit(main())
