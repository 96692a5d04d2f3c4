"""
Crypto-Signal settings.

A validated, typed settings layer that is the single source of truth for
configuration. Environment variables (optionally from a `.env` file) are read
and validated when `Settings` is instantiated, so misconfigurations surface at
startup rather than on the first request.

Usage:
    from app.core.settings import Settings

    settings = Settings()
    if settings.MCP_TRANSPORT is TransportType.HTTP:
        ...
"""

from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass, field, fields
from enum import Enum
from pathlib import Path
from typing import Any, Dict, FrozenSet

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


class TransportType(Enum):
    """Transport the server listens on."""

    STDIO = "stdio"
    HTTP = "http"


class SettingsValidationError(Exception):
    """Raised when settings validation fails."""

    def __init__(self, field: str, value: Any, message: str):
        self.field = field
        self.value = value
        super().__init__(f"Invalid configuration for {field}={value!r}: {message}")


def _parse_int(value: str | None, default: int | None = None) -> int | None:
    """
    Parse an integer from environment variable.

    Unset or blank gives `default`; anything unparseable gives None so that
    validation reports it instead of silently using the default.
    """
    if value is None or value.strip() == "":
        return default
    try:
        return int(value.strip(), 0)
    except ValueError:
        return None


def _parse_csv_set(value: str | None) -> FrozenSet[str]:
    """Parse a comma-separated list into a frozen set of stripped strings."""
    if not value:
        return frozenset()
    return frozenset(v.strip() for v in value.split(",") if v.strip())


def _get_version_from_pyproject() -> str:
    """Extract version from pyproject.toml."""
    try:
        pyproject_path = Path(__file__).parent.parent.parent / "pyproject.toml"
        with open(pyproject_path, "rb") as f:
            data = tomllib.load(f)
        version: str = str(data.get("project", {}).get("version", "0.0.0"))
        return version
    except Exception:
        return "0.0.0"


@dataclass
class Settings:
    """
    Unified settings class with validation.

    The transport is kept as the raw string until validation so that an
    unknown value is reported instead of silently falling back to stdio.
    Transport names are case-sensitive.
    """

    # Server identity
    PROJECT_NAME: str = field(default_factory=lambda: os.getenv("SERVER_NAME", "crypto-signal").strip())
    SERVER_DESCRIPTION: str = field(
        default_factory=lambda: os.getenv(
            "SERVER_DESCRIPTION", "Crypto-Signal MCP Server - Trading signals and market intelligence"
        ).strip()
    )
    VERSION: str = field(default_factory=_get_version_from_pyproject)

    # Transport selection
    MCP_TRANSPORT_RAW: str = field(default_factory=lambda: os.getenv("MCP_TRANSPORT", "stdio").strip() or "stdio")
    MCP_HOST: str = field(default_factory=lambda: os.getenv("MCP_HOST", "127.0.0.1").strip())
    MCP_PORT: int | None = field(default_factory=lambda: _parse_int(os.getenv("MCP_PORT"), 3000))

    # CORS settings (HTTP transport)
    CORS_ORIGINS: FrozenSet[str] = field(default_factory=lambda: _parse_csv_set(os.getenv("CORS_ORIGINS", "*")))
    CORS_ALLOW_ALL: bool = field(default_factory=lambda: os.getenv("CORS_ORIGINS", "*").strip() == "*")

    # stdio transport
    STDIO_READ_CHUNK_SIZE: int | None = field(
        default_factory=lambda: _parse_int(os.getenv("STDIO_READ_CHUNK_SIZE"), 65536)
    )

    # Observability
    LOG_LEVEL: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "info").strip().lower())

    def __post_init__(self) -> None:
        """Validate settings after initialization."""
        self._validate()

    def _validate(self) -> None:
        errors: list[tuple[str, Any, str]] = []

        if self.MCP_TRANSPORT_RAW not in [t.value for t in TransportType]:
            errors.append(("MCP_TRANSPORT", self.MCP_TRANSPORT_RAW, "Unknown transport (expected one of: stdio, http)"))

        if self.MCP_PORT is None or not (1 <= self.MCP_PORT <= 65535):
            raw = self.MCP_PORT if self.MCP_PORT is not None else os.getenv("MCP_PORT")
            errors.append(("MCP_PORT", raw, "must be an integer between 1 and 65535"))

        if self.STDIO_READ_CHUNK_SIZE is None or self.STDIO_READ_CHUNK_SIZE < 1:
            raw = self.STDIO_READ_CHUNK_SIZE if self.STDIO_READ_CHUNK_SIZE is not None else os.getenv("STDIO_READ_CHUNK_SIZE")
            errors.append(("STDIO_READ_CHUNK_SIZE", raw, "must be a positive integer"))

        if self.LOG_LEVEL not in ("debug", "info", "warn", "warning", "error"):
            errors.append(("LOG_LEVEL", self.LOG_LEVEL, "must be one of debug, info, warn, error"))

        if not self.PROJECT_NAME:
            errors.append(("SERVER_NAME", self.PROJECT_NAME, "must not be empty"))

        if len(errors) == 1:
            raise SettingsValidationError(*errors[0])
        if errors:
            raise SettingsValidationError("MULTIPLE", None, "; ".join(f"{f}={v!r}: {m}" for f, v, m in errors))

    @property
    def MCP_TRANSPORT(self) -> TransportType:
        return TransportType(self.MCP_TRANSPORT_RAW)

    def server_identity(self) -> Dict[str, str]:
        """Static server identity reported by `system.getServerInfo`."""
        return {
            "name": self.PROJECT_NAME,
            "description": self.SERVER_DESCRIPTION,
            "version": self.VERSION,
        }

    def to_dict(self) -> dict[str, Any]:
        """Plain-JSON view of the effective settings, logged once at startup."""
        result: dict[str, Any] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            result[f.name] = sorted(value) if isinstance(value, frozenset) else value
        result["MCP_TRANSPORT"] = self.MCP_TRANSPORT.value
        del result["MCP_TRANSPORT_RAW"]
        return result
