import logging
import os
import sys

import pytest

# Add project root to path
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from app.core.container import Container, build_registry
from app.core.settings import Settings
from observability.logging import LOGGER_NAME
from rpc.engine import InvocationEngine
from rpc.registry import ToolRegistry

SERVER_INFO = {"name": "crypto-signal", "description": "test server", "version": "0.1.0"}


@pytest.fixture(autouse=True)
def reset_logging():
    yield
    logger = logging.getLogger(LOGGER_NAME)
    for h in list(logger.handlers):
        logger.removeHandler(h)
    logger.setLevel(logging.NOTSET)
    logger.propagate = True


@pytest.fixture
def clean_env(monkeypatch):
    for key in ("MCP_TRANSPORT", "MCP_PORT", "MCP_HOST", "SERVER_NAME", "SERVER_DESCRIPTION", "CORS_ORIGINS",
                "STDIO_READ_CHUNK_SIZE", "LOG_LEVEL"):
        monkeypatch.delenv(key, raising=False)
    return monkeypatch


@pytest.fixture
def server_info():
    return dict(SERVER_INFO)


@pytest.fixture
def registry():
    return build_registry()


@pytest.fixture
def engine(registry):
    return InvocationEngine(registry, SERVER_INFO)


@pytest.fixture
def toy_registry():
    reg = ToolRegistry()

    @reg.tool()
    def echo(value=None):
        """Echo the value back"""
        return {"value": value}

    @reg.tool()
    def boom():
        raise RuntimeError("kaboom")

    return reg.freeze()


@pytest.fixture
def toy_engine(toy_registry):
    return InvocationEngine(toy_registry, SERVER_INFO)


@pytest.fixture
def container(clean_env):
    return Container(settings=Settings())
