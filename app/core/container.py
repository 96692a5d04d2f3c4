from __future__ import annotations

from typing import Callable, Iterable, Optional

from app.core.settings import Settings
from app.tools.alerts import register_alert_tools
from app.tools.market_intelligence import register_market_intelligence_tools
from app.tools.portfolio import register_portfolio_tools
from app.tools.signal_generation import register_signal_generation_tools
from observability import Metrics
from rpc.engine import InvocationEngine
from rpc.registry import ToolRegistry

ToolCollection = Callable[[ToolRegistry], None]

# Registration order is the order tools are listed to clients.
TOOL_COLLECTIONS: tuple = (
    register_market_intelligence_tools,
    register_signal_generation_tools,
    register_portfolio_tools,
    register_alert_tools,
)


def build_registry(collections: Iterable[ToolCollection] = TOOL_COLLECTIONS) -> ToolRegistry:
    """
    Merge the tool collections into one frozen registry.

    A name registered by two collections raises `DuplicateToolError`.
    """
    registry = ToolRegistry()
    for register in collections:
        register(registry)
    return registry.freeze()


class Container:
    def __init__(self, settings: Optional[Settings] = None, registry: Optional[ToolRegistry] = None):
        self.settings = settings or Settings()

        # Observability
        self.metrics = Metrics()

        # Dispatch core
        self.registry = registry if registry is not None else build_registry()
        self.engine = InvocationEngine(self.registry, self.settings.server_identity(), metrics=self.metrics)

    def server_identity(self) -> dict:
        return self.settings.server_identity()


def build_container(settings: Optional[Settings] = None) -> Container:
    return Container(settings=settings)
