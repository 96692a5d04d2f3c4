from .engine import InvocationEngine, RpcRequest
from .envelope import failure, generic_internal_error, success
from .framer import StreamFramer
from .registry import DuplicateToolError, RegistryFrozenError, ToolDescriptor, ToolRegistry

__all__ = [
    "DuplicateToolError",
    "InvocationEngine",
    "RegistryFrozenError",
    "RpcRequest",
    "StreamFramer",
    "ToolDescriptor",
    "ToolRegistry",
    "failure",
    "generic_internal_error",
    "success",
]
