"""
Tool registry.

A registry is constructed once at startup, filled by the tool collections in
`app/tools`, frozen, and then handed by reference to the invocation engine and
the transport adapters. There is no runtime mutation API after `freeze()`.
"""

from __future__ import annotations

import inspect
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Type, get_type_hints

from pydantic import BaseModel, ConfigDict, create_model
from pydantic.alias_generators import to_camel

Handler = Callable[[Mapping[str, Any]], Any]


class DuplicateToolError(ValueError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Tool already registered: {name}")


class RegistryFrozenError(RuntimeError):
    pass


@dataclass(frozen=True)
class ToolDescriptor:
    name: str
    description: str
    parameters: Dict[str, Any]
    handler: Handler = field(repr=False, compare=False)

    def to_listing(self) -> Dict[str, Any]:
        return {"name": self.name, "description": self.description, "parameters": self.parameters}


def _first_doc_line(fn: Callable[..., Any]) -> str:
    doc = inspect.getdoc(fn) or ""
    for line in doc.splitlines():
        if line.strip():
            return line.strip()
    return ""


def params_model(fn: Callable[..., Any]) -> Type[BaseModel]:
    """
    Build a pydantic model for a tool function's keyword arguments.

    Wire names are the camelCase form of the Python argument names
    (`min_spread` is sent as `minSpread`); the Python names are accepted too.
    Unknown keys are ignored and missing required arguments fail validation.
    """
    hints = get_type_hints(fn)
    fields: Dict[str, Any] = {}
    for p in inspect.signature(fn).parameters.values():
        if p.kind in (p.VAR_POSITIONAL, p.VAR_KEYWORD):
            continue
        default = ... if p.default is p.empty else p.default
        fields[p.name] = (hints.get(p.name, Any), default)
    config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")
    return create_model(f"{fn.__name__}_params", __config__=config, **fields)


class ToolRegistry:
    def __init__(self) -> None:
        self._tools: Dict[str, ToolDescriptor] = {}
        self._frozen = False

    def register(self, descriptor: ToolDescriptor) -> ToolDescriptor:
        if self.frozen:
            raise RegistryFrozenError(f"Registry is frozen; cannot register {descriptor.name}")
        if not descriptor.name:
            raise ValueError("Tool name must be a non-empty string")
        if descriptor.name in self._tools:
            raise DuplicateToolError(descriptor.name)
        self._tools[descriptor.name] = descriptor
        return descriptor

    def register_all(self, descriptors: Iterable[ToolDescriptor]) -> None:
        for d in descriptors:
            self.register(d)

    def tool(
        self,
        parameters: Optional[Dict[str, Any]] = None,
        *,
        name: Optional[str] = None,
        description: Optional[str] = None,
    ) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
        """
        Decorator registering a keyword-argument function as a tool.

        The tool name defaults to the function name and the description to the
        first docstring line. RPC params are validated by `params_model` and
        passed as keyword arguments.
        """

        def decorator(fn: Callable[..., Any]) -> Callable[..., Any]:
            model = params_model(fn)

            def handler(params: Mapping[str, Any]) -> Any:
                parsed = model.model_validate(params)
                return fn(**{k: getattr(parsed, k) for k in model.model_fields})

            self.register(
                ToolDescriptor(
                    name=name or fn.__name__,
                    description=description if description is not None else _first_doc_line(fn),
                    parameters=parameters or {"type": "object", "properties": {}},
                    handler=handler,
                )
            )
            return fn

        return decorator

    def freeze(self) -> "ToolRegistry":
        self._frozen = True
        return self

    @property
    def frozen(self) -> bool:
        return self._frozen

    def lookup(self, name: str) -> Optional[ToolDescriptor]:
        return self._tools.get(name)

    def list_all(self) -> List[Dict[str, Any]]:
        return [d.to_listing() for d in self._tools.values()]

    def names(self) -> List[str]:
        return list(self._tools)

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)
