"""Tool registry: name -> {executor, metadata} lookup shared by an agent tree.

One registry is built per process (or per test) and handed to the root
agent; every descendant reads through the same object, so a registration is
visible to the next dispatch without any caching.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Iterable, Optional, Union

from ..models.tool import ToolMetadata, ToolParameters, is_valid_tool_name

ToolExecutor = Callable[[dict], Union[Any, Awaitable[Any]]]
ErrorFormatter = Callable[[BaseException], str]


@dataclass
class ToolDescriptor:
    metadata: ToolMetadata
    executor: ToolExecutor
    error_formatter: Optional[ErrorFormatter] = None

    @property
    def name(self) -> str:
        return self.metadata.name

    @property
    def description(self) -> str:
        return self.metadata.description

    @property
    def parameters(self) -> ToolParameters:
        return self.metadata.parameters


class ToolRegistry:
    def __init__(self, tools: Optional[Iterable[ToolDescriptor]] = None):
        self._tools: dict[str, ToolDescriptor] = {}
        for descriptor in tools or []:
            self.register(descriptor.name, descriptor)

    def register(self, name: str, descriptor: ToolDescriptor) -> None:
        """Register (or replace) a tool under ``name``."""
        if not isinstance(descriptor, ToolDescriptor):
            raise TypeError(f"Expected a ToolDescriptor for tool '{name}', got {type(descriptor).__name__}")
        if not is_valid_tool_name(name):
            raise ValueError(f"Invalid tool name: {name!r}")
        if name != descriptor.name:
            raise ValueError(f"Tool registered as '{name}' but its metadata is named '{descriptor.name}'")
        if not callable(descriptor.executor):
            raise TypeError(f"Tool '{name}' has no callable executor")
        self._tools[name] = descriptor

    def add(self, descriptor: ToolDescriptor) -> str:
        self.register(descriptor.name, descriptor)
        return descriptor.name

    def get(self, name: str) -> Optional[ToolDescriptor]:
        return self._tools.get(name)

    def get_metadata(self, name: str) -> Optional[ToolMetadata]:
        descriptor = self._tools.get(name)
        return descriptor.metadata if descriptor else None

    def get_all_metadata(self, names: Optional[Iterable[str]] = None) -> list[ToolMetadata]:
        """Metadata for ``names`` (default: all tools). Unknown names are skipped."""
        selected = list(self._tools) if names is None else names
        result: list[ToolMetadata] = []
        for name in selected:
            metadata = self.get_metadata(name)
            if metadata is not None:
                result.append(metadata)
        return result

    def list(self) -> list[str]:
        return list(self._tools)

    def has(self, name: str) -> bool:
        return name in self._tools

    def clear(self) -> None:
        self._tools.clear()

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)
