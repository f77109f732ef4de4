"""Agentree - hierarchical LLM agents that delegate through tool calls."""

__version__ = "1.0.7"

from .core.agent import AgentNode
from .core.config import get_default, merge, validate
from .core.errors import (
    AgentTreeError,
    ConfigurationError,
    DepthLimitError,
    InvariantViolation,
    StepLimitError,
    ToolExecutionError,
    ToolNotFoundError,
    TransportError,
)
from .core.task import Task
from .models.agent import AgentResult
from .models.config import AgentTreeConfig
from .tools.builder import tool
from .tools.defaults import register_default_tools
from .tools.registry import ToolDescriptor, ToolRegistry

__all__ = [
    "AgentNode",
    "AgentResult",
    "AgentTreeConfig",
    "AgentTreeError",
    "ConfigurationError",
    "DepthLimitError",
    "InvariantViolation",
    "StepLimitError",
    "Task",
    "ToolDescriptor",
    "ToolExecutionError",
    "ToolNotFoundError",
    "ToolRegistry",
    "TransportError",
    "get_default",
    "merge",
    "register_default_tools",
    "tool",
    "validate",
]
