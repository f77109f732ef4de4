"""Exception hierarchy for agent tree execution.

Per-tool-call errors (ToolNotFoundError, ToolExecutionError) are recovered
inside the agent loop and fed back to the model. Everything else bubbles up
to ``AgentNode.execute()`` and becomes a failed AgentResult.
"""

from __future__ import annotations


class AgentTreeError(Exception):
    """Base class for all agentree errors."""


class ConfigurationError(AgentTreeError):
    """Invalid or incomplete configuration (api key, model, max depth)."""


class ToolNotFoundError(AgentTreeError):
    def __init__(self, name: str):
        super().__init__(f"Tool {name} not found")
        self.name = name


class ToolExecutionError(AgentTreeError):
    """A tool rejected its arguments or failed while running."""


class DepthLimitError(AgentTreeError):
    def __init__(self, max_depth: int):
        super().__init__(f"Maximum depth {max_depth} reached")
        self.max_depth = max_depth


class TransportError(AgentTreeError):
    """The LLM call failed after retries."""


class InvariantViolation(AgentTreeError):
    """The agent loop reached a state that should be impossible."""


class StepLimitError(AgentTreeError):
    def __init__(self, max_steps: int):
        super().__init__(f"Maximum number of steps ({max_steps}) exceeded")
        self.max_steps = max_steps
