"""Agent result data model."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field


class AgentResult(BaseModel):
    success: bool
    result: str = ""
    error: Optional[str] = None
    children: list["AgentResult"] = Field(default_factory=list)
    agent_name: str
    timestamp: str
    execution_time: float = 0  # milliseconds

    def walk(self):
        """Yield this result and every descendant, depth-first."""
        yield self
        for child in self.children:
            yield from child.walk()
