"""Builtin tools every agent understands: createAgent and stopAgent.

These are handled by the agent itself rather than through the registry, so
clearing or overwriting registry entries never removes them.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field

from ..models.tool import ToolMetadata, ToolParameters

CREATE_AGENT = "createAgent"
STOP_AGENT = "stopAgent"
BUILTIN_TOOL_NAMES = (CREATE_AGENT, STOP_AGENT)

STOP_ACKNOWLEDGEMENT = "Agent execution completed"


class CreateAgentParams(BaseModel):
    name: str
    task: str
    context: Optional[list[str]] = None
    tools: list[str] = Field(default_factory=list)
    system_prompt: Optional[str] = Field(default=None, alias="systemPrompt")

    model_config = {"populate_by_name": True}


class StopAgentParams(BaseModel):
    result: str
    success: bool = True


CREATE_AGENT_METADATA = ToolMetadata(
    name=CREATE_AGENT,
    description=(
        "Creates a new child agent to perform a specific subtask, allowing for modular task "
        "management. Before creating an agent, think about the very specific task you want it "
        "to perform, the outcome you expect, and the tools it will need."
    ),
    parameters=ToolParameters(
        properties={
            "name": {"type": "string", "description": "Name for the child agent"},
            "task": {
                "type": "string",
                "description": (
                    "Task description for the child agent, which should be very specific and "
                    "clear. This is the task the child agent will perform."
                ),
            },
            "context": {
                "type": "array",
                "items": {"type": "string"},
                "description": (
                    "Optional context (file paths, URLs, text) for the child agent, "
                    'example: ["file1.txt", "https://example.com/resource"]'
                ),
            },
            "tools": {
                "type": "array",
                "items": {"type": "string"},
                "description": (
                    "List of tool names the child agent should have access to, e.g. "
                    '["tool1", "tool2"]. Use ["default"] for the default tool set '
                    "or [] for no tools."
                ),
            },
            "systemPrompt": {
                "type": "string",
                "description": "Optional custom system prompt for the child agent",
            },
        },
        required=["name", "task", "tools"],
    ),
)

STOP_AGENT_METADATA = ToolMetadata(
    name=STOP_AGENT,
    description="Stop the current agent execution and return the final result",
    parameters=ToolParameters(
        properties={
            "result": {
                "type": "string",
                "description": "The final result to return to the parent agent",
            },
            "success": {
                "type": "boolean",
                "description": "Whether the task was completed successfully",
                "default": True,
            },
        },
        required=["result"],
    ),
)
