"""Tool metadata model (what the LLM sees for each callable tool)."""

from __future__ import annotations

import re
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field, model_validator

TOOL_NAME_PATTERN = r"^[a-zA-Z0-9_-]{1,64}$"


class ToolParameters(BaseModel):
    type: Literal["object"] = "object"
    properties: dict[str, dict[str, Any]] = Field(default_factory=dict)
    required: Optional[list[str]] = None

    @model_validator(mode="after")
    def _required_are_declared(self) -> "ToolParameters":
        missing = [r for r in self.required or [] if r not in self.properties]
        if missing:
            raise ValueError(f"Required parameters not declared in properties: {', '.join(missing)}")
        return self


class ToolMetadata(BaseModel):
    name: str = Field(pattern=TOOL_NAME_PATTERN)
    description: str
    parameters: ToolParameters = Field(default_factory=ToolParameters)

    def to_wire(self) -> dict:
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters.model_dump(exclude_none=True),
            },
        }


def is_valid_tool_name(name: str) -> bool:
    return bool(re.match(TOOL_NAME_PATTERN, name or ""))
