"""Configuration data model."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict


class AgentTreeConfig(BaseModel):
    """Validated, immutable settings shared by every agent of a tree."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    base_url: str = "https://api.openai.com/v1"
    model: str = "gpt-4"
    max_depth: int = 5
    api_key: Optional[str] = None
    streaming: bool = False
    output_file: bool = True
    output_folder: str = ".agentree"
    temperature: float = 0.0
    timeout_seconds: float = 300
    retry_attempts: int = 3
    retry_delay_seconds: float = 5
    max_steps: Optional[int] = None
