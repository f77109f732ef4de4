"""Task: what an agent has to do, and the prompts that tell it so."""

from __future__ import annotations

from typing import Optional

from .context import TaskContext, format_context_for_prompt, load_context

STOP_INSTRUCTION = "When you have completed your work, use the stopAgent tool to return your final result."


class Task:
    def __init__(
        self,
        name: str,
        description: str,
        context_items: Optional[list[str]] = None,
        system_prompt: Optional[str] = None,
    ):
        self.name = name
        self.description = description
        self.context_items = list(context_items or [])
        self.system_prompt = system_prompt
        self.context = TaskContext()
        self._context_loaded = False

    async def load_context(self) -> None:
        """Resolve context items. Runs at most once per task."""
        if self._context_loaded:
            return
        self.context = await load_context(self.context_items)
        self._context_loaded = True

    @property
    def context_loaded(self) -> bool:
        return self._context_loaded

    def get_system_prompt(self) -> str:
        if self.system_prompt:
            prompt = f"{self.system_prompt}\n\n{STOP_INSTRUCTION}"
        else:
            prompt = (
                f"You are {self.name}, an agent in a tree of cooperating agents.\n\n"
                f"Your task: {self.description}\n\n"
                "Break a complex task down by creating child agents with the createAgent tool. "
                "Give each child a very specific role, task and set of tools; "
                "a child's result is returned to you once it finishes.\n"
                f"{STOP_INSTRUCTION}"
            )

        serialized = format_context_for_prompt(self.context)
        if serialized:
            prompt += f"\n\n# CONTEXT\n{serialized}"
        return prompt

    def get_user_prompt(self) -> str:
        parts = [self.description]
        if self.context.files:
            parts.append("Files:\n" + "\n".join(self.context.files))
        if self.context.urls:
            parts.append("URLs:\n" + "\n".join(self.context.urls))
        if self.context.text:
            parts.append("Text:\n" + "\n".join(self.context.text))
        return "\n\n".join(parts)
