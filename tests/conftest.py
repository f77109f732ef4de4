"""Shared fixtures for agentree tests."""

from __future__ import annotations

import json
from typing import Optional

import pytest

from agentree.models.messages import FunctionCall, LLMResponse, ToolCall
from agentree.tools.registry import ToolRegistry


def make_tool_call(name: str, args: Optional[dict] = None, call_id: str = "call_1") -> ToolCall:
    return ToolCall(id=call_id, function=FunctionCall(name=name, arguments=json.dumps(args or {})))


def reply(content: str = "", *tool_calls: ToolCall) -> LLMResponse:
    return LLMResponse(content=content, tool_calls=list(tool_calls) or None)


class ScriptedLLMClient:
    """LLM stand-in that plays back responses in order.

    One client is shared by a whole tree, so the script lists replies in the
    depth-first order the agents ask for them. An Exception entry is raised
    instead of returned.
    """

    def __init__(self, responses: list):
        self.responses = list(responses)
        self.calls: list[dict] = []

    async def chat(self, messages, tools=None, streaming=False):
        self.calls.append(
            {
                "messages": list(messages),
                "tools": [t.name for t in tools or []],
                "streaming": streaming,
            }
        )
        if not self.responses:
            raise RuntimeError("No scripted response left")
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    def chat_stream(self, messages, tools=None):
        raise NotImplementedError


class RecordingSink:
    """EventSink that keeps every call for inspection."""

    def __init__(self, name: str = "root"):
        self.name = name
        self.events: list[tuple[str, object]] = []
        self.children: list["RecordingSink"] = []

    def record_start(self, data):
        self.events.append(("start", data))

    def record_context_loaded(self, data):
        self.events.append(("context_loaded", data))

    def record_llm_call(self, data):
        self.events.append(("llm_call", data))

    def record_message(self, message):
        self.events.append(("message", message))

    def record_tool_calls(self, tool_calls):
        self.events.append(("tool_calls", tool_calls))

    def record_child_created(self, data):
        self.events.append(("child_created", data))

    def record_completion(self, data):
        self.events.append(("completion", data))

    def record_error(self, data):
        self.events.append(("error", data))

    def child(self, data):
        sink = RecordingSink(data.child_name)
        self.children.append(sink)
        return sink

    @property
    def kinds(self) -> list[str]:
        return [kind for kind, _ in self.events]


@pytest.fixture
def config() -> dict:
    """Minimal valid configuration with file output disabled."""
    return {"api_key": "test-key", "model": "gpt-test", "max_depth": 3, "output_file": False}


@pytest.fixture
def registry() -> ToolRegistry:
    return ToolRegistry()


@pytest.fixture
def tmp_project(tmp_path):
    """A project folder with a couple of text files."""
    project = tmp_path / "test-project"
    project.mkdir()
    (project / "src").mkdir()
    (project / "src" / "main.py").write_text("print('hello')\n", encoding="utf-8")
    (project / "src" / "utils.py").write_text("def add(a, b):\n    return a + b\n", encoding="utf-8")
    (project / "README.md").write_text("# Test Project\n", encoding="utf-8")
    return project
