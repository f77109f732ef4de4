"""Tests for core/runner.py."""

from __future__ import annotations

import pytest
from rich.console import Console

from agentree.core.errors import ConfigurationError
from agentree.core.runner import build_result_tree, run_task
from agentree.models.agent import AgentResult
from agentree.tools.defaults import DEFAULT_TOOL_NAMES

from tests.conftest import ScriptedLLMClient, make_tool_call, reply


class TestRunTask:
    @pytest.mark.asyncio
    async def test_root_gets_default_tools(self, registry):
        client = ScriptedLLMClient([reply("done")])
        result = await run_task(
            "Say done",
            config_overrides={"api_key": "k", "output_file": False},
            log_level="silent",
            llm_client=client,
        )
        assert result.success
        assert result.result == "done"
        assert client.calls[0]["tools"] == ["createAgent", "stopAgent"] + DEFAULT_TOOL_NAMES

    @pytest.mark.asyncio
    async def test_explicit_tools_and_registry(self, registry):
        client = ScriptedLLMClient([reply("done")])
        await run_task(
            "t",
            tools=[],
            config_overrides={"api_key": "k", "output_file": False},
            log_level="silent",
            llm_client=client,
            registry=registry,
        )
        assert client.calls[0]["tools"] == ["createAgent", "stopAgent"]

    @pytest.mark.asyncio
    async def test_invalid_config_raises_before_running(self):
        client = ScriptedLLMClient([])
        with pytest.raises(ConfigurationError):
            await run_task("t", config_overrides={"api_key": None}, llm_client=client)
        assert client.calls == []

    @pytest.mark.asyncio
    async def test_project_config_applies(self, tmp_project):
        (tmp_project / ".agentree").mkdir()
        (tmp_project / ".agentree" / "config.yaml").write_text(
            "max_depth: 1\noutput_file: false\n", encoding="utf-8"
        )
        client = ScriptedLLMClient([
            reply("", make_tool_call("createAgent", {"name": "kid", "task": "t", "tools": []})),
            reply("kid done"),
            reply("root done"),
        ])
        result = await run_task(
            "t",
            project_path=tmp_project,
            config_overrides={"api_key": "k"},
            log_level="silent",
            llm_client=client,
        )
        assert result.children[0].result == "kid done"
        assert "createAgent" not in client.calls[1]["tools"]

    @pytest.mark.asyncio
    async def test_writes_run_folder(self, tmp_path):
        output = tmp_path / "runs"
        await run_task(
            "t",
            name="writer",
            config_overrides={"api_key": "k", "output_folder": str(output)},
            log_level="silent",
            llm_client=ScriptedLLMClient([reply("done")]),
        )
        folders = list(output.iterdir())
        assert len(folders) == 1
        assert (folders[0] / "agent-report.md").is_file()


class TestBuildResultTree:
    def test_renders_nested_results(self):
        result = AgentResult(
            success=True,
            result="top",
            agent_name="root",
            timestamp="t",
            execution_time=1500,
            children=[AgentResult(success=False, error="bad [thing]", agent_name="kid", timestamp="t")],
        )
        console = Console(record=True, width=120, color_system=None)
        console.print(build_result_tree(result))
        text = console.export_text()
        assert "OK root (1.5s)" in text
        assert "FAILED kid" in text
        assert "bad [thing]" in text


class TestAgentResult:
    def test_walk_is_depth_first(self):
        leaf = AgentResult(success=True, agent_name="leaf", timestamp="t")
        mid = AgentResult(success=True, agent_name="mid", timestamp="t", children=[leaf])
        other = AgentResult(success=True, agent_name="other", timestamp="t")
        root = AgentResult(success=True, agent_name="root", timestamp="t", children=[mid, other])
        assert [r.agent_name for r in root.walk()] == ["root", "mid", "leaf", "other"]
