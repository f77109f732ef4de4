"""Tests for tools/registry.py, tools/builder.py and tools/builtins.py."""

from __future__ import annotations

import json
from typing import Optional

import pytest
from pydantic import BaseModel, Field

from agentree.core.errors import ToolExecutionError, ToolNotFoundError
from agentree.models.tool import ToolMetadata, ToolParameters, is_valid_tool_name
from agentree.tools.builder import schema_from_model, tool
from agentree.tools.builtins import CREATE_AGENT_METADATA, STOP_AGENT_METADATA, CreateAgentParams
from agentree.tools.registry import ToolDescriptor, ToolRegistry


def _descriptor(name: str = "echo") -> ToolDescriptor:
    return ToolDescriptor(
        metadata=ToolMetadata(name=name, description="Echo back"),
        executor=lambda args: args,
    )


class TestToolMetadata:
    @pytest.mark.parametrize("name", ["readFile", "a", "tool_1", "my-tool", "x" * 64])
    def test_valid_names(self, name):
        assert is_valid_tool_name(name)

    @pytest.mark.parametrize("name", ["", "has space", "dot.name", "x" * 65, "é"])
    def test_invalid_names(self, name):
        assert not is_valid_tool_name(name)

    def test_required_must_be_declared(self):
        with pytest.raises(ValueError, match="not declared"):
            ToolParameters(properties={"a": {"type": "string"}}, required=["b"])

    def test_to_wire(self):
        wire = STOP_AGENT_METADATA.to_wire()
        assert wire["type"] == "function"
        assert wire["function"]["name"] == "stopAgent"
        assert wire["function"]["parameters"]["required"] == ["result"]

    def test_create_agent_requires_name_task_tools(self):
        assert CREATE_AGENT_METADATA.parameters.required == ["name", "task", "tools"]

    def test_create_agent_params_accept_camel_case_prompt(self):
        params = CreateAgentParams.model_validate(
            {"name": "n", "task": "t", "tools": [], "systemPrompt": "custom"}
        )
        assert params.system_prompt == "custom"


class TestToolRegistry:
    def test_register_and_get(self):
        registry = ToolRegistry()
        descriptor = _descriptor()
        registry.register("echo", descriptor)
        assert registry.get("echo") is descriptor
        assert registry.has("echo")
        assert "echo" in registry
        assert len(registry) == 1

    def test_get_missing_returns_none(self):
        registry = ToolRegistry()
        assert registry.get("missing") is None
        assert registry.get_metadata("missing") is None

    def test_get_metadata_returns_same_object(self):
        registry = ToolRegistry([_descriptor()])
        assert registry.get_metadata("echo") is registry.get_metadata("echo")

    def test_register_overwrites(self):
        registry = ToolRegistry()
        first, second = _descriptor(), _descriptor()
        registry.register("echo", first)
        registry.register("echo", second)
        assert registry.get("echo") is second
        assert registry.list() == ["echo"]

    def test_name_mismatch_rejected(self):
        with pytest.raises(ValueError, match="metadata is named"):
            ToolRegistry().register("other", _descriptor("echo"))

    def test_invalid_name_rejected(self):
        with pytest.raises(ValueError, match="Invalid tool name"):
            ToolRegistry().register("bad name", _descriptor())

    def test_non_descriptor_rejected(self):
        with pytest.raises(TypeError):
            ToolRegistry().register("echo", {"executor": print})

    def test_non_callable_executor_rejected(self):
        descriptor = ToolDescriptor(metadata=ToolMetadata(name="echo", description="d"), executor="nope")
        with pytest.raises(TypeError, match="callable"):
            ToolRegistry().register("echo", descriptor)

    def test_get_all_metadata_skips_unknown(self):
        registry = ToolRegistry([_descriptor("a"), _descriptor("b")])
        names = [m.name for m in registry.get_all_metadata(["b", "zzz", "a"])]
        assert names == ["b", "a"]

    def test_get_all_metadata_defaults_to_everything(self):
        registry = ToolRegistry([_descriptor("a"), _descriptor("b")])
        assert [m.name for m in registry.get_all_metadata()] == ["a", "b"]

    def test_clear(self):
        registry = ToolRegistry([_descriptor()])
        registry.clear()
        assert len(registry) == 0
        assert registry.list() == []


class _Nested(BaseModel):
    value: int


class _Params(BaseModel):
    text: str = Field(description="Some text")
    count: int = 1
    label: Optional[str] = None
    nested: Optional[_Nested] = None
    tags: list[str] = Field(default_factory=list)


class TestSchemaFromModel:
    def test_required_and_properties(self):
        schema = schema_from_model(_Params)
        assert schema.type == "object"
        assert schema.required == ["text"]
        assert schema.properties["text"] == {"type": "string", "description": "Some text"}

    def test_optional_collapses_to_inner_type(self):
        schema = schema_from_model(_Params)
        assert schema.properties["label"] == {"type": "string"}

    def test_refs_are_inlined(self):
        nested = schema_from_model(_Params).properties["nested"]
        assert nested["type"] == "object"
        assert nested["properties"] == {"value": {"type": "integer"}}
        assert "$ref" not in json.dumps(nested)

    def test_no_required_means_none(self):
        class NoArgs(BaseModel):
            flag: bool = False

        assert schema_from_model(NoArgs).required is None


class TestToolBuilder:
    @pytest.mark.asyncio
    async def test_sync_execute_result_is_encoded(self):
        t = tool("add", "Add", _Params, lambda p: {"text": p.text, "count": p.count})
        assert await t.executor({"text": "hi", "count": 2}) == '{"text": "hi", "count": 2}'

    @pytest.mark.asyncio
    async def test_string_result_is_returned_as_is(self):
        t = tool("say", "Say", _Params, lambda p: p.text)
        assert await t.executor({"text": "hello"}) == "hello"

    @pytest.mark.asyncio
    async def test_async_execute(self):
        async def run(p):
            return p.text.upper()

        t = tool("shout", "Shout", _Params, run)
        assert await t.executor({"text": "hey"}) == "HEY"

    @pytest.mark.asyncio
    async def test_invalid_arguments_raise(self):
        t = tool("say", "Say", _Params, lambda p: p.text)
        with pytest.raises(ToolExecutionError, match="Invalid arguments for tool 'say'"):
            await t.executor({"count": 3})

    @pytest.mark.asyncio
    async def test_non_strict_skips_validation(self):
        t = tool("say", "Say", _Params, lambda p: p.count, strict=False)
        assert await t.executor({"count": "not-a-number"}) == "not-a-number"

    @pytest.mark.asyncio
    async def test_failure_is_wrapped(self):
        def fail(p):
            raise KeyError("missing")

        t = tool("fail", "Fail", _Params, fail)
        with pytest.raises(ToolExecutionError):
            await t.executor({"text": "x"})

    @pytest.mark.asyncio
    async def test_agentree_errors_pass_through(self):
        def fail(p):
            raise ToolNotFoundError("other")

        t = tool("fail", "Fail", _Params, fail)
        with pytest.raises(ToolNotFoundError):
            await t.executor({"text": "x"})

    @pytest.mark.asyncio
    async def test_error_function_formats_failure(self):
        def fail(p):
            raise RuntimeError("nope")

        t = tool("fail", "Fail", _Params, fail, error_function=lambda e: f"handled: {e}")
        assert await t.executor({"text": "x"}) == "handled: nope"
        assert t.error_formatter is not None

    def test_metadata_is_derived(self):
        t = tool("say", "Say something", _Params, lambda p: p.text)
        assert t.name == "say"
        assert t.description == "Say something"
        assert t.parameters.required == ["text"]
        ToolRegistry().add(t)
