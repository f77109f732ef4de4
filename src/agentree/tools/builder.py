"""Build ToolDescriptors from a pydantic parameter model and an executor.

The parameter model does double duty: its JSON schema becomes the metadata
the LLM sees, and it validates the arguments the LLM sends back before the
executor runs.
"""

from __future__ import annotations

import inspect
import json
import logging
from typing import Any, Callable, Optional

from pydantic import BaseModel, ValidationError

from ..core.errors import AgentTreeError, ToolExecutionError
from ..models.tool import ToolMetadata, ToolParameters
from .registry import ErrorFormatter, ToolDescriptor

logger = logging.getLogger(__name__)

_DROPPED_KEYS = ("title", "anyOf", "$ref", "$defs")


def _resolve_ref(ref: str, defs: dict) -> dict:
    return defs.get(ref.rsplit("/", 1)[-1], {})


def _clean_property(prop: dict, defs: dict) -> dict:
    """Reduce a pydantic property schema to the plain function-calling subset."""
    if "$ref" in prop:
        prop = {**_resolve_ref(prop["$ref"], defs), **{k: v for k, v in prop.items() if k != "$ref"}}

    if "anyOf" in prop:
        options = [p for p in prop["anyOf"] if p.get("type") != "null"]
        if len(options) == 1:
            prop = {**_clean_property(options[0], defs), **{k: v for k, v in prop.items() if k != "anyOf"}}

    result = {k: v for k, v in prop.items() if k not in _DROPPED_KEYS}
    if result.get("default", ...) is None:
        del result["default"]
    if isinstance(result.get("items"), dict):
        result["items"] = _clean_property(result["items"], defs)
    if isinstance(result.get("properties"), dict):
        result["properties"] = {
            name: _clean_property(sub, defs) for name, sub in result["properties"].items()
        }
    return result


def schema_from_model(model: type[BaseModel]) -> ToolParameters:
    """Derive the ``{type: object, properties, required?}`` spec from a model."""
    schema = model.model_json_schema()
    defs = schema.get("$defs", {})
    properties = {
        name: _clean_property(prop, defs) for name, prop in schema.get("properties", {}).items()
    }
    return ToolParameters(properties=properties, required=schema.get("required") or None)


def _encode_result(result: Any) -> str:
    return result if isinstance(result, str) else json.dumps(result, default=str)


def tool(
    name: str,
    description: str,
    parameters: type[BaseModel],
    execute: Callable[[Any], Any],
    error_function: Optional[ErrorFormatter] = None,
    strict: bool = True,
) -> ToolDescriptor:
    """Create a validated ToolDescriptor.

    ``execute`` receives an instance of ``parameters`` and may be sync or
    async. Non-string results are JSON-encoded. When ``error_function`` is
    given, failures are rendered through it instead of raised.

    Example::

        class AddParams(BaseModel):
            a: float = Field(description="First number")
            b: float = Field(description="Second number")

        add = tool("add", "Add two numbers", AddParams, lambda p: p.a + p.b)
    """
    metadata = ToolMetadata(
        name=name,
        description=description,
        parameters=schema_from_model(parameters),
    )

    async def executor(args: dict) -> str:
        try:
            if strict:
                try:
                    params = parameters.model_validate(args)
                except ValidationError as e:
                    raise ToolExecutionError(f"Invalid arguments for tool '{name}': {e}") from e
            else:
                params = parameters.model_construct(**args)

            result = execute(params)
            if inspect.isawaitable(result):
                result = await result
            return _encode_result(result)
        except Exception as e:
            if error_function is not None:
                logger.debug("Tool %s failed, formatting error: %s", name, e)
                return error_function(e)
            if isinstance(e, AgentTreeError):
                raise
            raise ToolExecutionError(str(e) or type(e).__name__) from e

    return ToolDescriptor(metadata=metadata, executor=executor, error_formatter=error_function)
