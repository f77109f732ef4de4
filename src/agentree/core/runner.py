"""Top-level entry: wire config, tools and sinks together and run a root agent."""

from __future__ import annotations

import logging
import uuid
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.markup import escape
from rich.tree import Tree

from ..models.agent import AgentResult
from ..output.base import CompositeSink, EventSink
from ..output.console import ConsoleMonitor
from ..output.recorder import OutputRecorder
from ..providers.base import LLMClient
from ..tools.defaults import DEFAULT_ALIAS, register_default_tools
from ..tools.registry import ToolRegistry
from .agent import AgentNode
from .config import get_effective_config, merge, validate

logger = logging.getLogger(__name__)


async def run_task(
    task: str,
    name: str = "root",
    context: Optional[list[str]] = None,
    tools: Optional[list[str]] = None,
    project_path: Optional[Path] = None,
    config_overrides: Optional[dict] = None,
    log_level: str = "basic",
    llm_client: Optional[LLMClient] = None,
    registry: Optional[ToolRegistry] = None,
) -> AgentResult:
    """Run ``task`` as a root agent with the default tools registered.

    Raises ConfigurationError before anything runs if the merged
    configuration is invalid.
    """
    config = merge(get_effective_config(project_path, config_overrides))
    validate(config)

    if registry is None:
        registry = ToolRegistry()
        register_default_tools(registry)

    root_id = str(uuid.uuid4())
    sinks: list[EventSink] = []
    if log_level != "silent":
        sinks.append(ConsoleMonitor(Console(stderr=True), log_level=log_level))
    if config.output_file:
        sinks.append(OutputRecorder(config.output_folder, agent_id=root_id, agent_name=name, task=task))

    root = AgentNode(
        name=name,
        task=task,
        context=context,
        tools=tools if tools is not None else [DEFAULT_ALIAS],
        config=config,
        registry=registry,
        llm_client=llm_client,
        event_sink=CompositeSink(sinks),
        agent_id=root_id,
    )

    logger.info("Running %s with model %s (max depth %d)", name, config.model, config.max_depth)
    return await root.execute()


def build_result_tree(result: AgentResult, tree: Optional[Tree] = None) -> Tree:
    """Render an AgentResult and its children as a rich Tree."""
    status = "[green]OK[/green]" if result.success else "[red]FAILED[/red]"
    label = f"{status} [bold]{escape(result.agent_name)}[/bold] [dim]({result.execution_time / 1000:.1f}s)[/dim]"
    node = tree.add(label) if tree is not None else Tree(label)
    if result.result:
        node.add(escape(result.result))
    if result.error:
        node.add(f"[red]{escape(result.error)}[/red]")
    for child in result.children:
        build_result_tree(child, node)
    return node
