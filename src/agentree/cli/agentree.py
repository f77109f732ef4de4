"""Agentree command line: run a task through a tree of agents."""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from ..core.errors import ConfigurationError

console = Console()

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_CONFIG = 2


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )


@click.group()
def agentree_cli() -> None:
    """Agentree - hierarchical AI agents that split tasks into subtasks."""


@agentree_cli.command()
@click.argument("task")
@click.option("--name", "-n", default="root", show_default=True, help="Name of the root agent")
@click.option("--context", "-c", multiple=True, help="Context item: file path, URL or text (repeatable)")
@click.option("--tool", "-t", "tools", multiple=True, help="Tool name for the root agent (default: all default tools)")
@click.option("--max-depth", type=click.IntRange(1, 10), help="Maximum depth of the agent tree")
@click.option("--max-steps", type=click.IntRange(min=1), help="Maximum LLM calls per agent")
@click.option("--model", type=str, help="Model override")
@click.option("--base-url", type=str, help="OpenAI-compatible endpoint")
@click.option("--api-key", envvar="OPENAI_API_KEY", help="API key (default: $OPENAI_API_KEY)")
@click.option("--stream", is_flag=True, help="Use streaming responses")
@click.option("--no-output", is_flag=True, help="Do not write run files")
@click.option("--output-folder", type=click.Path(file_okay=False), help="Folder for run files")
@click.option("--project", "-p", type=click.Path(exists=True, file_okay=False), help="Project with .agentree/config.yaml")
@click.option("--json", "as_json", is_flag=True, help="Print the result as JSON")
@click.option("--quiet", "-q", is_flag=True, help="No live progress output")
@click.option("--verbose", "-v", is_flag=True, help="Debug logging and verbose progress")
def run(
    task: str,
    name: str,
    context: tuple[str, ...],
    tools: tuple[str, ...],
    max_depth: int | None,
    max_steps: int | None,
    model: str | None,
    base_url: str | None,
    api_key: str | None,
    stream: bool,
    no_output: bool,
    output_folder: str | None,
    project: str | None,
    as_json: bool,
    quiet: bool,
    verbose: bool,
) -> None:
    """Run TASK with a root agent that may delegate to child agents."""
    from ..core import runner

    _setup_logging(verbose)

    overrides = {
        "api_key": api_key,
        "model": model,
        "base_url": base_url,
        "max_depth": max_depth,
        "max_steps": max_steps,
        "streaming": True if stream else None,
        "output_folder": output_folder,
        "output_file": False if no_output else None,
    }

    if quiet or as_json:
        log_level = "silent"
    elif verbose:
        log_level = "verbose"
    else:
        log_level = "detailed"

    try:
        result = asyncio.run(
            runner.run_task(
                task=task,
                name=name,
                context=list(context),
                tools=list(tools) or None,
                project_path=Path(project) if project else None,
                config_overrides=overrides,
                log_level=log_level,
            )
        )
    except ConfigurationError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(EXIT_CONFIG)

    if as_json:
        click.echo(json.dumps(result.model_dump(), indent=2, ensure_ascii=False))
    else:
        console.print()
        console.print(runner.build_result_tree(result))

    sys.exit(EXIT_OK if result.success else EXIT_FAILED)


@agentree_cli.command("tools")
def list_tools() -> None:
    """List the default tools available to agents."""
    from ..tools.builtins import CREATE_AGENT_METADATA, STOP_AGENT_METADATA
    from ..tools.defaults import build_default_tools

    for meta in (CREATE_AGENT_METADATA, STOP_AGENT_METADATA):
        console.print(f"  [cyan]{meta.name}[/cyan] [dim](builtin)[/dim] {escape(meta.description)}")
    for descriptor in build_default_tools():
        console.print(f"  [green]{descriptor.name}[/green] {escape(descriptor.description)}")


def main() -> None:
    agentree_cli()


if __name__ == "__main__":
    main()
