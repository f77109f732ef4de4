"""Live console view of an agent tree, indented by depth."""

from __future__ import annotations

from typing import Optional

from rich.console import Console
from rich.markup import escape

LOG_LEVELS = ("silent", "basic", "detailed", "verbose")


class ConsoleMonitor:
    """EventSink that prints agent progress with rich markup.

    ``basic`` shows root lifecycle and child creation, ``detailed`` adds
    child lifecycle and tool calls, ``verbose`` adds LLM calls and messages.
    """

    def __init__(
        self,
        console: Optional[Console] = None,
        log_level: str = "detailed",
        indent: bool = True,
        depth: int = 0,
    ):
        if log_level not in LOG_LEVELS:
            raise ValueError(f"Unknown log level: {log_level}")
        self.console = console or Console(stderr=True)
        self.log_level = log_level
        self.indent = indent
        self.depth = depth

    def _enabled(self, level: str) -> bool:
        return LOG_LEVELS.index(self.log_level) >= LOG_LEVELS.index(level)

    def _print(self, depth: int, text: str) -> None:
        prefix = "  " * (depth + 1) if self.indent else "  "
        self.console.print(f"{prefix}{text}")

    def record_start(self, data):
        if data.depth == 0 and self._enabled("basic"):
            self._print(0, f"[bold cyan]Starting[/bold cyan] {escape(data.name)}")
            self._print(0, f"[dim]Task:[/dim] {escape(data.task)}")
        elif data.depth > 0 and self._enabled("detailed"):
            self._print(data.depth, f"[cyan]Started[/cyan] {escape(data.name)}")

    def record_context_loaded(self, data):
        if self._enabled("verbose"):
            c = data.context
            self._print(
                data.depth,
                f"[dim]Context: {c.file_count} files, {c.url_count} urls, {c.text_count} texts[/dim]",
            )

    def record_llm_call(self, data):
        if self._enabled("verbose"):
            tools = ", ".join(data.available_tools) or "none"
            self._print(data.depth, f"[dim]LLM call ({data.message_count} messages), tools: {escape(tools)}[/dim]")

    def record_message(self, message):
        if self._enabled("verbose") and message.content:
            preview = message.content if len(message.content) <= 200 else message.content[:200] + "..."
            self._print(self.depth, f"[dim]{message.role.value}: {escape(preview)}[/dim]")

    def record_tool_calls(self, tool_calls):
        if self._enabled("detailed"):
            names = ", ".join(tc.function.name for tc in tool_calls)
            self._print(self.depth, f"[yellow]Tools[/yellow] {escape(names)}")

    def record_child_created(self, data):
        if self._enabled("basic"):
            self._print(
                data.depth - 1,
                f"[magenta]Child created[/magenta] {escape(data.child_name)}: {escape(data.child_task)}",
            )

    def record_completion(self, data):
        if data.depth > 0 and not self._enabled("detailed"):
            return
        if not self._enabled("basic"):
            return
        seconds = data.execution_time / 1000
        if data.success:
            self._print(data.depth, f"[green]OK[/green] {escape(data.name)} in {seconds:.1f}s")
        else:
            error = data.result.get("error") or "unknown error"
            self._print(data.depth, f"[red]FAILED[/red] {escape(data.name)}: {escape(error)}")

    def record_error(self, data):
        if self._enabled("basic"):
            self._print(data.depth, f"[red]ERROR[/red] {escape(data.name)}: {escape(data.error)}")

    def child(self, data) -> "ConsoleMonitor":
        return ConsoleMonitor(self.console, self.log_level, self.indent, depth=data.depth)
