"""File-based run recording.

Each agent gets its own folder. The root agent's folder is
``<output_folder>/<name>-<timestamp>``; every child nests a folder named
after itself inside its parent's:

    agent-report.md      sectioned report, sections rewritten in place
    conversation.md      every message in order
    execution-log.json   one JSON event per line
    metadata.json        id, name, task, depth, status, start/end times
"""

from __future__ import annotations

import json
import re
from datetime import datetime
from pathlib import Path
from typing import Literal, Optional

from pydantic import BaseModel

from ..models.events import utc_timestamp


class AgentMetadata(BaseModel):
    id: str
    name: str
    task: str
    depth: int
    parent_id: Optional[str] = None
    start_time: str
    end_time: Optional[str] = None
    status: Literal["created", "running", "completed", "error"] = "created"


def sanitize_file_name(name: str) -> str:
    return re.sub(r"[^a-zA-Z0-9_-]", "-", name).lower() or "agent"


def create_output_folder(root_folder: Path, agent_name: str, parent_path: Optional[Path] = None) -> Path:
    if parent_path is not None:
        path = parent_path / sanitize_file_name(agent_name)
    else:
        stamp = datetime.now().strftime("%Y-%m-%d-%H-%M-%S")
        path = root_folder / f"{sanitize_file_name(agent_name)}-{stamp}"
    path.mkdir(parents=True, exist_ok=True)
    return path


def replace_report_section(report: str, title: str, content: str) -> str:
    """Replace the body of ``## title`` (up to the next ``## `` header), or append it."""
    pattern = re.compile(rf"(^## {re.escape(title)}\n)[\s\S]*?(?=^## |\Z)", re.MULTILINE)
    replacement = f"## {title}\n\n{content}\n\n"
    if pattern.search(report):
        return pattern.sub(lambda _: replacement, report, count=1)
    return report.rstrip("\n") + f"\n\n{replacement}"


class OutputRecorder:
    """EventSink that persists one agent's run to disk."""

    def __init__(
        self,
        output_folder: Path | str,
        agent_id: str,
        agent_name: str,
        task: str,
        depth: int = 0,
        parent_id: Optional[str] = None,
        parent_path: Optional[Path] = None,
    ):
        self.output_folder = Path(output_folder)
        self.parent_path = parent_path
        self.metadata = AgentMetadata(
            id=agent_id,
            name=agent_name,
            task=task,
            depth=depth,
            parent_id=parent_id,
            start_time=utc_timestamp(),
        )
        self.path: Optional[Path] = None
        self.stats = {"messages": 0, "llm_calls": 0, "children": 0, "tools_used": []}

    # -- files ---------------------------------------------------------------

    @property
    def report_path(self) -> Path:
        return self.path / "agent-report.md"

    @property
    def conversation_path(self) -> Path:
        return self.path / "conversation.md"

    @property
    def execution_log_path(self) -> Path:
        return self.path / "execution-log.json"

    @property
    def metadata_path(self) -> Path:
        return self.path / "metadata.json"

    def _initialize(self) -> None:
        if self.path is not None:
            return
        self.path = create_output_folder(self.output_folder, self.metadata.name, self.parent_path)
        self.conversation_path.write_text(f"# Conversation Log - {self.metadata.name}\n\n", encoding="utf-8")
        self.report_path.write_text(self._initial_report(), encoding="utf-8")
        self.execution_log_path.write_text("", encoding="utf-8")
        self._write_metadata()
        self._event("agentCreated", {"task": self.metadata.task, "parent_id": self.metadata.parent_id})

    def _write_metadata(self) -> None:
        self.metadata_path.write_text(self.metadata.model_dump_json(indent=2), encoding="utf-8")

    def _event(self, event: str, data: dict) -> None:
        line = {
            "timestamp": utc_timestamp(),
            "event": event,
            "agent_id": self.metadata.id,
            "agent_name": self.metadata.name,
            "depth": self.metadata.depth,
            "data": data,
        }
        with self.execution_log_path.open("a", encoding="utf-8") as f:
            f.write(json.dumps(line, ensure_ascii=False, default=str) + "\n")

    def _append_conversation(self, role: str, content: str, tool_calls: Optional[list] = None) -> None:
        entry = f"## {utc_timestamp()}\n**{role}:**\n\n{content}\n\n"
        if tool_calls:
            entry += "**Tool Calls:**\n"
            for tc in tool_calls:
                entry += f"- {tc.function.name}({tc.function.arguments})\n"
            entry += "\n"
        with self.conversation_path.open("a", encoding="utf-8") as f:
            f.write(entry)

    def _update_section(self, title: str, content: str) -> None:
        report = self.report_path.read_text(encoding="utf-8")
        self.report_path.write_text(replace_report_section(report, title, content), encoding="utf-8")

    def _update_summary(self) -> None:
        status = "Processing" if self.metadata.status == "running" else self.metadata.status
        tools = ", ".join(self.stats["tools_used"]) or "None"
        self._update_section(
            "Execution Summary",
            f"- **Messages Exchanged:** {self.stats['messages']}\n"
            f"- **LLM Calls:** {self.stats['llm_calls']}\n"
            f"- **Tools Used:** {tools}\n"
            f"- **Child Agents Created:** {self.stats['children']}\n"
            f"- **Current Status:** {status}",
        )

    def _initial_report(self) -> str:
        m = self.metadata
        parent = f"**Parent ID:** `{m.parent_id}`  \n" if m.parent_id else ""
        return (
            f"# Agent Report: {m.name}\n\n"
            f"**Agent ID:** `{m.id}`  \n"
            f"**Depth:** {m.depth}  \n"
            f"{parent}"
            f"**Started:** {m.start_time}  \n\n"
            "## Status\n\n"
            "**Running** - Agent is currently executing\n\n"
            "## Task\n\n"
            f"{m.task}\n\n"
            "## Execution Summary\n\n"
            "- **Messages Exchanged:** 0\n"
            "- **Tools Used:** None yet\n"
            "- **Child Agents Created:** 0\n"
            "- **Current Status:** Initializing\n\n"
            "## Progress Timeline\n\n"
            "- Agent created and initialized\n"
            "- Loading context and preparing execution\n\n"
        )

    # -- EventSink -----------------------------------------------------------

    def record_start(self, data) -> None:
        self._initialize()
        self.metadata.status = "running"
        self._event("agentStarted", {"name": data.name})
        self._write_metadata()

    def record_context_loaded(self, data) -> None:
        if self.path is None:
            return
        self._event("contextLoaded", {"context": data.context.model_dump()})
        self._update_section(
            "Progress Timeline",
            "- Agent created and initialized\n- Context loaded and ready\n- Starting execution",
        )

    def record_llm_call(self, data) -> None:
        if self.path is None:
            return
        self.stats["llm_calls"] += 1
        self._event(
            "llmCall",
            {
                "message_count": data.message_count,
                "available_tools": data.available_tools,
                "call_number": self.stats["llm_calls"],
            },
        )
        self._update_summary()

    def record_message(self, message) -> None:
        if self.path is None:
            return
        self.stats["messages"] += 1
        self._append_conversation(message.role.value, message.content, message.tool_calls)
        self._update_summary()

    def record_tool_calls(self, tool_calls) -> None:
        if self.path is None:
            return
        names = [tc.function.name for tc in tool_calls]
        for name in names:
            if name not in self.stats["tools_used"]:
                self.stats["tools_used"].append(name)
        self._event("toolCalls", {"tool_calls": names})
        for tc in tool_calls:
            self._append_conversation("tool_call", f"{tc.function.name}({tc.function.arguments})")
        self._update_summary()

    def record_child_created(self, data) -> None:
        if self.path is None:
            return
        self.stats["children"] += 1
        self._event("childCreated", data.model_dump())

    def record_completion(self, data) -> None:
        if self.path is None:
            return
        self.metadata.status = "completed" if data.success else "error"
        self.metadata.end_time = utc_timestamp()
        self._event(
            "agentCompleted",
            {"result": data.result, "execution_time": data.execution_time, "success": data.success},
        )
        self._update_section("Final Result", self._final_result_section(data.result))
        self._update_section("Status", self._status_section(data.execution_time))
        self._write_metadata()

    def record_error(self, data) -> None:
        if self.path is None:
            return
        self.metadata.status = "error"
        self.metadata.end_time = utc_timestamp()
        self._event("agentError", {"error": data.error, "error_type": data.error_type})
        self._write_metadata()

    def child(self, data) -> "OutputRecorder":
        return OutputRecorder(
            self.output_folder,
            agent_id=data.child_id,
            agent_name=data.child_name,
            task=data.child_task,
            depth=data.depth,
            parent_id=self.metadata.id,
            parent_path=self.path,
        )

    # -- report sections -----------------------------------------------------

    def _status_section(self, execution_time: float) -> str:
        text = {
            "completed": "**Completed Successfully**",
            "error": "**Completed with Errors**",
            "running": "**Currently Running**",
        }.get(self.metadata.status, "**Created**")
        return f"{text} - Execution time: {round(execution_time)}ms"

    @staticmethod
    def _final_result_section(result: dict) -> str:
        lines = [
            f"**Success:** {'Yes' if result.get('success') else 'No'}  ",
            f"**Completed:** {result.get('timestamp')}  ",
            f"**Execution Time:** {round(result.get('execution_time') or 0)}ms  ",
            "",
            "### Result Content",
            "",
            result.get("result") or "",
            "",
        ]
        if result.get("error"):
            lines += ["### Error Details", "", "```", result["error"], "```", ""]
        lines += ["### Child Agents", ""]
        children = result.get("children") or []
        if children:
            for i, child in enumerate(children, 1):
                mark = "OK" if child.get("success") else "FAILED"
                lines.append(f"{i}. **{child.get('agent_name')}** - {mark}")
        else:
            lines.append("No child agents created")
        return "\n".join(lines)
