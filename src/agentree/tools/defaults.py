"""Default tool set: file reading/writing, search, replace, shell, tree listing.

Registered on demand with ``register_default_tools``. An agent whose tool
list contains ``"default"`` gets every default tool that is registered.
"""

from __future__ import annotations

import asyncio
import json
import re
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field

from ..core.errors import ToolExecutionError
from .builder import tool
from .registry import ToolDescriptor, ToolRegistry

DEFAULT_ALIAS = "default"

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

IGNORE_DIRS = {
    "node_modules", "dist", "build", ".git", ".next", "coverage",
    ".nyc_output", ".cache", ".vscode", ".idea", "tmp", "temp",
    "__pycache__", ".venv", "venv", ".pytest_cache", ".agentree",
}

IGNORE_FILES = {".DS_Store", "Thumbs.db"}

TEXT_EXTENSIONS = {
    ".ts", ".js", ".tsx", ".jsx", ".json", ".md", ".txt", ".css", ".scss", ".html",
    ".xml", ".yaml", ".yml", ".toml", ".ini", ".cfg", ".conf", ".py", ".java",
    ".c", ".cpp", ".h", ".hpp", ".cs", ".php", ".rb", ".go", ".rs", ".swift",
    ".kt", ".sql", ".sh", ".bash", ".zsh", ".fish", ".ps1", ".bat", ".cmd",
}


# ---------------------------------------------------------------------------
# Parameter models
# ---------------------------------------------------------------------------

class ReadFileParams(BaseModel):
    path: str = Field(description="Path to the file to read")


class WriteFileParams(BaseModel):
    path: str = Field(description="Path of the file to create")
    content: str = Field(description="Content to write into the file")
    overwrite: bool = Field(default=False, description="Allow replacing an existing file")


class SearchParams(BaseModel):
    query: str = Field(description="Text or regular expression to search for")
    extensions: Optional[list[str]] = Field(
        default=None, description="File extensions to include, e.g. ['.py', '.md']"
    )
    root: Optional[str] = Field(default=None, description="Root folder for the search (default: '.')")


class ReplaceFileParams(BaseModel):
    path: str = Field(description="Path of the file to modify")
    search: str = Field(description="Text or regular expression to replace")
    replace: str = Field(description="Replacement text")
    use_regex: bool = Field(default=False, description="Treat 'search' as a regular expression")


class BashParams(BaseModel):
    command: str = Field(description="Shell command to run")
    timeout: int = Field(default=10000, description="Timeout in milliseconds")


class ListTreeParams(BaseModel):
    path: Optional[str] = Field(default=None, description="Directory to list (default: current directory)")
    max_depth: int = Field(default=5, description="Maximum depth of the tree")
    include_hidden: bool = Field(default=False, description="Include hidden files and folders")
    custom_ignore: Optional[list[str]] = Field(default=None, description="Extra folder names to skip")


# ---------------------------------------------------------------------------
# Executors
# ---------------------------------------------------------------------------

def read_file(params: ReadFileParams) -> str:
    path = Path(params.path)
    if not path.is_file():
        raise ToolExecutionError(
            f"File {params.path} does not exist, run the listTree tool to see available files."
        )
    return path.read_text(encoding="utf-8")


def write_file(params: WriteFileParams) -> str:
    path = Path(params.path)
    if path.exists() and not params.overwrite:
        raise ToolExecutionError(f"File {params.path} already exists. Use overwrite=true to replace it.")
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(params.content, encoding="utf-8")
    return f"File {params.path} written ({len(params.content)} characters)"


def _format_write_error(error: BaseException) -> str:
    return f"Error while writing file: {error}"


def search_files(params: SearchParams) -> str:
    try:
        pattern = re.compile(params.query)
    except re.error as e:
        raise ToolExecutionError(f"Invalid search pattern: {e}") from e

    root = Path(params.root or ".")
    results: list[dict] = []
    for file in sorted(p for p in root.rglob("*") if p.is_file()):
        if any(part in IGNORE_DIRS for part in file.relative_to(root).parts[:-1]):
            continue
        if params.extensions and not any(file.name.endswith(ext) for ext in params.extensions):
            continue
        try:
            content = file.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError):
            continue
        matches = [m.group(0) for m in pattern.finditer(content)]
        if matches:
            results.append({"file": str(file), "matches": matches})
    return json.dumps(results, indent=2)


def replace_in_file(params: ReplaceFileParams) -> str:
    path = Path(params.path)
    if not path.is_file():
        raise ToolExecutionError(f"File {params.path} does not exist")
    content = path.read_text(encoding="utf-8")
    if params.use_regex:
        new_content = re.sub(params.search, params.replace, content)
    else:
        new_content = content.replace(params.search, params.replace)
    path.write_text(new_content, encoding="utf-8")
    return f"Replacement done in {params.path}"


async def run_bash(params: BashParams) -> str:
    proc = await asyncio.create_subprocess_shell(
        params.command,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    try:
        stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=params.timeout / 1000)
    except asyncio.TimeoutError:
        proc.kill()
        await proc.wait()
        return f"Error: command timed out after {params.timeout}ms"

    out = stdout.decode("utf-8", errors="replace")
    err = stderr.decode("utf-8", errors="replace")
    if proc.returncode != 0:
        return f"Error: command exited with code {proc.returncode}\n{err}"
    return out or err


def list_tree(params: ListTreeParams) -> str:
    root = Path(params.path or ".")
    if not root.is_dir():
        raise ToolExecutionError(f"Directory {root} does not exist")
    ignore = IGNORE_DIRS | set(params.custom_ignore or [])
    lines: list[str] = [f"{root.resolve().name}/"]
    counts = {"dirs": 0, "files": 0}

    def _walk(path: Path, prefix: str, depth: int) -> None:
        if depth > params.max_depth:
            return
        try:
            entries = sorted(path.iterdir(), key=lambda e: (not e.is_dir(), e.name.lower()))
        except PermissionError:
            return
        entries = [
            e for e in entries
            if (params.include_hidden or not e.name.startswith("."))
            and e.name not in IGNORE_FILES
            and not (e.is_dir() and e.name in ignore)
        ]
        for i, entry in enumerate(entries):
            is_last = i == len(entries) - 1
            connector = "+-- " if is_last else "|-- "
            if entry.is_dir():
                counts["dirs"] += 1
                lines.append(f"{prefix}{connector}{entry.name}/")
                _walk(entry, prefix + ("    " if is_last else "|   "), depth + 1)
            else:
                counts["files"] += 1
                lines.append(f"{prefix}{connector}{entry.name}{_describe_file(entry)}")

    _walk(root, "", 1)
    lines.append("")
    lines.append(f"{counts['dirs']} directories, {counts['files']} files")
    return "\n".join(lines)


def _describe_file(path: Path) -> str:
    if path.suffix.lower() in TEXT_EXTENSIONS:
        try:
            with path.open(encoding="utf-8") as f:
                return f" ({sum(1 for _ in f)} lines)"
        except (OSError, UnicodeDecodeError):
            return ""
    try:
        return f" ({path.stat().st_size} bytes)"
    except OSError:
        return ""


# ---------------------------------------------------------------------------
# Descriptors
# ---------------------------------------------------------------------------

def build_default_tools() -> list[ToolDescriptor]:
    return [
        tool("readFile", "Read the content of a file", ReadFileParams, read_file),
        tool(
            "writeFile",
            "Create a new file with the given content. Fails if the file exists unless overwrite=true",
            WriteFileParams,
            write_file,
            error_function=_format_write_error,
        ),
        tool(
            "searchTool",
            "Search for text or a regular expression in all files, optionally filtered by extension",
            SearchParams,
            search_files,
        ),
        tool(
            "replaceFile",
            "Replace part of the text in a file (supports regular expressions)",
            ReplaceFileParams,
            replace_in_file,
        ),
        tool("bash", "Run a shell command with a configurable timeout", BashParams, run_bash),
        tool(
            "listTree",
            "Show the directory tree with line counts for text files, skipping build and VCS folders",
            ListTreeParams,
            list_tree,
        ),
    ]


DEFAULT_TOOL_NAMES = [t.name for t in build_default_tools()]


def register_default_tools(registry: ToolRegistry) -> list[str]:
    """Register every default tool; returns their names."""
    return [registry.add(descriptor) for descriptor in build_default_tools()]


def expand_tool_names(names: list[str]) -> list[str]:
    """Replace the ``"default"`` alias with the default tool names, deduplicated."""
    expanded: list[str] = []
    for name in names:
        for resolved in (DEFAULT_TOOL_NAMES if name == DEFAULT_ALIAS else [name]):
            if resolved not in expanded:
                expanded.append(resolved)
    return expanded
