"""Tests for tools/defaults.py."""

from __future__ import annotations

import json
import sys

import pytest

from agentree.core.errors import ToolExecutionError
from agentree.tools.defaults import (
    DEFAULT_TOOL_NAMES,
    BashParams,
    ListTreeParams,
    ReadFileParams,
    ReplaceFileParams,
    SearchParams,
    WriteFileParams,
    expand_tool_names,
    list_tree,
    read_file,
    register_default_tools,
    replace_in_file,
    run_bash,
    search_files,
    write_file,
)
from agentree.tools.registry import ToolRegistry


class TestRegistration:
    def test_default_tool_names(self):
        assert DEFAULT_TOOL_NAMES == [
            "readFile", "writeFile", "searchTool", "replaceFile", "bash", "listTree",
        ]

    def test_register_default_tools(self):
        registry = ToolRegistry()
        names = register_default_tools(registry)
        assert names == DEFAULT_TOOL_NAMES
        assert registry.list() == DEFAULT_TOOL_NAMES

    def test_expand_default_alias(self):
        assert expand_tool_names(["default"]) == DEFAULT_TOOL_NAMES

    def test_expand_deduplicates(self):
        assert expand_tool_names(["bash", "default", "custom"]) == (
            ["bash"] + [n for n in DEFAULT_TOOL_NAMES if n != "bash"] + ["custom"]
        )

    def test_expand_without_alias(self):
        assert expand_tool_names(["a", "b", "a"]) == ["a", "b"]


class TestFileTools:
    def test_read_file(self, tmp_project):
        content = read_file(ReadFileParams(path=str(tmp_project / "README.md")))
        assert content == "# Test Project\n"

    def test_read_missing_file(self, tmp_project):
        with pytest.raises(ToolExecutionError, match="does not exist"):
            read_file(ReadFileParams(path=str(tmp_project / "nope.txt")))

    def test_write_file_creates_parents(self, tmp_path):
        target = tmp_path / "a" / "b" / "out.txt"
        message = write_file(WriteFileParams(path=str(target), content="hello"))
        assert target.read_text(encoding="utf-8") == "hello"
        assert "5 characters" in message

    def test_write_refuses_existing_file(self, tmp_project):
        target = tmp_project / "README.md"
        with pytest.raises(ToolExecutionError, match="already exists"):
            write_file(WriteFileParams(path=str(target), content="x"))
        assert target.read_text(encoding="utf-8") == "# Test Project\n"

    def test_write_overwrite(self, tmp_project):
        target = tmp_project / "README.md"
        write_file(WriteFileParams(path=str(target), content="new", overwrite=True))
        assert target.read_text(encoding="utf-8") == "new"

    @pytest.mark.asyncio
    async def test_write_tool_formats_errors(self, tmp_project):
        registry = ToolRegistry()
        register_default_tools(registry)
        output = await registry.get("writeFile").executor(
            {"path": str(tmp_project / "README.md"), "content": "x"}
        )
        assert output.startswith("Error while writing file:")

    def test_replace_plain_text(self, tmp_project):
        target = tmp_project / "src" / "main.py"
        replace_in_file(ReplaceFileParams(path=str(target), search="hello", replace="bye"))
        assert target.read_text(encoding="utf-8") == "print('bye')\n"

    def test_replace_regex(self, tmp_project):
        target = tmp_project / "src" / "utils.py"
        replace_in_file(ReplaceFileParams(
            path=str(target), search=r"def (\w+)", replace=r"def my_\1", use_regex=True,
        ))
        assert "def my_add(a, b):" in target.read_text(encoding="utf-8")

    def test_replace_missing_file(self, tmp_path):
        with pytest.raises(ToolExecutionError):
            replace_in_file(ReplaceFileParams(path=str(tmp_path / "x"), search="a", replace="b"))


class TestSearch:
    def test_search_finds_matches(self, tmp_project):
        results = json.loads(search_files(SearchParams(query="def \\w+", root=str(tmp_project))))
        assert len(results) == 1
        assert results[0]["file"].endswith("utils.py")
        assert results[0]["matches"] == ["def add"]

    def test_search_filters_extensions(self, tmp_project):
        results = json.loads(search_files(
            SearchParams(query="Test", extensions=[".py"], root=str(tmp_project))
        ))
        assert results == []

    def test_search_skips_ignored_dirs(self, tmp_project):
        (tmp_project / "node_modules").mkdir()
        (tmp_project / "node_modules" / "lib.js").write_text("def hidden", encoding="utf-8")
        results = json.loads(search_files(SearchParams(query="def", root=str(tmp_project))))
        assert all("node_modules" not in r["file"] for r in results)

    def test_invalid_pattern(self, tmp_project):
        with pytest.raises(ToolExecutionError, match="Invalid search pattern"):
            search_files(SearchParams(query="(", root=str(tmp_project)))


class TestListTree:
    def test_tree_layout(self, tmp_project):
        output = list_tree(ListTreeParams(path=str(tmp_project)))
        lines = output.splitlines()
        assert lines[0] == "test-project/"
        assert "|-- src/" in lines
        assert "|   |-- main.py (1 lines)" in lines
        assert "|   +-- utils.py (2 lines)" in lines
        assert "+-- README.md (1 lines)" in lines
        assert lines[-1] == "1 directories, 3 files"

    def test_hidden_and_ignored_entries(self, tmp_project):
        (tmp_project / ".secret").write_text("x", encoding="utf-8")
        (tmp_project / "build").mkdir()
        output = list_tree(ListTreeParams(path=str(tmp_project)))
        assert ".secret" not in output
        assert "build/" not in output

        with_hidden = list_tree(ListTreeParams(path=str(tmp_project), include_hidden=True))
        assert ".secret" in with_hidden

    def test_custom_ignore(self, tmp_project):
        output = list_tree(ListTreeParams(path=str(tmp_project), custom_ignore=["src"]))
        assert "src/" not in output
        assert output.splitlines()[-1] == "0 directories, 1 files"

    def test_max_depth(self, tmp_project):
        output = list_tree(ListTreeParams(path=str(tmp_project), max_depth=1))
        assert "src/" in output
        assert "main.py" not in output

    def test_missing_directory(self, tmp_path):
        with pytest.raises(ToolExecutionError):
            list_tree(ListTreeParams(path=str(tmp_path / "missing")))


@pytest.mark.skipif(sys.platform == "win32", reason="POSIX shell commands")
class TestBash:
    @pytest.mark.asyncio
    async def test_stdout(self):
        assert (await run_bash(BashParams(command="echo hello"))).strip() == "hello"

    @pytest.mark.asyncio
    async def test_non_zero_exit(self):
        output = await run_bash(BashParams(command="echo oops >&2; exit 3"))
        assert output.startswith("Error: command exited with code 3")
        assert "oops" in output

    @pytest.mark.asyncio
    async def test_timeout(self):
        output = await run_bash(BashParams(command="sleep 5", timeout=100))
        assert output == "Error: command timed out after 100ms"
