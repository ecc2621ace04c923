"""run_tool 外部工具调用"""

from __future__ import annotations

from pathlib import Path

import pytest
from conftest import FakeExecutor

from modpkg.core.exceptions import ExternalToolError
from modpkg.utils.shell import CommandResult, LocalExecutor, get_executor, run_tool, set_executor


class TestRunTool:
    def test_success(self, tmp_path: Path) -> None:
        r = run_tool(["echo", "hello"], cwd=str(tmp_path))
        assert r.success
        assert "hello" in r.output

    def test_failure_raises(self, tmp_path: Path) -> None:
        with pytest.raises(ExternalToolError, match="false 执行失败") as exc:
            run_tool(["false"], cwd=str(tmp_path), target="x.tar", module="x")
        assert exc.value.tool == "false"
        assert exc.value.exit_code != 0
        assert exc.value.target == "x.tar"
        assert exc.value.module == "x"

    def test_missing_tool_is_127(self, tmp_path: Path) -> None:
        r = LocalExecutor().execute(["modpkg-no-such-tool-xyz"], cwd=str(tmp_path))
        assert r.returncode == 127

    def test_output_combined(self, tmp_path: Path) -> None:
        r = LocalExecutor().execute(
            ["sh", "-c", "echo out; echo err >&2"], cwd=str(tmp_path),
        )
        assert "out" in r.output
        assert "err" in r.output

    def test_injected_executor(self) -> None:
        ex = FakeExecutor(lambda cmd, cwd: CommandResult(3, "boom"))
        with pytest.raises(ExternalToolError) as exc:
            run_tool(["unzip", "a.zip"], executor=ex)
        assert "boom" in exc.value.output

    def test_global_executor_swap(self) -> None:
        original = get_executor()
        ex = FakeExecutor()
        set_executor(ex)
        try:
            run_tool(["bunzip2", "a.bz2"], cwd="/tmp")
        finally:
            set_executor(original)
        assert ex.commands == [(["bunzip2", "a.bz2"], "/tmp")]
