"""外部工具调用 — 统一子进程执行

通过 CommandExecutor 协议抽象子进程执行，方便测试替换。
外部工具（下载、解压、解包）只以退出码判定成败，输出仅用于诊断。
"""

from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass
from typing import Protocol

from modpkg.core.exceptions import ExternalToolError

logger = logging.getLogger(__name__)


# =========================================================================
# 命令执行结果
# =========================================================================

@dataclass
class CommandResult:
    """命令执行结果（与 subprocess 解耦），output 为 stdout/stderr 合并输出"""

    returncode: int
    output: str

    @property
    def success(self) -> bool:
        return self.returncode == 0


# =========================================================================
# 命令执行器协议
# =========================================================================

class CommandExecutor(Protocol):
    """命令执行器协议 — 测试时可注入假实现，无需 patch subprocess"""

    def execute(
        self,
        cmd: list[str],
        *,
        cwd: str = ".",
        timeout: int | None = None,
    ) -> CommandResult:
        """阻塞执行命令并返回结果"""
        ...


class LocalExecutor:
    """本地子进程执行器（默认实现）"""

    def execute(
        self,
        cmd: list[str],
        *,
        cwd: str = ".",
        timeout: int | None = None,
    ) -> CommandResult:
        try:
            r = subprocess.run(
                cmd, stdout=subprocess.PIPE, stderr=subprocess.STDOUT,
                text=True, cwd=cwd, check=False, timeout=timeout,
            )
        except FileNotFoundError as e:
            # 工具不存在按 shell 约定视为 127
            return CommandResult(returncode=127, output=str(e))
        except subprocess.TimeoutExpired as e:
            out = e.output if isinstance(e.output, str) else ""
            return CommandResult(returncode=-1, output=f"超时 ({timeout}s)\n{out}")
        return CommandResult(returncode=r.returncode, output=r.stdout or "")


_default_executor: CommandExecutor = LocalExecutor()


def get_executor() -> CommandExecutor:
    """获取全局默认命令执行器"""
    return _default_executor


def set_executor(executor: CommandExecutor) -> None:
    """替换全局默认命令执行器"""
    global _default_executor  # noqa: PLW0603
    _default_executor = executor


def run_tool(
    cmd: list[str],
    *,
    cwd: str = ".",
    target: str = "",
    module: str = "",
    timeout: int | None = None,
    executor: CommandExecutor | None = None,
) -> CommandResult:
    """执行外部工具，非零退出码抛 ExternalToolError

    Args:
        cmd: 命令参数列表，cmd[0] 为工具名
        cwd: 工作目录
        target: 被处理的文件（写入错误信息）
        module: 当前处理的模块名（写入错误信息）
    """
    ex = executor or get_executor()
    logger.info("  执行 %s (cwd=%s)", " ".join(cmd), cwd)
    r = ex.execute(cmd, cwd=cwd, timeout=timeout)
    if not r.success:
        raise ExternalToolError(
            cmd[0], r.returncode, target=target, output=r.output, module=module,
        )
    if r.output.strip():
        logger.debug("  %s 输出:\n%s", cmd[0], r.output.rstrip())
    return r
