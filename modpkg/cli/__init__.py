"""modpkg 命令行接口

CLI 按领域拆分为子模块，每个模块注册自己的命令到 main group。
"""

from __future__ import annotations

from typing import Any

import click

from modpkg import __version__
from modpkg.core.config import DEFAULT_CONFIG_FILE, Config, init_config
from modpkg.core.exceptions import ModPkgError
from modpkg.core.installer import Installer
from modpkg.core.policy import ConfirmPolicy, FixedPolicy
from modpkg.utils.logger import setup_logging_from_env


class _Group(click.Group):
    """把业务异常转换为 "[code] message" 并以状态 1 退出"""

    def invoke(self, ctx: click.Context) -> Any:
        try:
            return super().invoke(ctx)
        except ModPkgError as e:
            raise click.ClickException(f"[{e.code}] {e}") from e


def _installer(ctx: click.Context, yes: bool) -> Installer:
    """按当前配置构建安装器；--yes 时所有确认自动通过"""
    config: Config = ctx.obj["config"]
    policy = FixedPolicy(default=True) if yes else ConfirmPolicy()
    return Installer.from_config(config, policy)


@click.group(cls=_Group)
@click.version_option(version=__version__)
@click.option(
    "--config", "-c", "config_path",
    default=DEFAULT_CONFIG_FILE, show_default=True, help="配置文件路径",
)
@click.pass_context
def main(ctx: click.Context, config_path: str) -> None:
    """modpkg - 模块包管理器"""
    setup_logging_from_env()
    ctx.ensure_object(dict)
    ctx.obj["config"] = init_config(config_path)


# 注册各领域子命令
from modpkg.cli.cmd_install import register as _reg_install  # noqa: E402
from modpkg.cli.cmd_query import register as _reg_query  # noqa: E402

_reg_install(main)
_reg_query(main)
