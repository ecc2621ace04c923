"""CLI — 安装 / 卸载"""

from __future__ import annotations

import click

from modpkg.cli import _installer


def register(group: click.Group) -> None:
    group.add_command(install)
    group.add_command(uninstall)


@click.command()
@click.argument("target")
@click.option("--name", "-n", default=None, help="显式指定模块名（默认从文件名推断）")
@click.option("--yes", "-y", is_flag=True, help="对所有确认自动回答是")
@click.pass_context
def install(ctx: click.Context, target: str, name: str | None, yes: bool) -> None:
    """安装模块（模块名 / 本地文件 / URL）"""
    result = _installer(ctx, yes).install(target, module_name=name)
    click.echo(f"就绪: {result.module_name} -> {result.path}")
    if result.registered:
        click.echo("已加入自动加载清单")


@click.command()
@click.argument("name")
@click.option("--yes", "-y", is_flag=True, help="对所有确认自动回答是")
@click.pass_context
def uninstall(ctx: click.Context, name: str, yes: bool) -> None:
    """卸载模块"""
    report = _installer(ctx, yes).uninstall(name)
    if report.deactivated:
        click.echo(f"已停用: {name}")
    if report.unregistered:
        click.echo(f"已移出自动加载清单: {name}")
    for p in report.removed:
        click.echo(f"已删除: {p}")
