"""CLI — 定位、清单查看、启动加载"""

from __future__ import annotations

import click

from modpkg.cli import _installer
from modpkg.core.version import format_version


def register(group: click.Group) -> None:
    group.add_command(which)
    group.add_command(list_modules)
    group.add_command(startup)


@click.command()
@click.argument("name")
@click.option("--no-autoload", is_flag=True, help="不接受 autoload 桩文件")
@click.pass_context
def which(ctx: click.Context, name: str, no_autoload: bool) -> None:
    """显示模块解析到的文件（不下载）"""
    found = _installer(ctx, True).locator.require(name, allow_autoload=not no_autoload)
    ver = format_version(found.version) if found.version else "-"
    flags = []
    if found.is_autoload:
        flags.append("autoload")
    if found.is_compiled:
        flags.append("compiled")
    click.echo(f"{found.source_path}  version={ver}  {' '.join(flags)}".rstrip())


@click.command(name="list")
@click.pass_context
def list_modules(ctx: click.Context) -> None:
    """列出自动加载清单"""
    entries = _installer(ctx, True).registry.list_entries()
    if not entries:
        click.echo("自动加载清单为空。")
        return
    for e in entries:
        click.echo(f"  {e.module_name:24s} {e.path or '(按名称定位)'}")


@click.command()
@click.pass_context
def startup(ctx: click.Context) -> None:
    """激活自动加载清单中的全部模块"""
    results = _installer(ctx, True).activate_registered()
    for name, outcome in results.items():
        click.echo(f"  {name}: {outcome}")
    if any(v.startswith("[FAILED]") for v in results.values()):
        ctx.exit(1)
