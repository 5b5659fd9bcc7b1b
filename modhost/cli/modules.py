"""CLI commands for managing installed modules

Usage:
    modhost modules list [--enabled]
    modhost modules show <name>
    modhost modules install <zip_path>
    modhost modules enable <name>
    modhost modules disable <name>
    modhost modules uninstall <name> [--yes]
    modhost modules sync
"""

from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.table import Table

from modhost.core.modules.manager import ModuleManager
from modhost.core.modules.models import OperationResult

console = Console()

_manager: Optional[ModuleManager] = None


def get_manager() -> ModuleManager:
    """Get the module manager instance"""
    global _manager
    if _manager is None:
        _manager = ModuleManager()
    return _manager


def set_manager(manager: Optional[ModuleManager]) -> None:
    """Replace the module manager (tests, embedding hosts)"""
    global _manager
    _manager = manager


def _report(result: OperationResult) -> None:
    if result.success:
        console.print(f"[green]✓ {result.message}[/green]")
        return

    console.print(f"[red]✗ {result.message}[/red]")
    if result.hint:
        console.print(f"  [dim]{result.hint}[/dim]")
    raise SystemExit(1)


@click.group(name="modules")
def modules_group():
    """Install, enable, disable and remove modules."""
    pass


@modules_group.command(name="list")
@click.option("--enabled", "enabled_only", is_flag=True, help="Only show enabled modules")
def list_cmd(enabled_only: bool):
    """List installed modules."""
    modules = get_manager().list_modules(enabled_only=enabled_only)

    if not modules:
        console.print("No modules installed.")
        return

    table = Table(title=f"Installed Modules ({len(modules)})")
    table.add_column("Name", style="cyan")
    table.add_column("Alias")
    table.add_column("Version")
    table.add_column("Status")
    table.add_column("Core")
    table.add_column("Installed")

    for module in modules:
        status_style = "green" if module.is_enabled else "red"
        table.add_row(
            module.name,
            module.alias,
            module.version,
            f"[{status_style}]{module.status}[/{status_style}]",
            "yes" if module.is_core else "",
            module.installation_date,
        )

    console.print(table)


@modules_group.command(name="show")
@click.argument("name")
def show_cmd(name: str):
    """Show details of one module."""
    module = get_manager().get(name)
    if module is None:
        console.print(f"[red]Module not found: {name}[/red]")
        raise SystemExit(1)

    console.print(f"[bold]{module.name}[/bold] ({module.alias}) v{module.version}")
    console.print(f"  Description: {module.description or '-'}")
    console.print(f"  Author: {module.author or '-'} {('<' + module.author_email + '>') if module.author_email else ''}")
    console.print(f"  Status: {module.status}{' (core)' if module.is_core else ''}")
    console.print(f"  Path: {module.path}")
    console.print(f"  Namespace: {module.namespace}")
    console.print(f"  Providers: {', '.join(module.providers) or '-'}")
    console.print(f"  Requirements: {', '.join(module.requirements) or '-'}")
    console.print(f"  Installed: {module.installation_date}")


@modules_group.command(name="install")
@click.argument("zip_path", type=click.Path(exists=True, dir_okay=False))
def install_cmd(zip_path: str):
    """Install a module from a local zip archive."""
    path = Path(zip_path).expanduser().resolve()
    console.print(f"Installing module from: {path}")

    result = get_manager().install_file(path)

    if not result.success:
        console.print(f"[red]✗ {result.message}[/red]")
        if result.hint:
            console.print(f"  [dim]{result.hint}[/dim]")
        raise SystemExit(1)

    module = result.module
    console.print(f"[green]✓ {result.message}[/green]")
    console.print(f"  Installed to: {module.path}")
    console.print(f"  Status: {module.status} (run 'modhost modules enable {module.name}' to activate)")


@modules_group.command(name="enable")
@click.argument("name")
def enable_cmd(name: str):
    """Enable a module."""
    _report(get_manager().enable(name))


@modules_group.command(name="disable")
@click.argument("name")
def disable_cmd(name: str):
    """Disable a module."""
    _report(get_manager().disable(name))


@modules_group.command(name="uninstall")
@click.argument("name")
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
def uninstall_cmd(name: str, yes: bool):
    """Uninstall a disabled module (deletes its files)."""
    if not yes:
        click.confirm(f"Delete module '{name}' and its files?", abort=True)
    _report(get_manager().uninstall(name))


@modules_group.command(name="sync")
def sync_cmd():
    """Reconcile the registry with the modules directory."""
    report = get_manager().sync()
    console.print(
        f"[green]✓ Sync complete[/green]: {len(report.created)} created, "
        f"{len(report.updated)} updated, {len(report.skipped)} skipped"
    )
    for name in report.skipped:
        console.print(f"  [yellow]skipped {name}[/yellow]")
