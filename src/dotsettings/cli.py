#!/usr/bin/env python3
"""
dotsettings CLI - inspect settings documents from the command line
"""

import datetime
import os
import sys
from typing import Any, Optional

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich.tree import Tree

from dotsettings._version import __version__
from dotsettings.core.exceptions import SettingsError
from dotsettings.core.namespaces import Namespace, NamespaceRegistry
from dotsettings.core.sources import describe, expand_environment
from dotsettings.tree.node import ConfigNode
from dotsettings.tree.symbols import Symbol

CLI_NAMESPACE = "cli"


def _open(source: str, root_key: Optional[str], suppress_errors: bool, env: bool) -> Namespace:
    registry = NamespaceRegistry(preprocess=expand_environment if env else None)
    return registry.declare(
        CLI_NAMESPACE, source, root_key=root_key, suppress_errors=suppress_errors
    )


def format_value(value: Any) -> str:
    """Document-style spelling of a leaf value."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, Symbol):
        return repr(value)
    if isinstance(value, (datetime.date, datetime.datetime)):
        return value.isoformat()
    if isinstance(value, list):
        return "[" + ", ".join(format_value(item) for item in value) + "]"
    return str(value)


def _is_branch(value: Any) -> bool:
    return isinstance(value, ConfigNode) or (
        isinstance(value, list) and any(isinstance(item, ConfigNode) for item in value)
    )


def _add_branch(tree: Tree, value: Any) -> None:
    if isinstance(value, ConfigNode):
        entries = value.items()
    else:
        entries = [(f"[{index}]", item) for index, item in enumerate(value)]

    for key, item in entries:
        if _is_branch(item):
            _add_branch(tree.add(f"[bold]{escape(str(key))}[/bold]"), item)
        else:
            tree.add(f"{escape(str(key))}: [green]{escape(format_value(item))}[/green]")


def build_tree(value: Any, label: str) -> Tree:
    tree = Tree(f"[bold cyan]{escape(label)}[/bold cyan]")
    _add_branch(tree, value)
    return tree


@click.group()
@click.version_option(version=__version__, prog_name="dotsettings")
def cli():
    """
    dotsettings - namespaced application settings

    Load a YAML settings document from a file or an http(s) URL and inspect it.
    """
    pass


@cli.command()
@click.argument("source")
@click.argument("key", required=False)
@click.option("--root-key", help="Top-level key to extract first (e.g. production)")
@click.option("--suppress-errors", is_flag=True, help="Missing keys print as null")
@click.option("--env", is_flag=True, help="Expand $VAR references before parsing")
def show(source: str, key: Optional[str], root_key: Optional[str], suppress_errors: bool, env: bool):
    """Print a dotted KEY of SOURCE, or the whole document as a tree"""
    console = Console()
    settings = _open(source, root_key, suppress_errors, env)

    try:
        value = settings.get(key) if key else settings.root()
    except SettingsError as e:
        raise click.ClickException(str(e))

    if _is_branch(value):
        console.print(build_tree(value, key or describe(source)))
    else:
        click.echo(format_value(value))


@cli.command()
@click.argument("source")
@click.option("--root-key", help="Top-level key to extract first (e.g. production)")
@click.option("--env", is_flag=True, help="Expand $VAR references before parsing")
def keys(source: str, root_key: Optional[str], env: bool):
    """List the top-level keys of SOURCE"""
    console = Console()
    settings = _open(source, root_key, False, env)

    try:
        root = settings.root()
    except SettingsError as e:
        raise click.ClickException(str(e))

    table = Table(title=describe(source))
    table.add_column("Key", style="cyan")
    table.add_column("Type")
    table.add_column("Accessor")

    for key, value in root.items():
        accessor = f".{key}" if settings.exposes(key) else f"[{key!r}]"
        table.add_row(escape(key), type(value).__name__, escape(accessor))

    console.print(table)


def main():
    """Main entry point"""
    try:
        cli()
    except KeyboardInterrupt:
        click.echo("\nOperation cancelled by user.")
        sys.exit(0)
    except Exception as e:
        click.echo(click.style(f"Error: {e}", fg="red"))
        if os.environ.get("DOTSETTINGS_DEBUG"):
            import traceback

            traceback.print_exc()
        sys.exit(1)


if __name__ == "__main__":
    main()
