"""
toolpod CLI - serve, inspect and call tools.

Run `toolpod serve` to expose the configured tools on stdio.
"""

import asyncio
import json
import sys
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from toolpod import __version__
from toolpod.errors import PodError, ToolError
from toolpod.log import setup_logging
from toolpod.server import Pod
from toolpod.tools import CallToolResult, ImageContent, PodOptions
from toolpod.validation import ConfigError, PodConfig, build_options, load_config

console = Console()
err_console = Console(stderr=True)


def _load(config_path: Optional[Path], tools_target: Optional[str]) -> Tuple[PodConfig, PodOptions]:
    """Load config and tools, exiting with a message on failure."""
    try:
        config = load_config(config_path)
        if tools_target:
            config = config.model_copy(update={"tools": tools_target})
        return config, build_options(config)
    except ConfigError as e:
        err_console.print(f"[red]Config error: {escape(str(e))}[/red]")
        sys.exit(1)


def _build_pod(options: PodOptions) -> Pod:
    try:
        return Pod(options)
    except ToolError as e:
        err_console.print(f"[red]{e.kind.value}:[/red] {escape(e.message)}")
        sys.exit(1)


def _parse_arguments(pairs: Tuple[str, ...], json_args: Optional[str]) -> Dict[str, Any]:
    """Merge ``--json`` and ``--arg key=value`` options into one mapping."""
    args: Dict[str, Any] = {}

    if json_args:
        try:
            loaded = json.loads(json_args)
        except json.JSONDecodeError as e:
            raise click.BadParameter(f"not valid JSON: {e.msg}", param_hint="--json")
        if not isinstance(loaded, dict):
            raise click.BadParameter("must be a JSON object", param_hint="--json")
        args.update(loaded)

    for pair in pairs:
        key, sep, raw = pair.partition("=")
        if not sep or not key:
            raise click.BadParameter(f"expected key=value, got {pair!r}", param_hint="--arg")
        # Values that parse as JSON (numbers, booleans, lists) keep their type
        try:
            args[key] = json.loads(raw)
        except json.JSONDecodeError:
            args[key] = raw

    return args


def _print_result(result: CallToolResult) -> None:
    for block in result.content:
        if isinstance(block, ImageContent):
            console.print(f"[dim]<image {block.mimeType}, {len(block.data)} bytes base64>[/dim]")
        else:
            console.print(block.text, markup=False, highlight=False)


config_option = click.option(
    "--config", "-c", "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Path to toolpod.yaml (default: search upwards from cwd)",
)
tools_option = click.option(
    "--tools", "-t", "tools_target",
    help="Tools to load as module:attribute (overrides the config)",
)


@click.group()
@click.version_option(__version__, prog_name="toolpod")
def cli() -> None:
    """
    toolpod - schema-validated tools over JSON-RPC stdio.

    \b
    Examples:
        toolpod serve                          # serve tools from toolpod.yaml
        toolpod list -t mypkg.tools:TOOLS      # show tool definitions
        toolpod call echo -a text=hello        # run one tool
    """


@cli.command()
@config_option
@tools_option
def serve(config_path: Optional[Path], tools_target: Optional[str]) -> None:
    """Serve tools on stdin/stdout until stdin closes or SIGINT."""
    config, options = _load(config_path, tools_target)
    setup_logging(config.logging.level)

    pod = _build_pod(options)
    try:
        asyncio.run(pod.serve())
    except PodError as e:
        err_console.print(f"[red]Error: {escape(str(e))}[/red]")
        sys.exit(1)


@cli.command("list")
@config_option
@tools_option
def list_tools(config_path: Optional[Path], tools_target: Optional[str]) -> None:
    """List tool definitions."""
    _, options = _load(config_path, tools_target)
    setup_logging("WARNING")

    definitions = _build_pod(options).list_tools().tools
    if not definitions:
        console.print("[dim]No tools registered.[/dim]")
        return

    table = Table(title=f"Tools ({len(definitions)})")
    table.add_column("Name", style="cyan", no_wrap=True)
    table.add_column("Description")
    table.add_column("Arguments")

    for definition in definitions:
        schema = definition.inputSchema
        args = []
        for key, prop in schema.properties.items():
            req = "" if key in schema.required else "?"
            args.append(f"{key}{req}: {prop.type}")
        table.add_row(definition.name, definition.description, "\n".join(args) or "-")

    console.print(table)


@cli.command()
@click.argument("name")
@click.option("--arg", "-a", "pairs", multiple=True, help="Argument as key=value (repeatable)")
@click.option("--json", "json_args", help="Arguments as a JSON object")
@config_option
@tools_option
def call(
    name: str,
    pairs: Tuple[str, ...],
    json_args: Optional[str],
    config_path: Optional[Path],
    tools_target: Optional[str],
) -> None:
    """Call tool NAME once and print its result."""
    args = _parse_arguments(pairs, json_args)
    _, options = _load(config_path, tools_target)
    setup_logging("WARNING")

    pod = _build_pod(options)
    try:
        result = asyncio.run(pod.call_tool(name, args))
    except ToolError as e:
        err_console.print(f"[red]{e.kind.value}:[/red] {escape(e.message)}")
        sys.exit(1)

    _print_result(result)
    if result.isError:
        sys.exit(1)


def main() -> None:
    """Entry point."""
    cli()


if __name__ == "__main__":
    main()
