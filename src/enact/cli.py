"""
CLI entry point for Enact.

This module provides the Typer-based command-line interface for Enact.

Commands:
    run         Execute a capability document
    exec        Execute a capability from the registry by id
    validate    Check a capability document's structure
    search      Search the capability registry
    providers   List registered execution backends

Architecture Note:
    The CLI only parses arguments and renders results. All execution goes
    through Engine, so the same behavior is available programmatically.
"""

import asyncio
import json
import sys
from pathlib import Path
from typing import Annotated, Any, Optional

import typer
import yaml
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from enact import __version__
from enact.config import EnactConfig, initialize
from enact.engine import Engine, ExecutionOptions
from enact.errors import EnactError
from enact.providers import default_registry
from enact.registry import build_capability_registry
from enact.schema import ExecutionResult, load_capability
from enact.validation import validate_capability_structure

app = typer.Typer(
    name="enact",
    help="Execute Enact capabilities on pluggable execution backends.",
    add_completion=False,
    no_args_is_help=True,
)

console = Console()


# =============================================================================
# Shared options
# =============================================================================

InputOption = Annotated[
    Optional[list[str]],
    typer.Option("--input", "-i", help="Input as key=value (value parsed as YAML scalar)."),
]
InputsJsonOption = Annotated[
    Optional[str],
    typer.Option("--inputs-json", help="Inputs as a JSON object."),
]
EnvTypeOption = Annotated[
    Optional[str],
    typer.Option("--env-type", "-e", help="Execution backend (local, docker, windmill)."),
]
EnvOptionOption = Annotated[
    Optional[list[str]],
    typer.Option("--env-option", help="Backend option as key=value."),
]
ProvidedEnvOption = Annotated[
    Optional[list[str]],
    typer.Option("--env", help="Environment variable override as KEY=VALUE."),
]
ConfigOption = Annotated[
    Optional[Path],
    typer.Option("--config", "-c", help="YAML/JSON configuration file.", exists=True, readable=True),
]
JsonOption = Annotated[bool, typer.Option("--json", help="Output results in JSON format.")]


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"[bold]enact[/bold] version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        Optional[bool],
        typer.Option(
            "--version",
            "-v",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
) -> None:
    """
    Enact - Run versioned, schema-described capabilities.
    """


def _parse_pairs(pairs: list[str] | None, parse_values: bool) -> dict[str, Any]:
    parsed: dict[str, Any] = {}
    for pair in pairs or []:
        key, sep, raw = pair.partition("=")
        if not sep or not key:
            raise typer.BadParameter(f"Expected key=value, got {pair!r}")
        parsed[key] = yaml.safe_load(raw) if parse_values else raw
    return parsed


def _collect_inputs(pairs: list[str] | None, inputs_json: str | None) -> dict[str, Any]:
    inputs: dict[str, Any] = {}
    if inputs_json:
        try:
            loaded = json.loads(inputs_json)
        except json.JSONDecodeError as e:
            raise typer.BadParameter(f"--inputs-json is not valid JSON: {e}") from e
        if not isinstance(loaded, dict):
            raise typer.BadParameter("--inputs-json must be a JSON object")
        inputs.update(loaded)
    inputs.update(_parse_pairs(pairs, parse_values=True))
    return inputs


def _build_options(
    env_type: str | None,
    env_options: list[str] | None,
    provided_env: list[str] | None,
) -> ExecutionOptions:
    return ExecutionOptions(
        environment_type=env_type,
        environment_options=_parse_pairs(env_options, parse_values=True),
        provided_env=_parse_pairs(provided_env, parse_values=False),
    )


def _load_config(config_path: Path | None) -> EnactConfig:
    try:
        return initialize(config_path)
    except EnactError as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        raise typer.Exit(code=1) from e


def _display_result(result: ExecutionResult, json_output: bool) -> None:
    if json_output:
        print(result.model_dump_json(indent=2))
    else:
        meta = result.metadata
        if result.success:
            console.print(
                f"[green]✓[/green] Capability [bold]{meta.capability_id}[/bold] "
                f"v{meta.version} succeeded on [cyan]{meta.environment}[/cyan]"
            )
            table = Table(show_header=True, header_style="bold")
            table.add_column("Output", style="cyan")
            table.add_column("Value")
            for name, value in (result.outputs or {}).items():
                table.add_row(name, json.dumps(value, ensure_ascii=False, default=str))
            console.print(table)
        else:
            error = result.error
            console.print(
                f"[red]✗[/red] Capability [bold]{meta.capability_id or '<unnamed>'}[/bold] "
                f"failed on [cyan]{meta.environment}[/cyan]"
            )
            console.print(f"  [red]{escape(f'[{error.code}]')}[/red] {escape(error.message)}")

    if not result.success:
        raise typer.Exit(code=1)


# =============================================================================
# Commands
# =============================================================================


@app.command()
def run(
    capability_path: Annotated[
        Path,
        typer.Argument(help="Path to the capability YAML/JSON file.", exists=True, readable=True),
    ],
    inputs: InputOption = None,
    inputs_json: InputsJsonOption = None,
    env_type: EnvTypeOption = None,
    env_option: EnvOptionOption = None,
    env: ProvidedEnvOption = None,
    config_path: ConfigOption = None,
    json_output: JsonOption = False,
) -> None:
    """
    Execute a capability document.

    Examples:
        enact run greeting.yaml --input name=Ada --input includeTime=true
        enact run job.yaml --env-type docker --env-option memory=1g
    """
    config = _load_config(config_path)
    with open(capability_path, encoding="utf-8") as f:
        document = yaml.safe_load(f)
    if not isinstance(document, dict):
        console.print(f"[red]Capability file must contain a mapping: {capability_path}[/red]")
        raise typer.Exit(code=1)

    engine = Engine(config)
    result = asyncio.run(
        engine.execute(
            document,
            _collect_inputs(inputs, inputs_json),
            _build_options(env_type, env_option, env),
        )
    )
    _display_result(result, json_output)


@app.command("exec")
def exec_by_id(
    capability_id: Annotated[str, typer.Argument(help="Capability id to look up and run.")],
    inputs: InputOption = None,
    inputs_json: InputsJsonOption = None,
    env_type: EnvTypeOption = None,
    env_option: EnvOptionOption = None,
    env: ProvidedEnvOption = None,
    config_path: ConfigOption = None,
    json_output: JsonOption = False,
) -> None:
    """Execute a capability from the configured registry by id."""
    config = _load_config(config_path)

    async def _execute() -> ExecutionResult:
        registry = build_capability_registry(config)
        try:
            engine = Engine(config, capabilities=registry)
            return await engine.execute_by_id(
                capability_id,
                _collect_inputs(inputs, inputs_json),
                _build_options(env_type, env_option, env),
            )
        finally:
            await registry.close()

    _display_result(asyncio.run(_execute()), json_output)


@app.command()
def validate(
    capability_path: Annotated[
        Path,
        typer.Argument(help="Path to the capability YAML/JSON file.", exists=True, readable=True),
    ],
    json_output: JsonOption = False,
) -> None:
    """Check that a capability document is structurally valid."""
    try:
        capability = load_capability(capability_path)
        validate_capability_structure(capability)
    except EnactError as e:
        if json_output:
            print(json.dumps({"valid": False, "error": e.to_dict()}, indent=2, default=str))
        else:
            console.print(f"[red]✗ Invalid capability:[/red] {escape(e.message)}")
        raise typer.Exit(code=1) from e

    if json_output:
        print(json.dumps({"valid": True, "id": capability.id, "version": capability.version}, indent=2))
    else:
        console.print(
            f"[green]✓[/green] {capability.id} v{capability.version} "
            f"({capability.type}, {len(capability.tasks)} task(s), "
            f"{len(capability.flow.steps)} step(s))"
        )


@app.command()
def search(
    query: Annotated[str, typer.Argument(help="Search text.")],
    config_path: ConfigOption = None,
    json_output: JsonOption = False,
) -> None:
    """Search the configured capability registry."""
    config = _load_config(config_path)

    async def _search() -> list[dict[str, Any]]:
        registry = build_capability_registry(config)
        try:
            return await registry.search(query)
        finally:
            await registry.close()

    try:
        hits = asyncio.run(_search())
    except EnactError as e:
        console.print(f"[red]Error searching capabilities: {escape(e.message)}[/red]")
        raise typer.Exit(code=1) from e

    if json_output:
        print(json.dumps(hits, indent=2, default=str))
        return

    if not hits:
        console.print("[dim]No capabilities found.[/dim]")
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("ID", style="cyan")
    table.add_column("Version")
    table.add_column("Description")
    for hit in hits:
        table.add_row(str(hit.get("id", "")), str(hit.get("version", "")), str(hit.get("description", "")))
    console.print(table)


@app.command()
def providers() -> None:
    """List registered execution backends."""
    for name in default_registry.list_providers():
        console.print(name)


if __name__ == "__main__":
    sys.exit(app())
