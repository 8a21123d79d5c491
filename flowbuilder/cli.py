from __future__ import annotations

from pathlib import Path

import typer
import yaml
from pydantic import ValidationError

from flowbuilder.config import configure_logging, level_from_name
from flowbuilder.core.activation import check_activation
from flowbuilder.core.catalog import search_catalog
from flowbuilder.core.loader import dumps_workflow, load_workflow
from flowbuilder.core.serializer import ExportError
from flowbuilder.core.session import WorkflowEditorSession
from flowbuilder.models.settings import EditorConfig
from flowbuilder.models.workflow import WorkflowDefinition

app = typer.Typer(name="flowbuilder", help="Workflow automation graph tools")


def _open_session(path: Path) -> tuple[WorkflowEditorSession, WorkflowDefinition]:
    config = EditorConfig()
    configure_logging(level=level_from_name(config.log_level))
    if not path.exists():
        typer.echo(f"File not found: {path}", err=True)
        raise typer.Exit(code=1)
    session = WorkflowEditorSession(config)
    try:
        definition = load_workflow(path)
        session.load(definition)
    except (ValidationError, ValueError, TypeError, yaml.YAMLError) as e:
        typer.echo(f"Invalid workflow file: {e}", err=True)
        raise typer.Exit(code=1)
    return session, definition


@app.command()
def validate(
    path: Path = typer.Argument(help="Path to a workflow definition (YAML or JSON)"),
    strict: bool = typer.Option(False, "--strict", "-s", help="Also check reachability, cycles and branches"),
    activation: bool = typer.Option(
        False, "--activation", "-a", help="Also check the workflow is ready to activate"
    ),
) -> None:
    """Validate a workflow definition as the editor would."""
    session, definition = _open_session(path)
    result = session.validate(strict=strict)
    problems = [f"{key}: {msg}" for key, messages in result.errors.items() for msg in messages]

    if activation:
        problems.extend(check_activation(definition))

    if problems:
        for problem in problems:
            typer.echo(f"  {problem}", err=True)
        typer.echo(f"Invalid workflow: {session.name}", err=True)
        raise typer.Exit(code=1)
    typer.echo(f"Valid workflow: {session.name}")


@app.command()
def normalize(
    path: Path = typer.Argument(help="Path to a workflow definition (YAML or JSON)"),
    fmt: str = typer.Option("yaml", "--format", "-f", help="Output format: yaml or json"),
) -> None:
    """Load a definition into a graph and export it again."""
    if fmt not in ("yaml", "json"):
        typer.echo(f"Unsupported format: {fmt}", err=True)
        raise typer.Exit(code=1)
    session, _ = _open_session(path)
    try:
        definition = session.export()
    except ExportError as e:
        typer.echo(f"Export failed: {e}", err=True)
        raise typer.Exit(code=1)
    typer.echo(dumps_workflow(definition, fmt))


@app.command()
def catalog(
    search: str = typer.Option("", "--search", "-q", help="Filter by label or description"),
) -> None:
    """List the node types available in the editor palette."""
    for item in search_catalog(search):
        typer.echo(f"  {item.type} [{item.category}]: {item.label} - {item.description}")


def main() -> None:
    """CLI entrypoint."""
    app()
