"""CLI entrypoint serving saved stub mappings."""

from __future__ import annotations

import sys
import threading
from pathlib import Path
from typing import Optional

import typer

if __package__ in {None, ""}:
    sys.path.append(str(Path(__file__).resolve().parents[1]))
    __package__ = "mock_http_service"

from .errors import MappingLoadError, ServerBindError
from .logging_utils import configure_logging
from .mappings import load_mappings
from .output_config import get_log_format
from .server import describe_rules
from .service import MockHttpService

app = typer.Typer(help="Serve stubbed HTTP responses from a mappings directory.")


def _check_root(mappings: Path) -> Path:
    if not mappings.is_dir():
        raise typer.BadParameter(f"Mappings root {mappings} is not a directory")
    return mappings


def _wait_for_interrupt() -> None:
    try:
        threading.Event().wait()
    except KeyboardInterrupt:
        typer.echo("")


@app.command()
def serve(
    mappings: Path = typer.Option(..., help="Root directory holding mappings/ and __files/."),
    host: str = typer.Option("127.0.0.1", help="Bind host."),
    port: int = typer.Option(0, help="Bind port; 0 picks an ephemeral port."),
    log_level: str = typer.Option("INFO", help="Log level (DEBUG, INFO, WARNING, ...)."),
    log_format: Optional[str] = typer.Option(
        None,
        help="Log format: console, plain or json. Defaults to $CONSOLE_OUTPUT_FORMAT.",
    ),
) -> None:
    """Start a stub server preloaded with the saved mappings and block until interrupted."""

    root = _check_root(mappings)
    configure_logging(log_level, get_log_format(log_format))
    try:
        service = MockHttpService.from_mappings(root, host=host, port=port)
    except (MappingLoadError, ServerBindError) as exc:
        raise typer.BadParameter(str(exc)) from exc

    with service:
        typer.secho(f"Mock HTTP service listening on {service.complete_url('')}", fg=typer.colors.GREEN)
        for line in describe_rules(service.stub_rules):
            typer.echo(f"  - {line}")
        _wait_for_interrupt()


@app.command()
def routes(
    mappings: Path = typer.Option(..., help="Root directory holding mappings/ and __files/."),
) -> None:
    """List the stubs found in a mappings directory without starting a server."""

    root = _check_root(mappings)
    try:
        rules = load_mappings(root)
    except MappingLoadError as exc:
        raise typer.BadParameter(str(exc)) from exc
    for line in describe_rules(rules):
        typer.echo(line)


def run() -> None:
    """Console_scripts hook."""

    app()


if __name__ == "__main__":  # pragma: no cover
    run()
