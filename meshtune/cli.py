"""Typer CLI entrypoint."""

from __future__ import annotations

import logging

import typer

from meshtune.core.errors import InvalidValueError, MeshtuneError
from meshtune.core.service import DEFAULT_MESH_IFACE, MeshService

app = typer.Typer(help="batman-adv mesh tunables via generic netlink with sysfs fallback")


@app.callback()
def main(
    ctx: typer.Context,
    meshif: str = typer.Option(
        DEFAULT_MESH_IFACE,
        "--meshif",
        "-m",
        envvar="MESHTUNE_MESHIF",
        help="batman-adv mesh interface or a VLAN on top of it",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(name)s: %(message)s")
    ctx.obj = {"meshif": meshif}


def _build_service(ctx: typer.Context) -> MeshService:
    service = MeshService(ctx.obj["meshif"])
    for warning in getattr(service, "load_warnings", ()):
        typer.echo(f"Warning: {warning}", err=True)
    return service


def _report_error(exc: MeshtuneError) -> None:
    typer.echo(f"Error: {exc}", err=True)
    if isinstance(exc, InvalidValueError) and exc.allowed:
        typer.echo("The following values are allowed:", err=True)
        for value in exc.allowed:
            typer.echo(f" * {value}", err=True)


@app.command("list")
def list_tunables(ctx: typer.Context) -> None:
    """List known tunables, their abbreviations and allowed values."""
    try:
        service = _build_service(ctx)
        for tunable in service.list_tunables():
            typer.echo(f"{tunable.name} ({tunable.abbr}): {tunable.description}")
            if tunable.params:
                typer.echo(f"  values: {', '.join(tunable.params)}")
    except MeshtuneError as exc:
        _report_error(exc)
        raise typer.Exit(code=1) from None


@app.command("get")
def get_tunable(ctx: typer.Context, name: str) -> None:
    """Print the current value of tunable NAME."""
    service = None
    try:
        service = _build_service(ctx)
        result = service.get(name)
        typer.echo(result.value if result.value is not None else "")
    except MeshtuneError as exc:
        _report_error(exc)
        raise typer.Exit(code=1) from None
    finally:
        if service is not None:
            service.close()


@app.command("set")
def set_tunable(
    ctx: typer.Context,
    name: str,
    value: str,
    extra: str | None = typer.Argument(None, help="Optional second argument, e.g. gateway bandwidth"),
) -> None:
    """Set tunable NAME to VALUE (requires root)."""
    service = None
    try:
        service = _build_service(ctx)
        args = (value,) if extra is None else (value, extra)
        result = service.set(name, args)
        typer.echo(f"{result.tunable.name}={' '.join(args)} via {result.via}")
    except MeshtuneError as exc:
        _report_error(exc)
        raise typer.Exit(code=1) from None
    finally:
        if service is not None:
            service.close()


def run() -> None:
    app()


if __name__ == "__main__":
    run()
