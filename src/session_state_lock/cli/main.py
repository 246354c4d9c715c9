"""CLI entry point for session-state-lock.

Invoked as::

    session-state-lock [OPTIONS] COMMAND [ARGS]...

or, during development::

    python -m session_state_lock.cli.main

Commands
--------
- version      — Show version information
- procedures   — Procedure module command group
- session      — Session record command group

Procedures sub-commands
-----------------------
- procedures status    — Report whether the procedure module is installed
- procedures register  — Install the procedure module if it is missing

Session sub-commands
--------------------
- session create  — Create an empty, unlocked session record
- session show    — Show lock state, lock age and items of a session
- session reset   — Refresh a session's TTL
- session unlock  — Release a lock held under a given lock id
- session remove  — Delete a session held under a given lock id
"""
from __future__ import annotations

import logging
import sys
from typing import Callable, TypeVar

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from session_state_lock.config import StoreConfig, load_config
from session_state_lock.context import SessionStoreContext
from session_state_lock.errors import SessionStoreError
from session_state_lock.registrar import ProcedureRegistrar
from session_state_lock.results import Locked, NotFound, Unlocked

console = Console()

T = TypeVar("T")

# ---------------------------------------------------------------------------
# Context factory
# ---------------------------------------------------------------------------


def _make_context(store: str, config_path: str | None) -> SessionStoreContext:
    """Build a ``SessionStoreContext`` for the requested store.

    Parameters
    ----------
    store:
        ``"aerospike"`` or ``"memory"``.
    config_path:
        Optional YAML configuration file.

    Returns
    -------
    SessionStoreContext
        An unopened context.
    """
    from session_state_lock.store.memory import InMemoryStoreClient

    config = load_config(config_path) if config_path else StoreConfig()
    if store == "memory":
        return SessionStoreContext(config, store=InMemoryStoreClient())
    if store == "aerospike":
        return SessionStoreContext(config)
    console.print(f"[red]Unknown store: {store!r}[/red]")
    sys.exit(1)


def _context(ctx: click.Context) -> SessionStoreContext:
    return ctx.obj["context"]


# ---------------------------------------------------------------------------
# Root group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(package_name="session-state-lock")
@click.option(
    "--store",
    default="aerospike",
    show_default=True,
    type=click.Choice(["aerospike", "memory"], case_sensitive=False),
    help="Store to connect to.",
)
@click.option(
    "--config",
    "config_path",
    default=None,
    type=click.Path(exists=True, dir_okay=False),
    help="YAML configuration file.",
)
@click.option("--verbose", is_flag=True, help="Log protocol decisions to stderr.")
@click.pass_context
def cli(ctx: click.Context, store: str, config_path: str | None, verbose: bool) -> None:
    """Distributed session locking over a generation-guarded key-value store"""
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(message)s",
            handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        )
    ctx.ensure_object(dict)
    if "context" not in ctx.obj:
        context = _make_context(store.lower(), config_path)
        ctx.obj["context"] = context
        ctx.call_on_close(context.close)


# ---------------------------------------------------------------------------
# version
# ---------------------------------------------------------------------------


@cli.command(name="version")
def version_command() -> None:
    """Show version information."""
    from session_state_lock import __version__

    console.print(f"[bold]session-state-lock[/bold] v{__version__}")


# ---------------------------------------------------------------------------
# procedures command group
# ---------------------------------------------------------------------------


@cli.group(name="procedures")
def procedures_group() -> None:
    """Server procedure module commands."""


@procedures_group.command(name="status")
@click.pass_context
def procedures_status(ctx: click.Context) -> None:
    """Report whether the procedure module is installed."""
    context = _context(ctx)
    registrar = _run(lambda: ProcedureRegistrar(context.connect()))
    installed = _run(registrar.is_installed)
    state = "[green]installed[/green]" if installed else "[yellow]not installed[/yellow]"
    console.print(f"{registrar.filename}: {state}")


@procedures_group.command(name="register")
@click.pass_context
def procedures_register(ctx: click.Context) -> None:
    """Install the procedure module if it is missing."""
    context = _context(ctx)
    registrar = _run(lambda: ProcedureRegistrar(context.connect()))
    uploaded = _run(registrar.ensure_registered)
    if uploaded:
        console.print(f"[green]Registered[/green] {registrar.filename}")
    else:
        console.print(f"{registrar.filename} already installed")


# ---------------------------------------------------------------------------
# session command group
# ---------------------------------------------------------------------------


@cli.group(name="session")
def session_group() -> None:
    """Session record commands."""


@session_group.command(name="create")
@click.argument("session_id")
@click.option("--timeout", type=int, default=None, help="TTL in seconds.")
@click.pass_context
def session_create(ctx: click.Context, session_id: str, timeout: int | None) -> None:
    """Create an empty, unlocked session record."""
    context = _context(ctx)
    ttl = timeout if timeout is not None else context.config.session_timeout
    _run(lambda: context.open().create_uninitialized(session_id, ttl))
    console.print(f"Created session [bold]{session_id}[/bold] (ttl={ttl}s)")


@session_group.command(name="show")
@click.argument("session_id")
@click.pass_context
def session_show(ctx: click.Context, session_id: str) -> None:
    """Show lock state, lock age and items of a session."""
    context = _context(ctx)
    result = _run(lambda: context.open().read_non_exclusive(session_id))

    if isinstance(result, NotFound):
        console.print(f"[yellow]Session {session_id!r} not found.[/yellow]")
        sys.exit(2)

    table = Table(title=f"Session {session_id}")
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    table.add_row("locked", str(result.locked))
    table.add_row("lock id", str(result.lock_id))
    table.add_row("lock age", f"{result.lock_age.total_seconds():.1f}s")
    if isinstance(result, Unlocked):
        table.add_row("timeout", f"{result.timeout}s")
        table.add_row("initialized", str(not result.initialize))
        table.add_row("items", ", ".join(sorted(result.items)) or "-")
    elif isinstance(result, Locked):
        table.add_row("items", "[dim]hidden while locked[/dim]")
    console.print(table)


@session_group.command(name="reset")
@click.argument("session_id")
@click.pass_context
def session_reset(ctx: click.Context, session_id: str) -> None:
    """Refresh a session's TTL to the configured session timeout."""
    context = _context(ctx)
    applied = _run(
        lambda: context.open().reset_timeout(session_id, context.config.session_timeout)
    )
    _report(applied, f"Reset timeout of {session_id}", f"Session {session_id!r} not found.")


@session_group.command(name="unlock")
@click.argument("session_id")
@click.option("--lock-id", type=int, required=True, help="Lock id the lock is held under.")
@click.pass_context
def session_unlock(ctx: click.Context, session_id: str, lock_id: int) -> None:
    """Release a lock held under LOCK_ID."""
    context = _context(ctx)
    applied = _run(
        lambda: context.open().release_only(session_id, lock_id, context.config.session_timeout)
    )
    _report(applied, f"Released {session_id}", "Lock id does not match; nothing changed.")


@session_group.command(name="remove")
@click.argument("session_id")
@click.option("--lock-id", type=int, required=True, help="Lock id the session is held under.")
@click.pass_context
def session_remove(ctx: click.Context, session_id: str, lock_id: int) -> None:
    """Delete a session held under LOCK_ID."""
    context = _context(ctx)
    applied = _run(lambda: context.open().remove(session_id, lock_id))
    _report(applied, f"Removed {session_id}", "Lock id does not match; nothing changed.")


def _run(operation: Callable[[], T]) -> T:
    try:
        return operation()
    except (SessionStoreError, ImportError) as exc:
        console.print(f"[red]Error:[/red] {exc}")
        sys.exit(1)


def _report(applied: bool, done: str, skipped: str) -> None:
    if applied:
        console.print(f"[green]{done}[/green]")
    else:
        console.print(f"[yellow]{skipped}[/yellow]")
        sys.exit(2)


if __name__ == "__main__":
    cli()
