"""CLI entry point for voteflow.

Invoked as::

    voteflow [OPTIONS] COMMAND [ARGS]...

or, during development::

    python -m voteflow.cli.main

Commands
--------
run         Replay a session script against a new or restored engine
show        Display the state stored in a snapshot file
check       Verify a snapshot file against the engine invariants
version     Show version information
"""
from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

if TYPE_CHECKING:
    from voteflow.workflow.engine import WorkflowEngine
    from voteflow.workflow.models import EngineSnapshot

console = Console()
err_console = Console(stderr=True)


def _read_text(path: str) -> str:
    """Read a text file, exiting on error."""
    try:
        return Path(path).read_text(encoding="utf-8")
    except FileNotFoundError:
        err_console.print(f"[red]Error:[/red] File not found: {path}")
        sys.exit(1)
    except OSError as exc:
        err_console.print(f"[red]Error:[/red] Cannot read {path}: {escape(str(exc))}")
        sys.exit(1)


def _is_yaml(path: str) -> bool:
    return Path(path).suffix.lower() in (".yaml", ".yml")


def _load_snapshot_or_exit(path: str) -> "EngineSnapshot":
    """Deserialize a snapshot file, printing errors and exiting on failure."""
    from voteflow.snapshot import SnapshotSerializer
    from voteflow.workflow.errors import SnapshotError

    text = _read_text(path)
    serializer = SnapshotSerializer()
    try:
        return serializer.from_yaml(text) if _is_yaml(path) else serializer.from_json(text)
    except SnapshotError as exc:
        err_console.print(f"[red]Invalid snapshot[/red] {path}: {escape(str(exc))}")
        sys.exit(1)


def _restore_or_exit(path: str) -> "WorkflowEngine":
    from voteflow.workflow.engine import WorkflowEngine
    from voteflow.workflow.errors import SnapshotError

    snapshot = _load_snapshot_or_exit(path)
    try:
        return WorkflowEngine.restore(snapshot)
    except SnapshotError as exc:
        err_console.print(f"[red]Inconsistent snapshot[/red] {path}: {escape(str(exc))}")
        sys.exit(1)


def _save_snapshot(engine: "WorkflowEngine", path: str) -> None:
    from voteflow.snapshot import SnapshotSerializer

    serializer = SnapshotSerializer()
    snapshot = engine.snapshot()
    text = serializer.to_yaml(snapshot) if _is_yaml(path) else serializer.to_json(snapshot) + "\n"
    try:
        Path(path).write_text(text, encoding="utf-8")
    except OSError as exc:
        err_console.print(f"[red]Error:[/red] Cannot write {path}: {escape(str(exc))}")
        sys.exit(1)
    console.print(f"[green]Snapshot written to[/green] {path}")


def _configure_logging(verbose: bool) -> None:
    if not verbose:
        return
    logger = logging.getLogger("voteflow")
    logger.setLevel(logging.DEBUG)
    if not any(isinstance(h, RichHandler) for h in logger.handlers):
        logger.addHandler(RichHandler(console=err_console, show_path=False))


def _print_state(snapshot: "EngineSnapshot", title: str) -> None:
    console.print(f"[bold]{title}[/bold]")
    console.print(f"  Phase: [cyan]{snapshot.phase.label}[/cyan]")
    console.print(f"  Administrator: {snapshot.administrator}")

    voters = Table(title="Voters", show_lines=False)
    voters.add_column("Principal", style="bold")
    voters.add_column("Voted")
    voters.add_column("Proposal", justify="right")
    for v in snapshot.voters:
        voters.add_row(
            escape(v.principal),
            "[green]yes[/green]" if v.has_voted else "no",
            str(v.voted_proposal_id) if v.has_voted else "-",
        )
    console.print(voters)

    proposals = Table(title="Proposals", show_lines=False)
    proposals.add_column("Id", justify="right")
    proposals.add_column("Description")
    proposals.add_column("Votes", justify="right")
    for p in snapshot.proposals:
        style = "bold green" if p.proposal_id == snapshot.winning_proposal_id else ""
        description = escape(p.description) if not p.is_sentinel else "[dim](none)[/dim]"
        proposals.add_row(str(p.proposal_id), description, str(p.vote_count), style=style)
    console.print(proposals)

    if snapshot.winning_proposal_id is not None:
        console.print(f"\n[bold]Winner:[/bold] proposal #{snapshot.winning_proposal_id}")


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(package_name="voteflow")
def cli() -> None:
    """Single-authority voting workflow engine."""


# ---------------------------------------------------------------------------
# version command
# ---------------------------------------------------------------------------


@cli.command(name="version")
def version_command() -> None:
    """Show detailed version information."""
    from voteflow import __version__

    table = Table(show_header=False, box=None)
    table.add_row("[bold]voteflow[/bold]", f"v{__version__}")
    table.add_row("Python", f"{sys.version_info.major}.{sys.version_info.minor}.{sys.version_info.micro}")
    table.add_row("Platform", sys.platform)
    console.print(table)


# ---------------------------------------------------------------------------
# run command
# ---------------------------------------------------------------------------


@cli.command(name="run")
@click.argument("script", type=click.Path(exists=False))
@click.option("--resume", default=None, help="Restore the engine from this snapshot first")
@click.option("--save", default=None, help="Write the final snapshot to this path (.json/.yaml)")
@click.option("--keep-going", is_flag=True, default=False, help="Continue after a failing step")
@click.option("--verbose", "-v", is_flag=True, default=False, help="Log engine activity to stderr")
def run_command(
    script: str,
    resume: str | None,
    save: str | None,
    keep_going: bool,
    verbose: bool,
) -> None:
    """Replay a session script.

    SCRIPT is a YAML or JSON file listing engine operations.
    """
    from voteflow.session import ScriptError, SessionRunner, load_session
    from voteflow.workflow.errors import VotingError
    from voteflow.workflow.events import EventRecorder

    _configure_logging(verbose)

    try:
        session = load_session(_read_text(script))
    except ScriptError as exc:
        err_console.print(f"[red]Script error[/red] in {script}: {escape(str(exc))}")
        sys.exit(1)

    recorder = EventRecorder()
    if resume:
        engine = _restore_or_exit(resume)
        if session.administrator and session.administrator != engine.administrator:
            err_console.print(
                f"[yellow]Warning:[/yellow] script administrator {session.administrator!r} "
                f"differs from snapshot administrator {engine.administrator!r}"
            )
    else:
        try:
            engine = session.create_engine()
        except (ScriptError, VotingError) as exc:
            err_console.print(f"[red]Script error[/red] in {script}: {escape(str(exc))}")
            sys.exit(1)
    engine.bus.subscribe(recorder)

    results = SessionRunner(keep_going=keep_going).run(engine, session.steps)

    table = Table(title=f"Session: {script}", show_lines=False)
    table.add_column("#", justify="right", min_width=3)
    table.add_column("Step")
    table.add_column("Result")
    for index, result in enumerate(results, start=1):
        color = "green" if result.ok else "red"
        table.add_row(
            str(index), escape(str(result.step)), f"[{color}]{escape(result.message)}[/{color}]"
        )
    console.print(table)

    if recorder.events:
        console.print("\n[bold]Events:[/bold]")
        for event in recorder.events:
            console.print(f"  {escape(str(event))}")

    failures = [r for r in results if not r.ok]
    skipped = len(session.steps) - len(results)
    console.print(
        f"\n[bold]Summary:[/bold] {len(results) - len(failures)} ok, "
        f"{len(failures)} failed, {skipped} skipped; phase [cyan]{engine.phase.label}[/cyan]"
    )
    if engine.winning_proposal_id is not None:
        console.print(f"[bold]Winner:[/bold] proposal #{engine.winning_proposal_id}")

    if save:
        _save_snapshot(engine, save)

    if failures:
        sys.exit(1)


# ---------------------------------------------------------------------------
# show command
# ---------------------------------------------------------------------------


@cli.command(name="show")
@click.argument("snapshot", type=click.Path(exists=False))
def show_command(snapshot: str) -> None:
    """Display the state stored in a snapshot file.

    SNAPSHOT is a .json or .yaml file written by ``voteflow run --save``.
    """
    _print_state(_load_snapshot_or_exit(snapshot), f"Snapshot: {snapshot}")


# ---------------------------------------------------------------------------
# check command
# ---------------------------------------------------------------------------


@cli.command(name="check")
@click.argument("snapshot", type=click.Path(exists=False))
def check_command(snapshot: str) -> None:
    """Verify a snapshot file against the engine invariants."""
    from voteflow.workflow.engine import check_snapshot

    problems = check_snapshot(_load_snapshot_or_exit(snapshot))
    if not problems:
        console.print(f"[green]OK[/green] {snapshot}: no issues found")
        sys.exit(0)

    err_console.print(f"[red]{len(problems)} problem(s)[/red] in {snapshot}:")
    for problem in problems:
        err_console.print(f"  - {escape(problem)}")
    sys.exit(1)


if __name__ == "__main__":
    cli()
