"""CLI for the ``spend_sync`` package.

Command handlers (``cmd_*``) are plain functions returning an exit status so
they can be called directly; the Typer app wraps them. A local ``.env`` is
loaded with ``python-dotenv`` before any command runs (existing environment
variables win). Business logic lives in the library modules.
"""

from __future__ import annotations

import csv
import sys
from pathlib import Path
from typing import Annotated

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.table import Table

from .logging_setup import configure_logging

# ---- Small module-level helpers used by CLI commands -------------------------


def _read_transactions_csv(csv_path: Path) -> list[dict[str, str]]:
    """Read a CSV of parsed transactions (``date,amount,merchant,category,type``)."""

    with open(csv_path, encoding="utf-8", newline="") as f:
        reader = csv.DictReader(f)
        if reader.fieldnames is None:
            raise csv.Error(f"CSV appears to have no header row: {csv_path}")
        missing = sorted({"date", "amount", "merchant"} - set(reader.fieldnames))
        if missing:
            raise csv.Error("CSV is missing required columns: " + ", ".join(missing))
        # DictReader may include a None key aggregating extra columns.
        return [
            {k: (v if v is not None else "") for k, v in row.items() if k is not None}
            for row in reader
        ]


def _load_csv_or_report(csv_path: Path) -> list[dict[str, str]] | None:
    try:
        return _read_transactions_csv(csv_path)
    except FileNotFoundError:
        print(f"Error: File not found: {csv_path}", file=sys.stderr)
    except PermissionError:
        print(f"Error: Permission denied: {csv_path}", file=sys.stderr)
    except (csv.Error, UnicodeDecodeError) as e:
        print(f"Error: Failed to parse CSV: {e}", file=sys.stderr)
    return None


def _open_queue(queue_dir: Path | None):
    from .action_queue import ActionQueue
    from .queue_store import JsonFileQueueStore

    return ActionQueue(JsonFileQueueStore(queue_dir))


# ---- Command handlers ---------------------------------------------------------


def cmd_annotate(
    csv_path: Path,
    *,
    user_id: str,
    batch_id: str,
    persist: bool = False,
    database_url: str | None = None,
) -> int:
    """Annotate a batch and print one line per kept row.

    Output: ``<transaction_id>\\t<dedup_hash>\\t<category>``, with a fourth
    ``duplicate``/``new`` column when ``persist`` is set.
    """

    from .identity import IdentityFieldError
    from .ingest import annotate_batch

    rows = _load_csv_or_report(csv_path)
    if rows is None:
        return 1

    try:
        annotated = annotate_batch(rows, user_id=user_id, batch_id=batch_id)
    except IdentityFieldError as e:
        print(f"Error: invalid transaction field: {e}", file=sys.stderr)
        return 1

    flags: list[str] | None = None
    if persist:
        try:
            from db.client import session_scope

            from .persistence import record_processed_transactions

            with session_scope(database_url=database_url) as session:
                results = record_processed_transactions(
                    session, user_id=user_id, items=annotated
                )
        except Exception as e:
            print(f"Error: persistence failed: {e}", file=sys.stderr)
            return 1
        flags = ["duplicate" if r.is_duplicate else "new" for r in results]

    for i, item in enumerate(annotated):
        cols = [item.transaction_id, item.dedup_hash, item.category]
        if flags is not None:
            cols.append(flags[i])
        print("\t".join(cols))
    return 0


def cmd_spending(csv_path: Path) -> int:
    """Print included total, fee/interest total and per-category spend."""

    from .spending import summarize_spending

    rows = _load_csv_or_report(csv_path)
    if rows is None:
        return 1

    summary = summarize_spending(rows)
    console = Console()
    table = Table(title="Spending by category")
    table.add_column("Category")
    table.add_column("Amount", justify="right")
    for category, amount in sorted(summary.by_category.items(), key=lambda kv: -kv[1]):
        table.add_row(category, f"{amount:.2f}")
    console.print(table)
    console.print(f"Total spend: {summary.total:.2f}")
    console.print(f"Fees & interest: {summary.fees:.2f}")
    return 0


def cmd_queue_status(queue_dir: Path | None = None) -> int:
    queue = _open_queue(queue_dir)
    actions = queue.pending_actions()
    console = Console()
    table = Table(title=f"Queued actions ({len(actions)})")
    for col in ("id", "type", "retries", "state"):
        table.add_column(col)
    for a in actions:
        state = "quarantined" if a.retry_count >= queue.max_retries else "pending"
        table.add_row(a.id, a.type, str(a.retry_count), state)
    console.print(table)
    return 0


def cmd_queue_failed(queue_dir: Path | None = None) -> int:
    """Print quarantined actions as JSON lines; exit 1 when there are any."""

    import json

    queue = _open_queue(queue_dir)
    failed = queue.get_failed_actions()
    for a in failed:
        print(json.dumps(a.to_stored(), ensure_ascii=False, sort_keys=True))
    return 1 if failed else 0


def cmd_queue_remove(action_id: str, queue_dir: Path | None = None) -> int:
    if not _open_queue(queue_dir).remove(action_id):
        print(f"Error: no queued action with id {action_id!r}", file=sys.stderr)
        return 1
    return 0


def cmd_queue_retry(action_id: str, queue_dir: Path | None = None) -> int:
    if not _open_queue(queue_dir).retry(action_id):
        print(f"Error: no queued action with id {action_id!r}", file=sys.stderr)
        return 1
    return 0


def cmd_queue_clear(queue_dir: Path | None = None) -> int:
    _open_queue(queue_dir).clear_queue()
    return 0


# ---- Typer-based console interface -------------------------------------------


app = typer.Typer(
    no_args_is_help=True,
    add_completion=False,
    help="Annotate imported transactions, summarize spend, and manage the offline action queue.",
)
queue_app = typer.Typer(no_args_is_help=True, help="Inspect and resolve the local action queue.")
app.add_typer(queue_app, name="queue")

CSV_PATH_ARG = typer.Argument(help="Path to a CSV with date,amount,merchant,category,type.")
QUEUE_DIR_OPTION = typer.Option(
    "--queue-dir", help="Queue directory (falls back to SPEND_SYNC_QUEUE_DIR)."
)


def _exit(rc: int) -> None:
    if rc:
        raise typer.Exit(rc)


@app.callback()
def main(log_level: str | None = typer.Option(None, help="Logging level (e.g. DEBUG).")) -> None:
    """Root command.

    Loads ``.env`` from the current working directory (without overriding any
    already-set environment variables) and configures package logging.
    """

    load_dotenv(dotenv_path=Path.cwd() / ".env", override=False)
    configure_logging(log_level)


@app.command("annotate")
def annotate_cmd(
    csv_path: Annotated[Path, CSV_PATH_ARG],
    *,
    user_id: str = typer.Option(..., help="Owner of the imported statement."),
    batch_id: str = typer.Option(..., help="Identifier of this import batch."),
    persist: bool = typer.Option(
        False, help="Record rows in the processed-transactions ledger and flag duplicates."
    ),
    database_url: str | None = typer.Option(
        None, help="Override DATABASE_URL (falls back to env var)."
    ),
) -> None:
    """Derive transaction ids, dedup hashes and canonical categories."""

    _exit(
        cmd_annotate(
            csv_path,
            user_id=user_id,
            batch_id=batch_id,
            persist=persist,
            database_url=database_url,
        )
    )


@app.command("spending")
def spending_cmd(csv_path: Annotated[Path, CSV_PATH_ARG]) -> None:
    """Summarize included spend for a CSV of transactions."""

    _exit(cmd_spending(csv_path))


@queue_app.command("status")
def queue_status_cmd(queue_dir: Annotated[Path | None, QUEUE_DIR_OPTION] = None) -> None:
    """List every queued action with its retry state."""

    _exit(cmd_queue_status(queue_dir))


@queue_app.command("failed")
def queue_failed_cmd(queue_dir: Annotated[Path | None, QUEUE_DIR_OPTION] = None) -> None:
    """Print quarantined actions (exit status 1 when any exist)."""

    _exit(cmd_queue_failed(queue_dir))


@queue_app.command("remove")
def queue_remove_cmd(
    action_id: str,
    queue_dir: Annotated[Path | None, QUEUE_DIR_OPTION] = None,
) -> None:
    """Remove one action by id."""

    _exit(cmd_queue_remove(action_id, queue_dir))


@queue_app.command("retry")
def queue_retry_cmd(
    action_id: str,
    queue_dir: Annotated[Path | None, QUEUE_DIR_OPTION] = None,
) -> None:
    """Reset an action's retry count so the next drain re-attempts it."""

    _exit(cmd_queue_retry(action_id, queue_dir))


@queue_app.command("clear")
def queue_clear_cmd(
    queue_dir: Annotated[Path | None, QUEUE_DIR_OPTION] = None,
    yes: bool = typer.Option(False, "--yes", help="Skip the confirmation prompt."),
) -> None:
    """Delete every queued action, quarantined ones included."""

    if not yes:
        typer.confirm("Delete all queued actions?", abort=True)
    _exit(cmd_queue_clear(queue_dir))


if __name__ == "__main__":  # pragma: no cover
    # Running as a module: `python -m spend_sync.cli`
    app()
