"""
CLI entry point for ledgerstore.

Commands:
    init          Create the transaction and receipt databases
    ingest        Bulk-insert records from a JSON file
    latest        Show the most recent records
    show-tx       Show one transaction
    show-receipt  Show one receipt
    count         Count records, optionally within a cycle range
    cycles        Receipt counts per cycle

Architecture Note:
    The CLI only parses arguments and prints. All storage work is done by
    LedgerArchive, so the same operations are available programmatically.
"""

import asyncio
import json
from enum import Enum
from pathlib import Path
from typing import Annotated, Any, Optional

import typer
from rich.console import Console
from rich.table import Table

from ledgerstore import __version__
from ledgerstore.archive import LedgerArchive
from ledgerstore.config import StoreConfig, load_config
from ledgerstore.errors import LedgerStoreError
from ledgerstore.observability import setup_logging
from ledgerstore.results import ReadResult

app = typer.Typer(
    name="ledgerstore",
    help="Store and query archived transactions and receipts.",
    add_completion=False,
    no_args_is_help=True,
)

console = Console()

_APPLIED_LABELS = {True: "[green]yes[/green]", False: "[red]no[/red]", None: "[dim]-[/dim]"}


class RecordKind(str, Enum):
    """Which table a command works on."""

    TRANSACTIONS = "transactions"
    RECEIPTS = "receipts"


ConfigOption = Annotated[
    Optional[Path],
    typer.Option(
        "--config",
        "-c",
        help="Path to the YAML configuration. Defaults to $LEDGERSTORE_CONFIG.",
        exists=True,
        readable=True,
        resolve_path=True,
    ),
]

KindOption = Annotated[
    RecordKind,
    typer.Option("--kind", "-k", help="Record kind."),
]

JsonOption = Annotated[
    bool,
    typer.Option("--json", help="Output results in JSON format."),
]


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"[bold]ledgerstore[/bold] version {__version__}")
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
    ledgerstore - persistence for an append-mostly ledger archive.
    """
    pass


# =============================================================================
# Helpers
# =============================================================================


def _load(config_path: Path | None) -> StoreConfig:
    try:
        config = load_config(config_path)
    except LedgerStoreError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(code=1) from e
    setup_logging(config.log_level, config.log_format)
    return config


def _with_archive(config: StoreConfig, action: Any) -> Any:
    """Open the archive, run ``action(archive)`` and close it again."""

    async def runner() -> Any:
        async with LedgerArchive(config) as archive:
            return await action(archive)

    try:
        return asyncio.run(runner())
    except LedgerStoreError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(code=1) from e


def _require_ok(result: ReadResult[Any]) -> Any:
    if not result.ok:
        console.print(f"[red]Query failed: {result.error}[/red]")
        raise typer.Exit(code=1)
    return result.value


def _print_json(data: Any) -> None:
    console.print_json(json.dumps(data, default=str))


# =============================================================================
# Commands
# =============================================================================


@app.command()
def init(config_path: ConfigOption = None) -> None:
    """
    Create both databases and their tables.

    Example:
        $ ledgerstore init --config archive.yaml
    """
    config = _load(config_path)

    async def action(archive: LedgerArchive) -> None:
        return None

    _with_archive(config, action)
    console.print(f"[green]Initialized[/green] {config.transaction_db_path}")
    console.print(f"[green]Initialized[/green] {config.receipt_db_path}")


@app.command()
def ingest(
    records_path: Annotated[
        Path,
        typer.Argument(
            help="JSON file holding an array of records.",
            exists=True,
            readable=True,
            resolve_path=True,
        ),
    ],
    kind: KindOption = RecordKind.TRANSACTIONS,
    chunk_size: Annotated[
        int,
        typer.Option("--chunk-size", help="Records per INSERT statement.", min=1),
    ] = 500,
    config_path: ConfigOption = None,
) -> None:
    """
    Bulk-insert records from a JSON file.

    Example:
        $ ledgerstore ingest receipts.json --kind receipts
    """
    config = _load(config_path)
    try:
        records = json.loads(records_path.read_text())
    except json.JSONDecodeError as e:
        console.print(f"[red]Invalid JSON in {records_path}: {e}[/red]")
        raise typer.Exit(code=1) from e
    if not isinstance(records, list):
        console.print("[red]The file must contain a JSON array of records.[/red]")
        raise typer.Exit(code=1)

    async def action(archive: LedgerArchive) -> tuple[int, int]:
        return await archive.ingest(kind.value, records, chunk_size=chunk_size)

    stored, failed = _with_archive(config, action)
    console.print(f"Stored [green]{stored}[/green] {kind.value}, failed [red]{failed}[/red]")
    if failed:
        raise typer.Exit(code=1)


@app.command()
def latest(
    kind: KindOption = RecordKind.TRANSACTIONS,
    count: Annotated[
        int,
        typer.Option("--count", "-n", help="Maximum records to show (0 = default)."),
    ] = 20,
    json_output: JsonOption = False,
    config_path: ConfigOption = None,
) -> None:
    """
    Show the most recent records, newest first.

    Example:
        $ ledgerstore latest --kind receipts -n 5
    """
    config = _load(config_path)

    async def action(archive: LedgerArchive) -> ReadResult[Any]:
        return await archive.store_for(kind.value).get_latest(count)

    records = _require_ok(_with_archive(config, action))
    if json_output:
        _print_json([record.model_dump(mode="json") for record in records])
        return
    if not records:
        console.print("[dim]No records found.[/dim]")
        return

    table = Table(show_header=True, header_style="bold")
    if kind is RecordKind.TRANSACTIONS:
        table.add_column("Tx ID", style="cyan")
        table.add_column("Cycle", justify="right")
        table.add_column("Timestamp", justify="right")
        table.add_column("App Receipt")
        for tx in records:
            table.add_row(tx.txId, str(tx.cycleNumber), str(tx.timestamp), tx.appReceiptId or "")
    else:
        table.add_column("Receipt ID", style="cyan")
        table.add_column("Cycle", justify="right")
        table.add_column("Timestamp", justify="right")
        table.add_column("Applied")
        table.add_column("Global")
        for receipt in records:
            proposal = receipt.signedReceipt.proposal
            applied = proposal.applied if proposal is not None else None
            table.add_row(
                receipt.receiptId,
                str(receipt.cycle),
                str(receipt.timestamp),
                _APPLIED_LABELS[applied],
                "yes" if receipt.globalModification else "no",
            )
    console.print(table)


def _show(result: ReadResult[Any], label: str) -> None:
    record = _require_ok(result)
    if record is None:
        console.print(f"[red]{label} not found[/red]")
        raise typer.Exit(code=1)
    _print_json(record.model_dump(mode="json"))


@app.command("show-tx")
def show_tx(
    tx_id: Annotated[str, typer.Argument(help="The transaction id.")],
    config_path: ConfigOption = None,
) -> None:
    """
    Show one transaction as JSON.

    Example:
        $ ledgerstore show-tx 0xabc...
    """
    config = _load(config_path)

    async def action(archive: LedgerArchive) -> ReadResult[Any]:
        return await archive.transactions.get_by_id(tx_id)

    _show(_with_archive(config, action), f"Transaction {tx_id}")


@app.command("show-receipt")
def show_receipt(
    receipt_id: Annotated[str, typer.Argument(help="The receipt id.")],
    timestamp: Annotated[
        int,
        typer.Option("--timestamp", "-t", help="Also require this timestamp (0 = any)."),
    ] = 0,
    config_path: ConfigOption = None,
) -> None:
    """
    Show one receipt as JSON.

    Example:
        $ ledgerstore show-receipt 0xabc... --timestamp 1700000000000
    """
    config = _load(config_path)

    async def action(archive: LedgerArchive) -> ReadResult[Any]:
        return await archive.receipts.get_by_id(receipt_id, timestamp)

    _show(_with_archive(config, action), f"Receipt {receipt_id}")


@app.command()
def count(
    kind: KindOption = RecordKind.TRANSACTIONS,
    start_cycle: Annotated[
        Optional[int],
        typer.Option("--start-cycle", help="First cycle of the range (inclusive)."),
    ] = None,
    end_cycle: Annotated[
        Optional[int],
        typer.Option("--end-cycle", help="Last cycle of the range (inclusive)."),
    ] = None,
    json_output: JsonOption = False,
    config_path: ConfigOption = None,
) -> None:
    """
    Count records, in total or within a cycle range.

    Example:
        $ ledgerstore count --kind receipts --start-cycle 10 --end-cycle 20
    """
    if (start_cycle is None) != (end_cycle is None):
        console.print("[red]--start-cycle and --end-cycle must be given together[/red]")
        raise typer.Exit(code=1)
    config = _load(config_path)

    async def action(archive: LedgerArchive) -> ReadResult[int]:
        store = archive.store_for(kind.value)
        if start_cycle is None:
            return await store.count()
        return await store.count_in_cycle_range(start_cycle, end_cycle)

    total = _require_ok(_with_archive(config, action))
    if json_output:
        _print_json({"kind": kind.value, "count": total})
    else:
        console.print(f"{kind.value}: [bold]{total}[/bold]")


@app.command()
def cycles(
    start_cycle: Annotated[int, typer.Argument(help="First cycle (inclusive).")],
    end_cycle: Annotated[int, typer.Argument(help="Last cycle (inclusive).")],
    json_output: JsonOption = False,
    config_path: ConfigOption = None,
) -> None:
    """
    Show receipt counts per cycle.

    Example:
        $ ledgerstore cycles 100 120
    """
    config = _load(config_path)

    async def action(archive: LedgerArchive) -> ReadResult[Any]:
        return await archive.receipts.count_by_cycle_grouped(start_cycle, end_cycle)

    counts = _require_ok(_with_archive(config, action))
    if json_output:
        _print_json([entry.model_dump() for entry in counts])
        return
    if not counts:
        console.print("[dim]No receipts in range.[/dim]")
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("Cycle", justify="right", style="cyan")
    table.add_column("Receipts", justify="right")
    for entry in counts:
        table.add_row(str(entry.cycle), str(entry.count))
    console.print(table)


if __name__ == "__main__":
    app()
