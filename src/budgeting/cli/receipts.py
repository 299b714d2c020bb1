#!/usr/bin/env python3
"""
Receipts CLI - Import Alert Emails into the Ledger

Fetches unprocessed alert threads, records their receipts on the matching
pay-period sheets and (optionally) marks clean threads processed.
"""

import click

from ..core.config import get_config
from ..core.errors import BudgetingError
from ..mail.aggregator import flatten_receipts, receipts_to_dataframe
from ..workflow import ReceiptWorkflow


@click.group()
def receipts() -> None:
    """Receipt import commands."""
    pass


@receipts.command(name="import")
@click.option("--start", type=int, default=0, show_default=True, help="Index of the first thread to import")
@click.option("--count", type=int, default=10, show_default=True, help="Maximum number of threads to import")
@click.option("--all", "import_all", is_flag=True, help="Import every matching thread (ignores --start/--count)")
@click.option("--mark/--no-mark", default=False, show_default=True, help="Mark clean threads processed")
@click.option("--dry-run", is_flag=True, help="Show the receipts that would be recorded without writing anything")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output")
@click.pass_context
def import_receipts(
    ctx: click.Context,
    start: int,
    count: int,
    import_all: bool,
    mark: bool,
    dry_run: bool,
    verbose: bool,
) -> None:
    """
    Record receipts from alert emails on the ledger.

    Examples:
      budgeting receipts import --count 50
      budgeting receipts import --all --mark
      budgeting receipts import --dry-run
    """
    config = get_config()
    verbose = verbose or ctx.obj.get("verbose", False)

    first: int | None = None if import_all else start
    limit: int | None = None if import_all else count

    if verbose:
        click.echo("Receipt Import")
        click.echo(f"Mail backend: {config.mail.backend.value}")
        click.echo(f"Search: {config.mail.search_query}")
        click.echo(f"Threads: {'all' if import_all else f'{start}-{start + count - 1}'}")
        click.echo(f"Ledger: {config.ledger.workbook_path}")
        click.echo()

    workflow = ReceiptWorkflow.from_config(config)
    try:
        threads = workflow.fetch_threads(first, limit)
        click.echo(f"🔍 Found {len(threads)} threads")

        results = workflow.classify_and_aggregate(threads)

        if dry_run:
            flattened = flatten_receipts(results)
            if flattened:
                click.echo(receipts_to_dataframe(flattened).to_string(index=False))
            else:
                click.echo("No receipts to record")
            errors = sum(len(r.errors) for r in results)
            if errors:
                click.echo(f"⚠️  There were {errors} errors while processing. Please review.")
            click.echo("Dry run: nothing was written or marked")
            return

        report = workflow.place_receipts(results, mark_processed=mark)

    except BudgetingError as e:
        click.echo(f"❌ Error during import: {e}", err=True)
        raise click.ClickException(str(e)) from e
    finally:
        workflow.close()

    if report.placed:
        for partition, placed in report.placed.items():
            click.echo(f"✅ Recorded {placed} receipts on {partition}")
    else:
        click.echo("No receipts to record")

    if mark:
        click.echo(f"Marked {len(report.marked)} threads processed")

    if verbose:
        for error in report.errors:
            click.echo(error)
            click.echo()

    summary = report.summary()
    if summary:
        click.echo(f"⚠️  {summary}")
