#!/usr/bin/env python3
"""
Ledger CLI - Partition Maintenance and Row Splitting

Commands that only touch the ledger workbook: creating pay-period sheets up
to today, listing them and splitting recorded transaction rows.
"""

from datetime import datetime, time

import click

from ..core.config import get_config
from ..core.dates import FinancialDate
from ..core.errors import BudgetingError
from ..ledger.partitioner import sort_by_start_descending
from ..workflow import ReceiptWorkflow


@click.group()
def partitions() -> None:
    """Pay-period partition commands."""
    pass


@partitions.command(name="catch-up")
@click.option("--as-of", help="Date to catch up to (YYYY-MM-DD) - optional, defaults to today")
@click.pass_context
def catch_up(ctx: click.Context, as_of: str | None) -> None:
    """
    Create pay-period sheets until the newest one covers today.

    Examples:
      budgeting partitions catch-up
      budgeting partitions catch-up --as-of 2024-06-30
    """
    config = get_config()
    workflow = ReceiptWorkflow.from_config(config, with_mail=False)

    now = None
    if as_of:
        try:
            as_of_date = FinancialDate.from_string(as_of).date
        except ValueError as e:
            raise click.BadParameter(f"Invalid date {as_of!r}, expected YYYY-MM-DD") from e
        now = datetime.combine(as_of_date, time(12), tzinfo=config.ledger.tzinfo)

    try:
        created = workflow.ensure_partitions_current(now)
    except BudgetingError as e:
        click.echo(f"❌ Error creating sheets: {e}", err=True)
        raise click.ClickException(str(e)) from e

    if created:
        click.echo(f"✅ Added {created} transaction sheets")
    else:
        click.echo("Transaction sheets are already current")


@partitions.command(name="list")
@click.pass_context
def list_partitions(ctx: click.Context) -> None:
    """List pay-period sheets, newest first."""
    config = get_config()
    workflow = ReceiptWorkflow.from_config(config, with_mail=False)

    found = sort_by_start_descending(workflow.partitioner.partitions())
    if not found:
        click.echo("No transaction sheets found.")
        return

    click.echo("Transaction Sheets:")
    click.echo("=" * 60)
    for partition in found:
        marker = " [gap]" if partition.is_gap else ""
        click.echo(f"  {partition.name:<30} {partition.start_date} to {partition.end_date}{marker}")
    click.echo(f"\nTotal: {len(found)} sheets")


@click.command()
@click.argument("partition")
@click.argument("row", type=int)
@click.pass_context
def split(ctx: click.Context, partition: str, row: int) -> None:
    """
    Split transaction ROW (0 = first transaction row) of PARTITION into two.

    Example:
      budgeting split "3/1/24 - 3/14/24" 4
    """
    config = get_config()
    workflow = ReceiptWorkflow.from_config(config, with_mail=False)

    try:
        row_range = workflow.split_entry(partition, row)
    except BudgetingError as e:
        click.echo(f"❌ Cannot split: {e}", err=True)
        raise click.ClickException(str(e)) from e

    click.echo(f"✅ Split {partition} row {row}: group now spans rows {row_range.start}-{row_range.stop - 1}")


@click.command(name="split-checked")
@click.argument("partition")
@click.pass_context
def split_checked(ctx: click.Context, partition: str) -> None:
    """
    Split every transaction of PARTITION whose split checkbox is ticked.

    Example:
      budgeting split-checked "3/1/24 - 3/14/24"
    """
    config = get_config()
    workflow = ReceiptWorkflow.from_config(config, with_mail=False)

    try:
        ranges = workflow.split_checked(partition)
    except BudgetingError as e:
        click.echo(f"❌ Cannot split: {e}", err=True)
        raise click.ClickException(str(e)) from e

    if not ranges:
        click.echo("No checked transactions to split")
        return
    for row_range in ranges:
        click.echo(f"✅ Split rows {row_range.start}-{row_range.stop - 1}")
