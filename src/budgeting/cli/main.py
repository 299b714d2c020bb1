#!/usr/bin/env python3
"""
Main CLI Entry Point for Budgeting Receipts

Provides the command-line interface for recording alert-email receipts in the
ledger workbook and maintaining its pay-period partitions.
"""

import click

from ..core.config import reload_config
from ..core.errors import ConfigError


@click.group()
@click.option(
    "--config-env",
    type=click.Choice(["development", "test", "production"]),
    help="Override environment configuration",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output")
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.pass_context
def main(ctx: click.Context, config_env: str | None, verbose: bool, debug: bool) -> None:
    """
    Budgeting Receipts - Alert Emails to Ledger Entries

    Records Chase, Venmo and PayPal alert emails as transactions on the
    pay-period sheets of the ledger workbook.
    """
    # Ensure context object exists
    ctx.ensure_object(dict)

    # Set environment if specified
    if config_env:
        import os

        os.environ["BUDGETING_ENV"] = config_env

    # Configure debug logging if requested
    if debug:
        import logging
        import os

        os.environ["LOG_LEVEL"] = "DEBUG"
        logging.getLogger().setLevel(logging.DEBUG)
        logging.getLogger("budgeting").setLevel(logging.DEBUG)

    # Store global options
    ctx.obj["verbose"] = verbose
    ctx.obj["debug"] = debug
    try:
        ctx.obj["config"] = reload_config()
    except ConfigError as e:
        raise click.ClickException(str(e)) from e

    if verbose:
        click.echo(f"Environment: {ctx.obj['config'].environment.value}")
        click.echo(f"Data directory: {ctx.obj['config'].data_dir}")

    if debug:
        click.echo("Debug logging enabled")


@main.command()
@click.pass_context
def version(ctx: click.Context) -> None:
    """Show version information."""
    from budgeting import __version__

    click.echo(f"Budgeting Receipts v{__version__}")


@main.command()
@click.pass_context
def config(ctx: click.Context) -> None:
    """Show current configuration."""
    config_obj = ctx.obj["config"]

    click.echo("Current Configuration:")
    click.echo(f"  Environment: {config_obj.environment.value}")
    click.echo(f"  Data Directory: {config_obj.data_dir}")
    click.echo(f"  Ledger Workbook: {config_obj.ledger.workbook_path}")
    click.echo(f"  Ledger Timezone: {config_obj.ledger.timezone}")
    click.echo(f"  Mail Backend: {config_obj.mail.backend.value}")
    click.echo(f"  Mail Directory: {config_obj.mail.mail_dir}")
    click.echo(f"  Forwarding Relay: {config_obj.mail.forwarding_relay or '(none)'}")
    click.echo(f"  Debug Mode: {config_obj.debug}")
    click.echo(f"  Log Level: {config_obj.log_level}")

    if ctx.obj.get("verbose", False):
        from ..core.json_utils import format_json

        click.echo(format_json(config_obj.to_dict()))


# Import command groups
from .ledger import partitions, split, split_checked  # noqa: E402
from .receipts import receipts  # noqa: E402

main.add_command(receipts)
main.add_command(partitions)
main.add_command(split)
main.add_command(split_checked)


if __name__ == "__main__":
    main()
