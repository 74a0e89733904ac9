"""Main CLI entry point."""

import logging

import click

from spendguard.config import load_config
from spendguard.database.factories import create_sqlite_database
from spendguard.domain.engine import SpendingEngine
from spendguard.domain.errors import DomainError
from spendguard.cli.error_handling import handle_domain_error

# Import and register all commands at module level
from spendguard.cli.commands import (
    policy,
    rule,
    limit,
    check,
    spend,
    request,
    balance,
    sweep,
)


@click.group()
@click.option(
    "--db-path",
    type=click.Path(),
    help="Path to database file (overrides SPENDGUARD_DB_PATH environment variable)",
    envvar="SPENDGUARD_DB_PATH",
)
@click.option("-v", "--verbose", is_flag=True, help="Log engine activity to stderr")
@click.pass_context
def cli(ctx, db_path: str | None, verbose: bool):
    """Spendguard - Parental spending approval.

    Set approval thresholds, category rules and spending limits for a child,
    then check purchases, raise approval requests and answer them.
    """
    ctx.ensure_object(dict)
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    # Initialize database connection only when actually running a command
    # (not when showing help)
    if ctx.invoked_subcommand is not None:
        try:
            config = load_config()
        except DomainError as e:
            handle_domain_error(ctx, e)
        db = create_sqlite_database(
            database_path=db_path, storage_timeout=config.storage_timeout_seconds
        )
        db.connect()
        db.initialize_schema()
        ctx.call_on_close(db.disconnect)
        ctx.obj["db"] = db
        ctx.obj["engine"] = SpendingEngine(db, config=config)


# Register all commands
policy.register_commands(cli)
rule.register_commands(cli)
limit.register_commands(cli)
check.register_commands(cli)
spend.register_commands(cli)
request.register_commands(cli)
balance.register_commands(cli)
sweep.register_commands(cli)


def main():
    """Main entry point for CLI."""
    cli()


if __name__ == "__main__":
    main()
