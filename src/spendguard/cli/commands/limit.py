"""Spending limit commands."""

import click

from spendguard.cli.error_handling import handle_domain_error
from spendguard.domain.entities import LimitPeriod
from spendguard.domain.errors import DomainError
from spendguard.utils.amount_parser import parse_amount
from spendguard.utils.period_window import parse_period

PERIOD_CHOICE = click.Choice([p.value for p in LimitPeriod], case_sensitive=False)


@click.group()
def limit_group():
    """Manage daily, weekly and monthly spending limits."""
    pass


@limit_group.command("set")
@click.argument("child_id")
@click.argument("period", type=PERIOD_CHOICE)
@click.argument("amount")
@click.option(
    "--committed-only",
    is_flag=True,
    help="Count only approved spend; pending requests do not reserve against this limit",
)
@click.pass_context
def set_limit(ctx, child_id: str, period: str, amount: str, committed_only: bool):
    """Create or replace the limit for a period.

    Examples:
        spendguard limit set kid-1 weekly 50
        spendguard limit set kid-1 monthly 150 --committed-only
    """
    engine = ctx.obj["engine"]
    try:
        limit = engine.policy.upsert_spending_limit(
            child_id,
            parse_period(period),
            parse_amount(amount),
            includes_pending_requests=not committed_only,
        )
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Set {limit.period.value} limit of ${limit.limit_amount:,.2f} for {child_id}")


@limit_group.command("remove")
@click.argument("child_id")
@click.argument("period", type=PERIOD_CHOICE)
@click.pass_context
def remove_limit(ctx, child_id: str, period: str):
    """Remove the limit for a period."""
    engine = ctx.obj["engine"]
    try:
        engine.policy.remove_spending_limit(child_id, parse_period(period))
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Removed {period.lower()} limit for {child_id}")


@limit_group.command("status")
@click.argument("child_id")
@click.pass_context
def limit_status(ctx, child_id: str):
    """Show current usage of every limit."""
    engine = ctx.obj["engine"]
    statuses = engine.get_limit_statuses(child_id)
    if not statuses:
        click.echo(f"No spending limits configured for {child_id}.")
        return

    click.echo(f"\nSpending limits for {child_id}:")
    click.echo("-" * 80)
    for status in statuses:
        click.echo(
            f"{status.period.value:8s} | limit ${status.limit_amount:>9,.2f} | "
            f"spent ${status.spent_amount:>9,.2f} | pending ${status.pending_amount:>9,.2f} | "
            f"left ${status.remaining_amount:>9,.2f} | {status.percent_used:.0%}"
        )


@limit_group.command("history")
@click.argument("child_id")
@click.option("--period", type=PERIOD_CHOICE, help="Only show one period")
@click.pass_context
def limit_history(ctx, child_id: str, period: str | None):
    """Show past and current limit windows, newest first."""
    engine = ctx.obj["engine"]
    trackers = engine.get_tracker_history(child_id, parse_period(period) if period else None)
    if not trackers:
        click.echo("No limit history found.")
        return

    click.echo(f"\nLimit history for {child_id}:")
    click.echo("-" * 80)
    for tracker in trackers:
        click.echo(
            f"{tracker.period.value:8s} | {tracker.period_start:%Y-%m-%d} .. {tracker.period_end:%Y-%m-%d} | "
            f"spent ${tracker.spent_amount:>9,.2f} of ${tracker.limit_amount:,.2f}"
        )


def register_commands(cli):
    """Register limit commands with main CLI."""
    cli.add_command(limit_group, name="limit")
