"""Spending check command."""

import click

from spendguard.cli.error_handling import handle_domain_error
from spendguard.domain.errors import DomainError
from spendguard.utils.amount_parser import parse_amount


@click.command("check")
@click.argument("child_id")
@click.argument("amount")
@click.option("--category", help="Spending category")
@click.pass_context
def check_spending(ctx, child_id: str, amount: str, category: str | None):
    """Check whether a child may spend an amount.

    Examples:
        spendguard check kid-1 12.50
        spendguard check kid-1 40 --category books
    """
    engine = ctx.obj["engine"]
    try:
        result = engine.check_spending(child_id, parse_amount(amount), category)
    except DomainError as e:
        handle_domain_error(ctx, e)

    if not result.can_spend:
        click.echo(f"Blocked: {result.block_reason}")
    elif result.requires_approval:
        click.echo("Allowed with parent approval")
    else:
        click.echo("Allowed")
    for warning in result.warnings:
        click.echo(f"  Warning: {warning}")


def register_commands(cli):
    """Register check command with main CLI."""
    cli.add_command(check_spending)
