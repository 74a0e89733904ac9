"""Balance commands."""

import click

from spendguard.cli.error_handling import handle_domain_error
from spendguard.domain.errors import DomainError
from spendguard.utils.amount_parser import parse_amount


@click.group()
def balance_group():
    """View and set a child's balance."""
    pass


@balance_group.command("show")
@click.argument("child_id")
@click.pass_context
def show_balance(ctx, child_id: str):
    """Show a child's balance."""
    db = ctx.obj["db"]
    click.echo(f"Balance for {child_id}: ${db.get_balance(child_id):,.2f}")


@balance_group.command("set")
@click.argument("child_id")
@click.argument("amount")
@click.pass_context
def set_balance(ctx, child_id: str, amount: str):
    """Set a child's balance."""
    db = ctx.obj["db"]
    try:
        balance = parse_amount(amount)
    except DomainError as e:
        handle_domain_error(ctx, e)
    db.set_balance(child_id, balance)
    click.echo(f"Balance for {child_id} set to ${balance:,.2f}")


def register_commands(cli):
    """Register balance commands with main CLI."""
    cli.add_command(balance_group, name="balance")
