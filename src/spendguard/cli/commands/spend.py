"""Direct spend command."""

import click

from spendguard.cli.error_handling import handle_domain_error
from spendguard.domain.errors import DomainError
from spendguard.utils.amount_parser import parse_amount


@click.command("spend")
@click.argument("child_id")
@click.argument("amount")
@click.option("--description", required=True, help="What the money is for")
@click.option("--category", help="Spending category")
@click.pass_context
def spend(ctx, child_id: str, amount: str, description: str, category: str | None):
    """Spend from a child's balance when no approval is needed.

    Examples:
        spendguard spend kid-1 4.50 --description "Snack"
    """
    engine = ctx.obj["engine"]
    try:
        spend_amount = parse_amount(amount)
        receipt = engine.spend(child_id, spend_amount, description, category)
    except DomainError as e:
        handle_domain_error(ctx, e)

    click.echo(f"Spent ${spend_amount:,.2f} (transaction {receipt.transaction_id})")
    click.echo(f"  New balance: ${receipt.new_balance:,.2f}")


def register_commands(cli):
    """Register spend command with main CLI."""
    cli.add_command(spend)
