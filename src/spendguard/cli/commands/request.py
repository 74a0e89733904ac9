"""Spending request commands."""

import click

from spendguard.cli.error_handling import handle_domain_error
from spendguard.domain.entities import RequestStatus, SpendingRequest
from spendguard.domain.errors import DomainError
from spendguard.utils.amount_parser import parse_amount


def print_request(request: SpendingRequest) -> None:
    """Print a request in detail."""
    click.echo(f"\nRequest {request.id}:")
    click.echo(f"  Child:       {request.child_id}")
    click.echo(f"  Amount:      ${request.amount:,.2f}")
    click.echo(f"  Description: {request.description}")
    if request.category_id:
        click.echo(f"  Category:    {request.category_id}")
    click.echo(f"  Status:      {request.status.value}")
    click.echo(f"  Created:     {request.created_at:%Y-%m-%d %H:%M} UTC")
    if request.is_pending:
        click.echo(f"  Expires:     {request.expires_at:%Y-%m-%d %H:%M} UTC")
    if request.responded_by:
        click.echo(f"  Answered by: {request.responded_by}")
    if request.parent_comment:
        marker = " (learning moment)" if request.is_learning_moment else ""
        click.echo(f"  Comment:     {request.parent_comment}{marker}")
    if request.transaction_id:
        click.echo(f"  Transaction: {request.transaction_id}")


@click.group()
def request_group():
    """Create and answer spending requests."""
    pass


@request_group.command("create")
@click.argument("child_id")
@click.argument("amount")
@click.option("--description", required=True, help="What the money is for")
@click.option("--category", help="Spending category")
@click.option("--wish-list-item", help="Wish list or goal item the purchase is for")
@click.pass_context
def create_request(
    ctx, child_id: str, amount: str, description: str, category: str | None, wish_list_item: str | None
):
    """Ask a parent to approve a purchase.

    Examples:
        spendguard request create kid-1 25 --description "Video game" --category games
    """
    engine = ctx.obj["engine"]
    try:
        request = engine.create_request(
            child_id, parse_amount(amount), description, category, wish_list_item
        )
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Created request {request.id} for ${request.amount:,.2f}")


def _respond(ctx, request_id: int, approved: bool, by: str | None, comment: str | None, learning: bool):
    engine = ctx.obj["engine"]
    try:
        request = engine.respond_to_request(
            request_id, approved, responded_by=by, comment=comment, is_learning_moment=learning
        )
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Request {request.id} {request.status.value}")
    if request.transaction_id:
        click.echo(f"  Transaction: {request.transaction_id}")


@request_group.command("approve")
@click.argument("request_id", type=int)
@click.option("--by", help="Parent answering the request")
@click.option("--comment", help="Note for the child")
@click.option("--learning-moment", is_flag=True, help="Flag the comment as a learning moment")
@click.pass_context
def approve_request(ctx, request_id: int, by: str | None, comment: str | None, learning_moment: bool):
    """Approve a pending request and debit the child's balance."""
    _respond(ctx, request_id, True, by, comment, learning_moment)


@request_group.command("deny")
@click.argument("request_id", type=int)
@click.option("--by", help="Parent answering the request")
@click.option("--comment", help="Note for the child")
@click.option("--learning-moment", is_flag=True, help="Flag the comment as a learning moment")
@click.pass_context
def deny_request(ctx, request_id: int, by: str | None, comment: str | None, learning_moment: bool):
    """Deny a pending request."""
    _respond(ctx, request_id, False, by, comment, learning_moment)


@request_group.command("cancel")
@click.argument("request_id", type=int)
@click.option("--child", "child_id", required=True, help="Child who made the request")
@click.pass_context
def cancel_request(ctx, request_id: int, child_id: str):
    """Withdraw a pending request."""
    engine = ctx.obj["engine"]
    try:
        request = engine.cancel_request(request_id, child_id)
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Request {request.id} cancelled")


@request_group.command("list")
@click.option("--child", "child_id", help="Only show one child's requests")
@click.option(
    "--status",
    type=click.Choice([s.value for s in RequestStatus], case_sensitive=False),
    help="Only show requests in this status",
)
@click.pass_context
def list_requests(ctx, child_id: str | None, status: str | None):
    """List requests, newest first."""
    engine = ctx.obj["engine"]
    requests = engine.list_requests(child_id, RequestStatus(status.lower()) if status else None)
    if not requests:
        click.echo("No requests found.")
        return

    click.echo("\nRequests:")
    click.echo("-" * 80)
    for request in requests:
        click.echo(
            f"ID: {request.id:4d} | {request.child_id:12s} | ${request.amount:>9,.2f} | "
            f"{request.status.value:9s} | {request.description}"
        )


@request_group.command("show")
@click.argument("request_id", type=int)
@click.pass_context
def show_request(ctx, request_id: int):
    """Show one request."""
    engine = ctx.obj["engine"]
    try:
        request = engine.get_request(request_id)
    except DomainError as e:
        handle_domain_error(ctx, e)
    print_request(request)


def register_commands(cli):
    """Register request commands with main CLI."""
    cli.add_command(request_group, name="request")
