"""Category rule commands."""

import click

from spendguard.cli.error_handling import handle_domain_error
from spendguard.domain.entities import CategoryRestriction
from spendguard.domain.errors import DomainError
from spendguard.utils.amount_parser import parse_amount


@click.group()
def rule_group():
    """Manage per-category spending rules."""
    pass


@rule_group.command("set")
@click.argument("child_id")
@click.argument("category_id")
@click.option(
    "--restriction",
    type=click.Choice([r.value for r in CategoryRestriction], case_sensitive=False),
    default=CategoryRestriction.ALLOWED.value,
    help="How purchases in the category are treated (default: allowed)",
)
@click.option("--threshold", help="Approval threshold replacing the global one for this category")
@click.option("--reason", help="Message shown when the category is blocked")
@click.pass_context
def set_rule(ctx, child_id: str, category_id: str, restriction: str, threshold: str | None, reason: str | None):
    """Create or replace the rule for a category.

    Examples:
        spendguard rule set kid-1 games --restriction blocked --reason "No games this month"
        spendguard rule set kid-1 books --threshold 25
    """
    engine = ctx.obj["engine"]
    try:
        category_threshold = parse_amount(threshold) if threshold is not None else None
        rule = engine.policy.upsert_category_rule(
            child_id,
            category_id,
            CategoryRestriction(restriction.lower()),
            category_threshold=category_threshold,
            restriction_reason=reason,
        )
    except DomainError as e:
        handle_domain_error(ctx, e)

    click.echo(f"Rule for '{rule.category_id}': {rule.restriction.value}")
    if rule.category_threshold is not None:
        click.echo(f"  Threshold: ${rule.category_threshold:,.2f}")


@rule_group.command("remove")
@click.argument("child_id")
@click.argument("category_id")
@click.pass_context
def remove_rule(ctx, child_id: str, category_id: str):
    """Remove the rule for a category."""
    engine = ctx.obj["engine"]
    try:
        engine.policy.remove_category_rule(child_id, category_id)
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Removed rule for '{category_id}'")


def register_commands(cli):
    """Register rule commands with main CLI."""
    cli.add_command(rule_group, name="rule")
