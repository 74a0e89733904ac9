"""Approval policy commands."""

import click

from spendguard.cli.error_handling import handle_domain_error
from spendguard.domain.entities import ApprovalSettings
from spendguard.domain.errors import DomainError
from spendguard.utils.amount_parser import parse_amount


def print_settings(settings: ApprovalSettings) -> None:
    """Print a child's approval settings."""
    click.echo(f"\nApproval settings for {settings.child_id}:")
    click.echo("-" * 60)
    click.echo(f"  Enabled:              {'yes' if settings.is_enabled else 'no'}")
    if settings.is_paused:
        reason = f" ({settings.pause_reason})" if settings.pause_reason else ""
        click.echo(f"  Paused:               yes{reason}")
    click.echo(f"  Approval threshold:   ${settings.approval_threshold:,.2f}")
    if settings.max_single_purchase is not None:
        click.echo(f"  Max single purchase:  ${settings.max_single_purchase:,.2f}")
    click.echo(f"  Auto-approve small:   {'yes' if settings.auto_approve_under_threshold else 'no'}")
    click.echo(f"  Auto-approve trusted: {'yes' if settings.auto_approve_trusted_categories else 'no'}")
    if settings.trusted_category_ids:
        click.echo(f"  Trusted categories:   {', '.join(sorted(settings.trusted_category_ids))}")
    click.echo(f"  Request expiration:   {settings.request_expiration_hours}h")
    if settings.family_id:
        click.echo(f"  Family:               {settings.family_id}")

    for rule in settings.category_rules:
        threshold = f", threshold ${rule.category_threshold:,.2f}" if rule.category_threshold is not None else ""
        click.echo(f"  Rule: {rule.category_id} -> {rule.restriction.value}{threshold}")
    for limit in settings.spending_limits:
        pending = "" if limit.includes_pending_requests else " (committed only)"
        click.echo(f"  Limit: {limit.period.value} ${limit.limit_amount:,.2f}{pending}")


@click.group()
def policy_group():
    """View and edit a child's approval policy."""
    pass


@policy_group.command("show")
@click.argument("child_id")
@click.pass_context
def show_policy(ctx, child_id: str):
    """Show a child's approval settings."""
    engine = ctx.obj["engine"]
    print_settings(engine.policy.get_settings(child_id))


@policy_group.command("set")
@click.argument("child_id")
@click.option("--enable/--disable", "is_enabled", default=None, help="Turn approval governance on or off")
@click.option("--threshold", help="Amount above which a purchase needs approval")
@click.option("--max-purchase", help="Largest single purchase allowed")
@click.option("--clear-max-purchase", is_flag=True, help="Remove the single purchase ceiling")
@click.option(
    "--auto-approve/--no-auto-approve",
    "auto_approve",
    default=None,
    help="Auto-approve purchases at or under the threshold",
)
@click.option(
    "--trusted-auto-approve/--no-trusted-auto-approve",
    "trusted_auto_approve",
    default=None,
    help="Auto-approve purchases in trusted categories",
)
@click.option("--expiration-hours", type=int, help="Hours before a request expires")
@click.option("--family", help="Family to notify about new requests")
@click.pass_context
def set_policy(
    ctx,
    child_id: str,
    is_enabled: bool | None,
    threshold: str | None,
    max_purchase: str | None,
    clear_max_purchase: bool,
    auto_approve: bool | None,
    trusted_auto_approve: bool | None,
    expiration_hours: int | None,
    family: str | None,
):
    """Update a child's approval settings.

    Examples:
        spendguard policy set kid-1 --threshold 15
        spendguard policy set kid-1 --max-purchase 100 --family fam-1
        spendguard policy set kid-1 --no-auto-approve
    """
    engine = ctx.obj["engine"]
    changes = {
        "is_enabled": is_enabled,
        "auto_approve_under_threshold": auto_approve,
        "auto_approve_trusted_categories": trusted_auto_approve,
        "request_expiration_hours": expiration_hours,
    }

    try:
        if threshold is not None:
            changes["approval_threshold"] = parse_amount(threshold)
        if clear_max_purchase:
            changes["max_single_purchase"] = None
        elif max_purchase is not None:
            changes["max_single_purchase"] = parse_amount(max_purchase)
        if family is not None:
            changes["family_id"] = family
        settings = engine.policy.update_settings(child_id, **changes)
    except DomainError as e:
        handle_domain_error(ctx, e)

    click.echo(f"Updated approval settings for {child_id}")
    print_settings(settings)


@policy_group.command("pause")
@click.argument("child_id")
@click.option("--reason", help="Reason shown to the child")
@click.pass_context
def pause_spending(ctx, child_id: str, reason: str | None):
    """Pause all spending for a child."""
    engine = ctx.obj["engine"]
    engine.policy.set_paused(child_id, reason)
    click.echo(f"Paused spending for {child_id}")


@policy_group.command("resume")
@click.argument("child_id")
@click.pass_context
def resume_spending(ctx, child_id: str):
    """Resume spending for a child."""
    engine = ctx.obj["engine"]
    engine.policy.resume(child_id)
    click.echo(f"Resumed spending for {child_id}")


@policy_group.command("trust")
@click.argument("child_id")
@click.argument("category_id")
@click.pass_context
def trust_category(ctx, child_id: str, category_id: str):
    """Mark a category as trusted."""
    engine = ctx.obj["engine"]
    try:
        engine.policy.add_trusted_category(child_id, category_id)
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Category '{category_id}' is now trusted for {child_id}")


@policy_group.command("untrust")
@click.argument("child_id")
@click.argument("category_id")
@click.pass_context
def untrust_category(ctx, child_id: str, category_id: str):
    """Remove a category from the trusted set."""
    engine = ctx.obj["engine"]
    try:
        engine.policy.remove_trusted_category(child_id, category_id)
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Category '{category_id}' is no longer trusted for {child_id}")


def register_commands(cli):
    """Register policy commands with main CLI."""
    cli.add_command(policy_group, name="policy")
