"""CLI error handling helpers."""

import click

from spendguard.domain.errors import BlockedError, DomainError, TransientError


def handle_domain_error(ctx: click.Context, error: DomainError | ValueError) -> None:
    """Render a domain error and exit with failure."""
    if isinstance(error, BlockedError):
        click.echo(f"Blocked: {error.reason}", err=True)
    elif isinstance(error, TransientError):
        click.echo(f"Error: {error} (try again)", err=True)
    else:
        click.echo(f"Error: {error}", err=True)
    ctx.exit(1)
