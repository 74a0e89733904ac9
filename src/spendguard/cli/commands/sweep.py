"""Expiration sweep command."""

import click

from spendguard.domain.sweeper import ExpirationSweeper


@click.command("sweep")
@click.option("--watch", is_flag=True, help="Keep sweeping until interrupted")
@click.option("--interval", type=float, help="Seconds between sweeps when watching")
@click.pass_context
def sweep(ctx, watch: bool, interval: float | None):
    """Expire overdue requests and purge old limit windows.

    Examples:
        spendguard sweep
        spendguard sweep --watch --interval 60
    """
    engine = ctx.obj["engine"]
    sweeper = engine.sweeper
    if interval is not None:
        if interval <= 0:
            click.echo("Error: Interval must be positive", err=True)
            ctx.exit(1)
        sweeper = ExpirationSweeper(
            engine.lifecycle,
            engine.limits,
            engine.clock,
            interval=interval,
            tracker_retention_days=engine.config.tracker_retention_days,
        )

    if not watch:
        report = sweeper.run_once()
        click.echo(f"Expired {len(report.expired_ids)} request(s)")
        for request_id, reason in sorted(report.failed.items()):
            click.echo(f"  Request {request_id} failed: {reason}", err=True)
        if report.trackers_removed:
            click.echo(f"Removed {report.trackers_removed} old limit window(s)")
        return

    click.echo(f"Sweeping every {sweeper.interval:g}s, press Ctrl+C to stop")
    sweeper.start()
    try:
        while not sweeper.wait(1.0):
            pass
    except KeyboardInterrupt:
        pass
    finally:
        sweeper.stop()
    click.echo("Stopped")


def register_commands(cli):
    """Register sweep command with main CLI."""
    cli.add_command(sweep)
