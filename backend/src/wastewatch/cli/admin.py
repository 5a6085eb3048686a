"""CLI commands for administrators: worker roster and statistics."""

import click

from ..models.base import Zone
from .common import echo_json, open_session, run


@click.group("workers")
def workers_cli() -> None:
    """Inspect the field worker roster."""
    pass


@workers_cli.command("list")
@click.option("--zone", "-z", type=click.Choice([z.value for z in Zone]), help="Filter by zone")
@click.option("--search", "-q", help="Search name, email or phone")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_obj
def list_workers(obj: dict, zone: str | None, search: str | None, as_json: bool) -> None:
    """List workers with their active job counts."""

    async def _list() -> None:
        async with open_session(obj) as session:
            workers = await session.client.list_workers(zone=zone, q=search)

        if as_json:
            echo_json(workers)
            return

        click.echo(f"Workers ({len(workers)}):")
        for worker in workers:
            click.echo(
                f"  {worker['id']:<34} {worker['name']:<20} "
                f"{worker['zone']:<14} active jobs: {worker['activeJobs']}"
            )

    run(_list())


@click.command("stats")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_obj
def stats(obj: dict, as_json: bool) -> None:
    """Show dashboard statistics."""

    async def _stats() -> None:
        async with open_session(obj) as session:
            summary = await session.client.stats()

        if as_json:
            echo_json(summary)
            return

        totals = summary["totals"]
        click.echo(f"Total reports: {totals['total']}")
        click.echo(f"  Pending: {totals['pending']}")
        click.echo(f"  Assigned: {totals['assigned']}")
        click.echo(f"  In Progress: {totals['inProgress']}")
        click.echo(f"  Resolved: {totals['resolved']}")
        click.echo(f"  Average severity: {summary['averageSeverity']}")
        click.echo(f"  High severity: {summary['highPriority']}")
        average = summary.get("averageResolutionHours")
        if average is not None:
            click.echo(f"  Average resolution: {average:.1f} h")
        if summary["monthlyTrends"]:
            click.echo("")
            click.echo("Monthly trends:")
            for trend in summary["monthlyTrends"]:
                click.echo(f"  {trend['label']}: {trend['reports']} filed, {trend['resolved']} resolved")

    run(_stats())
