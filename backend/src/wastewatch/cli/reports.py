"""CLI commands for waste reports.

Usage:
    wastewatch reports list [--status STATUS] [--severity 6.0] [--search TEXT]
    wastewatch reports show REPORT_ID
    wastewatch reports submit --waste-type Plastic --severity 7 --lat .. --lng .. --image photo.jpg
    wastewatch reports assign REPORT_ID [--worker WORKER_ID]
    wastewatch reports start REPORT_ID
    wastewatch reports complete REPORT_ID --notes "Cleared"
    wastewatch reports export --format csv --output reports.csv
"""

import mimetypes
from datetime import date
from pathlib import Path

import click

from ..client import extract_docs
from ..models.base import GeoLocation, ReportStatus, WasteType, Zone
from ..models.reports import ReportCreate
from ..query import SearchField
from .common import echo_json, echo_report, open_session, run

STATUS_CHOICES = ["all", *[s.value for s in ReportStatus]]
WASTE_TYPE_CHOICES = ["all", *[t.value for t in WasteType]]
ZONE_CHOICES = ["all", *[z.value for z in Zone]]


def filter_options(func):
    """Attach the shared report filter options to a command."""
    options = [
        click.option("--status", "-s", type=click.Choice(STATUS_CHOICES), help="Filter by status"),
        click.option("--waste-type", "-t", type=click.Choice(WASTE_TYPE_CHOICES), help="Filter by waste type"),
        click.option("--zone", "-z", type=click.Choice(ZONE_CHOICES), help="Filter by zone"),
        click.option("--severity", help="Minimum severity, e.g. 6.0"),
        click.option("--search", "-q", help="Search report id and phone"),
        click.option(
            "--search-by",
            type=click.Choice([f.value for f in SearchField]),
            default=SearchField.ANY.value,
            help="Field to search (default: any)",
        ),
    ]
    for option in reversed(options):
        func = option(func)
    return func


@click.group("reports")
def cli() -> None:
    """Browse, dispatch and export waste reports."""
    pass


@cli.command("list")
@filter_options
@click.option("--page", default=1, type=int, help="Page number")
@click.option("--limit", "-l", default=20, type=int, help="Reports per page")
@click.option("--sort", default="-createdAt", help="Sort key, '-' prefix for descending")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_obj
def list_reports(
    obj: dict,
    status: str | None,
    waste_type: str | None,
    zone: str | None,
    severity: str | None,
    search: str | None,
    search_by: str,
    page: int,
    limit: int,
    sort: str,
    as_json: bool,
) -> None:
    """List reports visible to the logged-in account."""

    async def _list() -> None:
        async with open_session(obj) as session:
            result = await session.client.list_reports(
                page=page,
                limit=limit,
                sort=sort,
                status=status,
                waste_type=waste_type,
                zone=zone,
                severity=severity,
                search=search,
                search_by=search_by if search is not None else None,
            )

        if as_json:
            echo_json(result)
            return

        docs = extract_docs(result)
        click.echo(f"Reports ({result['totalDocs']} total, page {result['page']}/{result['totalPages']}):")
        click.echo("")
        if not docs:
            click.echo("  No reports found")
        for report in docs:
            address = (report.get("location") or {}).get("address") or "-"
            click.echo(
                f"  {report['id']:<34} {report['status']:<12} "
                f"{report['wasteType']:<8} {report['severity']:>5}  {address}"
            )

    run(_list())


@cli.command("show")
@click.argument("report_id")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_obj
def show_report(obj: dict, report_id: str, as_json: bool) -> None:
    """Show one report."""

    async def _show() -> None:
        async with open_session(obj) as session:
            report = await session.client.get_report(report_id)
        if as_json:
            echo_json(report)
        else:
            echo_report(report)

    run(_show())


@cli.command("submit")
@click.option("--waste-type", "-t", required=True, type=click.Choice([t.value for t in WasteType]))
@click.option("--severity", required=True, type=click.FloatRange(0, 10), help="Severity 0-10")
@click.option("--lat", required=True, type=click.FloatRange(-90, 90), help="Latitude")
@click.option("--lng", required=True, type=click.FloatRange(-180, 180), help="Longitude")
@click.option("--address", help="Street address")
@click.option("--zone", "-z", type=click.Choice([z.value for z in Zone]), help="Zone")
@click.option("--description", "-d", help="What was found")
@click.option("--confidence", default=0.5, type=click.FloatRange(0, 1), help="Classifier confidence")
@click.option(
    "--image",
    "-i",
    "image_path",
    required=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Photo of the waste",
)
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_obj
def submit_report(
    obj: dict,
    waste_type: str,
    severity: float,
    lat: float,
    lng: float,
    address: str | None,
    zone: str | None,
    description: str | None,
    confidence: float,
    image_path: Path,
    as_json: bool,
) -> None:
    """File a new report with a photo."""
    payload = ReportCreate(
        waste_type=waste_type,
        severity=severity,
        confidence=confidence,
        location=GeoLocation(lat=lat, lng=lng, address=address),
        zone=zone,
        description=description,
    )
    content_type = mimetypes.guess_type(image_path.name)[0] or "application/octet-stream"

    async def _submit() -> None:
        async with open_session(obj) as session:
            report = await session.client.submit_report(
                payload,
                image_path.read_bytes(),
                filename=image_path.name,
                content_type=content_type,
            )
        if as_json:
            echo_json(report)
        else:
            click.echo(f"Submitted report: {report['id']}")
            click.echo(f"  Priority: {report['priority']}")

    run(_submit())


@cli.command("assign")
@click.argument("report_id")
@click.option("--worker", "-w", "worker_id", help="Worker id (default: pick automatically)")
@click.pass_obj
def assign_report(obj: dict, report_id: str, worker_id: str | None) -> None:
    """Assign a pending report to a worker."""

    async def _assign() -> None:
        async with open_session(obj) as session:
            board = session.open_board()
            report = await board.assign(report_id, worker_id=worker_id)
            if report is None:
                raise click.ClickException(board.error or "Assignment failed")
        click.echo(f"Report {report.id} assigned to {report.assigned_worker}")

    run(_assign())


@cli.command("start")
@click.argument("report_id")
@click.pass_obj
def start_job(obj: dict, report_id: str) -> None:
    """Mark an assigned job as In Progress."""

    async def _start() -> None:
        async with open_session(obj) as session:
            board = session.open_board()
            report = await board.start(report_id)
            if report is None:
                raise click.ClickException(board.error or "Could not start job")
        click.echo(f"Report {report.id} is {report.status.value}")

    run(_start())


@cli.command("complete")
@click.argument("report_id")
@click.option("--notes", "-n", required=True, help="Completion notes")
@click.pass_obj
def complete_job(obj: dict, report_id: str, notes: str) -> None:
    """Resolve an in-progress job."""

    async def _complete() -> None:
        async with open_session(obj) as session:
            board = session.open_board()
            report = await board.complete(report_id, notes)
            if report is None:
                raise click.ClickException(board.error or "Could not complete job")
        click.echo(f"Report {report.id} is {report.status.value}")

    run(_complete())


@cli.command("export")
@filter_options
@click.option(
    "--format",
    "-f",
    "export_format",
    type=click.Choice(["csv", "html", "json"]),
    default="csv",
    help="Export format (default: csv)",
)
@click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Output file (default: waste-reports-<date>.<format>)",
)
@click.pass_obj
def export_reports(
    obj: dict,
    status: str | None,
    waste_type: str | None,
    zone: str | None,
    severity: str | None,
    search: str | None,
    search_by: str,
    export_format: str,
    output: Path | None,
) -> None:
    """Download filtered reports as CSV, HTML or JSON."""
    output = output or Path(f"waste-reports-{date.today():%Y-%m-%d}.{export_format}")

    async def _export() -> None:
        async with open_session(obj) as session:
            content = await session.client.export_reports(
                format=export_format,
                status=status,
                waste_type=waste_type,
                zone=zone,
                severity=severity,
                search=search,
                search_by=search_by if search is not None else None,
            )
        output.write_bytes(content)
        click.echo(f"Exported to {output}")

    run(_export())
