"""Shared helpers for CLI commands."""

import asyncio
import json
from collections.abc import AsyncIterator, Coroutine
from contextlib import asynccontextmanager
from typing import Any

import click

from ..client import ClientSession, ServerError, TokenStore, TransportError, WasteApiClient


@asynccontextmanager
async def open_session(obj: dict, require_login: bool = True) -> AsyncIterator[ClientSession]:
    """Client session built from the group options.

    Raises:
        click.ClickException: If login is required and no valid token is stored
    """
    async with WasteApiClient(base_url=obj.get("api_url"), transport=obj.get("transport")) as client:
        session = ClientSession(client, TokenStore(obj.get("token_file")))
        if require_login and await session.resume() is None:
            raise click.ClickException("Not logged in. Run 'wastewatch login' first.")
        yield session


def run(coro: Coroutine) -> Any:
    """Run a command coroutine, turning API failures into CLI errors."""
    try:
        return asyncio.run(coro)
    except ServerError as e:
        raise click.ClickException(f"{e.message} (HTTP {e.status_code})")
    except TransportError as e:
        raise click.ClickException(str(e))


def echo_json(data: Any) -> None:
    click.echo(json.dumps(data, indent=2))


def echo_report(report: dict) -> None:
    location = report.get("location") or {}
    click.echo(f"Report: {report['id']}")
    click.echo(f"  Status: {report['status']}")
    click.echo(f"  Type: {report['wasteType']}  Severity: {report['severity']} ({report.get('severityLevel')})")
    click.echo(f"  Priority: {report.get('priority')}  Urgent: {report.get('isUrgent')}")
    click.echo(f"  Reporter: {report['citizenName']} {report['citizenPhone']}")
    click.echo(f"  Address: {location.get('address') or '-'}")
    if report.get("zone"):
        click.echo(f"  Zone: {report['zone']}")
    if report.get("assignedWorker"):
        click.echo(f"  Worker: {report['assignedWorker']} ({report.get('assignedWorkerId')})")
    if report.get("completionNotes"):
        click.echo(f"  Notes: {report['completionNotes']}")
    click.echo(f"  Created: {report['createdAt']}")
