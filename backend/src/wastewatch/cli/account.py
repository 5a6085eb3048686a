"""CLI commands for accounts: login, logout, register, whoami, profile, change-password."""

import click
from pydantic import ValidationError

from ..client import RegistrationForm
from ..models.base import Zone
from ..models.users import Role
from .common import echo_json, open_session, run


@click.command("login")
@click.option("--email", "-e", prompt=True, help="Account email")
@click.option("--password", "-p", prompt=True, hide_input=True, help="Account password")
@click.pass_obj
def login(obj: dict, email: str, password: str) -> None:
    """Log in and store the token for later commands."""

    async def _login() -> None:
        async with open_session(obj, require_login=False) as session:
            user = await session.login(email, password)
            click.echo(f"Logged in as {user['name']} ({user['role']})")

    run(_login())


@click.command("register")
@click.option("--name", "-n", prompt=True, help="Full name")
@click.option("--email", "-e", prompt=True, help="Email address")
@click.option("--phone", prompt=True, help="Phone number")
@click.option(
    "--password",
    prompt=True,
    hide_input=True,
    confirmation_prompt=False,
    help="Password (at least 6 characters)",
)
@click.option("--confirm-password", prompt=True, hide_input=True, help="Repeat the password")
@click.option(
    "--role",
    type=click.Choice([Role.CITIZEN.value, Role.WORKER.value]),
    default=Role.CITIZEN.value,
    help="Account role",
)
@click.option("--zone", type=click.Choice([z.value for z in Zone]), help="Zone (workers only)")
@click.pass_obj
def register(
    obj: dict,
    name: str,
    email: str,
    phone: str,
    password: str,
    confirm_password: str,
    role: str,
    zone: str | None,
) -> None:
    """Create an account and log into it."""
    try:
        form = RegistrationForm(
            name=name,
            email=email,
            phone=phone,
            password=password,
            confirm_password=confirm_password,
            role=role,
            zone=zone,
        )
    except ValidationError as e:
        messages = "; ".join(error["msg"].removeprefix("Value error, ") for error in e.errors())
        raise click.BadParameter(messages)

    async def _register() -> None:
        async with open_session(obj, require_login=False) as session:
            user = await session.register(form)
            click.echo(f"Registered {user['name']} ({user['role']})")

    run(_register())


@click.command("logout")
@click.pass_obj
def logout(obj: dict) -> None:
    """Revoke the stored token."""

    async def _logout() -> None:
        async with open_session(obj, require_login=False) as session:
            if await session.resume() is None:
                click.echo("Not logged in")
                return
            await session.logout()
            click.echo("Logged out")

    run(_logout())


@click.command("whoami")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_obj
def whoami(obj: dict, as_json: bool) -> None:
    """Show the logged-in account."""

    async def _whoami() -> None:
        async with open_session(obj) as session:
            user = session.user
            if as_json:
                echo_json(user)
            else:
                click.echo(f"{user['name']} <{user['email']}>")
                click.echo(f"  Role: {user['role']}")
                click.echo(f"  Phone: {user['phone']}")

    run(_whoami())


@click.command("profile")
@click.option("--name", "-n", help="New display name")
@click.option("--phone", help="New phone number")
@click.pass_obj
def profile(obj: dict, name: str | None, phone: str | None) -> None:
    """Change the logged-in account's name or phone."""
    if name is None and phone is None:
        raise click.UsageError("Give --name and/or --phone")

    async def _profile() -> None:
        async with open_session(obj) as session:
            user = await session.update_profile(name=name, phone=phone)
            click.echo(f"Updated {user['name']} ({user['phone']})")

    run(_profile())


@click.command("change-password")
@click.option("--current-password", prompt=True, hide_input=True, help="Current password")
@click.option(
    "--new-password",
    prompt=True,
    hide_input=True,
    confirmation_prompt=True,
    help="New password (at least 6 characters)",
)
@click.pass_obj
def change_password(obj: dict, current_password: str, new_password: str) -> None:
    """Change the logged-in account's password."""
    if len(new_password) < 6:
        raise click.BadParameter("Password must be at least 6 characters", param_hint="--new-password")

    async def _change_password() -> None:
        async with open_session(obj) as session:
            await session.change_password(current_password, new_password)
            click.echo("Password changed")

    run(_change_password())
