"""CLI entry point for the fanpass ticketing backend."""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from typing import Any, Awaitable, Callable

import click

from fanpass.app import TicketingApp
from fanpass.config import load_config
from fanpass.errors import TicketingError
from fanpass.models.config import AppConfig
from fanpass.models.entities import to_dict

log = logging.getLogger(__name__)


def _echo_json(data: Any) -> None:
    if isinstance(data, list):
        data = [to_dict(item) for item in data]
    elif hasattr(data, "to_dict"):
        data = data.to_dict()
    elif not isinstance(data, dict):
        data = to_dict(data)
    click.echo(json.dumps(data, indent=2))


def _fail(exc: TicketingError) -> None:
    click.echo(f"Error [{exc.code}]: {exc.message}", err=True)
    if exc.details:
        click.echo(f"  {exc.details}", err=True)
    sys.exit(1)


def _load(ctx: click.Context) -> AppConfig:
    try:
        cfg = load_config(ctx.obj["config_path"])
    except TicketingError as exc:
        _fail(exc)
    if not ctx.obj["verbose"]:
        logging.getLogger().setLevel(cfg.log_level.upper())
    return cfg


def _run(ctx: click.Context, op: Callable[[TicketingApp], Awaitable[Any]]) -> None:
    """Build the app, run one operation against it, print the result as JSON."""
    cfg = _load(ctx)

    async def _inner():
        async with TicketingApp(cfg) as app:
            return await op(app)

    try:
        result = asyncio.run(_inner())
    except TicketingError as exc:
        _fail(exc)
    except Exception:
        log.error("Unexpected failure", exc_info=True)
        raise
    _echo_json(result)


@click.group()
@click.option("-c", "--config", "config_path", default=None, help="Path to config TOML file")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, config_path: str | None, verbose: bool) -> None:
    """fanpass - Event ticketing with atomic inventory and fan credentials."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["verbose"] = verbose

    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


# ── Info ───────────────────────────────────────────────


@cli.command()
@click.pass_context
def status(ctx: click.Context) -> None:
    """Show backend configuration."""
    cfg = _load(ctx)
    click.echo(f"Storage:    {cfg.storage_backend.value}")
    click.echo(f"DB path:    {cfg.db_path}")
    click.echo(f"Issuance:   {cfg.issuance.api_url}")
    click.echo(f"Program:    {cfg.issuance.program_id}")
    click.echo(f"Issuer DID: {cfg.issuance.issuer_did}")
    click.echo(f"Partner:    {cfg.auth.partner_id or '(not set)'}")
    click.echo(f"Key ID:     {cfg.auth.key_id}")
    click.echo(f"Signing key: {'***configured***' if cfg.auth.private_key else '(not set)'}")


# ── Users ──────────────────────────────────────────────


@cli.command()
@click.argument("wallet_address")
@click.option("--moca-id", default=None, help="Identity-provider id to link to the wallet")
@click.pass_context
def connect(ctx: click.Context, wallet_address: str, moca_id: str | None) -> None:
    """Get or create the user behind a wallet address."""

    async def _connect(app: TicketingApp):
        user = await app.service.connect_wallet(wallet_address, moca_id)
        return {"user": to_dict(user)}

    _run(ctx, _connect)


@cli.command()
@click.argument("user_id", required=False)
@click.option("--wallet", default=None, help="Look the user up by wallet address instead")
@click.pass_context
def user(ctx: click.Context, user_id: str | None, wallet: str | None) -> None:
    """Show a user by id or wallet address."""
    if not user_id and not wallet:
        raise click.UsageError("Give a USER_ID or --wallet")

    async def _user(app: TicketingApp):
        if wallet:
            return await app.service.get_user_by_wallet(wallet)
        return await app.service.get_user(user_id)

    _run(ctx, _user)


# ── Events ─────────────────────────────────────────────


@cli.group()
def events() -> None:
    """Create, update and browse events."""


@events.command("list")
@click.pass_context
def events_list(ctx: click.Context) -> None:
    """List all events, most recent event date first."""
    _run(ctx, lambda app: app.service.list_events())


@events.command("show")
@click.argument("event_id")
@click.pass_context
def events_show(ctx: click.Context, event_id: str) -> None:
    """Show one event."""
    _run(ctx, lambda app: app.service.get_event(event_id))


@events.command("create")
@click.option("--title", required=True)
@click.option("--artist", "artist_name", required=True)
@click.option("--venue", required=True)
@click.option("--date", "event_date", required=True, help="ISO-8601 date or datetime")
@click.option("--price", "ticket_price", type=int, required=True, help="Ticket price in minor units")
@click.option("--max-tickets", type=int, required=True)
@click.option("--description", default=None)
@click.option("--image-url", default=None)
@click.option("--created-by", default=None, help="Creator user id")
@click.pass_context
def events_create(ctx: click.Context, **fields: Any) -> None:
    """Create an event with zero tickets sold."""
    data = {k: v for k, v in fields.items() if v is not None}
    _run(ctx, lambda app: app.service.create_event(data))


@events.command("update")
@click.argument("event_id")
@click.option("--title", default=None)
@click.option("--description", default=None)
@click.option("--venue", default=None)
@click.option("--date", "event_date", default=None)
@click.option("--price", "ticket_price", type=int, default=None)
@click.option("--image-url", default=None)
@click.option("--contract-address", default=None)
@click.pass_context
def events_update(ctx: click.Context, event_id: str, **fields: Any) -> None:
    """Change selected fields of an event."""
    data = {k: v for k, v in fields.items() if v is not None}
    if not data:
        raise click.UsageError("Nothing to update")
    _run(ctx, lambda app: app.service.update_event(event_id, data))


# ── Tickets ────────────────────────────────────────────


@cli.command()
@click.argument("event_id")
@click.argument("user_id")
@click.argument("user_did")
@click.pass_context
def purchase(ctx: click.Context, event_id: str, user_id: str, user_did: str) -> None:
    """Buy one ticket and print the credential subject ready for issuance."""
    _run(ctx, lambda app: app.service.purchase_ticket(event_id, user_id, user_did))


@cli.command()
@click.argument("ticket_id")
@click.pass_context
def redeem(ctx: click.Context, ticket_id: str) -> None:
    """Mark a ticket as used at the door."""
    _run(ctx, lambda app: app.service.redeem_ticket(ticket_id))


@cli.group()
def tickets() -> None:
    """List tickets by owner or event."""


@tickets.command("user")
@click.argument("user_id")
@click.pass_context
def tickets_user(ctx: click.Context, user_id: str) -> None:
    _run(ctx, lambda app: app.service.tickets_for_user(user_id))


@tickets.command("event")
@click.argument("event_id")
@click.pass_context
def tickets_event(ctx: click.Context, event_id: str) -> None:
    _run(ctx, lambda app: app.service.tickets_for_event(event_id))


# ── Credentials ────────────────────────────────────────


@cli.group()
def credentials() -> None:
    """Record and verify fan credentials."""


@credentials.command("record")
@click.argument("user_id")
@click.argument("artist_name")
@click.argument("credential_type")
@click.option("--data", "credential_data", default=None, help="Opaque JSON payload")
@click.pass_context
def credentials_record(
    ctx: click.Context, user_id: str, artist_name: str, credential_type: str, credential_data: str | None,
) -> None:
    """Record a credential and award reputation to the user."""
    data = {
        "user_id": user_id,
        "artist_name": artist_name,
        "credential_type": credential_type,
        "credential_data": credential_data,
    }
    _run(ctx, lambda app: app.service.record_credential(data))


@credentials.command("verify")
@click.argument("user_id")
@click.argument("artist_name")
@click.argument("credential_type")
@click.pass_context
def credentials_verify(ctx: click.Context, user_id: str, artist_name: str, credential_type: str) -> None:
    """Check whether a user holds a credential for an artist."""

    async def _verify(app: TicketingApp):
        verified = await app.service.verify_credential(user_id, artist_name, credential_type)
        return {"verified": verified}

    _run(ctx, _verify)


@credentials.command("list")
@click.argument("user_id")
@click.pass_context
def credentials_list(ctx: click.Context, user_id: str) -> None:
    _run(ctx, lambda app: app.service.credentials_for_user(user_id))


# ── Issuance ───────────────────────────────────────────


@cli.command()
@click.option("--partner-id", default=None, help="Defaults to the configured partner id")
@click.pass_context
def token(ctx: click.Context, partner_id: str | None) -> None:
    """Mint a signed authorization token for the issuance service."""

    async def _token(app: TicketingApp):
        return {"token": app.service.issue_auth_token(partner_id)}

    _run(ctx, _token)


@cli.command()
@click.argument("ticket_id")
@click.pass_context
def issue(ctx: click.Context, ticket_id: str) -> None:
    """Issue (or retry issuing) the credential for a purchased ticket."""
    _run(ctx, lambda app: app.service.issue_ticket_credential(ticket_id))


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
