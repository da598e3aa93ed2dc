"""Click CLI for inspecting webhook state and signing test payloads."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path

import click

from wa_webhook.audit.logger import chain_files, validate_audit_chain
from wa_webhook.storage.sqlite import SQLiteMessageStore
from wa_webhook.webhook.signature import compute_signature


@click.group()
def cli() -> None:
    """WhatsApp webhook pipeline tools."""


@cli.command()
@click.argument("body_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--secret", envvar="WHATSAPP_APP_SECRET", required=True, help="App secret.")
def sign(body_file: str, secret: str) -> None:
    """Print the X-Hub-Signature-256 value for a payload file."""
    click.echo(compute_signature(secret, Path(body_file).read_bytes()))


@cli.group("audit")
def audit_group() -> None:
    """Audit log utilities."""


@audit_group.command("verify")
@click.argument("log_path", type=click.Path(exists=True, dir_okay=False))
@click.pass_context
def audit_verify(ctx: click.Context, log_path: str) -> None:
    """Validate the hash chain of an audit log and its rotated backups."""
    path = Path(log_path)
    result = validate_audit_chain(path)
    if result.valid:
        click.echo(f"Audit chain valid across {len(chain_files(path))} file(s)")
        return
    broken_in = result.broken_in.name if result.broken_in else path.name
    click.echo(f"Audit chain broken at line {result.broken_at_line} of {broken_in}", err=True)
    ctx.exit(1)


@cli.group("messages")
@click.option(
    "--db", default="data/messages.db", envvar="MESSAGE_DB_PATH", help="Message database path.",
)
@click.pass_context
def messages_group(ctx: click.Context, db: str) -> None:
    """Query stored messages."""
    ctx.ensure_object(dict)
    ctx.obj["store"] = SQLiteMessageStore(db)
    ctx.call_on_close(ctx.obj["store"].close)


@messages_group.command("history")
@click.argument("customer_number")
@click.argument("phone_number_id")
@click.pass_context
def messages_history(ctx: click.Context, customer_number: str, phone_number_id: str) -> None:
    """Show the message history between a customer and a business number."""
    store: SQLiteMessageStore = ctx.obj["store"]
    records = asyncio.run(store.get_history(customer_number, phone_number_id))
    click.echo(json.dumps([r.model_dump(mode="json") for r in records], indent=2))


@messages_group.command("conversations")
@click.argument("phone_number_id")
@click.pass_context
def messages_conversations(ctx: click.Context, phone_number_id: str) -> None:
    """List conversations on a business number, most recent first."""
    store: SQLiteMessageStore = ctx.obj["store"]
    items = asyncio.run(store.get_conversations(phone_number_id))
    click.echo(json.dumps([c.model_dump(mode="json") for c in items], indent=2))


@messages_group.command("events")
@click.option("--limit", default=50, show_default=True, type=click.IntRange(min=1))
@click.pass_context
def messages_events(ctx: click.Context, limit: int) -> None:
    """Show the most recent dispatched webhook events, newest first."""
    store: SQLiteMessageStore = ctx.obj["store"]
    click.echo(json.dumps(store.list_webhook_events(limit), indent=2))
