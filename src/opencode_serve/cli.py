"""OpenCode client CLI.

Talks to a running ``opencode serve`` instance.

Usage:
    opencode-serve ping                          # Check the server is reachable
    opencode-serve sessions                      # List sessions
    opencode-serve chat "Explain main.py"        # One-shot chat in a scratch session
    opencode-serve chat "Fix it" --keep          # Keep the session afterwards
    opencode-serve events --session ses_abc123   # Tail the event stream

The server URL defaults to OPENCODE_BASE_URL or http://localhost:9123.
"""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
import sys
from collections.abc import AsyncIterator, Callable, Coroutine
from datetime import datetime
from typing import Any

import click

from .client import OpenCodeClient, parse_model_ref
from .config import OpenCodeClientOptions
from .exceptions import OpenCodeError
from .models.resources import HealthCheckResult
from .streaming import MessageUpdate

# Output format options
FORMAT_TABLE = "table"
FORMAT_JSON = "json"

ClientFactory = Callable[[OpenCodeClientOptions], OpenCodeClient]


def format_datetime(dt: datetime | None) -> str:
    """Format datetime for display."""
    if dt is None:
        return "N/A"
    return dt.strftime("%Y-%m-%d %H:%M")


def truncate(text: str | None, max_len: int = 50) -> str:
    """Truncate text for display."""
    if not text:
        return ""
    if len(text) <= max_len:
        return text
    return text[: max_len - 3] + "..."


def _run(coro: Coroutine[Any, Any, Any]) -> Any:
    """Run a command coroutine, reporting client errors and exiting 1."""
    try:
        return asyncio.run(coro)
    except OpenCodeError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


def _client(ctx: click.Context) -> OpenCodeClient:
    factory: ClientFactory = ctx.obj["client_factory"]
    return factory(ctx.obj["options"])


@click.group()
@click.option("--url", "base_url", default=None, help="OpenCode server URL")
@click.option("--directory", "-d", default=None, help="Working directory sent with each request")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.pass_context
def main(ctx: click.Context, base_url: str | None, directory: str | None, verbose: bool) -> None:
    """OpenCode client - talk to an OpenCode server from the terminal."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        options = OpenCodeClientOptions.from_env(base_url=base_url, directory=directory)
    except ValueError as e:
        raise click.UsageError(str(e)) from e

    ctx.ensure_object(dict)
    ctx.obj["options"] = options
    ctx.obj.setdefault("client_factory", OpenCodeClient)


@main.command()
@click.pass_context
def ping(ctx: click.Context) -> None:
    """Check that the server is reachable."""
    client = _client(ctx)

    async def run() -> HealthCheckResult:
        async with client:
            return await client.health_check()

    result = _run(run())
    if not result.healthy:
        click.echo(f"Unreachable: {result.error}", err=True)
        sys.exit(1)
    click.echo(f"OK {client.options.base_url} ({result.latency_ms:.1f} ms)")


@main.command()
@click.option("--limit", "-n", default=20, help="Maximum sessions to show")
@click.option(
    "--format",
    "-f",
    "output_format",
    type=click.Choice([FORMAT_TABLE, FORMAT_JSON]),
    default=FORMAT_TABLE,
    help="Output format",
)
@click.pass_context
def sessions(ctx: click.Context, limit: int, output_format: str) -> None:
    """List sessions.

    Examples:

        # Most recent sessions
        opencode-serve sessions

        # JSON output for scripting
        opencode-serve sessions --format json
    """
    client = _client(ctx)

    async def run() -> None:
        async with client:
            items = await client.session.list(limit=limit)

        if output_format == FORMAT_JSON:
            click.echo(json.dumps([s.to_wire() for s in items], indent=2, ensure_ascii=False))
            return

        if not items:
            click.echo("No sessions found.")
            return

        click.echo(f"{'ID':<32} {'Title':<30} {'Updated':<17}")
        click.echo("-" * 81)
        for s in items:
            updated = format_datetime(s.updated_at or s.created_at)
            click.echo(f"{truncate(s.id, 32):<32} {truncate(s.title, 30):<30} {updated:<17}")
        click.echo(f"\nTotal: {len(items)} session(s)")

    _run(run())


async def _echo_stream(updates: AsyncIterator[MessageUpdate]) -> None:
    async for update in updates:
        if update.delta:
            click.echo(update.delta, nl=False)
    click.echo()


@main.command()
@click.argument("message")
@click.option("--model", "-m", default=None, help="Model as provider/model")
@click.option("--agent", default=None, help="Agent to answer with")
@click.option("--title", default=None, help="Session title")
@click.option("--keep", is_flag=True, help="Keep the session instead of deleting it")
@click.pass_context
def chat(
    ctx: click.Context,
    message: str,
    model: str | None,
    agent: str | None,
    title: str | None,
    keep: bool,
) -> None:
    """Send MESSAGE and stream the reply.

    Runs in a scratch session that is deleted afterwards unless --keep
    is given.

    Examples:

        opencode-serve chat "What does this project do?"
        opencode-serve chat "Add tests" -m anthropic/claude-sonnet-4 --keep
    """
    try:
        model_ref = parse_model_ref(model)
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="--model") from e

    client = _client(ctx)

    async def run() -> None:
        async with client:
            if keep:
                session = await client.session.create(title=title)
                await _echo_stream(
                    client.message.stream(session.id, message, model=model_ref, agent=agent)
                )
                click.echo(f"Session: {session.id}", err=True)
                return

            async with client.session.scope(title=title) as scope:
                await _echo_stream(scope.stream(message, model=model_ref, agent=agent))

    _run(run())


@main.command()
@click.option("--session", "session_id", default=None, help="Only show events for this session")
@click.option("--count", "-c", type=int, default=None, help="Stop after this many events")
@click.option("--json", "output_json", is_flag=True, help="Print each event as JSON")
@click.pass_context
def events(
    ctx: click.Context, session_id: str | None, count: int | None, output_json: bool
) -> None:
    """Print server events as they arrive."""
    client = _client(ctx)

    async def run() -> None:
        seen = 0
        async with client, contextlib.aclosing(client.event.subscribe()) as stream:
            async for event in stream:
                if session_id and event.session_id != session_id:
                    continue
                if output_json:
                    click.echo(json.dumps(event.to_wire(), ensure_ascii=False, default=str))
                else:
                    click.echo(f"{event.type:<28} {event.session_id or '-'}")
                seen += 1
                if count is not None and seen >= count:
                    break

    _run(run())


if __name__ == "__main__":
    main()
