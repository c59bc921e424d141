"""Izanami client CLI.

Usage:
    izanami events watch                          # Watch every event
    izanami events watch --projects my-project    # Filter by project
    izanami events watch --raw                    # Show the wire format
    izanami features check <feature-id>           # One activation check

Connection settings come from --config, IZANAMI_* environment variables
and the flags below, in increasing precedence.
"""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
import signal
import sys
import time
from datetime import UTC, datetime
from typing import Any

import click
import httpx

from .client import FeatureCheckClient
from .config import ClientConfig
from .errors import IzanamiError, WatchCancelledError
from .types import StreamEvent, WatchRequest


def _split(values: tuple[str, ...]) -> tuple[str, ...]:
    """Accept both repeated flags and comma-separated values."""
    return tuple(item.strip() for value in values for item in value.split(",") if item.strip())


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def _load_config(obj: dict[str, Any]) -> ClientConfig:
    try:
        config = ClientConfig.load(obj.get("config_path"), **obj.get("overrides", {}))
        config.validate_client_auth()
    except IzanamiError as e:
        raise click.UsageError(str(e)) from e
    return config


def format_event(event: StreamEvent, raw: bool = False, pretty: bool = False) -> str:
    """Render an event as SSE text (raw) or as a JSON line."""
    if raw:
        lines = []
        if event.id:
            lines.append(f"id: {event.id}")
        if event.type:
            lines.append(f"event: {event.type}")
        lines.extend(f"data: {chunk}" for chunk in event.data.split("\n"))
        return "\n".join(lines) + "\n"

    try:
        data = event.json_data()
    except ValueError:
        return event.data

    output: dict[str, Any] = {
        "timestamp": datetime.now(UTC).isoformat(timespec="seconds"),
        "event": event.type,
        "data": data,
    }
    if event.id:
        output["id"] = event.id
    return json.dumps(output, indent=2 if pretty else None, ensure_ascii=False)


@click.group()
@click.option("--config", "config_path", type=click.Path(exists=True), help="YAML config file")
@click.option("--url", "base_url", help="Izanami URL (leader)")
@click.option("--worker-url", help="Worker URL used for client API calls")
@click.option("--client-id", help="Client key id")
@click.option("--client-secret", help="Client key secret")
@click.option("--timeout", type=float, help="Request timeout in seconds")
@click.option("--verbose", "-v", is_flag=True, default=None, help="Log HTTP traffic (redacted)")
@click.pass_context
def main(
    ctx: click.Context,
    config_path: str | None,
    base_url: str | None,
    worker_url: str | None,
    client_id: str | None,
    client_secret: str | None,
    timeout: float | None,
    verbose: bool | None,
) -> None:
    """Izanami client - feature checks and live events."""
    _configure_logging(bool(verbose))
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["overrides"] = {
        "base_url": base_url,
        "worker_url": worker_url,
        "client_id": client_id,
        "client_secret": client_secret,
        "timeout": timeout,
        "verbose": verbose,
    }


# =============================================================================
# Event Commands
# =============================================================================


@main.group()
def events() -> None:
    """Watch feature flag events in real time."""


@events.command("watch")
@click.option("--user", default="", help="User the activations are evaluated for")
@click.option("--context", "context_path", default="", help="Context path, e.g. PROD")
@click.option("--features", multiple=True, help="Feature UUIDs (repeat or comma-separate)")
@click.option("--projects", multiple=True, help="Project UUIDs (repeat or comma-separate)")
@click.option("--conditions", is_flag=True, help="Include activation conditions")
@click.option("--date", default="", help="Evaluate activations at this ISO date")
@click.option("--one-tag-in", multiple=True, help="Features having at least one of these tags")
@click.option("--all-tags-in", multiple=True, help="Features having all of these tags")
@click.option("--no-tag-in", multiple=True, help="Features having none of these tags")
@click.option("--refresh-interval", default=0, help="Periodic refresh in seconds (0 = off)")
@click.option("--keep-alive-interval", default=0, help="Keep-alive interval in seconds")
@click.option("--data", "payload", default="", help="JSON payload for script features")
@click.option("--raw", is_flag=True, help="Print events in wire format")
@click.option("--pretty", is_flag=True, help="Indent JSON output")
@click.pass_obj
def events_watch(
    obj: dict[str, Any],
    user: str,
    context_path: str,
    features: tuple[str, ...],
    projects: tuple[str, ...],
    conditions: bool,
    date: str,
    one_tag_in: tuple[str, ...],
    all_tags_in: tuple[str, ...],
    no_tag_in: tuple[str, ...],
    refresh_interval: int,
    keep_alive_interval: int,
    payload: str,
    raw: bool,
    pretty: bool,
) -> None:
    """Open a persistent event stream and print events as they arrive.

    The connection reconnects automatically. Press Ctrl+C to stop.

    Examples:

        # Watch one project
        izanami events watch --projects fc5eabbd-9f4d-47ff-9e29-2341275f53ad

        # Watch with a context, pretty JSON
        izanami events watch --context PROD --pretty
    """
    config = _load_config(obj)

    if payload:
        try:
            payload = json.dumps(json.loads(payload), separators=(",", ":"))
        except ValueError as e:
            raise click.BadParameter(f"invalid JSON payload: {e}", param_hint="--data") from e

    request = WatchRequest(
        user=user,
        context=context_path,
        features=_split(features),
        projects=_split(projects),
        conditions=conditions,
        date=date,
        one_tag_in=_split(one_tag_in),
        all_tags_in=_split(all_tags_in),
        no_tag_in=_split(no_tag_in),
        refresh_interval=refresh_interval,
        keep_alive_interval=keep_alive_interval,
        payload=payload,
    )

    count = asyncio.run(_watch(config, request, raw=raw, pretty=pretty))
    click.echo(f"Received {count} event(s)", err=True)


async def _watch(config: ClientConfig, request: WatchRequest, raw: bool, pretty: bool) -> int:
    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    installed: list[signal.Signals] = []
    for sig in (signal.SIGINT, signal.SIGTERM):
        with contextlib.suppress(NotImplementedError, RuntimeError, ValueError):
            loop.add_signal_handler(sig, stop.set)
            installed.append(sig)

    count = 0

    def on_event(event: StreamEvent) -> None:
        nonlocal count
        count += 1
        click.echo(format_event(event, raw=raw, pretty=pretty))

    click.echo("Connecting to Izanami event stream...", err=True)
    click.echo("   Press Ctrl+C to stop\n", err=True)
    started = time.monotonic()
    try:
        async with FeatureCheckClient(config) as client:
            await client.watch_events(request, on_event, cancel_event=stop)
    except WatchCancelledError:
        click.echo("\nStopping event stream...", err=True)
    finally:
        for sig in installed:
            loop.remove_signal_handler(sig)
        click.echo(f"Watched for {time.monotonic() - started:.1f}s", err=True)
    return count


# =============================================================================
# Feature Commands
# =============================================================================


@main.group()
def features() -> None:
    """Feature activation checks."""


@features.command("check")
@click.argument("feature_id")
@click.option("--user", default="", help="User the activation is evaluated for")
@click.option("--context", "context_path", default="", help="Context path")
@click.option("--data", "payload", default="", help="JSON payload for script features")
@click.pass_obj
def features_check(obj: dict[str, Any], feature_id: str, user: str, context_path: str, payload: str) -> None:
    """Check whether FEATURE_ID is active."""
    config = _load_config(obj)

    async def run() -> dict[str, Any]:
        async with FeatureCheckClient(config) as client:
            return await client.check_feature(feature_id, user=user, context=context_path, payload=payload)

    try:
        result = asyncio.run(run())
    except (IzanamiError, httpx.HTTPError) as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    click.echo(json.dumps(result, indent=2, ensure_ascii=False))
