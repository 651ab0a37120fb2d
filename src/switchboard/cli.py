"""
Switchboard CLI

Command-line interface for the chat gateway.

Commands:
    switchboard serve                 — Start API server
    switchboard models                — List credentialed models
    switchboard chat "message"        — Stream one answer to stdout
    switchboard status                — Show configuration status

Usage:
    switchboard chat --model groq/llama-3.3-70b-versatile "Rename this variable"
"""

from __future__ import annotations

import asyncio
import json
import os
import sys

import click

from switchboard import __version__
from switchboard.credentials import ENV_KEYS


@click.group()
@click.version_option(version=__version__, prog_name="switchboard")
def cli() -> None:
    """Switchboard — Multi-Provider Streaming Chat Gateway"""
    from switchboard.config import GatewaySettings
    from switchboard.logging import configure_logging

    settings = GatewaySettings.from_env()
    configure_logging(level=settings.log_level, json_output=settings.log_json)


@cli.command()
@click.option("--host", default="0.0.0.0", help="Bind address")
@click.option("--port", default=8000, type=int, help="Port number")
@click.option("--reload", is_flag=True, help="Auto-reload on changes")
def serve(host: str, port: int, reload: bool) -> None:
    """Start the Switchboard API server."""
    import uvicorn

    _print_header("Switchboard API Server")
    click.echo(f"  Binding: {host}:{port}")
    click.echo(f"  Reload: {'enabled' if reload else 'disabled'}")
    click.echo()

    uvicorn.run(
        "switchboard.api.server:app",
        host=host,
        port=port,
        reload=reload,
    )


@cli.command()
@click.option("--json-output", is_flag=True, help="Output as JSON")
def models(json_output: bool) -> None:
    """List models whose provider has a credential."""
    from switchboard.providers import create_registry

    available = create_registry().available_models()
    if json_output:
        click.echo(json.dumps({"models": available}, indent=2))
        return

    _print_header("Available Models")
    if not available:
        click.echo("  No provider credentials configured.")
        return
    for entry in available:
        click.echo(f"  {entry['id']}")


@cli.command()
@click.argument("message")
@click.option("--model", "-m", default=None, help='Model, "provider/model", or "auto"')
@click.option("--system", default=None, help="Override the system prompt")
@click.option("--no-stream", is_flag=True, help="Wait for the complete answer")
def chat(message: str, model: str | None, system: str | None, no_stream: bool) -> None:
    """Send one message and print the answer."""
    exit_code = asyncio.run(_chat(message, model, system, no_stream))
    sys.exit(exit_code)


async def _chat(message: str, model: str | None, system: str | None, no_stream: bool) -> int:
    from switchboard.config import GatewaySettings
    from switchboard.exceptions import SwitchboardError
    from switchboard.gateway import ChatGateway
    from switchboard.providers import Message, Role, create_registry
    from switchboard.streaming.events import StreamError, TextDelta

    gateway = ChatGateway(create_registry(), settings=GatewaySettings.from_env())
    turns = [Message(role=Role.USER, content=message)]
    try:
        if no_stream:
            result = await gateway.complete(turns, model=model, system_prompt=system)
            click.echo(result.response)
            click.echo(f"\n  [{result.model}]", err=True)
            return 0

        label = None
        async for event in gateway.stream(turns, model=model, system_prompt=system):
            if isinstance(event, TextDelta):
                label = event.source or label
                click.echo(event.text, nl=False)
            elif isinstance(event, StreamError):
                click.echo(f"\n  Error: {event.message}", err=True)
                return 1
        click.echo()
        if label:
            click.echo(f"  [{label}]", err=True)
        return 0
    except SwitchboardError as e:
        click.echo(f"  Error: {e.message}", err=True)
        return 1
    finally:
        await gateway.aclose()


@cli.command()
def status() -> None:
    """Show Switchboard status and configuration."""
    from switchboard.config import GatewaySettings

    settings = GatewaySettings.from_env()

    _print_header("Switchboard Status")
    click.echo(f"  Version: {__version__}")
    click.echo(f"  Python: {sys.version.split()[0]}")
    click.echo(f"  Fallback: {settings.fallback_model or 'disabled'}")
    click.echo(f"  Timeout: {settings.timeout_seconds:g}s")

    click.echo("\n  Credentials:")
    for provider_id, env_vars in ENV_KEYS.items():
        for var in env_vars:
            value = os.environ.get(var)
            if value:
                masked = value[:4] + "..." + value[-4:] if len(value) > 10 else "***"
                click.echo(f"    {provider_id:10s} {var:20s} {masked}")
            else:
                click.echo(f"    {provider_id:10s} {var:20s} NOT SET")


def _print_header(title: str) -> None:
    """Print a formatted header."""
    click.echo(f"\n  {'=' * 60}")
    click.echo(f"  {title}")
    click.echo(f"  {'=' * 60}\n")


if __name__ == "__main__":
    cli()
