from __future__ import annotations

import json
from pathlib import Path
from typing import NoReturn, Optional

import typer
import uvicorn

from . import __version__
from .core.config import ConfigError, RouterConfig, load_config
from .core.logging_utils import setup_logging
from .integrations.chat.turn_policy import AddressingContext
from .router.intents import classify_play_argument, parse_intent
from .router.registry import HandlerRegistrationError
from .runtime import build_app, build_runtime

app = typer.Typer(add_completion=False, help="Chat-driven command router for a media backend.")


def raise_exit(message: str, *, cause: Optional[BaseException] = None) -> NoReturn:
    typer.echo(message, err=True)
    if cause is not None:
        raise typer.Exit(code=1) from cause
    raise typer.Exit(code=1)


def require_config(path: Optional[Path]) -> RouterConfig:
    try:
        return load_config(path)
    except ConfigError as exc:
        raise_exit(f"Invalid configuration: {exc}", cause=exc)


def _version_callback(value: bool) -> None:
    if not value:
        return
    typer.echo(f"media-router {__version__}")
    raise typer.Exit(code=0)


@app.callback()
def _root(
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show the version and exit.",
    ),
) -> None:
    return


@app.command("serve")
def serve(
    path: Optional[Path] = typer.Option(None, "--path", help="Project root with .env/media-router.yml"),
    host: Optional[str] = typer.Option(None, "--host", help="Host to bind"),
    port: Optional[int] = typer.Option(None, "--port", help="Port to bind"),
) -> None:
    """Run the webhook server that receives bridge events."""

    config = require_config(path)
    logger = setup_logging(config.log)
    try:
        runtime = build_runtime(config, logger=logger)
    except HandlerRegistrationError as exc:
        raise_exit(f"Failed to load handlers: {exc}", cause=exc)
    bind_host = host or config.server.host
    bind_port = port or config.server.port
    typer.echo(f"Serving media-router webhook on http://{bind_host}:{bind_port}/events")
    uvicorn.run(
        build_app(runtime),
        host=bind_host,
        port=bind_port,
        log_level=config.log.level,
    )


@app.command("parse")
def parse(
    text: str = typer.Argument(..., help="Message text to classify"),
    group: bool = typer.Option(False, "--group", help="Treat as a group message"),
    mentioned: bool = typer.Option(
        False, "--mentioned", help="Group message mentions the bot"
    ),
) -> None:
    """Print the intent a message would be routed to."""

    intent = parse_intent(text, AddressingContext(is_group=group, bot_mentioned=mentioned))
    payload: dict[str, object] = {"intent": intent.name, "argument": intent.argument}
    if intent.name == "play" and intent.argument:
        target = classify_play_argument(intent.argument)
        payload["target"] = {"kind": target.kind, "value": target.value}
    typer.echo(json.dumps(payload, ensure_ascii=False))


@app.command("check")
def check(
    path: Optional[Path] = typer.Option(None, "--path", help="Project root with .env/media-router.yml"),
) -> None:
    """Validate configuration and print it with secrets masked."""

    config = require_config(path)
    typer.echo(json.dumps(config.redacted(), indent=2, ensure_ascii=False))
    handlers = ["assistant"] if config.assistant.enabled else []
    handlers.extend(config.handler_plugins)
    typer.echo(f"handlers: {', '.join(handlers) if handlers else '(none)'}")


def main() -> None:
    """Entrypoint for CLI execution."""
    app()
