"""mailchime command-line interface."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Annotated, NoReturn

import typer

from . import __version__
from .allowlists import AllowListError, load_allow_lists
from .classifier import classify as classify_message
from .classifier import message_age_seconds
from .config import Config, ConfigError, load_config, resolve_config_path
from .envelope import EnvelopeError, decode_header_value, parse_date
from .logging import configure_logging
from .runtime import build_connection_manager
from .types import AllowLists, CandidateMessage

app = typer.Typer(help="Watch an IMAP mailbox and chime for mail from trusted senders.")
LOGGER = logging.getLogger(__name__)


@dataclass
class CLIState:
    """Stores shared CLI options."""

    config_path: Path | None
    dry_run: bool = False


@app.callback()
def _mailchime(
    ctx: typer.Context,
    config: Annotated[
        Path | None,
        typer.Option(
            "-c",
            "--config",
            help="Path to config (env MAILCHIME_CONFIG or ~/.config/mailchime/config.yaml).",
        ),
    ] = None,
    dry_run: Annotated[
        bool,
        typer.Option(
            "--dry-run",
            help="Log matches without moving mail or playing sounds.",
        ),
    ] = False,
) -> None:
    """Capture global CLI options."""

    resolved = config.expanduser() if config else None
    ctx.obj = CLIState(config_path=resolved, dry_run=dry_run)


@app.command()
def watch(ctx: typer.Context) -> None:
    """Watch the mailbox in the foreground until interrupted."""

    state = _state(ctx)
    config = _load_config(state.config_path)
    configure_logging(config.logging, config.root_dir)
    LOGGER.info(
        "mailchime %s watching %s on %s:%s (refresh %ss, expiration %ss)%s",
        __version__,
        config.mailbox,
        config.server,
        config.port,
        config.refresh_rate,
        config.mail_expiration_secs,
        " [dry-run]" if state.dry_run else "",
    )
    manager = build_connection_manager(config, dry_run=state.dry_run)
    manager.run()


@app.command()
def classify(
    ctx: typer.Context,
    sender: Annotated[str, typer.Option("--sender", "-s", help="Sender display name.")],
    subject: Annotated[str, typer.Option("--subject", help="Message subject.")],
    date: Annotated[
        str | None,
        typer.Option("--date", help="RFC 2822 date (defaults to now)."),
    ] = None,
) -> None:
    """Classify a sender/subject pair against the current allow-lists."""

    state = _state(ctx)
    config = _load_config(state.config_path)
    configure_logging(config.logging, config.root_dir, log_to_file=False)
    now = datetime.now(timezone.utc)
    sent = now if date is None else _parse_date(date)
    candidate = CandidateMessage(
        uid=0,
        sender=decode_header_value(sender),
        subject=decode_header_value(subject),
        date=sent,
    )
    allow_lists = _load_lists(config)
    result = classify_message(candidate, allow_lists, config.mail_expiration_secs, now)

    typer.echo(f"Sender: {candidate.sender}")
    typer.echo(f"Subject: {candidate.subject}")
    typer.echo(f"Age: {message_age_seconds(sent, now)}s (limit {config.mail_expiration_secs}s)")
    typer.echo("Decision:")
    typer.echo(f"  allowed: {_yes_no(result.allowed)}")
    typer.echo(f"  triggering: {_yes_no(result.triggering)}")
    typer.echo(f"  stale: {_yes_no(result.stale)}")
    if result.actionable:
        action = f"move to {config.target_folder}"
        if not result.stale:
            action += " and play sound"
    else:
        action = "leave in place"
    typer.echo(f"  action: {action}")


@app.command("lists")
def show_lists(ctx: typer.Context) -> None:
    """Print the allow-lists as they are read right now."""

    state = _state(ctx)
    config = _load_config(state.config_path)
    allow_lists = _load_lists(config)
    typer.echo(f"Config path: {resolve_config_path(state.config_path)}")
    typer.echo(f"Trusted senders ({config.allowed_senders}):")
    for entry in allow_lists.senders:
        typer.echo(f"  - {entry}")
    typer.echo(f"Trigger subjects ({config.triggering_subjects}):")
    for entry in allow_lists.subjects:
        typer.echo(f"  - {entry}")


def _state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        raise RuntimeError("CLI state missing from context.")
    return state


def _load_config(path: Path | None) -> Config:
    try:
        return load_config(path)
    except ConfigError as exc:
        _config_failure(exc)


def _config_failure(exc: ConfigError) -> NoReturn:
    typer.secho(f"Configuration error: {exc}", fg=typer.colors.RED, err=True)
    raise typer.Exit(2) from exc


def _load_lists(config: Config) -> AllowLists:
    try:
        return load_allow_lists(config)
    except AllowListError as exc:
        typer.secho(f"Allow-list error: {exc}", fg=typer.colors.RED, err=True)
        raise typer.Exit(1) from exc


def _parse_date(value: str) -> datetime:
    try:
        return parse_date(value)
    except EnvelopeError as exc:
        typer.secho(str(exc), fg=typer.colors.RED, err=True)
        raise typer.Exit(1) from exc


def _yes_no(value: bool) -> str:
    return "yes" if value else "no"


def main() -> None:  # pragma: no cover - delegated to Typer
    app()


__all__ = ["app", "main"]
