"""Shared helpers for MyTube CLI commands."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import NoReturn, TypeVar

import click
from rich.console import Console
from rich.table import Table

from mytube.client.session import ClientSession, open_session
from mytube.config import AppSettings, load_settings
from mytube.formatting import format_count, format_duration, format_relative_time
from mytube.logging_config import configure_application_logging
from mytube.models.video import Video

console = Console()

T = TypeVar("T")


def load_cli_settings() -> AppSettings:
    settings = load_settings()
    configure_application_logging(settings, component="cli")
    return settings


def run_in_session(
    settings: AppSettings,
    operation: Callable[[ClientSession], Awaitable[T]],
    *,
    language: str | None = None,
) -> T:
    """Open a session, load both stores, run `operation`, then flush pending writes."""

    async def _run() -> T:
        session = open_session(settings, language=language)
        await session.load()
        try:
            return await operation(session)
        finally:
            await session.close()

    return asyncio.run(_run())


def render_queue(videos: list[Video], current: Video | None) -> Table:
    table = Table(show_lines=False)
    table.add_column("#", justify="right", style="dim")
    table.add_column("Title")
    table.add_column("Channel", style="cyan")
    table.add_column("Length", justify="right")
    table.add_column("Views", justify="right")
    table.add_column("Published", style="dim")
    table.add_column("ID", style="dim")

    for index, video in enumerate(videos, 1):
        is_current = current is not None and video.id == current.id
        marker = "[bold green]>[/bold green] " if is_current else ""
        table.add_row(
            str(index),
            f"{marker}{video.title}",
            video.channel_name,
            format_duration(video.duration),
            format_count(video.view_count),
            format_relative_time(video.published_at),
            video.id,
        )
    return table


def abort(message: str) -> NoReturn:
    console.print(f"[red]{message}[/red]")
    raise click.exceptions.Exit(1)
