"""History and skip-list commands for the MyTube CLI."""

from __future__ import annotations

import click

from mytube.client.session import ClientSession
from mytube.commands.common import console, load_cli_settings, run_in_session
from mytube.repositories.search_history_repository import HistoryTier


@click.group()
def history():
    """Show or edit search history."""
    pass


@history.command(name="list")
def list_history():
    """List recent searches."""
    settings = load_cli_settings()

    async def _list(session: ClientSession) -> None:
        source = "account" if session.authenticated else "this device"
        console.print(f"\n[bold]RECENT SEARCHES[/bold] [dim]({source})[/dim]")
        _print_items(session.history.full_history)
        if session.authenticated:
            console.print("\n[bold]RECENT TERMS[/bold]")
            _print_items(session.history.single_history)
        console.print()

    run_in_session(settings, _list)


@history.command(name="remove")
@click.argument("query")
@click.option(
    "--tier",
    type=click.Choice([tier.value for tier in HistoryTier]),
    default=HistoryTier.FULL.value,
    show_default=True,
    help="History tier the query belongs to.",
)
def remove_history(query: str, tier: str):
    """Remove one search from history (exact match)."""
    settings = load_cli_settings()

    async def _remove(session: ClientSession) -> None:
        session.history.remove(query, HistoryTier(tier))
        console.print(f"[green]Removed:[/green] {query}")

    run_in_session(settings, _remove)


@history.command(name="clear")
@click.confirmation_option(prompt="Clear all search history?")
def clear_history():
    """Delete all search history."""
    settings = load_cli_settings()

    async def _clear(session: ClientSession) -> None:
        session.history.clear()
        console.print("[green]Search history cleared[/green]")

    run_in_session(settings, _clear)


@click.command()
def skips():
    """List permanently skipped videos."""
    settings = load_cli_settings()

    async def _list(session: ClientSession) -> None:
        entries = session.skip_list.entries
        console.print(f"\n[bold]SKIPPED VIDEOS[/bold] ({len(entries)})")
        if not entries:
            console.print("  (none)")
        for entry in entries:
            details = " - ".join(
                part for part in (entry.video_title, entry.channel_name) if part
            )
            console.print(f"  - {entry.video_id} {details}".rstrip())
        console.print()

    run_in_session(settings, _list)


@click.command()
@click.argument("video_id")
@click.option("--title", default=None, help="Video title to store with the skip.")
@click.option("--channel", default=None, help="Channel name to store with the skip.")
def skip(video_id: str, title: str | None, channel: str | None):
    """Never show a video again."""
    settings = load_cli_settings()

    async def _skip(session: ClientSession) -> None:
        if session.skip_list.add(video_id, title, channel):
            console.print(f"[green]Skipped:[/green] {video_id}")
        else:
            console.print(f"[yellow]Already skipped:[/yellow] {video_id}")

    run_in_session(settings, _skip)


@click.command()
@click.argument("video_id")
def unskip(video_id: str):
    """Allow a skipped video to show up again."""
    settings = load_cli_settings()

    async def _unskip(session: ClientSession) -> None:
        if not session.skip_list.is_skipped(video_id):
            console.print(f"[yellow]Not on the skip list:[/yellow] {video_id}")
            return
        session.skip_list.remove(video_id)
        console.print(f"[green]Removed from skip list:[/green] {video_id}")

    run_in_session(settings, _unskip)


def _print_items(items: list[str]) -> None:
    if not items:
        console.print("  (none)")
        return
    for item in items:
        console.print(f"  - {item}")
