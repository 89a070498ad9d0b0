"""Search and playback commands for the MyTube CLI."""

from __future__ import annotations

import asyncio
import webbrowser

import click

from mytube.client.player import PlayerController, PlayerState, autoplay_advance
from mytube.client.session import ClientSession
from mytube.commands.common import console, load_cli_settings, render_queue, run_in_session

PROMPT_HELP = "[n]ext [p]revious [s]kip forever [r]eshuffle [o]pen [e]nded [q]uit"


@click.command()
@click.argument("query")
@click.option("--prefer-new", is_flag=True, help="Only look at videos from recent years.")
@click.option("--interactive", "-i", is_flag=True, help="Step through the queue after searching.")
@click.option("--open", "open_browser", is_flag=True, help="Open each selected video in a browser.")
@click.option("--autoplay/--no-autoplay", default=True, help="Advance when a video ends.")
@click.option("--language", "-l", default=None, help="Language for messages (he/en).")
def search(
    query: str,
    prefer_new: bool,
    interactive: bool,
    open_browser: bool,
    autoplay: bool,
    language: str | None,
):
    """Search YouTube with comma-separated terms and build a shuffled queue."""
    settings = load_cli_settings()

    async def _search(session: ClientSession) -> None:
        session.history.record(query, ui_only=True)
        result = await session.aggregator.search(query, prefer_new=prefer_new)

        if result.error:
            console.print(f"[red]{result.error}[/red]")
            return
        if not result.terms:
            console.print("[yellow]Nothing to search for[/yellow]")
            return
        if not result.queue:
            console.print("[yellow]No results found[/yellow]")
            return

        console.print(render_queue(result.queue, result.current))
        if interactive:
            await _browse(session, open_browser=open_browser, autoplay=autoplay)

    run_in_session(settings, _search, language=language)


async def _browse(session: ClientSession, *, open_browser: bool, autoplay: bool) -> None:
    aggregator = session.aggregator
    player = PlayerController(
        autoplay_advance(aggregator, autoplay),
        opener=webbrowser.open if open_browser else None,
    )

    while aggregator.session.current is not None:
        current = aggregator.session.current
        if player.handle is None or player.handle.video_id != current.id:
            player.create(current.id)
        console.print(
            f"\n[bold]{current.title}[/bold] [cyan]{current.channel_name}[/cyan] "
            f"({(aggregator.session.cursor or 0) + 1}/{len(aggregator.session.queue)})"
        )
        choice = await asyncio.to_thread(click.prompt, PROMPT_HELP, default="n")
        action = choice.strip().lower()[:1]

        if action == "q":
            break
        if action == "n":
            aggregator.next()
        elif action == "p":
            aggregator.previous()
        elif action == "s":
            aggregator.always_skip()
            if aggregator.session.notice:
                console.print(f"[green]{aggregator.session.notice}[/green]")
                aggregator.dismiss_messages()
        elif action == "r":
            aggregator.reshuffle()
            console.print(render_queue(aggregator.session.queue, aggregator.session.current))
        elif action == "o" and player.handle is not None:
            webbrowser.open(player.handle.watch_url)
        elif action == "e":
            player.handle_state(PlayerState.ENDED)
        else:
            console.print(f"[yellow]Unknown choice: {choice}[/yellow]")

    player.destroy()
    if aggregator.session.current is None:
        console.print("[yellow]Queue is empty[/yellow]")
