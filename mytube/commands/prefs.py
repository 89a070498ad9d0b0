"""Account preference commands for the MyTube CLI."""

from __future__ import annotations

import asyncio
from typing import Any

import click

from mytube.client.api_client import ApiRequestError, ApiUnauthorizedError, MyTubeApiClient
from mytube.commands.common import abort, console, load_cli_settings


@click.command()
@click.option("--theme", type=click.Choice(["light", "dark"]), default=None)
@click.option("--language", default=None, help="Interface language code, e.g. he or en.")
@click.option("--autoplay/--no-autoplay", default=None, help="Advance when a video ends.")
def prefs(theme: str | None, language: str | None, autoplay: bool | None):
    """Show preferences, or update the ones given as options."""
    settings = load_cli_settings()
    api_client = MyTubeApiClient(
        settings.api_base_url,
        token=settings.api_token,
        timeout_seconds=settings.api_http_timeout_seconds,
    )
    if not api_client.authenticated:
        abort("Preferences need a signed-in account. Set MYTUBE_API_TOKEN.")

    updating = theme is not None or language is not None or autoplay is not None
    try:
        if updating:
            preferences = asyncio.run(
                api_client.save_preferences(theme=theme, language=language, autoplay=autoplay)
            )
        else:
            preferences = asyncio.run(api_client.get_preferences())
    except ApiUnauthorizedError:
        abort("The API rejected the token in MYTUBE_API_TOKEN.")
    except ApiRequestError as exc:
        abort(f"Error: {exc}")

    if updating:
        console.print("[green]Preferences saved[/green]")
    _print_preferences(preferences)


def _print_preferences(preferences: dict[str, Any]) -> None:
    console.print("\n[bold]PREFERENCES[/bold]")
    console.print(f"  Theme: {preferences.get('theme')}")
    console.print(f"  Language: {preferences.get('language')}")
    autoplay = preferences.get("autoplay")
    console.print(f"  Autoplay: {'on' if autoplay else 'off'}")
    console.print()
