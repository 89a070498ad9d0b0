"""Main CLI entry point for MyTube."""

import click

from mytube.commands import library, prefs, search


@click.group()
@click.version_option(version="0.1.0")
def main():
    """MyTube - shuffled YouTube queues from comma-separated searches."""
    pass


# Search commands
main.add_command(search.search)

# History commands
main.add_command(library.history)

# Skip-list commands
main.add_command(library.skips)
main.add_command(library.skip)
main.add_command(library.unskip)

# Account commands
main.add_command(prefs.prefs)


if __name__ == "__main__":
    main()
