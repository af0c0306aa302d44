"""Subcommand modules for linkctl.

Provides register_commands() which uses deferred imports to keep
``linkctl --help`` fast.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import click


def register_commands(cli: click.Group) -> None:
    """Register all command groups and standalone commands on the root CLI group."""
    # --- Groups ---
    from linkctl.commands.channel import channel
    from linkctl.commands.filter import filter_group
    from linkctl.commands.link import link
    from linkctl.commands.record import record

    cli.add_command(channel)
    cli.add_command(link)
    cli.add_command(filter_group)
    cli.add_command(record)

    # --- Standalone commands ---
    from linkctl.commands.route import route

    cli.add_command(route)
