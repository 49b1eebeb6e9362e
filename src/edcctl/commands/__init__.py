"""Subcommand modules for edcctl.

Provides register_commands(), which imports command modules only when
the root group is built.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import click


def register_commands(cli: click.Group) -> None:
    """Register all command groups and standalone commands on the root CLI group."""
    # --- Groups ---
    from edcctl.commands.base_chart import base
    from edcctl.commands.dsp import dsp
    from edcctl.commands.edc import edc
    from edcctl.commands.ingress import ingress

    cli.add_command(ingress)
    cli.add_command(base)
    cli.add_command(edc)
    cli.add_command(dsp)

    # --- Standalone commands ---
    from edcctl.commands.deploy import install, uninstall
    from edcctl.commands.verify import verify

    cli.add_command(install)
    cli.add_command(uninstall)
    cli.add_command(verify)
