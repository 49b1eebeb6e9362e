"""Root CLI group for edcctl with global flags and command registration."""

from __future__ import annotations

from typing import Any

import click

from edcctl import __version__
from edcctl.commands import register_commands
from edcctl.commands._base import EdcGroup
from edcctl.commands._context import AppContext
from edcctl.config.settings import EdcSettings


class RootGroup(EdcGroup):
    """Root group that turns Ctrl-C into a short message and exit 1."""

    def invoke(self, ctx: click.Context) -> Any:
        try:
            return super().invoke(ctx)
        except KeyboardInterrupt:
            click.echo("interrupted", err=True)
            ctx.exit(1)


@click.group(
    cls=RootGroup,
    invoke_without_command=True,
    examples="""\
  edcctl install --dry-run
  edcctl edc upgrade --version 0.9.0
  edcctl verify --k8s-only
  edcctl -q dsp workflow""",
)
@click.version_option(version=__version__, prog_name="edcctl")
@click.option("--json", "json_output", is_flag=True, help="Structured JSON output.")
@click.option("-q", "--quiet", is_flag=True, help="Minimal output.")
@click.option("-v", "--verbose", is_flag=True, help="Detailed output with debug info.")
@click.option("--log-json", is_flag=True, help="Structured JSON log output to stderr.")
@click.option("--no-interact", is_flag=True, help="Non-interactive mode (no prompts).")
@click.option("-c", "--config", "config_path", default=None, help="Override config file path.")
@click.pass_context
def cli(
    ctx: click.Context,
    json_output: bool,
    quiet: bool,
    verbose: bool,
    log_json: bool,
    no_interact: bool,
    config_path: str | None,
) -> None:
    """edcctl: deploy and exercise an Eclipse Dataspace Connector."""
    ctx.ensure_object(dict)
    settings = EdcSettings.from_cli(
        config_path=config_path,
        json_output=json_output,
        quiet=quiet,
        verbose=verbose,
        log_json=log_json,
        no_interact=no_interact,
    )
    ctx.obj = AppContext(settings)
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


register_commands(cli)
