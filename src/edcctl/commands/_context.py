"""AppContext: shared Click context for all commands.

Created once by the root CLI group and handed to subcommands through
``@click.pass_obj``.  Builds runners and confirmation callbacks, and owns
result emission (stdout/stderr routing and exit codes).
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from edcctl.infrastructure.runner import CommandRunner
from edcctl.output.formatters import OutputSettings, format_result
from edcctl.services.base import Confirm, always_yes

if TYPE_CHECKING:
    from edcctl.config.settings import EdcSettings
    from edcctl.services.result import ServiceResult

# Error code -> process exit status.  Anything unlisted exits 1.
EXIT_CODES: dict[str, int] = {
    "INVALID_ARGUMENT": 2,
    "EDC_API_ERROR": 3,
    "CLEANUP_FAILED": 3,
    "CANCELLED": 4,
}


def exit_code_for(result: ServiceResult) -> int:
    if result.ok:
        return 0
    code = result.error.code if result.error else ""
    return EXIT_CODES.get(code, 1)


def _prompt(message: str) -> bool:
    return click.confirm(message, default=False, err=True)


class AppContext:
    """Shared context flowing through Click's command hierarchy."""

    def __init__(self, settings: EdcSettings) -> None:
        self.settings = settings

        from edcctl.config.logging import configure_logging

        configure_logging(verbose=settings.verbose, log_json=settings.log_json)

        if settings.verbose:
            from edcctl.services.telemetry import enable_telemetry

            enable_telemetry()

    def runner(self, *, dry_run: bool = False) -> CommandRunner:
        """A subprocess runner rooted at the project directory."""
        return CommandRunner(dry_run=dry_run, cwd=self.settings.project_root)

    def confirmer(self, *, skip: bool = False) -> Confirm:
        """Confirmation callback for services.

        Answers yes without prompting when *skip* is set (``--force``,
        ``--dry-run``) or under ``--no-interact``.
        """
        if skip or self.settings.no_interact:
            return always_yes
        return _prompt

    def emit(self, result: ServiceResult) -> None:
        """Format and output a ServiceResult with correct exit semantics.

        * Success: writes to stdout and returns.  Warnings go to stderr in
          human mode so they don't pollute piped output.
        * Failure: writes to stderr and exits with the mapped status.
        """
        settings = OutputSettings(
            json_output=self.settings.json_output,
            quiet=self.settings.quiet,
            verbose=self.settings.verbose,
        )
        output = format_result(result, settings=settings)
        if result.ok:
            click.echo(output)
            if not settings.json_output and not settings.quiet:
                for warning in result.warnings:
                    click.echo(f"WARNING: {warning}", err=True)
        else:
            click.echo(output, err=True)
            raise SystemExit(exit_code_for(result))
