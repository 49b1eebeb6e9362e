"""Shared Click building blocks for edcctl commands.

* :class:`EdcCommand` / :class:`EdcGroup` accept ``examples=`` and expose
  them through an eager ``--examples`` flag, so ``--help`` stays short.
* The option factories keep the cluster flags (``-n``, ``-r``, ``--dry-run``,
  ``--force``) spelled the same across commands.  Their values default to
  None so the command can fall back to the matching config section.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import click


def _add_examples_option(cmd: click.Command, examples: str) -> None:
    def show_examples(ctx: click.Context, _param: click.Parameter, value: bool) -> None:
        if not value or ctx.resilient_parsing:
            return
        click.echo(f"Examples for '{ctx.command_path}':\n")
        click.echo(examples)
        ctx.exit(0)

    cmd.params.append(
        click.Option(
            ["--examples"],
            is_flag=True,
            expose_value=False,
            is_eager=True,
            callback=show_examples,
            help="Show usage examples.",
        )
    )


class EdcCommand(click.Command):
    def __init__(self, *args: Any, examples: str | None = None, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.examples = examples
        if examples:
            _add_examples_option(self, examples)


class EdcGroup(click.Group):
    """Group whose ``@group.command`` subcommands are :class:`EdcCommand`."""

    command_class = EdcCommand

    def __init__(self, *args: Any, examples: str | None = None, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.examples = examples
        if examples:
            _add_examples_option(self, examples)


# --- shared options ---

Decorator = Callable[[Callable[..., Any]], Callable[..., Any]]


def target_options(section: str, *, envvars: bool = False) -> Decorator:
    """``-n/--namespace`` and ``-r/--release`` defaulting to config *section*.

    With *envvars*, ``NAMESPACE`` and ``RELEASE_NAME`` are read as well.
    """

    def decorate(func: Callable[..., Any]) -> Callable[..., Any]:
        func = click.option(
            "-r",
            "--release",
            envvar="RELEASE_NAME" if envvars else None,
            default=None,
            help=f"Helm release name [config: {section}].",
        )(func)
        return click.option(
            "-n",
            "--namespace",
            envvar="NAMESPACE" if envvars else None,
            default=None,
            help=f"Kubernetes namespace [config: {section}].",
        )(func)

    return decorate


def dry_run_option(
    *decls: str, help: str = "Preview without changing the cluster."  # noqa: A002
) -> Decorator:
    return click.option(*(decls or ("--dry-run",)), "dry_run", is_flag=True, help=help)


def force_option(*decls: str, help: str = "Skip all confirmations.") -> Decorator:  # noqa: A002
    return click.option(*(decls or ("--force",)), "force", is_flag=True, help=help)
