"""Subprocess runner for cluster tooling with a dry-run guard.

Every ``kubectl`` and ``helm`` invocation goes through :class:`CommandRunner`.
In dry-run mode the runner refuses to execute commands that change cluster
or Helm state (see :func:`is_mutating`); read-only commands still run so
that previews and existence checks stay accurate.
"""

from __future__ import annotations

import shutil
import subprocess
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import structlog

logger = structlog.get_logger(__name__)

KUBECTL_MUTATING_VERBS = frozenset(
    {"create", "apply", "delete", "patch", "replace", "label", "annotate", "scale"}
)
HELM_MUTATING_VERBS = frozenset({"install", "upgrade", "uninstall", "rollback"})
HELM_MUTATING_SUBCOMMANDS = frozenset(
    {("repo", "add"), ("repo", "update"), ("dependency", "update")}
)

# Global flags that consume the following token.
_VALUE_FLAGS = frozenset(
    {"-n", "--namespace", "--context", "--kubeconfig", "--kube-context", "--cluster", "--user"}
)

Executor = Callable[..., subprocess.CompletedProcess[str]]


class CommandError(Exception):
    """A subprocess exited non-zero."""

    def __init__(self, argv: Sequence[str], returncode: int, stderr: str = "") -> None:
        self.argv = list(argv)
        self.returncode = returncode
        self.stderr = stderr.strip()
        detail = f": {self.stderr}" if self.stderr else ""
        super().__init__(f"`{' '.join(self.argv)}` exited with {returncode}{detail}")


class MissingBinaryError(Exception):
    """A required executable is not on PATH."""

    def __init__(self, binary: str) -> None:
        self.binary = binary
        super().__init__(f"{binary} is not installed or not in PATH")


@dataclass(frozen=True)
class CommandOutput:
    """Captured result of one command.

    ``skipped`` is True when the dry-run guard suppressed execution.
    """

    argv: tuple[str, ...]
    returncode: int = 0
    stdout: str = ""
    stderr: str = ""
    skipped: bool = False

    @property
    def ok(self) -> bool:
        return self.returncode == 0


def _positionals(args: Sequence[str]) -> list[str]:
    found: list[str] = []
    skip_next = False
    for token in args:
        if skip_next:
            skip_next = False
            continue
        if token in _VALUE_FLAGS:
            skip_next = True
            continue
        if token.startswith("-"):
            continue
        found.append(token)
    return found


def has_dry_run_flag(argv: Sequence[str]) -> bool:
    return any(t == "--dry-run" or t.startswith("--dry-run=") for t in argv)


def is_mutating(argv: Sequence[str]) -> bool:
    """Return True if *argv* would change cluster or Helm state.

    Only ``kubectl`` and ``helm`` are classified; a command carrying its own
    ``--dry-run`` flag is treated as read-only.
    """
    if not argv or has_dry_run_flag(argv):
        return False
    tool = Path(argv[0]).name
    words = _positionals(argv[1:])
    if not words:
        return False
    if tool == "kubectl":
        return words[0] in KUBECTL_MUTATING_VERBS
    if tool == "helm":
        if words[0] in HELM_MUTATING_VERBS:
            return True
        return len(words) > 1 and (words[0], words[1]) in HELM_MUTATING_SUBCOMMANDS
    return False


@dataclass
class CommandRunner:
    """Run commands with captured text output.

    Attributes:
        dry_run: Suppress mutating commands and record them in ``would_run``.
        executor: ``subprocess.run``-compatible callable (replaced in tests).
        which: PATH lookup used by :meth:`require`.
    """

    dry_run: bool = False
    cwd: Path | None = None
    executor: Executor = subprocess.run
    which: Callable[[str], str | None] = shutil.which
    history: list[tuple[str, ...]] = field(default_factory=list)
    would_run: list[tuple[str, ...]] = field(default_factory=list)

    def require(self, binary: str) -> None:
        """Raise :class:`MissingBinaryError` unless *binary* is on PATH."""
        if self.which(binary) is None:
            raise MissingBinaryError(binary)

    def run(
        self,
        argv: Sequence[str],
        *,
        input: str | None = None,  # noqa: A002
        check: bool = True,
        cwd: Path | None = None,
    ) -> CommandOutput:
        """Run *argv*; raise :class:`CommandError` on non-zero exit if *check*."""
        command = tuple(str(a) for a in argv)

        if self.dry_run and is_mutating(command):
            logger.info("dry_run_skip", argv=list(command))
            self.would_run.append(command)
            return CommandOutput(argv=command, skipped=True)

        logger.debug("command_start", argv=list(command))
        self.history.append(command)
        kwargs: dict[str, Any] = {
            "capture_output": True,
            "text": True,
            "check": False,
            "cwd": cwd or self.cwd,
        }
        if input is not None:
            kwargs["input"] = input
        try:
            completed = self.executor(list(command), **kwargs)
        except FileNotFoundError as exc:
            raise MissingBinaryError(command[0]) from exc

        output = CommandOutput(
            argv=command,
            returncode=completed.returncode,
            stdout=completed.stdout or "",
            stderr=completed.stderr or "",
        )
        logger.debug("command_done", argv=list(command), returncode=output.returncode)
        if check and not output.ok:
            raise CommandError(command, output.returncode, output.stderr)
        return output
