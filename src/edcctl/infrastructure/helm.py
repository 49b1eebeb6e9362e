"""Thin ``helm`` wrapper.

Argument lists are built here so services only speak in releases, charts
and namespaces.  ``--debug`` is appended to chart operations when the CLI
runs verbose.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Literal

from edcctl.infrastructure.runner import CommandOutput, CommandRunner

GetTarget = Literal["all", "values", "manifest"]


class Helm:
    def __init__(self, runner: CommandRunner, *, debug: bool = False, binary: str = "helm") -> None:
        self._runner = runner
        self.debug = debug
        self.binary = binary

    def _run(self, *args: str, check: bool = True) -> CommandOutput:
        return self._runner.run([self.binary, *args], check=check)

    def _chart_args(
        self,
        *,
        namespace: str,
        values: Path | str | None = None,
        set_values: Mapping[str, str] | None = None,
        create_namespace: bool = False,
        wait: bool = False,
        timeout: str | None = None,
        version: str | None = None,
        dry_run: bool = False,
    ) -> list[str]:
        args = ["--namespace", namespace]
        if create_namespace:
            args.append("--create-namespace")
        if values:
            args += ["--values", str(values)]
        for key, value in (set_values or {}).items():
            args += ["--set", f"{key}={value}"]
        if wait:
            args.append("--wait")
        if timeout:
            args.append(f"--timeout={timeout}")
        if version:
            args += ["--version", version]
        if dry_run:
            args.append("--dry-run")
        if self.debug:
            args.append("--debug")
        return args

    # --- repositories ---

    def repo_add(self, name: str, url: str) -> CommandOutput:
        """Add a repository; an already-present repo is not an error."""
        return self._run("repo", "add", name, url, check=False)

    def repo_update(self) -> CommandOutput:
        return self._run("repo", "update")

    def dependency_update(self, chart_dir: Path | str) -> CommandOutput:
        return self._run("dependency", "update", str(chart_dir))

    # --- releases ---

    def list_releases(
        self, namespace: str | None = None, *, all_namespaces: bool = False
    ) -> list[dict[str, Any]]:
        args = ["list", "-o", "json"]
        if all_namespaces:
            args.append("--all-namespaces")
        elif namespace:
            args += ["-n", namespace]
        out = self._run(*args)
        if not out.stdout.strip():
            return []
        data = json.loads(out.stdout)
        return data if isinstance(data, list) else []

    def release(self, name: str, namespace: str) -> dict[str, Any] | None:
        """Return the ``helm list`` entry for *name*, or None."""
        for entry in self.list_releases(namespace):
            if entry.get("name") == name:
                return entry
        return None

    def install(self, release: str, chart: Path | str, **options: Any) -> CommandOutput:
        return self._run("install", release, str(chart), *self._chart_args(**options))

    def upgrade(self, release: str, chart: Path | str, **options: Any) -> CommandOutput:
        return self._run("upgrade", release, str(chart), *self._chart_args(**options))

    def upgrade_install(self, release: str, chart: Path | str, **options: Any) -> CommandOutput:
        return self._run(
            "upgrade", "--install", release, str(chart), *self._chart_args(**options)
        )

    def uninstall(
        self,
        release: str,
        namespace: str,
        *,
        timeout: str | None = None,
        dry_run: bool = False,
    ) -> CommandOutput:
        args = ["uninstall", release, "--namespace", namespace]
        if timeout:
            args.append(f"--timeout={timeout}")
        if dry_run:
            args.append("--dry-run")
        if self.debug:
            args.append("--debug")
        return self._run(*args)

    def rollback(
        self,
        release: str,
        revision: int | str,
        namespace: str,
        *,
        wait: bool = True,
        timeout: str | None = None,
        dry_run: bool = False,
    ) -> CommandOutput:
        args = ["rollback", release, str(revision), "--namespace", namespace]
        if wait:
            args.append("--wait")
        if timeout:
            args.append(f"--timeout={timeout}")
        if dry_run:
            args.append("--dry-run")
        if self.debug:
            args.append("--debug")
        return self._run(*args)

    # --- reads ---

    def template(
        self,
        chart: Path | str,
        *,
        values: Path | str | None = None,
        show_only: str | None = None,
    ) -> str:
        args = ["template", str(chart)]
        if values:
            args += ["--values", str(values)]
        if show_only:
            args += ["--show-only", show_only]
        return self._run(*args).stdout

    def get(self, target: GetTarget, release: str, namespace: str) -> str:
        return self._run("get", target, release, "-n", namespace).stdout

    def history_json(self, release: str, namespace: str) -> str:
        return self._run("history", release, "-n", namespace, "-o", "json").stdout

    def status(self, release: str, namespace: str) -> str:
        return self._run("status", release, "-n", namespace).stdout
