"""Thin ``kubectl`` wrapper.

Predicates (``*_exists``, ``*_ready``, ``exec_ok``) never raise on a
non-zero exit; they answer the question.  Everything else raises
:class:`~edcctl.infrastructure.runner.CommandError`.
"""

from __future__ import annotations

import json
from typing import Any

from edcctl.infrastructure.runner import CommandOutput, CommandRunner


def _scope(namespace: str | None, all_namespaces: bool = False) -> list[str]:
    if all_namespaces:
        return ["--all-namespaces"]
    if namespace:
        return ["-n", namespace]
    return []


class Kubectl:
    def __init__(self, runner: CommandRunner, *, binary: str = "kubectl") -> None:
        self._runner = runner
        self.binary = binary

    def _run(
        self, *args: str, input: str | None = None, check: bool = True  # noqa: A002
    ) -> CommandOutput:
        return self._runner.run([self.binary, *args], input=input, check=check)

    def _ok(self, *args: str) -> bool:
        return self._run(*args, check=False).ok

    # --- predicates ---

    def cluster_reachable(self) -> bool:
        return self._ok("cluster-info")

    def namespace_exists(self, namespace: str) -> bool:
        return self._ok("get", "namespace", namespace)

    def crd_exists(self, name: str) -> bool:
        return self._ok("get", "crd", name)

    def resource_exists(self, kind: str, name: str, *, namespace: str | None = None) -> bool:
        return self._ok("get", kind, name, *_scope(namespace))

    def wait_pods_ready(self, selector: str, namespace: str, *, timeout: str = "300s") -> bool:
        return self._ok(
            "wait",
            "--for=condition=ready",
            "pod",
            "-l",
            selector,
            "-n",
            namespace,
            f"--timeout={timeout}",
        )

    def wait_pods_deleted(self, selector: str, namespace: str, *, timeout: str = "120s") -> bool:
        return self._ok(
            "wait",
            "--for=delete",
            "pod",
            "-l",
            selector,
            "-n",
            namespace,
            f"--timeout={timeout}",
        )

    def exec_ok(self, pod: str, namespace: str, *command: str) -> bool:
        """Run *command* inside *pod*; True on zero exit."""
        return self._ok("exec", "-n", namespace, pod, "--", *command)

    # --- mutations ---

    def create_namespace(self, namespace: str) -> CommandOutput:
        return self._run("create", "namespace", namespace)

    def ensure_namespace(self, namespace: str) -> CommandOutput:
        """Idempotent namespace creation: client-side render piped to apply."""
        rendered = self._run("create", "namespace", namespace, "--dry-run=client", "-o", "yaml")
        return self.apply_manifest(rendered.stdout)

    def apply_manifest(self, manifest: str) -> CommandOutput:
        return self._run("apply", "-f", "-", input=manifest)

    def delete(
        self,
        kind: str,
        *names: str,
        namespace: str | None = None,
        selector: str | None = None,
        all_resources: bool = False,
        ignore_not_found: bool = True,
        timeout: str | None = None,
        check: bool = True,
    ) -> CommandOutput:
        args = ["delete", kind, *names]
        if all_resources:
            args.append("--all")
        if selector:
            args += ["-l", selector]
        args += _scope(namespace)
        if ignore_not_found:
            args.append("--ignore-not-found=true")
        if timeout:
            args.append(f"--timeout={timeout}")
        return self._run(*args, check=check)

    # --- reads ---

    def _get_args(
        self,
        kind: str,
        name: str | None,
        namespace: str | None,
        all_namespaces: bool,
        selector: str | None,
        field_selector: str | None = None,
    ) -> list[str]:
        args = ["get", kind]
        if name:
            args.append(name)
        args += _scope(namespace, all_namespaces)
        if selector:
            args += ["-l", selector]
        if field_selector:
            args.append(f"--field-selector={field_selector}")
        return args

    def get_json(
        self,
        kind: str,
        name: str | None = None,
        *,
        namespace: str | None = None,
        all_namespaces: bool = False,
        selector: str | None = None,
    ) -> dict[str, Any]:
        args = self._get_args(kind, name, namespace, all_namespaces, selector)
        out = self._run(*args, "-o", "json")
        return json.loads(out.stdout) if out.stdout.strip() else {}

    def get_yaml(
        self,
        kind: str,
        *,
        namespace: str | None = None,
        selector: str | None = None,
        check: bool = True,
    ) -> CommandOutput:
        args = self._get_args(kind, None, namespace, False, selector)
        return self._run(*args, "-o", "yaml", check=check)

    def names(
        self,
        kind: str,
        *,
        namespace: str | None = None,
        all_namespaces: bool = False,
        selector: str | None = None,
    ) -> list[str]:
        """Return ``metadata.name`` of every matching object (empty on error)."""
        args = self._get_args(kind, None, namespace, all_namespaces, selector)
        out = self._run(*args, "-o", "jsonpath={.items[*].metadata.name}", check=False)
        return out.stdout.split() if out.ok else []

    def count(
        self,
        kind: str,
        *,
        namespace: str | None = None,
        all_namespaces: bool = False,
        selector: str | None = None,
        field_selector: str | None = None,
    ) -> int:
        """Count matching objects; an error or an unknown kind counts as zero."""
        args = self._get_args(kind, None, namespace, all_namespaces, selector, field_selector)
        out = self._run(*args, "--no-headers", check=False)
        if not out.ok:
            return 0
        return sum(1 for line in out.stdout.splitlines() if line.strip())
