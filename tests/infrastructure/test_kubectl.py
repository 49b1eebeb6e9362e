"""Tests for the kubectl wrapper's argument lists and predicates."""

from __future__ import annotations

import json

from edcctl.infrastructure.kubectl import Kubectl
from edcctl.infrastructure.runner import CommandRunner
from tests.conftest import FakeExecutor, on_path


def _kubectl(fake_exec: FakeExecutor, *, dry_run: bool = False) -> Kubectl:
    return Kubectl(CommandRunner(dry_run=dry_run, executor=fake_exec, which=on_path))


class TestPredicates:
    def test_namespace_exists(self, fake_exec: FakeExecutor) -> None:
        kubectl = _kubectl(fake_exec)
        assert kubectl.namespace_exists("edc")
        fake_exec.fail("kubectl", "get", "namespace", "edc")
        assert not kubectl.namespace_exists("edc")
        assert fake_exec.calls[-1] == ("kubectl", "get", "namespace", "edc")

    def test_cluster_reachable(self, fake_exec: FakeExecutor) -> None:
        fake_exec.fail("kubectl", "cluster-info")
        assert not _kubectl(fake_exec).cluster_reachable()

    def test_wait_pods_ready(self, fake_exec: FakeExecutor) -> None:
        _kubectl(fake_exec).wait_pods_ready("app=postgresql", "edc", timeout="60s")
        assert fake_exec.calls[-1] == (
            "kubectl",
            "wait",
            "--for=condition=ready",
            "pod",
            "-l",
            "app=postgresql",
            "-n",
            "edc",
            "--timeout=60s",
        )

    def test_exec_ok(self, fake_exec: FakeExecutor) -> None:
        fake_exec.fail("kubectl", "exec")
        assert not _kubectl(fake_exec).exec_ok("vault-0", "edc", "vault", "status")
        assert fake_exec.calls[-1] == (
            "kubectl",
            "exec",
            "-n",
            "edc",
            "vault-0",
            "--",
            "vault",
            "status",
        )


class TestMutations:
    def test_ensure_namespace_renders_then_applies(self, fake_exec: FakeExecutor) -> None:
        fake_exec.on("kubectl", "create", "namespace", "edc", stdout="kind: Namespace\n")
        _kubectl(fake_exec).ensure_namespace("edc")
        assert fake_exec.calls == [
            ("kubectl", "create", "namespace", "edc", "--dry-run=client", "-o", "yaml"),
            ("kubectl", "apply", "-f", "-"),
        ]
        assert fake_exec.inputs[-1] == "kind: Namespace\n"

    def test_delete_flags(self, fake_exec: FakeExecutor) -> None:
        _kubectl(fake_exec).delete(
            "pvc", namespace="edc", selector="app=vault", all_resources=False, timeout="60s"
        )
        assert fake_exec.calls[-1] == (
            "kubectl",
            "delete",
            "pvc",
            "-l",
            "app=vault",
            "-n",
            "edc",
            "--ignore-not-found=true",
            "--timeout=60s",
        )

    def test_delete_all(self, fake_exec: FakeExecutor) -> None:
        _kubectl(fake_exec).delete("pods", namespace="edc", all_resources=True)
        assert fake_exec.calls[-1] == (
            "kubectl",
            "delete",
            "pods",
            "--all",
            "-n",
            "edc",
            "--ignore-not-found=true",
        )

    def test_delete_skipped_in_dry_run(self, fake_exec: FakeExecutor) -> None:
        out = _kubectl(fake_exec, dry_run=True).delete("namespace", "edc")
        assert out.skipped
        assert fake_exec.calls == []


class TestReads:
    def test_get_json(self, fake_exec: FakeExecutor) -> None:
        fake_exec.on("kubectl", "get", "pods", stdout=json.dumps({"items": [1]}))
        data = _kubectl(fake_exec).get_json("pods", namespace="edc", selector="app=x")
        assert data == {"items": [1]}
        assert fake_exec.calls[-1] == (
            "kubectl",
            "get",
            "pods",
            "-n",
            "edc",
            "-l",
            "app=x",
            "-o",
            "json",
        )

    def test_get_json_empty(self, fake_exec: FakeExecutor) -> None:
        assert _kubectl(fake_exec).get_json("pods") == {}

    def test_names(self, fake_exec: FakeExecutor) -> None:
        fake_exec.on("kubectl", "get", "pods", stdout="a b c")
        assert _kubectl(fake_exec).names("pods", all_namespaces=True) == ["a", "b", "c"]
        assert "--all-namespaces" in fake_exec.calls[-1]

    def test_names_on_error(self, fake_exec: FakeExecutor) -> None:
        fake_exec.fail("kubectl", "get")
        assert _kubectl(fake_exec).names("pods") == []

    def test_count_lines(self, fake_exec: FakeExecutor) -> None:
        fake_exec.on("kubectl", "get", "pods", stdout="a 1/1 Running\nb 1/1 Running\n\n")
        count = _kubectl(fake_exec).count(
            "pods", namespace="edc", field_selector="status.phase=Running"
        )
        assert count == 2
        assert "--field-selector=status.phase=Running" in fake_exec.calls[-1]
        assert fake_exec.calls[-1][-1] == "--no-headers"

    def test_count_error_is_zero(self, fake_exec: FakeExecutor) -> None:
        fake_exec.fail("kubectl", "get")
        assert _kubectl(fake_exec).count("certificates", all_namespaces=True) == 0
