"""Tests for the helm wrapper's argument lists."""

from __future__ import annotations

from edcctl.infrastructure.helm import Helm
from edcctl.infrastructure.runner import CommandRunner
from tests.conftest import FakeExecutor, on_path


def _helm(fake_exec: FakeExecutor, *, debug: bool = False, dry_run: bool = False) -> Helm:
    return Helm(CommandRunner(dry_run=dry_run, executor=fake_exec, which=on_path), debug=debug)


class TestChartOperations:
    def test_install_argument_order(self, fake_exec: FakeExecutor) -> None:
        _helm(fake_exec).install(
            "eecc-edc",
            ".",
            namespace="edc",
            values="values.yaml",
            set_values={"a.b": "1"},
            create_namespace=True,
            wait=True,
            timeout="600s",
            version="1.2.3",
        )
        assert fake_exec.calls[-1] == (
            "helm",
            "install",
            "eecc-edc",
            ".",
            "--namespace",
            "edc",
            "--create-namespace",
            "--values",
            "values.yaml",
            "--set",
            "a.b=1",
            "--wait",
            "--timeout=600s",
            "--version",
            "1.2.3",
        )

    def test_debug_appended(self, fake_exec: FakeExecutor) -> None:
        _helm(fake_exec, debug=True).upgrade("r", "c", namespace="edc")
        assert fake_exec.calls[-1][-1] == "--debug"

    def test_upgrade_install(self, fake_exec: FakeExecutor) -> None:
        _helm(fake_exec).upgrade_install(
            "ingress-nginx", "ingress-nginx/ingress-nginx", namespace="ingress"
        )
        assert fake_exec.calls[-1][:4] == ("helm", "upgrade", "--install", "ingress-nginx")

    def test_chart_dry_run_runs_even_in_guarded_mode(self, fake_exec: FakeExecutor) -> None:
        _helm(fake_exec, dry_run=True).install("r", "c", namespace="edc", dry_run=True)
        assert fake_exec.calls[-1][-1] == "--dry-run"

    def test_uninstall(self, fake_exec: FakeExecutor) -> None:
        _helm(fake_exec).uninstall("eecc-edc", "edc", timeout="5m")
        assert fake_exec.calls[-1] == (
            "helm",
            "uninstall",
            "eecc-edc",
            "--namespace",
            "edc",
            "--timeout=5m",
        )

    def test_rollback(self, fake_exec: FakeExecutor) -> None:
        _helm(fake_exec).rollback("eecc-edc", 3, "edc", timeout="600s")
        assert fake_exec.calls[-1] == (
            "helm",
            "rollback",
            "eecc-edc",
            "3",
            "--namespace",
            "edc",
            "--wait",
            "--timeout=600s",
        )

    def test_rollback_skipped_in_dry_run(self, fake_exec: FakeExecutor) -> None:
        runner_helm = _helm(fake_exec, dry_run=True)
        assert runner_helm.rollback("eecc-edc", 2, "edc").skipped
        assert fake_exec.calls == []


class TestRepositories:
    def test_repo_add_tolerates_existing(self, fake_exec: FakeExecutor) -> None:
        fake_exec.fail("helm", "repo", "add", stderr="already exists")
        out = _helm(fake_exec).repo_add("jetstack", "https://charts.jetstack.io")
        assert not out.ok

    def test_dependency_update(self, fake_exec: FakeExecutor) -> None:
        _helm(fake_exec).dependency_update("charts/edc")
        assert fake_exec.calls[-1] == ("helm", "dependency", "update", "charts/edc")


class TestReads:
    def test_release_lookup(self, fake_exec: FakeExecutor) -> None:
        fake_exec.releases(
            "edc",
            {"name": "other", "revision": "1"},
            {"name": "eecc-edc", "revision": "4", "status": "deployed"},
        )
        entry = _helm(fake_exec).release("eecc-edc", "edc")
        assert entry is not None
        assert entry["revision"] == "4"

    def test_release_missing(self, fake_exec: FakeExecutor) -> None:
        fake_exec.releases("edc")
        assert _helm(fake_exec).release("eecc-edc", "edc") is None

    def test_list_all_namespaces(self, fake_exec: FakeExecutor) -> None:
        assert _helm(fake_exec).list_releases(all_namespaces=True) == []
        assert fake_exec.calls[-1] == ("helm", "list", "-o", "json", "--all-namespaces")

    def test_get_and_history(self, fake_exec: FakeExecutor) -> None:
        fake_exec.on("helm", "get", "values", stdout="a: 1\n")
        fake_exec.on("helm", "history", stdout="[]")
        helm = _helm(fake_exec)
        assert helm.get("values", "eecc-edc", "edc") == "a: 1\n"
        assert helm.history_json("eecc-edc", "edc") == "[]"
        assert fake_exec.calls[-1] == ("helm", "history", "eecc-edc", "-n", "edc", "-o", "json")

    def test_template_show_only(self, fake_exec: FakeExecutor) -> None:
        fake_exec.on("helm", "template", stdout="kind: ClusterIssuer\n")
        rendered = _helm(fake_exec).template(
            ".", values="values.yaml", show_only="templates/issuer.yaml"
        )
        assert rendered == "kind: ClusterIssuer\n"
        assert fake_exec.calls[-1] == (
            "helm",
            "template",
            ".",
            "--values",
            "values.yaml",
            "--show-only",
            "templates/issuer.yaml",
        )
