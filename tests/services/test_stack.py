"""Tests for StackService umbrella install and uninstall."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

from edcctl.config.settings import EdcSettings
from edcctl.infrastructure.runner import CommandRunner
from edcctl.services.base import Confirm, always_yes
from edcctl.services.result import ServiceResult
from edcctl.services.stack import StackService
from tests.conftest import FakeExecutor


def _answers(*replies: bool) -> tuple[Confirm, list[str]]:
    asked: list[str] = []
    queue = list(replies)

    def confirm(prompt: str) -> bool:
        asked.append(prompt)
        return queue.pop(0)

    return confirm, asked


def _statuses(result: ServiceResult) -> dict[str, str]:
    return {s["name"]: s["status"] for s in result.data["steps"]}


class TestInstall:
    def _install(
        self,
        settings: EdcSettings,
        make_runner: Callable[..., CommandRunner],
        *,
        dry_run: bool = False,
        values_file: str = "values.yaml",
        chart: str = ".",
    ) -> ServiceResult:
        service = StackService(settings, make_runner(dry_run=dry_run))
        return service.install(
            namespace="edc", release="eecc-edc", values_file=values_file, chart=chart
        )

    def test_happy_path(
        self,
        settings: EdcSettings,
        make_runner: Callable[..., CommandRunner],
        fake_exec: FakeExecutor,
    ) -> None:
        result = self._install(settings, make_runner)
        assert result.ok
        statuses = _statuses(result)
        assert statuses["cert-manager"] == "skipped"
        assert statuses["clusterissuer"] == "skipped"
        assert statuses["edc"] == "ok"
        assert fake_exec.called("helm", "upgrade", "--install", "ingress-nginx")
        assert fake_exec.called("helm", "upgrade", "--install", "eecc-edc")
        assert "kubectl get pods -n edc" in result.data["next_steps"]

    def test_repositories_added(
        self,
        settings: EdcSettings,
        make_runner: Callable[..., CommandRunner],
        fake_exec: FakeExecutor,
    ) -> None:
        self._install(settings, make_runner)
        added = [c[3] for c in fake_exec.matching("helm", "repo", "add")]
        assert added == ["ingress-nginx", "jetstack", "hashicorp"]
        assert fake_exec.called("helm", "repo", "update")

    def test_repo_add_failure_is_warning(
        self,
        settings: EdcSettings,
        make_runner: Callable[..., CommandRunner],
        fake_exec: FakeExecutor,
    ) -> None:
        fake_exec.fail("helm", "repo", "add", "jetstack", stderr="network down")
        result = self._install(settings, make_runner)
        assert result.ok
        assert any("jetstack" in w for w in result.warnings)

    def test_cert_manager_installed_when_crds_missing(
        self,
        settings: EdcSettings,
        make_runner: Callable[..., CommandRunner],
        fake_exec: FakeExecutor,
    ) -> None:
        fake_exec.fail("kubectl", "get", "crd")
        fake_exec.fail("kubectl", "get", "clusterissuer")
        fake_exec.on("helm", "template", stdout="kind: ClusterIssuer\n")
        result = self._install(settings, make_runner)
        assert result.ok
        install = fake_exec.matching("helm", "install", "cert-manager", "jetstack/cert-manager")
        assert install
        assert "installCRDs=true" in install[0]
        assert "kind: ClusterIssuer\n" in fake_exec.inputs

    def test_pods_not_ready_is_warning(
        self,
        settings: EdcSettings,
        make_runner: Callable[..., CommandRunner],
        fake_exec: FakeExecutor,
    ) -> None:
        fake_exec.fail("kubectl", "wait")
        result = self._install(settings, make_runner)
        assert result.ok
        assert "controlplane pod not ready within timeout" in result.warnings

    def test_cluster_unreachable(
        self,
        settings: EdcSettings,
        make_runner: Callable[..., CommandRunner],
        fake_exec: FakeExecutor,
    ) -> None:
        fake_exec.fail("kubectl", "cluster-info")
        result = self._install(settings, make_runner)
        assert result.error is not None
        assert result.error.code == "CLUSTER_UNREACHABLE"
        assert fake_exec.mutating == []

    def test_missing_values(
        self, settings: EdcSettings, make_runner: Callable[..., CommandRunner]
    ) -> None:
        result = self._install(settings, make_runner, values_file="missing.yaml")
        assert result.error is not None
        assert result.error.code == "VALUES_NOT_FOUND"

    def test_missing_chart(
        self,
        settings: EdcSettings,
        make_runner: Callable[..., CommandRunner],
        project: Path,
    ) -> None:
        result = self._install(settings, make_runner, chart="nowhere")
        assert result.error is not None
        assert result.error.code == "CHART_NOT_FOUND"
        assert str(project / "nowhere" / "Chart.yaml") in result.error.message

    def test_dry_run_mutates_nothing(
        self,
        settings: EdcSettings,
        make_runner: Callable[..., CommandRunner],
        fake_exec: FakeExecutor,
    ) -> None:
        fake_exec.fail("kubectl", "get", "namespace")
        fake_exec.fail("kubectl", "get", "crd")
        fake_exec.fail("kubectl", "get", "clusterissuer")
        result = self._install(settings, make_runner, dry_run=True)

        assert result.ok
        assert fake_exec.mutating == []
        assert not fake_exec.called("helm", "template")
        statuses = _statuses(result)
        assert statuses["clusterissuer"] == "dry-run"
        assert statuses["edc"] == "dry-run"
        assert statuses["validate"] == "warning"
        assert result.meta is not None
        would_run = result.meta["would_run"]
        assert any(cmd.startswith("helm upgrade --install eecc-edc") for cmd in would_run)

    def test_dry_run_validates_when_crds_present(
        self,
        settings: EdcSettings,
        make_runner: Callable[..., CommandRunner],
        fake_exec: FakeExecutor,
    ) -> None:
        result = self._install(settings, make_runner, dry_run=True)
        assert _statuses(result)["validate"] == "ok"
        validation = fake_exec.matching("helm", "install", "eecc-edc")
        assert validation[0][-1] == "--dry-run"


class TestUninstall:
    def test_uninstalls_after_confirmation(
        self,
        settings: EdcSettings,
        make_runner: Callable[..., CommandRunner],
        fake_exec: FakeExecutor,
    ) -> None:
        fake_exec.releases("edc", {"name": "eecc-edc", "revision": "2", "chart": "edc-0.3.0"})
        confirm, asked = _answers(True)
        result = StackService(settings, make_runner(), confirm=confirm).uninstall(
            namespace="edc", release="eecc-edc"
        )
        assert result.ok
        assert asked == ["Uninstall release 'eecc-edc' from namespace 'edc'?"]
        assert fake_exec.called("helm", "uninstall", "eecc-edc", "--namespace", "edc")

    def test_declined(
        self,
        settings: EdcSettings,
        make_runner: Callable[..., CommandRunner],
        fake_exec: FakeExecutor,
    ) -> None:
        fake_exec.releases("edc", {"name": "eecc-edc"})
        confirm, _ = _answers(False)
        result = StackService(settings, make_runner(), confirm=confirm).uninstall(
            namespace="edc", release="eecc-edc"
        )
        assert result.error is not None
        assert result.error.code == "CANCELLED"
        assert fake_exec.mutating == []

    def test_missing_release(
        self,
        settings: EdcSettings,
        make_runner: Callable[..., CommandRunner],
        fake_exec: FakeExecutor,
    ) -> None:
        fake_exec.releases("edc", {"name": "other"})
        result = StackService(settings, make_runner()).uninstall(
            namespace="edc", release="eecc-edc"
        )
        assert result.error is not None
        assert result.error.code == "RELEASE_NOT_FOUND"
        assert result.error.detail["releases"] == ["other"]

    def test_missing_release_forced(
        self,
        settings: EdcSettings,
        make_runner: Callable[..., CommandRunner],
        fake_exec: FakeExecutor,
    ) -> None:
        fake_exec.releases("edc")
        result = StackService(settings, make_runner()).uninstall(
            namespace="edc", release="eecc-edc", force=True
        )
        assert result.ok
        assert result.warnings == ["Release not found, but continuing due to --force flag"]
        assert not fake_exec.called("helm", "uninstall")

    def test_namespace_kept_when_declined(
        self,
        settings: EdcSettings,
        make_runner: Callable[..., CommandRunner],
        fake_exec: FakeExecutor,
    ) -> None:
        fake_exec.releases("edc", {"name": "eecc-edc"})
        fake_exec.on("kubectl", "get", "all", stdout="pod/a\nsvc/b\n")
        confirm, asked = _answers(True, False)
        result = StackService(settings, make_runner(), confirm=confirm).uninstall(
            namespace="edc", release="eecc-edc", delete_namespace=True
        )
        assert result.ok
        assert "contains 2 other resources" in asked[1]
        assert result.warnings == ["Namespace 'edc' preserved"]
        assert not fake_exec.called("kubectl", "delete", "namespace")

    def test_namespace_and_cert_manager_removed(
        self,
        settings: EdcSettings,
        make_runner: Callable[..., CommandRunner],
        fake_exec: FakeExecutor,
    ) -> None:
        fake_exec.releases("edc", {"name": "eecc-edc"})
        fake_exec.releases("cert-manager", {"name": "cert-manager"})
        result = StackService(settings, make_runner(), confirm=always_yes).uninstall(
            namespace="edc",
            release="eecc-edc",
            delete_namespace=True,
            remove_cert_manager=True,
        )
        assert result.ok
        assert fake_exec.called("kubectl", "delete", "namespace", "edc")
        assert fake_exec.called("helm", "uninstall", "cert-manager", "--namespace", "cert-manager")
        assert result.data["namespace_deleted"] is True

    def test_verbose_preview_lists_kinds(
        self,
        project: Path,
        make_runner: Callable[..., CommandRunner],
        fake_exec: FakeExecutor,
    ) -> None:
        settings = EdcSettings.from_cli(cwd=project, verbose=True)
        fake_exec.releases("edc", {"name": "eecc-edc"})
        fake_exec.on(
            "helm", "get", "manifest", stdout="kind: Service\n---\nkind: Service\nkind: Pod\n"
        )
        result = StackService(settings, make_runner()).uninstall(
            namespace="edc", release="eecc-edc"
        )
        preview = next(s for s in result.data["steps"] if s["name"] == "preview")
        assert preview["fields"]["kinds"] == {"Pod": 1, "Service": 2}
