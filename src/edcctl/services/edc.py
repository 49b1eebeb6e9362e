"""EdcService: install, uninstall and upgrade the standalone EDC chart.

Upgrade pipeline:
    PREREQUISITES → CURRENT STATE → CONFIRM → BACKUP → REPOSITORIES →
    DEPENDENCIES → UPGRADE (or ROLLBACK) → VERIFY
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Any

from edcctl.infrastructure.backup import create_backup
from edcctl.services.base import ClusterService, Operation, StepFailed, outcome
from edcctl.services.result import ServiceResult
from edcctl.services.telemetry import traced

EDC_CRD_PATTERN = re.compile(r"edc|tractus")
EDC_REPOSITORIES = ("tractusx-dev", "hashicorp")
POD_READY_TIMEOUT = "300s"


def instance_selector(release: str) -> str:
    return f"app.kubernetes.io/instance={release}"


def _release_state(info: dict[str, Any]) -> dict[str, Any]:
    return {
        "revision": info.get("revision"),
        "status": info.get("status"),
        "chart": info.get("chart"),
    }


class EdcService(ClusterService):
    """Lifecycle of one EDC Helm release."""

    @traced
    def install(
        self,
        *,
        namespace: str,
        release: str,
        values_file: str,
        chart: str,
        timeout: str,
        skip_deps: bool = False,
    ) -> ServiceResult:
        def body(op: Operation) -> None:
            self.check_prerequisites(op)

            op.begin("cert-manager")
            if self.cert_manager_installed():
                op.step("cert-manager", detail="cert-manager is available")
            else:
                op.warn(
                    "cert-manager",
                    "cert-manager not found; TLS certificates will not be issued",
                )

            chart_dir = self.require_chart(op, chart)
            values = self.require_values(op, values_file)
            op.step("chart", detail=str(chart_dir))

            self.add_repositories(op, *EDC_REPOSITORIES)

            op.begin("namespace")
            out = self.kubectl.ensure_namespace(namespace)
            op.step("namespace", outcome(out), f"Namespace '{namespace}' ensured")

            self._update_dependencies(op, chart_dir, skip=skip_deps)

            op.begin("install")
            self.helm.upgrade_install(
                release,
                chart_dir,
                namespace=namespace,
                values=values,
                wait=True,
                timeout=timeout,
                dry_run=self.dry_run,
            )
            op.step(
                "install",
                "dry-run" if self.dry_run else "ok",
                f"Release '{release}' in namespace '{namespace}'",
            )

            if not self.dry_run:
                self._verify_install(op, release, namespace)
            op.data.update(release=release, namespace=namespace, dry_run=self.dry_run)

        return self.run_operation("edc_install", body)

    def _update_dependencies(self, op: Operation, chart_dir: Path, *, skip: bool) -> None:
        op.begin("dependencies")
        if skip:
            op.step("dependencies", "skipped", "Skipping dependency update as requested")
            return
        out = self.helm.dependency_update(chart_dir)
        op.step("dependencies", outcome(out), "Helm dependencies updated")

    def _verify_install(self, op: Operation, release: str, namespace: str) -> None:
        op.begin("verify")
        if self.helm.release(release, namespace) is None:
            raise StepFailed("RELEASE_NOT_FOUND", f"Release '{release}' not found after install")
        if not self.kubectl.wait_pods_ready(
            instance_selector(release), namespace, timeout=POD_READY_TIMEOUT
        ):
            op.warn(
                "verify",
                f"Some pods may not be ready yet. Check with: kubectl get pods -n {namespace}",
            )
        else:
            op.step("verify", detail="All release pods are ready")
        op.data["services"] = self.kubectl.names("svc", namespace=namespace)
        op.data["ingresses"] = self.kubectl.names("ingress", namespace=namespace)

    @traced
    def uninstall(
        self,
        *,
        namespace: str,
        release: str,
        timeout: str,
        delete_namespace: bool = False,
        purge_crds: bool = False,
    ) -> ServiceResult:
        def body(op: Operation) -> None:
            self.check_prerequisites(op)

            op.begin("preview")
            info = self.helm.release(release, namespace)
            namespace_present = self.kubectl.namespace_exists(namespace)
            preview: dict[str, Any] = {"release_found": info is not None}
            if namespace_present:
                preview.update(
                    resources=self.kubectl.count("all", namespace=namespace),
                    pvcs=self.kubectl.count("pvc", namespace=namespace),
                    secrets=self.kubectl.count("secrets", namespace=namespace),
                )
            op.step("preview", detail=f"Release '{release}' in namespace '{namespace}'", **preview)

            op.confirm(self.confirm, f"Uninstall EDC release '{release}'?")

            op.begin("uninstall")
            if info is None:
                op.step("uninstall", "skipped", f"Release '{release}' not found")
            else:
                self.helm.uninstall(release, namespace, timeout=timeout, dry_run=self.dry_run)
                op.step(
                    "uninstall",
                    "dry-run" if self.dry_run else "ok",
                    f"Uninstalled release '{release}'",
                )

            if namespace_present:
                self._cleanup_leftovers(op, release, namespace, timeout)
            if delete_namespace:
                self._delete_namespace(op, namespace, timeout, present=namespace_present)
            if purge_crds:
                self._purge_crds(op)

            op.data.update(release=release, namespace=namespace, dry_run=self.dry_run)

        return self.run_operation("edc_uninstall", body)

    def _cleanup_leftovers(
        self, op: Operation, release: str, namespace: str, timeout: str
    ) -> None:
        op.begin("cleanup")
        selector = instance_selector(release)
        results = {
            "pvcs": self.kubectl.delete(
                "pvc", namespace=namespace, all_resources=True, timeout=timeout, check=False
            ),
            "secrets": self.kubectl.delete(
                "secrets", namespace=namespace, selector=selector, check=False
            ),
            "configmaps": self.kubectl.delete(
                "configmaps", namespace=namespace, selector=selector, check=False
            ),
        }
        for kind, out in results.items():
            if out.ok:
                op.step(f"cleanup-{kind}", outcome(out), f"Deleted {kind}")
            else:
                op.warn(f"cleanup-{kind}", f"Failed to delete some {kind}")

    def _delete_namespace(
        self, op: Operation, namespace: str, timeout: str, *, present: bool
    ) -> None:
        op.begin("namespace")
        if not present:
            op.step("namespace", "skipped", f"Namespace '{namespace}' does not exist")
            return
        if not op.ask(
            self.confirm,
            f"Delete namespace '{namespace}' and everything in it?",
            skipped=f"Namespace '{namespace}' preserved",
        ):
            return
        out = self.kubectl.delete("namespace", namespace, ignore_not_found=False, timeout=timeout)
        op.step("namespace", outcome(out), f"Deleted namespace '{namespace}'")

    def _purge_crds(self, op: Operation) -> None:
        op.begin("crds")
        crds = [name for name in self.kubectl.names("crd") if EDC_CRD_PATTERN.search(name)]
        if not crds:
            op.step("crds", "skipped", "No EDC CRDs found")
            return
        if not op.ask(
            self.confirm,
            f"Delete {len(crds)} EDC CRDs cluster-wide?",
            skipped="EDC CRDs preserved",
        ):
            return
        out = self.kubectl.delete("crd", *crds, check=False)
        if out.ok:
            op.step("crds", outcome(out), f"Purged {len(crds)} EDC CRDs", crds=crds)
        else:
            op.warn("crds", "Failed to delete some EDC CRDs")

    @traced
    def upgrade(
        self,
        *,
        namespace: str,
        release: str,
        values_file: str,
        chart: str,
        timeout: str,
        backup_dir: str,
        version: str | None = None,
        rollback: int | None = None,
        skip_backup: bool = False,
        skip_deps: bool = False,
    ) -> ServiceResult:
        def body(op: Operation) -> None:
            self.check_prerequisites(op)

            op.begin("current")
            info = self.helm.release(release, namespace)
            if info is None:
                raise StepFailed(
                    "RELEASE_NOT_FOUND",
                    f"Release '{release}' not found in namespace '{namespace}'",
                )
            current = _release_state(info)
            op.data["previous"] = current
            op.step("current", detail=f"Revision {current['revision']}", **current)

            values = None if rollback is not None else self.require_values(op, values_file)
            if current["status"] != "deployed":
                op.confirm(
                    self.confirm,
                    f"Release status is '{current['status']}'. Continue anyway?",
                )

            if rollback is not None:
                op.confirm(self.confirm, f"Roll back '{release}' to revision {rollback}?")
                op.begin("rollback")
                self.helm.rollback(
                    release,
                    rollback,
                    namespace,
                    wait=True,
                    timeout=timeout,
                    dry_run=self.dry_run,
                )
                op.step(
                    "rollback",
                    "dry-run" if self.dry_run else "ok",
                    f"Rolled back to revision {rollback}",
                )
            else:
                chart_dir = self.require_chart(op, chart)
                op.confirm(
                    self.confirm,
                    f"Upgrade '{release}' from revision {current['revision']}?",
                )
                self._backup(op, release, namespace, backup_dir, info, skip=skip_backup)
                self.add_repositories(op, *EDC_REPOSITORIES)
                self._update_dependencies(op, chart_dir, skip=skip_deps)

                op.begin("upgrade")
                self.helm.upgrade(
                    release,
                    chart_dir,
                    namespace=namespace,
                    values=values,
                    wait=True,
                    timeout=timeout,
                    version=version,
                    dry_run=self.dry_run,
                )
                op.step(
                    "upgrade",
                    "dry-run" if self.dry_run else "ok",
                    f"Upgraded '{release}'" + (f" to version {version}" if version else ""),
                )

            if not self.dry_run:
                self._verify_upgrade(
                    op, release, namespace, current, rolled_back=rollback is not None
                )
            op.data.update(
                release=release,
                namespace=namespace,
                dry_run=self.dry_run,
                rollback_command=(
                    f"helm rollback {release} {current['revision']} -n {namespace}"
                ),
            )

        return self.run_operation("edc_upgrade", body)

    def _backup(
        self,
        op: Operation,
        release: str,
        namespace: str,
        backup_dir: str,
        info: dict[str, Any],
        *,
        skip: bool,
    ) -> None:
        op.begin("backup")
        if skip:
            op.warn("backup", "Skipping backup as requested")
            return
        if self.dry_run:
            op.step("backup", "skipped", "Skipping backup for dry run")
            return
        report = create_backup(
            self.helm,
            self.kubectl,
            release=release,
            namespace=namespace,
            backup_dir=self.settings.resolve_path(backup_dir),
            release_info=info,
        )
        op.data["backup"] = report.to_dict()
        op.step("backup", detail=f"Backup created at: {report.path}")

    def _verify_upgrade(
        self,
        op: Operation,
        release: str,
        namespace: str,
        previous: dict[str, Any],
        *,
        rolled_back: bool,
    ) -> None:
        op.begin("verify")
        info = self.helm.release(release, namespace)
        state = _release_state(info or {})
        op.data["current"] = state
        if state["status"] != "deployed":
            raise StepFailed(
                "UPGRADE_FAILED",
                f"Upgrade failed - status is '{state['status']}'",
                **state,
            )
        if not rolled_back and state["revision"] == previous["revision"]:
            op.warn("verify", "Revision number unchanged - no upgrade may have occurred")
        if not self.kubectl.wait_pods_ready(
            instance_selector(release), namespace, timeout=POD_READY_TIMEOUT
        ):
            raise StepFailed(
                "PODS_NOT_READY",
                f"Some pods are not ready. Check with: kubectl get pods -n {namespace}",
            )
        op.step("verify", detail=f"Revision {state['revision']} deployed", **state)
