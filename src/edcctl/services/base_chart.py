"""BaseChartService: the base-infrastructure Helm chart."""

from __future__ import annotations

from edcctl.services.base import ClusterService, Operation, StepFailed, outcome
from edcctl.services.result import ServiceResult
from edcctl.services.telemetry import traced

HELM_MANAGED = "app.kubernetes.io/managed-by=Helm"


class BaseChartService(ClusterService):
    @traced
    def install(
        self,
        *,
        namespace: str,
        release: str,
        chart: str,
        values_file: str | None = None,
        skip_deps: bool = False,
        timeout: str,
    ) -> ServiceResult:
        def body(op: Operation) -> None:
            self.check_prerequisites(op)
            chart_dir = self.require_chart(op, chart)
            values = self.require_values(op, values_file) if values_file else None
            op.step("chart", detail=str(chart_dir))

            self.create_namespace(op, namespace)

            op.begin("dependencies")
            if skip_deps:
                op.step("dependencies", "skipped", "Skipping dependency update as requested")
            elif self.dry_run:
                op.dry("dependencies", f"Would update dependencies for chart: {chart_dir}")
            else:
                self.helm.dependency_update(chart_dir)
                op.step("dependencies", detail="Dependencies updated")

            op.begin("install")
            self.helm.install(
                release,
                chart_dir,
                namespace=namespace,
                values=values,
                timeout=timeout,
                dry_run=self.dry_run,
            )
            op.step(
                "install",
                "dry-run" if self.dry_run else "ok",
                f"Release '{release}' in namespace '{namespace}'",
            )
            op.data.update(release=release, namespace=namespace, dry_run=self.dry_run)

        return self.run_operation("base_install", body)

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

            op.begin("release")
            info = self.helm.release(release, namespace)
            if info is None:
                elsewhere = sorted(
                    r.get("namespace", "")
                    for r in self.helm.list_releases(all_namespaces=True)
                    if r.get("name") == release
                )
                raise StepFailed(
                    "RELEASE_NOT_FOUND",
                    f"Release '{release}' not found in namespace '{namespace}'",
                    found_in=elsewhere,
                )
            op.step(
                "release",
                detail=f"Release '{release}' will be uninstalled",
                revision=info.get("revision"),
                status=info.get("status"),
                chart=info.get("chart"),
                managed_resources=self.kubectl.count(
                    "all", namespace=namespace, selector=HELM_MANAGED
                ),
            )

            op.confirm(
                self.confirm,
                f"Uninstall release '{release}' from namespace '{namespace}'?",
            )

            op.begin("uninstall")
            out = self.helm.uninstall(release, namespace, timeout=timeout)
            op.step("uninstall", outcome(out), f"Uninstalled release '{release}'")

            if not self.dry_run:
                remaining = self.kubectl.count("all", namespace=namespace)
                if remaining:
                    op.warn(
                        "remaining",
                        f"{remaining} resources remain in namespace '{namespace}'",
                    )

            if delete_namespace:
                op.begin("namespace")
                if self.kubectl.namespace_exists(namespace):
                    out = self.kubectl.delete("namespace", namespace, timeout=timeout)
                    op.step("namespace", outcome(out), f"Deleted namespace '{namespace}'")
                else:
                    op.step("namespace", "skipped", f"Namespace '{namespace}' does not exist")

            if purge_crds:
                op.begin("crds")
                crds = [name for name in self.kubectl.names("crd") if "cert-manager" in name]
                if crds:
                    out = self.kubectl.delete("crd", *crds)
                    op.step("crds", outcome(out), f"Purged {len(crds)} cert-manager CRDs")
                else:
                    op.step("crds", "skipped", "No cert-manager CRDs found")

            op.data.update(release=release, namespace=namespace, dry_run=self.dry_run)

        return self.run_operation("base_uninstall", body)
