"""StackService: install and uninstall the umbrella deployment.

Install pipeline:
    PREREQUISITES → CHART → REPOSITORIES → NAMESPACE → CERT-MANAGER →
    CLUSTERISSUER → INGRESS-NGINX → DEPENDENCIES → [VALIDATE] → EDC → NEXT STEPS

The umbrella chart directory holds ``Chart.yaml``, the ClusterIssuer
template and the EDC chart under ``charts/edc``.
"""

from __future__ import annotations

from collections import Counter
from pathlib import Path

from edcctl.services.base import ClusterService, Operation, StepFailed, outcome
from edcctl.services.result import ServiceResult
from edcctl.services.telemetry import traced

CLUSTER_ISSUER_CRD = "clusterissuers.cert-manager.io"
CLUSTER_ISSUER_TEMPLATE = "templates/clusterissuer.yaml"
CERT_MANAGER_SELECTORS = (
    "app.kubernetes.io/name=cert-manager",
    "app.kubernetes.io/name=cainjector",
    "app.kubernetes.io/name=webhook",
)
EDC_SELECTORS = {
    "controlplane": "app.kubernetes.io/name=tractusx-connector-controlplane",
    "digital-twin-registry": "app.kubernetes.io/name=digital-twin-registry",
}


class StackService(ClusterService):
    """Umbrella install/uninstall of cert-manager, ingress-nginx and the EDC."""

    @traced
    def install(
        self,
        *,
        namespace: str,
        release: str,
        values_file: str,
        chart: str,
    ) -> ServiceResult:
        def body(op: Operation) -> None:
            self.check_prerequisites(op)
            chart_dir = self.require_chart(op, chart)
            values = self.require_values(op, values_file)
            edc_chart = self.require_chart(op, chart_dir / "charts" / "edc")
            op.step("chart", detail=str(chart_dir))

            self.add_repositories(op, "ingress-nginx", "jetstack", "hashicorp")
            self.create_namespace(op, namespace)
            self._install_cert_manager(op)
            self._install_cluster_issuer(op, chart_dir, values)
            self._install_ingress_nginx(op, namespace)

            op.begin("dependencies")
            out = self.helm.dependency_update(edc_chart)
            op.step("dependencies", outcome(out), str(edc_chart))

            if self.dry_run:
                self._validate(op, release, edc_chart, namespace, values)
            self._install_edc(op, release, edc_chart, namespace, values)

            op.data.update(
                release=release,
                namespace=namespace,
                dry_run=self.dry_run,
                next_steps=[
                    f"kubectl get pods -n {namespace}",
                    f"helm status {release} -n {namespace}",
                    f"kubectl get ingress -n {namespace}",
                    f"kubectl get certificates -n {namespace}",
                    "kubectl get clusterissuer",
                ],
            )

        return self.run_operation("install", body)

    def _install_cert_manager(self, op: Operation) -> None:
        op.begin("cert-manager")
        if self.kubectl.crd_exists(CLUSTER_ISSUER_CRD):
            op.step("cert-manager", "skipped", "cert-manager CRDs already present")
            return

        ingress = self.settings.ingress
        out = self.helm.install(
            ingress.cert_manager_release,
            "jetstack/cert-manager",
            namespace=ingress.cert_manager_namespace,
            create_namespace=True,
            set_values={"installCRDs": "true"},
        )
        op.step("cert-manager", outcome(out), "Installed cert-manager")
        if out.skipped:
            return
        for selector in CERT_MANAGER_SELECTORS:
            ready = self.kubectl.wait_pods_ready(
                selector,
                ingress.cert_manager_namespace,
                timeout=self.settings.cluster.wait_timeout,
            )
            if not ready:
                op.warn("cert-manager", f"Pods {selector} not ready within timeout")

    def _install_cluster_issuer(self, op: Operation, chart_dir: Path, values: Path) -> None:
        op.begin("clusterissuer")
        name = self.settings.ingress.cluster_issuer
        if self.kubectl.resource_exists("clusterissuer", name):
            op.step("clusterissuer", "skipped", f"ClusterIssuer '{name}' already exists")
            return
        if self.dry_run:
            op.dry("clusterissuer", f"Would install ClusterIssuer '{name}'")
            return
        manifest = self.helm.template(chart_dir, values=values, show_only=CLUSTER_ISSUER_TEMPLATE)
        self.kubectl.apply_manifest(manifest)
        op.step("clusterissuer", detail=f"Installed ClusterIssuer '{name}'")

    def _install_ingress_nginx(self, op: Operation, namespace: str) -> None:
        op.begin("ingress-nginx")
        release = self.settings.ingress.nginx_release
        if any(r.get("name") == release for r in self.helm.list_releases(namespace)):
            op.step("ingress-nginx", "skipped", "ingress-nginx already installed")
            return
        out = self.helm.upgrade_install(
            release,
            "ingress-nginx/ingress-nginx",
            namespace=namespace,
            create_namespace=True,
            set_values={"controller.service.type": "LoadBalancer"},
        )
        op.step("ingress-nginx", outcome(out), "Installed ingress-nginx")
        if out.skipped:
            return
        ready = self.kubectl.wait_pods_ready(
            "app.kubernetes.io/name=ingress-nginx",
            namespace,
            timeout=self.settings.cluster.wait_timeout,
        )
        if not ready:
            op.warn("ingress-nginx", "ingress-nginx pods not ready within timeout")

    def _validate(
        self, op: Operation, release: str, edc_chart: Path, namespace: str, values: Path
    ) -> None:
        op.begin("validate")
        if not self.kubectl.crd_exists(CLUSTER_ISSUER_CRD):
            op.warn("validate", "cert-manager CRDs not found - skipping full dry-run validation")
            return
        self.helm.install(release, edc_chart, namespace=namespace, values=values, dry_run=True)
        op.step("validate", detail="EDC chart validation passed")

    def _install_edc(
        self, op: Operation, release: str, edc_chart: Path, namespace: str, values: Path
    ) -> None:
        op.begin("edc")
        out = self.helm.upgrade_install(release, edc_chart, namespace=namespace, values=values)
        op.step("edc", outcome(out), f"Release '{release}' in namespace '{namespace}'")
        if out.skipped:
            return
        for component, selector in EDC_SELECTORS.items():
            ready = self.kubectl.wait_pods_ready(
                selector, namespace, timeout=self.settings.cluster.wait_timeout
            )
            if not ready:
                op.warn("edc", f"{component} pod not ready within timeout")

    @traced
    def uninstall(
        self,
        *,
        namespace: str,
        release: str,
        delete_namespace: bool = False,
        remove_cert_manager: bool = False,
        force: bool = False,
    ) -> ServiceResult:
        def body(op: Operation) -> None:
            self.check_prerequisites(op)

            op.begin("release")
            info = self.helm.release(release, namespace)
            if info is None:
                others = [r.get("name", "") for r in self.helm.list_releases(namespace)]
                if not force:
                    raise StepFailed(
                        "RELEASE_NOT_FOUND",
                        f"Release '{release}' not found in namespace '{namespace}'. "
                        "Use --force to continue anyway.",
                        releases=others,
                    )
                op.warn("release", "Release not found, but continuing due to --force flag")
            else:
                fields: dict[str, object] = {
                    "revision": info.get("revision"),
                    "chart": info.get("chart"),
                }
                if self.settings.verbose:
                    fields["kinds"] = self._manifest_kinds(release, namespace)
                op.step("preview", detail=f"Release '{release}' will be uninstalled", **fields)

            op.confirm(
                self.confirm,
                f"Uninstall release '{release}' from namespace '{namespace}'?",
            )

            if info is not None:
                op.begin("uninstall")
                out = self.helm.uninstall(release, namespace)
                op.step("uninstall", outcome(out), f"Uninstalled release '{release}'")

            if delete_namespace:
                self._delete_namespace(op, namespace)
            if remove_cert_manager:
                self._remove_cert_manager(op)

            op.data.update(
                release=release,
                namespace=namespace,
                namespace_deleted=delete_namespace,
                dry_run=self.dry_run,
            )

        return self.run_operation("uninstall", body)

    def _manifest_kinds(self, release: str, namespace: str) -> dict[str, int]:
        manifest = self.helm.get("manifest", release, namespace)
        kinds = Counter(
            line.split(":", 1)[1].strip()
            for line in manifest.splitlines()
            if line.startswith("kind:")
        )
        return dict(sorted(kinds.items()))

    def _delete_namespace(self, op: Operation, namespace: str) -> None:
        op.begin("namespace")
        if not self.kubectl.namespace_exists(namespace):
            op.step("namespace", "skipped", f"Namespace '{namespace}' does not exist")
            return
        remaining = self.kubectl.count("all", namespace=namespace)
        if remaining and not op.ask(
            self.confirm,
            f"Namespace '{namespace}' contains {remaining} other resources. Delete anyway?",
            skipped=f"Namespace '{namespace}' preserved",
        ):
            return
        out = self.kubectl.delete("namespace", namespace, ignore_not_found=False)
        op.step("namespace", outcome(out), f"Deleted namespace '{namespace}'")

    def _remove_cert_manager(self, op: Operation) -> None:
        op.begin("cert-manager")
        ingress = self.settings.ingress
        if self.helm.release(ingress.cert_manager_release, ingress.cert_manager_namespace) is None:
            op.step("cert-manager", "skipped", "cert-manager release not found")
            return
        out = self.helm.uninstall(ingress.cert_manager_release, ingress.cert_manager_namespace)
        op.step("cert-manager", outcome(out), "Removed cert-manager")
