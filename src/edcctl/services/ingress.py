"""IngressService: the cluster-wide ingress stack.

cert-manager (namespace ``cert-manager``) and ingress-nginx (namespace
``ingress``).  Uninstall order matters: the controller first, then the
ClusterIssuer, then cert-manager with its CRDs, then cluster-scoped
leftovers.
"""

from __future__ import annotations

from typing import Any

from edcctl.services.base import ClusterService, Operation, StepFailed, outcome
from edcctl.services.result import ServiceResult
from edcctl.services.telemetry import traced

CERT_MANAGER_SELECTOR = "app.kubernetes.io/instance=cert-manager"
CONTROLLER_SELECTOR = "app.kubernetes.io/component=controller"
CONTROLLER_DEPLOYMENT = "ingress-nginx-controller"
WEBHOOK_NAME = "cert-manager-webhook"
INSTALL_TIMEOUT = "300s"
DELETE_TIMEOUT = "120s"


class IngressService(ClusterService):
    @traced
    def install(self, *, force: bool = False) -> ServiceResult:
        """Install cert-manager and ingress-nginx, skipping what is present.

        *force* reinstalls components that are already deployed.
        """

        def body(op: Operation) -> None:
            self.check_prerequisites(op)
            self._install_cert_manager(op, force=force)
            self._install_controller(op, force=force)
            if not self.dry_run:
                self._verify(op)
            op.data["dry_run"] = self.dry_run

        return self.run_operation("ingress_install", body)

    def _install_cert_manager(self, op: Operation, *, force: bool) -> None:
        op.begin("cert-manager")
        cfg = self.settings.ingress
        if not force and self.cert_manager_installed():
            op.step("cert-manager", "skipped", "cert-manager is already installed")
            return
        self.add_repositories(op, "jetstack")
        self.kubectl.ensure_namespace(cfg.cert_manager_namespace)
        out = self.helm.upgrade_install(
            cfg.cert_manager_release,
            "jetstack/cert-manager",
            namespace=cfg.cert_manager_namespace,
            set_values={"installCRDs": "true"},
            wait=True,
            timeout=INSTALL_TIMEOUT,
        )
        op.step("cert-manager", outcome(out), "Installed cert-manager")
        if not out.skipped and not self.kubectl.wait_pods_ready(
            CERT_MANAGER_SELECTOR, cfg.cert_manager_namespace, timeout=INSTALL_TIMEOUT
        ):
            op.warn("cert-manager", "cert-manager pods not ready within timeout")

    def _install_controller(self, op: Operation, *, force: bool) -> None:
        op.begin("ingress-nginx")
        cfg = self.settings.ingress
        present = self.kubectl.namespace_exists(cfg.nginx_namespace) and (
            self.kubectl.resource_exists(
                "deployment", CONTROLLER_DEPLOYMENT, namespace=cfg.nginx_namespace
            )
        )
        if present and not force:
            op.step("ingress-nginx", "skipped", "nginx ingress controller is already installed")
            return
        self.add_repositories(op, "ingress-nginx")
        self.kubectl.ensure_namespace(cfg.nginx_namespace)
        out = self.helm.upgrade_install(
            cfg.nginx_release,
            "ingress-nginx/ingress-nginx",
            namespace=cfg.nginx_namespace,
            wait=True,
            timeout=INSTALL_TIMEOUT,
        )
        op.step("ingress-nginx", outcome(out), "Installed nginx ingress controller")
        if not out.skipped and not self.kubectl.wait_pods_ready(
            CONTROLLER_SELECTOR, cfg.nginx_namespace, timeout=INSTALL_TIMEOUT
        ):
            op.warn("ingress-nginx", "nginx ingress controller pods not ready within timeout")

    def _verify(self, op: Operation) -> None:
        op.begin("verify")
        cfg = self.settings.ingress
        for label, namespace in (
            ("cert-manager", cfg.cert_manager_namespace),
            ("nginx ingress controller", cfg.nginx_namespace),
        ):
            running = self.kubectl.count(
                "pods", namespace=namespace, field_selector="status.phase=Running"
            )
            if not running:
                raise StepFailed("VERIFY_FAILED", f"{label} verification failed")
        op.step("verify", detail="cert-manager and ingress-nginx pods are running")
        op.data["controller_service"] = self._controller_service(cfg.nginx_namespace)

    def _controller_service(self, namespace: str) -> dict[str, Any]:
        svc = self.kubectl.get_json("svc", CONTROLLER_DEPLOYMENT, namespace=namespace)
        lb = (svc.get("status", {}).get("loadBalancer", {}).get("ingress") or [{}])[0]
        return {
            "name": CONTROLLER_DEPLOYMENT,
            "type": svc.get("spec", {}).get("type", ""),
            "external_address": lb.get("ip") or lb.get("hostname") or "",
        }

    @traced
    def uninstall(self) -> ServiceResult:
        def body(op: Operation) -> None:
            self.check_prerequisites(op)
            op.confirm(
                self.confirm,
                "This will uninstall ingress-nginx, cert-manager and the ClusterIssuer. Proceed?",
            )
            ingresses = self.kubectl.count("ingress", all_namespaces=True)
            if ingresses:
                op.confirm(
                    self.confirm,
                    f"Found {ingresses} ingress resource(s) that will stop working. Continue?",
                )
            certificates = self.kubectl.count("certificates", all_namespaces=True)
            if certificates:
                op.confirm(
                    self.confirm,
                    f"Found {certificates} certificate(s) that will be removed. Continue?",
                )

            self._remove_controller(op)
            self._remove_cluster_issuer(op)
            self._remove_cert_manager(op)
            self._remove_cluster_resources(op)
            if not self.dry_run:
                self._report_leftovers(op)
            op.data["dry_run"] = self.dry_run

        return self.run_operation("ingress_uninstall", body)

    def _remove_controller(self, op: Operation) -> None:
        op.begin("ingress-nginx")
        cfg = self.settings.ingress
        if not self.kubectl.namespace_exists(cfg.nginx_namespace):
            op.warn("ingress-nginx", f"Namespace '{cfg.nginx_namespace}' not found, skipping")
            return
        if self.helm.release(cfg.nginx_release, cfg.nginx_namespace) is None:
            op.warn("ingress-nginx", "nginx ingress controller helm release not found")
        else:
            out = self.helm.uninstall(cfg.nginx_release, cfg.nginx_namespace)
            op.step("ingress-nginx", outcome(out), "Uninstalled nginx ingress controller")
            if not out.skipped:
                self.kubectl.wait_pods_deleted(
                    CONTROLLER_SELECTOR, cfg.nginx_namespace, timeout=DELETE_TIMEOUT
                )
        out = self.kubectl.delete("namespace", cfg.nginx_namespace)
        op.step("ingress-namespace", outcome(out), f"Deleted namespace '{cfg.nginx_namespace}'")

    def _remove_cluster_issuer(self, op: Operation) -> None:
        op.begin("clusterissuer")
        cfg = self.settings.ingress
        if self.kubectl.resource_exists("clusterissuer", cfg.cluster_issuer):
            out = self.kubectl.delete("clusterissuer", cfg.cluster_issuer)
            op.step("clusterissuer", outcome(out), f"Deleted ClusterIssuer '{cfg.cluster_issuer}'")
        else:
            op.warn("clusterissuer", f"ClusterIssuer '{cfg.cluster_issuer}' not found, skipping")
        if self.kubectl.resource_exists(
            "secret", cfg.cluster_issuer, namespace=cfg.cert_manager_namespace
        ):
            out = self.kubectl.delete(
                "secret", cfg.cluster_issuer, namespace=cfg.cert_manager_namespace
            )
            op.step("acme-secret", outcome(out), "Deleted ACME account key secret")

    def _remove_cert_manager(self, op: Operation) -> None:
        op.begin("cert-manager")
        cfg = self.settings.ingress
        if not self.kubectl.namespace_exists(cfg.cert_manager_namespace):
            op.warn("cert-manager", "cert-manager namespace not found, skipping")
        else:
            if self.helm.release(cfg.cert_manager_release, cfg.cert_manager_namespace) is None:
                op.warn("cert-manager", "cert-manager helm release not found")
            else:
                out = self.helm.uninstall(cfg.cert_manager_release, cfg.cert_manager_namespace)
                op.step("cert-manager", outcome(out), "Uninstalled cert-manager")
                if not out.skipped:
                    self.kubectl.wait_pods_deleted(
                        CERT_MANAGER_SELECTOR, cfg.cert_manager_namespace, timeout=DELETE_TIMEOUT
                    )
            out = self.kubectl.delete("namespace", cfg.cert_manager_namespace)
            op.step(
                "cert-manager-namespace",
                outcome(out),
                f"Deleted namespace '{cfg.cert_manager_namespace}'",
            )
        op.begin("cert-manager-crds")
        out = self.kubectl.delete("crd", *cfg.cert_manager_crds)
        op.step("cert-manager-crds", outcome(out), f"{len(cfg.cert_manager_crds)} CRDs")

    def _remove_cluster_resources(self, op: Operation) -> None:
        op.begin("cluster-resources")
        self.kubectl.delete("ingressclass", self.settings.ingress.ingress_class)
        self.kubectl.delete("validatingwebhookconfigurations", WEBHOOK_NAME)
        out = self.kubectl.delete("mutatingwebhookconfigurations", WEBHOOK_NAME)
        op.step("cluster-resources", outcome(out), "IngressClass and webhook configurations")

    def _report_leftovers(self, op: Operation) -> None:
        op.begin("leftovers")
        cfg = self.settings.ingress
        leftovers: list[str] = []
        for namespace in (cfg.nginx_namespace, cfg.cert_manager_namespace):
            if self.kubectl.namespace_exists(namespace):
                leftovers.append(f"{namespace} namespace still exists")
        releases = [r.get("name", "") for r in self.helm.list_releases(all_namespaces=True)]
        for name in (cfg.nginx_release, cfg.cert_manager_release):
            if name in releases:
                leftovers.append(f"{name} helm release still exists")
        if self.kubectl.resource_exists("clusterissuer", cfg.cluster_issuer):
            leftovers.append(f"ClusterIssuer '{cfg.cluster_issuer}' still exists")

        for message in leftovers:
            op.warn("leftovers", message)
        if not leftovers:
            op.step("leftovers", detail="Ingress stack fully removed")
