"""VerifyService: post-deployment smoke test.

Checks run in groups and every failing group is counted; the operation
fails with ``VERIFY_FAILED`` if any group failed.  The Kubernetes group
stops at its first failing check.  Public hosts come from the
``[verify]`` config section.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Any

import httpx

from edcctl.infrastructure.runner import CommandError
from edcctl.infrastructure.tls import CertificateDates, certificate_dates
from edcctl.services.base import ClusterService, Operation, StepFailed
from edcctl.services.result import ServiceResult
from edcctl.services.telemetry import trace_span, traced

GROUPS = ("k8s", "internal", "endpoints", "ssl")
CLUSTER_GROUPS = frozenset({"k8s", "internal"})


@dataclass(frozen=True)
class EndpointCheck:
    path: str
    expected: int
    description: str


# Component host suffix -> checks.  Non-200 expectations confirm that the
# route reaches the service without credentials or a concrete resource.
ENDPOINTS: dict[str, tuple[EndpointCheck, ...]] = {
    "controlplane": (
        EndpointCheck("/api/check/health", 200, "EDC Control Plane Health"),
        EndpointCheck("/management/v2/assets", 401, "EDC Management API without auth"),
        EndpointCheck("/api/v1/dsp", 404, "EDC DSP Protocol root"),
    ),
    "dataplane": (
        EndpointCheck("/api/check/health", 200, "EDC Data Plane Health"),
        EndpointCheck("/api/public", 404, "EDC Data Plane Public API root"),
    ),
    "dtr": (
        EndpointCheck("/semantics/registry", 404, "Digital Twin Registry root"),
        EndpointCheck(
            "/semantics/registry/api/v3.0/shell-descriptors", 200, "DTR Shell Descriptors"
        ),
    ),
    "submodelserver": (
        EndpointCheck("/", 200, "Submodel Server Root"),
        EndpointCheck("/api", 404, "Submodel Server API root"),
    ),
}


class GroupFailed(Exception):
    pass


CertReader = Callable[..., CertificateDates]


class VerifyService(ClusterService):
    def __init__(
        self,
        *args: Any,
        http_transport: httpx.BaseTransport | None = None,
        cert_reader: CertReader = certificate_dates,
        **kwargs: Any,
    ) -> None:
        super().__init__(*args, **kwargs)
        self._transport = http_transport
        self._cert_reader = cert_reader

    @traced
    def run(
        self,
        *,
        namespace: str,
        release: str,
        timeout: float,
        groups: Iterable[str] = GROUPS,
    ) -> ServiceResult:
        selected = [g for g in GROUPS if g in set(groups)]

        def body(op: Operation) -> None:
            if CLUSTER_GROUPS.intersection(selected):
                op.begin("prerequisites")
                self.runner.require(self.kubectl.binary)
                self.runner.require(self.helm.binary)

            outcomes: dict[str, str] = {}
            for group in selected:
                for name, check in self._group_checks(group, namespace, release, timeout):
                    outcomes[name] = self._run_group(op, name, check)

            failed = [name for name, status in outcomes.items() if status == "failed"]
            op.data.update(namespace=namespace, release=release, groups=outcomes)
            if failed:
                op.begin("summary")
                raise StepFailed(
                    "VERIFY_FAILED",
                    f"{len(failed)} test group(s) failed",
                    failed=failed,
                )
            op.step("summary", detail="All tests passed")

        return self.run_operation("verify", body)

    def _group_checks(
        self, group: str, namespace: str, release: str, timeout: float
    ) -> list[tuple[str, Callable[[Operation], None]]]:
        if group == "k8s":
            return [("k8s", lambda op: self._check_kubernetes(op, namespace, release))]
        if group == "internal":
            return [("internal", lambda op: self._check_internal(op, namespace))]
        if group == "endpoints":
            return [
                (component, lambda op, c=component: self._check_endpoints(op, c, timeout))
                for component in ENDPOINTS
            ]
        return [("ssl", lambda op: self._check_certificates(op, timeout))]

    def _run_group(self, op: Operation, name: str, check: Callable[[Operation], None]) -> str:
        if name not in CLUSTER_GROUPS and not self.settings.verify.domain:
            op.warn(name, f"[verify] domain is not configured; skipping {name} checks")
            return "skipped"
        with trace_span(f"verify.{name}"):
            try:
                check(op)
            except GroupFailed as exc:
                op.step(name, "failed", str(exc))
                return "failed"
        return "passed"

    # --- groups ---

    def _check_kubernetes(self, op: Operation, namespace: str, release: str) -> None:
        if not self.kubectl.namespace_exists(namespace):
            raise GroupFailed(f"Namespace '{namespace}' not found")
        op.step("namespace", detail=f"Namespace '{namespace}' exists")

        if self.helm.release(release, namespace) is None:
            raise GroupFailed(f"Helm release '{release}' not found")
        op.step("release", detail=f"Helm release '{release}' is deployed")

        total = self.kubectl.count("pods", namespace=namespace)
        not_running = self.kubectl.count(
            "pods", namespace=namespace, field_selector="status.phase!=Running"
        )
        if not_running:
            raise GroupFailed(f"{not_running} out of {total} pods are not running")
        op.step("pods", detail=f"All {total} pods are running")

        ingresses = self.kubectl.count("ingress", namespace=namespace)
        if not ingresses:
            raise GroupFailed("No ingresses found")
        op.step("ingresses", detail=f"{ingresses} ingresses are configured")

        try:
            certs = self.kubectl.get_json("certificates", namespace=namespace).get("items", [])
        except CommandError:
            op.step("certificates", "skipped", "Certificate resources not available")
            return
        ready = sum(1 for cert in certs if _certificate_ready(cert))
        if certs and ready == len(certs):
            op.step("certificates", detail=f"All {len(certs)} SSL certificates are ready")
        else:
            op.warn("certificates", f"{ready} out of {len(certs)} SSL certificates are ready")

    def _check_internal(self, op: Operation, namespace: str) -> None:
        cfg = self.settings.verify
        checks = (
            ("vault", cfg.vault_pod, ("vault", "status"), "Vault"),
            ("edc-db", cfg.edc_db_pod, ("pg_isready", "-U", cfg.edc_db_user), "EDC PostgreSQL"),
            ("dtr-db", cfg.dtr_db_pod, ("pg_isready",), "DTR PostgreSQL"),
        )
        failures: list[str] = []
        for name, pod, command, label in checks:
            if self.kubectl.exec_ok(pod, namespace, *command):
                op.step(name, detail=f"{label} is responding")
            else:
                op.step(name, "failed", f"{label} is not responding")
                failures.append(label)
        if failures:
            raise GroupFailed(f"Not responding: {', '.join(failures)}")

    def _check_endpoints(self, op: Operation, component: str, timeout: float) -> None:
        base = f"https://{self.settings.verify.host(component)}"
        failures: list[str] = []
        with httpx.Client(verify=False, timeout=timeout, transport=self._transport) as client:
            for check in ENDPOINTS[component]:
                url = f"{base}{check.path}"
                try:
                    status = client.get(url).status_code
                except httpx.HTTPError:
                    status = 0
                name = f"{component}{check.path}"
                if status == check.expected:
                    op.step(name, detail=f"{check.description} (HTTP {status})")
                else:
                    op.step(
                        name,
                        "failed",
                        f"{check.description} failed "
                        f"(HTTP {status:03d}, expected {check.expected})",
                    )
                    failures.append(check.description)
        if failures:
            raise GroupFailed(f"{len(failures)} {component} endpoint check(s) failed")

    def _check_certificates(self, op: Operation, timeout: float) -> None:
        failures: list[str] = []
        for component in ENDPOINTS:
            host = self.settings.verify.host(component)
            try:
                dates = self._cert_reader(host, timeout=timeout)
            except (OSError, ValueError) as exc:
                op.step(f"ssl-{component}", "failed", f"{host}: {exc}")
                failures.append(host)
                continue
            op.step(
                f"ssl-{component}",
                detail=f"{host} valid until {dates.not_after}",
                **dates.to_dict(),
            )
        if failures:
            raise GroupFailed(f"SSL certificate check failed for {', '.join(failures)}")


def _certificate_ready(cert: dict[str, Any]) -> bool:
    conditions = cert.get("status", {}).get("conditions", [])
    return any(c.get("type") == "Ready" and c.get("status") == "True" for c in conditions)
