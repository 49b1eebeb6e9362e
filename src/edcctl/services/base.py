"""Service foundations: step recording, failure mapping, cluster access.

A service method builds an :class:`Operation`, runs its steps through
:meth:`Operation.execute` and gets a :class:`ServiceResult` back.  Typed
infrastructure exceptions raised by a step become an error result whose
code decides the CLI exit status.
"""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import TYPE_CHECKING, Any

import structlog

from edcctl.infrastructure.edc import EdcApiError
from edcctl.infrastructure.envfile import EnvironmentFileError
from edcctl.infrastructure.helm import Helm
from edcctl.infrastructure.kubectl import Kubectl
from edcctl.infrastructure.runner import (
    CommandError,
    CommandOutput,
    CommandRunner,
    MissingBinaryError,
)
from edcctl.services.result import ServiceError, ServiceResult, Step, StepStatus

if TYPE_CHECKING:
    from edcctl.config.settings import EdcSettings

logger = structlog.get_logger(__name__)

Confirm = Callable[[str], bool]


class StepFailed(Exception):
    """Abort the current operation with a specific error code."""

    def __init__(self, code: str, message: str, **detail: Any) -> None:
        self.code = code
        self.message = message
        self.detail = detail
        super().__init__(message)


class Cancelled(Exception):
    """The user declined a confirmation prompt."""


def always_yes(_prompt: str) -> bool:
    return True


def outcome(out: CommandOutput) -> StepStatus:
    """Step status for a command the dry-run guard may have suppressed."""
    return "dry-run" if out.skipped else "ok"


class Operation:
    """Accumulates the steps and warnings of one service operation."""

    def __init__(self, op: str) -> None:
        self.op = op
        self.steps: list[Step] = []
        self.warnings: list[str] = []
        self.data: dict[str, Any] = {}
        self.current: str = op

    def begin(self, name: str) -> None:
        """Name the step that a subsequent failure will be attributed to."""
        self.current = name

    def step(self, name: str, status: StepStatus = "ok", detail: str = "", **fields: Any) -> None:
        self.current = name
        self.steps.append(Step(name=name, status=status, detail=detail, fields=fields))
        logger.info("step", op=self.op, step=name, status=status, detail=detail)

    def warn(self, name: str, message: str, **fields: Any) -> None:
        self.step(name, "warning", message, **fields)
        self.warnings.append(message)

    def dry(self, name: str, detail: str, **fields: Any) -> None:
        self.step(name, "dry-run", detail, **fields)

    def confirm(self, confirm: Confirm, prompt: str) -> None:
        """Ask *prompt*; raise :class:`Cancelled` on a negative answer."""
        if not confirm(prompt):
            raise Cancelled(prompt)

    def ask(self, confirm: Confirm, prompt: str, *, skipped: str) -> bool:
        """Ask about an optional follow-up; a refusal skips it with a warning."""
        if confirm(prompt):
            return True
        self.warn(self.current, skipped)
        return False

    def _payload(self) -> dict[str, Any]:
        return {**self.data, "steps": [s.model_dump() for s in self.steps]}

    def succeed(self) -> ServiceResult:
        return ServiceResult(ok=True, op=self.op, data=self._payload(), warnings=self.warnings)

    def fail(self, code: str, message: str, **detail: Any) -> ServiceResult:
        self.steps.append(Step(name=self.current, status="failed", detail=message))
        logger.warning("operation_failed", op=self.op, step=self.current, code=code)
        return ServiceResult(
            ok=False,
            op=self.op,
            data=self._payload(),
            warnings=self.warnings,
            error=ServiceError(code=code, message=message, detail=detail),
        )

    def execute(self, body: Callable[[Operation], None]) -> ServiceResult:
        """Run *body* and translate infrastructure failures into results."""
        try:
            body(self)
        except StepFailed as exc:
            return self.fail(exc.code, exc.message, **exc.detail)
        except Cancelled:
            return self.fail("CANCELLED", "Operation cancelled by user")
        except MissingBinaryError as exc:
            return self.fail("MISSING_BINARY", str(exc), binary=exc.binary)
        except CommandError as exc:
            return self.fail(
                "COMMAND_FAILED",
                str(exc),
                argv=exc.argv,
                returncode=exc.returncode,
                stderr=exc.stderr,
            )
        except EdcApiError as exc:
            return self.fail("EDC_API_ERROR", str(exc), status=exc.status, body=exc.body)
        except EnvironmentFileError as exc:
            return self.fail("ENV_INVALID", "; ".join(exc.problems), problems=exc.problems)
        return self.succeed()


class ClusterService:
    """Base for services that drive ``kubectl`` and ``helm``."""

    def __init__(
        self,
        settings: EdcSettings,
        runner: CommandRunner | None = None,
        *,
        confirm: Confirm = always_yes,
    ) -> None:
        self.settings = settings
        self.runner = runner or CommandRunner()
        self.kubectl = Kubectl(self.runner)
        self.helm = Helm(self.runner, debug=settings.verbose)
        self.confirm = confirm

    @property
    def dry_run(self) -> bool:
        return self.runner.dry_run

    def check_prerequisites(self, op: Operation) -> None:
        """kubectl and helm on PATH, then a reachable cluster."""
        op.begin("prerequisites")
        self.runner.require(self.kubectl.binary)
        self.runner.require(self.helm.binary)
        if not self.kubectl.cluster_reachable():
            raise StepFailed("CLUSTER_UNREACHABLE", "Cannot connect to Kubernetes cluster")
        op.step("prerequisites", detail="kubectl and helm available, cluster reachable")

    def add_repositories(self, op: Operation, *names: str) -> None:
        """Add Helm repos (failures are warnings), then ``helm repo update``."""
        op.begin("repositories")
        for name in names:
            out = self.helm.repo_add(name, self.settings.repositories.url(name))
            if not out.ok:
                op.warn("repo_add", f"helm repo add {name} failed: {out.stderr.strip()}")
        self.helm.repo_update()
        op.step(
            "repositories",
            "dry-run" if self.dry_run else "ok",
            ", ".join(names),
        )

    def require_chart(self, op: Operation, chart: str | Path) -> Path:
        """Resolve *chart* and insist on a ``Chart.yaml`` inside it."""
        op.begin("chart")
        chart_dir = self.settings.resolve_path(chart)
        if not (chart_dir / "Chart.yaml").is_file():
            raise StepFailed(
                "CHART_NOT_FOUND", f"Chart.yaml not found at: {chart_dir / 'Chart.yaml'}"
            )
        return chart_dir

    def require_values(self, op: Operation, values_file: str | Path) -> Path:
        op.begin("values")
        values = self.settings.resolve_path(values_file)
        if not values.is_file():
            raise StepFailed("VALUES_NOT_FOUND", f"Values file not found: {values}")
        return values

    def cert_manager_installed(self) -> bool:
        ingress = self.settings.ingress
        return self.kubectl.namespace_exists(
            ingress.cert_manager_namespace
        ) and self.kubectl.resource_exists(
            "deployment", "cert-manager", namespace=ingress.cert_manager_namespace
        )

    def create_namespace(self, op: Operation, namespace: str) -> None:
        """Create *namespace* unless it already exists."""
        op.begin("namespace")
        if self.kubectl.namespace_exists(namespace):
            op.step("namespace", "skipped", f"Namespace '{namespace}' already exists")
            return
        out = self.kubectl.create_namespace(namespace)
        op.step("namespace", outcome(out), f"Created namespace '{namespace}'")

    def run_operation(self, name: str, body: Callable[[Operation], None]) -> ServiceResult:
        """Execute *body* as operation *name*.

        Commands suppressed by the dry-run guard are listed in
        ``meta["would_run"]``.
        """
        result = Operation(name).execute(body)
        if self.runner.would_run:
            meta = {
                **(result.meta or {}),
                "would_run": [" ".join(argv) for argv in self.runner.would_run],
            }
            result = result.model_copy(update={"meta": meta})
        return result
