"""Shared pytest fixtures and test doubles for edcctl tests."""

from __future__ import annotations

import functools
import json
import logging
import subprocess
from collections.abc import Callable, Generator
from pathlib import Path
from typing import Any

import httpx
import pytest
from click.testing import CliRunner

from edcctl.config.settings import EdcSettings
from edcctl.infrastructure.runner import CommandRunner
from edcctl.services.telemetry import disable_telemetry

WORKFLOW_ENV = {
    "ASSET_ID": "asset-1",
    "PROVIDER_URL": "https://provider.test",
    "PROVIDER_BPN": "BPNL000000000001",
    "PROVIDER_API_KEY": "provider-key",
    "CONSUMER_URL": "https://consumer.test",
    "CONSUMER_BPN": "BPNL000000000002",
    "CONSUMER_API_KEY": "consumer-key",
}


# ---------------------------------------------------------------------------
# Subprocess double
# ---------------------------------------------------------------------------


class FakeExecutor:
    """Scripted stand-in for ``subprocess.run``.

    Rules match on an argv prefix; the most recently added rule wins.
    Unmatched commands succeed with empty output.
    """

    def __init__(self) -> None:
        self.rules: list[tuple[tuple[str, ...], int, str, str]] = []
        self.calls: list[tuple[str, ...]] = []
        self.inputs: list[str | None] = []

    def on(
        self, *prefix: str, returncode: int = 0, stdout: str = "", stderr: str = ""
    ) -> FakeExecutor:
        self.rules.insert(0, (prefix, returncode, stdout, stderr))
        return self

    def fail(self, *prefix: str, stderr: str = "error") -> FakeExecutor:
        return self.on(*prefix, returncode=1, stderr=stderr)

    def releases(self, namespace: str, *entries: dict[str, Any]) -> FakeExecutor:
        """Script ``helm list -o json -n <namespace>``."""
        return self.on("helm", "list", "-o", "json", "-n", namespace, stdout=json.dumps(entries))

    def __call__(self, argv: list[str], **kwargs: Any) -> subprocess.CompletedProcess[str]:
        command = tuple(argv)
        self.calls.append(command)
        self.inputs.append(kwargs.get("input"))
        for prefix, returncode, stdout, stderr in self.rules:
            if command[: len(prefix)] == prefix:
                return subprocess.CompletedProcess(argv, returncode, stdout, stderr)
        return subprocess.CompletedProcess(argv, 0, "", "")

    def called(self, *prefix: str) -> bool:
        return any(c[: len(prefix)] == prefix for c in self.calls)

    def matching(self, *prefix: str) -> list[tuple[str, ...]]:
        return [c for c in self.calls if c[: len(prefix)] == prefix]

    @property
    def mutating(self) -> list[tuple[str, ...]]:
        """Calls that are not on the read-only allow-list below."""
        return [c for c in self.calls if not read_only(c)]


# Written out independently of the runner's own dry-run guard.
KUBECTL_READ_ONLY = frozenset({"get", "wait", "cluster-info", "exec"})
HELM_READ_ONLY = frozenset({"list", "template", "history", "status", "get"})
HELM_PREVIEWABLE = frozenset({"install", "upgrade", "uninstall", "rollback"})


def read_only(call: tuple[str, ...]) -> bool:
    tool, verb = call[0], call[1] if len(call) > 1 else ""
    if tool == "kubectl":
        if verb == "create":
            return "--dry-run=client" in call
        return verb in KUBECTL_READ_ONLY
    if tool == "helm":
        if verb in HELM_PREVIEWABLE:
            return "--dry-run" in call
        return verb in HELM_READ_ONLY
    return False


def on_path(binary: str) -> str | None:
    return f"/usr/local/bin/{binary}"


# ---------------------------------------------------------------------------
# EDC API double
# ---------------------------------------------------------------------------


class EdcApi:
    """Route table behind an ``httpx.MockTransport``.

    Handlers are keyed by ``(method, path)``; every request is recorded.
    Unrouted requests return 404.
    """

    def __init__(self) -> None:
        self.routes: dict[tuple[str, str], Callable[[httpx.Request], httpx.Response]] = {}
        self.requests: list[httpx.Request] = []

    def route(self, method: str, path: str, status: int = 200, body: Any = None) -> EdcApi:
        def handler(_request: httpx.Request) -> httpx.Response:
            if isinstance(body, str):
                return httpx.Response(status, text=body)
            return httpx.Response(status, json=body if body is not None else {})

        self.routes[(method, path)] = handler
        return self

    def handle(
        self, method: str, path: str, handler: Callable[[httpx.Request], httpx.Response]
    ) -> EdcApi:
        self.routes[(method, path)] = handler
        return self

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        handler = self.routes.get((request.method, request.url.path))
        if handler is None:
            return httpx.Response(404, json={"error": "not found"})
        return handler(request)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)

    def sent(self, method: str, path: str | None = None) -> list[httpx.Request]:
        return [
            r
            for r in self.requests
            if r.method == method and (path is None or r.url.path == path)
        ]


def happy_dsp_api(asset_id: str = "asset-1", body: str = '[{"id": 1}]') -> EdcApi:
    """A provider/consumer pair where nothing exists yet and the EDR arrives at once."""
    catalog = {
        "dcat:dataset": {
            "@id": asset_id,
            "odrl:hasPolicy": {
                "@id": "offer-1",
                "odrl:permission": {"odrl:action": {"@id": "odrl:use"}},
                "odrl:prohibition": [],
                "odrl:obligation": [],
            },
        }
    }
    return (
        EdcApi()
        .route("GET", "/api/check/liveness", body={"isSystemHealthy": True})
        .route("POST", "/management/v3/assets", body={"@id": asset_id})
        .route("POST", "/management/v3/policydefinitions", body={"@id": f"{asset_id}-policy"})
        .route(
            "POST", "/management/v3/contractdefinitions", body={"@id": f"{asset_id}-contract"}
        )
        .route("POST", "/management/v3/catalog/request", body=catalog)
        .route("POST", "/management/v3/edrs", body={"@id": "neg-1"})
        .route("POST", "/management/v3/edrs/request", body=[{"transferProcessId": "tp-1"}])
        .route(
            "GET",
            "/management/v3/edrs/tp-1/dataaddress",
            body={"authorization": "token-1", "endpoint": "https://dataplane.test/public"},
        )
        .route("GET", "/public", body=body)
    )


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def cli_runner() -> CliRunner:
    """Provide a Click CLI test runner."""
    return CliRunner()


@pytest.fixture(autouse=True)
def _restore_logging() -> Generator[None]:
    """Undo logging and telemetry changes made by AppContext."""
    root = logging.getLogger()
    original_handlers = root.handlers[:]
    original_level = root.level
    edc = logging.getLogger("edcctl")
    edc_level = edc.level
    yield
    root.handlers = original_handlers
    root.setLevel(original_level)
    edc.setLevel(edc_level)
    disable_telemetry()


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep the developer's shell from leaking into settings and .env loading."""
    monkeypatch.delenv("EDCCTL_CONFIG", raising=False)
    for key in (*WORKFLOW_ENV, "DEBUG", "EDC_BASE_URL", "EDC_API_KEY"):
        monkeypatch.delenv(key, raising=False)
    for key in ("NAMESPACE", "RELEASE_NAME", "VALUES_FILE", "TIMEOUT"):
        monkeypatch.delenv(key, raising=False)


@pytest.fixture
def project(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """A deployment checkout: umbrella chart, EDC chart, base chart, values file.

    The working directory is switched to it.
    """
    (tmp_path / "Chart.yaml").write_text("name: umbrella\n")
    (tmp_path / "values.yaml").write_text("global: {}\n")
    for chart in ("edc", "base"):
        (tmp_path / "charts" / chart).mkdir(parents=True)
        (tmp_path / "charts" / chart / "Chart.yaml").write_text(f"name: {chart}\n")
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture
def settings(project: Path) -> EdcSettings:
    return EdcSettings.from_cli(cwd=project)


@pytest.fixture
def fake_exec() -> FakeExecutor:
    return FakeExecutor()


@pytest.fixture
def make_runner(fake_exec: FakeExecutor) -> Callable[..., CommandRunner]:
    def factory(*, dry_run: bool = False) -> CommandRunner:
        return CommandRunner(dry_run=dry_run, executor=fake_exec, which=on_path)

    return factory


@pytest.fixture
def patched_runner(fake_exec: FakeExecutor, monkeypatch: pytest.MonkeyPatch) -> FakeExecutor:
    """Route every command the CLI builds through *fake_exec*."""
    monkeypatch.setattr(
        "edcctl.commands._context.CommandRunner",
        functools.partial(CommandRunner, executor=fake_exec, which=on_path),
    )
    return fake_exec


@pytest.fixture
def env_file(tmp_path: Path) -> Path:
    """A complete workflow ``.env``."""
    path = tmp_path / ".env"
    path.write_text("".join(f"{k}={v}\n" for k, v in WORKFLOW_ENV.items()))
    return path


@pytest.fixture
def no_sleep() -> list[float]:
    """Collects requested sleeps instead of sleeping."""
    return []
