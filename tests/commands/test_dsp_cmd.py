"""Tests for the dsp command group."""

from __future__ import annotations

import functools
import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from edcctl.cli import cli
from edcctl.services.cleanup import CleanupService
from edcctl.services.dsp import DspWorkflowService
from tests.conftest import EdcApi, happy_dsp_api

CLEANUP_PATHS = (
    "/management/v3/contractdefinitions/asset-1-contract",
    "/management/v3/policydefinitions/asset-1-policy",
    "/management/v3/assets/asset-1",
)
PROVIDER = ["--url", "https://provider.test", "--api-key", "secret"]


def use_api(monkeypatch: pytest.MonkeyPatch, api: EdcApi, sleeps: list[float]) -> None:
    monkeypatch.setattr(
        "edcctl.services.dsp.DspWorkflowService",
        functools.partial(DspWorkflowService, transport=api.transport, sleep=sleeps.append),
    )
    monkeypatch.setattr(
        "edcctl.services.cleanup.CleanupService",
        functools.partial(CleanupService, transport=api.transport),
    )


@pytest.fixture
def provider(monkeypatch: pytest.MonkeyPatch, no_sleep: list[float]) -> EdcApi:
    api = EdcApi()
    for path in CLEANUP_PATHS:
        api.route("DELETE", path, status=204)
    use_api(monkeypatch, api, no_sleep)
    return api


class TestWorkflow:
    def test_prints_body(
        self,
        cli_runner: CliRunner,
        env_file: Path,
        monkeypatch: pytest.MonkeyPatch,
        no_sleep: list[float],
    ) -> None:
        use_api(monkeypatch, happy_dsp_api(body='[{"id": 7}]'), no_sleep)
        result = cli_runner.invoke(cli, ["dsp", "workflow", "--env-file", str(env_file)])
        assert result.exit_code == 0, result.output
        assert result.output.startswith("OK  dsp_workflow")
        assert result.output.rstrip("\n").endswith('[{"id": 7}]')

    def test_quiet_prints_only_body(
        self,
        cli_runner: CliRunner,
        env_file: Path,
        monkeypatch: pytest.MonkeyPatch,
        no_sleep: list[float],
    ) -> None:
        use_api(monkeypatch, happy_dsp_api(body='{"raw": true}'), no_sleep)
        result = cli_runner.invoke(cli, ["-q", "dsp", "workflow", "--env-file", str(env_file)])
        assert result.exit_code == 0
        assert result.output == '{"raw": true}\n'

    def test_poll_options(
        self,
        cli_runner: CliRunner,
        env_file: Path,
        monkeypatch: pytest.MonkeyPatch,
        no_sleep: list[float],
    ) -> None:
        api = happy_dsp_api().route("POST", "/management/v3/edrs/request", body=[])
        use_api(monkeypatch, api, no_sleep)
        result = cli_runner.invoke(
            cli,
            [
                "dsp",
                "workflow",
                "--env-file",
                str(env_file),
                "--poll-attempts",
                "4",
                "--poll-interval",
                "0.5",
            ],
        )
        assert result.exit_code == 1
        assert no_sleep == [0.5, 0.5, 0.5]
        assert len(api.sent("POST", "/management/v3/edrs/request")) == 4

    def test_poll_attempts_must_be_positive(
        self, cli_runner: CliRunner, env_file: Path
    ) -> None:
        result = cli_runner.invoke(
            cli, ["dsp", "workflow", "--env-file", str(env_file), "--poll-attempts", "0"]
        )
        assert result.exit_code == 2

    def test_env_file_from_project_root(
        self,
        cli_runner: CliRunner,
        project: Path,
        env_file: Path,
        monkeypatch: pytest.MonkeyPatch,
        no_sleep: list[float],
    ) -> None:
        (project / ".env").write_text(env_file.read_text())
        use_api(monkeypatch, happy_dsp_api(), no_sleep)
        result = cli_runner.invoke(cli, ["dsp", "workflow", "--skip-health"])
        assert result.exit_code == 0, result.output

    def test_invalid_env_file(
        self, cli_runner: CliRunner, tmp_path: Path, project: Path
    ) -> None:
        env = tmp_path / "broken.env"
        env.write_text("ASSET_ID=asset-1\n")
        result = cli_runner.invoke(cli, ["dsp", "workflow", "--env-file", str(env)])
        assert result.exit_code == 1
        assert "PROVIDER_URL" in result.output

    def test_api_error_exits_3(
        self,
        cli_runner: CliRunner,
        env_file: Path,
        monkeypatch: pytest.MonkeyPatch,
        no_sleep: list[float],
    ) -> None:
        api = happy_dsp_api().route("GET", "/public", status=500, body="boom")
        use_api(monkeypatch, api, no_sleep)
        result = cli_runner.invoke(cli, ["dsp", "workflow", "--env-file", str(env_file)])
        assert result.exit_code == 3


class TestCleanup:
    def test_deletes_with_yes(self, cli_runner: CliRunner, provider: EdcApi) -> None:
        result = cli_runner.invoke(cli, ["dsp", "cleanup", "asset-1", *PROVIDER, "-y"])
        assert result.exit_code == 0, result.output
        assert [r.url.path for r in provider.sent("DELETE")] == list(CLEANUP_PATHS)

    def test_reads_environment(self, cli_runner: CliRunner, provider: EdcApi) -> None:
        result = cli_runner.invoke(
            cli,
            ["dsp", "cleanup", "asset-1", "--force"],
            env={"EDC_BASE_URL": "https://provider.test", "EDC_API_KEY": "from-env"},
        )
        assert result.exit_code == 0, result.output
        assert provider.requests[0].headers["X-Api-Key"] == "from-env"

    def test_missing_settings_exit_2(self, cli_runner: CliRunner, provider: EdcApi) -> None:
        result = cli_runner.invoke(cli, ["dsp", "cleanup", "asset-1", "-y"])
        assert result.exit_code == 2
        assert "EDC_BASE_URL cannot be empty" in result.output
        assert provider.requests == []

    def test_failure_exit_3(self, cli_runner: CliRunner, provider: EdcApi) -> None:
        provider.route("DELETE", CLEANUP_PATHS[1], status=500)
        result = cli_runner.invoke(cli, ["dsp", "cleanup", "asset-1", *PROVIDER, "-y"])
        assert result.exit_code == 3
        assert "Cleanup completed with 1 error(s)" in result.output
        assert len(provider.sent("DELETE")) == 3

    def test_declined_exit_4(self, cli_runner: CliRunner, provider: EdcApi) -> None:
        result = cli_runner.invoke(cli, ["dsp", "cleanup", "asset-1", *PROVIDER], input="n\n")
        assert result.exit_code == 4
        assert provider.requests == []

    def test_dry_run_sends_nothing(self, cli_runner: CliRunner, provider: EdcApi) -> None:
        result = cli_runner.invoke(
            cli, ["--json", "dsp", "cleanup", "asset-1", *PROVIDER, "--dry-run"]
        )
        assert result.exit_code == 0
        assert provider.requests == []
        steps = json.loads(result.output)["data"]["steps"]
        assert {s["status"] for s in steps} == {"dry-run"}
