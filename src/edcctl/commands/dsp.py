"""Command group: Dataspace Protocol workflow and provider cleanup."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from edcctl.commands._base import EdcGroup, dry_run_option, force_option

if TYPE_CHECKING:
    from edcctl.commands._context import AppContext


@click.group(
    cls=EdcGroup,
    examples="""\
  edcctl dsp workflow
  edcctl -q dsp workflow --env-file staging.env > data.json
  edcctl dsp cleanup my-asset --dry-run""",
)
def dsp() -> None:
    """Run the provider/consumer data exchange, or clean up after it."""


@dsp.command(
    examples="""\
  edcctl dsp workflow
  edcctl dsp workflow --skip-health --poll-attempts 40 --poll-interval 1.5
  edcctl dsp workflow --data-source-url https://example.org/api/items""",
)
@click.option("--env-file", default=None, help="Workflow .env file [config: workflow].")
@click.option("--skip-health", is_flag=True, help="Skip the connector liveness checks.")
@click.option(
    "--poll-attempts", type=click.IntRange(min=1), default=None, help="EDR polling attempts."
)
@click.option(
    "--poll-interval",
    type=click.FloatRange(min=0),
    default=None,
    help="Seconds between EDR polling attempts.",
)
@click.option("--data-source-url", default=None, help="Backend URL the asset exposes.")
@click.pass_obj
def workflow(
    app: AppContext,
    env_file: str | None,
    skip_health: bool,
    poll_attempts: int | None,
    poll_interval: float | None,
    data_source_url: str | None,
) -> None:
    """Create provider resources, negotiate, and fetch the data."""
    from edcctl.services.dsp import DspWorkflowService

    cfg = app.settings.workflow
    svc = DspWorkflowService(request_timeout=cfg.request_timeout)
    app.emit(
        svc.run(
            env_file=app.settings.resolve_path(env_file or cfg.env_file),
            data_source_url=data_source_url or cfg.data_source_url,
            poll_attempts=poll_attempts or cfg.poll_attempts,
            poll_interval=poll_interval if poll_interval is not None else cfg.poll_interval,
            skip_health=skip_health,
        )
    )


@dsp.command(
    examples="""\
  edcctl dsp cleanup my-asset --url https://provider.example.org --api-key secret
  EDC_BASE_URL=https://provider.example.org EDC_API_KEY=secret edcctl dsp cleanup my-asset -y
  edcctl dsp cleanup my-asset --dry-run""",
)
@click.argument("asset_id")
@click.option("--url", "base_url", envvar="EDC_BASE_URL", default="", help="Provider base URL.")
@click.option("--api-key", envvar="EDC_API_KEY", default="", help="Provider Management API key.")
@dry_run_option("-n", "--dry-run", help="Show what would be deleted.")
@force_option("-f", "--force", "-y", "--yes", help="Skip confirmation.")
@click.pass_obj
def cleanup(
    app: AppContext,
    asset_id: str,
    base_url: str,
    api_key: str,
    dry_run: bool,
    force: bool,
) -> None:
    """Delete the contract definition, policy and asset of ASSET_ID."""
    from edcctl.services.cleanup import CleanupService

    svc = CleanupService(timeout=app.settings.workflow.request_timeout)
    app.emit(
        svc.run(
            asset_id,
            base_url=base_url,
            api_key=api_key,
            dry_run=dry_run,
            confirm=app.confirmer(skip=force),
        )
    )
