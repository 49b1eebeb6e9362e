"""Command group: the base-infrastructure chart."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from edcctl.commands._base import EdcGroup, dry_run_option, force_option, target_options

if TYPE_CHECKING:
    from edcctl.commands._context import AppContext


@click.group(
    cls=EdcGroup,
    examples="""\
  edcctl base install --dry-run
  edcctl base install -f charts/base/values.yaml --timeout 15m
  edcctl base uninstall --delete-namespace --purge-crds""",
)
def base() -> None:
    """Install or remove the base-infrastructure chart."""


@base.command()
@target_options("base")
@click.option("-c", "--chart", default=None, help="Chart directory [config: base].")
@click.option("-f", "--values", "values_file", default=None, help="Extra values file.")
@dry_run_option(help="Render and validate without installing.")
@click.option("--skip-deps", is_flag=True, help="Skip helm dependency update.")
@click.option("--timeout", default=None, help="Helm timeout, e.g. 10m [config: base].")
@click.pass_obj
def install(
    app: AppContext,
    namespace: str | None,
    release: str | None,
    chart: str | None,
    values_file: str | None,
    dry_run: bool,
    skip_deps: bool,
    timeout: str | None,
) -> None:
    """Install the base-infrastructure release."""
    from edcctl.services.base_chart import BaseChartService

    cfg = app.settings.base
    svc = BaseChartService(app.settings, app.runner(dry_run=dry_run))
    app.emit(
        svc.install(
            namespace=namespace or cfg.namespace,
            release=release or cfg.release,
            chart=chart or cfg.chart,
            values_file=values_file,
            skip_deps=skip_deps,
            timeout=timeout or cfg.timeout,
        )
    )


@base.command()
@target_options("base")
@dry_run_option()
@force_option(help="Skip the confirmation prompt.")
@click.option("--delete-namespace", is_flag=True, help="Also delete the namespace.")
@click.option("--purge-crds", is_flag=True, help="Also delete cert-manager CRDs.")
@click.option("--timeout", default=None, help="Helm timeout, e.g. 10m [config: base].")
@click.pass_obj
def uninstall(
    app: AppContext,
    namespace: str | None,
    release: str | None,
    dry_run: bool,
    force: bool,
    delete_namespace: bool,
    purge_crds: bool,
    timeout: str | None,
) -> None:
    """Uninstall the base-infrastructure release."""
    from edcctl.services.base_chart import BaseChartService

    cfg = app.settings.base
    svc = BaseChartService(
        app.settings,
        app.runner(dry_run=dry_run),
        confirm=app.confirmer(skip=force or dry_run),
    )
    app.emit(
        svc.uninstall(
            namespace=namespace or cfg.namespace,
            release=release or cfg.release,
            timeout=timeout or cfg.timeout,
            delete_namespace=delete_namespace,
            purge_crds=purge_crds,
        )
    )
