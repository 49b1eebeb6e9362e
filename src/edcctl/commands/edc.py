"""Command group: the standalone EDC chart (install, uninstall, upgrade).

``-n``, ``-r``, ``-f`` and ``-t`` also read ``NAMESPACE``, ``RELEASE_NAME``,
``VALUES_FILE`` and ``TIMEOUT`` from the environment.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from edcctl.commands._base import EdcGroup, dry_run_option, force_option, target_options

if TYPE_CHECKING:
    from edcctl.commands._context import AppContext


_values_option = click.option(
    "-f", "--values", "values_file", envvar="VALUES_FILE", default=None, help="Values file."
)
_timeout_option = click.option(
    "-t", "--timeout", envvar="TIMEOUT", default=None, help="Helm timeout, e.g. 600s."
)


@click.group(
    cls=EdcGroup,
    examples="""\
  edcctl edc install -n edc -f values.yaml
  edcctl edc upgrade --version 0.9.0
  edcctl edc upgrade --rollback 3
  edcctl edc uninstall --delete-namespace --purge-crds""",
)
def edc() -> None:
    """Install, upgrade or remove the EDC Helm release."""


@edc.command()
@target_options("cluster", envvars=True)
@_values_option
@click.option("--chart", default=None, help="EDC chart directory [config: edc].")
@_timeout_option
@dry_run_option("-d", "--dry-run", help="Simulate the install.")
@click.option("-s", "--skip-deps", is_flag=True, help="Skip helm dependency update.")
@click.pass_obj
def install(
    app: AppContext,
    namespace: str | None,
    release: str | None,
    values_file: str | None,
    chart: str | None,
    timeout: str | None,
    dry_run: bool,
    skip_deps: bool,
) -> None:
    """Install or upgrade-in-place the EDC release."""
    from edcctl.services.edc import EdcService

    cluster, cfg = app.settings.cluster, app.settings.edc
    svc = EdcService(app.settings, app.runner(dry_run=dry_run))
    app.emit(
        svc.install(
            namespace=namespace or cluster.namespace,
            release=release or cluster.release,
            values_file=values_file or cluster.values_file,
            chart=chart or cfg.chart,
            timeout=timeout or cfg.install_timeout,
            skip_deps=skip_deps,
        )
    )


@edc.command()
@target_options("cluster", envvars=True)
@_timeout_option
@dry_run_option("-d", "--dry-run", help="Show what would be removed.")
@force_option("-f", "--force")
@click.option("--delete-namespace", is_flag=True, help="Also delete the namespace.")
@click.option("--purge-crds", is_flag=True, help="Also delete EDC CRDs.")
@click.pass_obj
def uninstall(
    app: AppContext,
    namespace: str | None,
    release: str | None,
    timeout: str | None,
    dry_run: bool,
    force: bool,
    delete_namespace: bool,
    purge_crds: bool,
) -> None:
    """Uninstall the EDC release and its leftovers."""
    from edcctl.services.edc import EdcService

    cluster, cfg = app.settings.cluster, app.settings.edc
    svc = EdcService(
        app.settings,
        app.runner(dry_run=dry_run),
        confirm=app.confirmer(skip=force or dry_run),
    )
    app.emit(
        svc.uninstall(
            namespace=namespace or cluster.namespace,
            release=release or cluster.release,
            timeout=timeout or cfg.uninstall_timeout,
            delete_namespace=delete_namespace,
            purge_crds=purge_crds,
        )
    )


@edc.command(
    examples="""\
  edcctl edc upgrade
  edcctl edc upgrade -f values-prod.yaml --version 0.9.0
  edcctl edc upgrade --dry-run
  edcctl edc upgrade --rollback 2 --force""",
)
@target_options("cluster", envvars=True)
@_values_option
@click.option("--chart", default=None, help="EDC chart directory [config: edc].")
@_timeout_option
@click.option("-b", "--backup-dir", default=None, help="Backup directory [config: edc].")
@click.option("-v", "--version", "chart_version", default=None, help="Chart version.")
@click.option("--rollback", type=int, default=None, metavar="REVISION", help="Roll back.")
@dry_run_option("-d", "--dry-run", help="Simulate the upgrade.")
@click.option("--skip-backup", is_flag=True, help="Do not back up the current release.")
@click.option("--skip-deps", is_flag=True, help="Skip helm dependency update.")
@force_option()
@click.pass_obj
def upgrade(
    app: AppContext,
    namespace: str | None,
    release: str | None,
    values_file: str | None,
    chart: str | None,
    timeout: str | None,
    backup_dir: str | None,
    chart_version: str | None,
    rollback: int | None,
    dry_run: bool,
    skip_backup: bool,
    skip_deps: bool,
    force: bool,
) -> None:
    """Upgrade the EDC release (with backup) or roll it back."""
    from edcctl.services.edc import EdcService

    cluster, cfg = app.settings.cluster, app.settings.edc
    svc = EdcService(
        app.settings,
        app.runner(dry_run=dry_run),
        confirm=app.confirmer(skip=force or dry_run),
    )
    app.emit(
        svc.upgrade(
            namespace=namespace or cluster.namespace,
            release=release or cluster.release,
            values_file=values_file or cluster.values_file,
            chart=chart or cfg.chart,
            timeout=timeout or cfg.install_timeout,
            backup_dir=backup_dir or cfg.backup_dir,
            version=chart_version,
            rollback=rollback,
            skip_backup=skip_backup,
            skip_deps=skip_deps,
        )
    )
