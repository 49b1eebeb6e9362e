"""Commands: umbrella stack install and uninstall."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from edcctl.commands._base import EdcCommand, dry_run_option, force_option, target_options

if TYPE_CHECKING:
    from edcctl.commands._context import AppContext


@click.command(
    cls=EdcCommand,
    examples="""\
  edcctl install
  edcctl install -n edc -r eecc-edc -f values.yaml --dry-run
  edcctl --json install -c ./deployment""",
)
@target_options("cluster")
@click.option("-f", "--values", "values_file", default=None, help="Values file.")
@click.option("-c", "--chart", default=None, help="Umbrella chart directory.")
@dry_run_option()
@click.pass_obj
def install(
    app: AppContext,
    namespace: str | None,
    release: str | None,
    values_file: str | None,
    chart: str | None,
    dry_run: bool,
) -> None:
    """Install cert-manager, ingress-nginx and the EDC stack."""
    from edcctl.services.stack import StackService

    cfg = app.settings.cluster
    svc = StackService(app.settings, app.runner(dry_run=dry_run))
    app.emit(
        svc.install(
            namespace=namespace or cfg.namespace,
            release=release or cfg.release,
            values_file=values_file or cfg.values_file,
            chart=chart or cfg.chart,
        )
    )


@click.command(
    cls=EdcCommand,
    examples="""\
  edcctl uninstall
  edcctl uninstall --delete-namespace --force
  edcctl uninstall --remove-cert-manager --dry-run""",
)
@target_options("cluster")
@click.option("--delete-namespace", is_flag=True, help="Also delete the namespace.")
@click.option("--remove-cert-manager", is_flag=True, help="Also remove cert-manager.")
@force_option(help="Skip confirmations; tolerate a missing release.")
@dry_run_option()
@click.pass_obj
def uninstall(
    app: AppContext,
    namespace: str | None,
    release: str | None,
    delete_namespace: bool,
    remove_cert_manager: bool,
    force: bool,
    dry_run: bool,
) -> None:
    """Uninstall the EDC stack."""
    from edcctl.services.stack import StackService

    cfg = app.settings.cluster
    svc = StackService(
        app.settings,
        app.runner(dry_run=dry_run),
        confirm=app.confirmer(skip=force or dry_run),
    )
    app.emit(
        svc.uninstall(
            namespace=namespace or cfg.namespace,
            release=release or cfg.release,
            delete_namespace=delete_namespace,
            remove_cert_manager=remove_cert_manager,
            force=force,
        )
    )
