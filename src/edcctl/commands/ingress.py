"""Command group: cluster-wide ingress stack (cert-manager + ingress-nginx)."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from edcctl.commands._base import EdcGroup, dry_run_option, force_option

if TYPE_CHECKING:
    from edcctl.commands._context import AppContext


@click.group(
    cls=EdcGroup,
    examples="""\
  edcctl ingress install
  edcctl ingress install --dry-run
  edcctl ingress uninstall --force""",
)
def ingress() -> None:
    """Install or remove cert-manager and ingress-nginx."""


@ingress.command(
    examples="""\
  edcctl ingress install
  edcctl ingress install --force""",
)
@dry_run_option()
@force_option(help="Reinstall components that are already present.")
@click.pass_obj
def install(app: AppContext, dry_run: bool, force: bool) -> None:
    """Install cert-manager and the ingress-nginx controller."""
    from edcctl.services.ingress import IngressService

    svc = IngressService(app.settings, app.runner(dry_run=dry_run))
    app.emit(svc.install(force=force))


@ingress.command(
    examples="""\
  edcctl ingress uninstall
  edcctl ingress uninstall --dry-run""",
)
@dry_run_option()
@force_option()
@click.pass_obj
def uninstall(app: AppContext, dry_run: bool, force: bool) -> None:
    """Remove ingress-nginx, the ClusterIssuer and cert-manager."""
    from edcctl.services.ingress import IngressService

    svc = IngressService(
        app.settings,
        app.runner(dry_run=dry_run),
        confirm=app.confirmer(skip=force or dry_run),
    )
    app.emit(svc.uninstall())
