"""Command: post-deployment smoke test."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from edcctl.commands._base import EdcCommand, target_options

if TYPE_CHECKING:
    from edcctl.commands._context import AppContext


@click.command(
    cls=EdcCommand,
    examples="""\
  edcctl verify
  edcctl verify --k8s-only
  edcctl verify -n edc -r eecc-edc -t 10 --endpoints-only
  edcctl --json verify --ssl-only""",
)
@target_options("cluster")
@click.option("-t", "--timeout", type=float, default=None, help="HTTP timeout in seconds.")
@click.option("--k8s-only", is_flag=True, help="Only Kubernetes and internal service checks.")
@click.option("--endpoints-only", is_flag=True, help="Only public endpoint checks.")
@click.option("--ssl-only", is_flag=True, help="Only SSL certificate checks.")
@click.pass_obj
def verify(
    app: AppContext,
    namespace: str | None,
    release: str | None,
    timeout: float | None,
    k8s_only: bool,
    endpoints_only: bool,
    ssl_only: bool,
) -> None:
    """Test a deployed EDC stack."""
    from edcctl.services.verify import GROUPS, VerifyService

    if sum((k8s_only, endpoints_only, ssl_only)) > 1:
        raise click.UsageError("--k8s-only, --endpoints-only and --ssl-only are exclusive.")
    if k8s_only:
        groups: tuple[str, ...] = ("k8s", "internal")
    elif endpoints_only:
        groups = ("endpoints",)
    elif ssl_only:
        groups = ("ssl",)
    else:
        groups = GROUPS

    cfg = app.settings
    svc = VerifyService(cfg, app.runner())
    app.emit(
        svc.run(
            namespace=namespace or cfg.cluster.namespace,
            release=release or cfg.cluster.release,
            timeout=timeout if timeout is not None else cfg.verify.http_timeout,
            groups=groups,
        )
    )
