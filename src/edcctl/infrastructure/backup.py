"""Pre-upgrade snapshots of a Helm release and its namespace.

Layout::

    <backup-dir>/<YYYY-MM-DD_HH-MM-SS>_<release>/
        helm_release_all.yaml  helm_values.yaml  helm_manifest.yaml
        helm_history.json      k8s_resources.yaml
        k8s_configmaps.yaml    k8s_secrets.yaml
        k8s_pvcs.yaml          k8s_ingress.yaml      (only if readable)
        backup_info.txt
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any

import structlog

from edcctl.infrastructure.helm import Helm
from edcctl.infrastructure.kubectl import Kubectl

logger = structlog.get_logger(__name__)

TIMESTAMP_FORMAT = "%Y-%m-%d_%H-%M-%S"


@dataclass
class BackupReport:
    path: Path
    files: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"path": str(self.path), "files": self.files, "skipped": self.skipped}


def create_backup(
    helm: Helm,
    kubectl: Kubectl,
    *,
    release: str,
    namespace: str,
    backup_dir: Path,
    release_info: dict[str, Any],
    now: Callable[[], datetime] = datetime.now,
) -> BackupReport:
    """Dump release and namespace state into a fresh timestamped directory.

    Helm dumps and the core namespace dumps must succeed; PVC and ingress
    dumps are best effort.
    """
    stamp = now().strftime(TIMESTAMP_FORMAT)
    path = backup_dir / f"{stamp}_{release}"
    path.mkdir(parents=True, exist_ok=True)
    report = BackupReport(path=path)

    def write(name: str, content: str) -> None:
        (path / name).write_text(content, encoding="utf-8")
        report.files.append(name)

    write("helm_release_all.yaml", helm.get("all", release, namespace))
    write("helm_values.yaml", helm.get("values", release, namespace))
    write("helm_manifest.yaml", helm.get("manifest", release, namespace))
    write("helm_history.json", helm.history_json(release, namespace))

    write("k8s_resources.yaml", kubectl.get_yaml("all", namespace=namespace).stdout)
    write("k8s_configmaps.yaml", kubectl.get_yaml("configmaps", namespace=namespace).stdout)
    write("k8s_secrets.yaml", kubectl.get_yaml("secrets", namespace=namespace).stdout)

    for kind, name in (("pvc", "k8s_pvcs.yaml"), ("ingress", "k8s_ingress.yaml")):
        out = kubectl.get_yaml(kind, namespace=namespace, check=False)
        if out.ok:
            write(name, out.stdout)
        else:
            report.skipped.append(name)

    info = [
        f"Backup created: {stamp}",
        f"Release name: {release}",
        f"Namespace: {namespace}",
        f"Current revision: {release_info.get('revision', '')}",
        f"Current status: {release_info.get('status', '')}",
        f"Current chart: {release_info.get('chart', '')}",
        f"Backup path: {path}",
    ]
    write("backup_info.txt", "\n".join(info) + "\n")

    logger.info("backup_created", path=str(path), files=len(report.files))
    return report
