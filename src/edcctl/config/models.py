"""Pydantic configuration models with code-baked defaults.

Sparse TOML contract: defaults baked here, edcctl.toml only contains
overrides.  A cluster following the stock layout needs no file at all;
only ``[verify] domain`` has no usable default.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

# --- edcctl.toml sections ---


class ClusterConfig(BaseModel):
    """[cluster] section: the umbrella deployment."""

    model_config = {"frozen": True}

    namespace: str = "edc"
    release: str = "eecc-edc"
    values_file: str = "values.yaml"
    chart: str = "."
    wait_timeout: str = "300s"


class RepositoriesConfig(BaseModel):
    """[repositories] section: Helm repository name to URL."""

    model_config = {"frozen": True, "populate_by_name": True}

    ingress_nginx: str = Field(
        default="https://kubernetes.github.io/ingress-nginx", alias="ingress-nginx"
    )
    jetstack: str = "https://charts.jetstack.io"
    hashicorp: str = "https://helm.releases.hashicorp.com"
    tractusx_dev: str = Field(
        default="https://eclipse-tractusx.github.io/charts/dev", alias="tractusx-dev"
    )

    def url(self, name: str) -> str:
        """Return the URL of the Helm repository called *name*."""
        urls = self.model_dump(by_alias=True)
        if name not in urls:
            msg = f"Unknown Helm repository: {name}"
            raise KeyError(msg)
        return str(urls[name])


class IngressConfig(BaseModel):
    """[ingress] section: ingress-nginx, cert-manager and the ClusterIssuer."""

    model_config = {"frozen": True}

    nginx_namespace: str = "ingress"
    nginx_release: str = "ingress-nginx"
    cert_manager_namespace: str = "cert-manager"
    cert_manager_release: str = "cert-manager"
    cluster_issuer: str = "letsencrypt-prod"
    ingress_class: str = "nginx"
    cert_manager_crds: list[str] = Field(
        default_factory=lambda: [
            "certificaterequests.cert-manager.io",
            "certificates.cert-manager.io",
            "challenges.acme.cert-manager.io",
            "clusterissuers.cert-manager.io",
            "issuers.cert-manager.io",
            "orders.acme.cert-manager.io",
        ]
    )


class BaseChartConfig(BaseModel):
    """[base] section: the base-infrastructure chart."""

    model_config = {"frozen": True}

    namespace: str = "ingress"
    release: str = "base-infrastructure"
    chart: str = "charts/base"
    timeout: str = "10m"


class EdcChartConfig(BaseModel):
    """[edc] section: the standalone EDC chart."""

    model_config = {"frozen": True}

    chart: str = "charts/edc"
    install_timeout: str = "600s"
    uninstall_timeout: str = "300s"
    backup_dir: str = "./backups"


class WorkflowConfig(BaseModel):
    """[workflow] section: DSP provider/consumer workflow."""

    model_config = {"frozen": True}

    data_source_url: str = "https://jsonplaceholder.typicode.com/todos"
    poll_attempts: int = Field(default=20, ge=1)
    poll_interval: float = Field(default=3.0, ge=0)
    request_timeout: float = Field(default=30.0, gt=0)
    env_file: str = ".env"


class VerifyConfig(BaseModel):
    """[verify] section: deployment test targets.

    Public hosts are ``{host_prefix}-{component}.{domain}``; endpoint and
    SSL checks are skipped while *domain* is empty.
    """

    model_config = {"frozen": True}

    domain: str = ""
    host_prefix: str = "dataprovider-x"
    http_timeout: float = Field(default=30.0, gt=0)
    vault_pod: str = "edc-dataprovider-x-vault-0"
    edc_db_pod: str = "eecc-edc-dataprovider-x-db-0"
    edc_db_user: str = "testuser"
    dtr_db_pod: str = "eecc-edc-dataprovider-x-dtr-db-0"

    def host(self, component: str) -> str:
        return f"{self.host_prefix}-{component}.{self.domain}"
