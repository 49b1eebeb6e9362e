"""Unified settings: CLI flags, env vars, and TOML config in one object.

Priority chain (highest to lowest):
  1. Init kwargs  - CLI flags passed by Click
  2. Env vars     - ``EDCCTL_*`` prefix, ``__`` between section and key
  3. TOML file    - ``edcctl.toml`` discovered via walk-up
  4. Code defaults - baked into the section models
"""

from __future__ import annotations

import threading
import tomllib
from pathlib import Path
from typing import Any

import click
from pydantic import Field
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource

from edcctl.config.discovery import ConfigNotFoundError, resolve_config
from edcctl.config.models import (
    BaseChartConfig,
    ClusterConfig,
    EdcChartConfig,
    IngressConfig,
    RepositoriesConfig,
    VerifyConfig,
    WorkflowConfig,
)


class TomlSettingsSource(PydanticBaseSettingsSource):
    """Read settings from an ``edcctl.toml`` file."""

    def __init__(self, settings_cls: type[BaseSettings], toml_path: Path | None) -> None:
        super().__init__(settings_cls)
        self._data: dict[str, Any] = {}
        if toml_path and toml_path.is_file():
            try:
                self._data = tomllib.loads(toml_path.read_text(encoding="utf-8"))
            except tomllib.TOMLDecodeError as exc:
                msg = f"Invalid TOML in {toml_path}: {exc}"
                raise click.ClickException(msg) from exc

    def get_field_value(self, field: Any, field_name: str) -> tuple[Any, str, bool]:
        val = self._data.get(field_name)
        return val, field_name, field_name in self._data

    def __call__(self) -> dict[str, Any]:
        return self._data


# TOML path handed to settings_customise_sources during construction.
_tls = threading.local()


class EdcSettings(BaseSettings):
    """Settings for one edcctl invocation, frozen after construction.

    Stored on the :class:`~edcctl.commands._context.AppContext` that Click
    passes to every command.

    Attributes:
        project_root: Directory relative chart and values paths resolve
            against (parent of ``edcctl.toml``, or CWD).
        config_path: The TOML file in use, or None.
    """

    model_config = {
        "frozen": True,
        "env_prefix": "EDCCTL_",
        "env_nested_delimiter": "__",
    }

    project_root: Path = Field(default_factory=Path.cwd)
    config_path: Path | None = None

    # --- CLI flags ---
    json_output: bool = False
    quiet: bool = False
    verbose: bool = False
    log_json: bool = False
    no_interact: bool = False

    # --- TOML sections ---
    cluster: ClusterConfig = Field(default_factory=ClusterConfig)
    repositories: RepositoriesConfig = Field(default_factory=RepositoriesConfig)
    ingress: IngressConfig = Field(default_factory=IngressConfig)
    base: BaseChartConfig = Field(default_factory=BaseChartConfig)
    edc: EdcChartConfig = Field(default_factory=EdcChartConfig)
    workflow: WorkflowConfig = Field(default_factory=WorkflowConfig)
    verify: VerifyConfig = Field(default_factory=VerifyConfig)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Insert the TOML source between env vars and defaults."""
        toml_path = getattr(_tls, "toml_path", None)
        return (
            init_settings,
            env_settings,
            TomlSettingsSource(settings_cls, toml_path),
        )

    @classmethod
    def from_cli(
        cls,
        *,
        config_path: str | None = None,
        cwd: Path | None = None,
        **cli_flags: Any,
    ) -> EdcSettings:
        """Construct settings from a CLI invocation.

        A ``--config`` (or ``EDCCTL_CONFIG``) path that does not exist is a
        usage error.
        """
        try:
            toml_path = resolve_config(config_path, cwd)
        except ConfigNotFoundError as exc:
            raise click.BadParameter(str(exc), param_hint="'-c' / '--config'") from exc

        root = toml_path.parent if toml_path else (cwd or Path.cwd())

        _tls.toml_path = toml_path
        try:
            return cls(project_root=root, config_path=toml_path, **cli_flags)
        finally:
            _tls.toml_path = None

    def resolve_path(self, value: str | Path) -> Path:
        """Resolve a possibly relative path against the project root."""
        path = Path(value).expanduser()
        return path if path.is_absolute() else self.project_root / path
