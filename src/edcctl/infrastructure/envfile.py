"""Workflow ``.env`` loading and validation.

The file is parsed with python-dotenv.  Keys the file sets win over the
process environment, as with ``set -a; source .env``; exported variables
only fill keys the file leaves out.
"""

from __future__ import annotations

import os
from collections.abc import Iterator, Mapping
from pathlib import Path
from types import MappingProxyType

from dotenv import dotenv_values

REQUIRED_KEYS: tuple[str, ...] = (
    "ASSET_ID",
    "PROVIDER_URL",
    "PROVIDER_BPN",
    "PROVIDER_API_KEY",
    "CONSUMER_URL",
    "CONSUMER_BPN",
    "CONSUMER_API_KEY",
)
OPTIONAL_KEYS: tuple[str, ...] = ("DEBUG",)

_TRUTHY = frozenset({"1", "true", "yes", "on"})


class EnvironmentFileError(Exception):
    """The ``.env`` file is missing or incomplete.

    ``problems`` holds one message per defect so that every missing key is
    reported in one run.
    """

    def __init__(self, problems: list[str], *, path: Path | None = None) -> None:
        self.problems = problems
        self.path = path
        super().__init__("; ".join(problems))


class DspEnvironment(Mapping[str, str]):
    """Immutable view of the resolved workflow variables."""

    def __init__(self, values: Mapping[str, str], *, source: Path | None = None) -> None:
        self._values = MappingProxyType(dict(values))
        self.source = source

    def __getitem__(self, key: str) -> str:
        return self._values[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    @property
    def asset_id(self) -> str:
        return self._values["ASSET_ID"]

    @property
    def provider_url(self) -> str:
        return self._values["PROVIDER_URL"]

    @property
    def provider_bpn(self) -> str:
        return self._values["PROVIDER_BPN"]

    @property
    def provider_api_key(self) -> str:
        return self._values["PROVIDER_API_KEY"]

    @property
    def consumer_url(self) -> str:
        return self._values["CONSUMER_URL"]

    @property
    def consumer_bpn(self) -> str:
        return self._values["CONSUMER_BPN"]

    @property
    def consumer_api_key(self) -> str:
        return self._values["CONSUMER_API_KEY"]

    @property
    def debug(self) -> bool:
        return self._values.get("DEBUG", "").strip().lower() in _TRUTHY


def missing_keys(values: Mapping[str, str | None]) -> list[str]:
    """Required keys that are absent or empty, in declaration order."""
    return [key for key in REQUIRED_KEYS if not (values.get(key) or "").strip()]


def load_env_file(
    path: Path | str,
    *,
    environ: Mapping[str, str] | None = None,
) -> DspEnvironment:
    """Read *path*, fill unset keys from the process environment and validate.

    Raises:
        EnvironmentFileError: the file does not exist, or required keys are
            unset or empty.
    """
    env_path = Path(path)
    if not env_path.is_file():
        raise EnvironmentFileError(
            [".env file not found. Please copy env.example to .env and configure it."],
            path=env_path,
        )

    process_env = os.environ if environ is None else environ
    merged: dict[str, str] = {
        key: value for key, value in dotenv_values(env_path).items() if value is not None
    }
    for key in (*REQUIRED_KEYS, *OPTIONAL_KEYS):
        if key not in merged and process_env.get(key):
            merged[key] = process_env[key]

    missing = missing_keys(merged)
    if missing:
        raise EnvironmentFileError(
            [f"Required environment variable {key} is not set" for key in missing],
            path=env_path,
        )
    return DspEnvironment(merged, source=env_path)
