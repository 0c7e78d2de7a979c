"""Policy configuration: defaults, an optional YAML file, then CLI flags.

Example ``.cvm.yaml``::

    semver: patch
    branch: main
    remote: upstream
    check: true
    source_dir: src
    jobs: 8
"""

from __future__ import annotations

from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Mapping

import yaml

from cvm.exceptions import ConfigurationError
from cvm.models.version import BumpKind

CONFIG_FILENAME = ".cvm.yaml"


@dataclass(frozen=True)
class PolicyConfig:
    """Flags that steer one cvm run. Fixed for the whole run."""

    semver: BumpKind = BumpKind.MINOR
    branch: str = "master"
    remote: str = "origin"
    check: bool = False
    fix: bool = False
    warn: bool = False
    force: bool = False
    commit: bool = False
    fetch: bool = False
    ssh_key: str | None = None
    manifest_name: str = "Cargo.toml"
    source_dir: str = "src"
    jobs: int = 4
    commit_message: str = "updated crate version(s)"

    @property
    def writes_back(self) -> bool:
        return self.fix or self.force

    def validate(self) -> PolicyConfig:
        """Check cross-field rules; return self for chaining."""
        if self.commit and not self.writes_back:
            raise ConfigurationError("--commit can only be used with --fix or --force")
        if self.jobs < 1:
            raise ConfigurationError(f"jobs must be at least 1, got {self.jobs}")
        if not self.manifest_name or "/" in self.manifest_name:
            raise ConfigurationError(f"Invalid manifest file name: {self.manifest_name!r}")
        return self

    def merged(self, overrides: Mapping[str, Any]) -> PolicyConfig:
        """Return a copy with *overrides* applied; ``None`` values are ignored."""
        return replace(self, **_coerce(overrides, "overrides"))


_FIELD_TYPES: dict[str, type] = {
    "semver": str,
    "branch": str,
    "remote": str,
    "check": bool,
    "fix": bool,
    "warn": bool,
    "force": bool,
    "commit": bool,
    "fetch": bool,
    "ssh_key": str,
    "manifest_name": str,
    "source_dir": str,
    "jobs": int,
    "commit_message": str,
}


def _coerce(data: Mapping[str, Any], source: str) -> dict[str, Any]:
    known = {f.name for f in fields(PolicyConfig)}
    values: dict[str, Any] = {}
    for key, value in data.items():
        key = key.replace("-", "_")
        if key not in known:
            raise ConfigurationError(f"Unknown config key {key!r} in {source}", context={"key": key})
        if value is None:
            continue
        if key == "semver":
            values[key] = BumpKind.parse(value)
            continue
        expected = _FIELD_TYPES[key]
        if expected is int and isinstance(value, bool) or not isinstance(value, expected):
            raise ConfigurationError(
                f"Config key {key!r} in {source} must be {expected.__name__}, got {value!r}",
                context={"key": key},
            )
        values[key] = value
    return values


def load_config(path: str | Path) -> dict[str, Any]:
    """Load a YAML config file into validated field values."""
    path = Path(path)
    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise ConfigurationError(f"Cannot read config file {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Config file {path} must contain a mapping")
    return _coerce(data, str(path))


def resolve_config(
    root: str | Path,
    config_path: str | Path | None = None,
    overrides: Mapping[str, Any] | None = None,
) -> PolicyConfig:
    """Build the effective config: defaults, then the YAML file, then *overrides*.

    Without an explicit *config_path*, ``<root>/.cvm.yaml`` is used if present.
    """
    if config_path is None:
        candidate = Path(root) / CONFIG_FILENAME
        config_path = candidate if candidate.is_file() else None

    config = PolicyConfig()
    if config_path is not None:
        config = replace(config, **load_config(config_path))
    if overrides:
        config = config.merged(overrides)
    return config.validate()
