"""Read a Cargo-style manifest into its version and workspace members.

Only two tables matter here::

    [package]
    version = "1.2.0"

    [workspace]
    members = ["crates/a", "crates/b"]

A manifest without a ``[package]`` table is a pure workspace root: it only
aggregates members and is never itself checked for version bumps.
"""

from __future__ import annotations

import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from cvm.exceptions import ManifestNotFound, ManifestParseError, MalformedVersion
from cvm.models.version import SemanticVersion

DEFAULT_MANIFEST_NAME = "Cargo.toml"


def parse_manifest(data: bytes | str, source: str = "<manifest>") -> dict[str, Any]:
    """Parse manifest bytes into a dict.

    Raises:
        ManifestParseError: If the content is not valid UTF-8 TOML.
    """
    try:
        text = data.decode("utf-8") if isinstance(data, bytes) else data
        return tomllib.loads(text)
    except (UnicodeDecodeError, tomllib.TOMLDecodeError) as e:
        raise ManifestParseError(
            f"Failed to parse manifest {source}: {e}", context={"source": source}
        ) from e


@dataclass(frozen=True)
class PackageDescriptor:
    """What a manifest declares about its directory."""

    path: Path
    declared_version: SemanticVersion | None = None
    workspace_members: tuple[str, ...] = field(default_factory=tuple)
    name: str | None = None

    @property
    def is_package(self) -> bool:
        return self.declared_version is not None

    @property
    def is_workspace_root(self) -> bool:
        """True for a pure aggregator (no package of its own)."""
        return self.declared_version is None

    @classmethod
    def from_manifest(cls, manifest: dict[str, Any], path: Path, source: str = "<manifest>") -> PackageDescriptor:
        """Build a descriptor from an already parsed manifest.

        Raises:
            MalformedVersion: ``[package]`` exists but its version is missing
                or not a plain ``major.minor.patch`` string.
            ManifestParseError: ``[workspace] members`` is not a list of strings.
        """
        version = None
        name = None
        package = manifest.get("package")
        if isinstance(package, dict):
            name = package.get("name")
            raw_version = package.get("version")
            if not isinstance(raw_version, str):
                # Inherited versions (``version.workspace = true``) land here too.
                raise MalformedVersion(
                    f"Package version in {source} is not a version string: {raw_version!r}",
                    context={"source": source},
                )
            version = SemanticVersion.parse(raw_version)

        members: tuple[str, ...] = ()
        workspace = manifest.get("workspace")
        if isinstance(workspace, dict):
            raw_members = workspace.get("members", [])
            if not isinstance(raw_members, list) or not all(isinstance(m, str) for m in raw_members):
                raise ManifestParseError(
                    f"[workspace] members in {source} must be a list of paths",
                    context={"source": source},
                )
            members = tuple(raw_members)

        return cls(path=path, declared_version=version, workspace_members=members, name=name)

    @classmethod
    def from_bytes(cls, data: bytes | str, path: Path, source: str = "<manifest>") -> PackageDescriptor:
        return cls.from_manifest(parse_manifest(data, source), path, source)

    @classmethod
    def load(cls, directory: str | Path, manifest_name: str = DEFAULT_MANIFEST_NAME) -> PackageDescriptor:
        """Read ``<directory>/<manifest_name>`` from disk.

        Raises:
            ManifestNotFound: The manifest file does not exist.
            ManifestParseError: The manifest is not valid TOML.
            MalformedVersion: The declared version is not a valid triple.
        """
        directory = Path(directory)
        manifest_path = directory / manifest_name
        if not manifest_path.is_file():
            raise ManifestNotFound(
                f"{manifest_name} file does not exist at: {manifest_path}",
                context={"path": str(manifest_path)},
            )
        return cls.from_bytes(manifest_path.read_bytes(), directory, source=str(manifest_path))
