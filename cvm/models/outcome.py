"""Models for tree changes and per-package staleness outcomes."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import PurePosixPath

from cvm.exceptions import CvmError
from cvm.models.version import SemanticVersion


@dataclass(frozen=True)
class FileChange:
    """One path that differs between the reference and current trees."""

    path: str
    old_blob_id: str | None = None  # None when the path is new
    new_blob_id: str | None = None  # None when the path was deleted


@dataclass(frozen=True)
class ChangeSet:
    """Changes in a tree diff that concern a single package."""

    source_changed: bool = False
    manifest_changed: bool = False
    manifest_old_blob: str | None = None
    manifest_new_blob: str | None = None

    @property
    def is_empty(self) -> bool:
        return not (self.source_changed or self.manifest_changed)


class OutcomeKind(Enum):
    UNCHANGED = "unchanged"
    UP_TO_DATE = "up_to_date"
    STALE = "stale"
    FORCE_CANDIDATE = "force_candidate"


@dataclass(frozen=True)
class Outcome:
    """Result of evaluating one package.

    ``version`` is the base a bump starts from: the declared version for
    ``UNCHANGED``, the new version for ``UP_TO_DATE`` and the reference (old)
    version for ``STALE``. ``seen_version`` is the version text currently in
    the manifest, which is what a write-back replaces.
    """

    kind: OutcomeKind
    version: SemanticVersion | None = None
    seen_version: SemanticVersion | None = None
    manifest_path: str = ""

    @classmethod
    def unchanged(cls, version: SemanticVersion | None = None, manifest_path: str = "") -> Outcome:
        return cls(OutcomeKind.UNCHANGED, version, version, manifest_path)

    @classmethod
    def up_to_date(cls, version: SemanticVersion, manifest_path: str = "") -> Outcome:
        return cls(OutcomeKind.UP_TO_DATE, version, version, manifest_path)

    @classmethod
    def stale(
        cls,
        old_version: SemanticVersion,
        new_version_seen: SemanticVersion,
        manifest_path: str,
    ) -> Outcome:
        return cls(OutcomeKind.STALE, old_version, new_version_seen, manifest_path)

    def as_force_candidate(self) -> Outcome:
        """Relabel as ``FORCE_CANDIDATE``, keeping the current version as the base."""
        return Outcome(
            OutcomeKind.FORCE_CANDIDATE,
            self.seen_version,
            self.seen_version,
            self.manifest_path,
        )


@dataclass
class PackageResult:
    """Evaluation result for one workspace package: an outcome or an error."""

    package_dir: PurePosixPath
    outcome: Outcome | None = None
    error: CvmError | None = None

    @property
    def failed(self) -> bool:
        return self.error is not None

    @property
    def label(self) -> str:
        return str(self.package_dir) if str(self.package_dir) != "." else "(root)"
