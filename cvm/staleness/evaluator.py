"""Decide whether a package's version kept up with its source.

Decision table, given the package's ``ChangeSet``:

    source changed | manifest changed | version bumped | outcome
    ---------------+------------------+----------------+-----------
    no             | no               | -              | UNCHANGED
    yes            | no               | -              | STALE
    any            | yes              | yes            | UP_TO_DATE
    any            | yes              | no             | STALE

"Bumped" means the version parsed from the current manifest blob is greater
than the one parsed from the reference blob. Force mode is a policy concern
and is applied later by the dispatcher.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import PurePosixPath
from typing import Any

from cvm.exceptions import CvmError, VersionExtractionError
from cvm.manifest.descriptor import DEFAULT_MANIFEST_NAME, PackageDescriptor
from cvm.models.outcome import FileChange, Outcome, PackageResult
from cvm.models.version import SemanticVersion
from cvm.staleness.diff import DEFAULT_SOURCE_DIR, classify, normalize_path

logger = logging.getLogger(__name__)


class StalenessEvaluator:
    """Evaluates packages against one shared, read-only list of tree changes."""

    def __init__(
        self,
        provider: Any,
        changes: Iterable[FileChange],
        manifest_name: str = DEFAULT_MANIFEST_NAME,
        source_dir: str = DEFAULT_SOURCE_DIR,
        reference_tree: Any = None,
    ):
        self.provider = provider
        self.changes = tuple(changes)
        self.manifest_name = manifest_name
        self.source_dir = source_dir
        self.reference_tree = reference_tree

    def evaluate(self, package: PackageDescriptor, package_dir: str | PurePosixPath) -> Outcome:
        """Return the outcome for *package*, located at *package_dir* in the repo.

        Raises:
            VersionExtractionError: The manifest changed but a version could
                not be read from one of its two blobs.
        """
        pkg = normalize_path(package_dir)
        manifest_path = f"{pkg}/{self.manifest_name}" if pkg else self.manifest_name

        if package.declared_version is None:
            return Outcome.unchanged(None, manifest_path)

        changeset = classify(self.changes, pkg, self.manifest_name, self.source_dir)

        if changeset.is_empty:
            return Outcome.unchanged(package.declared_version, manifest_path)

        if not changeset.manifest_changed:
            # Source changed, version untouched. The bump base is the committed
            # version; the working-tree text is only what gets replaced.
            committed = self._reference_version(manifest_path)
            return Outcome.stale(committed or package.declared_version, package.declared_version, manifest_path)

        if changeset.manifest_new_blob is None:
            raise VersionExtractionError(
                f"Manifest {manifest_path} was deleted; cannot read its new version",
                context={"manifest": manifest_path},
            )
        new_version = self._read_version(changeset.manifest_new_blob, manifest_path, "current")

        if changeset.manifest_old_blob is None:
            # Manifest is new in this change set, so there is nothing to be stale against.
            return Outcome.up_to_date(new_version, manifest_path)

        old_version = self._read_version(changeset.manifest_old_blob, manifest_path, "reference")

        if new_version > old_version:
            logger.debug("%s bumped %s -> %s", manifest_path, old_version, new_version)
            return Outcome.up_to_date(new_version, manifest_path)

        return Outcome.stale(old_version, new_version, manifest_path)

    def evaluate_result(self, package: PackageDescriptor, package_dir: str | PurePosixPath) -> PackageResult:
        """Like ``evaluate`` but records per-package errors instead of raising them."""
        result = PackageResult(package_dir=PurePosixPath(normalize_path(package_dir) or "."))
        try:
            result.outcome = self.evaluate(package, package_dir)
        except CvmError as e:
            logger.warning("Could not evaluate %s: %s", result.label, e)
            result.error = e
        return result

    def _reference_version(self, manifest_path: str) -> SemanticVersion | None:
        if self.reference_tree is None:
            return None
        blob_id = self.provider.tree_blob_id(self.reference_tree, manifest_path)
        if blob_id is None:
            return None
        return self._read_version(blob_id, manifest_path, "reference")

    def _read_version(self, blob_id: str, manifest_path: str, side: str) -> SemanticVersion:
        source = f"{manifest_path} ({side})"
        try:
            data = self.provider.read_blob(blob_id)
            descriptor = PackageDescriptor.from_bytes(data, PurePosixPath(manifest_path).parent, source)
        except VersionExtractionError:
            raise
        except CvmError as e:
            raise VersionExtractionError(
                f"Failed to extract version from {source}: {e}",
                context={"manifest": manifest_path, "side": side, "blob": blob_id},
            ) from e
        except (OSError, ValueError, KeyError) as e:
            raise VersionExtractionError(
                f"Failed to read blob {blob_id} for {source}: {e}",
                context={"manifest": manifest_path, "side": side, "blob": blob_id},
            ) from e

        if descriptor.declared_version is None:
            raise VersionExtractionError(
                f"No [package] version in {source}",
                context={"manifest": manifest_path, "side": side},
            )
        return descriptor.declared_version
