"""Turn two tree snapshots into per-package change sets.

The snapshot provider does the actual tree walk (see ``cvm.utils.git_ops``);
this module only normalizes paths and decides which changes belong to which
package. Change order follows the provider's traversal and is never relied on.
"""

from __future__ import annotations

import logging
import posixpath
from collections.abc import Iterable, Iterator
from pathlib import PurePath
from typing import Any

from cvm.manifest.descriptor import DEFAULT_MANIFEST_NAME
from cvm.models.outcome import ChangeSet, FileChange

logger = logging.getLogger(__name__)

DEFAULT_SOURCE_DIR = "src"


def normalize_path(path: str | PurePath) -> str:
    """Normalize a repo-relative path to POSIX form without ``./`` or trailing ``/``.

    The repository root normalizes to the empty string.
    """
    text = str(path).replace("\\", "/")
    if not text:
        return ""
    text = posixpath.normpath(text)
    if text in (".", "/"):
        return ""
    return text.lstrip("/")


def _join(package_dir: str, name: str) -> str:
    return f"{package_dir}/{name}" if package_dir else name


def diff_trees(provider: Any, reference_tree: Any, current_tree: Any) -> Iterator[FileChange]:
    """Lazily yield one ``FileChange`` per path differing between the two trees."""
    for change in provider.diff(reference_tree, current_tree):
        yield FileChange(
            path=normalize_path(change.path),
            old_blob_id=change.old_blob_id,
            new_blob_id=change.new_blob_id,
        )


def classify(
    changes: Iterable[FileChange],
    package_dir: str | PurePath,
    manifest_name: str = DEFAULT_MANIFEST_NAME,
    source_dir: str = DEFAULT_SOURCE_DIR,
) -> ChangeSet:
    """Summarize *changes* for the package at *package_dir*.

    A change is a source change when its path lies under
    ``<package_dir>/<source_dir>/`` (a path prefix, so ``foo`` never claims
    ``food/src/``). It is a manifest change when it equals
    ``<package_dir>/<manifest_name>``; the manifest's blob ids are kept so
    both versions can be read later.
    """
    pkg = normalize_path(package_dir)
    source_prefix = _join(pkg, normalize_path(source_dir)) + "/"
    manifest_path = _join(pkg, manifest_name)

    source_changed = False
    manifest_change: FileChange | None = None

    for change in changes:
        path = normalize_path(change.path)
        if path.startswith(source_prefix):
            source_changed = True
        elif path == manifest_path:
            manifest_change = change

    changeset = ChangeSet(
        source_changed=source_changed,
        manifest_changed=manifest_change is not None,
        manifest_old_blob=manifest_change.old_blob_id if manifest_change else None,
        manifest_new_blob=manifest_change.new_blob_id if manifest_change else None,
    )
    logger.debug("Classified %s: %s", pkg or "(root)", changeset)
    return changeset
