"""Write bumped versions back to manifests and stage them."""

from __future__ import annotations

import logging
from pathlib import Path

from git import GitCommandError, Repo

from cvm.exceptions import WriteBackError

logger = logging.getLogger(__name__)


class ManifestWriter:
    """Mutates the work tree and index of one repository.

    Every failure raises ``WriteBackError``; callers must not continue after one.
    """

    def __init__(self, repo: Repo):
        self.repo = repo
        self.staged: list[Path] = []

    def replace_version_in_file(self, path: str | Path, old_version: str, new_version: str) -> None:
        """Replace the first occurrence of *old_version* in *path* with *new_version*.

        Dependency versions further down the manifest are left alone.
        """
        path = Path(path)
        try:
            content = path.read_text(encoding="utf-8")
        except OSError as e:
            raise WriteBackError(f"Cannot read {path}: {e}", context={"path": str(path)}) from e

        if old_version not in content:
            raise WriteBackError(
                f"Version {old_version} not found in {path}",
                context={"path": str(path), "version": old_version},
            )

        updated = content.replace(old_version, new_version, 1)
        try:
            path.write_text(updated, encoding="utf-8")
        except OSError as e:
            raise WriteBackError(f"Cannot write {path}: {e}", context={"path": str(path)}) from e
        logger.info("Rewrote %s: %s -> %s", path, old_version, new_version)

    def stage(self, path: str | Path) -> None:
        """Add *path* to the index."""
        path = Path(path)
        workdir = Path(self.repo.working_tree_dir)
        try:
            rel = path.resolve().relative_to(workdir.resolve())
            self.repo.index.add([rel.as_posix()])
        except (ValueError, OSError, GitCommandError) as e:
            raise WriteBackError(f"Failed to add {path} to git: {e}", context={"path": str(path)}) from e
        self.staged.append(path)

    def commit(self, message: str) -> str:
        """Commit the index and return the new commit sha."""
        try:
            commit = self.repo.index.commit(message)
        except (ValueError, OSError, GitCommandError) as e:
            raise WriteBackError(f"Failed to commit updated versions: {e}") from e
        logger.info("Committed %s: %s", commit.hexsha[:12], message)
        return commit.hexsha
