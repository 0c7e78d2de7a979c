"""Repository snapshots through GitPython."""

from __future__ import annotations

import binascii
import logging
import shlex
import threading
from collections.abc import Iterator
from pathlib import Path

from git import GitCommandError, InvalidGitRepositoryError, NoSuchPathError, Repo
from git.exc import BadName, BadObject
from git.objects import Tree

from cvm.exceptions import ConfigurationError, ReferenceResolutionError
from cvm.models.outcome import FileChange

logger = logging.getLogger(__name__)


class GitSnapshotProvider:
    """Read-only view of a Git repository as two comparable tree snapshots.

    One ``Repo`` object shares a single ``git cat-file`` process, so blob
    reads are serialized behind a lock to allow parallel package evaluation.
    """

    def __init__(self, repo: Repo):
        self.repo = repo
        self._lock = threading.Lock()

    @classmethod
    def discover(cls, path: str | Path) -> GitSnapshotProvider:
        """Open the repository containing *path*.

        Raises:
            ConfigurationError: If *path* is not inside a Git work tree.
        """
        try:
            repo = Repo(Path(path), search_parent_directories=True)
        except (InvalidGitRepositoryError, NoSuchPathError):
            raise ConfigurationError(f"Not inside a Git repository: {path}") from None
        if repo.bare:
            raise ConfigurationError(f"Repository at {path} is bare; a work tree is required")
        return cls(repo)

    @property
    def workdir(self) -> Path:
        return Path(self.repo.working_tree_dir)

    def current_branch(self) -> str:
        """Name of the checked-out branch, or ``"HEAD"`` when detached."""
        if self.repo.head.is_detached:
            return "HEAD"
        return self.repo.active_branch.name

    def available_references(self) -> tuple[list[str], list[str]]:
        """Return ``(branches, remotes)``; branches include remote-tracking refs."""
        branches = [head.name for head in self.repo.heads]
        remotes = []
        for remote in self.repo.remotes:
            remotes.append(remote.name)
            try:
                branches.extend(ref.name for ref in remote.refs)
            except (AssertionError, GitCommandError):
                # A remote that was never fetched has no refs.
                continue
        return branches, remotes

    def _resolution_error(self, message: str) -> ReferenceResolutionError:
        branches, remotes = self.available_references()
        return ReferenceResolutionError(message, branches=branches, remotes=remotes)

    # -- reference resolution ----------------------------------------------

    def fetch(self, remote: str, branch: str, ssh_key: str | None = None) -> None:
        """Fetch *branch* from *remote*, optionally authenticating with *ssh_key*.

        Raises:
            ReferenceResolutionError: Unknown remote or failed fetch.
        """
        try:
            git_remote = self.repo.remote(remote)
        except ValueError:
            raise self._resolution_error(f"Remote {remote!r} does not exist") from None

        env = {}
        if ssh_key:
            key = shlex.quote(str(Path(ssh_key).expanduser()))
            env["GIT_SSH_COMMAND"] = f"ssh -i {key} -o IdentitiesOnly=yes"

        logger.info("Fetching %s from %s", branch, remote)
        try:
            with self.repo.git.custom_environment(**env):
                git_remote.fetch(branch)
        except GitCommandError as e:
            raise self._resolution_error(
                f"Failed to fetch {branch!r} from {remote!r}: {e.stderr.strip() if e.stderr else e}"
            ) from e

    def resolve_tree(self, branch: str, remote: str | None = None, prefer_remote: bool = False) -> Tree:
        """Tree of local branch *branch*, else of ``<remote>/<branch>``.

        With *prefer_remote* (after a fetch) the remote-tracking ref takes
        precedence over the local branch.

        Raises:
            ReferenceResolutionError: Neither reference exists.
        """
        local = next((head for head in self.repo.heads if head.name == branch), None)
        tracking = None
        if remote:
            tracking_path = f"refs/remotes/{remote}/{branch}"
            tracking = next((ref for ref in self.repo.references if ref.path == tracking_path), None)

        candidates = (tracking, local) if prefer_remote else (local, tracking)
        for ref in candidates:
            if ref is not None:
                logger.debug("Reference %s resolved to %s", branch, ref.path)
                return ref.commit.tree

        where = f"locally or on remote {remote!r}" if remote else "locally"
        raise self._resolution_error(f"Branch {branch!r} not found {where}")

    def head_tree(self) -> Tree:
        """Tree of the current ``HEAD`` commit."""
        try:
            return self.repo.head.commit.tree
        except ValueError:
            raise self._resolution_error("Current branch has no commits") from None

    # -- snapshot queries ---------------------------------------------------

    def diff(self, tree_a: Tree, tree_b: Tree) -> Iterator[FileChange]:
        """Yield one ``FileChange`` per path that differs from *tree_a* to *tree_b*.

        A rename yields both the old and the new path.
        """
        for d in tree_a.diff(tree_b):
            old_id = d.a_blob.hexsha if d.a_blob is not None else None
            new_id = d.b_blob.hexsha if d.b_blob is not None else None
            if d.renamed_file and d.a_path != d.b_path:
                yield FileChange(path=d.a_path, old_blob_id=old_id, new_blob_id=None)
                yield FileChange(path=d.b_path, old_blob_id=None, new_blob_id=new_id)
            else:
                yield FileChange(path=d.b_path or d.a_path, old_blob_id=old_id, new_blob_id=new_id)

    def read_blob(self, blob_id: str) -> bytes:
        """Return the raw content of blob *blob_id* (a 40-char hex sha).

        Raises:
            KeyError: The blob does not exist.
        """
        try:
            binsha = binascii.unhexlify(blob_id)
        except (binascii.Error, TypeError):
            raise KeyError(blob_id) from None
        with self._lock:
            try:
                return self.repo.odb.stream(binsha).read()
            except (BadName, BadObject, ValueError, GitCommandError):
                raise KeyError(blob_id) from None

    def tree_blob_id(self, tree: Tree, path: str) -> str | None:
        """Blob sha of *path* inside *tree*, or ``None`` if it is absent."""
        with self._lock:
            try:
                entry = tree / path
            except KeyError:
                return None
        return entry.hexsha if entry.type == "blob" else None
