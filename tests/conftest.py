"""Shared fixtures: throwaway Git repositories holding Cargo workspaces."""

from pathlib import Path

import pytest
from git import Actor, Repo

AUTHOR = Actor("cvm tests", "cvm-tests@example.com")

ROOT_WORKSPACE = """\
[workspace]
members = ["lib-a", "lib-b"]
"""


def package_toml(name: str, version: str) -> str:
    return (
        "[package]\n"
        f'name = "{name}"\n'
        f'version = "{version}"\n'
        "\n"
        "[dependencies]\n"
        f'serde = "{version}"\n'
    )


class RepoBuilder:
    """Builds commits in a temporary repository."""

    def __init__(self, path: Path, repo: Repo | None = None):
        self.path = path
        if repo is None:
            repo = Repo.init(path)
            repo.git.symbolic_ref("HEAD", "refs/heads/master")
        self.repo = repo

    def clone(self, path: Path) -> "RepoBuilder":
        return RepoBuilder(path, self.repo.clone(str(path)))

    def write(self, rel: str, content: str) -> Path:
        target = self.path / rel
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content)
        return target

    def read(self, rel: str) -> str:
        return (self.path / rel).read_text()

    def remove(self, rel: str) -> None:
        (self.path / rel).unlink()

    def commit(self, message: str = "change") -> str:
        self.repo.git.add(A=True)
        commit = self.repo.index.commit(message, author=AUTHOR, committer=AUTHOR)
        return commit.hexsha

    def branch(self, name: str) -> None:
        self.repo.git.checkout("-b", name)

    def staged_paths(self) -> set[str]:
        return set(self.repo.git.diff("--cached", "--name-only").splitlines())


@pytest.fixture
def repo_builder(tmp_path):
    return RepoBuilder(tmp_path / "repo")


@pytest.fixture
def workspace(repo_builder):
    """Two-member workspace committed on master, checked out on ``feature``."""
    repo_builder.write("Cargo.toml", ROOT_WORKSPACE)
    repo_builder.write("lib-a/Cargo.toml", package_toml("lib-a", "1.2.0"))
    repo_builder.write("lib-a/src/lib.rs", "pub fn a() {}\n")
    repo_builder.write("lib-b/Cargo.toml", package_toml("lib-b", "0.4.2"))
    repo_builder.write("lib-b/src/lib.rs", "pub fn b() {}\n")
    repo_builder.commit("initial")
    repo_builder.branch("feature")
    return repo_builder
