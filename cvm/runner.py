"""Run one version check over a workspace.

A run has three phases, each completing before the next starts:

1. Setup: load the root manifest and list the workspace packages.
2. Resolve references: optionally fetch, then resolve the reference and
   current trees and compute the shared list of changed paths.
3. Evaluate: packages are evaluated in parallel against that list, then
   dispatched in workspace order on the calling thread. Version bumps are
   written back here, one at a time.

The verdict is decided only after every package was dispatched.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath

from cvm.config import PolicyConfig
from cvm.exceptions import ConfigurationError, CvmError, MalformedVersion, ManifestNotFound, WriteBackError
from cvm.manifest.descriptor import PackageDescriptor
from cvm.manifest.workspace import enumerate_workspace
from cvm.models.outcome import PackageResult
from cvm.models.version import SemanticVersion
from cvm.staleness.diff import diff_trees
from cvm.staleness.evaluator import StalenessEvaluator
from cvm.staleness.policy import PolicyDecision, PolicyTally, dispatch
from cvm.utils.git_ops import GitSnapshotProvider
from cvm.utils.writeback import ManifestWriter

logger = logging.getLogger(__name__)


@dataclass
class VersionBump:
    """A version change written back to a manifest."""

    manifest_path: str
    old: SemanticVersion
    new: SemanticVersion


@dataclass
class RunReport:
    """Everything a run decided, in workspace order."""

    reference: str
    current: str
    tally: PolicyTally = field(default_factory=PolicyTally)
    bumps: list[VersionBump] = field(default_factory=list)
    commit_sha: str = ""

    @property
    def decisions(self) -> list[PolicyDecision]:
        return self.tally.decisions

    @property
    def failed(self) -> bool:
        return self.tally.failed

    @property
    def violations(self) -> list[str]:
        return self.tally.violations

    def summary(self) -> str:
        counts: dict[str, int] = {}
        for d in self.decisions:
            counts[d.action.value] = counts.get(d.action.value, 0) + 1
        parts = [f"{n} {action}" for action, n in sorted(counts.items())]
        lines = [
            f"Compared {self.current} against {self.reference}",
            f"Packages:  {len(self.decisions)} ({', '.join(parts) if parts else 'none'})",
            f"Bumped:    {len(self.bumps)}",
            f"Overall:   {'FAIL' if self.failed else 'PASS'}",
        ]
        if self.commit_sha:
            lines.append(f"Commit:    {self.commit_sha[:12]}")
        return "\n".join(lines)


def _repo_relative(root: Path, package: Path, workdir: Path) -> PurePosixPath:
    absolute = (root / package).resolve()
    try:
        return PurePosixPath(absolute.relative_to(workdir.resolve()).as_posix())
    except ValueError:
        raise ConfigurationError(
            f"Workspace member {package} is outside the repository at {workdir}",
            context={"member": str(package)},
        ) from None


def run_check(
    root: str | Path,
    config: PolicyConfig,
    provider: GitSnapshotProvider | None = None,
    writer: ManifestWriter | None = None,
    notify: Callable[[PolicyDecision], None] | None = None,
) -> RunReport:
    """Check every package under *root* and apply *config*'s policy.

    Args:
        root: Directory holding the workspace (root) manifest.
        config: The policy flags for this run.
        provider: Snapshot provider; discovered from *root* when omitted.
        writer: Write-back collaborator; built from the provider's repo when omitted.
        notify: Called with each decision as soon as it is made, in workspace order.

    Raises:
        ConfigurationError: Missing root manifest, or a member without a manifest.
        ReferenceResolutionError: The reference branch or remote is unavailable.
        WriteBackError: A bump, stage or commit failed.
    """
    root = Path(root)
    config.validate()

    # Phase 1: setup
    packages = enumerate_workspace(root, config.manifest_name)
    if provider is None:
        provider = GitSnapshotProvider.discover(root)
    workdir = provider.workdir
    package_dirs = [_repo_relative(root, p, workdir) for p in packages]

    # Phase 2: resolve references
    if config.fetch:
        provider.fetch(config.remote, config.branch, config.ssh_key)
    reference_tree = provider.resolve_tree(config.branch, config.remote, prefer_remote=config.fetch)
    current_tree = provider.head_tree()
    changes = tuple(diff_trees(provider, reference_tree, current_tree))
    logger.info(
        "Comparing %s against %s: %d changed path(s), %d package(s)",
        provider.current_branch(), config.branch, len(changes), len(packages),
    )

    # Phase 3: evaluate, then dispatch in order
    evaluator = StalenessEvaluator(
        provider, changes, config.manifest_name, config.source_dir, reference_tree=reference_tree,
    )

    def evaluate(index: int) -> PackageResult:
        package_dir = package_dirs[index]
        try:
            descriptor = PackageDescriptor.load(root / packages[index], config.manifest_name)
        except ManifestNotFound:
            raise
        except CvmError as e:
            logger.warning("Could not load manifest for %s: %s", package_dir, e)
            return PackageResult(package_dir=package_dir, error=e)
        return evaluator.evaluate_result(descriptor, package_dir)

    workers = max(1, min(config.jobs, len(packages)))
    with ThreadPoolExecutor(max_workers=workers) as executor:
        results = list(executor.map(evaluate, range(len(packages))))

    report = RunReport(reference=config.branch, current=provider.current_branch())
    if writer is None and config.writes_back:
        writer = ManifestWriter(provider.repo)

    decisions = [dispatch(result, config) for result in results]
    # Every new version is computed before the first manifest is touched.
    planned = [_plan_bump(d, config) if d.needs_bump else None for d in decisions]

    for decision, bump in zip(decisions, planned):
        report.tally.add(decision)
        if bump is not None:
            _write_bump(decision, bump, workdir, writer)
            report.bumps.append(bump)
        if notify is not None:
            notify(decision)

    if config.commit and writer is not None and writer.staged:
        report.commit_sha = writer.commit(config.commit_message)

    return report


def _plan_bump(decision: PolicyDecision, config: PolicyConfig) -> VersionBump:
    outcome = decision.outcome
    try:
        new_version = outcome.version.bump(config.semver)
    except MalformedVersion as e:
        raise WriteBackError(
            f"Cannot bump {outcome.manifest_path} past {outcome.version}: {e}",
            context={"manifest": outcome.manifest_path, "version": str(outcome.version)},
        ) from e
    return VersionBump(manifest_path=outcome.manifest_path, old=outcome.seen_version, new=new_version)


def _write_bump(decision: PolicyDecision, bump: VersionBump, workdir: Path, writer: ManifestWriter) -> None:
    manifest = workdir / bump.manifest_path
    writer.replace_version_in_file(manifest, str(bump.old), str(bump.new))
    writer.stage(manifest)
    decision.message = f"version {bump.new} update added to git."
