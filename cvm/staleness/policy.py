"""Map per-package outcomes to actions and fold them into a verdict.

Precedence for a stale package is ``check`` > ``fix`` > ``warn`` > report.
Force mode bumps packages that are otherwise compliant. Failures accumulate;
the overall verdict is only decided once every package has been dispatched.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from enum import Enum

from cvm.config import PolicyConfig
from cvm.models.outcome import Outcome, OutcomeKind, PackageResult


class PolicyAction(Enum):
    """What happens to a package after evaluation."""

    PASS = "pass"
    WARN_AND_CONTINUE = "warn"
    REPORT = "report"
    FAIL_BUILD = "fail"
    BUMP_AND_STAGE = "bump"


@dataclass
class PolicyDecision:
    """Result of dispatching one package."""

    action: PolicyAction
    result: PackageResult
    outcome: Outcome | None = None  # after any force relabelling
    message: str = ""

    @property
    def is_violation(self) -> bool:
        return self.action is PolicyAction.FAIL_BUILD

    @property
    def needs_bump(self) -> bool:
        return self.action is PolicyAction.BUMP_AND_STAGE


def stale_message(outcome: Outcome) -> str:
    return (
        f"version {outcome.seen_version} is not updated for changes in workspace "
        f"manifest file: {outcome.manifest_path}"
    )


def _non_compliant_action(config: PolicyConfig) -> PolicyAction:
    if config.check:
        return PolicyAction.FAIL_BUILD
    if config.warn:
        return PolicyAction.WARN_AND_CONTINUE
    return PolicyAction.REPORT


def dispatch(result: PackageResult, config: PolicyConfig) -> PolicyDecision:
    """Decide the action for one package result under *config*."""
    if result.error is not None:
        # Unreadable versions are never silently passed, and never bumped.
        return PolicyDecision(
            action=_non_compliant_action(config),
            result=result,
            message=f"could not verify version of {result.label}: {result.error}",
        )

    outcome = result.outcome
    if outcome is None:
        raise ValueError(f"Package result for {result.label} has neither outcome nor error")

    if outcome.kind is OutcomeKind.STALE:
        if config.check:
            action = PolicyAction.FAIL_BUILD
        elif config.fix:
            action = PolicyAction.BUMP_AND_STAGE
        elif config.warn:
            action = PolicyAction.WARN_AND_CONTINUE
        else:
            action = PolicyAction.REPORT
        return PolicyDecision(action=action, result=result, outcome=outcome, message=stale_message(outcome))

    if config.force and outcome.seen_version is not None:
        return PolicyDecision(
            action=PolicyAction.BUMP_AND_STAGE,
            result=result,
            outcome=outcome.as_force_candidate(),
            message=f"forcing version bump of {outcome.manifest_path} from {outcome.seen_version}",
        )

    return PolicyDecision(action=PolicyAction.PASS, result=result, outcome=outcome)


@dataclass
class PolicyTally:
    """Thread-safe accumulator of decisions across a workspace scan."""

    decisions: list[PolicyDecision] = field(default_factory=list)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def add(self, decision: PolicyDecision) -> PolicyDecision:
        with self._lock:
            self.decisions.append(decision)
        return decision

    @property
    def failed(self) -> bool:
        return any(d.is_violation for d in self.decisions)

    @property
    def violations(self) -> list[str]:
        return [d.message for d in self.decisions if d.is_violation]

    @property
    def bumps(self) -> list[PolicyDecision]:
        return [d for d in self.decisions if d.needs_bump]

    def count(self, action: PolicyAction) -> int:
        return sum(1 for d in self.decisions if d.action is action)
