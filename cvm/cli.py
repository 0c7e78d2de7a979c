"""cvm CLI — the main entry point for the Crate Version Manager."""

import logging
import sys

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from cvm import __version__
from cvm.config import resolve_config
from cvm.exceptions import CvmError, PolicyViolation
from cvm.runner import RunReport, run_check
from cvm.staleness.policy import PolicyAction, PolicyDecision

console = Console()
err_console = Console(stderr=True)

EXIT_VIOLATION = 1
EXIT_ERROR = 2

_ACTION_STYLE = {
    "pass": "[green]PASS[/]",
    "warn": "[yellow]WARN[/]",
    "report": "[cyan]STALE[/]",
    "fail": "[red]FAIL[/]",
    "bump": "[magenta]BUMP[/]",
}


def _setup_logging(verbose: int) -> None:
    level = logging.WARNING
    if verbose == 1:
        level = logging.INFO
    elif verbose > 1:
        level = logging.DEBUG
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


def _print_decision(decision: PolicyDecision) -> None:
    """Print a decision as soon as it is made."""
    if decision.action in (PolicyAction.FAIL_BUILD, PolicyAction.WARN_AND_CONTINUE):
        err_console.print(decision.message, markup=False, highlight=False, soft_wrap=True)
    elif decision.action in (PolicyAction.REPORT, PolicyAction.BUMP_AND_STAGE):
        console.print(decision.message, markup=False, highlight=False, soft_wrap=True)


def _print_summary(report: RunReport) -> None:
    table = Table(title=f"Packages ({len(report.decisions)} checked)")
    table.add_column("Package", style="cyan")
    table.add_column("Version", justify="right")
    table.add_column("Outcome")
    table.add_column("Action", justify="center")

    bumped = {b.manifest_path: b for b in report.bumps}
    for d in report.decisions:
        outcome = d.outcome
        if d.result.error is not None:
            version, kind = "?", "[red]error[/]"
        elif outcome.seen_version is None:
            version, kind = "-", "workspace root"
        else:
            version, kind = str(outcome.seen_version), outcome.kind.value
            if outcome.manifest_path in bumped:
                version = f"{version} -> {bumped[outcome.manifest_path].new}"
        table.add_row(d.result.label, version, kind, _ACTION_STYLE[d.action.value])

    console.print(table)
    console.print(Panel(report.summary(), title="Result"))


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(version=__version__)
@click.option(
    "--semver", "-s",
    type=click.Choice(["major", "minor", "patch"], case_sensitive=False),
    default=None,
    help="Type of semantic version bump (default: minor)",
)
@click.option("--branch", "-b", default=None, help="Reference branch to compare against (default: master)")
@click.option("--remote", "-r", default=None, help="Remote holding the reference branch (default: origin)")
@click.option("--ssh-key", "-k", default=None, help="Private key used to authenticate --fetch over ssh")
@click.option("--fetch", is_flag=True, help="Fetch the reference branch from the remote before comparing")
@click.option("--fix", "-f", is_flag=True, help="Bump the version of outdated packages")
@click.option("--force", "-F", is_flag=True, help="Bump versions even when already up to date")
@click.option("--check", "-x", is_flag=True, help="Fail if any version is out of date")
@click.option("--warn", "-w", is_flag=True, help="Warn (on stderr) if any version is out of date")
@click.option("--commit", "-c", is_flag=True, help="Commit updated versions; requires --fix or --force")
@click.option("--jobs", "-j", type=int, default=None, help="Packages evaluated in parallel (default: 4)")
@click.option(
    "--config", "config_path",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="YAML config file (default: .cvm.yaml in the workspace root)",
)
@click.option(
    "--root",
    type=click.Path(exists=True, file_okay=False),
    default=".",
    help="Workspace root holding the root manifest",
)
@click.option("--quiet", "-q", is_flag=True, help="Do not print the summary table")
@click.option("--verbose", "-v", count=True, help="Increase log verbosity (-v info, -vv debug)")
def main(
    semver, branch, remote, ssh_key, fetch, fix, force, check, warn, commit,
    jobs, config_path, root, quiet, verbose,
):
    """cvm — Crate Version Manager.

    Compares the current branch with a reference branch and verifies that
    every package whose src/ changed also bumped its version.
    """
    _setup_logging(verbose)

    overrides = {
        "semver": semver,
        "branch": branch,
        "remote": remote,
        "ssh_key": ssh_key,
        "fetch": fetch or None,
        "fix": fix or None,
        "force": force or None,
        "check": check or None,
        "warn": warn or None,
        "commit": commit or None,
        "jobs": jobs,
    }

    try:
        config = resolve_config(root, config_path, overrides)
        report = run_check(root, config, notify=_print_decision)
        if not quiet:
            _print_summary(report)
        if report.failed:
            raise PolicyViolation(report.violations)
    except PolicyViolation as e:
        err_console.print(f"[red]{escape(str(e))}[/]", soft_wrap=True)
        sys.exit(EXIT_VIOLATION)
    except CvmError as e:
        err_console.print(f"[red]error:[/] {escape(str(e))}", highlight=False, soft_wrap=True)
        sys.exit(EXIT_ERROR)


def cargo_main():
    """Entry point for ``cargo cvm``; cargo passes the subcommand name as argv[1]."""
    args = sys.argv[1:]
    if args and args[0] == "cvm":
        args = args[1:]
    main(args=args, prog_name="cargo cvm")


if __name__ == "__main__":
    main()
