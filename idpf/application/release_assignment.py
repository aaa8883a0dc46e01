"""Assigning backlog issues to an open release branch.

Moves run in fixed-size concurrent batches. Each worker collects its own output
lines and counts; the caller prints and accumulates only after the whole batch
has finished, so nothing is shared between threads.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
import re
import time
from typing import Any, Callable, Sequence

from idpf.domain.branch_suggestions import FALLBACK_SUGGESTIONS, RELEASE_PREFIXES, suggest_branches
from idpf.domain.versioning import parse_tag
from idpf.infrastructure.command_runner import field_value
from idpf.infrastructure.fs_atomic import atomic_write_json, read_json
from idpf.infrastructure.gh import GhClient
from idpf.infrastructure.git import GitClient
from idpf.infrastructure.output import OutputContext
from idpf.infrastructure.pmu import PmuClient

CACHE_RELPATH = Path(".claude") / "scripts" / ".release-cache.json"
CACHE_TTL_MS = 5 * 60 * 1000
BATCH_SIZE = 5
LARGE_SELECTION = 20

ISSUE_ARG_RE = re.compile(r"^#?\d+$")

GROUPS = (("epic", "Epics"), ("bug", "Bugs"), ("enhancement", "Enhancements"), ("story", "Stories"))


def _now_ms() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True)
class AssignArgs:
    release: str | None = None
    issues: tuple[int, ...] = ()
    user_input: str | None = None
    assign_all: bool = False
    check_epic: bool = False
    refresh: bool = False

    @classmethod
    def parse(cls, argv: Sequence[str]) -> "AssignArgs":
        release = next((a for a in argv if a.startswith(RELEASE_PREFIXES)), None)
        issues = tuple(int(a.lstrip("#")) for a in argv if ISSUE_ARG_RE.match(a))
        user_input = next(
            (
                a
                for a in argv
                if not a.startswith("-") and not a.startswith(RELEASE_PREFIXES) and not ISSUE_ARG_RE.match(a)
            ),
            None,
        )
        return cls(
            release=release,
            issues=issues,
            user_input=user_input,
            assign_all="--all" in argv,
            check_epic="--check-epic" in argv,
            refresh="--refresh" in argv,
        )


@dataclass
class AssignmentOutcome:
    assigned: int = 0
    epics: int = 0
    sub_issues: int = 0
    lines: list[str] = field(default_factory=list)

    def merge(self, other: "AssignmentOutcome") -> None:
        self.assigned += other.assigned
        self.epics += other.epics
        self.sub_issues += other.sub_issues


# -- release list ---------------------------------------------------------

def read_cached_releases(project_dir: Path, *, now_ms: Callable[[], int] = _now_ms) -> list[dict] | None:
    cache = read_json(project_dir / CACHE_RELPATH)
    if not isinstance(cache, dict) or not isinstance(cache.get("releases"), list):
        return None
    timestamp = cache.get("timestamp")
    if not isinstance(timestamp, (int, float)) or now_ms() - timestamp >= CACHE_TTL_MS:
        return None
    return cache["releases"]


def write_cached_releases(project_dir: Path, releases: list[dict], *, now_ms: Callable[[], int] = _now_ms) -> None:
    try:
        atomic_write_json(project_dir / CACHE_RELPATH, {"timestamp": now_ms(), "releases": releases})
    except OSError:
        # cache is an optimization only
        pass


def parse_release_table(text: str) -> list[dict]:
    """Active rows of ``gh pmu release list`` (VERSION CODENAME TRACKER STATUS)."""
    releases = []
    for line in text.splitlines()[2:]:
        parts = line.split()
        if len(parts) >= 4 and parts[-1] == "Active":
            releases.append({"version": parts[0], "name": parts[0]})
    return releases


def open_releases(
    pmu: PmuClient,
    project_dir: Path,
    *,
    refresh: bool = False,
    now_ms: Callable[[], int] = _now_ms,
) -> list[dict]:
    if not refresh:
        cached = read_cached_releases(project_dir, now_ms=now_ms)
        if cached:
            return cached
    table = pmu.release_table()
    if not table.ok or not table.value:
        return []
    releases = parse_release_table(table.value)
    write_cached_releases(project_dir, releases, now_ms=now_ms)
    return releases


# -- backlog ----------------------------------------------------------------

def unassigned_backlog(pmu: PmuClient) -> list[dict]:
    return [
        item
        for item in pmu.list_issues("--status", "backlog")
        if isinstance(item, dict) and not field_value(item, "Release")
    ]


def labels_of(issue: dict) -> list[str]:
    labels = []
    for label in issue.get("labels") or []:
        labels.append(label.get("name", "") if isinstance(label, dict) else str(label))
    return labels


def group_backlog(backlog: list[dict]) -> list[tuple[str, list[dict]]]:
    """Display groups in fixed order; an issue may appear in several label groups."""
    groups = []
    for label, title in GROUPS:
        members = [i for i in backlog if label in labels_of(i)]
        if members:
            groups.append((title, members))
    known = {label for label, _ in GROUPS}
    other = [i for i in backlog if not known & set(labels_of(i))]
    if other:
        groups.append(("Other", other))
    return groups


# -- assignment -------------------------------------------------------------

def assign_issue(pmu: PmuClient, number: int, release: str, lines: list[str]) -> bool:
    lines.append(f"  → Assigning #{number} to {release}")
    result = pmu.move_to_release(number, release)
    if not result.ok and "unknown flag" in result.message:
        lines.append("    (Note: gh pmu --release not yet supported, manual assignment needed)")
        return False
    return result.ok


def _sub_issue_number(sub: Any) -> int | None:
    raw = sub.get("number") if isinstance(sub, dict) else sub
    try:
        return int(raw)
    except (TypeError, ValueError):
        return None


def assign_with_sub_issues(
    gh: GhClient,
    pmu: PmuClient,
    number: int,
    release: str,
    *,
    check_epic: bool,
) -> AssignmentOutcome:
    outcome = AssignmentOutcome()
    if check_epic and "epic" in gh.issue_labels(number):
        outcome.epics = 1
        for sub in pmu.sub_issues(number):
            sub_number = _sub_issue_number(sub)
            if sub_number is not None and assign_issue(pmu, sub_number, release, outcome.lines):
                outcome.sub_issues += 1
                outcome.assigned += 1
    if assign_issue(pmu, number, release, outcome.lines):
        outcome.assigned += 1
    return outcome


def batched(items: Sequence[int], size: int = BATCH_SIZE) -> list[list[int]]:
    return [list(items[i : i + size]) for i in range(0, len(items), size)]


def assign_all(
    gh: GhClient,
    pmu: PmuClient,
    numbers: Sequence[int],
    release: str,
    out: OutputContext,
    *,
    check_epic: bool,
    batch_size: int = BATCH_SIZE,
) -> AssignmentOutcome:
    total = AssignmentOutcome()
    with ThreadPoolExecutor(max_workers=batch_size) as pool:
        for batch in batched(numbers, batch_size):
            futures = [
                pool.submit(assign_with_sub_issues, gh, pmu, number, release, check_epic=check_epic)
                for number in batch
            ]
            results = [f.result() for f in futures]
            for outcome in results:
                for line in outcome.lines:
                    out.line(line)
                total.merge(outcome)
    return total


# -- command ----------------------------------------------------------------

def print_release_suggestions(git: GitClient, gh: GhClient, args: AssignArgs, out: OutputContext) -> None:
    out.line("NO_RELEASE_FOUND")
    out.line()
    last_tag = git.describe_latest_tag().unwrap_or("")
    last_version = parse_tag(last_tag)
    labels = gh.issue_labels(args.issues[0]) if args.issues else []

    out.line("CONTEXT:")
    out.line(f"  Last version: {last_tag if last_version is not None else '(none)'}")
    if args.issues:
        out.line(f"  Issue: #{args.issues[0]}")
        out.line(f"  Labels: {', '.join(labels) if labels else '(none)'}")
    if args.user_input:
        out.line(f"  User input: {args.user_input}")
    out.line()

    out.line("SUGGESTIONS:")
    suggestions = suggest_branches(last_version, args.user_input, labels)
    if suggestions:
        for idx, suggestion in enumerate(suggestions, start=1):
            out.line(suggestion.line(idx))
    else:
        for idx, (branch, description) in enumerate(FALLBACK_SUGGESTIONS, start=1):
            out.line(f"{idx}|{branch}|{description}")
    out.line()
    out.line("ACTION_REQUIRED: Use AskUserQuestion to let user select a branch, then run:")
    out.line('  gh pmu release start --branch "<selected-branch>"')


def print_backlog(pmu: PmuClient, backlog: list[dict], release: str, out: OutputContext) -> None:
    out.line(f"Unassigned backlog issues ({len(backlog)} total):")
    out.line()
    for idx, (title, members) in enumerate(group_backlog(backlog)):
        if idx:
            out.line()
        out.line(f"── {title} ──")
        for issue in members:
            suffix = ""
            if title == "Epics":
                suffix = f" ({len(pmu.sub_issues(int(issue.get('number') or 0)))} sub-issues)"
            out.line(f"  #{issue.get('number')} - {issue.get('title')}{suffix}")
    out.line()
    out.line("---")
    out.line(f"To assign specific issues: /assign-release {release} #N #M ...")
    out.line(f"To assign all: /assign-release {release} --all")


def assign_release(
    git: GitClient,
    gh: GhClient,
    pmu: PmuClient,
    out: OutputContext,
    args: AssignArgs,
    *,
    project_dir: Path,
    now_ms: Callable[[], int] = _now_ms,
) -> AssignmentOutcome | None:
    """Run one ``/assign-release`` invocation; ``None`` when nothing was assigned."""
    out.line("=== Assign-Release ===")
    out.line()
    releases = open_releases(pmu, project_dir, refresh=args.refresh, now_ms=now_ms)

    release = args.release
    if not release:
        if not releases:
            print_release_suggestions(git, gh, args, out)
            return None
        out.line("Open Releases:")
        for idx, item in enumerate(releases, start=1):
            out.line(f"  {idx}. {item.get('name') or item.get('version')}")
        out.line()
        out.line("Usage: /assign-release <release> [#issue...] [--all]")
        out.line("Example: /assign-release release/v2.0.0 #123 #124")
        out.line("Example: /assign-release release/v2.0.0 --all")
        out.line()
        return None

    numbers = list(args.issues)
    if not numbers:
        backlog = unassigned_backlog(pmu)
        if not backlog:
            out.line("No unassigned backlog issues found.")
            return None
        if not args.assign_all:
            print_backlog(pmu, backlog, release, out)
            return None
        numbers = [int(i["number"]) for i in backlog if i.get("number") is not None]
        out.line(f"Assigning all {len(numbers)} unassigned backlog issues to {release}...")
        out.line()

    if len(numbers) >= LARGE_SELECTION:
        out.line(f"WARNING: About to assign {len(numbers)} issues to {release}.")
        out.line("If this is too many, cancel and specify individual issue numbers.")
        out.line()

    check_epic = args.check_epic or len(numbers) > 1 or args.assign_all
    out.line(f"Assigning to {release}:")
    out.line()
    outcome = assign_all(gh, pmu, numbers, release, out, check_epic=check_epic)

    out.line()
    out.line(f"✓ {outcome.assigned} issues assigned to {release}")
    if outcome.epics:
        out.line(f"  ({outcome.epics} epics with {outcome.sub_issues} sub-issues)")
    if not check_epic and len(numbers) == 1:
        out.line("  (epic check skipped for single issue - use --check-epic if needed)")
    return outcome
