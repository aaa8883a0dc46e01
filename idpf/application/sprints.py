"""Sprint and release-context commands built on ``gh pmu``.

Each command writes its report through an ``OutputContext`` and returns what it
found; deciding the exit status is left to the calling script.
"""

from __future__ import annotations

from dataclasses import dataclass
import json
from typing import Any

from idpf.infrastructure.command_runner import Result, field_value
from idpf.infrastructure.git import GitClient
from idpf.infrastructure.output import OutputContext
from idpf.infrastructure.pmu import PmuClient

DONE = "Done"
IN_PROGRESS = "In progress"
IN_REVIEW = "In review"


def load_current_sprint(pmu: PmuClient) -> Result[dict | None]:
    """``success(None)`` when no sprint is active; ``failure("parse")`` when output is unreadable."""
    raw = pmu.run("microsprint", "current", "--json")
    if not raw.ok or not (raw.value or "").strip():
        return Result.success(None)
    try:
        data = json.loads(raw.value or "")
    except ValueError:
        return Result.failure("parse", "Could not parse sprint data.")
    if not isinstance(data, dict):
        return Result.failure("parse", "Could not parse sprint data.")
    return Result.success(data)


def issue_status(issue: Any, default: str | None = None) -> str | None:
    return field_value(issue, "Status") or default


def name_of(item: Any) -> str:
    if isinstance(item, dict):
        return str(item.get("name") or item.get("version") or "")
    return str(item)


@dataclass(frozen=True)
class SprintProgress:
    done: int = 0
    in_progress: int = 0
    in_review: int = 0
    pending: int = 0

    @classmethod
    def from_issues(cls, issues: list[Any]) -> "SprintProgress":
        counts = {"done": 0, "in_progress": 0, "in_review": 0, "pending": 0}
        for issue in issues:
            status = issue_status(issue, "Backlog")
            if status == DONE:
                counts["done"] += 1
            elif status == IN_PROGRESS:
                counts["in_progress"] += 1
            elif status == IN_REVIEW:
                counts["in_review"] += 1
            else:
                counts["pending"] += 1
        return cls(**counts)

    @property
    def total(self) -> int:
        return self.done + self.in_progress + self.in_review + self.pending

    @property
    def percent(self) -> int:
        return round(self.done / self.total * 100) if self.total else 0


def show_status(pmu: PmuClient, out: OutputContext) -> SprintProgress | None:
    out.line("=== Sprint Status ===")
    out.line()
    current = load_current_sprint(pmu)
    if not current.ok:
        out.line("Could not parse sprint data.")
        out.line("Use: gh pmu microsprint current")
        return None
    sprint = current.value
    if sprint is None:
        out.line("No active sprint.")
        out.line('Start one with: gh pmu microsprint start --name "sprint-name"')
        return None

    issues = sprint.get("issues") or []
    progress = SprintProgress.from_issues(issues)
    out.line(f"Sprint: {sprint.get('name') or 'current'}")
    out.line(f"Issues: {len(issues)}")
    out.line()
    out.line("Progress:")
    out.line(f"  ✓ Done: {progress.done}")
    out.line(f"  → In Progress: {progress.in_progress}")
    out.line(f"  ⏸ In Review: {progress.in_review}")
    out.line(f"  ○ Pending: {progress.pending}")
    out.line()
    out.line(f"Completion: {progress.percent}% ({progress.done}/{progress.total})")
    return progress


def end_sprint(pmu: PmuClient, out: OutputContext, *, skip_retro: bool = False) -> bool:
    """Review the current sprint and close it; True when ``gh pmu`` accepted the close."""
    out.line("=== End Sprint ===")
    out.line()
    current = load_current_sprint(pmu)
    if not current.ok:
        out.line("Could not parse sprint data.")
        out.line("Use: gh pmu microsprint close")
        return False
    sprint = current.value
    if sprint is None:
        out.line("No active sprint to end.")
        return False

    name = sprint.get("name") or "current"
    issues = sprint.get("issues") or []
    out.line(f"Ending sprint: {name}")
    out.line()

    incomplete = [i for i in issues if issue_status(i) != DONE]
    if incomplete:
        out.line(f"⚠ {len(incomplete)} incomplete issues:")
        for issue in incomplete:
            out.line(f"  #{issue.get('number')} - {issue.get('title')} ({issue_status(issue, 'Unknown')})")
        out.line()
        out.line("Incomplete issues will remain in backlog.")
        out.line()

    out.line("--- Sprint Review ---")
    out.line(f"Completed: {len(issues) - len(incomplete)}/{len(issues)} issues")
    out.line()
    if not skip_retro:
        out.line("--- Retrospective ---")
        out.line("Consider: What went well? What to improve? What to stop?")
        out.line()

    out.line("Closing sprint...")
    if pmu.close_sprint(skip_retro=skip_retro).ok:
        out.line(f'✓ Sprint "{name}" closed')
        return True
    out.line("Note: Run `gh pmu microsprint close` to complete.")
    return False


RETRO_QUESTIONS = (
    ("1. What went well? (Keep doing)", ("Practices that worked", "Tools that helped", "Collaboration successes")),
    ("2. What could be improved? (Start doing)", ("Bottlenecks encountered", "Missing processes", "Communication gaps")),
    ("3. What should we stop? (Stop doing)", ("Wasteful practices", "Ineffective processes", "Unnecessary overhead")),
    ("4. Action items for next sprint:", ("Specific improvements to implement", "Experiments to try")),
)


def show_retro(pmu: PmuClient, out: OutputContext) -> bool:
    out.line("=== Sprint Retrospective ===")
    out.line()
    current = load_current_sprint(pmu)
    if not current.ok:
        out.line("Could not parse sprint data.")
        return False
    if current.value is None:
        out.line("No active sprint to retrospect.")
        return False

    out.line(f"Sprint: {current.value.get('name') or 'current'}")
    out.line()
    out.line("Retrospective Questions:")
    out.line()
    for question, prompts in RETRO_QUESTIONS:
        out.line(question)
        for prompt in prompts:
            out.line(f"   - {prompt}")
        out.line()
    out.line("---")
    out.line("To close sprint with retro: gh pmu microsprint close")
    out.line("To skip retro: gh pmu microsprint close --skip-retro")
    return True


def plannable_epics(pmu: PmuClient) -> list[dict]:
    """Epics with no microsprint whose status is Backlog or Ready."""
    return [
        item
        for item in pmu.list_issues("--label", "epic")
        if isinstance(item, dict)
        and not field_value(item, "Microsprint")
        and issue_status(item) in {"Backlog", "Ready"}
    ]


def plan_sprint(pmu: PmuClient, out: OutputContext, *, name: str | None = None) -> list[dict]:
    out.line("=== Plan Sprint ===")
    out.line()
    release = pmu.current_release()
    if not release:
        out.line("No active release context.")
        out.line('Start a release first: gh pmu release start --version "X.Y.Z"')
        out.line("Then use /switch-release to set the release.")
        return []
    out.line(f"Release context: {release}")
    out.line()

    epics = plannable_epics(pmu)
    if not epics:
        out.line("No available epics to plan.")
        out.line("All epics are either already in a sprint or in progress.")
        return []

    out.line("Available epics for sprint:")
    out.line()
    for idx, epic in enumerate(epics, start=1):
        stories = len(pmu.sub_issues(int(epic.get("number") or 0)))
        priority = field_value(epic, "Priority") or "P2"
        out.line(f"  [{idx}] #{epic.get('number')} - {epic.get('title')}")
        out.line(f"      {stories} stories | {priority}")

    out.line()
    out.line("--- To start a sprint ---")
    out.line('1. Start microsprint: gh pmu microsprint start --name "sprint-name"')
    out.line("2. Add epics: gh pmu microsprint add #<epic-number>")
    out.line()
    out.line('Or use: /plan-sprint --name "sprint-name"')

    if name:
        out.line()
        out.line(f"Creating sprint: {name}...")
        if pmu.start_sprint(name).ok:
            out.line(f'✓ Sprint "{name}" created')
            out.line()
            out.line("Now add epics with: gh pmu microsprint add #<epic-number>")
        else:
            out.line("Note: Sprint creation may require gh pmu microsprint support.")
    return epics


def normalize_release_branch(name: str, prefixes: tuple[str, ...] = ("release/", "patch/", "hotfix/")) -> str:
    return name if name.startswith(prefixes) else f"release/{name}"


def transfer_issue(
    pmu: PmuClient,
    out: OutputContext,
    number: int,
    *,
    release: str | None = None,
    sprint: str | None = None,
    remove_sprint: bool = False,
    remove_release: bool = False,
) -> bool:
    """Apply at most one transfer action; False when the issue or the action failed."""
    issue = pmu.view_issue(number)
    if issue is None:
        out.line(f"Issue #{number} not found or error fetching.")
        return False

    current_release = field_value(issue, "Release") or "(none)"
    current_sprint = field_value(issue, "Microsprint") or field_value(issue, "Sprint") or "(none)"
    out.line(f"Issue #{number}: {issue.get('title')}")
    out.line(f"Current release: {current_release}")
    out.line(f"Current sprint: {current_sprint}")
    out.line()

    if remove_release:
        out.line("Removing from release...")
        out.line("Note: Use gh pmu move to update release assignment.")
        out.line(f'Example: gh pmu move {number} --release ""')
        return True

    if remove_sprint:
        out.line("Removing from sprint...")
        if pmu.remove_from_sprint(number).ok:
            out.line(f"✓ Issue #{number} removed from sprint")
            return True
        out.line("Note: Use gh pmu microsprint remove to update sprint assignment.")
        return False

    if release:
        out.line(f"Transferring to release: {release}...")
        branch = normalize_release_branch(release, ("release/", "patch/"))
        if pmu.move_to_release(number, branch).ok:
            out.line(f"✓ Issue #{number} transferred to {branch}")
            return True
        out.line("Note: Release transfer may require gh pmu --release support.")
        out.line(f'Manual: gh pmu move {number} --release "{branch}"')
        return False

    if sprint:
        out.line(f"Transferring to sprint: {sprint}...")
        if pmu.add_to_sprint(number).ok:
            out.line(f"✓ Issue #{number} added to current sprint")
            return True
        out.line("Note: Sprint transfer requires active microsprint.")
        out.line("Use gh pmu microsprint current first, then add the issue.")
        return False

    out.line("--- Transfer Options ---")
    releases = pmu.open_releases()
    if releases:
        out.line()
        out.line("Available releases:")
        for item in releases:
            release_name = name_of(item)
            marker = " ← current" if release_name == current_release else ""
            out.line(f"  - {release_name}{marker}")
    out.line()
    out.line("To transfer:")
    out.line(f"  /transfer-issue #{number} --release release/vX.Y.Z")
    out.line(f"  /transfer-issue #{number} --remove-release")
    out.line(f"  /transfer-issue #{number} --remove-sprint")
    return True


def switch_release(git: GitClient, pmu: PmuClient, out: OutputContext, release: str | None) -> bool:
    out.line("=== Switch Release ===")
    out.line()
    current_branch = git.current_branch()
    out.line(f"Current branch: {current_branch}")
    out.line()

    if not release:
        releases = pmu.open_releases()
        if not releases:
            out.line("No open releases found.")
            out.line()
            out.line('Create one with: gh pmu release start --version "X.Y.Z"')
            return True
        out.line("Available Releases:")
        for idx, item in enumerate(releases, start=1):
            release_name = name_of(item)
            branch = item.get("branch") if isinstance(item, dict) and item.get("branch") else release_name
            marker = " ← current" if current_branch == branch else ""
            out.line(f"  [{idx}] {release_name}{marker}")
        out.line()
        out.line("Usage: /switch-release <release>")
        out.line("Example: /switch-release release/v2.0.0")
        return True

    branch = normalize_release_branch(release)
    if not git.branch_exists(branch):
        out.line(f"Branch '{branch}' does not exist.")
        out.line()
        out.line("Available release branches:")
        candidates = [b for b in git.list_branches() if any(p in b for p in ("release", "patch", "hotfix"))]
        for candidate in candidates:
            out.line(f"  {candidate}")
        if not candidates:
            out.line("  (none found)")
        return False

    if current_branch == branch:
        out.line(f"Already on branch '{branch}'.")
    else:
        out.line(f"Switching to branch '{branch}'...")
        if not git.checkout(branch).ok:
            out.line("✗ Failed to switch branch. Check for uncommitted changes.")
            return False
        out.line(f"✓ Switched to {branch}")

    out.line()
    out.line("--- Sprint Context ---")
    sprints = pmu.sprints()
    if not sprints:
        out.line("No active sprints for this release.")
        out.line()
        out.line('Start one with: gh pmu microsprint start --name "sprint-name"')
    else:
        out.line("Active sprints:")
        for idx, sprint in enumerate(sprints, start=1):
            out.line(f"  [{idx}] {name_of(sprint)}")
        out.line()
        out.line("Join a sprint with: gh pmu microsprint current")

    out.line()
    out.line(f"✓ Context switched to release: {release}")
    return True

