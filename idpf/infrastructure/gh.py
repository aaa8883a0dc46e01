"""GitHub CLI wrapper.

Transient server errors (``HTTP 5xx`` in the error text) are retried with
exponential backoff before the failure is handed back to the caller.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import re
import time
from typing import Any, Callable, Sequence

from idpf.infrastructure.command_runner import CommandRunner, Result, SubprocessRunner, parse_json

TRANSIENT_RE = re.compile(r"HTTP 5\d{2}")

RUN_FIELDS = "databaseId,status,conclusion,name,headBranch,createdAt,updatedAt"
RUN_VIEW_FIELDS = "databaseId,status,conclusion,name,jobs,createdAt,updatedAt"
RELEASE_LIST_FIELDS = "tagName,name,createdAt,isDraft,isPrerelease"
RELEASE_VIEW_FIELDS = "tagName,name,body,createdAt,assets,url"


def is_transient_error(message: str) -> bool:
    return bool(TRANSIENT_RE.search(message or ""))


@dataclass
class GhClient:
    runner: CommandRunner = field(default_factory=SubprocessRunner)
    retries: int = 3
    retry_delay_ms: int = 1000
    sleep: Callable[[float], None] = time.sleep

    def run(self, args: Sequence[str]) -> Result[str]:
        delay = self.retry_delay_ms
        result: Result[str] = Result.failure("failed", "gh was not invoked")
        for attempt in range(self.retries + 1):
            result = self.runner.run(["gh", *args])
            if result.ok or not is_transient_error(result.message):
                return result
            if attempt < self.retries:
                self.sleep(delay / 1000.0)
                delay *= 2
        return Result.failure("failed", f"gh {' '.join(args)} failed after {self.retries} retries: {result.message}")

    def run_json(self, args: Sequence[str]) -> Result[Any]:
        return parse_json(self.run(args))

    @staticmethod
    def _repo_args(repo: str | None) -> list[str]:
        return ["--repo", repo] if repo else []

    def latest_run(self, repo: str | None = None) -> Result[dict | None]:
        runs = self.run_json(["run", "list", "--limit", "1", "--json", RUN_FIELDS, *self._repo_args(repo)])
        return runs.map(lambda items: items[0] if items else None)

    def runs(self, *, limit: int = 10, branch: str | None = None, repo: str | None = None) -> Result[list]:
        args = ["run", "list", "--limit", str(limit), "--json", RUN_FIELDS]
        if branch:
            args += ["--branch", branch]
        return self.run_json(args + self._repo_args(repo))

    def run_details(self, run_id: Any, repo: str | None = None) -> Result[dict]:
        return self.run_json(["run", "view", str(run_id), "--json", RUN_VIEW_FIELDS, *self._repo_args(repo)])

    def tag_triggered_run(self, tag: str, repo: str | None = None) -> dict | None:
        for run in self.runs(limit=20, repo=repo).unwrap_or([]):
            if run.get("headBranch") in {tag, f"refs/tags/{tag}"}:
                return run
        return None

    def release(self, tag: str, repo: str | None = None) -> dict | None:
        return self.run_json(["release", "view", tag, "--json", RELEASE_VIEW_FIELDS, *self._repo_args(repo)]).unwrap_or(None)

    def releases(self, *, limit: int = 10, repo: str | None = None) -> list[dict]:
        return self.run_json(
            ["release", "list", "--limit", str(limit), "--json", RELEASE_LIST_FIELDS, *self._repo_args(repo)]
        ).unwrap_or([])

    def edit_release_notes(self, tag: str, notes_file: str) -> Result[str]:
        return self.run(["release", "edit", tag, "--notes-file", notes_file])

    def delete_release_asset(self, tag: str, asset_name: str) -> Result[str]:
        return self.run(["release", "delete-asset", tag, asset_name, "--yes"])

    def current_repo(self) -> str | None:
        value = self.run(["repo", "view", "--json", "nameWithOwner", "-q", ".nameWithOwner"]).unwrap_or("")
        return value or None

    def is_available(self) -> bool:
        return self.run(["auth", "status"]).ok

    def issue_labels(self, number: int) -> list[str]:
        output = self.run(["issue", "view", str(number), "--json", "labels", "-q", ".labels[].name"]).unwrap_or("")
        return [line.strip() for line in output.splitlines() if line.strip()]

    def extensions(self) -> Result[str]:
        return self.run(["extension", "list"])

    def install_extension(self, name: str) -> Result[str]:
        return self.run(["extension", "install", name])

    def username(self) -> str | None:
        value = self.run(["api", "user", "--jq", ".login"]).unwrap_or("")
        return value or None
