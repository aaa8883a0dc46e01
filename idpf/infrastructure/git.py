from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from idpf.domain.commits import Commit, parse_log
from idpf.domain.versioning import RELEASE_TAG_RE
from idpf.infrastructure.command_runner import CommandRunner, Result, SubprocessRunner


@dataclass
class GitClient:
    runner: CommandRunner = field(default_factory=SubprocessRunner)
    cwd: Path | None = None

    def run(self, *args: str) -> Result[str]:
        return self.runner.run(["git", *args], cwd=self.cwd)

    def is_repo(self) -> bool:
        return self.run("rev-parse", "--git-dir").ok

    def describe_latest_tag(self) -> Result[str]:
        return self.run("describe", "--tags", "--abbrev=0")

    def latest_release_tag(self) -> str | None:
        """Highest version-sorted tag that looks like ``vX.Y.Z``; else first tag; else None."""
        tags = [t.strip() for t in self.run("tag", "--sort=-v:refname").unwrap_or("").splitlines() if t.strip()]
        for tag in tags:
            if RELEASE_TAG_RE.match(tag):
                return tag
        return tags[0] if tags else None

    def commits_since(self, tag: str | None) -> Result[list[Commit]]:
        rev_range = f"{tag}..HEAD" if tag else "HEAD"
        return self.run("log", rev_range, "--pretty=format:%H|%s").map(parse_log)

    def current_branch(self) -> str | None:
        value = self.run("branch", "--show-current").unwrap_or("")
        return value or None

    def branch_exists(self, branch: str) -> bool:
        return self.run("rev-parse", "--verify", branch).ok

    def checkout(self, branch: str) -> Result[str]:
        return self.run("checkout", branch)

    def list_branches(self) -> list[str]:
        output = self.run("branch", "-a").unwrap_or("")
        return [line.strip().lstrip("* ").strip() for line in output.splitlines() if line.strip()]

    def status_porcelain(self, path: str | None = None) -> Result[str]:
        if path:
            return self.run("status", "--porcelain", path)
        return self.run("status", "--porcelain")

    def is_dirty(self, path: str | None = None) -> bool:
        return bool(self.status_porcelain(path).unwrap_or(""))

    def head_commit(self) -> str | None:
        value = self.run("rev-parse", "HEAD").unwrap_or("")
        return value or None

    def has_remote(self) -> bool:
        return bool(self.run("remote", "-v").unwrap_or(""))

    def ls_remote_tags(self, url: str) -> Result[list[str]]:
        """Tag names advertised by ``url``; peeled ``^{}`` entries are dropped."""
        return self.run("ls-remote", "--tags", url).map(_remote_tag_names)

    def clone(self, url: str, dest: Path, *, branch: str, depth: int = 1) -> Result[str]:
        return self.run("clone", "--depth", str(depth), "--branch", branch, url, str(dest))


def _remote_tag_names(output: str) -> list[str]:
    names: list[str] = []
    for line in output.splitlines():
        _, _, ref = line.partition("\t")
        ref = ref.strip()
        if not ref.startswith("refs/tags/") or ref.endswith("^{}"):
            continue
        names.append(ref[len("refs/tags/"):])
    return names
