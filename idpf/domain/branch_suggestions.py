"""Release-branch name suggestions shown when no release is open."""

from __future__ import annotations

from dataclasses import dataclass
import re
from typing import Iterable

from idpf.domain.versioning import Version

RELEASE_PREFIXES = ("release/", "patch/", "hotfix/")
BUG_LABELS = {"bug", "hotfix"}
FEATURE_LABELS = {"enhancement", "feature", "epic", "story"}

FALLBACK_SUGGESTIONS = (
    ("release/v1.0.0", "Initial release"),
    ("patch/v0.0.1", "Initial patch"),
)


@dataclass
class BranchSuggestion:
    branch: str
    description: str
    recommended: bool = False

    def line(self, index: int) -> str:
        marker = " (recommended)" if self.recommended else ""
        return f"{index}|{self.branch}|{self.description}{marker}"


def is_release_branch(name: str) -> bool:
    return name.startswith(RELEASE_PREFIXES)


def suggest_branches(last_version: Version | None, user_input: str | None, labels: Iterable[str]) -> list[BranchSuggestion]:
    lowered = {label.lower() for label in labels}
    has_bug = bool(lowered & BUG_LABELS)
    has_feature = bool(lowered & FEATURE_LABELS)
    suggestions: list[BranchSuggestion] = []

    if last_version is not None:
        suggestions.append(
            BranchSuggestion(
                f"patch/{last_version.bump('patch').tag()}",
                "Next patch version (bug fixes only)",
                has_bug and not has_feature,
            )
        )
        suggestions.append(
            BranchSuggestion(
                f"release/{last_version.bump('minor').tag()}",
                "Next minor version (new features)",
                has_feature and not has_bug,
            )
        )
        suggestions.append(
            BranchSuggestion(f"release/{last_version.bump('major').tag()}", "Next major version (breaking changes)")
        )

    if user_input:
        if user_input.startswith(("release/", "patch/")):
            suggestions.insert(0, BranchSuggestion(user_input, "Your specified branch", True))
        else:
            clean = re.sub(r"[^a-zA-Z0-9.-]", "-", user_input[1:] if user_input.startswith("v") else user_input)
            if has_bug:
                suggestions.append(BranchSuggestion(f"patch/{clean}", "Your input with patch prefix"))
            else:
                suggestions.append(BranchSuggestion(f"release/{clean}", "Your input with release prefix"))

    if suggestions and not any(s.recommended for s in suggestions):
        suggestions[0].recommended = True
    return suggestions
