"""Lenient dotted-version parsing and ordering.

Only the numeric ``major.minor.patch`` triple is modeled. Pre-release and build
suffixes are ignored, so ``1.2.3-rc.1`` and ``1.2.3`` compare equal.
"""

from __future__ import annotations

from dataclasses import dataclass
import re
from typing import Literal

BumpType = Literal["major", "minor", "patch"]

_DIGITS_RE = re.compile(r"^\d+$", re.ASCII)
_SUFFIX_RE = re.compile(r"[-+]")
TAG_VERSION_RE = re.compile(r"v?(\d+)\.(\d+)\.(\d+)", re.ASCII)
RELEASE_TAG_RE = re.compile(r"^v?\d+\.\d+\.\d+", re.ASCII)


@dataclass(frozen=True, order=True)
class Version:
    major: int = 0
    minor: int = 0
    patch: int = 0

    def bump(self, kind: BumpType) -> "Version":
        if kind == "major":
            return Version(self.major + 1, 0, 0)
        if kind == "minor":
            return Version(self.major, self.minor + 1, 0)
        return Version(self.major, self.minor, self.patch + 1)

    def tag(self, prefix: str = "v") -> str:
        return f"{prefix}{self}"

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.{self.patch}"


def _component(raw: str) -> int:
    token = raw.strip()
    if _DIGITS_RE.match(token):
        return int(token)
    return 0


def parse_version(text: str | None) -> Version:
    """Parse ``[v]X[.Y[.Z]]``; never raises.

    Missing components default to 0 and a non-numeric component reads as 0.
    """
    raw = str(text or "").strip()
    if raw[:1] in {"v", "V"}:
        raw = raw[1:]
    raw = _SUFFIX_RE.split(raw, maxsplit=1)[0]
    parts = raw.split(".")
    values = [_component(parts[i]) if i < len(parts) else 0 for i in range(3)]
    return Version(*values)


def compare_versions(a: str | None, b: str | None) -> int:
    left = parse_version(a)
    right = parse_version(b)
    if left < right:
        return -1
    if left > right:
        return 1
    return 0


def parse_tag(tag: str | None) -> Version | None:
    """Strict variant for git tags: ``None`` unless an ``X.Y.Z`` triple is present."""
    if not tag:
        return None
    m = TAG_VERSION_RE.search(tag)
    if not m:
        return None
    return Version(int(m.group(1)), int(m.group(2)), int(m.group(3)))


def next_version(tag: str, bump: BumpType) -> str:
    current = parse_tag(tag)
    if current is None:
        raise ValueError(f"Could not parse version from tag: {tag}")
    return current.bump(bump).tag()
