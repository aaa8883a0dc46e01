from __future__ import annotations

import importlib.util
import json
import os
import subprocess
import sys
import zipfile
from pathlib import Path
from types import ModuleType
from typing import Any, Sequence

from idpf.application.deployment import PRE_PUSH_MARKER
from idpf.domain.file_rules import HOOK_FILENAME, WORKFLOW_COMMANDS, WORKFLOW_SCRIPTS
from idpf.infrastructure.command_runner import Result

REPO_ROOT = Path(__file__).resolve().parents[1]


def run(
    cmd: list[str],
    *,
    env: dict[str, str] | None = None,
    cwd: Path | None = None,
    stdin: str | None = None,
) -> subprocess.CompletedProcess:
    e = os.environ.copy()
    if env:
        e.update(env)
    return subprocess.run(
        cmd,
        cwd=str(cwd or REPO_ROOT),
        env=e,
        input=stdin,
        text=True,
        encoding="utf-8",
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        check=False,
    )


def run_install(args: list[str], *, env: dict[str, str] | None = None) -> subprocess.CompletedProcess:
    # Always use the current interpreter (matrix python-version).
    return run([sys.executable, "-X", "utf8", str(REPO_ROOT / "install.py"), *args], env=env)


def run_script(
    name: str,
    args: list[str],
    *,
    cwd: Path | None = None,
    stdin: str | None = None,
    env: dict[str, str] | None = None,
) -> subprocess.CompletedProcess:
    return run(
        [sys.executable, "-X", "utf8", str(REPO_ROOT / "scripts" / f"{name}.py"), *args],
        cwd=cwd,
        stdin=stdin,
        env=env,
    )


def load_script(name: str) -> ModuleType:
    """Import ``scripts/<name>.py`` as a module so ``main`` can be called with fakes."""
    path = REPO_ROOT / "scripts" / f"{name}.py"
    spec = importlib.util.spec_from_file_location(f"scripts_{name}", path)
    assert spec is not None and spec.loader is not None
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def read_text(path: Path) -> str:
    return path.read_text(encoding="utf-8")


def read_json_file(path: Path) -> Any:
    return json.loads(read_text(path))


def write(path: Path, text: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


class FakeRunner:
    """CommandRunner stand-in answering by longest matching argv prefix.

    A response may be a string (success), a ``Result``, or a list of those
    consumed in order (the last one repeats).
    """

    def __init__(self, responses: dict[tuple[str, ...], Any] | None = None) -> None:
        self.responses: dict[tuple[str, ...], Any] = {}
        self.calls: list[list[str]] = []
        for prefix, response in (responses or {}).items():
            self.add(prefix, response)

    def add(self, prefix: Sequence[str], response: Any) -> None:
        self.responses[tuple(prefix)] = list(response) if isinstance(response, list) else response

    def run(self, argv: Sequence[str], *, cwd: Path | None = None, timeout: float | None = None) -> Result[str]:
        self.calls.append(list(argv))
        best: tuple[str, ...] | None = None
        for prefix in self.responses:
            if tuple(argv[: len(prefix)]) == prefix and (best is None or len(prefix) > len(best)):
                best = prefix
        if best is None:
            return Result.failure("failed", f"unexpected command: {' '.join(argv)}")
        response = self.responses[best]
        if isinstance(response, list):
            response = response.pop(0) if len(response) > 1 else response[0]
        if isinstance(response, Result):
            return response
        return Result.success(response if isinstance(response, str) else json.dumps(response))

    def called(self, *prefix: str) -> list[list[str]]:
        return [c for c in self.calls if tuple(c[: len(prefix)]) == prefix]


def make_framework(root: Path, *, version: str = "2.10.0", skills: Sequence[str] = ("tdd-red-phase",)) -> Path:
    """Build a minimal framework checkout with every template the installer copies."""
    root.mkdir(parents=True, exist_ok=True)
    write(root / "framework-manifest.json", json.dumps({"version": version}))
    write(
        root / "Templates" / "framework-manifest.json",
        json.dumps(
            {
                "version": version,
                "scripts": {"framework": {"source": "Templates/scripts", "target": ".claude/scripts", "files": []}},
                "extensibleCommands": ["prepare-release"],
            }
        ),
    )
    write(
        root / "Assistant" / "Anti-Hallucination-Rules-for-Software-Development.md",
        "# Anti-Hallucination Rules for Software Development\n\nVerify before asserting.\n",
    )
    write(root / "Reference" / "GitHub-Workflow.md", "# GitHub Workflow Integration\n\nTrack work in issues.\n")
    write(
        root / "Templates" / "commands" / "change-domain-expert.md",
        "---\ndescription: Change the domain specialist\n---\nBody\n",
    )
    for name in WORKFLOW_COMMANDS:
        write(root / "Templates" / "commands" / f"{name}.md", f"---\ndescription: {name} command\n---\n")
    for name in WORKFLOW_SCRIPTS:
        write(root / "Templates" / "scripts" / f"{name}.py", f"# {name}\n")
    write(root / "Templates" / "hooks" / HOOK_FILENAME, "# hook\n")
    write(root / "Templates" / "hooks" / "pre-push", f"#!/bin/sh\n# {PRE_PUSH_MARKER}\nexit 0\n")
    for launcher in ("run_claude.sh", "runp_claude.sh"):
        write(root / "Templates" / launcher, "#!/bin/sh\nclaude\n")
    for launcher in ("run_claude.cmd", "runp_claude.cmd"):
        write(root / "Templates" / launcher, "@echo off\r\nclaude\r\n")

    packaged = root / "Skills" / "Packaged"
    packaged.mkdir(parents=True, exist_ok=True)
    for skill in skills:
        with zipfile.ZipFile(packaged / f"{skill}.zip", "w") as archive:
            archive.writestr("SKILL.md", f"# {skill}\n")
    return root


def always_found(cmd: str) -> str:
    return f"/usr/bin/{cmd}"


def printed(out: Any) -> str:
    """Everything an ``OutputContext`` built by the ``out`` fixture has written to stdout."""
    return out.stream.getvalue()


class FakeClock:
    """Monotonic clock that only advances when ``sleep`` is called."""

    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds
