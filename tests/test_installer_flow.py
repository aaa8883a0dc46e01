from __future__ import annotations

import json
from pathlib import Path

import pytest

import install
from idpf.application.detection import GitCleanState
from idpf.application.generation import render_claude_md
from idpf.infrastructure.tracking import read_installed_projects

from .util import always_found, read_json_file, read_text, run_install, write


def _main(*args: str, which=always_found) -> int:
    return install.main(list(args), env={}, which=which)


def _install(framework: Path, project: Path, *extra: str) -> int:
    return _main("--framework-path", str(framework), "--project-dir", str(project), *extra)


def _tracked(framework: Path) -> set[str]:
    return {p.path for p in read_installed_projects(framework.resolve())}


@pytest.mark.installer
def test_full_install_with_workflow(framework: Path, project: Path, capsys):
    assert _install(framework, project, "--framework", "IDPF-Agile", "--github-workflow") == 0

    config = read_json_file(project / "framework-config.json")
    assert config["frameworkVersion"] == "2.10.0"
    assert config["projectType"]["processFramework"] == "IDPF-Agile"
    assert config["projectType"]["domainSpecialist"] == "Full-Stack-Developer"
    assert config["frameworkPath"] == str(framework.resolve())

    assert "**Process Framework:** IDPF-Agile" in read_text(project / "CLAUDE.md")
    for rel in (
        ".claude/rules/01-anti-hallucination.md",
        ".claude/rules/02-github-workflow.md",
        ".claude/rules/03-startup.md",
        ".claude/hooks/workflow-trigger.py",
        ".claude/commands/assign-release.md",
        ".claude/scripts/end-sprint.py",
        ".claude/skills/tdd-red-phase/SKILL.md",
        ".claude/.manifest.json",
        "run_claude.sh",
    ):
        assert (project / rel).is_file(), rel

    settings = read_json_file(project / ".claude" / "settings.local.json")
    assert "UserPromptSubmit" in settings["hooks"]
    assert str(project.resolve()) in _tracked(framework)

    out = capsys.readouterr().out
    assert "Mode: INSTALL | LIVE" in out
    assert "⏭️  .git/hooks/pre-push (not a git repository)" in out
    assert "🎉 Installation complete!" in out
    assert "Skills Deployed:   tdd-red-phase" in out


@pytest.mark.installer
def test_install_defaults_and_pre_push_in_git_repo(framework: Path, project: Path, capsys):
    (project / ".git" / "hooks").mkdir(parents=True)
    assert _install(framework, project, "--github-workflow") == 0
    assert "**Process Framework:** IDPF-Structured" in read_text(project / "CLAUDE.md")
    assert (project / ".git" / "hooks" / "pre-push").is_file()
    assert "✅ .git/hooks/pre-push (installed, release protection)" in capsys.readouterr().out


@pytest.mark.installer
def test_reinstall_keeps_framework_instructions_and_workflow(framework: Path, project: Path, capsys):
    assert _install(framework, project, "--framework", "IDPF-Agile", "--github-workflow") == 0
    write(project / "CLAUDE.md", render_claude_md("/old", "IDPF-Agile", "ML-Engineer", "Prefer small PRs."))
    capsys.readouterr()

    assert _install(framework, project) == 0
    claude_md = read_text(project / "CLAUDE.md")
    assert "**Process Framework:** IDPF-Agile" in claude_md
    assert "**Domain Specialist:** ML-Engineer" in claude_md
    assert "Prefer small PRs." in claude_md
    assert (project / ".claude" / "hooks" / "workflow-trigger.py").is_file()
    assert "✅ CLAUDE.md (project instructions preserved)" in capsys.readouterr().out


@pytest.mark.installer
def test_reinstall_without_workflow_removes_orphans(framework: Path, project: Path, capsys):
    assert _install(framework, project, "--github-workflow") == 0
    write(project / "STARTUP.md", "legacy\n")
    capsys.readouterr()

    assert _install(framework, project, "--no-github-workflow") == 0
    assert not (project / ".claude" / "hooks" / "workflow-trigger.py").exists()
    assert not (project / ".claude" / "rules" / "02-github-workflow.md").exists()
    assert not (project / "STARTUP.md").exists()
    out = capsys.readouterr().out
    assert "🧹 Removed orphaned file: STARTUP.md" in out


@pytest.mark.installer
def test_disabling_workflow_removes_workflow_commands(framework: Path, project: Path):
    assert _install(framework, project, "--github-workflow") == 0
    commands = project / ".claude" / "commands"
    assert (commands / "open-release.md").is_file()
    write(commands / "team-standup.md", "mine\n")

    assert _install(framework, project, "--no-github-workflow") == 0
    assert sorted(p.name for p in commands.iterdir()) == ["change-domain-expert.md", "team-standup.md"]
    assert not any((project / ".claude" / "scripts").glob("*.py"))


@pytest.mark.installer
def test_forced_uninstall_without_manifest_removes_workflow_commands(framework: Path, project: Path):
    assert _install(framework, project, "--github-workflow") == 0
    (project / ".claude" / ".manifest.json").unlink()
    write(project / ".claude" / "commands" / "team-standup.md", "mine\n")

    assert _main("--uninstall", "--force", "--project-dir", str(project)) == 0
    remaining = sorted(p.name for p in (project / ".claude" / "commands").iterdir())
    assert remaining == ["change-domain-expert.md", "team-standup.md"]


@pytest.mark.installer
def test_reinstall_warns_about_edited_files(framework: Path, project: Path, capsys):
    assert _install(framework, project) == 0
    write(project / ".claude" / "rules" / "01-anti-hallucination.md", "my local tweaks\n")
    (project / ".claude" / "commands" / "change-domain-expert.md").unlink()
    capsys.readouterr()

    assert install.locally_modified(project) == ["rules/01-anti-hallucination.md"]
    assert _install(framework, project) == 0
    out = capsys.readouterr().out
    assert "⚠️  Overwriting locally modified file: rules/01-anti-hallucination.md" in out
    assert out.count("Overwriting locally modified file") == 1


@pytest.mark.installer
def test_existing_config_keys_survive_reinstall(framework: Path, project: Path):
    write(project / "framework-config.json", json.dumps({"frameworkVersion": "2.9.0", "teamChannel": "#dev"}))
    assert _install(framework, project) == 0
    config = read_json_file(project / "framework-config.json")
    assert config["teamChannel"] == "#dev"
    assert config["frameworkVersion"] == "2.10.0"


@pytest.mark.installer
def test_blocked_transition(framework: Path, project: Path, capsys):
    write(project / "CLAUDE.md", render_claude_md("/fw", "IDPF-Agile", None))
    assert _install(framework, project, "--framework", "IDPF-Vibe") == 1
    assert "Quality standards should never decrease" in capsys.readouterr().err
    assert not (project / "framework-config.json").exists()


@pytest.mark.installer
def test_dirty_tree_blocks_reinstall_unless_forced(framework: Path, project: Path, capsys, monkeypatch):
    write(project / "CLAUDE.md", render_claude_md("/fw", "IDPF-Structured", None))
    monkeypatch.setattr(
        install,
        "check_git_clean_state",
        lambda _d: GitCleanState(is_clean=False, commit_hash="abc", error="Commit or stash changes before upgrade"),
    )
    assert _install(framework, project) == 1
    assert "Use --force to install anyway." in capsys.readouterr().err
    assert _install(framework, project, "--force") == 0


@pytest.mark.installer
def test_rollback_point_is_reported(framework: Path, project: Path, capsys, monkeypatch):
    write(project / "CLAUDE.md", render_claude_md("/fw", "IDPF-Structured", None))
    monkeypatch.setattr(install, "check_git_clean_state", lambda _d: GitCleanState(is_clean=True, commit_hash="abc123"))
    assert _install(framework, project) == 0
    assert "ℹ️  Rollback point: abc123" in capsys.readouterr().out


@pytest.mark.installer
def test_dry_run_writes_nothing(framework: Path, project: Path, capsys):
    assert _install(framework, project, "--dry-run", "--github-workflow") == 0
    assert list(project.iterdir()) == []
    assert _tracked(framework) == set()
    out = capsys.readouterr().out
    assert "Mode: INSTALL | DRY-RUN" in out
    assert "✅ DRY-RUN complete (no changes were made)." in out


@pytest.mark.installer
def test_precheck_failures_exit_2(tmp_path: Path, framework: Path, project: Path, capsys):
    assert _main("--project-dir", str(project)) == 2
    assert "framework path not set" in capsys.readouterr().err

    assert _install(tmp_path / "missing", project) == 2
    assert "framework path does not exist" in capsys.readouterr().err

    (framework / "framework-manifest.json").unlink()
    assert _install(framework, project) == 2
    assert "missing framework-manifest.json" in capsys.readouterr().err


@pytest.mark.installer
def test_precheck_requires_git(framework: Path, project: Path, capsys):
    assert _main("--framework-path", str(framework), "--project-dir", str(project), which=lambda _c: None) == 2
    captured = capsys.readouterr()
    assert "Git is required but not found" in captured.err
    assert "ℹ️  Optional: GitHub CLI not found" in captured.out


@pytest.mark.installer
def test_framework_path_from_environment(framework: Path, project: Path):
    rc = install.main(["--project-dir", str(project)], env={"IDPF_FRAMEWORK_PATH": str(framework)}, which=always_found)
    assert rc == 0
    assert (project / "CLAUDE.md").is_file()


@pytest.mark.installer
def test_uninstall_removes_manifest_files_only(framework: Path, project: Path, capsys):
    assert _install(framework, project, "--github-workflow") == 0
    write(project / ".claude" / "rules" / "team-conventions.md", "mine\n")
    capsys.readouterr()

    assert _main("--uninstall", "--project-dir", str(project)) == 0
    for rel in (".claude/rules/01-anti-hallucination.md", ".claude/hooks/workflow-trigger.py", "run_claude.sh"):
        assert not (project / rel).exists(), rel
    assert not (project / ".claude" / ".manifest.json").exists()
    assert not (project / ".claude" / "hooks").exists()
    assert (project / ".claude" / "rules" / "team-conventions.md").is_file()
    assert (project / "CLAUDE.md").is_file()
    assert str(project.resolve()) not in _tracked(framework)
    assert "✅ Uninstall complete." in capsys.readouterr().out


@pytest.mark.installer
def test_uninstall_dry_run_keeps_everything(framework: Path, project: Path, capsys):
    assert _install(framework, project) == 0
    capsys.readouterr()
    assert _main("--uninstall", "--dry-run", "--project-dir", str(project)) == 0
    assert (project / ".claude" / ".manifest.json").is_file()
    assert (project / ".claude" / "rules" / "03-startup.md").is_file()
    assert "[DRY-RUN] rm" in capsys.readouterr().out
    assert str(project.resolve()) in _tracked(framework)


@pytest.mark.installer
def test_uninstall_without_manifest_needs_force(project: Path, capsys):
    write(project / ".claude" / "rules" / "01-anti-hallucination.md", "r\n")
    write(project / ".claude" / "rules" / "team-conventions.md", "mine\n")

    assert _main("--uninstall", "--project-dir", str(project)) == 4
    assert (project / ".claude" / "rules" / "01-anti-hallucination.md").exists()
    assert "Manifest not found or invalid" in capsys.readouterr().out

    assert _main("--uninstall", "--force", "--project-dir", str(project)) == 0
    assert not (project / ".claude" / "rules" / "01-anti-hallucination.md").exists()
    assert (project / ".claude" / "rules" / "team-conventions.md").exists()


@pytest.mark.installer
def test_uninstall_with_nothing_installed(project: Path, capsys):
    assert _main("--uninstall", "--force", "--project-dir", str(project)) == 0
    assert "Nothing to uninstall." in capsys.readouterr().out


@pytest.mark.installer
def test_delete_targets_refuses_paths_outside_install_dirs(tmp_path: Path, project: Path, capsys):
    outside = write(tmp_path / "elsewhere.txt", "keep\n")
    nested = write(project / "src" / "main.py", "keep\n")
    assert install.delete_targets([outside, nested], project, dry_run=False) == 5
    assert outside.exists() and nested.exists()
    assert capsys.readouterr().err.count("Refusing to delete") == 2


@pytest.mark.installer
def test_migrate_mode(framework: Path, project: Path, capsys):
    write(
        project / "framework-config.json",
        json.dumps({"installedVersion": "2.8.0", "projectType": {"processFramework": "IDPF-Agile"}}),
    )
    write(project / "STARTUP.md", "old\n")
    assert _install(framework, project, "--migrate") == 0
    assert read_json_file(project / "framework-config.json")["frameworkVersion"] == "2.10.0"
    assert not (project / "STARTUP.md").exists()
    out = capsys.readouterr().out
    assert "Migration: 2.9.0 - Migrate to .claude/rules/ auto-loading" in out
    assert "✅ Migration complete: 2.8.0 → 2.10.0" in out


@pytest.mark.installer
def test_migrate_requires_installed_project(framework: Path, project: Path, capsys):
    assert _install(framework, project, "--migrate") == 1
    assert "Run install.py without --migrate first." in capsys.readouterr().err


@pytest.mark.installer
def test_update_tracked_mode(framework: Path, project: Path, capsys):
    assert _install(framework, project) == 0
    write(framework / "framework-manifest.json", json.dumps({"version": "2.11.0"}))
    capsys.readouterr()

    assert _main("--update-tracked", "--framework-path", str(framework)) == 0
    assert read_json_file(project / "framework-config.json")["frameworkVersion"] == "2.11.0"
    assert "Updated: 1  Current: 0  Removed: 0  Failed: 0" in capsys.readouterr().out


@pytest.mark.installer
def test_update_tracked_reports_failures(framework: Path, project: Path, capsys):
    assert _install(framework, project) == 0
    (project / "framework-config.json").unlink()
    capsys.readouterr()
    assert _main("--update-tracked", "--framework-path", str(framework)) == 1
    assert "Failed: 1" in capsys.readouterr().out


@pytest.mark.installer
def test_install_script_precheck_via_subprocess(tmp_path: Path):
    r = run_install(["--project-dir", str(tmp_path)], env={"IDPF_FRAMEWORK_PATH": ""})
    assert r.returncode == 2, r.stderr
    assert "Precheck failed" in r.stderr
    assert "IDPF Framework Installer" in r.stdout
