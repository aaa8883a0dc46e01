from __future__ import annotations

import io
import json
from pathlib import Path

import pytest

from idpf.infrastructure.command_runner import Result
from idpf.infrastructure.gh import RELEASE_LIST_FIELDS
from idpf.infrastructure.output import OutputContext

from .util import FakeClock, FakeRunner, load_script, printed, read_text, write

LOG = "1111111aaaa|feat: add export\n2222222bbbb|fix: handle empty file\n3333333cccc|chore: bump deps"


def _json_line(capsys) -> dict:
    return json.loads(capsys.readouterr().out.strip().splitlines()[-1])


# -- analyze / recommend -----------------------------------------------------

@pytest.mark.release
def test_analyze_commits_since_tag(runner: FakeRunner, git, capsys):
    runner.add(("git", "describe", "--tags"), "v1.0.0")
    runner.add(("git", "log"), LOG)
    script = load_script("analyze_commits")

    assert script.main([], git=git) == 0
    payload = _json_line(capsys)
    assert payload["message"] == "Analyzed 3 commits since v1.0.0"
    assert payload["data"]["summary"]["feat"] == 1
    assert payload["data"]["commits"][0] == {
        "hash": "1111111",
        "type": "feat",
        "scope": None,
        "message": "add export",
        "breaking": False,
    }
    assert runner.called("git", "log") == [["git", "log", "v1.0.0..HEAD", "--pretty=format:%H|%s"]]


@pytest.mark.release
def test_analyze_commits_without_tags(runner: FakeRunner, git, capsys):
    runner.add(("git", "describe", "--tags"), Result.failure("failed", "No names found"))
    assert load_script("analyze_commits").main([], git=git) == 0
    payload = _json_line(capsys)
    assert payload["message"] == "No previous tags found"
    assert payload["data"]["lastTag"] is None


@pytest.mark.release
def test_analyze_commits_log_failure(runner: FakeRunner, git, capsys):
    runner.add(("git", "describe", "--tags"), "v1.0.0")
    runner.add(("git", "log"), Result.failure("failed", "bad revision"))
    assert load_script("analyze_commits").main(["--pretty"], git=git) == 1
    assert json.loads(capsys.readouterr().out)["success"] is False


@pytest.mark.release
def test_recommend_minor_for_features(runner: FakeRunner, git, capsys):
    runner.add(("git", "describe", "--tags"), "v1.0.0")
    runner.add(("git", "log"), LOG)
    assert load_script("recommend_version").main([], git=git) == 0
    data = _json_line(capsys)["data"]
    assert data["recommendedVersion"] == "v1.1.0"
    assert data["bumpType"] == "minor"


@pytest.mark.release
def test_recommend_initial_version(runner: FakeRunner, git, capsys):
    runner.add(("git", "describe", "--tags"), Result.failure("failed", "No names found"))
    assert load_script("recommend_version").main([], git=git) == 0
    assert _json_line(capsys)["data"] == {"recommendedVersion": "v0.1.0", "reason": "initial-release"}


@pytest.mark.release
def test_recommend_rejects_unparseable_tag(runner: FakeRunner, git, capsys):
    runner.add(("git", "describe", "--tags"), "nightly")
    assert load_script("recommend_version").main([], git=git) == 1
    assert _json_line(capsys)["message"] == "Could not parse version from tag: nightly"


# -- changelog ----------------------------------------------------------------

@pytest.mark.release
def test_generate_changelog_requires_version(capsys):
    assert load_script("generate_changelog").main([], stdin=io.StringIO("")) == 1
    assert "Error: Version is required" in capsys.readouterr().err


@pytest.mark.release
def test_generate_changelog_from_piped_analysis(runner: FakeRunner, git, capsys):
    analysis = {"success": True, "data": {"commits": [{"hash": "abc", "type": "fix", "message": "null check"}]}}
    rc = load_script("generate_changelog").main(
        ["--version", "v1.0.1", "--date", "2026-10-18"], git=git, stdin=io.StringIO(json.dumps(analysis))
    )
    assert rc == 0
    assert capsys.readouterr().out == "## [1.0.1] - 2026-10-18\n\n### Fixed\n- Null check\n\n"
    assert runner.calls == []


@pytest.mark.release
def test_generate_changelog_reads_git_when_nothing_piped(runner: FakeRunner, git, capsys):
    runner.add(("git", "rev-parse", "--git-dir"), ".git")
    runner.add(("git", "describe", "--tags"), "v1.0.0")
    runner.add(("git", "log"), LOG)
    rc = load_script("generate_changelog").main(["--version", "1.1.0", "--date", "2026-10-18"], git=git, stdin=io.StringIO(""))
    assert rc == 0
    out = capsys.readouterr().out
    assert "### Added\n- Add export" in out
    assert "### Fixed\n- Handle empty file" in out


@pytest.mark.release
def test_generate_changelog_outside_repo(runner: FakeRunner, git, capsys):
    runner.add(("git", "rev-parse", "--git-dir"), Result.failure("failed", "not a git repository"))
    assert load_script("generate_changelog").main(["--version", "1.0.0"], git=git, stdin=io.StringIO("")) == 1
    assert "Error: Not a git repository" in capsys.readouterr().err


@pytest.mark.release
def test_generate_changelog_write(tmp_path: Path, git, capsys):
    changelog = tmp_path / "CHANGELOG.md"
    analysis = json.dumps({"commits": [{"type": "feat", "message": "search"}]})
    script = load_script("generate_changelog")
    args = ["--version", "v2.0.0", "--date", "2026-10-18", "--write", "--changelog", str(changelog)]

    assert script.main(args, git=git, stdin=io.StringIO(analysis)) == 0
    text = read_text(changelog)
    assert text.startswith("# Changelog\n")
    assert text.index("## [Unreleased]") < text.index("## [2.0.0] - 2026-10-18")
    assert f"✓ Updated {changelog}" in capsys.readouterr().out

    assert script.main(args, git=git, stdin=io.StringIO(analysis)) == 1
    assert "already exists" in capsys.readouterr().err


# -- release notes ------------------------------------------------------------

CHANGELOG = "# Changelog\n\n## [1.1.0] - 2026-10-18\n\n### Added\n- Export\n\n## [1.0.0] - 2026-01-01\n\n- First\n"


@pytest.mark.release
def test_update_release_notes(runner: FakeRunner, gh, tmp_path: Path, monkeypatch):
    changelog = write(tmp_path / "CHANGELOG.md", CHANGELOG)
    seen: list[str] = []

    def edit(argv, **_kw):
        notes_path = Path(argv[-1])
        seen.append(notes_path.read_text(encoding="utf-8"))
        return Result.success("")

    monkeypatch.setattr(runner, "run", edit)
    payload, ok = load_script("update_release_notes").update_notes("v1.1.0", changelog, gh, tmp_path)

    assert ok is True
    assert payload["message"] == "Updated release notes for v1.1.0"
    assert seen == ["### Added\n- Export"]
    assert not (tmp_path / ".tmp-release-notes.md").exists()


@pytest.mark.release
def test_update_release_notes_failures(runner: FakeRunner, gh, tmp_path: Path):
    script = load_script("update_release_notes")
    missing, ok = script.update_notes("v1.1.0", tmp_path / "CHANGELOG.md", gh, tmp_path)
    assert (ok, missing["message"]) == (False, "CHANGELOG.md not found")

    changelog = write(tmp_path / "CHANGELOG.md", CHANGELOG)
    no_section, ok = script.update_notes("v9.9.9", changelog, gh, tmp_path)
    assert (ok, no_section["message"]) == (False, "No changelog section found for v9.9.9")

    runner.add(("gh", "release", "edit"), Result.failure("failed", "release not found"))
    failed, ok = script.update_notes("v1.1.0", changelog, gh, tmp_path)
    assert ok is False
    assert failed["message"] == "Failed to update release notes: release not found"
    assert not (tmp_path / ".tmp-release-notes.md").exists()


@pytest.mark.release
def test_update_release_notes_without_version_or_tags(runner: FakeRunner, git, gh, capsys):
    runner.add(("git", "describe", "--tags"), Result.failure("failed", "No names found"))
    assert load_script("update_release_notes").main([], git=git, gh=gh) == 1
    assert _json_line(capsys)["message"] == "Version not provided and no tags found"


# -- release assets -----------------------------------------------------------

def _release_fixture(runner: FakeRunner) -> None:
    releases = [
        {"tagName": "v5", "isDraft": True, "createdAt": "2026-05-01T00:00:00Z"},
        {"tagName": "v2", "createdAt": "2026-02-01T00:00:00Z"},
        {"tagName": "v4", "createdAt": "2026-04-01T00:00:00Z"},
        {"tagName": "v3", "createdAt": "2026-03-01T00:00:00Z"},
        {"tagName": "v1", "createdAt": "2026-01-01T00:00:00Z"},
    ]
    runner.add(("gh", "repo", "view"), "acme/widgets")
    runner.add(("gh", "release", "list"), json.dumps(releases))
    runner.add(("gh", "release", "view", "v4"), {"assets": [{"name": "w-4.zip"}]})
    runner.add(("gh", "release", "view", "v3"), {"assets": []})
    runner.add(("gh", "release", "view", "v2"), {"assets": [{"name": "w-2.zip"}, {"name": "w-2.tar.gz"}]})
    runner.add(("gh", "release", "view", "v1"), {"assets": [{"name": "w-1.zip"}]})


@pytest.mark.release
def test_cleanup_keeps_newest_and_skips_drafts(runner: FakeRunner, gh, out):
    _release_fixture(runner)
    runner.add(("gh", "release", "delete-asset"), "")
    summary = load_script("cleanup_release_assets").cleanup(gh, "acme/widgets", 1, out, dry_run=False)

    assert summary["kept"] == ["v4"]
    assert summary["cleaned"] == [{"tagName": "v2", "assetsDeleted": 2}, {"tagName": "v1", "assetsDeleted": 1}]
    assert summary["assetsDeleted"] == 3
    assert runner.called("gh", "release", "view", "v5") == []
    assert ["gh", "release", "delete-asset", "v2", "w-2.zip", "--yes"] in runner.calls
    assert ["gh", "release", "list", "--limit", "100", "--json", RELEASE_LIST_FIELDS, "--repo", "acme/widgets"] in runner.calls
    assert "✓ Deleted 3 assets from 2 releases" in printed(out)


@pytest.mark.release
def test_cleanup_dry_run_deletes_nothing(runner: FakeRunner, gh, out):
    _release_fixture(runner)
    summary = load_script("cleanup_release_assets").cleanup(gh, "acme/widgets", 2, out, dry_run=True)
    assert summary["dryRun"] is True
    assert summary["assetsDeleted"] == 1
    assert runner.called("gh", "release", "delete-asset") == []
    assert "    Would delete: w-1.zip" in printed(out)


@pytest.mark.release
def test_cleanup_records_failed_deletes(runner: FakeRunner, gh, out):
    _release_fixture(runner)
    runner.add(("gh", "release", "delete-asset", "v2"), Result.failure("failed", "HTTP 403"))
    runner.add(("gh", "release", "delete-asset", "v1"), "")
    summary = load_script("cleanup_release_assets").cleanup(gh, "acme/widgets", 1, out, dry_run=False)
    assert summary["errors"] == ["v2/w-2.zip", "v2/w-2.tar.gz"]
    assert summary["assetsDeleted"] == 1
    assert "⚠ Failed to delete 2 assets" in printed(out)


@pytest.mark.release
def test_cleanup_nothing_to_clean(runner: FakeRunner, gh, out):
    _release_fixture(runner)
    summary = load_script("cleanup_release_assets").cleanup(gh, "acme/widgets", 5, out, dry_run=False)
    assert summary["cleaned"] == []
    assert "✓ No old release assets to clean up" in printed(out)


@pytest.mark.release
def test_cleanup_main_validates_keep_and_repo(runner: FakeRunner, gh, capsys):
    script = load_script("cleanup_release_assets")
    assert script.main(["--keep", "0"], gh=gh) == 1
    runner.add(("gh", "repo", "view"), Result.failure("failed", "not a git repository"))
    assert script.main([], gh=gh) == 1
    assert "Could not determine repository" in capsys.readouterr().err


@pytest.mark.release
def test_cleanup_main_prints_summary_json(runner: FakeRunner, gh, capsys):
    _release_fixture(runner)
    assert load_script("cleanup_release_assets").main(["--keep", "3", "--quiet"], gh=gh) == 0
    assert json.loads(capsys.readouterr().out) == {
        "success": True,
        "dryRun": False,
        "kept": ["v4", "v2", "v1"],
        "cleaned": [],
        "assetsDeleted": 0,
    }


# -- CI wait ------------------------------------------------------------------

def _run(status: str, conclusion: str | None = None) -> dict:
    return {"databaseId": 77, "status": status, "conclusion": conclusion, "name": "CI"}


@pytest.mark.release
def test_wait_for_ci_already_completed(runner: FakeRunner, gh, capsys):
    runner.add(("gh", "run", "list"), json.dumps([_run("completed", "success")]))
    clock = FakeClock()
    assert load_script("wait_for_ci").main([], gh=gh, clock=clock, sleep=clock.sleep) == 0
    payload = _json_line(capsys)
    assert payload["message"] == "CI passed"
    assert payload["data"]["runId"] == 77
    assert clock.sleeps == []


@pytest.mark.release
def test_wait_for_ci_polls_until_done(runner: FakeRunner, gh, capsys):
    runner.add(("gh", "run", "list"), json.dumps([_run("in_progress")]))
    runner.add(
        ("gh", "run", "view"),
        [
            {"status": "in_progress", "jobs": []},
            {"status": "completed", "conclusion": "failure", "jobs": [{"name": "test", "conclusion": "failure"}]},
        ],
    )
    clock = FakeClock()
    assert load_script("wait_for_ci").main([], gh=gh, clock=clock, sleep=clock.sleep) == 1

    captured = capsys.readouterr()
    payload = json.loads(captured.out.strip())
    assert payload["message"] == "CI failed: failure"
    assert payload["data"]["jobs"] == [{"name": "test", "status": "failure"}]
    assert clock.sleeps == [15.0]
    assert "CI still running... (0s elapsed)" in captured.err


@pytest.mark.release
def test_wait_for_ci_times_out(runner: FakeRunner, gh, capsys):
    runner.add(("gh", "run", "list"), json.dumps([_run("queued")]))
    runner.add(("gh", "run", "view"), {"status": "in_progress"})
    clock = FakeClock()
    assert load_script("wait_for_ci").main(["--timeout", "30"], gh=gh, clock=clock, sleep=clock.sleep) == 1
    payload = _json_line(capsys)
    assert payload["message"] == "CI timed out after 30s"
    assert payload["data"]["status"] == "timeout"
    assert clock.sleeps == [15.0, 22.5]


@pytest.mark.release
def test_wait_for_ci_without_runs(runner: FakeRunner, gh, capsys):
    runner.add(("gh", "run", "list"), "[]")
    clock = FakeClock()
    assert load_script("wait_for_ci").main([], gh=gh, clock=clock, sleep=clock.sleep) == 1
    assert _json_line(capsys)["message"] == "No workflow runs found"


@pytest.mark.release
def test_wait_for_ci_reports_view_failure(runner: FakeRunner, gh, capsys):
    runner.add(("gh", "run", "list"), json.dumps([_run("in_progress")]))
    runner.add(("gh", "run", "view"), Result.failure("failed", "run not found"))
    clock = FakeClock()
    assert load_script("wait_for_ci").main([], gh=gh, clock=clock, sleep=clock.sleep) == 1
    assert _json_line(capsys)["message"] == "CI check failed: run not found"


@pytest.mark.scripts
def test_transfer_issue_usage_without_issue(capsys):
    assert load_script("transfer_issue").main([]) == 0
    assert "Usage: /transfer-issue #123 [options]" in capsys.readouterr().out


@pytest.mark.scripts
def test_end_sprint_script_without_sprint(runner: FakeRunner, pmu, capsys):
    runner.add(("gh", "pmu", "microsprint", "current"), "")
    assert load_script("end_sprint").main([], pmu=pmu) == 0
    assert "No active sprint to end." in capsys.readouterr().out


@pytest.mark.scripts
def test_output_context_is_quiet_for_lines_only():
    out = OutputContext(quiet=True, stream=io.StringIO(), err_stream=io.StringIO())
    out.line("hidden")
    out.error("shown")
    assert out.stream.getvalue() == ""
    assert out.err_stream.getvalue() == "Error: shown\n"
