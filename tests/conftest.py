"""Pytest fixtures shared by the installer and workflow-script tests."""
from __future__ import annotations

import io
from pathlib import Path

import pytest

from idpf.infrastructure.gh import GhClient
from idpf.infrastructure.git import GitClient
from idpf.infrastructure.output import OutputContext
from idpf.infrastructure.pmu import PmuClient

from .util import FakeRunner, make_framework


@pytest.fixture
def runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def git(runner: FakeRunner) -> GitClient:
    return GitClient(runner=runner)


@pytest.fixture
def gh(runner: FakeRunner) -> GhClient:
    # retries sleep through this no-op so transient-error tests stay fast
    return GhClient(runner=runner, sleep=lambda _s: None)


@pytest.fixture
def pmu(gh: GhClient) -> PmuClient:
    return PmuClient(gh=gh)


@pytest.fixture
def framework(tmp_path: Path) -> Path:
    return make_framework(tmp_path / "framework")


@pytest.fixture
def project(tmp_path: Path) -> Path:
    target = tmp_path / "project"
    target.mkdir()
    return target


@pytest.fixture
def out() -> OutputContext:
    return OutputContext(stream=io.StringIO(), err_stream=io.StringIO())
