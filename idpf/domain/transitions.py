"""Process-framework catalog and allowed framework transitions."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class FrameworkChoice:
    value: str
    title: str
    description: str


PROCESS_FRAMEWORKS: tuple[FrameworkChoice, ...] = (
    FrameworkChoice("IDPF-Structured", "IDPF-Structured", "Test-Driven Development with fixed requirements"),
    FrameworkChoice("IDPF-Agile", "IDPF-Agile", "Sprint-based development with user stories"),
    FrameworkChoice("IDPF-Vibe", "IDPF-Vibe", "Exploratory development with evolution paths"),
    FrameworkChoice("IDPF-LTS", "IDPF-LTS", "Long-Term Support maintenance mode"),
)

VALID_TRANSITIONS: dict[str, tuple[str, ...]] = {
    "IDPF-Vibe": ("IDPF-Structured", "IDPF-Agile"),
    "IDPF-Structured": ("IDPF-Agile", "IDPF-LTS"),
    "IDPF-Agile": ("IDPF-Structured", "IDPF-LTS"),
    "IDPF-LTS": (),
}

BASE_EXPERTS = (
    "Full-Stack-Developer",
    "Backend-Specialist",
    "Frontend-Specialist",
    "Mobile-Specialist",
    "Desktop-Application-Developer",
    "Embedded-Systems-Engineer",
    "Game-Developer",
    "ML-Engineer",
    "Data-Engineer",
    "Cloud-Solutions-Architect",
    "SRE-Specialist",
    "Systems-Programmer-Specialist",
)

DOMAIN_SPECIALISTS = frozenset(
    BASE_EXPERTS
    + (
        "Accessibility-Specialist",
        "API-Integration-Specialist",
        "Database-Engineer",
        "DevOps-Engineer",
        "Graphics-Engineer-Specialist",
        "Performance-Engineer",
        "Platform-Engineer",
        "PRD-Analyst",
        "QA-Test-Engineer",
        "Security-Engineer",
        "Technical-Writer-Specialist",
    )
)

DEFAULT_SPECIALIST = "Full-Stack-Developer"

_TDD_SKILLS = (
    "tdd-red-phase",
    "tdd-green-phase",
    "tdd-refactor-phase",
    "tdd-failure-recovery",
    "test-writing-patterns",
)

FRAMEWORK_SKILLS: dict[str, tuple[str, ...]] = {
    "IDPF-Structured": _TDD_SKILLS,
    "IDPF-Agile": _TDD_SKILLS,
    "IDPF-Vibe": (),
    "IDPF-LTS": _TDD_SKILLS,
}


def is_valid_transition(source: str, target: str) -> bool:
    return target in VALID_TRANSITIONS.get(source, ())


def valid_transition_targets(source: str) -> list[FrameworkChoice]:
    allowed = VALID_TRANSITIONS.get(source, ())
    return [f for f in PROCESS_FRAMEWORKS if f.value in allowed]


def transition_block_reason(source: str, target: str) -> str:
    if source == "IDPF-LTS":
        return (
            "LTS is a terminal state. No transitions are allowed from LTS. "
            "For new development, start a new project with a different framework."
        )
    if target == "IDPF-Vibe" and source in {"IDPF-Structured", "IDPF-Agile"}:
        return "Transition to Vibe from Structured/Agile is not allowed. Quality standards should never decrease."
    if source == target:
        return "Already using this framework."
    return "This transition is not supported."
