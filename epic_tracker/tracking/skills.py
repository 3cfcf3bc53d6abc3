"""Classify agent narration against the registry of known skills."""

import re
from typing import NamedTuple


class Skill(NamedTuple):
    """A known skill and the journey entry its invocation produces."""
    id: str
    pattern: re.Pattern[str]
    journey_message: str | None  # None: no journey entry for this skill
    status_label: str | None = None


def _using(skill_id: str) -> re.Pattern[str]:
    return re.compile(rf"using the {re.escape(skill_id)} skill", re.IGNORECASE)


# Order matters: the first matching skill wins.
SKILL_REGISTRY: tuple[Skill, ...] = (
    Skill(
        "executing-plans",
        _using("executing-plans"),
        "Started executing implementation plan",
        "status/in-progress",
    ),
    Skill(
        "finishing-a-development-branch",
        _using("finishing-a-development-branch"),
        "Started finishing development branch",
        "status/review",
    ),
    Skill(
        "subagent-driven-development",
        _using("subagent-driven-development"),
        "Started subagent-driven development",
    ),
    Skill("writing-plans", _using("writing-plans"), None),
)

SKILLS: dict[str, Skill] = {skill.id: skill for skill in SKILL_REGISTRY}


def detect_skill_invocation(text: str | None) -> str | None:
    """Return the id of the first registered skill mentioned in ``text``."""
    if not text:
        return None
    for skill in SKILL_REGISTRY:
        if skill.pattern.search(text):
            return skill.id
    return None
