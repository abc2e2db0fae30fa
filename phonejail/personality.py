# phonejail/personality.py
"""
Personality policy: what each Jailkeeper personality means for a grant and
for the tone of its prompts.

Grant durations are fixed. Tone text can be replaced from a JSON-with-comments
file named by ``PERSONALITY_CONFIG_PATH``:

    {
      // any subset of personalities / fields
      "Strict": {"authority_prompt": "...", "guide_prompt": "..."}
    }
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional

import commentjson


class Personality(str, Enum):
    STRICT = "Strict"
    BALANCED = "Balanced"
    LENIENT = "Lenient"

    @classmethod
    def parse(cls, value: "str | Personality") -> "Personality":
        if isinstance(value, Personality):
            return value
        for p in cls:
            if p.value.lower() == str(value).strip().lower():
                return p
        raise ValueError(f"Unknown personality: {value!r}")


class JailkeeperMode(str, Enum):
    GUIDE = "Guide"
    AUTHORITY = "Authority"

    @property
    def description(self) -> str:
        if self is JailkeeperMode.GUIDE:
            return "Therapeutic guide helping with digital wellness"
        return "Access control enforcer for strict mode"


@dataclass(frozen=True)
class PersonalityPolicy:
    personality: Personality
    grant_duration_seconds: int
    description: str
    authority_prompt: str
    guide_prompt: str


_GUIDE_STRICT = """You are a strict but caring digital wellness coach. Your role is to help users develop disciplined, productive relationships with technology using CBT and motivational interviewing techniques.

Your approach:
- Use direct, clear language about the importance of digital discipline
- Challenge users to examine their technology habits critically
- Encourage structured, goal-oriented approaches to digital wellness
- Celebrate progress but maintain high standards

Remember: You're helping them build lasting change through discipline and self-awareness."""

_GUIDE_BALANCED = """You are a balanced digital wellness coach who helps users develop healthy, sustainable relationships with technology using CBT and motivational interviewing techniques.

Your approach:
- Use empathetic, understanding language while maintaining clear boundaries
- Help users find middle ground between restriction and freedom
- Encourage gradual, sustainable changes
- Validate struggles while promoting growth

Remember: You're helping them find harmony between technology use and well-being."""

_GUIDE_LENIENT = """You are a gentle, supportive digital wellness coach who helps users develop a positive relationship with technology using CBT and motivational interviewing techniques.

Your approach:
- Use warm, encouraging language that reduces shame and guilt
- Focus on small, achievable changes rather than dramatic restrictions
- Celebrate all progress, no matter how small
- Emphasize self-compassion and understanding

Remember: You're helping them develop a kind, sustainable approach to digital wellness."""

_POLICIES: Dict[Personality, PersonalityPolicy] = {
    Personality.STRICT: PersonalityPolicy(
        personality=Personality.STRICT,
        grant_duration_seconds=5 * 60,
        description="A strict enforcer who prioritizes productivity and minimal distractions",
        authority_prompt="You are a strict digital jailkeeper. You enforce productivity and minimize distractions. Only grant access for genuine emergencies or critical needs.",
        guide_prompt=_GUIDE_STRICT,
    ),
    Personality.BALANCED: PersonalityPolicy(
        personality=Personality.BALANCED,
        grant_duration_seconds=10 * 60,
        description="A balanced guide who helps maintain a healthy relationship with technology",
        authority_prompt="You are a balanced digital jailkeeper. You help users maintain a healthy relationship with technology. Consider reasonable requests that show self-awareness.",
        guide_prompt=_GUIDE_BALANCED,
    ),
    Personality.LENIENT: PersonalityPolicy(
        personality=Personality.LENIENT,
        grant_duration_seconds=15 * 60,
        description="A flexible companion who allows more freedom while still providing guidance",
        authority_prompt="You are a lenient digital jailkeeper. You allow more freedom while still providing guidance. Be flexible but encourage good digital habits.",
        guide_prompt=_GUIDE_LENIENT,
    ),
}

_TONE_FIELDS = ("description", "authority_prompt", "guide_prompt")


def policy_for(personality: "str | Personality", overrides: Optional[Dict[Personality, PersonalityPolicy]] = None) -> PersonalityPolicy:
    table = overrides or _POLICIES
    return table[Personality.parse(personality)]


def grant_duration_seconds(personality: "str | Personality") -> int:
    return _POLICIES[Personality.parse(personality)].grant_duration_seconds


def load_personality_policies(path: "str | Path | None") -> Dict[Personality, PersonalityPolicy]:
    """
    Default policies with tone fields replaced from ``path``.
    Fails fast on unknown personalities or fields; returns defaults when path is empty.
    """
    if not path:
        return dict(_POLICIES)

    cfg_path = Path(path)
    if not cfg_path.exists():
        raise FileNotFoundError(f"Personality config file not found at '{cfg_path}'.")

    with cfg_path.open("r", encoding="utf-8") as f:
        data: Dict[str, Any] = commentjson.load(f)

    if not isinstance(data, dict):
        raise ValueError("Personality config must be an object keyed by personality name")

    policies = dict(_POLICIES)
    for name, fields in data.items():
        personality = Personality.parse(name)
        if not isinstance(fields, dict):
            raise ValueError(f"Personality config for {name!r} must be an object")
        unknown = set(fields) - set(_TONE_FIELDS)
        if unknown:
            raise ValueError(f"Personality config for {name!r} has unsupported keys: {sorted(unknown)}")
        policies[personality] = replace(policies[personality], **{k: str(v) for k, v in fields.items()})

    return policies
