"""The fixed, ordered list of interview questions and their validators.

Validators are pure functions over the trimmed answer. They return ``None``
when the answer is acceptable and an applicant-facing reason otherwise.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence, Tuple

Validator = Callable[[str], Optional[str]]

CATALOG_VERSION = "3"


def exact_digits(count: int, label: str = "identifier") -> Validator:
    pattern = re.compile(rf"^\d{{{count}}}$", re.ASCII)

    def _check(value: str) -> Optional[str]:
        if pattern.match(value):
            return None
        return f"Invalid {label}. Send exactly {count} digits (numbers only)."

    return _check


def min_length(count: int) -> Validator:
    def _check(value: str) -> Optional[str]:
        if len(value) >= count:
            return None
        return f"Answer too short. Write at least {count} characters ({len(value)} so far)."

    return _check


@dataclass(frozen=True)
class Question:
    key: str
    label: str
    prompt: str
    max_length: int
    validators: Tuple[Validator, ...] = field(default_factory=tuple)
    identifier: bool = False

    def check(self, raw_text: Optional[str]) -> Tuple[Optional[str], Optional[str]]:
        """Return ``(answer, None)`` on success or ``(None, reason)``."""

        answer = (raw_text or "").strip()
        if not answer:
            return None, "Empty answer. Please type a response."
        if len(answer) > self.max_length:
            return None, f"Answer too long. Limit: {self.max_length} characters ({len(answer)} sent)."
        for validator in self.validators:
            reason = validator(answer)
            if reason:
                return None, reason
        return answer, None


class Catalog:
    """Ordered question catalog with lookup by step index or key."""

    def __init__(self, questions: Sequence[Question], version: str = CATALOG_VERSION) -> None:
        keys = [q.key for q in questions]
        if len(set(keys)) != len(keys):
            raise ValueError("Question keys must be unique")
        if sum(1 for q in questions if q.identifier) > 1:
            raise ValueError("At most one question may hold the identifier")
        self._questions: List[Question] = list(questions)
        self.version = version

    def __len__(self) -> int:
        return len(self._questions)

    def __iter__(self):
        return iter(self._questions)

    def at(self, step: int) -> Optional[Question]:
        if 0 <= step < len(self._questions):
            return self._questions[step]
        return None

    def get(self, key: str) -> Optional[Question]:
        for question in self._questions:
            if question.key == key:
                return question
        return None

    def keys(self) -> List[str]:
        return [q.key for q in self._questions]


DEFAULT_QUESTIONS: Tuple[Question, ...] = (
    Question(
        key="name",
        label="Name",
        prompt="**Who are you?**\nTell us the name that was left after the world ended.",
        max_length=80,
        validators=(min_length(2),),
    ),
    Question(
        key="origin",
        label="Origin",
        prompt="**Where did you come from?**\nWhat happened there and why did you never go back?",
        max_length=500,
    ),
    Question(
        key="survival",
        label="Survival",
        prompt="**What did you do to survive?**\nNobody here is clean. Are you?",
        max_length=500,
    ),
    Question(
        key="trust",
        label="Trust",
        prompt="**Who do you trust today: people, groups, or only yourself?**\nExplain.",
        max_length=250,
    ),
    Question(
        key="limits",
        label="Limits",
        prompt="**How far would you go to live one more day?**\nLie, steal, or abandon someone?",
        max_length=350,
    ),
    Question(
        key="steam_id",
        label="SteamID64",
        prompt="**SteamID64 (required):**\nSend numbers only (17 digits).",
        max_length=32,
        validators=(exact_digits(17, "SteamID64"),),
        identifier=True,
    ),
    Question(
        key="backstory",
        label="Backstory",
        prompt="**Backstory (up to 200 characters):**\nA short story of your character based on the server lore.",
        max_length=200,
    ),
)

DEFAULT_CATALOG = Catalog(DEFAULT_QUESTIONS)


__all__ = [
    "CATALOG_VERSION",
    "Catalog",
    "DEFAULT_CATALOG",
    "DEFAULT_QUESTIONS",
    "Question",
    "Validator",
    "exact_digits",
    "min_length",
]
