"""
Password strength scoring.

Pure and cheap enough to run on every keystroke. The score is advisory only;
the hard complexity rules live in ``emetals.validation``.
"""
import re
from dataclasses import asdict, dataclass
from typing import Dict

MAX_SCORE = 4

_LOWER = re.compile(r"[a-z]")
_UPPER = re.compile(r"[A-Z]")
_DIGIT = re.compile(r"[0-9]")
_SYMBOL = re.compile(r"[^A-Za-z0-9]")


@dataclass(frozen=True)
class PasswordStrength:
    score: int
    label: str
    hint: str
    width: int  # percentage of the meter to fill

    def to_dict(self) -> Dict:
        return asdict(self)


_LEVELS = {
    0: ("Very weak", "Too short or empty"),
    1: ("Weak", "Add more characters and variety"),
    2: ("Okay", "Add numbers and symbols"),
    3: ("Good", "Use more length or different character types"),
    4: ("Strong", "Nice, hard to guess"),
}

EMPTY = PasswordStrength(score=0, label="Too short", hint="Type a password", width=0)


def character_variety(password: str) -> int:
    """Count how many of lower/upper/digit/symbol classes appear."""
    return sum(
        1 for pattern in (_LOWER, _UPPER, _DIGIT, _SYMBOL)
        if pattern.search(password)
    )


def analyze_password(password: str) -> PasswordStrength:
    """
    Score a password from 0 to 4.

    One point for 8+ characters and another for 12+; one point for mixing two
    character classes and another for three or more.
    """
    if not password:
        return EMPTY

    score = 0

    if len(password) >= 8:
        score += 1
    if len(password) >= 12:
        score += 1

    variety = character_variety(password)
    if variety >= 2:
        score += 1
    if variety >= 3:
        score += 1

    score = min(MAX_SCORE, max(0, score))
    label, hint = _LEVELS[score]

    return PasswordStrength(
        score=score,
        label=label,
        hint=hint,
        width=round(score / MAX_SCORE * 100),
    )
