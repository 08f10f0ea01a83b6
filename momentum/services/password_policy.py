"""
Password strength scoring.

Advisory only. Registration is gated by the schema's minimum length,
not by this score.  Every rule only ever *adds* to the score, so
adding a missing character class can never make a password weaker.
"""

import re
from dataclasses import dataclass, field

SYMBOLS = '!@#$%^&*(),.?":{}|<>'
STRONG_THRESHOLD = 4

_RULES = (
    (re.compile(r"[a-z]"), "Add lowercase letters"),
    (re.compile(r"[A-Z]"), "Add uppercase letters"),
    (re.compile(r"\d"), "Add numbers"),
    (re.compile("[" + re.escape(SYMBOLS) + "]"), f"Add special characters ({SYMBOLS})"),
)

COMMON_PASSWORDS = frozenset({
    "password", "123456", "123456789", "qwerty", "abc123",
    "password123", "admin", "letmein", "welcome", "monkey",
})


@dataclass
class PasswordStrength:
    score: int = 0
    is_strong: bool = False
    suggestions: list[str] = field(default_factory=list)


def check_password_strength(password: str) -> PasswordStrength:
    result = PasswordStrength()

    if len(password) >= 8:
        result.score += 1
    else:
        result.suggestions.append("Use at least 8 characters")

    for pattern, suggestion in _RULES:
        if pattern.search(password):
            result.score += 1
        else:
            result.suggestions.append(suggestion)

    # long-password bonus
    if len(password) >= 12:
        result.score += 1

    if password.lower() in COMMON_PASSWORDS:
        result.suggestions.append("Avoid common passwords")

    result.is_strong = result.score >= STRONG_THRESHOLD
    return result
