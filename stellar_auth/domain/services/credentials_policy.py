from __future__ import annotations

import re


EMAIL_MAX_LENGTH = 254
EMAIL_LOCAL_PART_MAX_LENGTH = 64
PASSWORD_MIN_LENGTH = 8
PASSWORD_MAX_LENGTH = 128

_BASIC_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_STRICT_EMAIL_RE = re.compile(
    r"^[a-zA-Z0-9.!#$%&'*+/=?^_`{|}~-]+"
    r"@[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?"
    r"(?:\.[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?)*$"
)
_SPECIAL_CHAR_RE = re.compile(r"[!@#$%^&*()_+\-=\[\]{};':\"\\|,.<>/?]")

COMMON_PASSWORDS = frozenset({"password", "123456", "qwerty", "abc123", "password123"})


def normalize_email(email: str) -> str:
    return email.strip().casefold()


def is_valid_email(email: str) -> bool:
    if not isinstance(email, str):
        return False
    if not _BASIC_EMAIL_RE.match(email):
        return False
    if len(email) > EMAIL_MAX_LENGTH:
        return False
    local_part = email.split("@", 1)[0]
    if len(local_part) > EMAIL_LOCAL_PART_MAX_LENGTH:
        return False
    if ".." in email or ".@" in email or "@." in email:
        return False
    return bool(_STRICT_EMAIL_RE.match(email))


def password_policy_violations(password: str) -> list[str]:
    violations: list[str] = []
    if len(password) < PASSWORD_MIN_LENGTH:
        violations.append(f"at least {PASSWORD_MIN_LENGTH} characters")
    if len(password) > PASSWORD_MAX_LENGTH:
        violations.append(f"maximum {PASSWORD_MAX_LENGTH} characters")
    if not re.search(r"[A-Z]", password):
        violations.append("at least one uppercase letter")
    if not re.search(r"[a-z]", password):
        violations.append("at least one lowercase letter")
    if not re.search(r"[0-9]", password):
        violations.append("at least one number")
    if not _SPECIAL_CHAR_RE.search(password):
        violations.append("at least one special character")
    if password.lower() in COMMON_PASSWORDS:
        violations.append("a less common password")
    return violations
