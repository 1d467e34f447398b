from __future__ import annotations

from urllib.parse import urlparse

from stellar_auth.domain.exceptions import ValidationError


NAME_MAX_LENGTH = 120
AVATAR_URL_MAX_LENGTH = 2048


def normalize_display_name(name: str | None) -> str | None:
    if name is None:
        return None
    name = " ".join(name.split())
    if not name:
        return None
    if len(name) > NAME_MAX_LENGTH:
        raise ValidationError(f"Name must be at most {NAME_MAX_LENGTH} characters.")
    if any(ch in name for ch in "<>"):
        raise ValidationError("Name contains invalid characters.")
    return name


def normalize_avatar_url(url: str | None) -> str | None:
    if url is None or not url.strip():
        return None
    url = url.strip()
    if len(url) > AVATAR_URL_MAX_LENGTH:
        raise ValidationError(f"Avatar URL must be at most {AVATAR_URL_MAX_LENGTH} characters.")
    parsed = urlparse(url)
    if parsed.scheme != "https" or not parsed.hostname:
        raise ValidationError("Avatar URL must be an absolute https URL.")
    return url
