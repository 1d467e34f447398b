from __future__ import annotations

from typing import Iterable
from urllib.parse import urlparse

from stellar_auth.domain.exceptions import ValidationError


_LOCAL_HOSTS = {"localhost", "127.0.0.1"}
_DEFAULT_PORTS = {"http": 80, "https": 443}


def _is_local_host(hostname: str) -> bool:
    return hostname in _LOCAL_HOSTS or hostname.endswith(".localhost")


def url_origin(url: str) -> str:
    """``scheme://host[:port]`` of an absolute http(s) URL, lower-cased, default port dropped."""
    parsed = urlparse(url.strip())
    hostname = parsed.hostname or ""
    if parsed.scheme not in _DEFAULT_PORTS or not hostname:
        raise ValidationError("Redirect URL must be an absolute http(s) URL.")
    try:
        port = parsed.port
    except ValueError as exc:
        raise ValidationError("Redirect URL has an invalid port.") from exc
    if port is None or port == _DEFAULT_PORTS[parsed.scheme]:
        return f"{parsed.scheme}://{hostname}"
    return f"{parsed.scheme}://{hostname}:{port}"


def validate_frontend_url(url: str, *, allowed_origins: Iterable[str]) -> str:
    """Return ``url`` without trailing slashes if it is a safe redirect target.

    The URL's origin must be one of ``allowed_origins``. https is required;
    plain http is accepted only for local development hosts.
    """
    origin = url_origin(url)
    hostname = urlparse(url.strip()).hostname or ""
    if origin.startswith("http://") and not _is_local_host(hostname):
        raise ValidationError("Redirect URL must use https.")
    if origin not in {url_origin(allowed) for allowed in allowed_origins}:
        raise ValidationError("Redirect URL is not an allowed frontend origin.")
    return url.strip().rstrip("/")
