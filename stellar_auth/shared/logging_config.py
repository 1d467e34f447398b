from __future__ import annotations

import logging


LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)
    # Request lines from the HTTP clients would leak API keys at DEBUG.
    logging.getLogger("httpx").setLevel(logging.WARNING)
