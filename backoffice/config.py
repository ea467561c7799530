"""Runtime configuration resolved from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

DEFAULT_API_BASE = "http://localhost:8080/api"
DEFAULT_TIMEOUT = 30.0
DEFAULT_PAGE_SIZE = 10
DEFAULT_SESSION_FILE = Path("~/.backoffice/session.json")

API_URL_ENV_VAR = "BACKOFFICE_API_URL"
TIMEOUT_ENV_VAR = "BACKOFFICE_TIMEOUT"
PAGE_SIZE_ENV_VAR = "BACKOFFICE_PAGE_SIZE"
SESSION_FILE_ENV_VAR = "BACKOFFICE_SESSION_FILE"

PAGE_SIZE_OPTIONS = (5, 10, 20, 50)


@dataclass(frozen=True)
class ConsoleConfig:
    api_base: str = DEFAULT_API_BASE
    timeout: float = DEFAULT_TIMEOUT
    page_size: int = DEFAULT_PAGE_SIZE
    session_file: Path = DEFAULT_SESSION_FILE

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> "ConsoleConfig":
        """Build a config from ``environ`` (defaults to ``os.environ``).

        Malformed numbers raise ``ValueError`` so a typo in deployment
        surfaces at start-up rather than on the first request.
        """

        env = os.environ if environ is None else environ

        timeout = float(env.get(TIMEOUT_ENV_VAR, DEFAULT_TIMEOUT))
        if timeout <= 0:
            raise ValueError(f"{TIMEOUT_ENV_VAR} must be positive, got {timeout}")

        page_size = int(env.get(PAGE_SIZE_ENV_VAR, DEFAULT_PAGE_SIZE))
        if page_size <= 0:
            raise ValueError(f"{PAGE_SIZE_ENV_VAR} must be positive, got {page_size}")

        api_base = env.get(API_URL_ENV_VAR) or DEFAULT_API_BASE
        if not api_base.startswith(("http://", "https://")):
            raise ValueError(f"{API_URL_ENV_VAR} must start with http:// or https://")

        session_file = Path(env.get(SESSION_FILE_ENV_VAR, DEFAULT_SESSION_FILE))

        return cls(
            api_base=api_base.rstrip("/"),
            timeout=timeout,
            page_size=page_size,
            session_file=session_file.expanduser(),
        )
