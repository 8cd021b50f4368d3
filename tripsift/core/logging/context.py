"""Logging settings from the environment and the per-run request id."""

import logging
import os
import sys
from contextvars import ContextVar, Token
from dataclasses import dataclass
from typing import Optional
from zoneinfo import ZoneInfo

LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "WARN": logging.WARNING,
    "ERROR": logging.ERROR,
}


def parse_level(name: Optional[str], default: int = logging.INFO) -> int:
    if not name:
        return default
    return LEVELS.get(name.strip().upper(), default)


@dataclass(frozen=True)
class LogConfig:
    """Where and how log lines are written.

    Console output always goes to stderr so stdout stays free for results.
    ``file`` adds a plain-text log; ``json`` switches that file to JSON lines.
    """

    level: int = logging.INFO
    file: Optional[str] = None
    json: bool = False
    color: bool = True
    tz: str = "UTC"

    @classmethod
    def from_env(cls) -> "LogConfig":
        return cls(
            level=parse_level(os.getenv("LOG_LEVEL")),
            file=os.getenv("LOG_FILE") or None,
            json=os.getenv("LOG_JSON", "").lower() in ("1", "true", "yes"),
            color=not os.getenv("NO_COLOR") and sys.stderr.isatty(),
            tz=os.getenv("LOG_TZ", "UTC"),
        )

    @property
    def zone(self) -> ZoneInfo:
        return ZoneInfo(self.tz)


_request_id: ContextVar[Optional[str]] = ContextVar("tripsift_request_id", default=None)


def set_request_id(request_id: str) -> Token:
    return _request_id.set(request_id)


def reset_request_id(token: Token) -> None:
    _request_id.reset(token)


def get_request_id() -> Optional[str]:
    return _request_id.get()


# Short tags and console colors per top-level package area.
AREA_TAGS: dict[str, tuple[str, str]] = {
    "core": ("COR", "\033[96m"),
    "llm": ("LLM", "\033[92m"),
    "extraction": ("EXT", "\033[95m"),
    "pipeline": ("PIP", "\033[94m"),
    "search": ("GEO", "\033[93m"),
    "cli": ("CLI", "\033[97m"),
}
