import json
import logging
from datetime import datetime
from typing import Any, Mapping
from zoneinfo import ZoneInfo

from .context import AREA_TAGS, get_request_id

ROOT = "tripsift"

RESET = "\033[0m"
DIM = "\033[2m"
GREY = "\033[90m"

LEVEL_LOOK = {
    logging.DEBUG: ("DEBUG", "\033[36m"),
    logging.INFO: (" INFO", "\033[32m"),
    logging.WARNING: (" WARN", "\033[33m"),
    logging.ERROR: ("ERROR", "\033[31m"),
}

# Fields worth a color of their own on the console.
ACCENT_FIELDS = {
    "provider": "\033[95m",
    "service": "\033[95m",
    "model": "\033[95m",
    "items": "\033[92m",
    "error": "\033[31m",
}


def area_label(logger_name: str) -> tuple[str, str]:
    """("LLM|gemini", color) for ``tripsift.llm.gemini``."""
    parts = logger_name.split(".")
    if parts and parts[0] == ROOT:
        parts = parts[1:]
    if not parts:
        return ROOT.upper()[:3], ""
    tag, color = AREA_TAGS.get(parts[0], (parts[0][:3].upper(), ""))
    rest = ".".join(parts[1:])
    if len(rest) > 10:
        rest = rest[:9] + "~"
    return (f"{tag}|{rest}" if rest else tag), color


def short_value(value: Any, limit: int = 60) -> str:
    if value is None:
        return "-"
    if isinstance(value, bool):
        return "yes" if value else "no"
    if isinstance(value, (list, tuple, set)):
        items = list(value)
        if len(items) > 3:
            return f"[{len(items)} items]"
        return "[" + ", ".join(str(v) for v in items) + "]"
    if isinstance(value, Mapping):
        return f"{{{len(value)} keys}}"
    text = str(value)
    return text if len(text) <= limit else text[:limit - 1] + "~"


def record_fields(record: logging.LogRecord) -> Mapping[str, Any]:
    return getattr(record, "fields", None) or {}


class _ZonedFormatter(logging.Formatter):
    def __init__(self, tz: str = "UTC"):
        super().__init__()
        self.zone = ZoneInfo(tz)

    def stamp(self, record: logging.LogRecord, with_date: bool) -> str:
        moment = datetime.fromtimestamp(record.created, self.zone)
        pattern = "%Y-%m-%d %H:%M:%S" if with_date else "%H:%M:%S"
        return moment.strftime(pattern) + f".{int(record.msecs):03d}"


class ConsoleFormatter(_ZonedFormatter):
    """Compact colored line: time, level, area, message, then ``key=value`` fields."""

    def __init__(self, color: bool = True, tz: str = "UTC"):
        super().__init__(tz)
        self.color = color

    def _paint(self, code: str, text: str) -> str:
        return f"{code}{text}{RESET}" if self.color and code else text

    def format(self, record: logging.LogRecord) -> str:
        label, level_color = LEVEL_LOOK.get(record.levelno, (record.levelname[:5], ""))
        area, area_color = area_label(record.name)

        line = " ".join([
            self._paint(GREY, self.stamp(record, with_date=False)),
            self._paint(level_color, label),
            "[" + self._paint(area_color, f"{area:14}") + "]",
            record.getMessage(),
        ])

        fields = record_fields(record)
        if fields:
            rendered = [
                f"{self._paint(ACCENT_FIELDS.get(key, GREY), key)}={short_value(value)}"
                for key, value in fields.items()
            ]
            line += self._paint(GREY, " |") + " " + " ".join(rendered)

        request_id = get_request_id()
        if request_id:
            line += " " + self._paint(DIM, request_id)
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


class LineFormatter(_ZonedFormatter):
    """Uncolored variant for log files."""

    def format(self, record: logging.LogRecord) -> str:
        area, _ = area_label(record.name)
        request_id = get_request_id()
        prefix = f"{request_id} " if request_id else ""
        line = f"{self.stamp(record, with_date=True)} {record.levelname:7} {prefix}[{area}] {record.getMessage()}"

        fields = record_fields(record)
        if fields:
            line += " | " + " ".join(f"{k}={short_value(v, limit=200)}" for k, v in fields.items())
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


class JsonLineFormatter(_ZonedFormatter):
    """One JSON object per record; fields are merged at the top level."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, self.zone).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        request_id = get_request_id()
        if request_id:
            payload["request_id"] = request_id
        payload.update(record_fields(record))
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)
