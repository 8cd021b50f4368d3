import logging
import sys
from typing import Any, Optional

from .context import LogConfig, parse_level
from .formatters import ROOT, ConsoleFormatter, JsonLineFormatter, LineFormatter

_configured = False


def configure_logging(config: Optional[LogConfig] = None) -> logging.Logger:
    """Install handlers on the ``tripsift`` logger; later calls replace them."""
    global _configured
    config = config or LogConfig.from_env()
    root = logging.getLogger(ROOT)
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(ConsoleFormatter(color=config.color, tz=config.tz))
    root.addHandler(console)

    if config.file:
        try:
            file_handler = logging.FileHandler(config.file, encoding="utf-8")
        except OSError as e:
            root.warning("Log file unavailable", extra={"fields": {"path": config.file, "error": str(e)}})
        else:
            formatter = JsonLineFormatter(tz=config.tz) if config.json else LineFormatter(tz=config.tz)
            file_handler.setFormatter(formatter)
            root.addHandler(file_handler)

    root.setLevel(config.level)
    root.propagate = False
    _configured = True
    return root


class StructuredLogger:
    """Logger that carries keyword fields alongside the message.

    Usage:
        _log = get_logger("llm.gemini")
        _log.warning("Retry scheduled", attempt=2, delay=1.4)

    ``bind`` returns a logger that adds the given fields to every record.
    """

    def __init__(self, name: str, fields: Optional[dict[str, Any]] = None):
        self.name = name
        self._logger = logging.getLogger(f"{ROOT}.{name}" if name != ROOT else ROOT)
        self._fields = dict(fields or {})

    def bind(self, **fields: Any) -> "StructuredLogger":
        return StructuredLogger(self.name, {**self._fields, **fields})

    def _emit(self, level: int, msg: str, fields: dict[str, Any], exc_info: bool = False) -> None:
        if not self._logger.isEnabledFor(level):
            return
        merged = {**self._fields, **fields} if self._fields else fields
        self._logger.log(level, msg, extra={"fields": merged}, exc_info=exc_info)

    def debug(self, msg: str, **fields: Any) -> None:
        self._emit(logging.DEBUG, msg, fields)

    def info(self, msg: str, **fields: Any) -> None:
        self._emit(logging.INFO, msg, fields)

    def warning(self, msg: str, **fields: Any) -> None:
        self._emit(logging.WARNING, msg, fields)

    def error(self, msg: str, **fields: Any) -> None:
        self._emit(logging.ERROR, msg, fields)

    def exception(self, msg: str, **fields: Any) -> None:
        self._emit(logging.ERROR, msg, fields, exc_info=True)


_loggers: dict[str, StructuredLogger] = {}


def get_logger(name: str = ROOT) -> StructuredLogger:
    if not _configured:
        configure_logging()
    if name not in _loggers:
        _loggers[name] = StructuredLogger(name)
    return _loggers[name]


def set_log_level(level: str) -> None:
    logging.getLogger(ROOT).setLevel(parse_level(level, logging.DEBUG))
