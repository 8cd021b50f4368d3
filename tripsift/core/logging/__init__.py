from .context import LogConfig, get_request_id, reset_request_id, set_request_id
from .formatters import ConsoleFormatter, JsonLineFormatter, LineFormatter
from .structured_logger import StructuredLogger, configure_logging, get_logger, set_log_level

__all__ = [
    "get_logger",
    "configure_logging",
    "set_log_level",
    "StructuredLogger",
    "LogConfig",
    "ConsoleFormatter",
    "LineFormatter",
    "JsonLineFormatter",
    "set_request_id",
    "reset_request_id",
    "get_request_id",
]
