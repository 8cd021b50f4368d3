from .chat_parser import ChatParserPipeline, ParsingOptions, build_pipeline
from .events import LoggingObserver, NullObserver, ProgressObserver, Stage

__all__ = [
    "ChatParserPipeline",
    "ParsingOptions",
    "build_pipeline",
    "LoggingObserver",
    "NullObserver",
    "ProgressObserver",
    "Stage",
]
