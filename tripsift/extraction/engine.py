"""
Rule-based extraction engine.

Runs every category extractor over the parsed messages. Each extractor is
isolated: if one raises, its category comes back empty and the rest of
the result is unaffected. ``extract`` itself never raises.
"""

import time
from typing import Callable, List, TypeVar

from tripsift.core.errors import ExtractionError
from tripsift.core.logging import get_logger

from .budget import extract_budget
from .dates import extract_date_exceptions, extract_dates
from .decisions import extract_decisions
from .messages import Message, parse_messages
from .places import extract_places
from .questions import extract_questions
from .schemas import ExtractionResult, ExtractionStats, Source
from .tasks import extract_tasks

_log = get_logger("extraction.engine")

T = TypeVar("T")

OFFLINE_PROVIDER_NAME = "offline"


class HeuristicEngine:
    """Deterministic extractor used by the offline provider."""

    def __init__(self, consensus_min_senders: int = 2):
        self.consensus_min_senders = max(1, consensus_min_senders)

    def _safe(self, category: str, fn: Callable[[], T], default: T) -> T:
        try:
            return fn()
        except Exception as e:
            err = ExtractionError(str(e) or type(e).__name__, category=category)
            _log.warning("Extractor failed", category=category, error=err.message, error_type=type(e).__name__)
            return default

    def extract(self, chat_text: str) -> ExtractionResult:
        start = time.perf_counter()
        messages: List[Message] = self._safe("messages", lambda: parse_messages(chat_text or ""), [])
        threshold = self.consensus_min_senders

        result = ExtractionResult(
            dates=self._safe("dates", lambda: extract_dates(messages, threshold), []),
            budget=self._safe("budget", lambda: extract_budget(messages, threshold), None),
            places=self._safe("places", lambda: extract_places(messages, threshold), []),
            tasks=self._safe("tasks", lambda: extract_tasks(messages), []),
            decisions=self._safe("decisions", lambda: extract_decisions(messages, threshold), []),
            open_questions=self._safe("questions", lambda: extract_questions(messages), []),
            date_exceptions=self._safe("date_exceptions", lambda: extract_date_exceptions(messages), []),
        )

        for item in result.iter_items():
            if getattr(item, "source", None) is None:
                item.source = Source.HEURISTIC

        relevant = sum(1 for m in messages if not m.is_media)
        result.stats = ExtractionStats(
            total_messages=len(messages),
            relevant_messages=relevant,
            media_filtered=len(messages) - relevant,
            extracted_items=result.count_items(),
            processing_time_ms=round((time.perf_counter() - start) * 1000, 2),
            providers_used=[OFFLINE_PROVIDER_NAME],
        )

        _log.info(
            "Heuristic extraction complete",
            messages=len(messages),
            items=result.stats.extracted_items,
            dur_ms=result.stats.processing_time_ms,
        )
        return result
