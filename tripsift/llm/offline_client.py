"""Offline adapter: the rule-based engine behind the provider interface."""

import time

from tripsift.core.logging import get_logger
from tripsift.extraction.engine import HeuristicEngine
from tripsift.extraction.messages import extract_chat_block
from tripsift.extraction.schemas import ExtractionResult

from .base import BaseProvider
from .providers import ProviderKind
from .types import Prompt, ProviderResult

_log = get_logger("llm.offline")


class OfflineProvider(BaseProvider):
    """Always succeeds; reads the chat between the prompt's chat markers."""

    kind = ProviderKind.OFFLINE

    def __init__(self, consensus_min_senders: int = 2, engine: HeuristicEngine | None = None):
        self.engine = engine or HeuristicEngine(consensus_min_senders=consensus_min_senders)

    async def send_request(self, prompt: Prompt) -> ProviderResult[ExtractionResult]:
        start = time.perf_counter()
        chat_text = extract_chat_block(prompt.user)
        result = self.engine.extract(chat_text)
        latency_ms = (time.perf_counter() - start) * 1000
        _log.debug("Offline extraction", items=result.stats.extracted_items, latency_ms=round(latency_ms, 1))
        return ProviderResult.ok(self.kind, result, latency_ms=latency_ms)
