"""Top-level orchestrator: prompt, provider chain, attribution, enrichment."""

import time
import uuid
from dataclasses import dataclass
from typing import Optional

from tripsift.config import Settings, get_settings
from tripsift.core.errors import PipelineError
from tripsift.core.logging import get_logger, reset_request_id, set_request_id
from tripsift.core.resilience.circuit_breaker import CircuitBreakerRegistry
from tripsift.core.resilience.fallback_chain import ProviderFallbackManager
from tripsift.core.utils.cache import TTLCache
from tripsift.extraction.schemas import ExtractionResult, Source
from tripsift.llm.prompts import build_extraction_prompt
from tripsift.llm.providers import ProviderKind, build_providers
from tripsift.search.enrichment import NominatimEnricher, PlaceEnricher

from .events import STAGE_PERCENT, NullObserver, ProgressObserver, Stage

_log = get_logger("pipeline.chat_parser")

AI_DEFAULT_CONFIDENCE = 80.0
HEURISTIC_DEFAULT_CONFIDENCE = 60.0


@dataclass
class ParsingOptions:
    enrich_places: bool = True
    max_places_to_enrich: int = 5
    min_confidence_threshold: float = 0.0


def apply_attribution(result: ExtractionResult, provider: ProviderKind) -> None:
    """Fill missing ``source`` on every item and missing confidence where it applies."""
    source = Source.HEURISTIC if provider == ProviderKind.OFFLINE else Source.AI
    default_confidence = HEURISTIC_DEFAULT_CONFIDENCE if source == Source.HEURISTIC else AI_DEFAULT_CONFIDENCE

    for item in result.iter_items():
        if getattr(item, "source", None) is None:
            item.source = source
    for item in (*result.places, *result.decisions, *result.dates):
        if item.confidence is None:
            item.confidence = default_confidence


def apply_confidence_threshold(result: ExtractionResult, threshold: float) -> int:
    """Drop items whose confidence is below ``threshold``; returns how many went."""
    if threshold <= 0:
        return 0

    def keep(item) -> bool:
        return item.confidence is None or item.confidence >= threshold

    before = result.count_items()
    result.dates = [d for d in result.dates if keep(d)]
    result.places = [p for p in result.places if keep(p)]
    result.decisions = [d for d in result.decisions if keep(d)]
    if result.budget is not None and not keep(result.budget):
        result.budget = None
    return before - result.count_items()


class ChatParserPipeline:
    """Runs one chat through the provider chain and post-processes the result.

    Observer callbacks are fire-and-forget; a failing observer is logged and
    never interrupts processing.
    """

    def __init__(
        self,
        manager: ProviderFallbackManager,
        enricher: Optional[PlaceEnricher] = None,
        observer: Optional[ProgressObserver] = None,
    ):
        self.manager = manager
        self.enricher = enricher
        self.observer = observer or NullObserver()

    def _progress(self, stage: Stage) -> None:
        percent = STAGE_PERCENT[stage]
        try:
            self.observer.on_progress(stage.value, percent)
        except Exception as e:
            _log.warning("Progress observer failed", stage=stage.value, error=str(e))

    async def process(self, chat_text: str, options: Optional[ParsingOptions] = None) -> ExtractionResult:
        options = options or ParsingOptions()
        token = set_request_id(uuid.uuid4().hex[:8])
        try:
            return await self._process(chat_text, options)
        finally:
            reset_request_id(token)

    async def _process(self, chat_text: str, options: ParsingOptions) -> ExtractionResult:
        start = time.perf_counter()

        def elapsed_ms() -> float:
            return round((time.perf_counter() - start) * 1000, 1)

        self._progress(Stage.ANALYZING)
        prompt = build_extraction_prompt(chat_text)
        self._progress(Stage.EXTRACTING)

        response = await self.manager.execute_with_fallback(prompt)
        if not response.success or response.data is None:
            message = response.error.message if response.error else "Failed to extract data from chat"
            _log.error("Extraction failed", error=message[:300])
            raise PipelineError(message)

        result: ExtractionResult = response.data
        result.stats.processing_time_ms = elapsed_ms()
        result.stats.providers_used = [response.provider.value]

        apply_attribution(result, response.provider)
        dropped = apply_confidence_threshold(result, options.min_confidence_threshold)
        if dropped:
            _log.debug("Low-confidence items dropped", count=dropped, threshold=options.min_confidence_threshold)

        if options.enrich_places and result.places and self.enricher is not None:
            self._progress(Stage.ENRICHING)
            try:
                result.places = await self.enricher.enrich(result.places, options.max_places_to_enrich)
            except Exception as e:
                _log.warning("Place enrichment failed", error=str(e)[:200])

        self._progress(Stage.FINALIZING)
        result.stats.extracted_items = result.count_items()
        result.stats.processing_time_ms = elapsed_ms()

        self._progress(Stage.COMPLETE)
        _log.info(
            "Chat processed",
            provider=response.provider.value,
            items=result.stats.extracted_items,
            ms=result.stats.processing_time_ms,
        )
        return result

    def get_available_providers(self) -> list[ProviderKind]:
        return self.manager.get_available_providers()


def build_pipeline(
    settings: Optional[Settings] = None,
    observer: Optional[ProgressObserver] = None,
    offline_only: bool = False,
    enrich: bool = True,
) -> ChatParserPipeline:
    """Wire providers from credentials, one breaker registry and the geocoder."""
    settings = settings or get_settings()
    observer = observer or NullObserver()

    breakers = CircuitBreakerRegistry(
        failure_threshold=settings.circuit_failure_threshold,
        reset_timeout=settings.circuit_reset_timeout,
    )
    providers = build_providers(settings, breakers=breakers, offline_only=offline_only)
    manager = ProviderFallbackManager(
        providers,
        on_provider_change=observer.on_provider_change,
        on_fallback=observer.on_fallback,
        skip_threshold=settings.provider_skip_threshold,
    )

    enricher: Optional[PlaceEnricher] = None
    if enrich:
        enricher = NominatimEnricher(
            breaker=breakers,
            cache=TTLCache(name="geocode", ttl=settings.geocode_cache_ttl),
            user_agent=settings.nominatim_user_agent,
            timeout=settings.timeout_geocode,
        )

    return ChatParserPipeline(manager, enricher=enricher, observer=observer)
