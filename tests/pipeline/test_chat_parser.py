"""Tests for the chat parser pipeline."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from tripsift.config import Settings
from tripsift.core.errors import PipelineError
from tripsift.core.resilience.fallback_chain import ProviderFallbackManager
from tripsift.extraction.schemas import (
    ExtractedBudget,
    ExtractedDate,
    ExtractedDecision,
    ExtractedPlace,
    ExtractedTask,
    ExtractionResult,
    PlaceStatus,
    Source,
)
from tripsift.llm.providers import ProviderKind
from tripsift.llm.types import ProviderResult
from tripsift.pipeline import ChatParserPipeline, LoggingObserver, NullObserver, ParsingOptions, build_pipeline
from tripsift.pipeline.chat_parser import apply_attribution, apply_confidence_threshold
from tripsift.pipeline.events import ProgressObserver, Stage


class StubProvider:
    def __init__(self, kind: ProviderKind, result=None, error: str = ""):
        self.kind = kind
        self.result = result
        self.error = error
        self.prompts = []

    async def send_request(self, prompt):
        self.prompts.append(prompt)
        if self.result is None:
            return ProviderResult.fail(self.kind, self.error or "failed")
        return ProviderResult.ok(self.kind, self.result.model_copy(deep=True))


class RecordingObserver:
    def __init__(self):
        self.stages = []
        self.changes = []
        self.fallbacks = []

    def on_progress(self, stage, percent):
        self.stages.append((stage, percent))

    def on_provider_change(self, kind):
        self.changes.append(kind)

    def on_fallback(self, kind):
        self.fallbacks.append(kind)


def _ai_result() -> ExtractionResult:
    return ExtractionResult(
        dates=[ExtractedDate(date="Dec 15-18")],
        places=[
            ExtractedPlace(name="Baga Beach", status=PlaceStatus.CONFIRMED, confidence=90),
            ExtractedPlace(name="Hampi", confidence=40),
        ],
        tasks=[ExtractedTask(task="Book the villa")],
        decisions=[ExtractedDecision(decision="Going to Goa", confidence=55)],
    )


def _pipeline(*providers, observer=None, enricher=None):
    observer = observer or NullObserver()
    manager = ProviderFallbackManager(
        {p.kind: p for p in providers},
        on_provider_change=observer.on_provider_change,
        on_fallback=observer.on_fallback,
    )
    return ChatParserPipeline(manager, enricher=enricher, observer=observer)


# ---------------------------------------------------------------------------
# Attribution and thresholds
# ---------------------------------------------------------------------------

class TestAttribution:

    def test_ai_defaults(self):
        result = _ai_result()
        apply_attribution(result, ProviderKind.GEMINI)

        assert all(item.source == Source.AI for item in result.iter_items())
        assert result.dates[0].confidence == 80
        assert result.places[1].confidence == 40

    def test_heuristic_defaults(self):
        result = ExtractionResult(places=[ExtractedPlace(name="Goa")])
        apply_attribution(result, ProviderKind.OFFLINE)

        assert result.places[0].source == Source.HEURISTIC
        assert result.places[0].confidence == 60

    def test_existing_source_kept(self):
        result = ExtractionResult(dates=[ExtractedDate(date="Dec 15", source=Source.HEURISTIC)])
        apply_attribution(result, ProviderKind.GROQ)
        assert result.dates[0].source == Source.HEURISTIC

    def test_tasks_get_source_only(self):
        result = ExtractionResult(tasks=[ExtractedTask(task="Pack bags")])
        apply_attribution(result, ProviderKind.GROQ)
        assert result.tasks[0].source == Source.AI


class TestConfidenceThreshold:

    def test_drops_low_items(self):
        result = _ai_result()
        result.budget = ExtractedBudget(total="₹15,000", confidence=50)
        dropped = apply_confidence_threshold(result, 60)

        assert [p.name for p in result.places] == ["Baga Beach"]
        assert result.decisions == []
        assert result.budget is None
        assert result.dates[0].date == "Dec 15-18"
        assert len(result.tasks) == 1
        assert dropped == 3

    def test_zero_keeps_everything(self):
        result = _ai_result()
        assert apply_confidence_threshold(result, 0) == 0
        assert len(result.places) == 2


# ---------------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------------

class TestChatParserPipeline:

    async def test_stages_reported_in_order(self):
        observer = RecordingObserver()
        enricher = MagicMock()
        enricher.enrich = AsyncMock(side_effect=lambda places, max_count: places)
        pipeline = _pipeline(StubProvider(ProviderKind.GEMINI, _ai_result()), observer=observer, enricher=enricher)

        await pipeline.process("Rahul: Goa?")

        assert observer.stages == [
            ("analyzing", 10), ("extracting", 30), ("enriching", 70), ("finalizing", 90), ("complete", 100),
        ]
        assert observer.changes == [ProviderKind.GEMINI]

    async def test_stats_and_attribution(self):
        pipeline = _pipeline(StubProvider(ProviderKind.GEMINI, _ai_result()))
        result = await pipeline.process("Rahul: Goa?", ParsingOptions(enrich_places=False))

        assert result.stats.providers_used == ["gemini"]
        assert result.stats.extracted_items == result.count_items() == 5
        assert result.stats.processing_time_ms >= 0
        assert result.places[0].source == Source.AI

    async def test_chat_sent_inside_prompt(self):
        provider = StubProvider(ProviderKind.GEMINI, _ai_result())
        await _pipeline(provider).process("Rahul: Goa in December?")
        assert "Rahul: Goa in December?" in provider.prompts[0].user

    async def test_fallback_reported(self):
        observer = RecordingObserver()
        pipeline = _pipeline(
            StubProvider(ProviderKind.GEMINI, error="quota"),
            StubProvider(ProviderKind.OFFLINE, ExtractionResult()),
            observer=observer,
        )
        result = await pipeline.process("Rahul: hi")

        assert result.stats.providers_used == ["offline"]
        assert observer.fallbacks == [ProviderKind.OFFLINE]

    async def test_all_providers_fail(self):
        pipeline = _pipeline(StubProvider(ProviderKind.GEMINI, error="quota"))
        with pytest.raises(PipelineError):
            await pipeline.process("Rahul: hi")

    async def test_threshold_applied_and_recounted(self):
        pipeline = _pipeline(StubProvider(ProviderKind.GEMINI, _ai_result()))
        result = await pipeline.process(
            "Rahul: hi", ParsingOptions(enrich_places=False, min_confidence_threshold=60),
        )
        assert [p.name for p in result.places] == ["Baga Beach"]
        assert result.stats.extracted_items == 3

    async def test_enrichment_options(self):
        enricher = MagicMock()
        enricher.enrich = AsyncMock(side_effect=lambda places, max_count: places)
        pipeline = _pipeline(StubProvider(ProviderKind.GEMINI, _ai_result()), enricher=enricher)

        await pipeline.process("Rahul: hi", ParsingOptions(max_places_to_enrich=2))
        assert enricher.enrich.await_args.args[1] == 2

        enricher.enrich.reset_mock()
        await pipeline.process("Rahul: hi", ParsingOptions(enrich_places=False))
        enricher.enrich.assert_not_awaited()

    async def test_enrichment_failure_ignored(self):
        enricher = MagicMock()
        enricher.enrich = AsyncMock(side_effect=RuntimeError("geocoder down"))
        pipeline = _pipeline(StubProvider(ProviderKind.GEMINI, _ai_result()), enricher=enricher)

        result = await pipeline.process("Rahul: hi")
        assert [p.name for p in result.places] == ["Baga Beach", "Hampi"]

    async def test_observer_errors_swallowed(self):
        observer = MagicMock()
        observer.on_progress.side_effect = RuntimeError("ui gone")
        pipeline = _pipeline(StubProvider(ProviderKind.GEMINI, _ai_result()), observer=observer)

        result = await pipeline.process("Rahul: hi", ParsingOptions(enrich_places=False))
        assert result.places

    def test_available_providers(self):
        pipeline = _pipeline(StubProvider(ProviderKind.GROQ), StubProvider(ProviderKind.OFFLINE))
        assert pipeline.get_available_providers() == [ProviderKind.GROQ, ProviderKind.OFFLINE]


class TestBuildPipeline:

    async def test_offline_end_to_end(self, goa_chat):
        pipeline = build_pipeline(Settings(), offline_only=True, enrich=False)
        result = await pipeline.process(goa_chat)

        assert pipeline.enricher is None
        assert result.stats.providers_used == ["offline"]
        assert result.dates[0].date == "Dec 15-18"
        assert all(item.source == Source.HEURISTIC for item in result.iter_items())

    def test_enricher_wired(self):
        pipeline = build_pipeline(Settings(), offline_only=True)
        assert pipeline.enricher is not None


class TestObservers:

    def test_protocol(self):
        assert isinstance(NullObserver(), ProgressObserver)
        assert isinstance(LoggingObserver(), ProgressObserver)
        assert isinstance(RecordingObserver(), ProgressObserver)

    def test_logging_observer_does_not_raise(self):
        observer = LoggingObserver()
        observer.on_progress(Stage.ANALYZING.value, 10)
        observer.on_provider_change(ProviderKind.GROQ)
        observer.on_fallback(ProviderKind.OFFLINE)
