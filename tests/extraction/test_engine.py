"""Tests for the heuristic engine: category isolation, stats and attribution."""

from unittest.mock import patch

from tripsift.extraction.engine import HeuristicEngine
from tripsift.extraction.schemas import BudgetStatus, DateStatus, Source


class TestHeuristicEngine:

    def test_goa_chat(self, goa_chat):
        result = HeuristicEngine().extract(goa_chat)

        assert result.dates[0].date == "Dec 15-18"
        assert result.dates[0].status == DateStatus.FINALIZED
        assert result.budget.status == BudgetStatus.FINALIZED
        assert result.budget.total == "₹15,000"
        assert "Baga Beach" in [p.name for p in result.places]
        assert "Book the villa" in [t.task for t in result.tasks]
        assert result.open_questions[0].question == "Should we rent bikes or take cabs?"

    def test_stats(self, goa_chat):
        stats = HeuristicEngine().extract(goa_chat).stats
        assert stats.total_messages == 11
        assert stats.media_filtered == 1
        assert stats.relevant_messages == 10
        assert stats.providers_used == ["offline"]
        assert stats.processing_time_ms >= 0

    def test_extracted_items_matches_count(self, goa_chat):
        result = HeuristicEngine().extract(goa_chat)
        assert result.stats.extracted_items == result.count_items()

    def test_every_item_is_heuristic(self, goa_chat):
        result = HeuristicEngine().extract(goa_chat)
        assert all(item.source == Source.HEURISTIC for item in result.iter_items())

    def test_failing_extractor_is_isolated(self, goa_chat):
        with patch("tripsift.extraction.engine.extract_budget", side_effect=RuntimeError("boom")):
            result = HeuristicEngine().extract(goa_chat)

        assert result.budget is None
        assert result.dates
        assert result.places
        assert result.tasks

    def test_threshold_passed_to_extractors(self, goa_chat):
        result = HeuristicEngine(consensus_min_senders=4).extract(goa_chat)
        assert result.dates[0].status == DateStatus.OPEN
        assert result.budget.status == BudgetStatus.OPEN

    def test_threshold_floor(self):
        assert HeuristicEngine(consensus_min_senders=0).consensus_min_senders == 1

    def test_empty_chat(self):
        result = HeuristicEngine().extract("")
        assert result.count_items() == 0
        assert result.stats.total_messages == 0

    def test_none_chat(self):
        assert HeuristicEngine().extract(None).stats.total_messages == 0
