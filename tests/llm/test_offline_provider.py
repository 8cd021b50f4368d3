"""Tests for the offline provider."""

from unittest.mock import MagicMock

from tripsift.extraction.engine import HeuristicEngine
from tripsift.extraction.schemas import ExtractionResult
from tripsift.llm.offline_client import OfflineProvider
from tripsift.llm.prompts import build_extraction_prompt
from tripsift.llm.providers import ProviderKind
from tripsift.llm.types import Prompt


class TestOfflineProvider:

    async def test_extracts_from_prompt(self, goa_chat):
        result = await OfflineProvider().send_request(build_extraction_prompt(goa_chat))

        assert result.success is True
        assert result.provider == ProviderKind.OFFLINE
        stats = result.data.stats
        assert stats.providers_used == ["offline"]
        assert stats.total_messages == 11
        assert stats.media_filtered == 1
        assert stats.relevant_messages == 10

    async def test_engine_sees_only_chat_block(self):
        engine = MagicMock(spec=HeuristicEngine)
        engine.extract.return_value = ExtractionResult()
        provider = OfflineProvider(engine=engine)

        await provider.send_request(build_extraction_prompt("Rahul: hello"))
        engine.extract.assert_called_once_with("Rahul: hello")

    async def test_never_fails_on_empty_input(self):
        result = await OfflineProvider().send_request(Prompt(system="", user=""))
        assert result.success is True
        assert result.data.stats.total_messages == 0
        assert result.data.count_items() == 0

    async def test_unmarked_prompt_used_whole(self):
        result = await OfflineProvider().send_request(Prompt(system="", user="A: hi\nB: hello"))
        assert result.data.stats.total_messages == 2

    async def test_end_marker_inside_chat_is_not_a_cutoff(self):
        chat = "Rahul: hi\nPriya: ---CHAT END---\nAmit: Goa?\nNeha: yes"
        result = await OfflineProvider().send_request(build_extraction_prompt(chat))
        assert result.data.stats.total_messages == 4
