"""Tests for budget extraction, consensus and amount filtering."""

import pytest

from tripsift.extraction.budget import extract_budget, format_currency, is_date_like
from tripsift.extraction.messages import Message, parse_messages
from tripsift.extraction.schemas import BudgetStatus

AGREED = "Rahul: Budget around 15k per person?\nPriya: 15k per person sounds good"


class TestBudgetConsensus:

    def test_two_senders_finalize(self):
        budget = extract_budget(parse_messages(AGREED))

        assert budget.status == BudgetStatus.FINALIZED
        assert budget.total == "₹15,000"
        assert budget.per_person is True
        assert budget.proposals is None
        assert budget.currency == "INR"
        assert budget.confidence == 80

    def test_below_threshold_stays_open(self):
        budget = extract_budget(parse_messages(AGREED), min_senders=3)

        assert budget.status == BudgetStatus.OPEN
        assert budget.total is None
        assert len(budget.proposals) == 1
        assert budget.proposals[0].amount == "₹15,000"
        assert budget.proposals[0].proposed_by == ["Rahul", "Priya"]

    def test_competing_proposals(self):
        budget = extract_budget(parse_messages("Rahul: Budget 10k max\nAmit: I think 20k budget is better"))

        assert budget.status == BudgetStatus.OPEN
        assert budget.total is None
        assert [p.amount for p in budget.proposals] == ["₹10,000", "₹20,000"]

    def test_range_proposal(self):
        budget = extract_budget(parse_messages("Rahul: budget 10-12k per person"))
        assert budget.proposals[0].amount == "₹10,000 - ₹12,000"


class TestBudgetBreakdown:

    def test_nightly_cost_goes_to_breakdown(self):
        budget = extract_budget(parse_messages("Priya: Hotel is ₹2,500 per night"))

        assert budget.proposals == []
        assert budget.confidence == 60
        item = budget.breakdown[0]
        assert item.item == "Stay"
        assert item.amount == "₹2,500/night"
        assert item.assignee == "Priya"


class TestBudgetFiltering:

    def test_dates_are_not_money(self):
        assert extract_budget(parse_messages("Rahul: Dec 15-18 works")) is None

    def test_media_context_ignored(self):
        assert extract_budget([Message(content="sent a meme about 5k budget", sender="Amit")]) is None

    def test_small_amounts_ignored(self):
        assert extract_budget(parse_messages("Amit: ₹50 for chai")) is None

    def test_empty(self):
        assert extract_budget([]) is None

    def test_is_date_like(self):
        assert is_date_like("15-18", "dates 15-18") is True


class TestFormatCurrency:

    @pytest.mark.parametrize("amount,expected", [
        (500, "₹500"),
        (8000, "₹8,000"),
        (99999, "₹99,999"),
        (1500.5, "₹1,500.5"),
        (250000, "₹2.5L"),
    ])
    def test_format(self, amount, expected):
        assert format_currency(amount) == expected
