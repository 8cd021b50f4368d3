"""Tests for pattern and consensus decisions."""

from tripsift.extraction.decisions import (
    extract_consensus_decisions,
    extract_decisions,
    is_duplicate,
    is_reaction,
    is_valid_decision,
    merge_decisions,
)
from tripsift.extraction.messages import parse_messages
from tripsift.extraction.schemas import ExtractedDecision

BUS_THREAD = "\n".join([
    "Rahul: We will take the overnight bus to Goa",
    "Priya: yes",
    "Amit: works for me",
])


class TestPatternDecisions:

    def test_lets_go_with(self):
        decisions = extract_decisions(parse_messages("Rahul: Let's go with the sleeper bus"))

        assert len(decisions) == 1
        decision = decisions[0]
        assert decision.decision == "The sleeper bus"
        assert decision.made_by == "Rahul"
        assert decision.confidence == 65
        assert decision.confirmed is False

    def test_question_is_not_a_decision(self):
        assert extract_decisions(parse_messages("Rahul: Let's go with Zostel?")) == []


class TestConsensusDecisions:

    def test_agreement_confirms(self):
        decisions = extract_consensus_decisions(parse_messages(BUS_THREAD))

        assert len(decisions) == 1
        decision = decisions[0]
        assert decision.decision == "We will take the overnight bus to Goa"
        assert decision.confirmed is True
        assert decision.made_by == "Rahul, Priya, Amit"
        assert decision.confidence == 92

    def test_merged_with_pattern_duplicate(self):
        decisions = extract_decisions(parse_messages(BUS_THREAD))
        assert len(decisions) == 1
        assert decisions[0].confirmed is True

    def test_threshold_not_reached_falls_back_to_pattern(self):
        decisions = extract_decisions(parse_messages(BUS_THREAD), min_senders=4)
        assert len(decisions) == 1
        assert decisions[0].confirmed is False
        assert decisions[0].made_by == "Rahul"


class TestValidation:

    def test_reaction(self):
        assert is_reaction("looks good") is True

    def test_blocklisted_chatter(self):
        assert is_valid_decision("lol we will go") is False

    def test_request(self):
        assert is_valid_decision("can we book it") is False

    def test_keyword_required(self):
        assert is_valid_decision("We will take the overnight bus") is True
        assert is_valid_decision("the weather looks nice there") is False


class TestMerge:

    def test_prefix_duplicate(self):
        assert is_duplicate("Stay at Zostel Goa for 3 nights", "stay at zostel goa for 3 nights, final") is True
        assert is_duplicate("Take the train", "Fly to Goa") is False

    def test_first_group_wins(self):
        first = ExtractedDecision(decision="Stay at Zostel Goa for 3 nights", confirmed=True)
        second = ExtractedDecision(decision="Stay at Zostel Goa for 3 nights!")
        other = ExtractedDecision(decision="Fly back on Sunday")

        merged = merge_decisions([first], [second, other])
        assert merged == [first, other]

    def test_capped(self):
        many = [ExtractedDecision(decision=f"Decision number {n:02d} is final") for n in range(12)]
        assert len(merge_decisions(many)) == 8
