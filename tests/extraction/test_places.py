"""Tests for place extraction, voting and the denylists."""

from tripsift.extraction.messages import parse_messages
from tripsift.extraction.places import detect_place_type, extract_places, find_place, is_denied
from tripsift.extraction.schemas import PlaceStatus, PlaceType


class TestExtractPlaces:

    def test_two_senders_confirm(self):
        places = extract_places(parse_messages(
            "Priya: We should visit Baga Beach for sure\nAmit: yes Baga Beach!"
        ))

        assert [p.name for p in places] == ["Baga", "Baga Beach"]
        beach = find_place(places, "baga beach")
        assert beach.type == PlaceType.BEACH
        assert beach.status == PlaceStatus.CONFIRMED
        assert beach.votes == 2
        assert beach.confidence == 95
        assert beach.mentioned_by == ["Priya", "Amit"]

    def test_tentative_mention_is_maybe(self):
        places = extract_places(parse_messages("Rahul: Thinking of Gokarna"))
        assert places[0].name == "Gokarna"
        assert places[0].status == PlaceStatus.MAYBE
        assert places[0].confidence == 85

    def test_positive_signal_confirms_single_mention(self):
        places = extract_places(parse_messages("Rahul: Gokarna sounds good"))
        assert places[0].status == PlaceStatus.CONFIRMED
        assert places[0].votes == 1
        assert places[0].confidence == 95

    def test_vote_threshold(self):
        messages = parse_messages("Priya: Gokarna?\nAmit: Gokarna or Hampi")
        assert find_place(extract_places(messages), "Gokarna").status == PlaceStatus.CONFIRMED
        assert find_place(extract_places(messages, min_senders=3), "Gokarna").status == PlaceStatus.MAYBE


class TestRejections:

    def test_person_names(self):
        assert extract_places(parse_messages("Priya: we can go to Naveen tomorrow")) == []

    def test_slang(self):
        assert extract_places(parse_messages("Rahul: Macha Beach scene")) == []

    def test_generic_noun(self):
        assert extract_places(parse_messages("Rahul: Let's check out the Hotel")) == []

    def test_possessive_person(self):
        assert is_denied("Naveen's place") is True


class TestPlaceType:

    def test_keyword_boost(self):
        assert detect_place_type("Fort Aguada") == (PlaceType.LANDMARK, 30)

    def test_no_keyword(self):
        assert detect_place_type("Zostel") == (PlaceType.DESTINATION, 0)

    def test_find_place_missing(self):
        assert find_place([], "Goa") is None
