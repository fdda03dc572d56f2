"""
Tests for the deterministic text parsers used by the dialog.
"""

from datetime import datetime, timedelta, timezone

import pytest

from takeaway_bot.dialog.parsers import (
    clean_item_description,
    contains_phrase,
    extract_order_code,
    name_matches,
    negates_affirmation,
    parse_clock_time,
    parse_pickup_time,
    parse_quantity,
    parse_spoken_hour,
    strip_time_expressions,
)

NOW = datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)
LEAD = timedelta(minutes=10)


class TestMatching:
    def test_contains_phrase_is_whole_word(self):
        assert contains_phrase("no olives", "no")
        assert not contains_phrase("right now", "no")
        assert not contains_phrase("is it unready", "ready")

    def test_negated_affirmation(self):
        assert negates_affirmation("hmm, i'm not sure")
        assert negates_affirmation("no, don't do it")
        assert not negates_affirmation("yes please")
        assert not negates_affirmation("sure, no problem")

    def test_name_matches_plural_and_punctuation(self):
        assert name_matches("Margherita", "two margheritas please")
        assert name_matches("Extra Cheese", "with extra-cheese")

    def test_name_matches_partial_name(self):
        assert name_matches("Extra Cheese", "cheese")

    def test_short_utterance_does_not_match_partial_name(self):
        assert not name_matches("Olives", "no")
        assert not name_matches("Olives", "")

    def test_clean_item_description(self):
        assert clean_item_description("I would like a large pizza") == "large pizza"
        assert clean_item_description("please") == "please"


class TestOrderCodes:
    @pytest.mark.parametrize("text,expected", [
        ("please cancel TA-9876 immediately", "TA-9876"),
        ("ta9876", "TA9876"),
        ("my code is ord-202610181830-000042", "ORD-202610181830-000042"),
        ("t a 98 76", "TA-9876"),
    ])
    def test_extracts_code(self, text, expected):
        assert extract_order_code(text) == expected

    @pytest.mark.parametrize("text", ["abc", "", None, "I would like to cancel please"])
    def test_no_code(self, text):
        assert extract_order_code(text) is None


class TestQuantities:
    def test_digit(self):
        parsed = parse_quantity("3 pizzas")
        assert parsed.value == 3 and not parsed.from_article

    def test_number_word(self):
        assert parse_quantity("two large margheritas").value == 2

    def test_article_is_marked(self):
        parsed = parse_quantity("a margherita")
        assert parsed.value == 1 and parsed.from_article

    def test_clock_time_is_not_a_quantity(self):
        assert parse_quantity("for pickup at 18:30") is None

    def test_quantity_next_to_clock_time(self):
        assert parse_quantity("3 pizzas at 18:30").value == 3

    def test_out_of_range_is_still_reported(self):
        assert parse_quantity("100 pizzas").value == 100

    def test_spoken_hour_is_not_a_quantity(self):
        assert parse_quantity("at 7") is None
        assert parse_quantity("around seven o'clock") is None
        assert parse_quantity("two margheritas at 7").value == 2

    def test_strip_time_expressions(self):
        stripped = strip_time_expressions("two at 7 p.m. or in 20 minutes")
        assert "7" not in stripped
        assert "20" not in stripped
        assert "two" in stripped


class TestClockTimes:
    @pytest.mark.parametrize("text,expected", [
        ("at 18:30", (18, 30)),
        ("6.30pm", (18, 30)),
        ("7 pm", (19, 0)),
        ("7 p.m.", (19, 0)),
        ("12am", (0, 0)),
        ("around noon", (12, 0)),
    ])
    def test_parses(self, text, expected):
        assert parse_clock_time(text) == expected

    def test_invalid_hour(self):
        assert parse_clock_time("at 25:00") is None

    @pytest.mark.parametrize("text,expected", [
        ("at 7", 7),
        ("around seven", 7),
        ("7 o'clock", 7),
        ("eleven oclock", 11),
        ("by 19", 19),
    ])
    def test_spoken_hours(self, text, expected):
        assert parse_spoken_hour(text) == expected

    def test_spoken_hour_leaves_clock_times_alone(self):
        assert parse_spoken_hour("at 18:30") is None
        assert parse_spoken_hour("two margheritas") is None


class TestPickupTime:
    def test_later_today(self):
        parsed = parse_pickup_time("for pickup at 18:30", NOW, timezone.utc, LEAD)
        assert parsed.value == datetime(2026, 10, 18, 18, 30, tzinfo=timezone.utc)

    def test_past_time_rolls_to_tomorrow(self):
        parsed = parse_pickup_time("at 11:00", NOW, timezone.utc, LEAD)
        assert parsed.value == datetime(2026, 10, 19, 11, 0, tzinfo=timezone.utc)

    def test_past_time_today_is_rejected(self):
        parsed = parse_pickup_time("today at 11:00", NOW, timezone.utc, LEAD)
        assert parsed.rejected

    def test_tomorrow(self):
        parsed = parse_pickup_time("tomorrow at 7pm", NOW, timezone.utc, LEAD)
        assert parsed.value == datetime(2026, 10, 19, 19, 0, tzinfo=timezone.utc)

    def test_within_lead_time_is_rejected(self):
        parsed = parse_pickup_time("at 12:05", NOW, timezone.utc, LEAD)
        assert parsed.mentioned
        assert parsed.value is None

    def test_relative_delay(self):
        parsed = parse_pickup_time("in 20 minutes", NOW, timezone.utc, LEAD)
        assert parsed.value == NOW + timedelta(minutes=20)

    def test_relative_delay_too_soon(self):
        assert parse_pickup_time("in 5 minutes", NOW, timezone.utc, LEAD).rejected

    def test_bare_hour_takes_next_occurrence(self):
        parsed = parse_pickup_time("at 7", NOW, timezone.utc, LEAD)
        assert parsed.value == datetime(2026, 10, 18, 19, 0, tzinfo=timezone.utc)

    def test_bare_hour_late_evening(self):
        parsed = parse_pickup_time("around 11 o'clock", NOW, timezone.utc, LEAD)
        assert parsed.value == datetime(2026, 10, 18, 23, 0, tzinfo=timezone.utc)

    def test_bare_hour_tomorrow_is_morning(self):
        parsed = parse_pickup_time("tomorrow at seven", NOW, timezone.utc, LEAD)
        assert parsed.value == datetime(2026, 10, 19, 7, 0, tzinfo=timezone.utc)

    def test_bare_hour_within_lead_is_rejected(self):
        evening = datetime(2026, 10, 18, 18, 55, tzinfo=timezone.utc)
        assert parse_pickup_time("at 7", evening, timezone.utc, LEAD).rejected

    def test_no_time_mentioned(self):
        parsed = parse_pickup_time("two margheritas", NOW, timezone.utc, LEAD)
        assert parsed.value is None
        assert not parsed.rejected
