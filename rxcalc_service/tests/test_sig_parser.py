"""Unit tests for sig_parser - free-text SIG to structured daily dose.

Tests cover:
- Amount/unit extraction through the two dose patterns
- Frequency rule ordering (specific phrases before generic ones)
- Route and timing vocabularies
- PRN detection
- Fallback parsing (bare numerals, number words) and unparseable input
"""

from __future__ import annotations

import pytest

from rxcalc.services import sig_parser
from rxcalc.services.sig_parser import (
    DEFAULT_FREQUENCY,
    DEFAULT_UNIT,
    extract_frequency,
    extract_route,
    extract_timing,
    parse_sig,
)


@pytest.mark.unit
class TestParseSig:
    def test_simple_twice_daily(self) -> None:
        result = parse_sig("Take 1 tablet by mouth twice daily")

        assert result.original_text == "Take 1 tablet by mouth twice daily"
        assert len(result.dosage_instructions) == 1
        inst = result.dosage_instructions[0]
        assert inst.amount == 1
        assert inst.unit == "tablet"
        assert inst.frequency == 2
        assert inst.route == "PO"
        assert result.total_daily_dose == 2
        assert result.daily_frequency == 2
        assert result.is_as_needed is False

    def test_prn_with_explicit_frequency(self) -> None:
        result = parse_sig("Take 1 tablet by mouth twice daily as needed")

        assert result.dosage_instructions[0].frequency == 2
        assert result.total_daily_dose == 2
        assert result.is_as_needed is True

    def test_bid_abbreviation_and_plural_unit(self) -> None:
        result = parse_sig("Take 2 capsules PO BID")

        inst = result.dosage_instructions[0]
        assert inst.amount == 2
        assert inst.unit == "capsule"
        assert inst.frequency == 2
        assert inst.route == "PO"
        assert result.total_daily_dose == 4

    def test_timing_qualifier(self) -> None:
        result = parse_sig("Take 1 tablet by mouth three times daily with food")

        assert result.dosage_instructions[0].frequency == 3
        assert result.dosage_instructions[0].timing == "with food"

    def test_prn_without_frequency_defaults_to_once(self) -> None:
        result = parse_sig("Take 1 tablet by mouth as needed for pain")

        assert result.is_as_needed is True
        assert result.dosage_instructions[0].frequency == DEFAULT_FREQUENCY

    @pytest.mark.parametrize(
        "sig, frequency, daily",
        [
            ("Take 1 tablet TID", 3, 3),
            ("Take 2 tablets QID", 4, 8),
            ("Take 1 tablet by mouth every 6 hours", 4, 4),
            ("Take 1 tablet by mouth every 8 hours", 3, 3),
            ("Take 1 tablet by mouth 5 times daily", 5, 5),
            ("Take 1 tablet once a day", 1, 1),
        ],
    )
    def test_frequency_variants(self, sig: str, frequency: int, daily: float) -> None:
        result = parse_sig(sig)

        assert result.dosage_instructions[0].frequency == frequency
        assert result.total_daily_dose == daily

    def test_fractional_amount(self) -> None:
        result = parse_sig("Take 0.5 tablet by mouth twice daily")

        assert result.dosage_instructions[0].amount == 0.5
        assert result.total_daily_dose == 1

    def test_second_pattern_amount_before_route(self) -> None:
        result = parse_sig("2 tablets by mouth daily")

        inst = result.dosage_instructions[0]
        assert inst.amount == 2
        assert inst.unit == "tablet"
        assert inst.frequency == 1

    def test_all_matches_of_winning_pattern_are_kept(self) -> None:
        result = parse_sig("Take 1 tablet in the morning and take 2 tablets at night twice daily")

        assert [i.amount for i in result.dosage_instructions] == [1, 2]
        assert result.total_daily_dose == 6

    def test_number_word_fallback(self) -> None:
        result = parse_sig("One tablet twice daily")

        assert len(result.dosage_instructions) == 1
        assert result.dosage_instructions[0].amount == 1
        assert result.dosage_instructions[0].unit == DEFAULT_UNIT
        assert result.total_daily_dose == 2

    def test_bare_numeral_fallback_uses_default_unit(self) -> None:
        result = parse_sig("Apply 2 puffs every 12 hours")

        assert result.dosage_instructions[0].amount == 2
        assert result.dosage_instructions[0].unit == DEFAULT_UNIT
        assert result.dosage_instructions[0].frequency == 2

    @pytest.mark.parametrize("sig", ["Invalid SIG format", "", "   ", "use as directed"])
    def test_unparseable_returns_empty(self, sig: str) -> None:
        result = parse_sig(sig)

        assert result.dosage_instructions == []
        assert result.total_daily_dose == 0

    def test_none_input_does_not_raise(self) -> None:
        result = parse_sig(None)  # type: ignore[arg-type]

        assert result.dosage_instructions == []
        assert result.total_daily_dose == 0

    def test_parse_is_pure(self) -> None:
        sig = "Take 2 capsules by mouth three times daily with meals"

        assert parse_sig(sig) == parse_sig(sig)


@pytest.mark.unit
class TestFrequencyRules:
    def test_three_times_daily_not_read_as_once_daily(self) -> None:
        assert extract_frequency("take 1 tablet three times daily")[0] == 3

    def test_default_has_no_timing(self) -> None:
        assert extract_frequency("take 1 tablet in the morning") == (DEFAULT_FREQUENCY, None)

    def test_every_zero_hours_is_ignored(self) -> None:
        assert extract_frequency("take 1 tablet every 0 hours")[0] == DEFAULT_FREQUENCY

    def test_rules_are_ordered_specific_first(self) -> None:
        values = [rule(None) for _, rule in sig_parser.FREQUENCY_RULES[:4]]

        assert values == [3, 4, 2, 1]


@pytest.mark.unit
class TestRouteAndTiming:
    @pytest.mark.parametrize(
        "text, route",
        [
            ("take 1 tablet by mouth", "PO"),
            ("take 1 tablet orally", "PO"),
            ("inject 1 ml iv once", "IV"),
            ("inject 1 ml intramuscular weekly", "IM"),
            ("apply topical cream", "TOPICAL"),
            ("inject 1 ml subq daily", "SQ"),
        ],
    )
    def test_route_vocabulary(self, text: str, route: str) -> None:
        assert extract_route(text) == route

    def test_abbreviation_inside_word_is_not_a_route(self) -> None:
        assert extract_route("take 1 tablet three times daily") is None

    def test_timing_first_match_wins(self) -> None:
        assert extract_timing("take with food at bedtime") == "with food"
        assert extract_timing("take at bedtime") == "bedtime"
        assert extract_timing("take daily") is None
