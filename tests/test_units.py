"""Tests for hydrosync.core.units: conversions and volume parsing."""

import pytest

from hydrosync.core.units import format_volume, ml_to_oz, oz_to_ml, parse_volume


class TestConversion:
    def test_ml_to_oz(self):
        assert ml_to_oz(1000) == pytest.approx(33.814)

    def test_oz_round_trip(self):
        assert oz_to_ml(ml_to_oz(500)) == pytest.approx(500)


class TestParseVolume:
    @pytest.mark.parametrize(
        "text, expected",
        [
            ("330 ml", 330),
            ("330ml", 330),
            ("1.5 l", 1500),
            ("1,5L", 1500),
            ("33 cl", 330),
            ("12 oz", 354),
            ("12 fl oz", 354),
            ("12floz", 354),
            ("250", 250),
            ("Sparkling water 500 ml bottle", 500),
        ],
    )
    def test_parses_units(self, text, expected):
        assert parse_volume(text) == expected

    @pytest.mark.parametrize("text", ["", "   ", "a glass", "ml"])
    def test_unreadable_returns_none(self, text):
        assert parse_volume(text) is None


class TestFormatVolume:
    def test_millilitres(self):
        assert format_volume(250) == "250 ml"

    def test_ounces(self):
        assert format_volume(1000, use_ounces=True) == "34 oz"
