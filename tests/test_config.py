"""
Tests for configuration validation and numeric coercion.
"""

from datetime import datetime
from decimal import Decimal

import pytest

from standings.config import Config
from standings.data_models.leaderboard import Leaderboard
from standings.data_models.snapshot import to_decimal
from standings.database.models import utcnow


class TestConfig:

    def test_defaults_are_valid(self):
        Config.validate()

    def test_non_numeric_default_weight(self, monkeypatch):
        monkeypatch.setattr(Config, 'DEFAULT_WIN_WEIGHT', 'many')
        with pytest.raises(ValueError):
            Config.validate()

    def test_retry_count_must_be_positive(self, monkeypatch):
        monkeypatch.setattr(Config, 'FETCH_MAX_RETRIES', 0)
        with pytest.raises(ValueError):
            Config.validate()


class TestToDecimal:

    @pytest.mark.parametrize("value, expected", [
        (3, Decimal(3)),
        (0.1, Decimal("0.1")),
        (" 2.50 ", Decimal("2.50")),
        (Decimal("-1"), Decimal("-1")),
    ])
    def test_numbers(self, value, expected):
        assert to_decimal(value) == expected

    @pytest.mark.parametrize("value", [True, None, "abc", "Infinity", float("nan"), [1]])
    def test_rejects_non_numbers(self, value):
        with pytest.raises(ValueError):
            to_decimal(value)


def test_unknown_leaderboard_view():
    with pytest.raises(ValueError):
        Leaderboard(tournament_id=1, formula_id=1).entries_for("clubs")


def test_timestamps_compare_naive():
    assert utcnow().tzinfo is None
    assert utcnow() > datetime(2020, 1, 1)
