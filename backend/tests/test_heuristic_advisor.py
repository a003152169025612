"""Tests for the short-term booking heuristic."""
import math
from datetime import date, datetime

import pytest

from farecast.schemas.advice import Action
from farecast.services.heuristic_advisor import days_until_departure, heuristic_advice


class TestDaysUntilDeparture:
    def test_whole_days(self):
        assert days_until_departure(date(2026, 11, 20), date(2026, 11, 10)) == 10

    def test_same_day(self):
        assert days_until_departure(date(2026, 11, 20), date(2026, 11, 20)) == 0

    def test_rounds_to_nearest_day(self):
        # 2 days 14 hours -> 3, not truncated to 2
        assert days_until_departure(datetime(2026, 11, 20, 14, 0), datetime(2026, 11, 18, 0, 0)) == 3

    def test_rounds_down_under_half(self):
        assert days_until_departure(datetime(2026, 11, 20, 10, 0), datetime(2026, 11, 18, 0, 0)) == 2

    def test_past_departure_is_negative(self):
        assert days_until_departure(date(2026, 11, 18), date(2026, 11, 20)) == -2


class TestImminent:
    def test_clustered_prices_book_85(self):
        result = heuristic_advice(5, 100, 104, 120)
        assert result.action == Action.BOOK
        assert result.confidence == 85

    def test_spread_prices_book_75(self):
        result = heuristic_advice(5, 100, 130, 200)
        assert result.action == Action.BOOK
        assert result.confidence == 75

    def test_day_zero_always_books(self):
        for prices in [(100, 100, 100), (100, 500, 900), (1, 2, 3)]:
            assert heuristic_advice(0, *prices).action == Action.BOOK

    def test_boundary_seven_days(self):
        assert heuristic_advice(7, 100, 150, 200).action == Action.BOOK


class TestFarOut:
    def test_high_average_waits(self):
        result = heuristic_advice(45, 100, 131, 200)
        assert result.action == Action.WAIT
        assert result.confidence == 70

    def test_moderate_average_books(self):
        result = heuristic_advice(45, 100, 130, 200)
        assert result.action == Action.BOOK
        assert result.confidence == 60

    def test_thirty_days_is_mid_window(self):
        # 30 is not "> 30", so the 8-30 rule applies
        result = heuristic_advice(30, 100, 150, 200)
        assert result.confidence in (55, 65)


class TestMidWindow:
    def test_clustered_books(self):
        result = heuristic_advice(15, 100, 104, 109)
        assert result.action == Action.BOOK
        assert result.confidence == 65

    def test_spread_waits(self):
        result = heuristic_advice(15, 100, 130, 200)
        assert result.action == Action.WAIT
        assert result.confidence == 55


class TestBounds:
    @pytest.mark.parametrize("days", [-3, 0, 7, 8, 20, 30, 31, 365])
    @pytest.mark.parametrize("prices", [(1, 1, 1), (100, 150, 400), (50, 51, 52)])
    def test_confidence_bounded(self, days, prices):
        result = heuristic_advice(days, *prices)
        assert 0 <= result.confidence <= 100
        assert result.reason

    def test_non_finite_input_no_signal(self):
        result = heuristic_advice(math.nan, 100, 110, 120)
        assert result.action == Action.NO_SIGNAL

    def test_non_finite_prices_outside_imminent_window(self):
        result = heuristic_advice(20, math.inf, 110, 120)
        assert result.action == Action.NO_SIGNAL
        assert 0 <= result.confidence <= 100
