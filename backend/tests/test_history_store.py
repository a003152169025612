"""Tests for the price snapshot history store."""
from datetime import date, datetime
from unittest.mock import MagicMock

import pytest

from farecast.models.price_snapshot import PriceSnapshot
from farecast.schemas.flight import FlightOffer
from farecast.services.history_store import HistoryStore
from farecast.services.housekeeping import run_housekeeping
from farecast.services.outcome import OutcomeStatus
from farecast.services.price_stats import PriceStats

DEPARTURE = date(2026, 12, 15)


def _stats(min_price=100.0, avg_price=120.0, max_price=150.0):
    best = FlightOffer(
        carrier_code="AI",
        flight_number="101",
        airline="Air India",
        depart_time=datetime(2026, 12, 15, 6, 0),
        arrive_time=datetime(2026, 12, 15, 8, 0),
        price=min_price,
        currency="INR",
        source="amadeus",
    )
    return PriceStats(min_price=min_price, avg_price=avg_price, max_price=max_price, best_offer=best, count=3)


def _record(store, days_until, search_date, departure=DEPARTURE, currency="INR", **prices):
    return store.record_snapshot("DEL", "BOM", departure, currency, _stats(**prices), days_until, search_date=search_date)


class TestRecordSnapshot:
    def test_appends_row(self, db_session):
        store = HistoryStore(db_session)
        outcome = _record(store, 57, date(2026, 10, 19))
        assert outcome.status == OutcomeStatus.OK

        row = db_session.query(PriceSnapshot).one()
        assert row.days_until_departure == 57
        assert row.min_price == 100.0
        assert row.avg_price == 120.0
        assert row.max_price == 150.0
        assert row.search_date == date(2026, 10, 19)

    def test_prunes_expired_before_write(self, db_session):
        store = HistoryStore(db_session, retention_days=90)
        _record(store, 120, date(2026, 6, 1))
        _record(store, 57, date(2026, 10, 19))
        dates = [r.search_date for r in db_session.query(PriceSnapshot).all()]
        assert dates == [date(2026, 10, 19)]

    def test_storage_failure_is_soft(self):
        db = MagicMock()
        db.commit.side_effect = RuntimeError("disk full")
        outcome = _record(HistoryStore(db, retention_days=90), 57, date(2026, 10, 19))
        assert outcome.status == OutcomeStatus.FAILED
        assert "disk full" in outcome.error
        db.rollback.assert_called()


class TestFetchHistory:
    def test_ordered_by_days_until_departure(self, db_session):
        store = HistoryStore(db_session)
        _record(store, 20, date(2026, 11, 25), min_price=130.0)
        _record(store, 57, date(2026, 10, 19), min_price=100.0)
        _record(store, 3, date(2026, 12, 12), min_price=180.0)

        points = store.get_history("DEL", "BOM", DEPARTURE)
        assert [p.days_until_departure for p in points] == [3, 20, 57]
        assert points[0].min_price == 180.0

    def test_no_data_is_empty_not_error(self, db_session):
        outcome = HistoryStore(db_session).fetch_history("DEL", "BOM", DEPARTURE)
        assert outcome.status == OutcomeStatus.NO_DATA
        assert outcome.value == []

    def test_storage_error_returns_empty(self):
        db = MagicMock()
        db.query.side_effect = RuntimeError("connection lost")
        store = HistoryStore(db, retention_days=90)
        assert store.get_history("DEL", "BOM", DEPARTURE) == []
        assert store.fetch_history("DEL", "BOM", DEPARTURE).status == OutcomeStatus.FAILED


class TestMinPriceForDate:
    def test_matches_currency(self, db_session):
        store = HistoryStore(db_session)
        _record(store, 40, date(2026, 10, 19), currency="INR", min_price=100.0)
        _record(store, 30, date(2026, 10, 29), currency="INR", min_price=90.0)
        _record(store, 30, date(2026, 10, 29), currency="USD", min_price=2.0)

        assert store.min_price_for_date("DEL", "BOM", DEPARTURE, "INR").value == 90.0
        assert store.min_price_for_date("DEL", "BOM", DEPARTURE, "USD").value == 2.0

    def test_no_data(self, db_session):
        outcome = HistoryStore(db_session).min_price_for_date("DEL", "BOM", DEPARTURE, "INR")
        assert outcome.status == OutcomeStatus.NO_DATA


class TestStats:
    def test_top_routes(self, db_session):
        store = HistoryStore(db_session)
        for _ in range(3):
            _record(store, 40, date(2026, 10, 19))
        store.record_snapshot("AKL", "SYD", DEPARTURE, "NZD", _stats(), 40, search_date=date(2026, 10, 19))

        stats = store.get_stats()
        assert stats.total_history_points == 4
        assert stats.top_routes[0].origin == "DEL"
        assert stats.top_routes[0].count == 3


class TestHousekeeping:
    def test_prunes_both_tables(self, db_session):
        store = HistoryStore(db_session, retention_days=90)
        db_session.add(PriceSnapshot(
            origin="DEL", destination="BOM", departure_date=DEPARTURE,
            search_date=date(2020, 1, 1), days_until_departure=40,
            min_price=1, avg_price=1, max_price=1, currency="INR",
        ))
        db_session.commit()

        summary = run_housekeeping(db_session)
        assert summary["snapshots_deleted"] == 1
        assert summary["failed"] == []
        assert store.get_history("DEL", "BOM", DEPARTURE) == []
