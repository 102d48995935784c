import time
from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from costlens.modules.reporting.domain.analytics import Granularity, bucket_key
from costlens.modules.reporting.domain.calendar_fill import DailyCost, fill_daily_costs
from costlens.shared.core.exceptions import InvalidDateError


@pytest.fixture
def tokyo_local_time(monkeypatch):
    """Run the test with the process local zone at UTC+9."""
    if not hasattr(time, "tzset"):
        pytest.skip("time.tzset is not available on this platform")
    monkeypatch.setenv("TZ", "Asia/Tokyo")
    time.tzset()
    yield
    monkeypatch.undo()
    time.tzset()


class TestDayCoverage:
    def test_leap_february(self):
        assert len(fill_daily_costs([], 2024, 2)) == 29
        assert len(fill_daily_costs([], 2000, 2)) == 29

    def test_common_february(self):
        assert len(fill_daily_costs([], 2023, 2)) == 28
        assert len(fill_daily_costs([], 1900, 2)) == 28

    @pytest.mark.parametrize(
        "month,days",
        [(1, 31), (2, 28), (3, 31), (4, 30), (5, 31), (6, 30),
         (7, 31), (8, 31), (9, 30), (10, 31), (11, 30), (12, 31)],
    )
    def test_every_month_is_fully_covered_with_zeros(self, month, days):
        points = fill_daily_costs([], 2025, month)
        assert len(points) == days
        assert all(p.amount == 0 for p in points)

    def test_labels_run_from_first_to_last_day(self):
        points = fill_daily_costs([], 2024, 12)
        assert points[0].name == "Dec 1"
        assert points[-1].name == "Dec 31"
        assert [p.name for p in points[:3]] == ["Dec 1", "Dec 2", "Dec 3"]

    def test_invalid_month_is_rejected(self):
        with pytest.raises(InvalidDateError):
            fill_daily_costs([], 2024, 13)


class TestPopulation:
    def test_records_land_on_their_day(self):
        records = [
            DailyCost(date=date(2024, 3, 1), amount=Decimal("12.50")),
            DailyCost(date=date(2024, 3, 15), amount=3),
        ]
        points = fill_daily_costs(records, 2024, 3)

        assert points[0].amount == 12.5
        assert points[14].amount == 3.0
        assert sum(p.amount for p in points) == 15.5

    def test_mapping_records_with_iso_strings(self):
        points = fill_daily_costs([{"date": "2024-03-05", "amount": "7.25"}], 2024, 3)
        assert points[4].name == "Mar 5"
        assert points[4].amount == 7.25

    def test_records_outside_month_are_ignored(self):
        records = [
            DailyCost(date=date(2024, 2, 29), amount=100),
            DailyCost(date=date(2024, 4, 1), amount=100),
            DailyCost(date=date(2023, 3, 1), amount=100),
        ]
        points = fill_daily_costs(records, 2024, 3)
        assert all(p.amount == 0 for p in points)

    def test_same_day_keeps_last_record(self):
        # Existing contract: duplicates replace rather than sum. Unconfirmed upstream.
        records = [
            DailyCost(date=date(2024, 3, 2), amount=10),
            DailyCost(date=date(2024, 3, 2), amount=4),
        ]
        points = fill_daily_costs(records, 2024, 3)
        assert points[1].amount == 4.0

    def test_is_repeatable(self):
        records = [DailyCost(date=date(2024, 3, 2), amount=10)]
        assert fill_daily_costs(records, 2024, 3) == fill_daily_costs(records, 2024, 3)


def test_local_and_utc_day_diverge_near_midnight(tokyo_local_time):
    """
    The chart uses local days while the analytics pivot uses UTC days.
    20:00 UTC on Jan 31 is already Feb 1 in Tokyo; this test keeps that
    difference visible.
    """
    late_evening_utc = datetime(2023, 1, 31, 20, 0, tzinfo=timezone.utc)
    records = [DailyCost(date=late_evening_utc, amount=10)]

    january = fill_daily_costs(records, 2023, 1)
    february = fill_daily_costs(records, 2023, 2)

    assert january[-1].amount == 0.0
    assert february[0].amount == 10.0
    assert bucket_key(late_evening_utc, Granularity.DAILY) == "2023-01-31"
    assert bucket_key(late_evening_utc, Granularity.MONTHLY) == "2023-01"
