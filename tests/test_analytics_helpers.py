from datetime import datetime

import pytest

from complaint_portal.db.models import ComplaintStatus
from complaint_portal.services.analytics_service import (
    bucket_by_month,
    month_label,
    percentage,
    status_counts,
    trailing_month_keys,
)


class TestPercentage:
    def test_zero_total(self):
        assert percentage(0, 0) == 0.0
        assert percentage(3, 0) == 0.0

    @pytest.mark.parametrize(
        "count, total, expected",
        [(1, 2, 50.0), (1, 3, 33.3), (2, 3, 66.6), (3, 3, 100.0), (1, 8, 12.5)],
    )
    def test_one_decimal(self, count, total, expected):
        assert percentage(count, total) == expected

    def test_shares_never_exceed_hundred(self):
        shares = [percentage(1, 6) for _ in range(6)]
        assert sum(shares) <= 100.0


class TestStatusCounts:
    def test_all_statuses_present(self):
        counts = status_counts([ComplaintStatus.PENDING, ComplaintStatus.PENDING])
        assert counts[ComplaintStatus.PENDING] == 2
        assert counts[ComplaintStatus.RESOLVED] == 0
        assert set(counts) == set(ComplaintStatus)


class TestMonthBuckets:
    def test_same_month_of_different_years_stays_apart(self):
        rows = [
            (datetime(2023, 3, 1), ComplaintStatus.RESOLVED),
            (datetime(2024, 3, 9), ComplaintStatus.PENDING),
            (datetime(2024, 3, 20), ComplaintStatus.IN_PROGRESS),
        ]

        buckets = bucket_by_month(rows)

        assert [(b.year, b.month) for b in buckets] == [(2023, 3), (2024, 3)]
        assert buckets[0].complaints == 1
        assert buckets[0].resolved == 1
        assert buckets[1].complaints == 2
        assert buckets[1].pending == 1
        assert buckets[1].in_progress == 1

    def test_chronological_order(self):
        rows = [
            (datetime(2024, 1, 1), ComplaintStatus.PENDING),
            (datetime(2023, 12, 1), ComplaintStatus.REJECTED),
        ]

        buckets = bucket_by_month(rows)

        assert [b.label for b in buckets] == ["Dec 2023", "Jan 2024"]
        assert buckets[0].rejected == 1

    def test_fixed_keys_report_empty_months_and_drop_others(self):
        keys = [(2024, 1), (2024, 2)]
        rows = [
            (datetime(2024, 2, 14), ComplaintStatus.PENDING),
            (datetime(2023, 2, 14), ComplaintStatus.PENDING),
        ]

        buckets = bucket_by_month(rows, keys=keys)

        assert [(b.year, b.month, b.complaints) for b in buckets] == [
            (2024, 1, 0),
            (2024, 2, 1),
        ]

    def test_empty(self):
        assert bucket_by_month([]) == []


class TestTrailingMonths:
    def test_twelve_months_across_year_boundary(self):
        keys = trailing_month_keys(datetime(2024, 2, 29, 15, 30))

        assert len(keys) == 12
        assert keys[0] == (2023, 3)
        assert keys[-1] == (2024, 2)

    def test_month_label(self):
        assert month_label((2024, 9)) == "Sep 2024"
