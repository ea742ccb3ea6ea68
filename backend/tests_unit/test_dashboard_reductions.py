"""
Dashboard Reduction Tests (Unit)
================================

WHAT: Unit tests for the pure row reductions behind the dashboard.
WHY: Averages must stay unweighted means of per-row values, empty inputs must
     yield zeros, and breakdown groups must partition the rows exactly.

NOTE:
These tests live outside `backend/adlens/tests/` to avoid loading the
integration-test `conftest.py`, which configures a database not required here.

REFERENCES:
- backend/adlens/services/dashboard_service.py
- backend/adlens/services/metrics_service.py:bucket_rows
"""

import math
from datetime import date
from decimal import Decimal

import pytest

from adlens.models import AdObjectiveEnum, AdPlatformEnum
from adlens.services.dashboard_service import (
    objective_breakdown,
    platform_breakdown,
    summarize_rows,
)
from adlens.services.metrics_service import MetricRow, bucket_rows, bucket_start


def _row(
    campaign_id=1,
    day=date(2024, 1, 1),
    platform=AdPlatformEnum.meta_ads,
    objective=AdObjectiveEnum.conversion,
    spend="10.00",
    impressions=1000,
    clicks=10,
    conversions=1,
    ctr=1.0,
    cpc="1.0000",
    cpm="10.0000",
    roas=2.0,
    **extra,
) -> MetricRow:
    return MetricRow(
        id=None,
        campaign_id=campaign_id,
        date=day,
        platform=platform,
        objective=objective,
        impressions=impressions,
        clicks=clicks,
        spend=Decimal(spend),
        conversions=conversions,
        conversion_value=Decimal(spend) * Decimal(str(roas)),
        ctr=ctr,
        cpc=Decimal(cpc),
        cpm=Decimal(cpm),
        roas=roas,
        **extra,
    )


def test_summarize_empty_rows_is_all_zero_and_never_nan() -> None:
    summary = summarize_rows([])

    assert summary.total_spend == 0
    assert summary.total_impressions == 0
    assert summary.avg_ctr == 0
    assert summary.avg_cpc == 0
    assert summary.avg_roas == 0
    assert not math.isnan(summary.avg_roas)


def test_summarize_uses_unweighted_means() -> None:
    rows = [
        _row(impressions=100, clicks=10, ctr=10.0, cpc="0.5000"),
        _row(impressions=10000, clicks=100, ctr=1.0, cpc="1.5000"),
    ]

    summary = summarize_rows(rows)

    # Unweighted: (10 + 1) / 2, not 110 / 10100
    assert summary.avg_ctr == pytest.approx(5.5)
    assert summary.avg_cpc == Decimal("1")
    assert summary.total_clicks == 110


def test_total_spend_is_exact_sum() -> None:
    rows = [_row(spend="0.10") for _ in range(3)]

    assert summarize_rows(rows).total_spend == Decimal("0.30")


def test_platform_breakdown_partitions_rows() -> None:
    rows = [
        _row(platform=AdPlatformEnum.meta_ads, spend="1.00", impressions=1),
        _row(platform=AdPlatformEnum.google_ads, spend="2.00", impressions=2),
        _row(platform=AdPlatformEnum.meta_ads, spend="3.00", impressions=3),
    ]

    groups = {item.platform: item for item in platform_breakdown(rows)}

    assert set(groups) == {AdPlatformEnum.meta_ads, AdPlatformEnum.google_ads}
    assert groups[AdPlatformEnum.meta_ads].spend == Decimal("4.00")
    assert groups[AdPlatformEnum.meta_ads].impressions == 4
    assert sum(g.impressions for g in groups.values()) == sum(r.impressions for r in rows)
    assert sum(g.spend for g in groups.values()) == sum(r.spend for r in rows)


def test_objective_performance_score_is_mean_roas_of_shared_objective() -> None:
    rows = [_row(roas=5.0), _row(roas=1.25)]

    (item,) = objective_breakdown(rows)

    assert item.objective == AdObjectiveEnum.conversion
    assert item.performance_score == pytest.approx(3.125)


def test_objective_performance_score_separate_objectives() -> None:
    rows = [
        _row(objective=AdObjectiveEnum.conversion, roas=5.0),
        _row(objective=AdObjectiveEnum.traffic, roas=1.25),
    ]

    scores = {item.objective: item.performance_score for item in objective_breakdown(rows)}

    assert scores == {AdObjectiveEnum.conversion: 5.0, AdObjectiveEnum.traffic: 1.25}


def test_breakdowns_of_empty_rows_are_empty() -> None:
    assert platform_breakdown([]) == []
    assert objective_breakdown([]) == []


@pytest.mark.parametrize(
    "day, group_by, expected",
    [
        (date(2024, 3, 6), "week", date(2024, 3, 4)),    # Wednesday -> Monday
        (date(2024, 3, 4), "week", date(2024, 3, 4)),    # Monday stays
        (date(2024, 3, 10), "week", date(2024, 3, 4)),   # Sunday -> previous Monday
        (date(2024, 2, 29), "month", date(2024, 2, 1)),
        (date(2024, 2, 29), "day", date(2024, 2, 29)),
        (date(2024, 2, 29), None, date(2024, 2, 29)),
    ],
)
def test_bucket_start(day, group_by, expected) -> None:
    assert bucket_start(day, group_by) == expected


def test_week_buckets_cross_month_boundary() -> None:
    # 2024-01-29 (Mon) .. 2024-02-04 (Sun) is one ISO week
    rows = [
        _row(day=date(2024, 1, 30), spend="1.00", cpm="10.0000"),
        _row(day=date(2024, 2, 2), spend="2.00", cpm="20.0000"),
    ]

    (bucket,) = bucket_rows(rows, "week")

    assert bucket.date == date(2024, 1, 29)
    assert bucket.spend == Decimal("3.00")
    assert bucket.cpm == Decimal("15")
