"""
Metrics Service
===============

Filter-and-fetch of daily campaign metrics plus the flat listing built on it.

WHAT: Ownership-scoped retrieval of CampaignMetrics rows
WHY: The dashboard rollup and the tabular listing must see exactly the same
     row set for the same filters
HOW: One joined query (metrics -> campaign -> connection) with AND-composed
     optional filters

Filter contract:
- user_id, start_date, end_date are required; the range is inclusive and
  compared on calendar dates (datetimes are truncated)
- campaign_ids / platform / objective are optional exact matches
- an omitted (or empty) filter matches anything
- no match returns [] (never an error)

Precision:
- spend, conversion_value, cpc, cpm are Decimal
- ctr, roas are float

Usage:
    >>> rows = fetch_metric_rows(db, MetricFilters(user_id=1,
    ...     start_date=date(2024, 1, 1), end_date=date(2024, 1, 31)))
    >>> sum(r.spend for r in rows)
    Decimal('1234.50')

References:
- adlens/services/dashboard_service.py: Reduces these rows
- adlens/routers/metrics.py: HTTP surface of the listing
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Tuple, Union

from sqlalchemy.orm import Session

from adlens.models import (
    AdAccountConnection,
    AdObjectiveEnum,
    AdPlatformEnum,
    Campaign,
    CampaignMetrics,
)
from adlens.schemas import CampaignMetricsOut, CampaignMetricsQuery

logger = logging.getLogger(__name__)


def _as_date(value: Union[date, datetime]) -> date:
    # datetime is a subclass of date, so check it first
    if isinstance(value, datetime):
        return value.date()
    return value


def to_decimal(value) -> Decimal:
    """Exact decimal for a store value (Decimal, int, float or str)."""
    if value is None:
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def mean_or_zero(values: List, zero=0.0):
    """Unweighted arithmetic mean; `zero` when there is nothing to average."""
    if not values:
        return zero
    return sum(values, zero) / len(values)


def mean_or_none(values: Iterable):
    """Mean over the non-null values; None when every value is null."""
    present = [v for v in values if v is not None]
    if not present:
        return None
    return sum(present) / len(present)


@dataclass
class MetricFilters:
    """
    Filter contract shared by the dashboard and the listing.

    Default behavior: every row owned by `user_id` inside the date range.
    """
    user_id: int
    start_date: date
    end_date: date
    campaign_ids: Optional[List[int]] = None
    platform: Optional[AdPlatformEnum] = None
    objective: Optional[AdObjectiveEnum] = None

    def __post_init__(self):
        self.start_date = _as_date(self.start_date)
        self.end_date = _as_date(self.end_date)


@dataclass(frozen=True)
class MetricRow:
    """A daily metrics row with its owning connection's platform and campaign's objective."""
    id: Optional[int]
    campaign_id: int
    date: date
    platform: AdPlatformEnum
    objective: AdObjectiveEnum
    impressions: int
    clicks: int
    spend: Decimal
    conversions: int
    conversion_value: Decimal
    ctr: float
    cpc: Decimal
    cpm: Decimal
    roas: float
    frequency: Optional[float] = None
    reach: Optional[int] = None
    video_views: Optional[int] = None
    engagement_rate: Optional[float] = None

    @classmethod
    def from_model(
        cls,
        metrics: CampaignMetrics,
        platform: AdPlatformEnum,
        objective: AdObjectiveEnum,
    ) -> "MetricRow":
        return cls(
            id=metrics.id,
            campaign_id=metrics.campaign_id,
            date=_as_date(metrics.date),
            platform=platform,
            objective=objective,
            impressions=int(metrics.impressions or 0),
            clicks=int(metrics.clicks or 0),
            spend=to_decimal(metrics.spend),
            conversions=int(metrics.conversions or 0),
            conversion_value=to_decimal(metrics.conversion_value),
            ctr=float(metrics.ctr or 0),
            cpc=to_decimal(metrics.cpc),
            cpm=to_decimal(metrics.cpm),
            roas=float(metrics.roas or 0),
            frequency=float(metrics.frequency) if metrics.frequency is not None else None,
            reach=metrics.reach,
            video_views=metrics.video_views,
            engagement_rate=float(metrics.engagement_rate) if metrics.engagement_rate is not None else None,
        )


def fetch_metric_rows(db: Session, filters: MetricFilters) -> List[MetricRow]:
    """Return every metrics row matching `filters`. Order is unspecified."""
    query = (
        db.query(CampaignMetrics, AdAccountConnection.platform, Campaign.objective)
        .join(Campaign, CampaignMetrics.campaign_id == Campaign.id)
        .join(AdAccountConnection, Campaign.connection_id == AdAccountConnection.id)
        .filter(
            AdAccountConnection.user_id == filters.user_id,
            CampaignMetrics.date >= filters.start_date,
            CampaignMetrics.date <= filters.end_date,
        )
    )

    if filters.campaign_ids:
        query = query.filter(CampaignMetrics.campaign_id.in_(filters.campaign_ids))
    if filters.platform is not None:
        query = query.filter(AdAccountConnection.platform == filters.platform)
    if filters.objective is not None:
        query = query.filter(Campaign.objective == filters.objective)

    rows = [
        MetricRow.from_model(metrics, platform, objective)
        for metrics, platform, objective in query.all()
    ]
    logger.debug(
        "[METRICS] Fetched %s rows for user %s (%s to %s)",
        len(rows),
        filters.user_id,
        filters.start_date,
        filters.end_date,
    )
    return rows


# =============================================================================
# LISTING + BUCKETING
# =============================================================================

def bucket_start(day: date, group_by: Optional[str]) -> date:
    """First day of the bucket holding `day`: Monday for weeks, the 1st for months."""
    if group_by == "week":
        return day - timedelta(days=day.weekday())
    if group_by == "month":
        return day.replace(day=1)
    return day


def bucket_rows(rows: List[MetricRow], group_by: str) -> List[CampaignMetricsOut]:
    """Collapse daily rows into one row per (campaign, bucket).

    Counts and money are re-summed; rates are re-averaged (unweighted mean of
    the daily values). Optional fields average over the rows that carry them.
    """
    buckets: Dict[Tuple[int, date], List[MetricRow]] = {}
    for row in rows:
        key = (row.campaign_id, bucket_start(row.date, group_by))
        buckets.setdefault(key, []).append(row)

    result = []
    for (campaign_id, start), members in buckets.items():
        reach = [m.reach for m in members if m.reach is not None]
        video_views = [m.video_views for m in members if m.video_views is not None]
        result.append(CampaignMetricsOut(
            id=None,
            campaign_id=campaign_id,
            date=start,
            impressions=sum(m.impressions for m in members),
            clicks=sum(m.clicks for m in members),
            spend=sum((m.spend for m in members), Decimal("0")),
            conversions=sum(m.conversions for m in members),
            conversion_value=sum((m.conversion_value for m in members), Decimal("0")),
            ctr=mean_or_zero([m.ctr for m in members]),
            cpc=mean_or_zero([m.cpc for m in members], Decimal("0")),
            cpm=mean_or_zero([m.cpm for m in members], Decimal("0")),
            roas=mean_or_zero([m.roas for m in members]),
            frequency=mean_or_none(m.frequency for m in members),
            reach=sum(reach) if reach else None,
            video_views=sum(video_views) if video_views else None,
            engagement_rate=mean_or_none(m.engagement_rate for m in members),
        ))

    result.sort(key=lambda r: (r.date, r.campaign_id))
    return result


def get_campaign_metrics(db: Session, query: CampaignMetricsQuery) -> List[CampaignMetricsOut]:
    """Flat metrics listing ordered by (date, campaign_id).

    `group_by` of None or "day" returns the stored daily rows; "week" and
    "month" return per-campaign buckets with `id=None`.
    """
    filters = MetricFilters(
        user_id=query.user_id,
        start_date=query.start_date,
        end_date=query.end_date,
        campaign_ids=query.campaign_ids,
        platform=query.platform,
        objective=query.objective,
    )
    rows = fetch_metric_rows(db, filters)

    if query.group_by in ("week", "month"):
        result = bucket_rows(rows, query.group_by)
    else:
        result = [
            CampaignMetricsOut.model_validate(row, from_attributes=True)
            for row in sorted(rows, key=lambda r: (r.date, r.campaign_id))
        ]

    logger.info(
        "[METRICS] Listing for user %s: %s rows (group_by=%s)",
        query.user_id,
        len(result),
        query.group_by or "day",
    )
    return result
