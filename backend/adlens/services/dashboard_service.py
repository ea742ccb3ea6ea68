"""
Dashboard Service
=================

Rolls fetched metric rows up into the dashboard payload.

WHAT:
    - summarize_rows: totals plus unweighted averages
    - platform_breakdown: per connection platform sums
    - objective_breakdown: per campaign objective spend and performance_score
    - recent_insights: bounded feed of the user's newest insights
    - get_dashboard_data: fetch + all of the above

WHY:
    The reductions are pure functions of the row set so they can be unit
    tested without a database. Only recent_insights touches the store.

AVERAGING RULE:
    Averages are plain means of the per-row values, NOT ratios of totals.
    avg_ctr = mean(row.ctr), never total_clicks / total_impressions.
    An empty set yields 0 for every scalar (never NaN / ZeroDivisionError).

REFERENCES:
    - adlens/services/metrics_service.py (fetch_metric_rows)
    - adlens/routers/dashboard.py
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from adlens.deps import get_settings
from adlens.models import AdObjectiveEnum, AdPlatformEnum, AiInsight
from adlens.schemas import (
    DashboardData,
    DashboardRequest,
    ObjectiveBreakdownItem,
    PlatformBreakdownItem,
    RecentInsight,
    SummaryMetrics,
)
from adlens.services.metrics_service import (
    MetricFilters,
    MetricRow,
    fetch_metric_rows,
    mean_or_zero,
)

logger = logging.getLogger(__name__)

MAX_RECENT_INSIGHTS = 5


def summarize_rows(rows: List[MetricRow]) -> SummaryMetrics:
    """Scalar totals and unweighted averages over `rows`."""
    return SummaryMetrics(
        total_spend=sum((r.spend for r in rows), Decimal("0")),
        total_impressions=sum(r.impressions for r in rows),
        total_clicks=sum(r.clicks for r in rows),
        total_conversions=sum(r.conversions for r in rows),
        avg_ctr=mean_or_zero([r.ctr for r in rows]),
        avg_cpc=mean_or_zero([r.cpc for r in rows], Decimal("0")),
        avg_roas=mean_or_zero([r.roas for r in rows]),
    )


def platform_breakdown(rows: List[MetricRow]) -> List[PlatformBreakdownItem]:
    """One entry per platform present in `rows`. Empty platforms are absent."""
    by_platform: Dict[AdPlatformEnum, dict] = {}
    for row in rows:
        if row.platform not in by_platform:
            by_platform[row.platform] = {
                "spend": Decimal("0"),
                "impressions": 0,
                "clicks": 0,
                "conversions": 0,
            }
        data = by_platform[row.platform]
        data["spend"] += row.spend
        data["impressions"] += row.impressions
        data["clicks"] += row.clicks
        data["conversions"] += row.conversions

    return [
        PlatformBreakdownItem(platform=platform, **data)
        for platform, data in by_platform.items()
    ]


def objective_breakdown(rows: List[MetricRow]) -> List[ObjectiveBreakdownItem]:
    """One entry per objective present, with performance_score = mean roas of the group."""
    by_objective: Dict[AdObjectiveEnum, dict] = {}
    for row in rows:
        if row.objective not in by_objective:
            by_objective[row.objective] = {"spend": Decimal("0"), "roas": []}
        by_objective[row.objective]["spend"] += row.spend
        by_objective[row.objective]["roas"].append(row.roas)

    return [
        ObjectiveBreakdownItem(
            objective=objective,
            spend=data["spend"],
            performance_score=mean_or_zero(data["roas"]),
        )
        for objective, data in by_objective.items()
    ]


def recent_insights(
    db: Session,
    user_id: int,
    platform: Optional[AdPlatformEnum] = None,
    objective: Optional[AdObjectiveEnum] = None,
    limit: int = MAX_RECENT_INSIGHTS,
) -> List[RecentInsight]:
    """Newest insights for the user, ties broken by id (both descending)."""
    query = db.query(AiInsight).filter(AiInsight.user_id == user_id)
    if platform is not None:
        query = query.filter(AiInsight.platform == platform)
    if objective is not None:
        query = query.filter(AiInsight.objective == objective)

    insights = (
        query.order_by(AiInsight.created_at.desc(), AiInsight.id.desc())
        .limit(min(limit, MAX_RECENT_INSIGHTS))
        .all()
    )
    return [RecentInsight.model_validate(insight) for insight in insights]


def get_dashboard_data(db: Session, request: DashboardRequest) -> DashboardData:
    """Build the full dashboard payload for one user and filter set.

    Any store error propagates; there is no partial result.
    """
    filters = MetricFilters(
        user_id=request.user_id,
        start_date=request.date_range.start_date,
        end_date=request.date_range.end_date,
        platform=request.platform,
        objective=request.objective,
    )
    rows = fetch_metric_rows(db, filters)

    data = DashboardData(
        summary_metrics=summarize_rows(rows),
        platform_breakdown=platform_breakdown(rows),
        objective_breakdown=objective_breakdown(rows),
        recent_insights=recent_insights(
            db,
            request.user_id,
            platform=request.platform,
            objective=request.objective,
            limit=get_settings().DASHBOARD_RECENT_INSIGHTS_LIMIT,
        ),
    )

    logger.info(
        "[DASHBOARD] user=%s rows=%s platforms=%s objectives=%s insights=%s",
        request.user_id,
        len(rows),
        len(data.platform_breakdown),
        len(data.objective_breakdown),
        len(data.recent_insights),
    )
    return data
