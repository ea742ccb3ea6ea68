"""Insight service functions.

WHAT:
    - generate_ai_insight: stores a templated insight for a user
    - get_user_insights: lists a user's stored insights

WHY:
    Insights are a fixed lookup keyed by insight type. The platform name and
    the formatted date range are interpolated into the text; no metrics are
    read. Same type => same confidence score and metadata shape.

REFERENCES:
    - adlens/routers/insights.py
    - adlens/services/dashboard_service.py (recent insights feed)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Any, Callable, Dict, List, Optional, Union

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from adlens.exceptions import NotFoundError
from adlens.models import (
    AdAccountConnection,
    AdPlatformEnum,
    AiInsight,
    Campaign,
    InsightTypeEnum,
    User,
)
from adlens.schemas import GenerateInsightRequest

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InsightTemplate:
    """Text templates use `{platform}` and `{period}` placeholders."""
    title: str
    content: str
    recommendations: str
    confidence_score: float
    metadata: Callable[[str, str], Optional[Dict[str, Any]]]


INSIGHT_TEMPLATES: Dict[InsightTypeEnum, InsightTemplate] = {
    InsightTypeEnum.funnel_evaluation: InsightTemplate(
        title="Funnel Performance Analysis - {platform}",
        content=(
            "Analyzed conversion funnel performance for {platform} campaigns from {period}. "
            "The funnel shows opportunities for optimization at key conversion points."
        ),
        recommendations=(
            "Focus on improving mid-funnel engagement rates. Consider A/B testing different "
            "creative formats to reduce drop-off at the consideration stage."
        ),
        confidence_score=0.85,
        metadata=lambda platform, period: {"analysis_period": period, "platform": platform},
    ),
    InsightTypeEnum.key_metrics: InsightTemplate(
        title="Key Metrics Performance Summary - {platform}",
        content=(
            "Comprehensive analysis of key performance indicators for {platform} campaigns "
            "during {period}. Identified trends in ROAS, CTR, and conversion rates."
        ),
        recommendations=(
            "Optimize budget allocation towards high-performing ad sets. Consider increasing "
            "bids for campaigns with ROAS above 3.0."
        ),
        confidence_score=0.92,
        metadata=lambda platform, period: {
            "metrics_analyzed": ["roas", "ctr", "cpc", "conversions"],
            "period": period,
        },
    ),
    InsightTypeEnum.anomaly_detection: InsightTemplate(
        title="Performance Anomaly Detection - {platform}",
        content=(
            "Detected unusual patterns in campaign performance during {period}. "
            "Significant deviations from baseline metrics identified."
        ),
        recommendations=(
            "Investigate sudden changes in CPM and conversion rates. Check for external "
            "factors affecting campaign performance."
        ),
        confidence_score=0.78,
        metadata=lambda platform, period: {
            "anomalies_detected": ["cpm_spike", "conversion_drop"],
            "detection_period": period,
        },
    ),
    InsightTypeEnum.audience_segmentation: InsightTemplate(
        title="Audience Segmentation Analysis - {platform}",
        content=(
            "Analyzed audience segments performance for {platform} campaigns from {period}. "
            "Identified high-value customer segments and their behaviors."
        ),
        recommendations=(
            "Create lookalike audiences based on top-performing segments. Adjust targeting "
            "parameters to focus on high-converting demographics."
        ),
        confidence_score=0.88,
        metadata=lambda platform, period: {
            "segments_analyzed": 5,
            "top_segment_roas": 4.2,
            "period": period,
        },
    ),
    InsightTypeEnum.optimization_strategy: InsightTemplate(
        title="Campaign Optimization Strategy - {platform}",
        content=(
            "Generated comprehensive optimization strategy for {platform} campaigns based on "
            "performance data from {period}."
        ),
        recommendations=(
            "Implement automated bidding strategies. Increase budget for campaigns with CPA "
            "below target. Pause underperforming ad sets."
        ),
        confidence_score=0.90,
        metadata=lambda platform, period: {
            "strategy_type": "performance_based",
            "optimization_areas": ["bidding", "budget", "targeting"],
        },
    ),
    InsightTypeEnum.campaign_structure: InsightTemplate(
        title="Campaign Structure Analysis - {platform}",
        content=(
            "Evaluated campaign structure efficiency for {platform} during {period}. "
            "Identified opportunities for better organization and performance."
        ),
        recommendations=(
            "Restructure campaigns by product categories. Separate brand and non-brand "
            "campaigns for better budget control."
        ),
        confidence_score=0.83,
        metadata=lambda platform, period: {
            "current_campaigns": 10,
            "recommended_structure": "product_based",
            "period": period,
        },
    ),
    InsightTypeEnum.algorithm_explanation: InsightTemplate(
        title="Platform Algorithm Insights - {platform}",
        content=(
            "Analysis of {platform} algorithm behavior and its impact on campaign performance "
            "during {period}."
        ),
        recommendations=(
            "Allow algorithm more time for optimization. Avoid frequent campaign changes that "
            "reset learning phase."
        ),
        confidence_score=0.75,
        metadata=lambda platform, period: {
            "algorithm_phase": "learning",
            "optimization_suggestions": ["stable_budget", "consistent_targeting"],
        },
    ),
    InsightTypeEnum.testing_scaling: InsightTemplate(
        title="Testing and Scaling Strategy - {platform}",
        content=(
            "Developed testing framework and scaling strategy for {platform} campaigns based on "
            "{period} performance data."
        ),
        recommendations=(
            "Implement systematic creative testing. Scale winning ad sets gradually with "
            "20-30% budget increases."
        ),
        confidence_score=0.87,
        metadata=lambda platform, period: {
            "testing_framework": "creative_rotation",
            "scaling_method": "gradual_increase",
        },
    ),
    InsightTypeEnum.content_strategy: InsightTemplate(
        title="Content Strategy Recommendations - {platform}",
        content=(
            "Analyzed content performance patterns for {platform} campaigns from {period}. "
            "Identified top-performing creative elements."
        ),
        recommendations=(
            "Focus on video content with strong hooks in first 3 seconds. Test user-generated "
            "content variations."
        ),
        confidence_score=0.81,
        metadata=lambda platform, period: {
            "top_content_type": "video",
            "engagement_driver": "ugc",
            "analysis_period": period,
        },
    ),
}

GENERIC_TEMPLATE = InsightTemplate(
    title="General Campaign Insights - {platform}",
    content="Generated insights for {platform} campaigns based on performance data from {period}.",
    recommendations="Review campaign performance regularly and adjust strategies based on data trends.",
    confidence_score=0.70,
    metadata=lambda platform, period: {"period": period},
)


def _value(item: Union[str, InsightTypeEnum, AdPlatformEnum]) -> str:
    return item.value if hasattr(item, "value") else str(item)


def get_template(insight_type: Union[str, InsightTypeEnum]) -> InsightTemplate:
    """Template for `insight_type`; unknown types get the generic template."""
    try:
        return INSIGHT_TEMPLATES[InsightTypeEnum(_value(insight_type))]
    except ValueError:
        logger.warning("[INSIGHTS] Unknown insight type %r, using generic template", insight_type)
        return GENERIC_TEMPLATE


def render_insight(
    insight_type: Union[str, InsightTypeEnum],
    platform: Union[str, AdPlatformEnum],
    period: str,
) -> Dict[str, Any]:
    """Fill a template. Returns title/content/recommendations/confidence_score/metadata."""
    template = get_template(insight_type)
    platform_name = _value(platform)

    metadata = template.metadata(platform_name, period)
    if template is GENERIC_TEMPLATE:
        metadata = {"insight_type": _value(insight_type), **metadata}

    return {
        "title": template.title.format(platform=platform_name, period=period),
        "content": template.content.format(platform=platform_name, period=period),
        "recommendations": template.recommendations.format(platform=platform_name, period=period),
        "confidence_score": template.confidence_score,
        "metadata": metadata,
    }


def generate_ai_insight(db: Session, request: GenerateInsightRequest) -> AiInsight:
    """Persist a templated insight and return the stored row.

    Raises:
        NotFoundError: If the user does not exist, or a supplied campaign /
            connection does not exist or belongs to another user
    """
    user = db.query(User).filter(User.id == request.user_id).first()
    if not user:
        raise NotFoundError("User", request.user_id)

    if request.campaign_id is not None:
        campaign = (
            db.query(Campaign)
            .join(AdAccountConnection, Campaign.connection_id == AdAccountConnection.id)
            .filter(
                Campaign.id == request.campaign_id,
                AdAccountConnection.user_id == request.user_id,
            )
            .first()
        )
        if not campaign:
            raise NotFoundError("Campaign", request.campaign_id)

    if request.connection_id is not None:
        connection = (
            db.query(AdAccountConnection)
            .filter(
                AdAccountConnection.id == request.connection_id,
                AdAccountConnection.user_id == request.user_id,
            )
            .first()
        )
        if not connection:
            raise NotFoundError("Connection", request.connection_id)

    rendered = render_insight(request.insight_type, request.platform, request.date_range.label())

    insight = AiInsight(
        user_id=request.user_id,
        campaign_id=request.campaign_id,
        connection_id=request.connection_id,
        insight_type=_value(request.insight_type),
        title=rendered["title"],
        content=rendered["content"],
        recommendations=rendered["recommendations"],
        confidence_score=rendered["confidence_score"],
        platform=request.platform,
        objective=request.objective,
        insight_metadata=rendered["metadata"],
    )
    db.add(insight)
    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("[INSIGHTS] Failed to store insight for user %s", request.user_id)
        raise
    db.refresh(insight)

    logger.info(
        "[INSIGHTS] Generated %s insight %s for user %s (%s)",
        insight.insight_type,
        insight.id,
        insight.user_id,
        _value(insight.platform),
    )
    return insight


def get_user_insights(
    db: Session,
    user_id: int,
    limit: Optional[int] = None,
    insight_type: Optional[Union[str, InsightTypeEnum]] = None,
    platform: Optional[AdPlatformEnum] = None,
    offset: int = 0,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
) -> List[AiInsight]:
    """A user's insights: newest first, then highest confidence, then highest id.

    `start_date` / `end_date` bound `created_at` by calendar day, both
    inclusive. `offset` and `limit` page through the ordered result.
    """
    query = db.query(AiInsight).filter(AiInsight.user_id == user_id)
    if insight_type is not None:
        query = query.filter(AiInsight.insight_type == _value(insight_type))
    if platform is not None:
        query = query.filter(AiInsight.platform == platform)
    if start_date is not None:
        query = query.filter(AiInsight.created_at >= datetime.combine(start_date, time.min))
    if end_date is not None:
        next_day = datetime.combine(end_date + timedelta(days=1), time.min)
        query = query.filter(AiInsight.created_at < next_day)

    query = query.order_by(
        AiInsight.created_at.desc(),
        AiInsight.confidence_score.desc(),
        AiInsight.id.desc(),
    )
    if offset:
        query = query.offset(offset)
    if limit is not None:
        query = query.limit(limit)
    return query.all()
