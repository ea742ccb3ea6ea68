"""Campaign sync service functions.

WHAT:
    Simulates pulling campaigns and daily metrics from an ad platform and
    upserts them into the store.

WHY:
    - Stands in for real platform API clients. The contract a real client
      must keep is the same: idempotent upserts keyed on
      (connection_id, platform_campaign_id) and (campaign_id, date), and
      counts of newly inserted rows only.
    - The connection row is locked (SELECT ... FOR UPDATE) and the whole
      upsert sequence commits once, so concurrent syncs of one connection
      serialize instead of racing on the natural keys.

REFERENCES:
    - adlens/routers/connections.py (POST /connections/{id}/sync)
    - adlens/seed_mock.py (runs a sync for each demo connection)
"""

from __future__ import annotations

import logging
import random
from datetime import date, datetime, timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from adlens.deps import get_settings
from adlens.exceptions import NotFoundError, StateConflictError
from adlens.models import (
    AdAccountConnection,
    AdObjectiveEnum,
    AdPlatformEnum,
    Campaign,
    CampaignMetrics,
    ConnectionStatusEnum,
)
from adlens.schemas import SyncResult

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")
BASIS = Decimal("0.0001")

# Platform-specific CTR ranges (percent)
CTR_RANGES = {
    AdPlatformEnum.google_ads: (2.0, 5.0),         # search ads
    AdPlatformEnum.meta_ads: (1.0, 3.0),           # social ads
    AdPlatformEnum.tiktok_ads: (1.5, 3.5),         # social video
    AdPlatformEnum.snack_video_ads: (1.5, 3.5),
    AdPlatformEnum.shopee_ads: (2.0, 4.5),         # marketplace search
    AdPlatformEnum.tokopedia_ads: (2.0, 4.5),
    AdPlatformEnum.lazada_ads: (2.0, 4.5),
}

# Platform-specific CPM ranges (currency per mille)
CPM_RANGES = {
    AdPlatformEnum.google_ads: (8, 20),
    AdPlatformEnum.meta_ads: (5, 15),
    AdPlatformEnum.tiktok_ads: (6, 18),
    AdPlatformEnum.snack_video_ads: (4, 12),
    AdPlatformEnum.shopee_ads: (3, 10),
    AdPlatformEnum.tokopedia_ads: (3, 10),
    AdPlatformEnum.lazada_ads: (3, 10),
}

VIDEO_PLATFORMS = {
    AdPlatformEnum.meta_ads,
    AdPlatformEnum.tiktok_ads,
    AdPlatformEnum.snack_video_ads,
}

# Objective-specific conversion rate (of clicks) and order value ranges
CONVERSION_PROFILES = {
    AdObjectiveEnum.awareness: ((0.0, 0.01), (20, 60)),
    AdObjectiveEnum.engagement: ((0.005, 0.02), (20, 80)),
    AdObjectiveEnum.traffic: ((0.01, 0.04), (30, 90)),
    AdObjectiveEnum.conversion: ((0.03, 0.12), (40, 120)),
}

CAMPAIGN_OBJECTIVES = [
    AdObjectiveEnum.conversion,
    AdObjectiveEnum.traffic,
    AdObjectiveEnum.awareness,
    AdObjectiveEnum.engagement,
]


# =============================================================================
# SYNC WINDOW
# =============================================================================

def determine_sync_window(
    connection: AdAccountConnection,
    force_sync: bool,
    today: Optional[date] = None,
) -> Tuple[date, date]:
    """Inclusive [start, end] window of days to generate.

    - first sync or force_sync: the last SYNC_DEFAULT_WINDOW_DAYS days
    - otherwise: from the day of last_sync_at through today
    """
    end_date = today or datetime.utcnow().date()

    if force_sync or connection.last_sync_at is None:
        start_date = end_date - timedelta(days=get_settings().SYNC_DEFAULT_WINDOW_DAYS)
    else:
        start_date = connection.last_sync_at.date()

    if start_date > end_date:
        start_date = end_date

    return start_date, end_date


def _iter_days(start_date: date, end_date: date):
    current = start_date
    while current <= end_date:
        yield current
        current += timedelta(days=1)


# =============================================================================
# MOCK PLATFORM DATA
# =============================================================================

def mock_campaigns(connection: AdAccountConnection, count: int, rng: random.Random) -> List[Dict[str, Any]]:
    """Campaign payloads as a platform would return them.

    External ids derive from the account id, so repeated syncs produce the
    same keys.
    """
    campaigns = []
    for index in range(count):
        objective = CAMPAIGN_OBJECTIVES[index % len(CAMPAIGN_OBJECTIVES)]
        campaigns.append({
            "platform_campaign_id": f"{connection.account_id}-cmp-{index + 1:03d}",
            "name": f"{connection.account_name} - {objective.value.title()} {index + 1}",
            "objective": objective,
            "status": "ACTIVE",
            "daily_budget": Decimal(str(rng.randint(50, 500))).quantize(CENT),
        })
    return campaigns


def generate_daily_metrics(
    platform: AdPlatformEnum,
    objective: AdObjectiveEnum,
    rng: random.Random,
) -> Dict[str, Any]:
    """One day of internally consistent metrics.

    ctr = clicks / impressions (percent), cpc = spend / clicks,
    cpm = spend per 1000 impressions, roas = conversion_value / spend.
    """
    impressions = rng.randint(1000, 10000)

    ctr_pct = rng.uniform(*CTR_RANGES.get(platform, (1.0, 2.5)))
    clicks = int(impressions * ctr_pct / 100)

    conversion_rate, order_value = CONVERSION_PROFILES[objective]
    conversions = int(clicks * rng.uniform(*conversion_rate))
    conversion_value = Decimal(str(conversions * rng.uniform(*order_value))).quantize(CENT, ROUND_HALF_UP)

    target_cpm = rng.uniform(*CPM_RANGES.get(platform, (5, 12)))
    spend = Decimal(str(impressions / 1000 * target_cpm)).quantize(CENT, ROUND_HALF_UP)

    frequency = round(rng.uniform(1.0, 3.0), 2)

    return {
        "impressions": impressions,
        "clicks": clicks,
        "spend": spend,
        "conversions": conversions,
        "conversion_value": conversion_value,
        "ctr": round(clicks / impressions * 100, 4),
        "cpc": (spend / clicks).quantize(BASIS, ROUND_HALF_UP) if clicks > 0 else Decimal("0"),
        "cpm": (spend * 1000 / impressions).quantize(BASIS, ROUND_HALF_UP),
        "roas": round(float(conversion_value / spend), 4) if spend > 0 else 0.0,
        "frequency": frequency,
        "reach": int(impressions / frequency),
        "video_views": int(impressions * rng.uniform(0.2, 0.6)) if platform in VIDEO_PLATFORMS else None,
        "engagement_rate": round(rng.uniform(0.01, 0.08), 4),
    }


# =============================================================================
# UPSERTS
# =============================================================================

def _upsert_campaign(
    db: Session,
    connection: AdAccountConnection,
    data: Dict[str, Any],
    start_date: date,
) -> Tuple[Campaign, bool]:
    """Insert or update a campaign keyed on (connection_id, platform_campaign_id).

    Returns:
        Tuple of (campaign, was_created)
    """
    now = datetime.utcnow()
    campaign = (
        db.query(Campaign)
        .filter(
            Campaign.connection_id == connection.id,
            Campaign.platform_campaign_id == data["platform_campaign_id"],
        )
        .first()
    )

    if campaign:
        campaign.name = data["name"]
        campaign.status = data["status"]
        campaign.objective = data["objective"]
        campaign.daily_budget = data["daily_budget"]
        campaign.updated_at = now
        return campaign, False

    campaign = Campaign(
        connection_id=connection.id,
        platform_campaign_id=data["platform_campaign_id"],
        name=data["name"],
        objective=data["objective"],
        status=data["status"],
        daily_budget=data["daily_budget"],
        start_date=start_date,
        created_at=now,
        updated_at=now,
    )
    db.add(campaign)
    db.flush()
    return campaign, True


def _upsert_campaign_metrics(
    db: Session,
    campaign: Campaign,
    start_date: date,
    end_date: date,
    platform: AdPlatformEnum,
    rng: random.Random,
) -> int:
    """Upsert one metrics row per day keyed on (campaign_id, date). Returns rows inserted."""
    existing = {
        row.date: row
        for row in db.query(CampaignMetrics).filter(
            CampaignMetrics.campaign_id == campaign.id,
            CampaignMetrics.date >= start_date,
            CampaignMetrics.date <= end_date,
        )
    }

    inserted = 0
    for day in _iter_days(start_date, end_date):
        values = generate_daily_metrics(platform, campaign.objective, rng)
        row = existing.get(day)
        if row:
            for field, value in values.items():
                setattr(row, field, value)
        else:
            db.add(CampaignMetrics(campaign_id=campaign.id, date=day, **values))
            inserted += 1

    db.flush()
    return inserted


# =============================================================================
# ENTRY POINT
# =============================================================================

def sync_campaign_data(
    db: Session,
    connection_id: int,
    force_sync: bool = False,
    rng: Optional[random.Random] = None,
) -> SyncResult:
    """Sync campaigns and daily metrics for one connected account.

    Raises:
        NotFoundError: If the connection does not exist
        StateConflictError: If the connection is not `connected`
    """
    rng = rng or random.Random()

    connection = (
        db.query(AdAccountConnection)
        .filter(AdAccountConnection.id == connection_id)
        .with_for_update()
        .first()
    )
    if not connection:
        db.rollback()
        raise NotFoundError("Connection", connection_id)

    if connection.status != ConnectionStatusEnum.connected:
        status_value = connection.status.value
        db.rollback()
        raise StateConflictError(f"Cannot sync: connection status is {status_value}")

    start_date, end_date = determine_sync_window(connection, force_sync)
    logger.info(
        "[SYNC] Connection %s (%s): syncing %s to %s (force=%s)",
        connection.id,
        connection.platform.value,
        start_date,
        end_date,
        force_sync,
    )

    campaigns_synced = 0
    metrics_synced = 0
    try:
        payloads = mock_campaigns(connection, get_settings().SYNC_CAMPAIGNS_PER_CONNECTION, rng)
        for data in payloads:
            campaign, created = _upsert_campaign(db, connection, data, start_date)
            if created:
                campaigns_synced += 1
            metrics_synced += _upsert_campaign_metrics(
                db, campaign, start_date, end_date, connection.platform, rng
            )

        now = datetime.utcnow()
        connection.last_sync_at = now
        connection.updated_at = now
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("[SYNC] Sync failed for connection %s, rolled back", connection_id)
        raise

    logger.info(
        "[SYNC] Connection %s complete: %s campaigns, %s metrics rows inserted",
        connection_id,
        campaigns_synced,
        metrics_synced,
    )
    return SyncResult(
        success=True,
        campaigns_synced=campaigns_synced,
        metrics_synced=metrics_synced,
    )
