"""Seed script to populate the database with demo data for local development.

Features:
- One demo user with two connected ad accounts (Meta and TikTok).
- Campaigns and 30 days of daily metrics from the sync generator.
- One insight of every type so the dashboard feed has content.

Usage:
    cd backend
    python -m adlens.seed_mock
"""

from datetime import datetime, timedelta
import random

from adlens.database import get_sync_session, init_db
from adlens import models
from adlens.schemas import DateRange, GenerateInsightRequest
from adlens.services.insight_service import generate_ai_insight
from adlens.services.sync_service import sync_campaign_data

DEMO_EMAIL = "demo@adlens.dev"

DEMO_ACCOUNTS = [
    (models.AdPlatformEnum.meta_ads, "act_100200300", "Demo Store - Meta"),
    (models.AdPlatformEnum.tiktok_ads, "tt_700800900", "Demo Store - TikTok"),
]


def seed():
    """Main seeding function."""
    init_db()
    rng = random.Random(42)

    with get_sync_session() as db:
        print("🧹 Clearing existing demo data...")
        existing = db.query(models.User).filter(models.User.email == DEMO_EMAIL).first()
        if existing:
            connection_ids = [c.id for c in existing.connections]
            campaign_ids = [
                c.id for c in db.query(models.Campaign)
                .filter(models.Campaign.connection_id.in_(connection_ids))
            ]
            db.query(models.AiInsight).filter(models.AiInsight.user_id == existing.id).delete(synchronize_session=False)
            db.query(models.CampaignMetrics).filter(
                models.CampaignMetrics.campaign_id.in_(campaign_ids)
            ).delete(synchronize_session=False)
            db.query(models.Campaign).filter(models.Campaign.id.in_(campaign_ids)).delete(synchronize_session=False)
            db.query(models.AdAccountConnection).filter(
                models.AdAccountConnection.user_id == existing.id
            ).delete(synchronize_session=False)
            db.delete(existing)
            db.commit()

        print("👤 Creating demo user...")
        user = models.User(email=DEMO_EMAIL, name="Demo Owner", company_name="Demo Store")
        db.add(user)
        db.commit()
        db.refresh(user)

        for platform, account_id, account_name in DEMO_ACCOUNTS:
            print(f"🔌 Connecting {platform.value} account {account_id}...")
            connection = models.AdAccountConnection(
                user_id=user.id,
                platform=platform,
                account_id=account_id,
                account_name=account_name,
                access_token=f"demo-token-{account_id}",
                status=models.ConnectionStatusEnum.connected,
            )
            db.add(connection)
            db.commit()
            db.refresh(connection)

            result = sync_campaign_data(db, connection.id, force_sync=True, rng=rng)
            print(f"   📈 {result.campaigns_synced} campaigns, {result.metrics_synced} metric rows")

        today = datetime.utcnow().date()
        date_range = DateRange(start_date=today - timedelta(days=30), end_date=today)
        for insight_type in models.InsightTypeEnum:
            generate_ai_insight(db, GenerateInsightRequest(
                user_id=user.id,
                insight_type=insight_type.value,
                platform=rng.choice(DEMO_ACCOUNTS)[0],
                date_range=date_range,
            ))
        print(f"💡 Generated {len(models.InsightTypeEnum)} insights")

        print(f"✅ Done. Demo user id: {user.id}")


if __name__ == "__main__":
    seed()
