"""SQLAlchemy ORM models and enums.

This module defines the analytics schema: users own ad account connections,
connections own campaigns, campaigns own one metrics row per day. Insights
belong to a user and optionally point at a campaign or connection.

Ownership for every read path traces
CampaignMetrics -> Campaign -> AdAccountConnection -> User.
"""

from datetime import datetime
import enum

from sqlalchemy import (
    Column,
    String,
    DateTime,
    Date,
    Enum,
    Integer,
    Float,
    ForeignKey,
    Numeric,
    JSON,
    Text,
    UniqueConstraint,
    Index,
)
from sqlalchemy.orm import relationship, declarative_base


# Single Base used by the entire application
Base = declarative_base()


# Enums ---------------------------------------------------------

class AdPlatformEnum(str, enum.Enum):
    meta_ads = "meta_ads"
    shopee_ads = "shopee_ads"
    tiktok_ads = "tiktok_ads"
    tokopedia_ads = "tokopedia_ads"
    google_ads = "google_ads"
    lazada_ads = "lazada_ads"
    snack_video_ads = "snack_video_ads"


class AdObjectiveEnum(str, enum.Enum):
    """Campaign objective.

    - awareness: reach and impressions
    - engagement: interactions with the creative
    - traffic: clicks to a destination
    - conversion: purchases / sign-ups (ROAS matters most here)
    """
    awareness = "awareness"
    engagement = "engagement"
    traffic = "traffic"
    conversion = "conversion"


class ConnectionStatusEnum(str, enum.Enum):
    connected = "connected"
    disconnected = "disconnected"
    error = "error"
    pending = "pending"


class InsightTypeEnum(str, enum.Enum):
    funnel_evaluation = "funnel_evaluation"
    key_metrics = "key_metrics"
    anomaly_detection = "anomaly_detection"
    audience_segmentation = "audience_segmentation"
    optimization_strategy = "optimization_strategy"
    campaign_structure = "campaign_structure"
    algorithm_explanation = "algorithm_explanation"
    testing_scaling = "testing_scaling"
    content_strategy = "content_strategy"


def _enum_values(enum_cls):
    return [e.value for e in enum_cls]


# Core models ----------------------------------------------------

class User(Base):
    """User represents a person (or company account) using the dashboard.

    Created once via signup, immutable afterwards except for timestamps.
    """
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(String, unique=True, index=True, nullable=False)
    name = Column(String, nullable=False)
    company_name = Column(String, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    connections = relationship("AdAccountConnection", back_populates="user")
    insights = relationship("AiInsight", back_populates="user")

    def __str__(self):
        return f"{self.name} ({self.email})"


class AdAccountConnection(Base):
    """Link between a user and one ad account on an advertising platform.

    Status transitions are caller-driven; the store does not validate them
    against a state machine. `last_sync_at` is stamped by the sync stub.
    Connections are never hard-deleted.
    """
    __tablename__ = "ad_account_connections"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    platform = Column(Enum(AdPlatformEnum, name="ad_platform", values_callable=_enum_values), nullable=False)
    account_id = Column(String, nullable=False)  # The account ID on the external platform
    account_name = Column(String, nullable=False)
    access_token = Column(Text, nullable=False)
    refresh_token = Column(Text, nullable=True)
    status = Column(
        Enum(ConnectionStatusEnum, name="connection_status", values_callable=_enum_values),
        default=ConnectionStatusEnum.pending,
        nullable=False,
    )
    last_sync_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    user = relationship("User", back_populates="connections")
    campaigns = relationship("Campaign", back_populates="connection")
    insights = relationship("AiInsight", back_populates="connection")

    def __str__(self):
        return f"{self.account_name} ({self.platform.value})"


class Campaign(Base):
    """Campaign synced from a platform account.

    Natural key: (connection_id, platform_campaign_id). Sync upserts on it.
    """
    __tablename__ = "campaigns"
    __table_args__ = (
        UniqueConstraint("connection_id", "platform_campaign_id", name="uq_campaigns_connection_platform_id"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    connection_id = Column(Integer, ForeignKey("ad_account_connections.id"), nullable=False, index=True)
    platform_campaign_id = Column(String, nullable=False)
    name = Column(String, nullable=False)
    objective = Column(Enum(AdObjectiveEnum, name="ad_objective", values_callable=_enum_values), nullable=False)
    status = Column(String, nullable=False)  # Free-form platform status (ACTIVE, PAUSED, ...)
    daily_budget = Column(Numeric(10, 2), nullable=True)
    lifetime_budget = Column(Numeric(10, 2), nullable=True)
    start_date = Column(Date, nullable=True)
    end_date = Column(Date, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    connection = relationship("AdAccountConnection", back_populates="campaigns")
    metrics = relationship("CampaignMetrics", back_populates="campaign")
    insights = relationship("AiInsight", back_populates="campaign")

    def __str__(self):
        return f"{self.name} ({self.objective.value})"


class CampaignMetrics(Base):
    """One row of daily performance per campaign.

    Natural key: (campaign_id, date). Read-heavy, only written by sync.

    Precision:
    - spend / conversion_value: Numeric(10, 2)
    - cpc / cpm: Numeric(10, 4)
    - ctr / roas: floats
    """
    __tablename__ = "campaign_metrics"
    __table_args__ = (
        UniqueConstraint("campaign_id", "date", name="uq_campaign_metrics_campaign_date"),
        Index("ix_campaign_metrics_date", "date"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    campaign_id = Column(Integer, ForeignKey("campaigns.id"), nullable=False, index=True)
    date = Column(Date, nullable=False)

    impressions = Column(Integer, nullable=False)
    clicks = Column(Integer, nullable=False)
    spend = Column(Numeric(10, 2), nullable=False)
    conversions = Column(Integer, nullable=False)
    conversion_value = Column(Numeric(10, 2), nullable=False)

    ctr = Column(Float, nullable=False)
    cpc = Column(Numeric(10, 4), nullable=False)
    cpm = Column(Numeric(10, 4), nullable=False)
    roas = Column(Float, nullable=False)

    frequency = Column(Float, nullable=True)
    reach = Column(Integer, nullable=True)
    video_views = Column(Integer, nullable=True)
    engagement_rate = Column(Float, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    campaign = relationship("Campaign", back_populates="metrics")

    def __str__(self):
        return f"{self.date.strftime('%Y-%m-%d')} - campaign {self.campaign_id} - ${self.spend}"


class AiInsight(Base):
    """Templated insight text generated for a user.

    Immutable once created. The `metadata` column is exposed as
    `insight_metadata` because `metadata` is reserved on declarative classes.
    """
    __tablename__ = "ai_insights"
    __table_args__ = (
        Index("ix_ai_insights_user_created", "user_id", "created_at"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    campaign_id = Column(Integer, ForeignKey("campaigns.id"), nullable=True)
    connection_id = Column(Integer, ForeignKey("ad_account_connections.id"), nullable=True)
    insight_type = Column(String(64), nullable=False)  # InsightTypeEnum value, or a free-form type (generic template)
    title = Column(String, nullable=False)
    content = Column(Text, nullable=False)
    recommendations = Column(Text, nullable=False)
    confidence_score = Column(Float, nullable=False)  # 0..1
    platform = Column(Enum(AdPlatformEnum, name="ad_platform", values_callable=_enum_values), nullable=False)
    objective = Column(Enum(AdObjectiveEnum, name="ad_objective", values_callable=_enum_values), nullable=True)
    insight_metadata = Column("metadata", JSON, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    user = relationship("User", back_populates="insights")
    campaign = relationship("Campaign", back_populates="insights")
    connection = relationship("AdAccountConnection", back_populates="insights")

    def __str__(self):
        return f"{self.title} ({self.insight_type})"
