"""Pydantic schemas for request/response payloads."""

from datetime import datetime, date
from decimal import Decimal
from typing import Optional, List, Literal, Any, Dict

from pydantic import BaseModel, EmailStr, Field, field_serializer, field_validator, model_validator

from .models import AdPlatformEnum, AdObjectiveEnum, ConnectionStatusEnum


# Common Schemas
class ErrorResponse(BaseModel):
    """Standard error response."""

    detail: str = Field(
        description="Error message",
        examples=["Connection with id 42 not found"],
    )
    error: Optional[str] = Field(
        default=None,
        description="Error kind (not_found, state_conflict, integrity_error, store_error)",
        examples=["not_found"],
    )


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = Field(description="Service status", examples=["ok"])
    timestamp: datetime = Field(description="Server time (UTC)")


def truncate_to_date(value: Any) -> Any:
    """Drop the time of day from a datetime (or ISO datetime string).

    Clients send full timestamps such as `2024-01-15T08:30:00.000Z`; only the
    calendar date is significant. Anything else is left for pydantic to parse.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, str) and "T" in value:
        text = value.strip()
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            return datetime.fromisoformat(text).date()
        except ValueError:
            return value
    return value


def check_date_order(start_date: date, end_date: date) -> None:
    if end_date < start_date:
        raise ValueError("end_date must be on or after start_date")


class DateRange(BaseModel):
    """Inclusive calendar date range. Datetimes are truncated to their date."""

    start_date: date = Field(description="Start date (inclusive)")
    end_date: date = Field(description="End date (inclusive)")

    @field_validator("start_date", "end_date", mode="before")
    @classmethod
    def _truncate(cls, value: Any) -> Any:
        return truncate_to_date(value)

    @model_validator(mode="after")
    def _check_order(self) -> "DateRange":
        check_date_order(self.start_date, self.end_date)
        return self

    def label(self) -> str:
        """Human readable range, e.g. `2024-01-01 to 2024-01-31`."""
        return f"{self.start_date.isoformat()} to {self.end_date.isoformat()}"


# User Schemas
class UserCreate(BaseModel):
    """Payload for user signup."""

    email: EmailStr = Field(description="User email address", examples=["owner@company.com"])
    name: str = Field(description="User full name", examples=["Jane Doe"])
    company_name: Optional[str] = Field(default=None, description="Company name", examples=["ACME"])


class UserOut(BaseModel):
    """Public representation of a user."""

    id: int
    email: str
    name: str
    company_name: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


# Connection Schemas
class ConnectionCreate(BaseModel):
    """Schema for linking a new ad account."""

    user_id: int = Field(description="Owning user")
    platform: AdPlatformEnum = Field(description="Ad platform", examples=["meta_ads"])
    account_id: str = Field(description="Account ID on the platform", examples=["act_123456"])
    account_name: str = Field(description="Friendly account name", examples=["ACME Meta Ads"])
    access_token: str = Field(description="Platform access token")
    refresh_token: Optional[str] = Field(default=None, description="Platform refresh token")


class ConnectionStatusUpdate(BaseModel):
    """Schema for updating a connection's status."""

    status: ConnectionStatusEnum = Field(description="New status", examples=["connected"])
    last_sync_at: Optional[datetime] = Field(default=None, description="Optional last sync timestamp")


class ConnectionOut(BaseModel):
    """Public representation of a connection.

    Tokens are never echoed back over HTTP.
    """

    id: int
    user_id: int
    platform: AdPlatformEnum
    account_id: str
    account_name: str
    status: ConnectionStatusEnum
    last_sync_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class ConnectionListResponse(BaseModel):
    connections: List[ConnectionOut]
    total: int


# Sync Schemas
class SyncRequest(BaseModel):
    """Options for a campaign data sync."""

    force_sync: bool = Field(
        default=False,
        description="Re-generate the full default window instead of syncing since last_sync_at",
    )


class SyncResult(BaseModel):
    """Outcome of a sync. Counts only newly inserted rows."""

    success: bool = Field(description="Whether the sync completed")
    campaigns_synced: int = Field(description="Number of campaigns inserted")
    metrics_synced: int = Field(description="Number of daily metrics rows inserted")


# Metrics Schemas
GroupBy = Literal["day", "week", "month"]


class CampaignMetricsQuery(BaseModel):
    """Filters for the flat campaign metrics listing.

    All optional filters combine with AND; omitted filters match anything.
    """

    user_id: int
    start_date: date = Field(description="Start date (inclusive)")
    end_date: date = Field(description="End date (inclusive)")
    campaign_ids: Optional[List[int]] = Field(default=None, description="Restrict to these campaigns")
    platform: Optional[AdPlatformEnum] = None
    objective: Optional[AdObjectiveEnum] = None
    group_by: Optional[GroupBy] = Field(
        default=None,
        description="Bucket rows per campaign by day (default), ISO week (Monday start) or calendar month",
    )

    @field_validator("start_date", "end_date", mode="before")
    @classmethod
    def _truncate(cls, value: Any) -> Any:
        return truncate_to_date(value)

    @model_validator(mode="after")
    def _check_order(self) -> "CampaignMetricsQuery":
        check_date_order(self.start_date, self.end_date)
        return self


class CampaignMetricsOut(BaseModel):
    """One metrics row. `id` is None for week/month buckets."""

    id: Optional[int] = None
    campaign_id: int
    date: date
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

    model_config = {"from_attributes": True}

    @field_serializer("spend", "conversion_value", "cpc", "cpm", when_used="json")
    def _decimal_to_number(self, value: Decimal) -> float:
        return float(value)


# Dashboard Schemas
class DashboardRequest(BaseModel):
    user_id: int
    platform: Optional[AdPlatformEnum] = None
    objective: Optional[AdObjectiveEnum] = None
    date_range: DateRange


class SummaryMetrics(BaseModel):
    """Scalar totals and unweighted averages over the filtered rows."""

    total_spend: Decimal = Decimal("0")
    total_impressions: int = 0
    total_clicks: int = 0
    total_conversions: int = 0
    avg_ctr: float = 0.0
    avg_cpc: Decimal = Decimal("0")
    avg_roas: float = 0.0

    @field_serializer("total_spend", "avg_cpc", when_used="json")
    def _decimal_to_number(self, value: Decimal) -> float:
        return float(value)


class PlatformBreakdownItem(BaseModel):
    platform: AdPlatformEnum
    spend: Decimal
    impressions: int
    clicks: int
    conversions: int

    @field_serializer("spend", when_used="json")
    def _decimal_to_number(self, value: Decimal) -> float:
        return float(value)


class ObjectiveBreakdownItem(BaseModel):
    """Spend per objective plus performance_score (mean ROAS of the group)."""

    objective: AdObjectiveEnum
    spend: Decimal
    performance_score: float

    @field_serializer("spend", when_used="json")
    def _decimal_to_number(self, value: Decimal) -> float:
        return float(value)


class RecentInsight(BaseModel):
    """Insight summary shown in the dashboard feed (no body text)."""

    id: int
    title: str
    insight_type: str
    confidence_score: float
    created_at: datetime

    model_config = {"from_attributes": True}


class DashboardData(BaseModel):
    summary_metrics: SummaryMetrics
    platform_breakdown: List[PlatformBreakdownItem]
    objective_breakdown: List[ObjectiveBreakdownItem]
    recent_insights: List[RecentInsight]


# Insight Schemas
class GenerateInsightRequest(BaseModel):
    """Request for a templated insight.

    `insight_type` is normally one of InsightTypeEnum; unknown values get the
    generic template.
    """

    user_id: int
    insight_type: str = Field(min_length=1, max_length=64, examples=["key_metrics"])
    platform: AdPlatformEnum
    campaign_id: Optional[int] = None
    connection_id: Optional[int] = None
    objective: Optional[AdObjectiveEnum] = None
    date_range: DateRange


class InsightOut(BaseModel):
    """Full stored insight record."""

    id: int
    user_id: int
    campaign_id: Optional[int] = None
    connection_id: Optional[int] = None
    insight_type: str
    title: str
    content: str
    recommendations: str
    confidence_score: float = Field(ge=0, le=1)
    platform: AdPlatformEnum
    objective: Optional[AdObjectiveEnum] = None
    metadata: Optional[Dict[str, Any]] = Field(default=None, validation_alias="insight_metadata")
    created_at: datetime

    model_config = {"from_attributes": True, "populate_by_name": True}
