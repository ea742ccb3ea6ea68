"""Insight generation and listing endpoints."""

from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from .. import schemas
from ..database import get_db
from ..models import AdPlatformEnum
from ..services import insight_service


router = APIRouter(
    prefix="/insights",
    tags=["Insights"],
    responses={
        404: {"model": schemas.ErrorResponse, "description": "Not Found"},
        500: {"model": schemas.ErrorResponse, "description": "Internal Server Error"},
    }
)


@router.post(
    "",
    response_model=schemas.InsightOut,
    status_code=status.HTTP_201_CREATED,
    summary="Generate an insight",
    description="""
    Store a templated insight for the user. The template is chosen by
    `insight_type`; unknown types get a generic template.

    A supplied campaign_id / connection_id must belong to the user.
    """
)
def generate_insight(
    request: schemas.GenerateInsightRequest,
    db: Session = Depends(get_db),
):
    return insight_service.generate_ai_insight(db, request)


@router.get(
    "",
    response_model=List[schemas.InsightOut],
    summary="List a user's insights",
    description="""
    Most recent first, then by confidence score, then by id. `offset` and
    `limit` page through the result; `start_date` / `end_date` restrict
    `created_at` to whole calendar days (inclusive).
    """
)
def list_insights(
    user_id: int = Query(..., description="Owning user"),
    limit: Optional[int] = Query(None, ge=1, le=1000, description="Maximum number of insights"),
    offset: int = Query(0, ge=0, description="Number of insights to skip"),
    insight_type: Optional[str] = Query(None, description="Filter by insight type"),
    platform: Optional[AdPlatformEnum] = Query(None, description="Filter by platform"),
    start_date: Optional[date] = Query(None, description="Created on or after this date"),
    end_date: Optional[date] = Query(None, description="Created on or before this date"),
    db: Session = Depends(get_db),
):
    return insight_service.get_user_insights(
        db,
        user_id,
        limit=limit,
        insight_type=insight_type,
        platform=platform,
        offset=offset,
        start_date=start_date,
        end_date=end_date,
    )
