"""Campaign metrics listing endpoint."""

from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from .. import schemas
from ..database import get_db
from ..services.metrics_service import get_campaign_metrics


router = APIRouter(
    prefix="/metrics",
    tags=["Metrics"],
    responses={
        500: {"model": schemas.ErrorResponse, "description": "Internal Server Error"},
    }
)


@router.post(
    "/campaigns",
    response_model=List[schemas.CampaignMetricsOut],
    summary="List campaign metrics",
    description="""
    Daily metrics rows for the user's campaigns, ordered by date then campaign.

    Filters (all optional, combined with AND): campaign_ids, platform, objective.
    `group_by=week` buckets by ISO week (Monday), `group_by=month` by calendar
    month; bucketed rows re-sum counts and spend and average the rates.
    """
)
def list_campaign_metrics(
    query: schemas.CampaignMetricsQuery,
    db: Session = Depends(get_db),
):
    return get_campaign_metrics(db, query)
