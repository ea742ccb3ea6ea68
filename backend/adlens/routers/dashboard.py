"""Dashboard rollup endpoint."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from .. import schemas
from ..database import get_db
from ..services.dashboard_service import get_dashboard_data


router = APIRouter(
    prefix="/dashboard",
    tags=["Dashboard"],
    responses={
        500: {"model": schemas.ErrorResponse, "description": "Internal Server Error"},
    }
)


@router.post(
    "",
    response_model=schemas.DashboardData,
    summary="Get dashboard data",
    description="""
    Summary totals, per-platform and per-objective breakdowns, and the five
    most recent insights for one user, date range and optional
    platform / objective filter.

    Averages are unweighted means of the daily values. An empty range returns
    zeros, never an error.
    """
)
def dashboard(
    request: schemas.DashboardRequest,
    db: Session = Depends(get_db),
):
    return get_dashboard_data(db, request)
