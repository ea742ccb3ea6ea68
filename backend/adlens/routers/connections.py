"""Ad account connection management endpoints."""

import logging

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from .. import schemas
from ..database import get_db
from ..services import connection_service
from ..services.sync_service import sync_campaign_data

logger = logging.getLogger(__name__)


router = APIRouter(
    prefix="/connections",
    tags=["Connections"],
    responses={
        404: {"model": schemas.ErrorResponse, "description": "Not Found"},
        500: {"model": schemas.ErrorResponse, "description": "Internal Server Error"},
    }
)


@router.post(
    "",
    response_model=schemas.ConnectionOut,
    status_code=status.HTTP_201_CREATED,
    summary="Link an ad account",
    description="""
    Link an ad account on one of the supported platforms to a user.

    New connections start in `pending` status with no sync history.
    """
)
def create_connection(
    payload: schemas.ConnectionCreate,
    db: Session = Depends(get_db),
):
    return connection_service.connect_ad_account(db, payload)


@router.get(
    "",
    response_model=schemas.ConnectionListResponse,
    summary="List a user's connections",
)
def list_connections(
    user_id: int = Query(..., description="Owning user"),
    db: Session = Depends(get_db),
):
    connections = connection_service.get_user_connections(db, user_id)
    return schemas.ConnectionListResponse(
        connections=connections,
        total=len(connections),
    )


@router.patch(
    "/{connection_id}/status",
    response_model=schemas.ConnectionOut,
    summary="Update connection status",
    description="""
    Set the connection status and, optionally, `last_sync_at`.

    Transitions are not validated; any status may follow any other.
    """
)
def update_connection_status(
    connection_id: int,
    payload: schemas.ConnectionStatusUpdate,
    db: Session = Depends(get_db),
):
    return connection_service.update_connection_status(
        db,
        connection_id,
        payload.status,
        last_sync_at=payload.last_sync_at,
    )


@router.post(
    "/{connection_id}/sync",
    response_model=schemas.SyncResult,
    summary="Sync campaign data",
    description="""
    Pull campaigns and daily metrics for a connected account.

    Only `connected` connections can sync (409 otherwise). Counts in the
    response cover newly inserted rows only.
    """,
    responses={409: {"model": schemas.ErrorResponse, "description": "Connection not connected"}},
)
def sync_connection(
    connection_id: int,
    payload: schemas.SyncRequest = schemas.SyncRequest(),
    db: Session = Depends(get_db),
):
    logger.info("[CONNECTIONS] Sync requested for connection %s", connection_id)
    return sync_campaign_data(db, connection_id, force_sync=payload.force_sync)
