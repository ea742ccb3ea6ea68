"""Connection lifecycle service functions.

WHAT:
    Plain CRUD over ad account connections: link an account, list a user's
    connections, update a connection's status.

WHY:
    - Routers stay thin (request parsing, status codes).
    - Status transitions are caller-driven. Nothing here enforces a state
      machine; the sync service is the only consumer that checks status.

REFERENCES:
    - adlens/routers/connections.py (calls these functions)
    - adlens/services/sync_service.py (requires status == connected)
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from adlens.exceptions import NotFoundError
from adlens.models import AdAccountConnection, ConnectionStatusEnum, User
from adlens.schemas import ConnectionCreate

logger = logging.getLogger(__name__)


def _commit(db: Session, action: str) -> None:
    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("[CONNECTIONS] Store failure while trying to %s", action)
        raise


def connect_ad_account(db: Session, payload: ConnectionCreate) -> AdAccountConnection:
    """Link a new ad account to an existing user.

    New connections always start as `pending` with no `last_sync_at`.

    Raises:
        NotFoundError: If the owning user does not exist
    """
    user = db.query(User).filter(User.id == payload.user_id).first()
    if not user:
        raise NotFoundError("User", payload.user_id)

    now = datetime.utcnow()
    connection = AdAccountConnection(
        user_id=user.id,
        platform=payload.platform,
        account_id=payload.account_id,
        account_name=payload.account_name,
        access_token=payload.access_token,
        refresh_token=payload.refresh_token,
        status=ConnectionStatusEnum.pending,
        last_sync_at=None,
        created_at=now,
        updated_at=now,
    )
    db.add(connection)
    _commit(db, "connect an ad account")
    db.refresh(connection)

    logger.info(
        "[CONNECTIONS] Linked %s account %s for user %s (connection %s)",
        connection.platform.value,
        connection.account_id,
        user.id,
        connection.id,
    )
    return connection


def get_user_connections(db: Session, user_id: int) -> List[AdAccountConnection]:
    """All connections owned by `user_id`, ordered by id. Empty for unknown users."""
    return (
        db.query(AdAccountConnection)
        .filter(AdAccountConnection.user_id == user_id)
        .order_by(AdAccountConnection.id)
        .all()
    )


def update_connection_status(
    db: Session,
    connection_id: int,
    status: ConnectionStatusEnum,
    last_sync_at: Optional[datetime] = None,
) -> AdAccountConnection:
    """Set a connection's status (and optionally `last_sync_at`).

    `updated_at` is always refreshed; every other field is left untouched.

    Raises:
        NotFoundError: If the connection does not exist (nothing is written)
    """
    connection = (
        db.query(AdAccountConnection)
        .filter(AdAccountConnection.id == connection_id)
        .first()
    )
    if not connection:
        raise NotFoundError(
            "Connection",
            connection_id,
            f"Ad account connection with id {connection_id} not found",
        )

    previous = connection.status
    connection.status = status
    if last_sync_at is not None:
        connection.last_sync_at = last_sync_at
    connection.updated_at = datetime.utcnow()

    _commit(db, f"update connection {connection_id}")
    db.refresh(connection)

    logger.info(
        "[CONNECTIONS] Connection %s status %s -> %s",
        connection_id,
        previous.value if previous else None,
        connection.status.value,
    )
    return connection
