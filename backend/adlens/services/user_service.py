"""User service functions.

WHAT:
    Creates dashboard users (signup).

WHY:
    Duplicate emails are NOT pre-checked. The unique constraint on
    `users.email` raises IntegrityError, which propagates to the caller.
"""

from __future__ import annotations

import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from adlens.models import User
from adlens.schemas import UserCreate

logger = logging.getLogger(__name__)


def create_user(db: Session, payload: UserCreate) -> User:
    """Insert a new user and return the stored row."""
    user = User(
        email=payload.email,
        name=payload.name,
        company_name=payload.company_name,
    )
    db.add(user)
    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("[USERS] Failed to create user %s", payload.email)
        raise
    db.refresh(user)

    logger.info("[USERS] Created user %s (%s)", user.id, user.email)
    return user
