"""User signup endpoint."""

import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from .. import schemas
from ..database import get_db
from ..services.user_service import create_user

logger = logging.getLogger(__name__)


router = APIRouter(
    prefix="/users",
    tags=["Users"],
    responses={
        409: {"model": schemas.ErrorResponse, "description": "Email already registered"},
        500: {"model": schemas.ErrorResponse, "description": "Internal Server Error"},
    }
)


@router.post(
    "",
    response_model=schemas.UserOut,
    status_code=status.HTTP_201_CREATED,
    summary="Create a user",
    description="""
    Register a dashboard user. Emails are unique; a duplicate email returns 409.
    """
)
def create_user_endpoint(
    payload: schemas.UserCreate,
    db: Session = Depends(get_db),
):
    return create_user(db, payload)
