"""
Domain Exceptions
=================

Typed failures raised by the service layer.

WHAT:
    - NotFoundError: a referenced user / connection / campaign does not exist
      (or is not owned by the requesting user).
    - StateConflictError: an entity exists but its state forbids the
      operation (e.g. syncing a connection that is not connected).

WHY:
    Services never return partial results. Every failure aborts the call and
    surfaces as an exception whose `kind` lets the HTTP layer pick a 4xx
    status. Store failures (SQLAlchemyError) are NOT wrapped; they propagate
    unchanged and map to 5xx (or 409 for integrity violations).

RELATED FILES
-------------
- adlens/services/*.py: Raise these exceptions
- adlens/main.py: Exception handlers mapping `kind` to status codes
"""

from typing import Optional, Union


class AdlensError(Exception):
    """Base exception for all domain errors.

    Allows catching every expected failure with a single except clause
    while still being able to handle specific error types.
    """

    kind = "error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        """Error body as returned by the API (`ErrorResponse` fields)."""
        return {"error": self.kind, "detail": self.message}


class NotFoundError(AdlensError):
    """Referenced entity does not exist.

    ATTRIBUTES:
        entity: Entity name ("User", "Connection", "Campaign")
        entity_id: The id that was looked up
    """

    kind = "not_found"

    def __init__(
        self,
        entity: str,
        entity_id: Union[int, str],
        message: Optional[str] = None,
    ):
        self.entity = entity
        self.entity_id = entity_id
        if message is None:
            message = f"{entity} with id {entity_id} not found"
        super().__init__(message)


class StateConflictError(AdlensError):
    """Entity state violates an operation precondition."""

    kind = "state_conflict"
