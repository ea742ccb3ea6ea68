"""FastAPI application entrypoint.

Configures logging and CORS, includes routers, maps domain errors to status
codes and exposes a healthcheck endpoint.
"""

from datetime import datetime
import logging

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from .deps import get_settings

logging.basicConfig(
    level=get_settings().LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)
logger = logging.getLogger(__name__)

from . import schemas  # noqa: E402
from .exceptions import AdlensError, NotFoundError, StateConflictError  # noqa: E402
from .routers import users as users_router  # noqa: E402
from .routers import connections as connections_router  # noqa: E402
from .routers import metrics as metrics_router  # noqa: E402
from .routers import dashboard as dashboard_router  # noqa: E402
from .routers import insights as insights_router  # noqa: E402


def _error_response(status_code: int, kind: str, detail: str) -> JSONResponse:
    body = schemas.ErrorResponse(detail=detail, error=kind)
    return JSONResponse(status_code=status_code, content=body.model_dump())


def _domain_error_response(status_code: int, exc: AdlensError) -> JSONResponse:
    body = schemas.ErrorResponse(**exc.to_dict())
    return JSONResponse(status_code=status_code, content=body.model_dump())


def register_exception_handlers(app: FastAPI) -> None:
    """Map the domain error taxonomy to HTTP status codes.

    - NotFoundError -> 404
    - StateConflictError -> 409
    - IntegrityError (e.g. duplicate email) -> 409
    - any other store failure -> 500
    """

    @app.exception_handler(NotFoundError)
    async def not_found_handler(request: Request, exc: NotFoundError):
        return _domain_error_response(status.HTTP_404_NOT_FOUND, exc)

    @app.exception_handler(StateConflictError)
    async def state_conflict_handler(request: Request, exc: StateConflictError):
        return _domain_error_response(status.HTTP_409_CONFLICT, exc)

    @app.exception_handler(AdlensError)
    async def domain_error_handler(request: Request, exc: AdlensError):
        return _domain_error_response(status.HTTP_400_BAD_REQUEST, exc)

    @app.exception_handler(IntegrityError)
    async def integrity_error_handler(request: Request, exc: IntegrityError):
        logger.warning("[API] Constraint violation on %s %s", request.method, request.url.path)
        return _error_response(
            status.HTTP_409_CONFLICT,
            "integrity_error",
            "Request conflicts with an existing record",
        )

    @app.exception_handler(SQLAlchemyError)
    async def store_error_handler(request: Request, exc: SQLAlchemyError):
        logger.error("[API] Store failure on %s %s: %s", request.method, request.url.path, exc)
        return _error_response(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "store_error",
            "Internal storage error",
        )


def create_app() -> FastAPI:
    app = FastAPI(
        title="adlens API",
        description="""
        adlens is a multi-platform advertising analytics dashboard.

        This API provides endpoints for:
        - User signup
        - Ad account connections (Meta, Google, TikTok, Shopee, Tokopedia, Lazada, Snack Video)
        - Campaign data sync
        - Campaign metrics listing and dashboard rollups
        - Templated campaign insights

        ## Data Model

        - **Users**: People using the dashboard
        - **Connections**: Links to advertising platform accounts
        - **Campaigns**: Campaigns synced from a connection
        - **Campaign metrics**: One row of performance per campaign per day
        - **Insights**: Templated analysis text stored per user

        Every endpoint takes `user_id` explicitly.
        """,
        version="1.0.0",
        servers=[
            {
                "url": "http://localhost:8000",
                "description": "Development server"
            },
        ]
    )

    settings = get_settings()

    logger.info("[CORS] Allowed origins: %s", settings.cors_origin_list)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origin_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    app.include_router(users_router.router)
    app.include_router(connections_router.router)
    app.include_router(metrics_router.router)
    app.include_router(dashboard_router.router)
    app.include_router(insights_router.router)

    @app.get(
        "/health",
        response_model=schemas.HealthResponse,
        tags=["Health"],
        summary="Health check",
        description="""
        Simple health check endpoint to verify the API is running.

        Does not touch the database; suitable for load balancer checks.
        """
    )
    def health():
        return schemas.HealthResponse(status="ok", timestamp=datetime.utcnow())

    return app


app = create_app()
