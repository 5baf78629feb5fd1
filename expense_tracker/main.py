import logging
import sys
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker
from starlette.exceptions import HTTPException as StarletteHTTPException

from expense_tracker.core.errors import ApiError, ServerError
from expense_tracker.core.settings import Settings, settings
from expense_tracker.db import connect_database, create_session_factory
from expense_tracker.routers.analytics import router as analytics_router
from expense_tracker.routers.transactions import router as transactions_router
from expense_tracker.schemas.common import make_error_response

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Storage first; the listener only starts accepting once this succeeds
    if app.state.session_factory is None:
        try:
            app.state.engine = connect_database(app.state.settings.DATABASE_URL)
        except SQLAlchemyError as e:
            logger.error(f"Database connection error: {e}")
            raise
        app.state.session_factory = create_session_factory(app.state.engine)
    yield
    if app.state.engine is not None:
        app.state.engine.dispose()
        app.state.engine = None
        app.state.session_factory = None


def _field_name(loc) -> str:
    parts = [str(part) for part in loc if part not in ("body", "query", "path")]
    return ".".join(parts) or "request"


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(ApiError)
    async def api_error_handler(request: Request, exc: ApiError):
        logger.warning(f"{request.method} {request.url.path} -> {exc.code}: {exc.message}")
        return JSONResponse(
            status_code=exc.status_code,
            content=make_error_response(code=exc.code, message=exc.message, details=exc.details),
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        details = [
            {"field": _field_name(err.get("loc", ())), "message": err.get("msg", "Invalid value")}
            for err in exc.errors()
        ]
        return JSONResponse(
            status_code=400,
            content=make_error_response(code="VALIDATION_ERROR", message="Validation failed", details=details),
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        # Unknown path or unsupported method on a known path: both are unmatched routes
        if exc.status_code in (404, 405):
            return JSONResponse(
                status_code=404,
                content=make_error_response(code="NOT_FOUND", message="Route not found", details={}),
            )
        return JSONResponse(
            status_code=exc.status_code,
            content=make_error_response(code="HTTP_ERROR", message=str(exc.detail), details={}),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception(f"Unhandled error on {request.method} {request.url.path}")
        error = ServerError(details={} if app.state.settings.is_production else str(exc))
        return JSONResponse(
            status_code=error.status_code,
            content=make_error_response(code=error.code, message=error.message, details=error.details),
        )


def create_app(
    session_factory: Optional[sessionmaker] = None,
    app_settings: Settings = settings,
    engine: Optional[Engine] = None,
) -> FastAPI:
    app = FastAPI(
        title="Expense Tracker API",
        description="Personal income/expense transactions with summary and category analytics",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.settings = app_settings
    app.state.session_factory = session_factory
    # Disposed by the lifespan on shutdown
    app.state.engine = engine

    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.allowed_origins,
        allow_origin_regex=app_settings.CORS_ALLOW_ORIGIN_REGEX,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "X-Requested-With"],
    )

    register_exception_handlers(app)

    app.include_router(transactions_router)
    app.include_router(analytics_router)

    @app.get("/", tags=["Health Check"])
    async def root():
        return {"message": "Expense Tracker API Server is running!"}

    @app.get("/healthz", tags=["Health Check"])
    async def health_check():
        return {"status": "ok"}

    return app


app = create_app()


def run() -> None:
    import uvicorn

    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        engine = connect_database(settings.DATABASE_URL)
    except SQLAlchemyError as e:
        logger.error(f"Database connection error: {e}")
        sys.exit(1)

    server_app = create_app(session_factory=create_session_factory(engine), engine=engine)
    logger.info(f"Starting server on port {settings.PORT}")
    uvicorn.run(server_app, host=settings.HOST, port=settings.PORT)


if __name__ == "__main__":
    run()
