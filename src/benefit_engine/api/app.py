"""FastAPI application factory."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from benefit_engine import __version__
from benefit_engine.api.routes import (
    claims_router,
    fees_router,
    health_router,
    payments_router,
)
from benefit_engine.database import dispose_db, init_db
from benefit_engine.errors import BenefitEngineError

logger = logging.getLogger(__name__)

# Error code -> HTTP status
ERROR_STATUS: dict[str, int] = {
    "NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "INVALID_TRANSITION": status.HTTP_409_CONFLICT,
    "UNKNOWN_CATEGORY": status.HTTP_400_BAD_REQUEST,
    "INVALID_PARAMETERS": status.HTTP_422_UNPROCESSABLE_ENTITY,
    "ID_GENERATION_EXHAUSTED": status.HTTP_503_SERVICE_UNAVAILABLE,
    "NO_ELIGIBLE_MEMBERS": status.HTTP_409_CONFLICT,
    "AUTHORIZATION_DENIED": status.HTTP_403_FORBIDDEN,
    "PERSISTENCE_FAILURE": status.HTTP_500_INTERNAL_SERVER_ERROR,
}

# HTTP status -> error code for errors raised by the framework
HTTP_ERROR_CODES: dict[int, str] = {
    status.HTTP_400_BAD_REQUEST: "BAD_REQUEST",
    status.HTTP_401_UNAUTHORIZED: "UNAUTHENTICATED",
    status.HTTP_403_FORBIDDEN: "AUTHORIZATION_DENIED",
    status.HTTP_404_NOT_FOUND: "NOT_FOUND",
    status.HTTP_405_METHOD_NOT_ALLOWED: "METHOD_NOT_ALLOWED",
}


def error_body(code: str, message: str) -> dict:
    return {"success": False, "error": {"code": code, "message": message}}


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    init_db()
    yield
    await dispose_db()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="Benefit Engine API",
        description="Mutual-aid benefit claims, approvals, payments and fees",
        version=__version__,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(BenefitEngineError)
    async def benefit_engine_error_handler(
        request: Request, exc: BenefitEngineError
    ) -> JSONResponse:
        """Map typed service errors onto the failure envelope."""
        status_code = ERROR_STATUS.get(exc.code, status.HTTP_400_BAD_REQUEST)
        if status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        return JSONResponse(status_code=status_code, content=error_body(exc.code, exc.message))

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        """Report request schema violations in the failure envelope."""
        message = "; ".join(
            f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
            for error in exc.errors()
        )
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content=error_body("INVALID_PARAMETERS", message),
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        code = HTTP_ERROR_CODES.get(exc.status_code, "HTTP_ERROR")
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(code, str(exc.detail)),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        """Handle unexpected exceptions."""
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=error_body("INTERNAL_ERROR", "An unexpected error occurred"),
        )

    app.include_router(health_router)
    app.include_router(claims_router, prefix="/api/v1")
    app.include_router(payments_router, prefix="/api/v1")
    app.include_router(fees_router, prefix="/api/v1")

    return app


# Default app instance for uvicorn
app = create_app()
