"""Main entry point for the Crypto Clarity application."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from crypto_clarity.api.v1 import (
    account_router,
    admin_router,
    expert_router,
    scan_router,
    translate_router,
)
from crypto_clarity.core.logging import configure_logging
from crypto_clarity.core.settings import settings
from crypto_clarity.db.session import create_tables
from crypto_clarity.services.errors import (
    AdminRequiredError,
    AssessmentFailedError,
    NotFoundError,
    PremiumFeatureRequiredError,
    QuotaExceededError,
    StoreUnavailableError,
)
from crypto_clarity.services.etherscan import get_etherscan_client

logger = logging.getLogger(__name__)

DESCRIPTION = "Plain-language crypto explanations and scam risk assessments"

EXPOSED_HEADERS = [
    "X-RateLimit-Limit",
    "X-RateLimit-Remaining",
    "X-RateLimit-Reset",
    "X-User-IsAdmin",
    "X-User-IsPremium",
    "X-Bonus-Prompts-Available",
    "X-Bonus-Prompts-Remaining",
    "X-Bonus-Prompts-Used-Today",
]

# Initialize FastAPI app
app = FastAPI(
    title=f"{settings.app_name} API",
    description=DESCRIPTION,
    version=settings.app_version,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
    expose_headers=EXPOSED_HEADERS,
)

# Add GZip middleware for compression
app.add_middleware(GZipMiddleware)

# Include API routers
app.include_router(translate_router, prefix="/api")
app.include_router(scan_router, prefix="/api")
app.include_router(expert_router, prefix="/api")
app.include_router(account_router, prefix="/api")
app.include_router(admin_router, prefix="/api")


def _field_name(location: tuple[int | str, ...]) -> str:
    parts = [str(part) for part in location[1:]] or [str(part) for part in location]
    return ".".join(parts)


@app.exception_handler(RequestValidationError)
async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = [
        {"field": _field_name(tuple(error.get("loc", ()))), "message": error.get("msg", "")}
        for error in exc.errors()
    ]
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"message": "Invalid request data", "errors": errors},
    )


@app.exception_handler(QuotaExceededError)
async def handle_quota_exceeded(request: Request, exc: QuotaExceededError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        content=exc.payload,
        headers=exc.headers,
    )


@app.exception_handler(PremiumFeatureRequiredError)
async def handle_premium_required(
    request: Request, exc: PremiumFeatureRequiredError
) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_403_FORBIDDEN,
        content=exc.to_payload(),
        headers=exc.headers,
    )


@app.exception_handler(AdminRequiredError)
async def handle_admin_required(request: Request, exc: AdminRequiredError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_403_FORBIDDEN,
        content={"message": str(exc)},
        headers=exc.headers,
    )


@app.exception_handler(NotFoundError)
async def handle_not_found(request: Request, exc: NotFoundError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_404_NOT_FOUND,
        content={"message": str(exc)},
        headers=exc.headers,
    )


@app.exception_handler(AssessmentFailedError)
async def handle_assessment_failed(request: Request, exc: AssessmentFailedError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"message": AssessmentFailedError.public_message},
        headers=exc.headers,
    )


@app.exception_handler(StoreUnavailableError)
async def handle_store_unavailable(request: Request, exc: StoreUnavailableError) -> JSONResponse:
    logger.error("Store unavailable on %s: %s", request.url.path, exc)
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"message": "Service temporarily unavailable. Please try again."},
        headers=exc.headers,
    )


@app.exception_handler(Exception)
async def handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s", request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"message": "Something went wrong. Please try again."},
    )


@app.on_event("startup")
async def on_startup() -> None:
    configure_logging()
    create_tables()
    logger.info("%s %s started", settings.app_name, settings.app_version)


@app.on_event("shutdown")
async def on_shutdown() -> None:
    await get_etherscan_client().close()


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint to verify the service is running."""
    return {"status": "ok"}


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint with basic information about the API."""
    return {
        "name": f"{settings.app_name} API",
        "version": settings.app_version,
        "description": DESCRIPTION,
        "docs": "/docs",
        "redoc": "/redoc",
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("crypto_clarity.main:app", host="0.0.0.0", port=8000, reload=settings.debug)
