"""FastAPI app factory for the critique proxy."""

from __future__ import annotations

import logging

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.exception_handlers import http_exception_handler
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.config import settings
from app.dependencies import limiter

load_dotenv()

logging.basicConfig(
    level=getattr(logging, settings.critique_log_level.upper(), logging.INFO),
    format="%(asctime)s %(name)s %(levelname)s %(message)s",
)

logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    app = FastAPI(
        title="Design Critique",
        description="Design critique proxy that forwards selection analyses to a language model",
        version=settings.service_version,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=False,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
        max_age=86400,
    )

    app.state.limiter = limiter

    @app.exception_handler(RateLimitExceeded)
    async def _rate_limited(request: Request, exc: RateLimitExceeded):
        logger.warning("Rate limit hit by %s", request.client.host if request.client else "unknown")
        return JSONResponse(
            status_code=429,
            content={
                "error": "Too many requests from this IP, please try again later.",
                "retryAfter": settings.rate_limit_window,
            },
        )

    @app.exception_handler(StarletteHTTPException)
    async def _not_found(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 404:
            return JSONResponse(
                status_code=404,
                content={"error": "Endpoint not found", "code": "NOT_FOUND"},
            )
        return await http_exception_handler(request, exc)

    from app.api.router import api_router

    app.include_router(api_router)

    return app


app = create_app()
