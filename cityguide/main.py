from __future__ import annotations

import logging
import time
from datetime import datetime

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from cityguide.core.config import settings
from cityguide.core.errors import register_exception_handlers
from cityguide.core.logging_config import configure_logging
from cityguide.db.base import Base
from cityguide.db.session import engine

import cityguide.models

from cityguide.routers import admin, auth, favorites, my_places, places, reviews, submissions, users

configure_logging(log_dir=settings.log_dir, level=settings.log_level)
logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    app = FastAPI(title="CityGuide API", version="1.0.0")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.on_event("startup")
    def on_startup() -> None:
        Base.metadata.create_all(bind=engine)
        logger.info("DB ready")

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start = time.time()
        try:
            response = await call_next(request)
        except Exception:
            logger.exception("Unhandled error on %s %s", request.method, request.url.path)
            return JSONResponse(status_code=500, content={"error": "internal_error", "detail": "Internal server error"})
        duration_ms = int((time.time() - start) * 1000)
        logger.info("%s %s -> %s (%sms)", request.method, request.url.path, response.status_code, duration_ms)
        return response

    register_exception_handlers(app)

    @app.get("/health", tags=["health"])
    def health() -> dict:
        return {"status": "ok", "timestamp": datetime.utcnow().isoformat()}

    app.include_router(auth.router)
    app.include_router(users.router)
    app.include_router(places.router)
    app.include_router(reviews.router)
    app.include_router(favorites.router)
    app.include_router(submissions.router)
    app.include_router(my_places.router)
    app.include_router(admin.router)

    return app


app = create_app()
