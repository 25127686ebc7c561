# src/civicreport/api/app.py
"""
FastAPI application wiring.

This file creates the `FastAPI` instance, installs CORS and maps the domain
error taxonomy onto HTTP status codes. Business logic lives in
`civicreport.store` and `civicreport.proximity`.
"""

from __future__ import annotations

import logging
import os

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.middleware.cors import CORSMiddleware

from civicreport.core.logging import configure_logging
from civicreport.domain.errors import NotFoundError, PersistenceError, ValidationError

from .routes import router

configure_logging()

logger = logging.getLogger(__name__)

app = FastAPI(title="CivicReport API", version="0.1.0")

# CORS (dev-friendly): allow local frontends to call this API.
# Configure via env:
# - CIVICREPORT_CORS_ORIGINS="http://localhost:8081,http://127.0.0.1:8081"
# - CIVICREPORT_CORS_ALLOW_LOCAL=0 to disable the default localhost allowance
cors_origins = [s.strip() for s in os.getenv("CIVICREPORT_CORS_ORIGINS", "").split(",") if s.strip()]
cors_allow_local = os.getenv("CIVICREPORT_CORS_ALLOW_LOCAL", "1").strip().lower() in {"1", "true", "yes", "y"}
cors_origin_regex = r"^https?://(localhost|127\.0\.0\.1)(:\d+)?$" if cors_allow_local and not cors_origins else ""
if cors_origins or cors_origin_regex:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_origin_regex=cors_origin_regex or None,
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )


@app.exception_handler(ValidationError)
async def _validation_error(_: Request, exc: ValidationError) -> JSONResponse:
    return JSONResponse(status_code=422, content={"detail": str(exc)})


@app.exception_handler(NotFoundError)
async def _not_found(_: Request, exc: NotFoundError) -> JSONResponse:
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(PersistenceError)
async def _persistence_error(_: Request, exc: PersistenceError) -> JSONResponse:
    logger.warning("Persistence failure: %s", exc)
    return JSONResponse(status_code=503, content={"detail": "Storage unavailable; the change was not saved."})


app.include_router(router)
