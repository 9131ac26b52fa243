"""FastAPI entry point for the presentation API."""

from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

import os
import asyncio
import logging
import uuid
from datetime import datetime, timezone
from time import perf_counter
from typing import Any, Dict

from app.Core.config import get_settings
from app.features.presentations.endpoints import router as presentations_router
from app.jobs.generation_worker import run_poller

logging.basicConfig(level=logging.DEBUG if get_settings().debug else logging.INFO)

app = FastAPI(title="Presentation API")
_settings = get_settings()
_START_TIME = datetime.now(timezone.utc)
logger = logging.getLogger("api")


# ------------------------
# CORS Setup
# ------------------------
_allow_origins = _settings.allow_origins
app.add_middleware(
    CORSMiddleware,
    allow_origins=_allow_origins,
    # Credentials are only allowed with an explicit origin list
    allow_credentials=_allow_origins != ["*"],
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
    max_age=86400,
)


# ------------------------
# Custom Middlewares
# ------------------------
@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    incoming = request.headers.get("X-Request-Id") or request.headers.get("X-Request-ID")
    req_id = incoming or str(uuid.uuid4())
    request.state.request_id = req_id
    req_logger = logging.getLogger("request")
    req_logger.info("request.start", extra={"request_id": req_id, "path": request.url.path, "method": request.method})
    t0 = perf_counter()
    status_code = 500
    try:
        response = await call_next(request)
        status_code = response.status_code
        response.headers["X-Request-Id"] = req_id
        return response
    finally:
        req_logger.info(
            "request.end %s %s %dms %s",
            request.method,
            request.url.path,
            int((perf_counter() - t0) * 1000),
            status_code,
            extra={"request_id": req_id, "path": request.url.path, "status_code": status_code},
        )


# ------------------------
# Error envelope: {"error": message}
# ------------------------
@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    message = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
    return JSONResponse(status_code=exc.status_code, content={"error": message}, headers=getattr(exc, "headers", None))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    first = errors[0] if errors else {}
    if first.get("type") == "json_invalid":
        message = "Invalid JSON in request body"
    elif first.get("type") == "missing" and tuple(first.get("loc") or ()) == ("body",):
        message = "Request body is required"
    else:
        location = ".".join(str(part) for part in (first.get("loc") or ()) if part != "body")
        message = f"Invalid request: {location + ': ' if location else ''}{first.get('msg', 'validation failed')}"
    return JSONResponse(status_code=400, content={"error": message})


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    request_id = getattr(request.state, "request_id", None)
    logger.exception(
        "Unhandled error on %s %s request_id=%s",
        request.method,
        request.url.path,
        request_id,
    )
    # Rendered outside the request-id middleware, so the header is set here
    headers = {"X-Request-Id": request_id} if request_id else None
    return JSONResponse(status_code=500, content={"error": "Internal server error"}, headers=headers)


# ------------------------
# Routers
# ------------------------
app.include_router(presentations_router)


# ------------------------
# Meta endpoints
# ------------------------
@app.get("/health", tags=["meta"], summary="Liveness probe")
async def health() -> Dict[str, Any]:
    now = datetime.now(timezone.utc)
    return {
        "status": "ok",
        "time_utc": now.isoformat(),
        "uptime_seconds": round((now - _START_TIME).total_seconds(), 2),
        "version": os.getenv("APP_VERSION", "dev"),
        "components": {
            "table": _settings.table_name,
            "queue": "configured" if _settings.queue_enabled else "missing-config",
            "notifications": "configured" if _settings.websocket_api_endpoint else "missing-config",
        },
    }


# ------------------------
# Background Tasks
# ------------------------
@app.on_event("startup")
async def _start_background_tasks():
    if not (_settings.run_generation_worker and _settings.queue_enabled):
        return
    try:
        asyncio.create_task(run_poller())
    except Exception:
        logging.getLogger("generation_worker").exception("Failed to start background generation worker")
