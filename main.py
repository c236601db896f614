"""
ClearLens — FastAPI Backend
All pipeline logic lives in clearlens/. This module is the HTTP boundary:
parse, run the pipeline, map every failure to a safe JSON error.
"""

import time
import traceback
from datetime import datetime, timezone
from functools import lru_cache

from fastapi import FastAPI, Request, Depends
from fastapi.responses import JSONResponse

from clearlens.api_exceptions import (
    ClearLensAPIError, ConfigurationError, InternalServerError, UpstreamError,
)
from clearlens.api_models import ErrorResponse, HealthCheckResponse, InsightRequest, InsightResponse
from clearlens.config import get_settings
from clearlens.db import SupabaseMemoryStore
from clearlens.llm_client import OllamaCompletionClient
from clearlens.pipeline import InsightPipeline
from clearlens.rate_limiter import RateLimiter
from clearlens.session_memory import JsonFileMemoryStore
from clearlens.structured_logging import logger, setup_json_logging

app = FastAPI(title="ClearLens")


@lru_cache(maxsize=1)
def get_pipeline() -> InsightPipeline:
    settings = get_settings()
    if settings.use_supabase:
        store = SupabaseMemoryStore(settings.supabase_url, settings.supabase_key)
    else:
        store = JsonFileMemoryStore(settings.memory_dir)
    return InsightPipeline(
        settings=settings,
        completion=OllamaCompletionClient(settings),
        memory_store=store,
        rate_limiter=RateLimiter(
            limit=settings.rate_limit_max_requests,
            window_seconds=settings.rate_limit_window_seconds,
        ),
    )


@app.on_event("startup")
async def startup():
    setup_json_logging(get_settings().log_file)


@app.on_event("shutdown")
async def shutdown():
    if get_pipeline.cache_info().currsize:
        get_pipeline().memory_updater.shutdown()


# ── error mapping ─────────────────────────────────────────────────────────────

def _error_response(exc: ClearLensAPIError) -> JSONResponse:
    if isinstance(exc, UpstreamError):
        logger.error("Completion failed", upstream_detail=exc.detail)
    elif isinstance(exc, ConfigurationError):
        logger.error("Server misconfigured", missing=exc.missing)
    return exc.to_response()


@app.exception_handler(ClearLensAPIError)
async def clearlens_error_handler(request: Request, exc: ClearLensAPIError):
    return _error_response(exc)


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.error("Unhandled error", exc_info=traceback.format_exc(), error=repr(exc))
    return InternalServerError().to_response()


# ══════════════════════════════════════════════
# INSIGHT API
# ══════════════════════════════════════════════

@app.post(
    "/api/insight",
    response_model=InsightResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Missing or invalid question or userId"},
        429: {"model": ErrorResponse, "description": "Rate limit exceeded"},
        500: {"model": ErrorResponse, "description": "Failed to generate insight"},
    },
)
async def insight_ep(request: Request, pipeline: InsightPipeline = Depends(get_pipeline)):
    started = time.perf_counter()
    logger.log_request("POST", "/api/insight")

    try:
        try:
            body = await request.json()
        except ValueError:
            body = {}

        req = InsightRequest.from_body(body)
        logger.request_context = {**logger.request_context, "user_id": req.user_id}

        result = await pipeline.run(req)

        response = InsightResponse(insight=result.insight)
        if pipeline.settings.debug_enabled:
            response.debug_metrics = result.debug_metrics()
            response.debug_signals = result.debug_signals()

    except ClearLensAPIError as exc:
        logger.log_response(exc.status_code, (time.perf_counter() - started) * 1000,
                            error=exc.error_code)
        return _error_response(exc)
    except Exception as exc:
        logger.error("Unhandled insight failure", exc_info=traceback.format_exc(), error=repr(exc))
        err = InternalServerError()
        logger.log_response(err.status_code, (time.perf_counter() - started) * 1000,
                            error=err.error_code)
        return err.to_response()

    logger.log_response(200, (time.perf_counter() - started) * 1000)
    return JSONResponse(response.to_payload())


@app.get("/health")
async def health():
    payload = HealthCheckResponse(timestamp=datetime.now(timezone.utc).isoformat())
    return JSONResponse(payload.model_dump())
