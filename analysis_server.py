"""
analysis_server.py — HTTP boundary for the analysis pipeline.

Runs as an aiohttp web server; browsers call it directly, so every response
carries permissive CORS headers and any OPTIONS request is answered with an
empty 200.

Endpoints:
  POST /analyze-product  {"image": "<data URI or base64>", "mimeType"?: "..."}
                         → 200 analysis payload, or 500 {"error", "message"}
  GET  /latest           → last ComparisonResult as JSON (404 before the first run)
  GET  /latest?format=text → the same result as a plain-text card
  GET  /health           → plain-text health check
  OPTIONS /{anything}    → CORS preflight
"""
from __future__ import annotations

import logging
from typing import Optional

from aiohttp import web

import config
import style
from errors import AnalysisError, ConfigurationError, InputError
from pipeline import AnalysisPipeline
from result_cache import ResultCache

logger = logging.getLogger(__name__)

CORS_HEADERS = {
    "Access-Control-Allow-Origin":  "*",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
}

PIPELINE      = web.AppKey("pipeline", AnalysisPipeline)
CACHE         = web.AppKey("cache", ResultCache)
STARTUP_ERROR = web.AppKey("startup_error", ConfigurationError)


# ── Middleware ─────────────────────────────────────────────────────────────────

@web.middleware
async def cors_middleware(request: web.Request, handler) -> web.StreamResponse:
    try:
        response = await handler(request)
    except web.HTTPException as exc:
        exc.headers.update(CORS_HEADERS)
        raise
    response.headers.update(CORS_HEADERS)
    return response


# ── Request handlers ───────────────────────────────────────────────────────────

def _error_response(exc: BaseException) -> web.Response:
    return web.json_response(
        {"error": str(exc) or type(exc).__name__, "message": style.failure_message(exc)},
        status=500,
    )


async def _read_image(request: web.Request) -> tuple[object, Optional[str]]:
    try:
        body = await request.json()
    except ValueError:
        raise InputError("Request body must be JSON")
    if not isinstance(body, dict):
        raise InputError("Request body must be a JSON object")
    return body.get("image"), body.get("mimeType")


async def handle_analyze(request: web.Request) -> web.Response:
    """Run one analysis. Every failure becomes {"error"} with HTTP 500."""
    pipeline = request.app.get(PIPELINE)
    try:
        if pipeline is None:
            raise request.app.get(STARTUP_ERROR) or ConfigurationError("Pipeline is not configured")
        image, mime_type = await _read_image(request)
        report = await pipeline.analyze(image, mime_type)
    except AnalysisError as exc:
        logger.error("Analysis failed: %s", exc)
        return _error_response(exc)
    except Exception as exc:
        logger.error("Unexpected error during analysis: %s", exc, exc_info=True)
        return _error_response(exc)
    return web.json_response(report.to_response())


async def handle_options(request: web.Request) -> web.Response:
    return web.Response(text="")


async def handle_health(request: web.Request) -> web.Response:
    pipeline = request.app.get(PIPELINE)
    if pipeline is None:
        text = "OK — pipeline not configured"
    else:
        text = f"OK — provider {pipeline.provider.full_name}, scores via {pipeline.score_table.name}"
    return web.Response(text=text, content_type="text/plain")


async def handle_latest(request: web.Request) -> web.Response:
    """The most recent ComparisonResult, straight from the single-slot cache."""
    cache = request.app[CACHE]
    text  = cache.get_text()
    if text is None:
        raise web.HTTPNotFound(
            text='{"error": "No analysis has been run yet"}',
            content_type="application/json",
        )
    if request.query.get("format") == "text":
        return web.Response(text=style.comparison_card(cache.get()), content_type="text/plain")
    return web.Response(text=text, content_type="application/json")


# ── App factory ────────────────────────────────────────────────────────────────

def build_web_app(
    pipeline: Optional[AnalysisPipeline],
    cache: ResultCache,
    startup_error: Optional[ConfigurationError] = None,
) -> web.Application:
    """
    `pipeline` may be None when configuration failed at startup; the server
    still comes up and answers each analysis with the configuration error.
    """
    app = web.Application(middlewares=[cors_middleware])
    if pipeline is not None:
        app[PIPELINE] = pipeline
    if startup_error is not None:
        app[STARTUP_ERROR] = startup_error
    app[CACHE] = cache
    app.router.add_post("/analyze-product", handle_analyze)
    app.router.add_get("/latest",           handle_latest)
    app.router.add_get("/health",           handle_health)
    app.router.add_route("OPTIONS", "/{tail:.*}", handle_options)
    return app


async def start_server(
    pipeline: Optional[AnalysisPipeline],
    cache: ResultCache,
    startup_error: Optional[ConfigurationError] = None,
) -> web.AppRunner:
    """Start the web server. Returns runner so caller can shut it down cleanly."""
    app    = build_web_app(pipeline, cache, startup_error)
    runner = web.AppRunner(app, access_log=logger)
    await runner.setup()
    site = web.TCPSite(runner, config.SERVER_HOST, config.SERVER_PORT)
    await site.start()
    logger.info("🌱 Analysis server listening on %s:%d", config.SERVER_HOST, config.SERVER_PORT)
    return runner
