"""
main.py — Single entry point.

Builds the analysis pipeline from the environment and serves it over HTTP
in one asyncio event loop — no threads, no subprocesses.

Architecture:
  asyncio event loop
    └── aiohttp web server  (POST /analyze-product, GET /latest, GET /health)
         └── AnalysisPipeline
               ├── provider       (groq | openai | anthropic)
               ├── blob store     (Supabase Storage, skipped when STORAGE_ENABLED=false)
               └── score table    (Supabase PostgREST | local SQLite seeded from SCORES_CSV)
"""
import asyncio
import logging
import signal
import sys

import config

# Log file lives in the same data/ directory as the SQLite score table so that
# a single volume mount captures both.
config.DATA_DIR.mkdir(parents=True, exist_ok=True)

logging.basicConfig(
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    level=logging.INFO,
    handlers=[
        logging.StreamHandler(sys.stdout),
        logging.FileHandler(str(config.DATA_DIR / "analysis.log"), encoding="utf-8"),
    ],
)
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)
logging.getLogger("aiohttp.access").setLevel(logging.WARNING)

logger = logging.getLogger(__name__)


async def run() -> None:
    from analysis_server import start_server
    from errors import ConfigurationError
    from pipeline import AnalysisPipeline
    from result_cache import ResultCache

    cache = ResultCache()

    # ── Pipeline bootstrap ─────────────────────────────────────────────────────
    # A configuration problem does not stop the server: every analysis request
    # answers with the error instead.
    pipeline, startup_error = None, None
    try:
        pipeline = await AnalysisPipeline.create(
            config.PipelineConfig.from_env(),
            cache=cache,
            seed_csv=config.SCORES_CSV,
        )
    except ConfigurationError as exc:
        startup_error = exc
        logger.error("Pipeline not configured: %s", exc)

    runner = await start_server(pipeline, cache, startup_error)

    stop_event = asyncio.Event()

    def _stop(*_):
        logger.info("Shutdown signal received.")
        stop_event.set()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, _stop)
        except (NotImplementedError, RuntimeError):
            # Windows doesn't support add_signal_handler for all signals
            pass

    logger.info("✅ Analysis service is running. Press Ctrl+C to stop.")
    try:
        await stop_event.wait()
    except (KeyboardInterrupt, SystemExit):
        pass

    logger.info("Shutting down…")
    await runner.cleanup()
    logger.info("Goodbye.")


def main() -> None:
    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
