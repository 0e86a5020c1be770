# ─────────────────────────────────────────────────────────────────
# main.py — Application Entry Point
#
# Wires the pieces together once per process:
#   settings → one Store, one AggregateNotifier
#   store + notifier → the HTTP routes and the sweep loop
#
# Run with:  uvicorn main:app    or    condemn
# ─────────────────────────────────────────────────────────────────

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI

from config import Settings, configure_logging
from notifiers import Notifier, build_notifier
from routes.switches import router as switches_router
from stores import Store, build_store
from timer import sweep_forever

logger = logging.getLogger("main")

VERSION = "1.0.0"


def create_app(
    settings: Optional[Settings] = None,
    store: Optional[Store] = None,
    notifier: Optional[Notifier] = None,
) -> FastAPI:
    """
    Builds the FastAPI app.

    Settings are read when the app starts, not when it is created,
    so importing this module never touches the environment. A store
    or notifier passed in here is used instead of the configured one.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        cfg = settings if settings is not None else Settings()
        configure_logging(cfg.log_level)

        app.state.store = store if store is not None else build_store(cfg)
        app.state.notifier = notifier if notifier is not None else build_notifier(cfg)

        await app.state.store.init()

        sweeper = asyncio.create_task(
            sweep_forever(app.state.store, app.state.notifier, cfg.sweep_interval)
        )
        logger.info(f"Condemn {VERSION} ready, store={type(app.state.store).__name__}")

        try:
            yield
        finally:
            sweeper.cancel()
            try:
                await sweeper
            except asyncio.CancelledError:
                pass
            await app.state.notifier.drain()
            await app.state.store.close()
            logger.info("Condemn stopped")

    app = FastAPI(
        title="Condemn",
        description="Dead man's switch service: alerts when a check-in misses its deadline",
        version=VERSION,
        lifespan=lifespan,
        # Every other path is a switch name
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.include_router(switches_router)
    return app


app = create_app()


def run():
    """Console entry point: serve on the configured LISTEN address."""
    settings = Settings()
    configure_logging(settings.log_level)
    logger.info(f"Listening on {settings.listen}")
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port)


if __name__ == "__main__":
    run()
