"""FastAPI application entrypoint: lifespan, routers and static assets."""

import logging
import os
import time
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from streamrelay.api.proxy import router as proxy_router
from streamrelay.api.routes import router as api_router
from streamrelay.config import _PROJECT_ROOT, _resolve_env_file, settings
from streamrelay.relay.upstream import close_client

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger("main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown logic."""
    env_path = _resolve_env_file()
    logger.info(
        "Starting stream relay (env_file=%s, exists=%s)",
        env_path, env_path.exists(),
    )
    settings.warn_unbounded_timeouts()
    app.state.start_time = time.time()

    logger.info("Server ready on %s:%d", settings.host, settings.port)
    yield

    logger.info("Shutting down")
    await close_client()
    logger.info("Shutdown complete")


app = FastAPI(
    title="Stream Relay",
    version="0.1.0",
    lifespan=lifespan,
    docs_url="/api/docs",
    redoc_url=None,
)

# CORS preflight; relay responses also set Access-Control-Allow-Origin themselves.
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["GET", "HEAD", "OPTIONS"],
    allow_headers=["Range", "Content-Type"],
    expose_headers=["Content-Range", "Accept-Ranges", "Content-Length"],
)

app.include_router(api_router)
app.include_router(proxy_router)

# Built front-end (production mode).  In development the front-end dev
# server runs separately and this directory usually doesn't exist.
static_dir = settings.static_dir
if not os.path.isabs(static_dir):
    static_dir = str(_PROJECT_ROOT / static_dir)
if os.path.isdir(static_dir):
    app.mount("/", StaticFiles(directory=static_dir, html=True), name="static")


def run():
    uvicorn.run(
        "streamrelay.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
