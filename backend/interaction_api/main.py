import asyncio
import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from interaction_api.api.routes.health import router as health_router
from interaction_api.api.routes.party_interaction import router as party_interaction_router

from interaction_api.core.config import get_settings
from interaction_api.core.errors import register_exception_handlers
from interaction_api.db.base import create_all
from interaction_api.db.session import engine, ping

settings = get_settings()

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


allowed_origins = settings.cors_origins_list


def _fatal_loop_error(loop: asyncio.AbstractEventLoop, context: dict) -> None:
    # an exception nobody awaited leaves the process in an unknown state: stop
    exc = context.get("exception")
    logger.critical("[app] unhandled async error: %s", context.get("message"), exc_info=exc)
    os._exit(1)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Reach the database and create tables before serving; any failure aborts startup."""
    if settings.FATAL_ON_ASYNC_ERROR:
        asyncio.get_running_loop().set_exception_handler(_fatal_loop_error)
    db_url = engine.url.render_as_string(hide_password=True)
    try:
        ping(engine)
        create_all(engine)
    except Exception:
        logger.critical("[DB] startup failed for %s", db_url)
        raise
    logger.info("[DB] Using: %s", db_url)
    logger.info("[CORS] allow_origins = %s", allowed_origins)

    yield

    engine.dispose()


app = FastAPI(title=settings.PROJECT_NAME, version="1.0", lifespan=lifespan)

# before CORS: later middleware is outermost, so 500s still get CORS headers
register_exception_handlers(app)

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=False,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS", "HEAD"],
    allow_headers=["*"],
)

app.include_router(health_router, tags=["health"])
app.include_router(party_interaction_router, prefix="/api")
