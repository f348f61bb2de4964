import logging
import os
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from openai import AsyncOpenAI

from routes.image_route import router as image_router
from routes.realtime_ws import router as realtime_router
from routes.slip_route import router as slip_router
from services.openai.slip_extractor import SlipExtractor
from services.realtime.change_feed import ChangeFeed
from utils.app_config import AppConfig
from utils.database_init import AsyncDatabaseInitializer

load_dotenv()  # .env values fill in anything the environment leaves unset

LOGGER = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s  %(name)-30s  %(levelname)-5s  %(message)s"


def build_openai_client() -> AsyncOpenAI:
    """Create the shared async OpenAI client, failing fast without credentials."""
    if not os.getenv("OPENAI_API_KEY"):
        raise RuntimeError("OPENAI_API_KEY environment variable is not set")
    try:
        return AsyncOpenAI()
    except Exception as exc:
        raise RuntimeError("Could not create the OpenAI async client") from exc


async def close_openai_client(client: AsyncOpenAI) -> None:
    try:
        await client.close()
    except Exception:
        LOGGER.warning("OpenAI client did not close cleanly", exc_info=True)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Startup wiring, all stored on `app.state`:
      - `config`: settings read from the environment
      - `db_initializer`: the SQLite slip store at DATABASE_DIR/slips.db
      - `change_feed`: in-process fan-out of store changes to WebSocket clients
      - `openai_client` / `slip_extractor`: the vision model client and the
        extractor that calls it
    """
    config = AppConfig.from_env()
    logging.basicConfig(level=config.log_level, format=LOG_FORMAT)
    app.state.config = config

    store = AsyncDatabaseInitializer(config.database_dir, reset_on_startup=config.reset_database_on_startup)
    await store.ensure_database()
    app.state.db_initializer = store
    app.state.change_feed = ChangeFeed()

    openai_client = build_openai_client()
    app.state.openai_client = openai_client
    app.state.slip_extractor = SlipExtractor(
        openai_client, model=config.openai_model, timeout=config.openai_timeout_seconds
    )
    LOGGER.info("Slip store ready at %s (model %s)", store.db_path, config.openai_model)

    try:
        yield
    finally:
        await close_openai_client(openai_client)


def create_app() -> FastAPI:
    app = FastAPI(title="Slip Extractor", lifespan=lifespan)

    @app.get("/health")
    async def health(request: Request):
        """Report whether the slip store and the extraction client are wired up."""
        state = request.app.state
        return {
            "ok": True,
            "db_initialized": getattr(state, "db_initializer", None) is not None,
            "extractor_available": getattr(state, "slip_extractor", None) is not None,
        }

    for router in (slip_router, image_router, realtime_router):
        app.include_router(router)

    return app


app = create_app()
