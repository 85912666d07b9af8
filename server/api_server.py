"""FastAPI application entry point for the vault index bridge."""

import os
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from shared.logging.logging_setup import setup_logging
from shared.helper.HelperConfig import HelperConfig
from shared.clients.corpus.CorpusClientManager import CorpusClientManager
from shared.clients.embed.EmbedClientManager import EmbedClientManager
from shared.clients.store.StoreClientManager import StoreClientManager
from services.vault_index.IndexService import IndexService
from server.routers.IndexRouter import router as index_router
from server.routers.WebhookRouter import router as webhook_router
from server.routers.QueryRouter import router as query_router

logging = setup_logging()
app_version = os.getenv("APP_VERSION", "unknown")


def build_index_service(helper_config: HelperConfig) -> IndexService:
    """Create the clients selected by EMBED_ENGINE, STORE_ENGINE and CORPUS_ENGINE and the service over them."""
    return IndexService(
        helper_config=helper_config,
        embed_client=EmbedClientManager(helper_config=helper_config).get_client(),
        store_client=StoreClientManager(helper_config=helper_config).get_client(),
        corpus_client=CorpusClientManager(helper_config=helper_config).get_client(),
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # when the app starts
    app.state.logging = logging
    app.state.helper_config = HelperConfig(logger=logging)

    logging.info("Booting index service...")
    index_service = build_index_service(app.state.helper_config)
    app.state.index_service = index_service
    await index_service.wait_for_initialization()
    if index_service.is_ready():
        if app.state.helper_config.get_bool_val("INDEX_WATCH_ENABLED", default=True):
            await index_service.start_live_updates()
    else:
        logging.warning("Index service is unavailable. Index routes will report 'unavailable'.")

    # while the app is running...
    yield

    # when the app shuts down, persist and close all clients
    logging.info("Shutting down, closing index service...")
    await index_service.close()


app = FastAPI(
    title="vault_index_bridge",
    description=(
        "Incrementally maintained local vector index over a directory of text documents. "
        "Control indexing via /index, push document changes via POST /webhook/document "
        "and search via POST /query."
    ),
    version=app_version,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(index_router)
app.include_router(webhook_router)
app.include_router(query_router)


if __name__ == "__main__":
    import uvicorn

    logging.info(
        "Starting vault_index_bridge API Server v%s from root dir: %s on port 8000...",
        app_version,
        os.environ.get("ROOT_DIR", "unknown"),
    )
    uvicorn.run(app, host="0.0.0.0", port=8000)
