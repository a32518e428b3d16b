"""Mane Core - FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from mane import __version__
from mane.api import services_store
from mane.api.routes import agent, documents
from mane.api.schemas import HealthResponse
from mane.config import API_PREFIX, HOST, PORT
from mane.utils.logging import LOG_FORMAT, logger

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format=LOG_FORMAT,
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle."""
    logger.info(f"Mane Core v{__version__} starting...")
    logger.info(f"Server running at http://{HOST}:{PORT}")
    yield
    # Cleanup on shutdown
    if services_store.services:
        await services_store.services.shutdown()
    logger.info("Mane Core stopped")


app = FastAPI(
    title="Mane Core",
    description="Local AI file agent: propose, confirm and undo file operations",
    version=__version__,
    lifespan=lifespan,
)

# The file executor runs as a separate local client
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register routes
app.include_router(agent.router, prefix=API_PREFIX)
app.include_router(documents.router, prefix=API_PREFIX)


@app.get(f"{API_PREFIX}/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Health check endpoint."""
    return HealthResponse(status="ok", version=__version__)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=HOST, port=PORT)
