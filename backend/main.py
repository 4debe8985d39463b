"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI

from api import institutions, plaid, sync, transactions
from config import settings
from database import init_db
from logging_config import setup_logging

setup_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create missing tables on startup."""
    init_db()
    yield


app = FastAPI(
    title="Expense Tracker",
    description="Personal transaction tracking via Plaid",
    version="0.1.0",
    lifespan=lifespan,
)

# Include API routers
app.include_router(plaid.router)
app.include_router(sync.router)
app.include_router(transactions.router)
app.include_router(institutions.router)


@app.get("/health")
def health_check():
    """Health check endpoint."""
    return {"status": "ok"}


def run() -> None:
    """Serve the app, over HTTPS when a certificate and key are configured."""
    ssl_kwargs = {}
    if settings.TLS_CERT_FILE and settings.TLS_KEY_FILE:
        ssl_kwargs = {
            "ssl_certfile": settings.TLS_CERT_FILE,
            "ssl_keyfile": settings.TLS_KEY_FILE,
        }
    else:
        logger.warning("TLS_CERT_FILE/TLS_KEY_FILE not set; serving plain HTTP")

    logger.info("Server starting on %s:%d", settings.SERVER_HOST, settings.SERVER_PORT)
    uvicorn.run(app, host=settings.SERVER_HOST, port=settings.SERVER_PORT, **ssl_kwargs)


if __name__ == "__main__":
    run()
