"""FastAPI application for network deployment.

This is the main entry point for the deployment API server.
"""

import logging
import os
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api.dependencies import (
    close_controller_client,
    close_store,
    init_controller_client,
    init_store,
)
from .api.router import router

load_dotenv()

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager.

    Handles startup and shutdown events:
    - Startup: Initialize the assignment store and the controller client
    - Shutdown: Close them in reverse order
    """
    logger.info("Starting Network Deployment API...")

    try:
        await init_store()
        logger.info("Assignment store initialized")
    except Exception as e:
        logger.error(f"Failed to initialize assignment store: {e}")
        raise

    try:
        await init_controller_client()
    except Exception as e:
        logger.warning(f"Failed to initialize controller client: {e}")
        # Don't fail startup - stored assignments can still be read

    yield

    logger.info("Shutting down Network Deployment API...")

    await close_controller_client()
    await close_store()
    logger.info("Assignment store closed")


app = FastAPI(
    title="WLAN Network Deployment API",
    description="""
    API for deploying wireless networks onto controller device profiles.

    ## Features

    - **Preview**: List the profiles present at a set of sites
    - **Dry Run**: Project which profiles a deployment would target
    - **Deploy**: Create the network, assign it to profiles and sync them
    - **Reconcile**: Compare persisted intent with the controller
    - **Remediation**: Plan fixes for detected drift

    ## Deployment modes

    - `ALL_PROFILES_AT_SITE`: every profile at the site
    - `INCLUDE_ONLY`: only the listed profiles
    - `EXCLUDE_SOME`: every profile except the listed ones
    """,
    version="1.0.0",
    lifespan=lifespan,
)

cors_origins = os.getenv("CORS_ORIGINS", "http://localhost:3000,http://localhost:5173").split(",")

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "Accept", "X-API-Key"],
)

app.include_router(router)


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "name": "WLAN Network Deployment API",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/api/deployments/health",
    }


@app.get("/health")
async def health():
    """Global health check."""
    return {"status": "healthy"}


# Entry point for running with uvicorn
if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "src.wlan.deployment.app:app",
        host="0.0.0.0",
        port=int(os.getenv("PORT", "8000")),
        reload=True,
    )
