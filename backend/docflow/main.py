"""FastAPI Application Entry Point

This is the FastAPI application that serves the consolidation pipeline:
1. LangGraph consolidation workflow initialization
2. REST API routes for processing, classification, merge and escalation
3. CORS middleware for frontend integration
4. Lifespan context manager for resource management

Endpoints:
- POST /api/documents/process
- POST /api/documents/classify
- POST /api/tasks/merge
- POST /api/tasks/escalate
- GET  /api/health
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import logging
import os
import sys
from typing import AsyncGenerator
from dotenv import load_dotenv

# Load environment variables early
load_dotenv()
from .api import routes
from .config import get_llm_model

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)]
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """FastAPI lifespan context manager.

    Startup:
        1. Create the consolidation graph
        2. Store it in app.state for route access

    Shutdown:
        Nothing to release; the graph runs without a persistent checkpointer.
    """
    logger.info("=" * 80)
    logger.info("Starting DocFlow Backend")
    logger.info("=" * 80)

    try:
        from .graph.graph import create_consolidation_graph

        app.state.graph = create_consolidation_graph()
        logger.info("Consolidation workflow initialized successfully")
    except Exception as e:
        logger.error(f"Failed to initialize consolidation workflow: {e}", exc_info=True)
        app.state.graph = None

    if not hasattr(app.state, "collaborators"):
        app.state.collaborators = {}

    logger.info("Environment Configuration:")
    logger.info(f"  - DOCFLOW_LLM_MODEL: {get_llm_model()}")
    logger.info(f"  - DOCFLOW_PROJECT_ROOT: {os.getenv('DOCFLOW_PROJECT_ROOT', 'NOT SET')}")
    logger.info(f"  - OPENAI_API_KEY: {'***' if os.getenv('OPENAI_API_KEY') else 'NOT SET'}")

    yield

    logger.info("Shutting down DocFlow Backend")


# ============================================================================
# FastAPI Application
# ============================================================================

app = FastAPI(
    title="DocFlow API",
    description=(
        "Turns related project documents into one de-duplicated, "
        "priority-ranked task backlog."
    ),
    version="0.1.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)


# ============================================================================
# CORS Middleware
# ============================================================================

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:5173",
        "http://localhost:3000",
        "http://127.0.0.1:5173",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ============================================================================
# Route Registration
# ============================================================================

app.include_router(routes.router)


@app.get("/", tags=["health"])
async def root():
    """Root endpoint - simple service information."""
    return {
        "service": "DocFlow API",
        "status": "running",
        "version": "0.1.0",
        "docs": "/docs",
        "health": "/api/health"
    }


if __name__ == "__main__":
    """
    Development server entry point.

    Run with:
        python -m docflow.main

    Or use uvicorn directly:
        uvicorn docflow.main:app --reload --port 8000
    """
    import uvicorn

    logger.info("Starting development server with uvicorn...")
    uvicorn.run(
        "docflow.main:app",
        host="127.0.0.1",
        port=8000,
        reload=True,
        log_level="info"
    )
