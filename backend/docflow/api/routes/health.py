"""
Health Check API Routes

Endpoints:
- GET /api/health: Service health check
"""

from fastapi import APIRouter, Request, status
from typing import Dict, Any
from datetime import datetime, timezone
import logging

from ...config import get_llm_model

# Configure logging
logger = logging.getLogger(__name__)

# Initialize router
router = APIRouter(prefix="/api", tags=["health"])


@router.get(
    "/health",
    status_code=status.HTTP_200_OK,
    responses={
        200: {"description": "Service is healthy"},
    }
)
async def health_check(request: Request) -> Dict[str, Any]:
    """
    Health check endpoint for monitoring service availability.

    Returns:
        Health status with component checks
    """
    graph_healthy = getattr(request.app.state, "graph", None) is not None

    return {
        "status": "healthy" if graph_healthy else "degraded",
        "components": {
            "langgraph": "ok" if graph_healthy else "error",
        },
        "model": get_llm_model(),
        "timestamp": datetime.now(timezone.utc).isoformat()
    }
