"""
Document API Routes

Endpoints:
- POST /api/documents/process: Run the consolidation workflow for a project
- POST /api/documents/classify: Classify a document's type
"""

from fastapi import APIRouter, HTTPException, Request, status
from typing import Any, Dict
import logging

from ...config import get_default_project_root
from ...graph.nodes import (
    CircularDependencyError,
    DocumentProcessingError,
    TaskConflictError,
    classify_document,
)
from .schemas import (
    ClassifyRequest,
    ClassifyResponse,
    ErrorResponse,
    ProcessDocumentsRequest,
    ProcessDocumentsResponse,
)

# Configure logging
logger = logging.getLogger(__name__)

# Initialize router
router = APIRouter(prefix="/api", tags=["documents"])


def _collaborators(request: Request) -> Dict[str, Any]:
    return dict(getattr(request.app.state, "collaborators", None) or {})


# ============================================================================
# Consolidation Endpoint
# ============================================================================

@router.post(
    "/documents/process",
    response_model=ProcessDocumentsResponse,
    status_code=status.HTTP_200_OK,
    responses={
        200: {"description": "Documents processed"},
        409: {"model": ErrorResponse, "description": "Tag already has tasks"},
        422: {"model": ErrorResponse, "description": "Circular document hierarchy"},
        500: {"model": ErrorResponse, "description": "Document processing failed"},
    }
)
async def process_documents(
    request_data: ProcessDocumentsRequest,
    request: Request
) -> ProcessDocumentsResponse:
    """
    Run the consolidation workflow (generate, escalate, merge) for a project.

    Args:
        request_data: Run options
        request: FastAPI request object (provides access to app.state.graph)

    Returns:
        ProcessDocumentsResponse with the resulting tasks and per-source outcome

    Raises:
        HTTPException: 409 on a tag conflict, 422 on a hierarchy cycle,
            500 on a document failure or missing workflow engine
    """
    try:
        graph = request.app.state.graph
        if graph is None:
            logger.error("Consolidation graph not initialized in app state")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Workflow engine not initialized"
            )

        project_root = request_data.project_root or get_default_project_root()
        logger.info(f"Processing documents in {project_root} (tag={request_data.tag})")

        initial_state = {
            "messages": [],
            "project_root": project_root,
            "tag": request_data.tag,
            "force": request_data.force,
            "append": request_data.append,
            "research": request_data.research,
            "escalate": request_data.escalate,
            "merge": request_data.merge,
            "fail_fast": request_data.fail_fast,
            "merge_options": {
                "similarity_threshold": request_data.similarity_threshold,
                "use_llm": request_data.use_llm,
            },
        }

        result = await graph.ainvoke(initial_state, {"configurable": _collaborators(request)})

        tasks = result.get("tasks", [])
        summary = result["messages"][-1].content if result.get("messages") else ""

        return ProcessDocumentsResponse(
            tag=result.get("tag") or request_data.tag or "master",
            task_count=len(tasks),
            tasks=tasks,
            processed_sources=result.get("processed_sources", []),
            skipped_sources=result.get("skipped_sources", []),
            failed_sources=result.get("failed_sources", []),
            escalated_count=result.get("escalated_count", 0),
            merge_report=result.get("merge_report"),
            message=summary,
        )

    except HTTPException:
        raise

    except TaskConflictError as e:
        logger.warning(f"Tag conflict: {e}")
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))

    except CircularDependencyError as e:
        logger.warning(f"Invalid document hierarchy: {e}")
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))

    except DocumentProcessingError as e:
        logger.error(f"Document {e.source_id} failed: {e}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))

    except Exception as e:
        logger.error(f"Failed to process documents: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to process documents: {str(e)}"
        )


# ============================================================================
# Classification Endpoint
# ============================================================================

@router.post(
    "/documents/classify",
    response_model=ClassifyResponse,
    status_code=status.HTTP_200_OK,
)
async def classify(
    request_data: ClassifyRequest,
    request: Request
) -> ClassifyResponse:
    """
    Classify raw document text.

    Never fails on bad input: empty text classifies as OTHER.
    """
    classifier_agent = None
    if request_data.use_llm_fallback:
        classifier_agent = _collaborators(request).get("classifier_agent")
        if classifier_agent is None:
            from ...agents.classifier_agent import DocumentClassifierAgent
            classifier_agent = DocumentClassifierAgent()

    result = await classify_document(
        request_data.text,
        use_llm_fallback=request_data.use_llm_fallback,
        threshold=request_data.threshold,
        llm_classifier=classifier_agent,
    )
    return ClassifyResponse(**result.to_dict())
