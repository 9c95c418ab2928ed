"""
Task API Routes

Endpoints:
- POST /api/tasks/merge: Merge duplicate tasks in a stored tag
- POST /api/tasks/escalate: Apply the priority rules to a task list
"""

from fastapi import APIRouter, HTTPException, Request, status
import logging

from ...config import get_default_project_root, load_project_config, tasks_path
from ...graph.nodes import escalate_after_merge, escalate_all_tasks, merge_tasks_for_tag
from ...services.task_store import TaskStore
from .schemas import (
    ErrorResponse,
    EscalateRequest,
    EscalateResponse,
    MergeTasksRequest,
    MergeTasksResponse,
)

# Configure logging
logger = logging.getLogger(__name__)

# Initialize router
router = APIRouter(prefix="/api", tags=["tasks"])


# ============================================================================
# Merge Endpoint
# ============================================================================

@router.post(
    "/tasks/merge",
    response_model=MergeTasksResponse,
    status_code=status.HTTP_200_OK,
    responses={
        200: {"description": "Merge completed"},
        500: {"model": ErrorResponse, "description": "Internal server error"},
    }
)
async def merge_tasks(
    request_data: MergeTasksRequest,
    request: Request
) -> MergeTasksResponse:
    """
    Merge duplicate tasks of one tag in the project's task store.

    Args:
        request_data: Merge options
        request: FastAPI request object (collaborators live in app.state)

    Returns:
        MergeTasksResponse with the merge report
    """
    try:
        project_root = request_data.project_root or get_default_project_root()
        tag = request_data.tag or load_project_config(project_root).global_settings.default_tag
        store = TaskStore(tasks_path(project_root))

        arbiter = None
        if request_data.use_llm:
            arbiter = (getattr(request.app.state, "collaborators", None) or {}).get("arbiter")
            if arbiter is None:
                from ...agents.merge_arbiter_agent import MergeArbiterAgent
                arbiter = MergeArbiterAgent()

        outcome = await merge_tasks_for_tag(
            store,
            tag,
            similarity_threshold=request_data.similarity_threshold,
            use_llm=request_data.use_llm,
            escalate=request_data.escalate,
            dry_run=request_data.dry_run,
            output_file=request_data.output_file,
            arbiter=arbiter,
        )

        logger.info(
            f"Merged tag '{tag}': {outcome['originalCount']} -> {outcome['finalCount']}"
        )

        return MergeTasksResponse(
            tag=outcome["tag"],
            original_count=outcome["originalCount"],
            final_count=outcome["finalCount"],
            merged_count=outcome["mergedCount"],
            merge_report=outcome["mergeReport"],
            telemetry=outcome["telemetry"],
            dry_run=outcome["dryRun"],
            written=outcome["written"],
        )

    except Exception as e:
        logger.error(f"Failed to merge tasks: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to merge tasks: {str(e)}"
        )


# ============================================================================
# Escalation Endpoint
# ============================================================================

@router.post(
    "/tasks/escalate",
    response_model=EscalateResponse,
    status_code=status.HTTP_200_OK,
)
async def escalate_tasks(request_data: EscalateRequest) -> EscalateResponse:
    """Apply the priority rule engine to the given tasks."""
    if request_data.after_merge:
        escalated = [escalate_after_merge(task) for task in request_data.tasks]
    else:
        escalated = escalate_all_tasks(request_data.tasks)

    changed = sum(1 for before, after in zip(request_data.tasks, escalated) if before is not after)
    return EscalateResponse(tasks=escalated, changed_count=changed)
