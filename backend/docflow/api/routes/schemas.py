"""
Shared Pydantic Models (Request/Response Schemas) for API Routes

This module contains all Pydantic models used across the API endpoints,
organized by domain.
"""

from pydantic import BaseModel, Field
from typing import Dict, Any, Optional, List


# ============================================================================
# Common/Shared Schemas
# ============================================================================

class ErrorResponse(BaseModel):
    """Response schema for error cases."""
    status: str = "error"
    error: str
    details: Optional[str] = None


# ============================================================================
# Document Schemas
# ============================================================================

class ProcessDocumentsRequest(BaseModel):
    """
    Request schema for a consolidation run.

    Attributes:
        project_root: Project directory holding .docflow/config.json
            (defaults to DOCFLOW_PROJECT_ROOT)
        tag: Target tag (defaults to the configured defaultTag)
        force: Replace existing tasks in the tag
        append: Add to existing tasks in the tag
        research: Ask the generator for research-backed tasks
        escalate: Run priority escalation after generation
        merge: Merge duplicates after generation
        fail_fast: Override the configured failFast setting
        similarity_threshold: Jaccard threshold for the merge step
        use_llm: Let the merge step consult the arbiter
    """
    project_root: Optional[str] = Field(None, description="Project root directory")
    tag: Optional[str] = Field(None, min_length=1, description="Target tag")
    force: bool = False
    append: bool = False
    research: bool = False
    escalate: bool = False
    merge: bool = False
    fail_fast: Optional[bool] = None
    similarity_threshold: Optional[float] = Field(None, ge=0.0, le=1.0)
    use_llm: bool = False


class ProcessDocumentsResponse(BaseModel):
    """Response schema for a completed consolidation run."""
    status: str = "success"
    tag: str
    task_count: int
    tasks: List[Dict[str, Any]]
    processed_sources: List[str]
    skipped_sources: List[str]
    failed_sources: List[str]
    escalated_count: int = 0
    merge_report: Optional[Dict[str, Any]] = None
    message: str


class ClassifyRequest(BaseModel):
    """Request schema for document type classification."""
    text: str = Field(..., description="Raw document text")
    use_llm_fallback: bool = False
    threshold: float = Field(0.65, ge=0.0, le=1.0)


class ClassifyResponse(BaseModel):
    """Response schema for document type classification."""
    type: str
    confidence: float
    source: str
    reasoning: Optional[str] = None


# ============================================================================
# Task Schemas
# ============================================================================

class MergeTasksRequest(BaseModel):
    """
    Request schema for merging duplicate tasks in a stored tag.

    Attributes:
        project_root: Project directory (defaults to DOCFLOW_PROJECT_ROOT)
        tag: Tag to merge (defaults to the configured defaultTag)
        similarity_threshold: Jaccard threshold for the semantic tier
        use_llm: Consult the arbiter for borderline pairs
        escalate: Post-merge priority escalation
        dry_run: Compute without writing
        output_file: Alternative tasks file to write the result to
    """
    project_root: Optional[str] = None
    tag: Optional[str] = Field(None, min_length=1)
    similarity_threshold: Optional[float] = Field(None, ge=0.0, le=1.0)
    use_llm: bool = False
    escalate: bool = False
    dry_run: bool = False
    output_file: Optional[str] = None


class MergeTasksResponse(BaseModel):
    """Response schema for a merge run."""
    status: str = "success"
    tag: str
    original_count: int
    final_count: int
    merged_count: int
    merge_report: Dict[str, Any]
    telemetry: Dict[str, Any]
    dry_run: bool
    written: bool


class EscalateRequest(BaseModel):
    """Request schema for priority escalation of a task list."""
    tasks: List[Dict[str, Any]] = Field(..., description="Tasks to escalate")
    after_merge: bool = Field(False, description="Only ever raise priorities")


class EscalateResponse(BaseModel):
    """Response schema for priority escalation."""
    status: str = "success"
    tasks: List[Dict[str, Any]]
    changed_count: int
