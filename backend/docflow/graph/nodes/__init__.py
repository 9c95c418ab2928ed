"""
Node Implementations for the Consolidation Graph

Available Nodes:
- process_documents_node: Hierarchy orchestrator over all document sources
- merge_duplicates_node: Duplicate detection and merge for the run's tag

Supporting engines:
- document_classifier: Regex scoring with optional LLM fallback
- document_adapters: Per-type pre-prompts, field enrichment and task counts
- priority_escalation: Rule-based priority assignment
- task_merger: Hash / semantic / LLM duplicate detection
"""

from .document_hierarchy import (
    process_documents_node,
    process_document_hierarchy,
    sort_document_sources,
    HierarchyOptions,
    GenerationOptions,
    GenerationResult,
    HierarchyResult,
    DocumentHierarchyError,
    CircularDependencyError,
    TaskConflictError,
    DocumentProcessingError,
)
from .document_classifier import (
    classify_document,
    classify_with_regex,
    calculate_regex_score,
    ClassificationResult,
    SUPPORTED_DOCUMENT_TYPES,
)
from .priority_escalation import (
    escalate_task_priority,
    escalate_all_tasks,
    escalate_after_merge,
    EscalationResult,
)
from .task_merger import (
    merge_duplicates_node,
    merge_tasks_for_tag,
    merge_tasks_in_tag,
)

__all__ = [
    # Nodes
    "process_documents_node",
    "merge_duplicates_node",
    # Hierarchy
    "process_document_hierarchy",
    "sort_document_sources",
    "HierarchyOptions",
    "GenerationOptions",
    "GenerationResult",
    "HierarchyResult",
    "DocumentHierarchyError",
    "CircularDependencyError",
    "TaskConflictError",
    "DocumentProcessingError",
    # Classifier
    "classify_document",
    "classify_with_regex",
    "calculate_regex_score",
    "ClassificationResult",
    "SUPPORTED_DOCUMENT_TYPES",
    # Priority
    "escalate_task_priority",
    "escalate_all_tasks",
    "escalate_after_merge",
    "EscalationResult",
    # Merge
    "merge_tasks_for_tag",
    "merge_tasks_in_tag",
]
