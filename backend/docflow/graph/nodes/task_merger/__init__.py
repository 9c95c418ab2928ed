"""
Task Merger Module

Detects and merges duplicate tasks generated from different source documents.

Detection Tiers:
1. Hash - identical normalized content
2. Semantic - Jaccard token overlap above a threshold
3. LLM - borderline pairs confirmed by an arbiter

Usage:
    ```python
    from docflow.graph.nodes.task_merger import merge_tasks_in_tag

    result = await merge_tasks_in_tag(tasks, similarity_threshold=0.85)
    merged = result.merged_tasks
    ```
"""

# Constants and Enums
from .constants import (
    DEFAULT_MERGE_CONFIG,
    MERGEABLE_METADATA_FIELDS,
    MergeStrategy,
)

# Data Models
from .models import (
    ArbiterVerdict,
    MergeEvent,
    MergeReport,
    MergeResult,
)

# Fingerprints and similarity
from .hashing import (
    generate_grouping_key,
    generate_task_hash,
    normalize_title,
)
from .similarity import calculate_similarity, tokenize

# Merge pipeline
from .core import (
    MergeGroupError,
    find_dependency_cycles,
    identify_duplicate_groups,
    merge_task_group,
    merge_tasks_in_tag,
    reindex_dependencies,
)

# LangGraph Node
from .node import (
    merge_duplicates_node,
    merge_tasks_for_tag,
)

__all__ = [
    # LangGraph Node (primary export)
    "merge_duplicates_node",
    "merge_tasks_for_tag",
    # Pipeline
    "merge_tasks_in_tag",
    "identify_duplicate_groups",
    "merge_task_group",
    "reindex_dependencies",
    "find_dependency_cycles",
    "MergeGroupError",
    # Fingerprints
    "generate_task_hash",
    "generate_grouping_key",
    "normalize_title",
    "calculate_similarity",
    "tokenize",
    # Data Models
    "ArbiterVerdict",
    "MergeEvent",
    "MergeReport",
    "MergeResult",
    # Constants
    "MergeStrategy",
    "DEFAULT_MERGE_CONFIG",
    "MERGEABLE_METADATA_FIELDS",
]
