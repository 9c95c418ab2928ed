"""
Priority Escalation Rule Engine

This module assigns or adjusts task priority from document provenance and
task content signals. Every rule that fires contributes a human-readable
fragment to the task's escalationReason so that the final priority can be
audited.

Rule Order:
    1. Base priority from sourceDocumentType
    2. +1 each: testStrategy, performanceGoal, reliabilityTarget, security keywords
    3. At-least-medium: UX_SPEC presentation tasks, infra tasks with performance goals
    4. Exactly high: epic-level tasks
    5. Demotions to low: tech/SDD tasks without escalation, very short
       descriptions, maintenance tasks without dependencies

Key Features:
- Pure functions, the input task is never mutated
- Batch escalation preserves object identity for unchanged tasks
- Post-merge escalation that never lowers priority
"""

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)


# ============================================================================
# ENUMS AND CONSTANTS
# ============================================================================


class Priority(str, Enum):
    """Task priority levels."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


PRIORITY_ORDER = {
    "low": 1,
    "medium": 2,
    "high": 3,
}

PRIORITY_LEVELS = ["low", "medium", "high"]

BASE_PRIORITY_BY_DOCUMENT_TYPE = {
    "PRD": "high",
    "PRODUCT_REQUIREMENTS": "high",
    "UX_SPEC": "medium",
    "DESIGN_SPEC": "medium",
    "UI_SPEC": "medium",
    "SDD": "low",
    "SOFTWARE_DESIGN": "low",
    "TECH_SPEC": "low",
    "ARCHITECTURE": "low",
    "INFRA_SPEC": "low",
    "DESIGN_SYSTEM": "medium",
    "OTHER": "medium",
    "UNKNOWN": "medium",
}

# Types whose tasks are demoted when nothing escalated them
DEMOTABLE_DOCUMENT_TYPES = {"TECH_SPEC", "SDD"}

SECURITY_PATTERN = re.compile(
    r"security|auth|encryption|token|login|signin|authentication|authorization",
    re.IGNORECASE,
)
MAINTENANCE_PATTERN = re.compile(
    r"refactor|documentation|doc|readme|comment",
    re.IGNORECASE,
)

SHORT_DESCRIPTION_LENGTH = 20
SUBSTANTIAL_TEST_STRATEGY_LENGTH = 20

INVALID_TASK_REASON = "Invalid task input - using default priority"


# ============================================================================
# DATA CLASSES
# ============================================================================


@dataclass
class EscalationResult:
    """Outcome of running the rule engine over one task."""

    priority: str
    escalation_reason: str

    def to_dict(self) -> Dict[str, str]:
        return {
            "priority": self.priority,
            "escalationReason": self.escalation_reason,
        }


# ============================================================================
# HELPER FUNCTIONS
# ============================================================================


def _priority_level(priority: Optional[str]) -> int:
    """Map a priority string to its level, unknown values count as medium."""
    return PRIORITY_ORDER.get(priority or "", PRIORITY_ORDER["medium"])


def _has_text(value: Any) -> bool:
    return isinstance(value, str) and len(value.strip()) > 0


def _document_types(task: Dict[str, Any]) -> List[str]:
    """
    Return the task's source document types as a list.

    Merged tasks carry an array of types, single-source tasks a plain string.
    """
    value = task.get("sourceDocumentType")
    if isinstance(value, (list, tuple, set)):
        types = [str(v) for v in value if v]
        return types or ["UNKNOWN"]
    return [value] if value else ["UNKNOWN"]


def _base_priority(document_types: List[str]) -> str:
    """Highest base priority among the task's source document types."""
    levels = [
        _priority_level(BASE_PRIORITY_BY_DOCUMENT_TYPE.get(doc_type, "medium"))
        for doc_type in document_types
    ]
    return PRIORITY_LEVELS[max(levels) - 1]


def _task_text(task: Dict[str, Any]) -> str:
    return f"{task.get('title') or ''} {task.get('description') or ''}".lower()


# ============================================================================
# RULE ENGINE
# ============================================================================


def escalate_task_priority(task: Any) -> EscalationResult:
    """
    Compute a task's priority from its provenance and content.

    Args:
        task: Task dictionary (camelCase task fields)

    Returns:
        EscalationResult with the computed priority and the joined list of
        reasons for every rule that fired

    Example:
        ```python
        result = escalate_task_priority(
            {"sourceDocumentType": "PRD", "description": "Do it"}
        )
        assert result.priority == "low"
        ```
    """
    if not isinstance(task, dict):
        logger.warning("[Priority] Invalid task input, using default priority")
        return EscalationResult(priority="medium", escalation_reason=INVALID_TASK_REASON)

    document_types = _document_types(task)
    type_label = document_types[0] if len(document_types) == 1 else ", ".join(document_types)
    base_priority = _base_priority(document_types)
    base_level = PRIORITY_ORDER[base_priority]
    level = base_level

    reasons = [f"Base priority '{base_priority}' from document type '{type_label}'"]

    layer = task.get("layer")
    has_performance_goal = _has_text(task.get("performanceGoal"))
    text = _task_text(task)

    # Escalations, +1 each
    test_strategy = task.get("testStrategy")
    if isinstance(test_strategy, str) and len(test_strategy.strip()) > SUBSTANTIAL_TEST_STRATEGY_LENGTH:
        level = min(level + 1, 3)
        reasons.append("testStrategy present - indicates testable/production item")

    if has_performance_goal:
        level = min(level + 1, 3)
        reasons.append("performanceGoal present - critical or SLO task")

    if _has_text(task.get("reliabilityTarget")):
        level = min(level + 1, 3)
        reasons.append("reliabilityTarget present - critical or SLO task")

    if text.strip() and SECURITY_PATTERN.search(text):
        level = min(level + 1, 3)
        reasons.append("Security/authentication task - critical for system safety")

    # Floors
    if "UX_SPEC" in document_types and layer == "presentation":
        level = max(level, PRIORITY_ORDER["medium"])
        reasons.append("UX_SPEC + presentation layer - user-facing UI task")

    if layer == "infra" and has_performance_goal:
        level = max(level, PRIORITY_ORDER["medium"])
        reasons.append("Infrastructure task with performance requirements")

    # Epic-level tasks
    title = task.get("title") or ""
    if _has_text(task.get("epicId")) and "epic" in title.lower():
        level = PRIORITY_ORDER["high"]
        reasons.append("Epic-level task from PRD - core feature")

    # Demotions
    if (
        all(doc_type in DEMOTABLE_DOCUMENT_TYPES for doc_type in document_types)
        and not has_performance_goal
        and level == base_level
    ):
        level = PRIORITY_ORDER["low"]
        reasons.append("Tech/SDD task without performance goals - demoted to low")

    description = task.get("description")
    if isinstance(description, str) and description and len(description.strip()) < SHORT_DESCRIPTION_LENGTH:
        level = PRIORITY_ORDER["low"]
        reasons.append("Very short description - possibly incomplete task")

    if text.strip() and MAINTENANCE_PATTERN.search(text) and not task.get("dependencies"):
        level = PRIORITY_ORDER["low"]
        reasons.append("Refactor/documentation task without dependencies - maintenance level")

    return EscalationResult(
        priority=PRIORITY_LEVELS[level - 1],
        escalation_reason="; ".join(reasons),
    )


def escalate_all_tasks(tasks: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """
    Run the rule engine over a task list.

    Only tasks whose computed priority differs from their stated priority are
    replaced by an updated copy. Unchanged tasks are returned as the very same
    objects, so callers can detect changes with an identity check.

    Args:
        tasks: List of task dictionaries

    Returns:
        New list with escalated copies where the priority changed
    """
    if not isinstance(tasks, list):
        return tasks

    escalated = []
    for task in tasks:
        if not isinstance(task, dict):
            escalated.append(task)
            continue

        result = escalate_task_priority(task)
        if result.priority != (task.get("priority") or "medium"):
            escalated.append({
                **task,
                "priority": result.priority,
                "escalationReason": result.escalation_reason,
            })
        else:
            escalated.append(task)

    return escalated


def get_max_priority(priority_a: Optional[str], priority_b: Optional[str]) -> str:
    """Return the higher of two priorities, unknown values count as medium."""
    return PRIORITY_LEVELS[max(_priority_level(priority_a), _priority_level(priority_b)) - 1]


def is_priority_higher(priority_a: Optional[str], priority_b: Optional[str]) -> bool:
    """True when priority_a ranks strictly above priority_b."""
    return _priority_level(priority_a) > _priority_level(priority_b)


def escalate_after_merge(merged_task: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """
    Apply the rule engine to a freshly merged task, only ever raising priority.

    Args:
        merged_task: Consolidated task produced by the merge engine

    Returns:
        An updated copy when the rules produce a strictly higher priority,
        otherwise the same task object unchanged
    """
    if not merged_task:
        return merged_task

    result = escalate_task_priority(merged_task)
    current = merged_task.get("priority") or "medium"

    if is_priority_higher(result.priority, current):
        return {
            **merged_task,
            "priority": result.priority,
            "escalationReason": result.escalation_reason,
        }

    return merged_task
