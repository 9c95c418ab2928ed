"""
Task Merger Core - Duplicate Detection and Consolidation

Collapses near-identical tasks that were generated from different source
documents into a single record.

Detection Tiers (applied per candidate group, in order):
1. Hash - identical normalized content, merged unconditionally
2. Semantic - Jaccard token overlap at or above the similarity threshold
3. LLM - borderline overlap confirmed by an external arbiter (optional)

The lowest id of every merged group survives. Dependencies pointing at a
merged-away id are rewritten to the survivor once all groups are processed.
"""

import copy
import logging
from typing import Any, Dict, Iterable, List, Optional

from pydantic import ValidationError

from ..priority_escalation import escalate_after_merge, get_max_priority
from .constants import (
    DEFAULT_MERGE_CONFIG,
    DESCRIPTION_SEPARATOR,
    MERGEABLE_METADATA_FIELDS,
    PROVENANCE_FIELDS,
    MergeStrategy,
)
from .hashing import generate_grouping_key, generate_task_hash
from .models import ArbiterVerdict, MergeEvent, MergeReport, MergeResult
from .similarity import calculate_similarity

logger = logging.getLogger(__name__)


LLM_FAILURE_VERDICT = {
    "shouldMerge": False,
    "reasoning": "LLM analysis failed, defaulting to no merge",
    "confidence": 0.0,
}


class MergeGroupError(ValueError):
    """Raised when a merge is requested for fewer than two tasks."""


# ============================================================================
# HELPER FUNCTIONS
# ============================================================================


def _ordered_union(values: Iterable[Any]) -> List[Any]:
    """Deduplicate while keeping first-seen order."""
    return list(dict.fromkeys(values))


def _flatten_field(tasks: List[Dict[str, Any]], name: str) -> List[Any]:
    """Collect a field across tasks, expanding array values and skipping blanks."""
    values = []
    for task in tasks:
        value = task.get(name)
        if isinstance(value, (list, tuple, set)):
            values.extend(v for v in value if v not in (None, ""))
        elif value not in (None, ""):
            values.append(value)
    return _ordered_union(values)


def _collapse(values: List[Any]) -> Any:
    """Serialize a set as a scalar when it has exactly one element."""
    return values[0] if len(values) == 1 else list(values)


def _append_note(task: Dict[str, Any], note: str, separator: str) -> None:
    existing = task.get("estimationNote")
    task["estimationNote"] = f"{existing}{separator}{note}" if existing else note


def identify_duplicate_groups(tasks: List[Dict[str, Any]]) -> List[List[Dict[str, Any]]]:
    """
    Bucket tasks by grouping key and keep buckets with a merge candidate.

    Args:
        tasks: Flat task list for one tag

    Returns:
        Groups of two or more tasks sharing a grouping key, each group in
        ascending id order
    """
    buckets: Dict[str, List[Dict[str, Any]]] = {}
    for task in tasks:
        buckets.setdefault(generate_grouping_key(task), []).append(task)

    return [
        sorted(group, key=lambda t: t["id"])
        for group in buckets.values()
        if len(group) > 1
    ]


def merge_task_group(group: List[Dict[str, Any]], escalate: bool = False) -> Dict[str, Any]:
    """
    Consolidate a group of duplicate tasks into one record.

    The lowest id survives. Provenance and flat metadata fields become
    deduplicated unions (scalar when singleton), dependencies are unioned,
    subtasks concatenated, and priority is the maximum across the group.

    Args:
        group: Two or more task dictionaries
        escalate: Run the priority rule engine on the result, applying it only
            when it raises priority

    Returns:
        New consolidated task dictionary

    Raises:
        MergeGroupError: If the group has fewer than two tasks
    """
    if not isinstance(group, list) or len(group) < 2:
        raise MergeGroupError("Task group must contain at least 2 tasks to merge")

    ordered = sorted(group, key=lambda t: t["id"])
    primary = ordered[0]
    merged = copy.deepcopy(primary)

    absorbed = list(primary.get("mergedFrom") or [])
    for task in ordered[1:]:
        absorbed.append(task["id"])
        absorbed.extend(task.get("mergedFrom") or [])
    merged["mergedFrom"] = sorted(set(absorbed))

    for name in PROVENANCE_FIELDS:
        values = _flatten_field(ordered, name)
        if values:
            merged[name] = _collapse(values)

    primary_priority = primary.get("priority") or "medium"
    max_priority = primary_priority
    for task in ordered[1:]:
        max_priority = get_max_priority(max_priority, task.get("priority") or "medium")
    if max_priority != primary_priority:
        merged["priority"] = max_priority
        _append_note(merged, f"Priority upgraded to '{max_priority}' due to task merge.", " ")

    for name in MERGEABLE_METADATA_FIELDS:
        values = _flatten_field(ordered, name)
        if values:
            merged[name] = _collapse(values)

    merged["dependencies"] = _ordered_union(
        dep for task in ordered for dep in (task.get("dependencies") or [])
    )
    merged["subtasks"] = [
        copy.deepcopy(subtask) for task in ordered for subtask in (task.get("subtasks") or [])
    ]

    descriptions = _ordered_union(
        task["description"].strip()
        for task in ordered
        if isinstance(task.get("description"), str) and task["description"].strip()
    )
    if len(descriptions) > 1:
        merged["description"] = DESCRIPTION_SEPARATOR.join(descriptions)

    if escalate:
        escalated = escalate_after_merge(merged)
        if escalated is not merged:
            _append_note(
                escalated,
                f"Priority escalated to '{escalated['priority']}' after merge "
                f"({escalated['escalationReason']})",
                "; ",
            )
            merged = escalated

    return merged


def reindex_dependencies(
    tasks: List[Dict[str, Any]],
    merged_id_map: Dict[int, int],
) -> List[Dict[str, Any]]:
    """
    Rewrite dependencies that point at merged-away tasks.

    Chains (a merged into b, b merged into c) resolve to the final survivor.
    Duplicates and self-references are dropped afterwards.

    Args:
        tasks: Surviving tasks
        merged_id_map: Removed id -> surviving id

    Returns:
        New task list with rewritten dependency lists
    """

    def resolve(task_id: int) -> int:
        seen = set()
        while task_id in merged_id_map and task_id not in seen:
            seen.add(task_id)
            task_id = merged_id_map[task_id]
        return task_id

    reindexed = []
    for task in tasks:
        updated = dict(task)
        dependencies = _ordered_union(resolve(dep) for dep in (task.get("dependencies") or []))
        updated["dependencies"] = [dep for dep in dependencies if dep != task["id"]]
        reindexed.append(updated)
    return reindexed


def find_dependency_cycles(tasks: List[Dict[str, Any]]) -> List[List[int]]:
    """
    Find dependency cycles among the given tasks.

    Dependencies on ids outside the list are ignored. Each cycle is reported
    once, as the path of ids that closes back on its first element.
    """
    graph = {task["id"]: list(task.get("dependencies") or []) for task in tasks}
    state: Dict[int, str] = {}
    stack: List[int] = []
    cycles: List[List[int]] = []

    def visit(node: int) -> None:
        state[node] = "visiting"
        stack.append(node)
        for dep in graph.get(node, []):
            if dep not in graph:
                continue
            if state.get(dep) == "visiting":
                cycles.append(stack[stack.index(dep):] + [dep])
            elif dep not in state:
                visit(dep)
        stack.pop()
        state[node] = "visited"

    for task_id in graph:
        if task_id not in state:
            visit(task_id)

    return cycles


async def _ask_arbiter(arbiter: Any, task_a: Dict[str, Any], task_b: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """
    Ask the arbiter about one pair.

    Returns None when the call fails or the reply is malformed, which callers
    treat as a decision not to merge.
    """
    try:
        verdict = await arbiter.arbitrate(task_a, task_b)
    except Exception as e:
        logger.warning(
            f"[Merge Engine] LLM arbitration failed for tasks {task_a['id']} and {task_b['id']}: {e}"
        )
        return None

    try:
        parsed = ArbiterVerdict.model_validate(verdict)
    except ValidationError as e:
        logger.warning(f"[Merge Engine] Arbiter returned malformed verdict {verdict!r}: {e}")
        return None

    return parsed.model_dump(by_alias=True)


# ============================================================================
# MERGE PIPELINE
# ============================================================================


async def merge_tasks_in_tag(
    tasks: List[Dict[str, Any]],
    similarity_threshold: Optional[float] = None,
    use_llm: bool = False,
    escalate: bool = False,
    arbiter: Any = None,
    config: Optional[Dict[str, Any]] = None,
) -> MergeResult:
    """
    Detect and merge duplicate tasks within one tag.

    The input list is never mutated; all work happens on a deep copy.

    Args:
        tasks: Flat task list for the tag
        similarity_threshold: Jaccard score at or above which a pair merges
            (defaults to DEFAULT_MERGE_CONFIG["similarity_threshold"])
        use_llm: Ask the arbiter about borderline pairs
        escalate: Run post-merge priority escalation on consolidated tasks
        arbiter: Object with an async ``arbitrate(task_a, task_b)`` method
        config: Overrides for DEFAULT_MERGE_CONFIG

    Returns:
        MergeResult with merged tasks, the merge report and telemetry

    Example:
        ```python
        result = await merge_tasks_in_tag(tasks, similarity_threshold=0.8)
        print(result.merge_report.to_dict()["finalCount"])
        ```
    """
    merge_config = DEFAULT_MERGE_CONFIG.copy()
    merge_config.update(config or {})
    if similarity_threshold is not None:
        merge_config["similarity_threshold"] = similarity_threshold

    threshold = merge_config["similarity_threshold"]
    band_floor = merge_config["llm_band_floor"]
    confidence_floor = merge_config["llm_confidence_floor"]

    if use_llm and arbiter is None:
        logger.warning("[Merge Engine] LLM arbitration requested without an arbiter, skipping LLM tier")
        use_llm = False

    working = copy.deepcopy(tasks or [])
    report = MergeReport(original_count=len(working))
    telemetry = {"llmCalls": 0, "llmFailures": 0, "candidateGroups": 0}

    current: Dict[int, Dict[str, Any]] = {task["id"]: task for task in working}
    merged_id_map: Dict[int, int] = {}

    def apply_merge(ids: List[int]) -> MergeEvent:
        merged = merge_task_group([current[task_id] for task_id in ids], escalate=escalate)
        kept_id = merged["id"]
        removed = sorted(task_id for task_id in ids if task_id != kept_id)
        for task_id in removed:
            del current[task_id]
            merged_id_map[task_id] = kept_id
        current[kept_id] = merged
        return MergeEvent(kept_id=kept_id, merged_from=removed, strategy=MergeStrategy.HASH)

    groups = identify_duplicate_groups(working)
    telemetry["candidateGroups"] = len(groups)

    for group in groups:
        group_ids = [task["id"] for task in group]

        # Tier 1: exact content hash
        by_hash: Dict[str, List[int]] = {}
        for task_id in group_ids:
            by_hash.setdefault(generate_task_hash(current[task_id]), []).append(task_id)

        for task_hash, ids in by_hash.items():
            if len(ids) < 2:
                continue
            event = apply_merge(ids)
            event.hash = task_hash
            report.merged_groups.append(event)
            report.hash_matches += 1
            logger.info(f"[Merge Engine] Hash match: kept {event.kept_id}, merged {event.merged_from}")

        # Tiers 2 and 3: pairwise over what is still alive, always the latest version
        alive = sorted(task_id for task_id in _ordered_union(group_ids) if task_id in current)
        i = 0
        while i < len(alive):
            j = i + 1
            while j < len(alive):
                task_a, task_b = current[alive[i]], current[alive[j]]
                similarity = calculate_similarity(task_a, task_b)
                event = None

                if similarity >= threshold:
                    event = apply_merge([alive[i], alive[j]])
                    event.strategy = MergeStrategy.SEMANTIC
                    event.similarity = similarity
                    report.semantic_matches += 1

                elif use_llm and similarity > band_floor:
                    telemetry["llmCalls"] += 1
                    verdict = await _ask_arbiter(arbiter, task_a, task_b)
                    if verdict is None:
                        telemetry["llmFailures"] += 1
                        verdict = LLM_FAILURE_VERDICT
                    else:
                        report.llm_decisions += 1

                    if verdict["shouldMerge"] and verdict["confidence"] > confidence_floor:
                        event = apply_merge([alive[i], alive[j]])
                        event.strategy = MergeStrategy.LLM
                        event.reasoning = verdict["reasoning"]
                        event.confidence = verdict["confidence"]
                        report.llm_merges += 1

                if event is None:
                    j += 1
                    continue

                report.merged_groups.append(event)
                logger.info(
                    f"[Merge Engine] {event.strategy.value} match: kept {event.kept_id}, "
                    f"merged {event.merged_from} (similarity={similarity:.2f})"
                )
                del alive[j]
            i += 1

    survivors = [current[task["id"]] for task in working if task["id"] in current]
    merged_tasks = reindex_dependencies(survivors, merged_id_map)

    report.final_count = len(merged_tasks)
    report.dependency_cycles = find_dependency_cycles(merged_tasks)
    if report.dependency_cycles:
        logger.warning(
            f"[Merge Engine] Dependency cycles present after merge: {report.dependency_cycles}"
        )

    logger.info(
        f"[Merge Engine] {report.original_count} tasks -> {report.final_count} "
        f"({len(report.merged_groups)} merges)"
    )

    return MergeResult(
        success=True,
        merged_tasks=merged_tasks,
        merge_report=report,
        telemetry=telemetry,
    )
