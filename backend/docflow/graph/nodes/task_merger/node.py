"""
Task Merger - Store Operation and LangGraph Node

Loads a tag from the task store, runs the merge engine over it and writes the
result back. Exposed both as a plain coroutine for the HTTP API and as the
``merge_duplicates`` node of the consolidation workflow.
"""

import logging
from typing import Any, Dict, Optional

from langchain_core.messages import HumanMessage
from langchain_core.runnables import RunnableConfig

from ....config import tasks_path
from ....graph.state import ConsolidationState
from ....services.task_store import TaskStore
from .core import merge_tasks_in_tag

logger = logging.getLogger(__name__)


async def merge_tasks_for_tag(
    store: TaskStore,
    tag: str,
    similarity_threshold: Optional[float] = None,
    use_llm: bool = False,
    escalate: bool = False,
    dry_run: bool = False,
    output_file: Optional[str] = None,
    arbiter: Any = None,
) -> Dict[str, Any]:
    """
    Merge duplicate tasks of one tag in the store.

    Args:
        store: Task store holding the tag
        tag: Tag to merge
        similarity_threshold: Jaccard threshold for the semantic tier
        use_llm: Consult the arbiter for borderline pairs
        escalate: Post-merge priority escalation
        dry_run: Compute the result without writing anything
        output_file: Write the merged tag to this store file instead of the
            source store
        arbiter: LLM merge arbiter (required when use_llm is set)

    Returns:
        Dictionary with mergeReport, telemetry, counts and whether the result
        was written
    """
    tasks = store.get_tasks(tag)
    if not tasks:
        logger.info(f"[Merge Engine] Tag '{tag}' has no tasks, nothing to merge")

    result = await merge_tasks_in_tag(
        tasks,
        similarity_threshold=similarity_threshold,
        use_llm=use_llm,
        escalate=escalate,
        arbiter=arbiter,
    )

    written = False
    if not dry_run and tasks:
        target = TaskStore(output_file) if output_file else store
        target.write_tag(tag, result.merged_tasks)
        written = True

    report = result.merge_report.to_dict()
    return {
        "success": result.success,
        "tag": tag,
        "originalCount": report["originalCount"],
        "finalCount": report["finalCount"],
        "mergedCount": report["originalCount"] - report["finalCount"],
        "mergeReport": report,
        "mergedTasks": result.merged_tasks,
        "telemetry": result.telemetry,
        "dryRun": dry_run,
        "written": written,
    }


async def merge_duplicates_node(
    state: ConsolidationState,
    config: RunnableConfig,
) -> Dict[str, Any]:
    """
    LangGraph node that merges duplicate tasks in the run's tag.

    Collaborators come from ``config["configurable"]``: ``arbiter`` is used
    when ``merge_options.use_llm`` is set.

    Returns:
        State update with merged tasks, merge_report and a summary message
    """
    configurable = (config or {}).get("configurable", {})
    options = state.get("merge_options") or {}
    tag = state.get("tag") or "master"
    store = configurable.get("store") or TaskStore(tasks_path(state.get("project_root", ".")))

    use_llm = bool(options.get("use_llm"))
    arbiter = configurable.get("arbiter")
    if use_llm and arbiter is None:
        from ....agents.merge_arbiter_agent import MergeArbiterAgent
        arbiter = MergeArbiterAgent()

    logger.info(f"[Merge Engine] Merging duplicates in tag '{tag}'")

    outcome = await merge_tasks_for_tag(
        store,
        tag,
        similarity_threshold=options.get("similarity_threshold"),
        use_llm=use_llm,
        escalate=bool(state.get("escalate")),
        arbiter=arbiter,
    )

    summary = (
        f"[Merge Engine] Tag '{tag}': {outcome['originalCount']} -> {outcome['finalCount']} tasks "
        f"({outcome['mergedCount']} merged)"
    )

    return {
        "tasks": outcome["mergedTasks"],
        "merge_report": outcome["mergeReport"],
        "messages": [HumanMessage(content=summary, name="MergeEngine")],
    }
