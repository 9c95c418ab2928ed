"""
Consolidation Graph

Two-node LangGraph workflow for one consolidation run:

    START
      ↓
    process_documents (hierarchy orchestrator: sort, classify, generate, escalate)
      ↓ (if merge requested and tasks were generated)
    merge_duplicates (hash / semantic / LLM merge over the tag)
      ↓
    END

Collaborators are passed through ``config["configurable"]``:
    generator, classifier_agent, arbiter, store
"""

import logging
from typing import Literal, Optional

from langgraph.graph import END, StateGraph

from .nodes import merge_duplicates_node, process_documents_node
from .state import ConsolidationState

logger = logging.getLogger(__name__)


# ============================================================================
# CONDITIONAL EDGE FUNCTIONS
# ============================================================================


def route_after_processing(state: ConsolidationState) -> Literal["merge_duplicates", "end"]:
    """
    Conditional edge: merge only when requested and something was generated.

    Returns:
        - "merge_duplicates" if merge is set and the run produced tasks
        - "end" otherwise
    """
    if state.get("merge") and state.get("tasks"):
        return "merge_duplicates"
    return "end"


# ============================================================================
# GRAPH BUILDER
# ============================================================================


def create_consolidation_graph(checkpointer: Optional[object] = None):
    """
    Create the consolidation workflow.

    Args:
        checkpointer: Optional LangGraph checkpointer (e.g. MemorySaver)

    Returns:
        Compiled graph

    Usage:
        ```python
        graph = create_consolidation_graph()
        result = await graph.ainvoke(
            {"project_root": "/path/to/project", "tag": "master", "force": True, "merge": True},
            {"configurable": {"generator": DocumentTaskGenerator()}},
        )
        print(result["merge_report"])
        ```
    """
    workflow = StateGraph(ConsolidationState)

    workflow.add_node("process_documents", process_documents_node)
    workflow.add_node("merge_duplicates", merge_duplicates_node)

    workflow.add_conditional_edges(
        "process_documents",
        route_after_processing,
        {
            "merge_duplicates": "merge_duplicates",
            "end": END
        }
    )
    workflow.add_edge("merge_duplicates", END)

    workflow.set_entry_point("process_documents")

    compiled_graph = workflow.compile(checkpointer=checkpointer)
    logger.info("[Consolidation Graph] Compiled successfully")

    return compiled_graph
