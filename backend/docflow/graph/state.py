"""
LangGraph State Definitions

This module defines the state carried through the consolidation workflow:
- ConsolidationState: one run over a project's document sources
"""

from typing import TypedDict, Annotated, List, Dict, Any, Optional
from langgraph.graph.message import add_messages
from langchain_core.messages import BaseMessage


class ConsolidationState(TypedDict, total=False):
    """
    Workflow state for one consolidation run.

    The orchestrator owns the aggregate task list for the duration of the run
    and hands it to the merge step by value.
    """

    # 1. Node summaries
    messages: Annotated[list[BaseMessage], add_messages]

    # 2. Run inputs
    project_root: str
    tag: str
    force: bool
    append: bool
    research: bool
    escalate: bool
    merge: bool
    fail_fast: Optional[bool]
    merge_options: Dict[str, Any]  # similarity_threshold, use_llm

    # 3. Outputs
    tasks: List[Dict[str, Any]]  # Tasks generated in this run
    processed_sources: List[str]
    skipped_sources: List[str]
    failed_sources: List[str]
    escalated_count: int
    merge_report: Dict[str, Any]
    errors: List[str]
