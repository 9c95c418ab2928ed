"""
Document Hierarchy Orchestrator

Processes a project's document sources parent-first, feeding each child the
tasks generated from its parent, and assembles one task list per tag.

Run Steps:
1. Sort sources so that every parent precedes its children (cycles abort)
2. Work out the first task id for the tag (conflict / append / force)
3. For each source: resolve the file, classify ``auto`` types, gather parent
   context, call the single-document generator
4. Optionally escalate priorities over the aggregate list
5. Persist the aggregate into the task store

Key Features:
- Cycles and fail-fast document errors are fatal; missing files, dangling
  parents and classification failures are logged and tolerated
- Only the first source processed in a forced run clears the tag; later
  sources append to it
- Collaborators (generator, classifier agent, store) are injected
"""

import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from langchain_core.messages import HumanMessage
from langchain_core.runnables import RunnableConfig

from ...config import (
    AUTO_DOCUMENT_TYPE,
    DocumentSource,
    ProjectConfig,
    load_project_config,
    resolve_document_path,
    tasks_path,
)
from ...graph.state import ConsolidationState
from ...services.task_store import TaskStore
from .document_adapters import estimate_task_count
from .document_classifier import OTHER_TYPE, classify_document
from .priority_escalation import escalate_all_tasks

logger = logging.getLogger(__name__)


# ============================================================================
# EXCEPTIONS
# ============================================================================


class DocumentHierarchyError(Exception):
    """Base error for a hierarchy run."""


class CircularDependencyError(DocumentHierarchyError):
    """Document sources reference each other in a loop."""


class TaskConflictError(DocumentHierarchyError):
    """The tag already holds tasks and neither force nor append was given."""


class DocumentProcessingError(DocumentHierarchyError):
    """A source failed while fail-fast was active."""

    def __init__(self, source_id: str, message: str):
        super().__init__(message)
        self.source_id = source_id


# ============================================================================
# DATA CLASSES
# ============================================================================


@dataclass
class GenerationOptions:
    """Per-document options handed to the single-document generator."""

    tag: str = "master"
    force: bool = False
    append: bool = False
    research: bool = False
    current_task_start_id: int = 1
    parent_tasks_context: List[Dict[str, Any]] = field(default_factory=list)


@dataclass
class GenerationResult:
    """What the generator reports back for one document."""

    success: bool
    generated_tasks: List[Dict[str, Any]]
    next_task_id: int
    telemetry: Dict[str, Any] = field(default_factory=dict)


@dataclass
class HierarchyOptions:
    """Run options for one hierarchy run."""

    tag: Optional[str] = None
    force: bool = False
    append: bool = False
    research: bool = False
    escalate: bool = False
    fail_fast: Optional[bool] = None  # None -> global config


@dataclass
class HierarchyResult:
    """Outcome of a hierarchy run."""

    success: bool
    message: str
    tag: str
    generated_tasks: List[Dict[str, Any]] = field(default_factory=list)
    processed_sources: List[str] = field(default_factory=list)
    skipped_sources: List[str] = field(default_factory=list)
    failed_sources: List[str] = field(default_factory=list)
    escalated_count: int = 0
    classifications: Dict[str, Dict[str, Any]] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "message": self.message,
            "tag": self.tag,
            "generatedTasks": self.generated_tasks,
            "processedSources": self.processed_sources,
            "skippedSources": self.skipped_sources,
            "failedSources": self.failed_sources,
            "escalatedCount": self.escalated_count,
            "classifications": self.classifications,
        }


# ============================================================================
# SORTING
# ============================================================================


def sort_document_sources(sources: List[DocumentSource]) -> List[DocumentSource]:
    """
    Order sources parent-first (pre-order over the parent forest).

    Roots keep their configured order, and so do siblings. A ``parentId``
    naming an unknown source is logged and the source is treated as a root.

    Args:
        sources: Configured document sources

    Returns:
        Sources in processing order, each exactly once

    Raises:
        CircularDependencyError: If the parent links contain a cycle
    """
    by_id = {source.id: source for source in sources}
    children: Dict[str, List[DocumentSource]] = {source.id: [] for source in sources}
    roots: List[DocumentSource] = []

    for source in sources:
        if source.parent_id is None:
            roots.append(source)
        elif source.parent_id in by_id:
            children[source.parent_id].append(source)
        else:
            logger.warning(
                f"[Hierarchy] Document \"{source.id}\" references unknown parent "
                f"\"{source.parent_id}\", treating it as a root"
            )
            roots.append(source)

    ordered: List[DocumentSource] = []
    visiting = set()
    visited = set()

    def visit(source: DocumentSource) -> None:
        if source.id in visiting:
            raise CircularDependencyError(f"Circular dependency detected at document \"{source.id}\"")
        if source.id in visited:
            return
        visiting.add(source.id)
        ordered.append(source)
        for child in children[source.id]:
            visit(child)
        visiting.discard(source.id)
        visited.add(source.id)

    for root in roots:
        visit(root)

    # Sources left over sit on a parent loop with no root above them
    for source in sources:
        if source.id not in visited:
            visit(source)

    return ordered


# ============================================================================
# ORCHESTRATION
# ============================================================================


def _initial_task_id(store: TaskStore, tag: str, force: bool, append: bool) -> int:
    existing = store.get_tasks(tag)
    if not existing or force:
        return 1
    if not append:
        raise TaskConflictError(
            f"Tag '{tag}' already contains {len(existing)} tasks. Use force to overwrite or append to add."
        )
    return store.max_task_id(tag) + 1


async def _resolve_type(
    source: DocumentSource,
    content: str,
    project_config: ProjectConfig,
    classifier_agent: Any,
) -> Dict[str, Any]:
    if source.type != AUTO_DOCUMENT_TYPE:
        return {"type": source.type, "source": "config"}

    settings = project_config.global_settings
    use_llm = source.llm_fallback if source.llm_fallback is not None else settings.enable_llm_classification

    try:
        result = await classify_document(
            content,
            use_llm_fallback=use_llm,
            threshold=settings.classification_threshold,
            llm_classifier=classifier_agent if use_llm else None,
        )
    except Exception as e:
        logger.warning(f"[Hierarchy] Classification failed for \"{source.id}\": {e}. Using {OTHER_TYPE}.")
        return {"type": OTHER_TYPE, "confidence": 0.0, "source": "none"}

    logger.info(
        f"[Hierarchy] Classified \"{source.id}\" as {result.type} "
        f"(confidence={result.confidence:.2f}, source={result.source})"
    )
    return result.to_dict()


async def process_document_hierarchy(
    project_root: str,
    options: HierarchyOptions,
    generator: Any,
    classifier_agent: Any = None,
    project_config: Optional[ProjectConfig] = None,
    store: Optional[TaskStore] = None,
) -> HierarchyResult:
    """
    Generate tasks for every configured document source, parent-first.

    Args:
        project_root: Project root holding ``.docflow/config.json``
        options: Tag, force/append/research/escalate flags and fail-fast override
        generator: Single-document generator with an async ``generate`` method
        classifier_agent: LLM classifier used for ``auto`` sources when the
            fallback is enabled
        project_config: Preloaded configuration (loaded from disk if omitted)
        store: Task store (defaults to the project's tasks file)

    Returns:
        HierarchyResult with the tasks generated in this run

    Raises:
        CircularDependencyError: On a parent cycle, before any document runs
        TaskConflictError: If the tag already has tasks without force/append
        DocumentProcessingError: If a source fails while fail-fast is active
    """
    project_config = project_config or load_project_config(project_root)
    store = store or TaskStore(tasks_path(project_root))
    settings = project_config.global_settings
    tag = options.tag or settings.default_tag
    fail_fast = settings.fail_fast if options.fail_fast is None else options.fail_fast

    sources = project_config.document_sources
    if not sources:
        logger.warning("[Hierarchy] No document sources configured")
        return HierarchyResult(success=True, message="No document sources configured", tag=tag)

    ordered = sort_document_sources(sources)

    logger.info(f"[Hierarchy] Processing order: {' -> '.join(source.id for source in ordered)}")

    next_task_id = _initial_task_id(store, tag, options.force, options.append)

    result = HierarchyResult(success=True, message="", tag=tag)
    generated_by_source: Dict[str, List[Dict[str, Any]]] = {}
    force_pending = options.force

    for source in ordered:
        document_path = resolve_document_path(project_root, source.path)
        if not os.path.isfile(document_path):
            logger.warning(f"[Hierarchy] Document file not found for \"{source.id}\": {document_path}. Skipping.")
            result.skipped_sources.append(source.id)
            continue

        try:
            with open(document_path, "r", encoding="utf-8") as f:
                content = f.read()

            classification = await _resolve_type(source, content, project_config, classifier_agent)
            source_type = classification["type"]
            result.classifications[source.id] = classification

            parent_context = generated_by_source.get(source.parent_id, []) if source.parent_id else []
            target_count = (
                source.parser_config.num_tasks
                or settings.default_tasks_per_document
                or estimate_task_count(source_type, content)
            )

            generation = await generator.generate(
                document_path,
                source.id,
                source_type,
                store.path,
                target_count,
                GenerationOptions(
                    tag=tag,
                    force=force_pending,
                    append=not force_pending and (options.append or bool(result.processed_sources)),
                    research=options.research,
                    current_task_start_id=next_task_id,
                    parent_tasks_context=parent_context,
                ),
            )
        except Exception as e:
            if fail_fast:
                logger.error(f"[Hierarchy] Failed to process document \"{source.id}\": {e}", exc_info=True)
                raise DocumentProcessingError(
                    source.id, f"Failed to process document \"{source.id}\": {e}"
                ) from e
            logger.error(f"[Hierarchy] Failed to process document \"{source.id}\": {e}. Continuing.")
            result.failed_sources.append(source.id)
            continue

        if not generation.success:
            if fail_fast:
                logger.error(f"[Hierarchy] Generator reported failure for document \"{source.id}\"")
                raise DocumentProcessingError(
                    source.id, f"Generator reported failure for document \"{source.id}\""
                )
            logger.warning(f"[Hierarchy] Generator reported failure for document \"{source.id}\". Continuing.")
            result.failed_sources.append(source.id)
            continue

        force_pending = False
        generated = list(generation.generated_tasks or [])
        generated_by_source[source.id] = generated
        result.generated_tasks.extend(generated)
        result.processed_sources.append(source.id)
        next_task_id = generation.next_task_id

        logger.info(f"[Hierarchy] Document \"{source.id}\" produced {len(generated)} tasks, next id {next_task_id}")

    if options.escalate and result.generated_tasks:
        escalated = escalate_all_tasks(result.generated_tasks)
        result.escalated_count = sum(
            1 for before, after in zip(result.generated_tasks, escalated) if before is not after
        )
        result.generated_tasks = escalated
        logger.info(f"[Hierarchy] Escalated priority of {result.escalated_count} tasks")

    if result.generated_tasks:
        store.upsert_tasks(tag, result.generated_tasks)

    result.message = (
        f"Processed {len(result.processed_sources)} of {len(ordered)} documents, "
        f"generated {len(result.generated_tasks)} tasks in tag '{tag}'"
    )
    logger.info(f"[Hierarchy] {result.message}")
    return result


# ============================================================================
# LANGGRAPH NODE
# ============================================================================


async def process_documents_node(
    state: ConsolidationState,
    config: RunnableConfig,
) -> Dict[str, Any]:
    """
    LangGraph node running the hierarchy orchestrator.

    Collaborators come from ``config["configurable"]`` (``generator``,
    ``classifier_agent``, ``store``); the chat-model agents are created on
    demand when absent.

    Returns:
        State update with the generated tasks, per-source outcome lists and a
        summary message
    """
    configurable = (config or {}).get("configurable", {})
    project_root = state.get("project_root") or "."
    project_config = load_project_config(project_root)

    generator = configurable.get("generator")
    if generator is None:
        from ...agents.task_generator_agent import DocumentTaskGenerator
        generator = DocumentTaskGenerator()

    classifier_agent = configurable.get("classifier_agent")
    wants_llm = project_config.global_settings.enable_llm_classification or any(
        source.llm_fallback for source in project_config.document_sources
    )
    if classifier_agent is None and wants_llm:
        from ...agents.classifier_agent import DocumentClassifierAgent
        classifier_agent = DocumentClassifierAgent()

    result = await process_document_hierarchy(
        project_root,
        HierarchyOptions(
            tag=state.get("tag"),
            force=bool(state.get("force")),
            append=bool(state.get("append")),
            research=bool(state.get("research")),
            escalate=bool(state.get("escalate")),
            fail_fast=state.get("fail_fast"),
        ),
        generator=generator,
        classifier_agent=classifier_agent,
        project_config=project_config,
        store=configurable.get("store"),
    )

    return {
        "tag": result.tag,
        "tasks": result.generated_tasks,
        "processed_sources": result.processed_sources,
        "skipped_sources": result.skipped_sources,
        "failed_sources": result.failed_sources,
        "escalated_count": result.escalated_count,
        "messages": [HumanMessage(content=f"[Hierarchy] {result.message}", name="HierarchyOrchestrator")],
    }
