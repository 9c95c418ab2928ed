"""
Document Task Generator Agent

Turns one source document into a batch of dependency-aware development tasks
with a chat model, then writes the batch into the task store.

Generation Steps:
1. Load the tag's existing tasks (cleared when force is set)
2. Build system/user prompts: document type, adapter pre-prompt, parent
   task context, optional research addendum, start id and target count
3. Parse and validate the model's JSON reply
4. Renumber tasks sequentially from the start id and force provenance
5. Keep only dependencies on parent-context tasks, existing tasks in the tag
   or earlier tasks of the same batch
6. Fill type-specific fields through the document adapters
7. Persist the tag (existing + new, or new only when forced)
"""

import logging
from typing import Any, Dict, List, Optional

from langchain_core.messages import HumanMessage, SystemMessage
from langchain_openai import ChatOpenAI
from pydantic import BaseModel, ConfigDict, Field

from ..config import get_llm_model
from ..graph.nodes.document_adapters import get_pre_prompt, post_process_tasks
from ..graph.nodes.document_hierarchy import GenerationOptions, GenerationResult
from ..services.task_store import TaskStore
from .response_parsing import parse_json_response

logger = logging.getLogger(__name__)


# ============================================================================
# CONSTANTS
# ============================================================================


VALID_LAYERS = {"presentation", "business", "data", "infra"}
VALID_VIEWPORTS = {"mobile", "tablet", "desktop"}
VALID_PRIORITIES = {"low", "medium", "high"}

PARENT_DESCRIPTION_PREVIEW = 100

RESEARCH_PROMPT_ADDITION = """
Before breaking down the document into tasks, you will:
1. Research and analyze the latest technologies, libraries, frameworks, and best practices that would be appropriate for this project based on the document.
2. Identify any potential technical challenges, security concerns, or scalability issues not explicitly mentioned in the document.
3. Consider current industry standards and evolving trends relevant to this project.
Your task breakdown should incorporate this research, resulting in more detailed implementation guidance and technology recommendations."""

SYSTEM_PROMPT_TEMPLATE = """You are an AI assistant specialized in analyzing documents (such as {document_type}) and generating a structured, logically ordered, dependency-aware list of development tasks in JSON format.{research}
{parent_context}
{pre_prompt}

Analyze the provided document content and generate approximately {num_tasks} top-level development tasks.
Each task should represent a logical unit of work. Include implementation details and a test strategy for each task.
Assign sequential IDs to the tasks you generate, starting from {start_id}.
Set status to 'pending', and priority to 'medium' initially.
Dependencies can be on other tasks you generate (with IDs >= {start_id}) or on tasks from the parent context (IDs < {start_id}, listed above if provided).

Respond ONLY with a valid JSON object containing a single key "tasks", where the value is an array of task objects:
{{
    "id": number,
    "title": string,
    "description": string,
    "status": "pending",
    "dependencies": number[],
    "priority": "high" | "medium" | "low",
    "details": string,
    "testStrategy": string
}}
Optional fields: layer (presentation|business|data|infra), viewport (mobile|tablet|desktop), epicId, module, component, screen, infraZone, performanceGoal, reliabilityTarget, designToken, estimationNote."""

USER_PROMPT_TEMPLATE = """Document content (Type: {document_type}, ID: {document_id}):

{content}

Generate tasks based on this document, starting task IDs from {start_id}.
{parent_reminder}"""

PARENT_CONTEXT_TEMPLATE = """
This document (type: {document_type}, ID: {document_id}) is a child of a preceding document. Tasks generated from this document may depend on the following tasks from its parent context:
{parent_tasks}
When defining dependencies for the new tasks you generate below, you can reference these parent task IDs."""


# ============================================================================
# SCHEMAS
# ============================================================================


class GeneratedTaskPayload(BaseModel):
    """One task as returned by the model, before renumbering."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: Optional[int] = None
    title: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    details: str = ""
    test_strategy: str = Field("", alias="testStrategy")
    status: Optional[str] = None
    priority: Optional[str] = None
    dependencies: List[int] = Field(default_factory=list)
    layer: Optional[str] = None
    viewport: Optional[str] = None
    epic_id: Optional[str] = Field(None, alias="epicId")
    module: Optional[str] = None
    component: Optional[str] = None
    screen: Optional[str] = None
    infra_zone: Optional[str] = Field(None, alias="infraZone")
    performance_goal: Optional[str] = Field(None, alias="performanceGoal")
    reliability_target: Optional[str] = Field(None, alias="reliabilityTarget")
    design_token: Optional[str] = Field(None, alias="designToken")
    estimation_note: Optional[str] = Field(None, alias="estimationNote")


# ============================================================================
# HELPER FUNCTIONS
# ============================================================================


def _format_parent_context(
    parent_tasks: List[Dict[str, Any]],
    document_type: str,
    document_id: str,
) -> str:
    if not parent_tasks:
        return ""
    lines = [
        f"- ID: {task.get('id')}, Title: {task.get('title')}, "
        f"Description: {(task.get('description') or '')[:PARENT_DESCRIPTION_PREVIEW]}... "
        f"(from parent doc: {task.get('sourceDocumentId')})"
        for task in parent_tasks
    ]
    return PARENT_CONTEXT_TEMPLATE.format(
        document_type=document_type,
        document_id=document_id,
        parent_tasks="\n".join(lines),
    )


def _extract_usage(response: Any, model_name: str) -> Dict[str, Any]:
    usage = getattr(response, "usage_metadata", None)
    if not isinstance(usage, dict):
        return {"model": model_name}
    return {
        "model": model_name,
        "inputTokens": usage.get("input_tokens", 0),
        "outputTokens": usage.get("output_tokens", 0),
        "totalTokens": usage.get("total_tokens", 0),
    }


def _clean_enums(task: Dict[str, Any], source_id: str) -> None:
    """Drop enum-valued fields the model filled with unsupported values."""
    if task.get("layer") is not None and task["layer"] not in VALID_LAYERS:
        logger.warning(f"[Task Generator] Dropping invalid layer '{task['layer']}' from doc {source_id}")
        del task["layer"]
    if task.get("viewport") is not None and task["viewport"] not in VALID_VIEWPORTS:
        logger.warning(f"[Task Generator] Dropping invalid viewport '{task['viewport']}' from doc {source_id}")
        del task["viewport"]
    if task.get("priority") not in VALID_PRIORITIES:
        task["priority"] = "medium"


def remap_generated_tasks(
    raw_tasks: List[Dict[str, Any]],
    start_id: int,
    source_id: str,
    source_type: str,
    parent_tasks: List[Dict[str, Any]],
    existing_tasks: List[Dict[str, Any]],
) -> List[Dict[str, Any]]:
    """
    Renumber a generated batch and filter its dependencies.

    Ids are reassigned sequentially from ``start_id``. A dependency survives
    only if it names a parent-context task, a task already in the tag, or an
    earlier task of the same batch; anything else is dropped with a warning.

    Args:
        raw_tasks: Validated task dictionaries as produced by the model
        start_id: First id for this batch
        source_id: Source document id forced onto every task
        source_type: Source document type forced onto every task
        parent_tasks: Parent-context tasks
        existing_tasks: Tasks already in the tag

    Returns:
        New list of renumbered task dictionaries
    """
    id_map: Dict[Any, int] = {}
    renumbered = []
    for offset, task in enumerate(raw_tasks):
        new_id = start_id + offset
        if task.get("id") is not None:
            id_map[task["id"]] = new_id
        renumbered.append({
            **task,
            "id": new_id,
            "sourceDocumentId": source_id,
            "sourceDocumentType": source_type,
            "status": task.get("status") or "pending",
            "priority": task.get("priority") or "medium",
            "dependencies": list(task.get("dependencies") or []),
            "subtasks": [],
        })

    parent_ids = {task.get("id") for task in parent_tasks}
    existing_ids = {task.get("id") for task in existing_tasks}

    for task in renumbered:
        valid = []
        for dep in task["dependencies"]:
            dep_id = id_map.get(dep, dep)
            is_sibling = start_id <= dep_id < task["id"]
            if dep_id in parent_ids or dep_id in existing_ids or is_sibling:
                if dep_id not in valid:
                    valid.append(dep_id)
            else:
                logger.warning(
                    f"[Task Generator] Task {task['id']} ('{task.get('title')}') from doc {source_id} "
                    f"has an invalid dependency ID: {dep}. This dependency will be removed."
                )
        task["dependencies"] = valid

    return renumbered


# ============================================================================
# AGENT
# ============================================================================


class DocumentTaskGenerator:
    """
    Single-document task generator backed by a chat model.

    Attributes:
        llm: Chat model used for generation
        model_name: Model identifier reported in telemetry
    """

    def __init__(self, model_name: Optional[str] = None, temperature: float = 0.2):
        self.model_name = model_name or get_llm_model()
        self.llm = ChatOpenAI(
            model=self.model_name,
            temperature=temperature
        )
        self.agent_name = "Task_Generator"

    async def generate(
        self,
        document_path: str,
        source_id: str,
        source_type: str,
        store_path: str,
        target_count: int,
        options: GenerationOptions,
    ) -> GenerationResult:
        """
        Generate tasks for one document and persist them into the tag.

        Args:
            document_path: Path of the document file
            source_id: Source document id
            source_type: Resolved document type
            store_path: Tasks file to read and write
            target_count: Approximate number of tasks to request
            options: Tag, force/append flags, start id and parent context

        Returns:
            GenerationResult with the new tasks and the next free id

        Raises:
            ValueError: On a tag conflict, an empty document or an unusable
                model reply
            OSError: If the document cannot be read
        """
        store = TaskStore(store_path)
        tag = options.tag
        start_id = options.current_task_start_id
        parent_tasks = options.parent_tasks_context or []

        existing = store.get_tasks(tag)
        if existing and not options.force and not options.append:
            raise ValueError(
                f"Tag '{tag}' already contains {len(existing)} tasks. Use force to overwrite or append."
            )
        if options.force:
            logger.info(f"[Task Generator] Force mode: replacing {len(existing)} tasks in tag '{tag}'")
            existing = []

        with open(document_path, "r", encoding="utf-8") as f:
            content = f.read()
        if not content.strip():
            raise ValueError(f"Input file {document_path} is empty")

        logger.info(
            f"[Task Generator] Parsing {document_path} (doc={source_id}, type={source_type}) "
            f"for tag '{tag}', start id {start_id}, parent tasks {len(parent_tasks)}"
        )

        system_prompt = SYSTEM_PROMPT_TEMPLATE.format(
            document_type=source_type,
            research=RESEARCH_PROMPT_ADDITION if options.research else "",
            parent_context=_format_parent_context(parent_tasks, source_type, source_id),
            pre_prompt=get_pre_prompt(source_type, content),
            num_tasks=target_count,
            start_id=start_id,
        )
        user_prompt = USER_PROMPT_TEMPLATE.format(
            document_type=source_type,
            document_id=source_id,
            content=content,
            start_id=start_id,
            parent_reminder=(
                "Remember to consider the parent tasks provided in the system prompt "
                "for context and potential dependencies."
                if parent_tasks else ""
            ),
        )

        response = await self.llm.ainvoke([
            SystemMessage(content=system_prompt),
            HumanMessage(content=user_prompt)
        ])

        payload = parse_json_response(response.content)
        raw_tasks = payload.get("tasks") if isinstance(payload, dict) else payload
        if not isinstance(raw_tasks, list):
            raise ValueError(f"Model returned no task list for document {source_id}")

        validated = []
        for raw in raw_tasks:
            task = GeneratedTaskPayload.model_validate(raw).model_dump(by_alias=True, exclude_none=True)
            _clean_enums(task, source_id)
            validated.append(task)

        new_tasks = remap_generated_tasks(
            validated,
            start_id=start_id,
            source_id=source_id,
            source_type=source_type,
            parent_tasks=parent_tasks,
            existing_tasks=existing,
        )
        new_tasks = post_process_tasks(source_type, new_tasks, source_id)

        store.write_tag(tag, existing + new_tasks)

        logger.info(
            f"[Task Generator] Generated {len(new_tasks)} tasks for doc {source_id}. "
            f"Total in tag '{tag}': {len(existing) + len(new_tasks)}"
        )

        return GenerationResult(
            success=True,
            generated_tasks=new_tasks,
            next_task_id=start_id + len(new_tasks),
            telemetry=_extract_usage(response, self.model_name),
        )
