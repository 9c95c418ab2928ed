"""
Unit Tests for the Document Task Generator Agent

Target Coverage:
- test_generate_renumbers_from_start_id
- test_dependency_filtering (parent, existing, earlier sibling, invalid)
- test_conflict_force_append on the target tag
- test_empty_document_rejected
- test_reply_validation and enum cleanup
- test_prompt_contents (parent context, research addendum, pre-prompt)
- test_telemetry

All tests use a mocked chat model; no API calls are made.
"""

import json
import pytest
from unittest.mock import AsyncMock, MagicMock, patch
from langchain_core.messages import AIMessage

from docflow.agents.task_generator_agent import DocumentTaskGenerator, remap_generated_tasks
from docflow.graph.nodes.document_hierarchy import GenerationOptions
from docflow.services.task_store import TaskStore


# ============================================================================
# FIXTURES
# ============================================================================

def _reply(tasks, fenced=True, usage=None):
    body = json.dumps({"tasks": tasks})
    content = f"```json\n{body}\n```" if fenced else body
    if usage:
        return AIMessage(content=content, usage_metadata=usage)
    return AIMessage(content=content)


MODEL_TASKS = [
    {
        "id": 1,
        "title": "Cart page layout",
        "description": "Build the cart page with item rows and totals",
        "details": "Use the shared grid",
        "testStrategy": "Snapshot test of the cart page",
        "dependencies": [],
    },
    {
        "id": 2,
        "title": "Cart totals",
        "description": "Compute subtotal, tax and shipping for the cart",
        "dependencies": [1],
    },
]


@pytest.fixture
def generator():
    """DocumentTaskGenerator with a mocked chat model."""
    with patch('docflow.agents.task_generator_agent.ChatOpenAI') as mock_llm_class:
        mock_llm = MagicMock()
        mock_llm.ainvoke = AsyncMock(return_value=_reply(MODEL_TASKS))
        mock_llm_class.return_value = mock_llm

        agent = DocumentTaskGenerator(model_name="gpt-4o-mini")
        agent.llm = mock_llm
        return agent


@pytest.fixture
def document(tmp_path):
    path = tmp_path / "ux.md"
    path.write_text("# UX Spec\n\nThe cart screen lists items and totals.", encoding="utf-8")
    return str(path)


@pytest.fixture
def store_path(tmp_path):
    return str(tmp_path / ".docflow" / "tasks" / "tasks.json")


# ============================================================================
# TEST: GENERATION
# ============================================================================

class TestGenerate:

    @pytest.mark.asyncio
    async def test_generate_renumbers_from_start_id(self, generator, document, store_path):
        result = await generator.generate(
            document, "ux", "UX_SPEC", store_path, 5,
            GenerationOptions(current_task_start_id=5),
        )

        assert result.success is True
        assert [task["id"] for task in result.generated_tasks] == [5, 6]
        assert result.generated_tasks[1]["dependencies"] == [5]
        assert result.next_task_id == 7

    @pytest.mark.asyncio
    async def test_generated_tasks_carry_provenance_and_adapter_fields(self, generator, document, store_path):
        result = await generator.generate(document, "ux", "UX_SPEC", store_path, 5, GenerationOptions())

        first = result.generated_tasks[0]
        assert first["sourceDocumentId"] == "ux"
        assert first["sourceDocumentType"] == "UX_SPEC"
        assert first["status"] == "pending"
        assert first["priority"] == "medium"
        assert first["subtasks"] == []
        assert first["layer"] == "presentation"
        assert first["screen"] == "CartScreen"

    @pytest.mark.asyncio
    async def test_tasks_written_to_store(self, generator, document, store_path):
        await generator.generate(document, "ux", "UX_SPEC", store_path, 5, GenerationOptions(tag="sprint"))

        stored = TaskStore(store_path).get_tasks("sprint")
        assert [task["id"] for task in stored] == [1, 2]

    @pytest.mark.asyncio
    async def test_bare_list_reply_accepted(self, generator, document, store_path):
        generator.llm.ainvoke.return_value = AIMessage(content=json.dumps(MODEL_TASKS))

        result = await generator.generate(document, "ux", "UX_SPEC", store_path, 5, GenerationOptions())

        assert len(result.generated_tasks) == 2

    @pytest.mark.asyncio
    async def test_telemetry_reports_usage(self, generator, document, store_path):
        generator.llm.ainvoke.return_value = _reply(
            MODEL_TASKS,
            usage={"input_tokens": 120, "output_tokens": 80, "total_tokens": 200},
        )

        result = await generator.generate(document, "ux", "UX_SPEC", store_path, 5, GenerationOptions())

        assert result.telemetry == {
            "model": "gpt-4o-mini",
            "inputTokens": 120,
            "outputTokens": 80,
            "totalTokens": 200,
        }


# ============================================================================
# TEST: TAG CONFLICTS
# ============================================================================

class TestTagHandling:

    @pytest.fixture
    def seeded_store(self, store_path):
        TaskStore(store_path).write_tag("master", [{"id": 1, "title": "Existing"}])
        return store_path

    @pytest.mark.asyncio
    async def test_existing_tag_without_flags_raises(self, generator, document, seeded_store):
        with pytest.raises(ValueError, match="already contains 1 tasks"):
            await generator.generate(document, "ux", "UX_SPEC", seeded_store, 5, GenerationOptions())

        generator.llm.ainvoke.assert_not_called()

    @pytest.mark.asyncio
    async def test_append_keeps_existing_tasks(self, generator, document, seeded_store):
        await generator.generate(
            document, "ux", "UX_SPEC", seeded_store, 5,
            GenerationOptions(append=True, current_task_start_id=2),
        )

        assert [task["id"] for task in TaskStore(seeded_store).get_tasks("master")] == [1, 2, 3]

    @pytest.mark.asyncio
    async def test_force_replaces_existing_tasks(self, generator, document, seeded_store):
        await generator.generate(document, "ux", "UX_SPEC", seeded_store, 5, GenerationOptions(force=True))

        stored = TaskStore(seeded_store).get_tasks("master")
        assert [task["title"] for task in stored] == ["Cart page layout", "Cart totals"]


# ============================================================================
# TEST: VALIDATION AND ERRORS
# ============================================================================

class TestValidation:

    @pytest.mark.asyncio
    async def test_empty_document_rejected(self, generator, tmp_path, store_path):
        empty = tmp_path / "empty.md"
        empty.write_text("   \n", encoding="utf-8")

        with pytest.raises(ValueError, match="is empty"):
            await generator.generate(str(empty), "ux", "UX_SPEC", store_path, 5, GenerationOptions())

        generator.llm.ainvoke.assert_not_called()

    @pytest.mark.asyncio
    async def test_missing_document_raises_os_error(self, generator, tmp_path, store_path):
        with pytest.raises(OSError):
            await generator.generate(str(tmp_path / "nope.md"), "ux", "UX_SPEC", store_path, 5, GenerationOptions())

    @pytest.mark.asyncio
    async def test_unparseable_reply_raises(self, generator, document, store_path):
        generator.llm.ainvoke.return_value = AIMessage(content="I could not find any tasks.")

        with pytest.raises(ValueError):
            await generator.generate(document, "ux", "UX_SPEC", store_path, 5, GenerationOptions())

    @pytest.mark.asyncio
    async def test_task_without_title_raises(self, generator, document, store_path):
        generator.llm.ainvoke.return_value = _reply([{"id": 1, "description": "No title here"}])

        with pytest.raises(ValueError):
            await generator.generate(document, "ux", "UX_SPEC", store_path, 5, GenerationOptions())

    @pytest.mark.asyncio
    async def test_invalid_enum_values_cleaned(self, generator, document, store_path):
        generator.llm.ainvoke.return_value = _reply([{
            "id": 1,
            "title": "Orders table",
            "description": "Create the orders table in the database",
            "layer": "middleware",
            "viewport": "responsive",
            "priority": "urgent",
        }])

        result = await generator.generate(document, "db", "SDD", store_path, 5, GenerationOptions())

        task = result.generated_tasks[0]
        assert task["layer"] == "data"
        assert "viewport" not in task
        assert task["priority"] == "medium"


# ============================================================================
# TEST: PROMPTS
# ============================================================================

class TestPrompts:

    @pytest.mark.asyncio
    async def test_parent_context_and_research_in_prompt(self, generator, document, store_path):
        parent = [{"id": 3, "title": "Checkout epic", "description": "Pay for the cart", "sourceDocumentId": "prd"}]

        await generator.generate(
            document, "ux", "UX_SPEC", store_path, 8,
            GenerationOptions(research=True, current_task_start_id=4, parent_tasks_context=parent),
        )

        system_message, user_message = generator.llm.ainvoke.call_args[0][0]
        assert "ID: 3, Title: Checkout epic" in system_message.content
        assert "Research and analyze" in system_message.content
        assert "approximately 8 top-level development tasks" in system_message.content
        assert "UX/Design Specification" in system_message.content
        assert "starting task IDs from 4" in user_message.content
        assert "parent tasks provided" in user_message.content

    @pytest.mark.asyncio
    async def test_no_parent_section_for_roots(self, generator, document, store_path):
        await generator.generate(document, "prd", "PRD", store_path, 5, GenerationOptions())

        system_message, user_message = generator.llm.ainvoke.call_args[0][0]
        assert "child of a preceding document" not in system_message.content
        assert "Research and analyze" not in system_message.content
        assert "parent tasks provided" not in user_message.content


# ============================================================================
# TEST: REMAPPING
# ============================================================================

class TestRemapGeneratedTasks:

    def test_dependency_filtering(self):
        raw = [
            {"id": 1, "title": "A", "dependencies": [3, 8, 99]},
            {"id": 2, "title": "B", "dependencies": [1, 2]},
            {"id": 3, "title": "C", "dependencies": [2, 1, 2]},
        ]

        tasks = remap_generated_tasks(
            raw,
            start_id=10,
            source_id="ux",
            source_type="UX_SPEC",
            parent_tasks=[{"id": 3}],
            existing_tasks=[{"id": 8}],
        )

        # 3 is remapped to the later sibling 12, so only the existing task 8 survives
        assert tasks[0]["dependencies"] == [8]
        assert tasks[1]["dependencies"] == [10]
        assert tasks[2]["dependencies"] == [11, 10]

    def test_unmapped_dependency_kept_when_in_parent_context(self):
        raw = [{"id": 1, "title": "A", "dependencies": [4]}]

        tasks = remap_generated_tasks(raw, 5, "ux", "UX_SPEC", parent_tasks=[{"id": 4}], existing_tasks=[])

        assert tasks[0]["dependencies"] == [4]

    def test_missing_model_ids_numbered_sequentially(self):
        raw = [{"title": "A"}, {"title": "B"}]

        tasks = remap_generated_tasks(raw, 1, "prd", "PRD", parent_tasks=[], existing_tasks=[])

        assert [task["id"] for task in tasks] == [1, 2]
        assert all(task["sourceDocumentId"] == "prd" for task in tasks)
