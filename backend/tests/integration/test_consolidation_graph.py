"""
Integration Tests for the Consolidation Graph

Target Coverage:
- Routing after document processing (merge requested or not)
- End-to-end run: hierarchy -> store -> merge, with injected collaborators
- Merge step honoring the run's similarity threshold
"""

import pytest

from docflow.config import tasks_path
from docflow.graph.graph import create_consolidation_graph, route_after_processing
from docflow.services.task_store import TaskStore


def shared_checkout_task(source_id, source_type, task_id, index):
    """First task of every document describes the same checkout form."""
    if index == 0:
        title, description = "Checkout form", "Build the checkout form with card number and expiry fields"
    else:
        title, description = f"{source_id} extra {index}", f"Follow-up work item {index} for the {source_id} source"
    return {
        "id": task_id,
        "title": title,
        "description": description,
        "screen": "CheckoutScreen" if index == 0 else None,
        "status": "pending",
        "priority": "medium",
        "dependencies": [],
        "subtasks": [],
        "sourceDocumentId": source_id,
        "sourceDocumentType": source_type,
    }


@pytest.fixture
def two_document_project(make_project, prd_text, ux_text):
    return make_project(
        sources=[
            {"id": "prd", "type": "PRD", "path": "docs/prd.md"},
            {"id": "ux", "type": "UX_SPEC", "path": "docs/ux.md", "parentId": "prd"},
        ],
        documents={"docs/prd.md": prd_text, "docs/ux.md": ux_text},
    )


class TestRouting:

    @pytest.mark.parametrize("state,expected", [
        ({"merge": True, "tasks": [{"id": 1}]}, "merge_duplicates"),
        ({"merge": True, "tasks": []}, "end"),
        ({"merge": False, "tasks": [{"id": 1}]}, "end"),
        ({}, "end"),
    ])
    def test_route_after_processing(self, state, expected):
        assert route_after_processing(state) == expected


class TestConsolidationGraph:

    @pytest.mark.asyncio
    async def test_run_without_merge(self, two_document_project, make_generator):
        graph = create_consolidation_graph()
        generator = make_generator(task_factory=shared_checkout_task)

        result = await graph.ainvoke(
            {"project_root": two_document_project, "merge": False},
            {"configurable": {"generator": generator}},
        )

        assert len(result["tasks"]) == 4
        assert result["processed_sources"] == ["prd", "ux"]
        assert "merge_report" not in result
        assert result["messages"][-1].name == "HierarchyOrchestrator"

    @pytest.mark.asyncio
    async def test_run_with_merge_consolidates_duplicates(self, two_document_project, make_generator):
        graph = create_consolidation_graph()
        generator = make_generator(task_factory=shared_checkout_task)

        result = await graph.ainvoke(
            {"project_root": two_document_project, "merge": True},
            {"configurable": {"generator": generator}},
        )

        report = result["merge_report"]
        assert report["originalCount"] == 4
        assert report["finalCount"] == 3
        assert report["mergedGroups"][0]["keptId"] == 1
        assert report["mergedGroups"][0]["mergedFrom"] == [3]
        assert report["mergedGroups"][0]["strategy"] == "semantic"
        assert result["messages"][-1].name == "MergeEngine"

        stored = TaskStore(tasks_path(two_document_project)).get_tasks("master")
        assert [task["id"] for task in stored] == [1, 2, 4]
        assert stored[0]["mergedFrom"] == [3]

    @pytest.mark.asyncio
    async def test_merge_threshold_from_run_options(self, two_document_project, make_generator):
        graph = create_consolidation_graph()
        generator = make_generator(task_factory=shared_checkout_task)

        result = await graph.ainvoke(
            {
                "project_root": two_document_project,
                "merge": True,
                "merge_options": {"similarity_threshold": 1.0, "use_llm": False},
            },
            {"configurable": {"generator": generator}},
        )

        # Identical text still scores 1.0, so the shared task merges at the strictest threshold
        assert result["merge_report"]["finalCount"] == 3
