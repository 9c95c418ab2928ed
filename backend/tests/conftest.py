"""
Pytest Configuration and Shared Fixtures

This module provides shared fixtures for all test suites:
- Sample task lists
- A fake single-document generator
- Temporary project directories with .docflow/config.json and documents
"""

import os

os.environ["LANGCHAIN_VERBOSE"] = "false"

from langchain_core.globals import set_debug
set_debug(False)

import json
import pytest
from typing import Any, Callable, Dict, List, Optional

from docflow.graph.nodes.document_hierarchy import GenerationResult


# ============================================================================
# SAMPLE DOCUMENTS
# ============================================================================

PRD_TEXT = """# Product Requirements Document: Shop

## Problem Statement
Customers abandon carts because checkout is slow.

## User Stories
As a shopper I want to pay quickly so that I finish my purchase.

## Acceptance Criteria
Checkout completes in under a minute.
"""

UX_TEXT = """# UX Spec: Checkout Flow

## Screen: Cart
The cart screen shows each button and component in a responsive layout.

## Navigation
Wireframe in Figma covers the user flow and accessibility notes.
"""

SDD_TEXT = """# Software Design: Checkout Service

## Architecture
The checkout service exposes an interface to the payment module.
"""


@pytest.fixture
def prd_text() -> str:
    return PRD_TEXT


@pytest.fixture
def ux_text() -> str:
    return UX_TEXT


# ============================================================================
# FAKE COLLABORATORS
# ============================================================================

class FakeTaskGenerator:
    """
    In-memory stand-in for DocumentTaskGenerator.

    Records every call and returns ``tasks_per_document`` tasks numbered from
    the start id it was given. Sources listed in ``failing_sources`` raise;
    sources in ``unsuccessful_sources`` return their tasks with ``success=False``.
    """

    def __init__(
        self,
        tasks_per_document: int = 2,
        failing_sources: Optional[List[str]] = None,
        unsuccessful_sources: Optional[List[str]] = None,
        task_factory: Optional[Callable[[str, str, int, int], Dict[str, Any]]] = None,
    ):
        self.tasks_per_document = tasks_per_document
        self.failing_sources = set(failing_sources or [])
        self.unsuccessful_sources = set(unsuccessful_sources or [])
        self.task_factory = task_factory
        self.calls: List[Dict[str, Any]] = []

    async def generate(self, document_path, source_id, source_type, store_path, target_count, options):
        self.calls.append({
            "document_path": document_path,
            "source_id": source_id,
            "source_type": source_type,
            "store_path": store_path,
            "target_count": target_count,
            "options": options,
        })
        if source_id in self.failing_sources:
            raise RuntimeError(f"LLM failure for {source_id}")

        start = options.current_task_start_id
        tasks = []
        for index in range(self.tasks_per_document):
            task_id = start + index
            if self.task_factory:
                task = self.task_factory(source_id, source_type, task_id, index)
            else:
                task = {
                    "id": task_id,
                    "title": f"{source_id} task {index + 1}",
                    "description": f"Generated work item {index + 1} for the {source_id} source",
                    "status": "pending",
                    "priority": "medium",
                    "dependencies": [],
                    "subtasks": [],
                    "sourceDocumentId": source_id,
                    "sourceDocumentType": source_type,
                }
            tasks.append(task)

        return GenerationResult(
            success=source_id not in self.unsuccessful_sources,
            generated_tasks=tasks,
            next_task_id=start + len(tasks),
        )


@pytest.fixture
def fake_generator() -> FakeTaskGenerator:
    """Fake generator producing two tasks per document."""
    return FakeTaskGenerator()


@pytest.fixture
def make_generator() -> Callable[..., FakeTaskGenerator]:
    """Factory for fakes with custom failing sources or task shapes."""
    return FakeTaskGenerator


# ============================================================================
# PROJECT FIXTURES
# ============================================================================

@pytest.fixture
def make_project(tmp_path) -> Callable[..., str]:
    """
    Factory writing a project directory.

    Usage:
        root = make_project(sources=[...], documents={"docs/prd.md": "..."})

    LLM classification is disabled unless the caller overrides ``global``.
    """

    def _make(
        sources: List[Dict[str, Any]],
        documents: Optional[Dict[str, str]] = None,
        global_settings: Optional[Dict[str, Any]] = None,
    ) -> str:
        root = tmp_path / "project"
        config_dir = root / ".docflow"
        config_dir.mkdir(parents=True, exist_ok=True)

        settings = {"enableLLMClassification": False}
        settings.update(global_settings or {})
        (config_dir / "config.json").write_text(
            json.dumps({"documentSources": sources, "global": settings}),
            encoding="utf-8",
        )

        for relative_path, content in (documents or {}).items():
            path = root / relative_path
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding="utf-8")

        return str(root)

    return _make


@pytest.fixture
def project_root(make_project) -> str:
    """
    Project with a PRD root and two children (auto-typed UX spec and SDD).

    The UX source is listed before its parent to exercise sorting.
    """
    return make_project(
        sources=[
            {"id": "ux", "type": "auto", "path": "docs/ux.md", "parentId": "prd"},
            {"id": "prd", "type": "PRD", "path": "docs/prd.md", "parserConfig": {"numTasks": 7}},
            {"id": "sdd", "type": "SDD", "path": "docs/sdd.md", "parentId": "prd"},
        ],
        documents={
            "docs/prd.md": PRD_TEXT,
            "docs/ux.md": UX_TEXT,
            "docs/sdd.md": SDD_TEXT,
        },
    )


# ============================================================================
# TASK FIXTURES
# ============================================================================

@pytest.fixture
def login_tasks() -> List[Dict[str, Any]]:
    """Two tasks sharing a grouping key but worded differently."""
    return [
        {"id": 1, "title": "Implement Login", "screen": "LoginScreen"},
        {"id": 2, "title": "Create Login Implementation", "screen": "LoginScreen"},
    ]


@pytest.fixture
def borderline_tasks() -> List[Dict[str, Any]]:
    """Two login-form tasks with Jaccard similarity 0.8."""
    return [
        {
            "id": 1,
            "title": "Login form",
            "description": "Build the login form with email and password fields",
            "screen": "LoginScreen",
            "sourceDocumentId": "prd",
            "sourceDocumentType": "PRD",
            "priority": "medium",
            "dependencies": [],
        },
        {
            "id": 2,
            "title": "Login form",
            "description": "Build the login form with email and password validation",
            "screen": "LoginScreen",
            "sourceDocumentId": "ux",
            "sourceDocumentType": "UX_SPEC",
            "priority": "medium",
            "dependencies": [],
        },
    ]
