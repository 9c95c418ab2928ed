"""
Unit Tests for the Priority Escalation Rule Engine

Target Coverage:
- Base priority lookup per document type
- +1 escalations (testStrategy, performanceGoal, reliabilityTarget, security)
- Floors and the epic rule
- Demotions (tech/SDD, short description, maintenance)
- Batch escalation identity semantics
- escalate_after_merge monotonicity
"""

import pytest

from docflow.graph.nodes.priority_escalation import (
    INVALID_TASK_REASON,
    escalate_after_merge,
    escalate_all_tasks,
    escalate_task_priority,
    get_max_priority,
    is_priority_higher,
)


LONG_DESCRIPTION = "Show every item in the shopping cart with running totals"


class TestBasePriority:
    """Base priority from sourceDocumentType."""

    @pytest.mark.parametrize("doc_type,expected", [
        ("PRD", "high"),
        ("PRODUCT_REQUIREMENTS", "high"),
        ("UX_SPEC", "medium"),
        ("DESIGN_SYSTEM", "medium"),
        ("INFRA_SPEC", "low"),
        ("SOMETHING_ELSE", "medium"),
    ])
    def test_base_priority_by_type(self, doc_type, expected):
        result = escalate_task_priority({
            "sourceDocumentType": doc_type,
            "title": "Cart totals",
            "description": LONG_DESCRIPTION,
            "dependencies": [1],
        })

        assert result.priority == expected
        assert result.escalation_reason.startswith(f"Base priority '{expected}'")

    def test_missing_type_defaults_to_medium(self):
        result = escalate_task_priority({"title": "Cart totals", "description": LONG_DESCRIPTION})

        assert result.priority == "medium"

    def test_highest_base_across_merged_types(self):
        result = escalate_task_priority({
            "sourceDocumentType": ["SDD", "PRD"],
            "title": "Cart totals",
            "description": LONG_DESCRIPTION,
        })

        assert result.priority == "high"


class TestEscalations:
    """Rules that raise priority."""

    def test_security_keyword_raises_one_level(self):
        result = escalate_task_priority({
            "sourceDocumentType": "UX_SPEC",
            "title": "Login flow",
            "description": "Let returning shoppers sign back into their account",
        })

        assert result.priority == "high"
        assert "Security/authentication task" in result.escalation_reason

    def test_each_signal_adds_a_level_and_clamps(self):
        result = escalate_task_priority({
            "sourceDocumentType": "INFRA_SPEC",
            "title": "Cart cache",
            "description": "Cache cart contents close to the shoppers",
            "testStrategy": "Load test the cache with production traffic replay",
            "reliabilityTarget": "99.9% uptime",
            "dependencies": [2],
        })

        assert result.priority == "high"
        assert "testStrategy present" in result.escalation_reason
        assert "reliabilityTarget present" in result.escalation_reason

    def test_short_test_strategy_is_ignored(self):
        result = escalate_task_priority({
            "sourceDocumentType": "UX_SPEC",
            "title": "Cart totals",
            "description": LONG_DESCRIPTION,
            "testStrategy": "unit tests",
        })

        assert result.priority == "medium"
        assert "testStrategy" not in result.escalation_reason

    def test_ux_presentation_floor(self):
        result = escalate_task_priority({
            "sourceDocumentType": "UX_SPEC",
            "layer": "presentation",
            "title": "Cart screen",
            "description": LONG_DESCRIPTION,
        })

        assert result.priority == "medium"
        assert "UX_SPEC + presentation layer" in result.escalation_reason

    def test_epic_task_is_high(self):
        result = escalate_task_priority({
            "sourceDocumentType": "INFRA_SPEC",
            "epicId": "EPIC-PAYMENTS",
            "title": "Payments epic",
            "description": "Everything needed to take card payments",
            "dependencies": [3],
        })

        assert result.priority == "high"
        assert "Epic-level task" in result.escalation_reason


class TestDemotions:
    """Rules that force low priority."""

    def test_prd_task_with_short_description_is_low(self):
        # Example: PRD base high, description "Do it" is 5 characters
        result = escalate_task_priority({"sourceDocumentType": "PRD", "description": "Do it"})

        assert result.priority == "low"
        assert "Very short description" in result.escalation_reason
        assert result.escalation_reason.startswith("Base priority 'high' from document type 'PRD'")

    def test_tech_spec_without_escalation_is_low(self):
        result = escalate_task_priority({
            "sourceDocumentType": "TECH_SPEC",
            "title": "Cart totals",
            "description": LONG_DESCRIPTION,
            "dependencies": [1],
        })

        assert result.priority == "low"
        assert "Tech/SDD task without performance goals" in result.escalation_reason

    def test_tech_spec_with_performance_goal_is_not_demoted(self):
        result = escalate_task_priority({
            "sourceDocumentType": "TECH_SPEC",
            "title": "Cart totals",
            "description": LONG_DESCRIPTION,
            "performanceGoal": "Latency < 200ms",
            "dependencies": [1],
        })

        assert result.priority == "medium"
        assert "demoted" not in result.escalation_reason

    def test_short_description_beats_epic_rule(self):
        result = escalate_task_priority({
            "sourceDocumentType": "PRD",
            "epicId": "EPIC-1",
            "title": "Checkout epic",
            "description": "Checkout",
        })

        assert result.priority == "low"

    def test_maintenance_without_dependencies_is_low(self):
        result = escalate_task_priority({
            "sourceDocumentType": "PRD",
            "title": "Refactor cart service",
            "description": "Split the cart service into smaller functions",
        })

        assert result.priority == "low"
        assert "Refactor/documentation task" in result.escalation_reason

    def test_maintenance_with_dependencies_keeps_priority(self):
        result = escalate_task_priority({
            "sourceDocumentType": "PRD",
            "title": "Refactor cart service",
            "description": "Split the cart service into smaller functions",
            "dependencies": [4],
        })

        assert result.priority == "high"

    def test_invalid_input_defaults_to_medium(self):
        result = escalate_task_priority(None)

        assert result.priority == "medium"
        assert result.escalation_reason == INVALID_TASK_REASON


class TestBatchEscalation:
    """escalate_all_tasks identity semantics."""

    def test_unchanged_tasks_keep_identity(self):
        unchanged = {
            "id": 1,
            "priority": "medium",
            "sourceDocumentType": "UX_SPEC",
            "title": "Cart totals",
            "description": LONG_DESCRIPTION,
        }
        changed = {
            "id": 2,
            "priority": "medium",
            "sourceDocumentType": "PRD",
            "title": "Cart totals",
            "description": LONG_DESCRIPTION,
        }

        result = escalate_all_tasks([unchanged, changed])

        assert result[0] is unchanged
        assert result[1] is not changed
        assert result[1]["priority"] == "high"
        assert "escalationReason" in result[1]
        assert changed["priority"] == "medium"

    def test_non_list_input_is_returned(self):
        assert escalate_all_tasks(None) is None


class TestEscalateAfterMerge:
    """Post-merge escalation never lowers priority."""

    def test_lower_result_leaves_task_untouched(self):
        task = {"id": 1, "priority": "high", "sourceDocumentType": "PRD", "description": "Do it"}

        result = escalate_after_merge(task)

        assert result is task
        assert "escalationReason" not in result

    def test_higher_result_is_applied(self):
        task = {
            "id": 1,
            "priority": "medium",
            "sourceDocumentType": "UX_SPEC",
            "title": "Login flow",
            "description": "Let returning shoppers sign back into their account",
        }

        result = escalate_after_merge(task)

        assert result is not task
        assert result["priority"] == "high"
        assert result["escalationReason"]

    @pytest.mark.parametrize("priority", ["low", "medium", "high"])
    def test_never_lower_than_input(self, priority):
        task = {"id": 1, "priority": priority, "sourceDocumentType": "SDD", "description": "Tiny"}

        result = escalate_after_merge(task)

        assert not is_priority_higher(priority, result["priority"])


class TestPriorityHelpers:

    def test_get_max_priority(self):
        assert get_max_priority("low", "high") == "high"
        assert get_max_priority("medium", None) == "medium"

    def test_is_priority_higher(self):
        assert is_priority_higher("high", "medium")
        assert not is_priority_higher("low", "low")
