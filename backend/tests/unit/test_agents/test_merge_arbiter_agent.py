"""
Unit Tests for the Merge Arbiter Agent

Target Coverage:
- test_arbitrate_returns_verdict
- test_prompt_describes_both_tasks
- test_missing_should_merge_raises

All tests use a mocked chat model; no API calls are made.
"""

import pytest
from unittest.mock import AsyncMock, MagicMock, patch
from langchain_core.messages import AIMessage

from docflow.agents.merge_arbiter_agent import MergeArbiterAgent


@pytest.fixture
def arbiter():
    """MergeArbiterAgent with a mocked chat model."""
    with patch('docflow.agents.merge_arbiter_agent.ChatOpenAI') as mock_llm_class:
        mock_llm = MagicMock()
        mock_llm.ainvoke = AsyncMock(return_value=AIMessage(
            content='{"shouldMerge": true, "reasoning": "Same login form", "confidence": 0.9}'
        ))
        mock_llm_class.return_value = mock_llm

        agent = MergeArbiterAgent(model_name="gpt-4o-mini")
        agent.llm = mock_llm
        return agent


class TestMergeArbiterAgent:

    @pytest.mark.asyncio
    async def test_arbitrate_returns_verdict(self, arbiter, borderline_tasks):
        verdict = await arbiter.arbitrate(*borderline_tasks)

        assert verdict["shouldMerge"] is True
        assert verdict["confidence"] == 0.9

    @pytest.mark.asyncio
    async def test_prompt_describes_both_tasks(self, arbiter, borderline_tasks):
        await arbiter.arbitrate(*borderline_tasks)

        _, user_message = arbiter.llm.ainvoke.call_args[0][0]
        assert "- ID: 1" in user_message.content
        assert "- ID: 2" in user_message.content
        assert "- Source: UX_SPEC document" in user_message.content
        assert "- Screen: LoginScreen" in user_message.content
        assert "- Component: Not specified" in user_message.content

    @pytest.mark.asyncio
    async def test_missing_should_merge_raises(self, arbiter, borderline_tasks):
        arbiter.llm.ainvoke.return_value = AIMessage(content='{"reasoning": "unsure"}')

        with pytest.raises(ValueError, match="missing shouldMerge"):
            await arbiter.arbitrate(*borderline_tasks)

    @pytest.mark.asyncio
    async def test_reject_verdict_passed_through(self, arbiter, borderline_tasks):
        arbiter.llm.ainvoke.return_value = AIMessage(
            content='```json\n{"shouldMerge": false, "reasoning": "Different fields", "confidence": 0.6}\n```'
        )

        verdict = await arbiter.arbitrate(*borderline_tasks)

        assert verdict["shouldMerge"] is False
