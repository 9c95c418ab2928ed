"""
Unit Tests for the Document Classifier Agent

Target Coverage:
- test_classifier_agent_initialization
- test_classify_returns_parsed_verdict
- test_prompt_lists_supported_types
- test_non_object_reply_raises

All tests use a mocked chat model; no API calls are made.
"""

import pytest
from unittest.mock import AsyncMock, MagicMock, patch
from langchain_core.messages import AIMessage

from docflow.agents.classifier_agent import DocumentClassifierAgent


@pytest.fixture
def classifier_agent():
    """DocumentClassifierAgent with a mocked chat model."""
    with patch('docflow.agents.classifier_agent.ChatOpenAI') as mock_llm_class:
        mock_llm = MagicMock()
        mock_llm.ainvoke = AsyncMock(return_value=AIMessage(
            content='```json\n{"type": "SDD", "confidence": 0.82, "reasoning": "Describes services"}\n```'
        ))
        mock_llm_class.return_value = mock_llm

        agent = DocumentClassifierAgent(model_name="gpt-4o-mini")
        agent.llm = mock_llm
        return agent


class TestDocumentClassifierAgent:

    def test_classifier_agent_initialization(self):
        with patch('docflow.agents.classifier_agent.ChatOpenAI') as mock_llm_class:
            agent = DocumentClassifierAgent(model_name="gpt-4o-mini")

        mock_llm_class.assert_called_once_with(model="gpt-4o-mini", temperature=0.0)
        assert agent.agent_name == "Classifier_Agent"

    @pytest.mark.asyncio
    async def test_classify_returns_parsed_verdict(self, classifier_agent):
        result = await classifier_agent.classify("The order service talks to Postgres.", ["PRD", "SDD", "OTHER"])

        assert result == {"type": "SDD", "confidence": 0.82, "reasoning": "Describes services"}

    @pytest.mark.asyncio
    async def test_prompt_lists_supported_types(self, classifier_agent):
        await classifier_agent.classify("Some document", ["PRD", "UX_SPEC", "OTHER"])

        _, user_message = classifier_agent.llm.ainvoke.call_args[0][0]
        assert "- PRD:" in user_message.content
        assert "- UX_SPEC:" in user_message.content
        assert "- OTHER:" in user_message.content
        assert "Some document" in user_message.content

    @pytest.mark.asyncio
    async def test_non_object_reply_raises(self, classifier_agent):
        classifier_agent.llm.ainvoke.return_value = AIMessage(content='["SDD"]')

        with pytest.raises(ValueError, match="not a JSON object"):
            await classifier_agent.classify("Some document", ["SDD", "OTHER"])

    @pytest.mark.asyncio
    async def test_llm_error_propagates(self, classifier_agent):
        classifier_agent.llm.ainvoke.side_effect = RuntimeError("rate limited")

        with pytest.raises(RuntimeError):
            await classifier_agent.classify("Some document", ["SDD", "OTHER"])
