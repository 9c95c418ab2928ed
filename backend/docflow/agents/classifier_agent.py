"""
Document Classifier Agent

LLM fallback for document type classification. Used by the classifier only
when the regex score is below the configured threshold.
"""

import logging
from typing import Any, Dict, List, Optional

from langchain_core.messages import HumanMessage, SystemMessage
from langchain_openai import ChatOpenAI

from ..config import get_llm_model
from ..graph.nodes.document_classifier import CLASSIFIER_TYPE_DESCRIPTIONS
from .response_parsing import parse_json_response

logger = logging.getLogger(__name__)


CLASSIFIER_SYSTEM_PROMPT = (
    "You are a document classification expert. Provide accurate, confident "
    "classifications based on document content and structure."
)

CLASSIFIER_USER_PROMPT_TEMPLATE = """You are an expert software architect. Analyze the following document and classify it by its primary purpose and content.

Available document types:
{type_list}

Document content:
{document_text}

Focus on the primary purpose and content structure rather than minor mentions of other topics.

Respond with JSON only:
{{"type": "<one of the types above>", "confidence": <0.0 to 1.0>, "reasoning": "<one sentence>"}}"""


class DocumentClassifierAgent:
    """
    Classifies documents with a chat model.

    Attributes:
        llm: Chat model used for classification
    """

    def __init__(self, model_name: Optional[str] = None, temperature: float = 0.0):
        self.llm = ChatOpenAI(
            model=model_name or get_llm_model(),
            temperature=temperature
        )
        self.agent_name = "Classifier_Agent"

    async def classify(self, text: str, supported_types: List[str]) -> Dict[str, Any]:
        """
        Classify a (possibly truncated) document.

        Args:
            text: Document text
            supported_types: Allowed type tags, including OTHER

        Returns:
            Dict with type, confidence and reasoning

        Raises:
            ValueError: If the reply cannot be parsed
        """
        type_list = "\n".join(
            f"- {t}: {CLASSIFIER_TYPE_DESCRIPTIONS.get(t, t)}" for t in supported_types
        )

        response = await self.llm.ainvoke([
            SystemMessage(content=CLASSIFIER_SYSTEM_PROMPT),
            HumanMessage(content=CLASSIFIER_USER_PROMPT_TEMPLATE.format(
                type_list=type_list,
                document_text=text,
            ))
        ])

        result = parse_json_response(response.content)
        if not isinstance(result, dict):
            raise ValueError("Classification reply is not a JSON object")

        logger.info(
            f"[Classifier] LLM classified document as {result.get('type')} "
            f"(confidence={result.get('confidence')})"
        )
        return result
