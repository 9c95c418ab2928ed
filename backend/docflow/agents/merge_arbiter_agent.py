"""
Merge Arbiter Agent

Decides whether two borderline-similar tasks describe the same unit of work.
"""

import logging
from typing import Any, Dict, Optional

from langchain_core.messages import HumanMessage, SystemMessage
from langchain_openai import ChatOpenAI

from ..config import get_llm_model
from .response_parsing import parse_json_response

logger = logging.getLogger(__name__)


ARBITER_SYSTEM_PROMPT = (
    "You are a senior engineering lead reviewing a generated backlog for "
    "duplicate work items. Answer strictly in JSON."
)

ARBITER_USER_PROMPT_TEMPLATE = """You are analyzing two tasks from a software project to determine if they are semantically equivalent and should be merged.

Task A:
{task_a}

Task B:
{task_b}

Consider these factors:
1. Are they describing the same functionality or feature?
2. Do they target the same screen/component (if specified)?
3. Would implementing one satisfy the requirements of both?
4. Are they just different perspectives on the same work?

Respond with JSON only:
{{"shouldMerge": true|false, "reasoning": "<short explanation>", "confidence": <0.0 to 1.0>}}"""


def _describe_task(task: Dict[str, Any]) -> str:
    return "\n".join([
        f"- ID: {task.get('id')}",
        f"- Title: \"{task.get('title') or ''}\"",
        f"- Description: \"{task.get('description') or 'No description'}\"",
        f"- Source: {task.get('sourceDocumentType') or 'Unknown'} document",
        f"- Screen: {task.get('screen') or 'Not specified'}",
        f"- Component: {task.get('component') or 'Not specified'}",
    ])


class MergeArbiterAgent:
    """
    LLM judge for borderline duplicate pairs.

    Attributes:
        llm: Chat model used for the decision
    """

    def __init__(self, model_name: Optional[str] = None, temperature: float = 0.1):
        self.llm = ChatOpenAI(
            model=model_name or get_llm_model(),
            temperature=temperature
        )
        self.agent_name = "Merge_Arbiter"

    async def arbitrate(self, task_a: Dict[str, Any], task_b: Dict[str, Any]) -> Dict[str, Any]:
        """
        Ask whether two tasks should be merged.

        Returns:
            Dict with shouldMerge, reasoning and confidence

        Raises:
            ValueError: If the reply cannot be parsed
        """
        response = await self.llm.ainvoke([
            SystemMessage(content=ARBITER_SYSTEM_PROMPT),
            HumanMessage(content=ARBITER_USER_PROMPT_TEMPLATE.format(
                task_a=_describe_task(task_a),
                task_b=_describe_task(task_b),
            ))
        ])

        verdict = parse_json_response(response.content)
        if not isinstance(verdict, dict) or "shouldMerge" not in verdict:
            raise ValueError("Arbiter reply is missing shouldMerge")

        logger.info(
            f"[Merge Arbiter] Tasks {task_a.get('id')} / {task_b.get('id')}: "
            f"shouldMerge={verdict.get('shouldMerge')} confidence={verdict.get('confidence')}"
        )
        return verdict
