"""
LLM collaborators used by the consolidation pipeline.

- DocumentTaskGenerator: turns one document into a batch of tasks
- DocumentClassifierAgent: LLM fallback for document type classification
- MergeArbiterAgent: decides borderline duplicate pairs
"""

from .task_generator_agent import DocumentTaskGenerator
from .classifier_agent import DocumentClassifierAgent
from .merge_arbiter_agent import MergeArbiterAgent

__all__ = [
    "DocumentTaskGenerator",
    "DocumentClassifierAgent",
    "MergeArbiterAgent",
]
