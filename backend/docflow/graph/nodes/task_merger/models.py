"""
Task Merger Data Models

Result objects returned by the merge engine. Task records themselves stay
plain dictionaries with camelCase keys, the same shape the task store and
the task generator use. Arbiter replies are validated with pydantic before
the engine acts on them.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, StrictBool, field_validator

from .constants import MergeStrategy


class ArbiterVerdict(BaseModel):
    """Reply of the merge arbiter for one borderline pair."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    should_merge: StrictBool = Field(..., alias="shouldMerge")
    confidence: float
    reasoning: str = ""

    @field_validator("confidence")
    @classmethod
    def clamp_confidence(cls, v: float) -> float:
        return max(0.0, min(1.0, v))

    @field_validator("reasoning", mode="before")
    @classmethod
    def empty_reasoning(cls, v: Any) -> Any:
        return "" if v is None else v


@dataclass
class MergeEvent:
    """
    One consolidation performed by the merge engine.

    Attributes:
        kept_id: Surviving (lowest) task id
        merged_from: Ids absorbed into the surviving task by this event
        strategy: Tier that triggered the merge
        hash: Content hash shared by the group (hash tier)
        similarity: Jaccard score of the pair (semantic tier)
        reasoning: Arbiter explanation (llm tier)
        confidence: Arbiter confidence (llm tier)
    """

    kept_id: int
    merged_from: List[int]
    strategy: MergeStrategy
    hash: Optional[str] = None
    similarity: Optional[float] = None
    reasoning: Optional[str] = None
    confidence: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the report shape, omitting evidence the tier did not produce."""
        event = {
            "keptId": self.kept_id,
            "mergedFrom": list(self.merged_from),
            "strategy": self.strategy.value if isinstance(self.strategy, MergeStrategy) else self.strategy,
        }
        if self.hash is not None:
            event["hash"] = self.hash
        if self.similarity is not None:
            event["similarity"] = round(self.similarity, 4)
        if self.reasoning is not None:
            event["reasoning"] = self.reasoning
        if self.confidence is not None:
            event["confidence"] = self.confidence
        return event


@dataclass
class MergeReport:
    """Summary of a merge run over one tag."""

    original_count: int = 0
    final_count: int = 0
    merged_groups: List[MergeEvent] = field(default_factory=list)
    hash_matches: int = 0
    semantic_matches: int = 0
    llm_decisions: int = 0
    llm_merges: int = 0
    dependency_cycles: List[List[int]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "originalCount": self.original_count,
            "finalCount": self.final_count,
            "mergedGroups": [event.to_dict() for event in self.merged_groups],
            "strategy": {
                "hashMatches": self.hash_matches,
                "semanticMatches": self.semantic_matches,
                "llmDecisions": self.llm_decisions,
                "llmMerges": self.llm_merges,
            },
            "dependencyCycles": [list(cycle) for cycle in self.dependency_cycles],
        }


@dataclass
class MergeResult:
    """Result of merging the tasks of one tag."""

    success: bool
    merged_tasks: List[Dict[str, Any]]
    merge_report: MergeReport
    telemetry: Dict[str, Any] = field(default_factory=dict)
    errors: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "mergedTasks": self.merged_tasks,
            "mergeReport": self.merge_report.to_dict(),
            "telemetry": self.telemetry,
            "errors": self.errors,
        }
