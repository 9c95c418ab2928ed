"""
Document Type Classifier

Assigns a document type to raw document text so that sources configured with
``type: auto`` can be routed to the right adapter.

Classification Phases:
1. Regex scoring against a fixed pattern table per document type
       score = 0.4 * keyword_fraction + 0.3 * title_hit + 0.3 * section_fraction
2. LLM fallback (optional) when the best regex score is below the threshold
3. Best-effort regex result when the LLM is disabled or unusable

Key Features:
- Never raises: any failure degrades to OTHER with zero confidence
- The LLM is never consulted when the regex result clears the threshold
- Pattern table is an immutable module-level mapping
"""

import logging
import re
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Pattern, Tuple

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

logger = logging.getLogger(__name__)


# ============================================================================
# CONSTANTS
# ============================================================================


OTHER_TYPE = "OTHER"

DEFAULT_CLASSIFICATION_THRESHOLD = 0.65

LLM_MAX_CHARS = 3000

TITLE_LINES = 5

KEYWORD_WEIGHT = 0.4
TITLE_WEIGHT = 0.3
SECTION_WEIGHT = 0.3


@dataclass(frozen=True)
class TypePatterns:
    """Regex evidence for one document type."""

    keywords: Tuple[str, ...]
    title_patterns: Tuple[Pattern, ...]
    section_patterns: Tuple[Pattern, ...]
    weight_multiplier: float = 1.0


def _compile(*patterns: str) -> Tuple[Pattern, ...]:
    return tuple(re.compile(p, re.IGNORECASE) for p in patterns)


CLASSIFICATION_PATTERNS: Mapping[str, TypePatterns] = MappingProxyType({
    "PRD": TypePatterns(
        keywords=(
            "problem statement", "user stories", "acceptance criteria", "business goals",
            "product requirements", "functional requirements", "user journey",
            "success metrics", "stakeholders", "product roadmap", "market analysis",
            "competitive analysis", "user personas", "business value", "kpis",
        ),
        title_patterns=_compile(
            r"product\s+requirements?",
            r"prd\b",
            r"requirements?\s+document",
            r"product\s+spec",
        ),
        section_patterns=_compile(
            r"^#+\s*(problem\s+statement|business\s+goals|user\s+stories|acceptance\s+criteria)",
            r"^#+\s*(success\s+metrics|stakeholder|roadmap)",
        ),
    ),
    "UX_SPEC": TypePatterns(
        keywords=(
            "screen", "component", "figma", "button", "responsive", "wireframe",
            "user interface", "ui component", "design system", "interaction",
            "user experience", "navigation", "layout", "visual design",
            "accessibility", "usability", "prototype", "mockup", "user flow",
        ),
        title_patterns=_compile(
            r"ux\s+(spec|design)",
            r"ui\s+(spec|design)",
            r"design\s+(spec|document)",
            r"wireframe",
            r"user\s+interface",
        ),
        section_patterns=_compile(
            r"^#+\s*(screen|component|wireframe|user\s+flow)",
            r"^#+\s*(design\s+system|interaction|navigation)",
        ),
    ),
    "SDD": TypePatterns(
        keywords=(
            "architecture", "module", "service", "interface", "layer", "class diagram",
            "software design", "system architecture", "api design", "database schema",
            "data flow", "component diagram", "design patterns", "technical design",
            "software architecture", "system design", "implementation details",
        ),
        title_patterns=_compile(
            r"software\s+design",
            r"system\s+design",
            r"sdd\b",
            r"technical\s+design",
            r"architecture\s+document",
        ),
        section_patterns=_compile(
            r"^#+\s*(architecture|system\s+design|technical\s+design)",
            r"^#+\s*(module|service|interface|layer)",
            r"^#+\s*(database|api\s+design)",
        ),
    ),
    "TECH_SPEC": TypePatterns(
        keywords=(
            "api", "protocol", "integration", "rate limiting", "authentication",
            "technical specification", "implementation", "endpoint", "payload",
            "request", "response", "webhook", "sdk", "technical details",
            "security", "performance", "scalability", "monitoring",
        ),
        title_patterns=_compile(
            r"tech\s+spec",
            r"technical\s+spec",
            r"api\s+spec",
            r"integration\s+spec",
        ),
        section_patterns=_compile(
            r"^#+\s*(api|endpoint|integration|protocol)",
            r"^#+\s*(authentication|security|performance)",
        ),
    ),
    "INFRA_SPEC": TypePatterns(
        keywords=(
            "deployment", "kubernetes", "ci/cd", "infrastructure", "load balancer",
            "docker", "container", "orchestration", "monitoring", "logging",
            "devops", "pipeline", "automation", "provisioning", "cloud",
            "aws", "azure", "gcp", "terraform", "ansible",
        ),
        title_patterns=_compile(
            r"infra\s+spec",
            r"infrastructure",
            r"deployment\s+guide",
            r"devops",
            r"ci/cd",
        ),
        section_patterns=_compile(
            r"^#+\s*(deployment|infrastructure|devops)",
            r"^#+\s*(kubernetes|docker|container)",
            r"^#+\s*(monitoring|logging|pipeline)",
        ),
    ),
    "DESIGN_SYSTEM": TypePatterns(
        keywords=(
            "design system", "style guide", "design tokens", "component library",
            "brand guidelines", "typography", "color palette", "spacing",
            "design principles", "visual identity", "ui kit", "pattern library",
            "atomic design", "design language", "brand identity",
        ),
        title_patterns=_compile(
            r"design\s+system",
            r"style\s+guide",
            r"component\s+library",
            r"design\s+tokens",
            r"brand\s+guidelines",
        ),
        section_patterns=_compile(
            r"^#+\s*(design\s+system|style\s+guide|component\s+library)",
            r"^#+\s*(typography|color|spacing|tokens)",
        ),
    ),
})

SUPPORTED_DOCUMENT_TYPES: Tuple[str, ...] = tuple(CLASSIFICATION_PATTERNS.keys())

CLASSIFIER_TYPE_DESCRIPTIONS = {
    "PRD": "Product Requirements Document (user stories, business goals, acceptance criteria)",
    "UX_SPEC": "UX/Design Specification (screens, components, wireframes, user flows)",
    "SDD": "Software Design Document (architecture, modules, technical design)",
    "TECH_SPEC": "Technical Specification (APIs, protocols, integration details)",
    "INFRA_SPEC": "Infrastructure Specification (deployment, DevOps, cloud infrastructure)",
    "DESIGN_SYSTEM": "Design System Documentation (style guides, design tokens, component libraries)",
    "OTHER": "Does not clearly fit any of the above categories",
}


# ============================================================================
# DATA CLASSES
# ============================================================================


@dataclass
class ClassificationResult:
    """Outcome of classifying one document."""

    type: str
    confidence: float
    source: str  # "regex" | "llm" | "none"
    reasoning: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        result = {
            "type": self.type,
            "confidence": self.confidence,
            "source": self.source,
        }
        if self.reasoning is not None:
            result["reasoning"] = self.reasoning
        return result


class ClassifierReply(BaseModel):
    """Reply of the LLM classifier collaborator."""

    model_config = ConfigDict(extra="ignore")

    type: str = Field(..., min_length=1)
    confidence: float
    reasoning: Optional[str] = None

    @field_validator("confidence")
    @classmethod
    def clamp_confidence(cls, v: float) -> float:
        return max(0.0, min(1.0, v))


# ============================================================================
# REGEX CLASSIFICATION
# ============================================================================


def calculate_regex_score(
    document_text: str,
    document_type: str,
    patterns: Mapping[str, TypePatterns] = CLASSIFICATION_PATTERNS,
) -> float:
    """
    Score a document against one type's pattern table.

    Args:
        document_text: Raw document text
        document_type: Type to score against
        patterns: Pattern table (defaults to CLASSIFICATION_PATTERNS)

    Returns:
        Score in [0, 1]; 0 for types without patterns
    """
    pattern = patterns.get(document_type)
    if pattern is None:
        return 0.0

    text_lower = document_text.lower()
    lines = document_text.split("\n")

    keyword_hits = sum(1 for keyword in pattern.keywords if keyword.lower() in text_lower)
    keyword_score = min(keyword_hits / len(pattern.keywords), 1.0) if pattern.keywords else 0.0

    head = lines[:TITLE_LINES]
    title_score = 1.0 if any(p.search(line) for p in pattern.title_patterns for line in head) else 0.0

    section_hits = sum(
        1 for p in pattern.section_patterns if any(p.search(line) for line in lines)
    )
    section_score = min(section_hits / max(len(pattern.section_patterns), 1), 1.0)

    score = (
        keyword_score * KEYWORD_WEIGHT
        + title_score * TITLE_WEIGHT
        + section_score * SECTION_WEIGHT
    ) * pattern.weight_multiplier

    return min(score, 1.0)


def classify_with_regex(
    document_text: str,
    patterns: Mapping[str, TypePatterns] = CLASSIFICATION_PATTERNS,
) -> ClassificationResult:
    """Pick the highest-scoring type; ties keep the first type in table order."""
    if not isinstance(document_text, str) or not document_text.strip():
        return ClassificationResult(type=OTHER_TYPE, confidence=0.0, source="regex")

    best_type = OTHER_TYPE
    best_score = 0.0
    for document_type in patterns:
        score = calculate_regex_score(document_text, document_type, patterns)
        if score > best_score:
            best_type, best_score = document_type, score

    return ClassificationResult(type=best_type, confidence=best_score, source="regex")


# ============================================================================
# LLM CLASSIFICATION
# ============================================================================


async def classify_with_llm(
    document_text: str,
    llm_classifier: Any,
    supported_types: Tuple[str, ...] = SUPPORTED_DOCUMENT_TYPES,
) -> Optional[ClassificationResult]:
    """
    Ask the LLM collaborator to classify a document.

    The text is truncated to the first 3000 characters. Unknown types become
    OTHER and confidence is clamped to [0, 1].

    Returns:
        ClassificationResult with source "llm", or None when the collaborator
        raised or returned something unusable
    """
    truncated = document_text[:LLM_MAX_CHARS]
    type_list: List[str] = list(supported_types) + [OTHER_TYPE]

    try:
        reply = await llm_classifier.classify(truncated, type_list)
    except Exception as e:
        logger.warning(f"[Classifier] LLM classification failed: {e}")
        return None

    try:
        parsed = ClassifierReply.model_validate(reply)
    except ValidationError as e:
        logger.warning(f"[Classifier] LLM returned invalid classification {reply!r}: {e}")
        return None

    return ClassificationResult(
        type=parsed.type if parsed.type in supported_types else OTHER_TYPE,
        confidence=parsed.confidence,
        source="llm",
        reasoning=parsed.reasoning,
    )


async def classify_document(
    document_text: Any,
    use_llm_fallback: bool = False,
    threshold: float = DEFAULT_CLASSIFICATION_THRESHOLD,
    llm_classifier: Any = None,
) -> ClassificationResult:
    """
    Classify a document by type.

    Args:
        document_text: Raw document text
        use_llm_fallback: Consult the LLM when the regex score is below threshold
        threshold: Minimum regex score accepted without fallback
        llm_classifier: Object with an async ``classify(text, supported_types)``
            method, required for the fallback to run

    Returns:
        ClassificationResult; empty input yields OTHER with source "none"

    Example:
        ```python
        result = await classify_document(text, use_llm_fallback=True,
                                         llm_classifier=DocumentClassifierAgent())
        print(result.type, result.confidence, result.source)
        ```
    """
    if not isinstance(document_text, str) or not document_text.strip():
        logger.warning("[Classifier] Empty or invalid document text provided")
        return ClassificationResult(type=OTHER_TYPE, confidence=0.0, source="none")

    trimmed = document_text.strip()

    try:
        regex_result = classify_with_regex(trimmed)
        if regex_result.confidence >= threshold:
            return regex_result

        if use_llm_fallback and llm_classifier is not None:
            llm_result = await classify_with_llm(trimmed, llm_classifier)
            if llm_result is not None and llm_result.confidence > 0:
                return llm_result

        return regex_result

    except Exception as e:
        logger.warning(f"[Classifier] Classification failed: {e}")
        return ClassificationResult(type=OTHER_TYPE, confidence=0.0, source="none")
