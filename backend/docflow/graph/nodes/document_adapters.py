"""
Document Type Adapters

Per-document-type knowledge used when turning a document into tasks:
- pre-prompt text appended to the generator's system prompt
- post-processing that fills type-specific task fields heuristically
- an estimate of how many tasks the document should yield

Document types form a closed set. Every type tag (including aliases such as
PRODUCT_REQUIREMENTS or UI_SPEC) resolves to one of four adapter families,
and each capability is a single dispatch over that family.

Families:
    PRD       - PRD, PRODUCT_REQUIREMENTS
    UX        - UX_SPEC, DESIGN_SPEC, UI_SPEC
    SDD       - SDD, SOFTWARE_DESIGN, TECH_SPEC, ARCHITECTURE
    FALLBACK  - everything else (INFRA_SPEC, DESIGN_SYSTEM, OTHER, unknown)
"""

import logging
import re
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Pattern, Sequence, Tuple

logger = logging.getLogger(__name__)


# ============================================================================
# ENUMS AND LOOKUP TABLES
# ============================================================================


class DocumentType(str, Enum):
    """Recognized document types."""

    PRD = "PRD"
    UX_SPEC = "UX_SPEC"
    SDD = "SDD"
    TECH_SPEC = "TECH_SPEC"
    INFRA_SPEC = "INFRA_SPEC"
    DESIGN_SYSTEM = "DESIGN_SYSTEM"
    OTHER = "OTHER"


class AdapterFamily(str, Enum):
    """Adapter implementation a document type is routed to."""

    PRD = "prd"
    UX = "ux"
    SDD = "sdd"
    FALLBACK = "fallback"


ADAPTER_FAMILY_BY_TYPE: Mapping[str, AdapterFamily] = MappingProxyType({
    "PRD": AdapterFamily.PRD,
    "PRODUCT_REQUIREMENTS": AdapterFamily.PRD,
    "UX_SPEC": AdapterFamily.UX,
    "DESIGN_SPEC": AdapterFamily.UX,
    "UI_SPEC": AdapterFamily.UX,
    "SDD": AdapterFamily.SDD,
    "SOFTWARE_DESIGN": AdapterFamily.SDD,
    "TECH_SPEC": AdapterFamily.SDD,
    "ARCHITECTURE": AdapterFamily.SDD,
})

# (minimum, maximum, value for empty text)
TASK_COUNT_BOUNDS: Mapping[AdapterFamily, Tuple[int, int, int]] = MappingProxyType({
    AdapterFamily.PRD: (3, 25, 5),
    AdapterFamily.UX: (2, 20, 4),
    AdapterFamily.SDD: (4, 30, 6),
    AdapterFamily.FALLBACK: (3, 20, 5),
})

Rule = Tuple[Pattern, str]


def _rules(*pairs: Tuple[str, str]) -> Tuple[Rule, ...]:
    return tuple((re.compile(pattern, re.IGNORECASE), value) for pattern, value in pairs)


EPIC_RULES = _rules(
    (r"auth|login|register|signup|signin", "EPIC-AUTH"),
    (r"user.*profile|profile.*management|account.*settings", "EPIC-PROFILE"),
    (r"dashboard|overview|summary|main.*page", "EPIC-DASHBOARD"),
    (r"search|filter|query|find", "EPIC-SEARCH"),
    (r"notification|alert|message|email", "EPIC-NOTIFICATIONS"),
    (r"payment|billing|subscription|checkout", "EPIC-PAYMENTS"),
    (r"admin|management|settings|configuration", "EPIC-ADMIN"),
    (r"report|analytics|metrics|insights", "EPIC-ANALYTICS"),
)

SCREEN_RULES = _rules(
    (r"login|signin|sign.*in", "LoginScreen"),
    (r"register|signup|sign.*up", "SignUpScreen"),
    (r"dashboard|home.*page|main.*screen", "DashboardScreen"),
    (r"profile|account.*settings", "ProfileScreen"),
    (r"settings|configuration", "SettingsScreen"),
    (r"search|find", "SearchScreen"),
    (r"detail|details.*page", "DetailScreen"),
    (r"list|listing|index", "ListScreen"),
)

COMPONENT_RULES = _rules(
    (r"button", "Button"),
    (r"form", "Form"),
    (r"input|field", "InputField"),
    (r"card", "Card"),
    (r"modal|dialog", "Modal"),
    (r"navigation|navbar|nav.*bar", "Navigation"),
    (r"header", "Header"),
    (r"footer", "Footer"),
    (r"sidebar", "Sidebar"),
    (r"dropdown|select", "Dropdown"),
    (r"table|grid", "DataTable"),
)

VIEWPORT_RULES = _rules(
    (r"mobile.*first|mobile.*only|phone", "mobile"),
    (r"tablet.*only|ipad", "tablet"),
    (r"desktop.*only|large.*screen", "desktop"),
)

DESIGN_TOKEN_RULES = _rules(
    (r"color|palette|theme", "color-tokens"),
    (r"spacing|margin|padding|gap", "spacing-tokens"),
    (r"typography|font|text.*style", "typography-tokens"),
    (r"shadow|elevation", "shadow-tokens"),
    (r"border|radius", "border-tokens"),
)

LAYER_RULES = _rules(
    (r"\bui\b|frontend|client|presentation|view|component", "presentation"),
    (r"business.*logic|service|domain|use.*case|workflow|process", "business"),
    (r"database|data.*layer|repository|orm|sql|nosql|storage", "data"),
    (r"infrastructure|deployment|server|cloud|docker|kubernetes|ci.*cd", "infra"),
)

MODULE_RULES = _rules(
    (r"auth|authentication|login|signin", "auth-service"),
    (r"user|profile|account", "user-service"),
    (r"payment|billing|subscription|checkout", "payment-service"),
    (r"notification|email|message|alert", "notification-service"),
    (r"search|query|index", "search-service"),
    (r"analytics|metrics|reporting|insights", "analytics-service"),
    (r"file|upload|storage|asset", "file-service"),
    (r"api.*gateway|gateway|proxy", "api-gateway"),
    (r"database|data.*access|repository", "data-access"),
    (r"configuration|config|settings", "config-service"),
)

INFRA_ZONE_RULES = _rules(
    (r"ci.*cd|pipeline|build|deployment|release", "CI/CD"),
    (r"kubernetes|k8s|container|docker|orchestration", "K8s"),
    (r"load.*balancer|proxy|nginx|traffic", "LoadBalancer"),
    (r"dns|domain|routing|gateway", "DNS"),
    (r"monitoring|logging|observability|metrics", "Monitoring"),
    (r"database|data.*store|persistence", "Database"),
    (r"cache|redis|memcached", "Cache"),
    (r"queue|message.*broker|kafka|rabbitmq", "MessageQueue"),
    (r"security|firewall|ssl|tls|certificate", "Security"),
    (r"backup|disaster.*recovery|failover", "Backup"),
)

FALLBACK_MODULE_RULES = _rules(
    (r"auth|login|signin|authentication", "auth"),
    (r"user|profile|account", "user"),
    (r"notification|email|message", "notification"),
    (r"search|query", "search"),
    (r"payment|billing", "payment"),
)

PRD_NOTE_RULES = _rules(
    (r"integration|api|database|backend", "Backend integration required - coordinate with API team"),
    (r"\bui\b|frontend|design|user interface", "Frontend implementation - ensure design system compliance"),
)

UX_NOTE_RULES = _rules(
    (r"animation|transition|micro.*interaction",
     "Complex interactions - allow extra time for animation implementation and testing"),
    (r"responsive|mobile.*first|breakpoint", "Responsive implementation - test across all target devices"),
    (r"accessibility|a11y|screen.*reader",
     "Accessibility requirements - ensure WCAG compliance and screen reader testing"),
    (r"component|reusable", "Reusable component - design for flexibility and multiple use cases"),
)

SDD_NOTE_RULES = _rules(
    (r"database|schema|migration|orm",
     "Database implementation - consider migration strategy and data consistency"),
    (r"api|service|endpoint|interface",
     "Service implementation - ensure proper error handling and documentation"),
    (r"security|auth|encryption|token",
     "Security-critical implementation - require security review and testing"),
    (r"performance|optimization|caching|scaling",
     "Performance-focused task - include benchmarking and load testing"),
    (r"integration|external.*service|third.*party",
     "External integration - account for API rate limits and error handling"),
    (r"infrastructure|deployment|docker|kubernetes",
     "Infrastructure task - test in staging environment before production"),
)

FALLBACK_LAYER_RULES = _rules(
    (r"\bui\b|interface|screen|page|component|design|frontend", "presentation"),
    (r"\bapi\b|service|backend|server|database|data", "business"),
    (r"infrastructure|deployment|docker|kubernetes|ci.*cd", "infra"),
)

FALLBACK_LAYER_NOTES = {
    "presentation": "UI/Frontend task - verify design requirements and user experience",
    "business": "Backend/Service task - ensure proper error handling and testing",
    "infra": "Infrastructure task - test in non-production environment first",
}

FALLBACK_NOTE_RULES = _rules(
    (r"integration|external|third.*party",
     "External integration - account for API dependencies and error handling"),
    (r"security|privacy|compliance", "Security-related task - ensure proper review and testing"),
    (r"performance|optimization|speed", "Performance task - include benchmarking and measurement"),
)

EXPLICIT_SCREEN_PATTERN = re.compile(r"\b([a-z][a-z0-9]*)\s+(?:screen|page)\b", re.IGNORECASE)
EXPLICIT_COMPONENT_PATTERN = re.compile(r"\b([a-z][a-z0-9]*)\s+(?:component|widget)\b", re.IGNORECASE)
EXPLICIT_MODULE_PATTERN = re.compile(
    r"\b(?:module|service)\s+(?:for|called)\s+([a-z][a-z0-9]*(?:\s+[a-z][a-z0-9]*)?)",
    re.IGNORECASE,
)
LATENCY_PATTERN = re.compile(r"(?:latency|response.*time).*?(?:<|under|below|within)\s*(\d+\s*ms)", re.IGNORECASE)
THROUGHPUT_PATTERN = re.compile(r"(?:throughput|requests.*per.*second|rps)\D*(\d+)", re.IGNORECASE)
P95_PATTERN = re.compile(r"p95.*?(?:<|under|below)\s*(\d+\s*(?:ms|s))", re.IGNORECASE)
UPTIME_PATTERN = re.compile(r"(?:uptime|availability).*?(\d+(?:\.\d+)?%)", re.IGNORECASE)
MTTR_PATTERN = re.compile(r"mttr.*?(?:<|under|below|within)\s*(\d+\s*[hm])", re.IGNORECASE)

# Words that are never a meaningful screen/component name on their own
GENERIC_WORDS = {"the", "a", "an", "new", "main", "each", "every", "this", "that", "ui"}

LONG_DESCRIPTION_LENGTH = 200
FALLBACK_LONG_DESCRIPTION_LENGTH = 300


# ============================================================================
# HELPER FUNCTIONS
# ============================================================================


def resolve_adapter_family(document_type: Optional[str]) -> AdapterFamily:
    """Map a document type tag (or alias) to its adapter family."""
    return ADAPTER_FAMILY_BY_TYPE.get((document_type or "").upper(), AdapterFamily.FALLBACK)


def _first_match(rules: Sequence[Rule], text: str) -> Optional[str]:
    for pattern, value in rules:
        if pattern.search(text):
            return value
    return None


def _task_text(task: Dict[str, Any]) -> str:
    return f"{task.get('title') or ''} {task.get('description') or ''}".lower()


def _fill(task: Dict[str, Any], name: str, value: Optional[str]) -> None:
    """Set a field only when the generator left it empty."""
    if value and not task.get(name):
        task[name] = value


def _count(pattern: str, text: str, flags: int = re.IGNORECASE) -> int:
    return len(re.findall(pattern, text, flags))


def _words_beyond(text: str, threshold: int, per_task: int) -> int:
    words = len(text.split())
    return (words - threshold) // per_task if words > threshold else 0


def _explicit_name(pattern: Pattern, text: str, suffix: str) -> Optional[str]:
    match = pattern.search(text)
    if match and match.group(1).lower() not in GENERIC_WORDS:
        return match.group(1).capitalize() + suffix
    return None


# ============================================================================
# PRE-PROMPTS
# ============================================================================


PRD_PRE_PROMPT = """
This is a Product Requirements Document (PRD). Focus on creating tasks that:

TASK GENERATION STRATEGY:
- Break down features into implementable development tasks
- Prioritize user-facing functionality and business value
- Create tasks that map to clear deliverables and milestones
- Group related functionality into logical development sequences

FIELD USAGE:
- Use 'epicId' field to group related feature tasks under the same epic identifier
- Set appropriate priority levels based on business impact
- Include performance goals if specified in the PRD"""

UX_PRE_PROMPT = """
This is a UX/Design Specification document. Focus on creating tasks that:

TASK GENERATION STRATEGY:
- Break down UI implementation by screens and components
- Prioritize user-facing interface elements and interactions
- Focus on component reusability and design system consistency
- Include accessibility implementation from the start

FIELD USAGE:
- Use 'screen' field to indicate which page/view the task belongs to
- Use 'component' field for reusable UI component tasks
- Use 'viewport' field (mobile, tablet, desktop) for responsive breakpoint requirements
- Use 'designToken' field to reference design system tokens (colors, spacing, typography)"""

SDD_PRE_PROMPT = """
This is a Software Design Document (SDD) or Technical Specification. Focus on creating tasks that:

TASK GENERATION STRATEGY:
- Break down implementation by architectural layers and modules
- Prioritize backend services, APIs, and data layer implementation
- Consider integration points between different system components
- Include infrastructure, security, and performance considerations

FIELD USAGE:
- Use 'layer' field to indicate architectural layer (presentation, business, data, infra)
- Use 'module' field to specify the backend module or service component
- Use 'infraZone' field for infrastructure-related tasks (CI, K8s, LoadBalancer, etc.)
- Use 'performanceGoal' field to specify technical performance requirements
- Use 'reliabilityTarget' field for SLO and reliability requirements"""

FALLBACK_PRE_PROMPT = """
This document does not match a specific known type, so analyze it generically. Focus on creating tasks that:

TASK GENERATION STRATEGY:
- Break down work into logical, implementable chunks
- Create tasks that represent complete, testable units of work
- Consider dependencies and logical sequencing

FIELD USAGE:
- Use available fields appropriately based on task content
- Set priority based on logical importance and dependencies
- Include estimation notes for complex or uncertain tasks"""

# (detector, extra guideline) pairs appended when the document matches
PRE_PROMPT_HINTS: Mapping[AdapterFamily, Tuple[Rule, ...]] = MappingProxyType({
    AdapterFamily.PRD: _rules(
        (r"epic|feature|user story|acceptance criteria",
         "- Pay special attention to epic boundaries and feature groupings mentioned in the document"),
        (r"business rule|logic|workflow|process",
         "- Ensure business rules and workflows are captured in task details and test strategies"),
    ),
    AdapterFamily.UX: _rules(
        (r"screen|page|view|layout|wireframe",
         "- Pay special attention to screen boundaries and page-level implementations"),
        (r"component|widget|element|control|button|form|input",
         "- Focus on creating reusable components that can be shared across screens"),
        (r"click|hover|tap|scroll|swipe|gesture|animation|transition",
         "- Ensure interactive behaviors and animations are captured in task details"),
        (r"responsive|mobile|tablet|desktop|breakpoint|viewport",
         "- Include responsive design requirements and breakpoint considerations in tasks"),
        (r"accessibility|a11y|screen reader|keyboard|aria|wcag",
         "- Ensure accessibility requirements (ARIA, keyboard navigation, screen readers) are included"),
    ),
    AdapterFamily.SDD: _rules(
        (r"architecture|system.*design|layer|tier|module",
         "- Pay special attention to architectural layer boundaries and module interfaces"),
        (r"database|schema|table|entity|model|orm",
         "- Focus on data layer implementation and database schema tasks"),
        (r"api|endpoint|service|interface|contract|rest|graphql",
         "- Ensure API design and service interface tasks are clearly defined"),
        (r"infrastructure|deployment|docker|kubernetes|cloud|server",
         "- Include infrastructure setup and deployment automation tasks"),
        (r"security|authentication|authorization|encryption|token",
         "- Ensure security implementation requirements are captured in relevant tasks"),
        (r"performance|optimization|caching|scaling|load.*balancing",
         "- Include performance optimization and scalability requirements in tasks"),
    ),
    AdapterFamily.FALLBACK: _rules(
        (r"feature|functionality|requirement|capability",
         "- This appears to contain feature descriptions - focus on user-facing functionality"),
        (r"api|database|service|component|architecture",
         "- Technical implementation details detected - include appropriate architecture considerations"),
        (r"\bui\b|interface|screen|page|component|design",
         "- UI/interface elements mentioned - consider user experience and design implementation"),
        (r"workflow|process|procedure|step|guideline",
         "- Process or workflow content detected - break down into actionable implementation steps"),
    ),
})

BASE_PRE_PROMPTS = {
    AdapterFamily.PRD: PRD_PRE_PROMPT,
    AdapterFamily.UX: UX_PRE_PROMPT,
    AdapterFamily.SDD: SDD_PRE_PROMPT,
    AdapterFamily.FALLBACK: FALLBACK_PRE_PROMPT,
}


def get_pre_prompt(document_type: Optional[str], document_text: str) -> str:
    """
    Build the type-specific addition to the generator's system prompt.

    Args:
        document_type: Resolved document type tag
        document_text: Document content, scanned for extra guidance hints

    Returns:
        Prompt text
    """
    family = resolve_adapter_family(document_type)
    prompt = BASE_PRE_PROMPTS[family]
    hints = [hint for pattern, hint in PRE_PROMPT_HINTS[family] if pattern.search(document_text or "")]
    if hints:
        prompt += "\n" + "\n".join(hints)
    return prompt


# ============================================================================
# POST-PROCESSING
# ============================================================================


def _post_process_prd(task: Dict[str, Any], index: int) -> None:
    text = _task_text(task)
    _fill(task, "epicId", _first_match(EPIC_RULES, text) or f"EPIC-FEATURE-{index // 3 + 1}")

    description = task.get("description") or ""
    if len(description) > LONG_DESCRIPTION_LENGTH:
        _fill(task, "estimationNote", "Complex feature - consider breaking into smaller tasks")
    else:
        _fill(task, "estimationNote", _first_match(PRD_NOTE_RULES, text))

    if re.search(r"performance|speed|load|response time", description, re.IGNORECASE):
        _fill(task, "performanceGoal", "Follow application performance standards")


def _post_process_ux(task: Dict[str, Any]) -> None:
    text = _task_text(task)
    _fill(task, "screen", _explicit_name(EXPLICIT_SCREEN_PATTERN, text, "Screen") or _first_match(SCREEN_RULES, text))
    _fill(task, "component", _explicit_name(EXPLICIT_COMPONENT_PATTERN, text, "Component")
          or _first_match(COMPONENT_RULES, text))
    _fill(task, "viewport", _first_match(VIEWPORT_RULES, text))
    _fill(task, "designToken", _first_match(DESIGN_TOKEN_RULES, text))
    _fill(task, "layer", "presentation")
    _fill(task, "estimationNote", _first_match(UX_NOTE_RULES, text))

    if re.search(r"performance|load|render|paint", task.get("description") or "", re.IGNORECASE):
        _fill(task, "performanceGoal", "UI load time < 1s, smooth 60fps animations")


def _performance_goal(text: str) -> Optional[str]:
    match = LATENCY_PATTERN.search(text)
    if match:
        return f"Latency < {match.group(1)}"
    match = THROUGHPUT_PATTERN.search(text)
    if match:
        return f"{match.group(1)} RPS minimum"
    match = P95_PATTERN.search(text)
    if match:
        return f"P95 < {match.group(1)}"
    if re.search(r"high.*performance|fast|optimization|speed", text):
        return "High performance requirements - optimize for speed"
    if re.search(r"scalability|scaling|\bload\b", text):
        return "Must handle high load and scale horizontally"
    if re.search(r"real.*time|instant|immediate", text):
        return "Real-time performance required"
    return None


def _reliability_target(text: str) -> Optional[str]:
    match = UPTIME_PATTERN.search(text)
    if match:
        return f"{match.group(1)} uptime"
    match = MTTR_PATTERN.search(text)
    if match:
        return f"MTTR < {match.group(1)}"
    if re.search(r"high.*availability|fault.*tolerant", text):
        return "99.9% uptime minimum"
    if re.search(r"disaster.*recovery|backup|failover", text):
        return "Disaster recovery capable"
    if re.search(r"mission.*critical|critical.*system", text):
        return "99.99% uptime - mission critical"
    return None


def _post_process_sdd(task: Dict[str, Any]) -> None:
    text = _task_text(task)
    _fill(task, "layer", _first_match(LAYER_RULES, text))

    explicit = EXPLICIT_MODULE_PATTERN.search(text)
    module = re.sub(r"\s+", "-", explicit.group(1).strip()) if explicit else _first_match(MODULE_RULES, text)
    _fill(task, "module", module)

    _fill(task, "infraZone", _first_match(INFRA_ZONE_RULES, text))
    _fill(task, "performanceGoal", _performance_goal(text))
    _fill(task, "reliabilityTarget", _reliability_target(text))
    _fill(task, "estimationNote", _first_match(SDD_NOTE_RULES, text))


def _post_process_fallback(task: Dict[str, Any]) -> None:
    text = _task_text(task)
    layer = _first_match(FALLBACK_LAYER_RULES, text)
    _fill(task, "layer", layer)
    if layer:
        _fill(task, "estimationNote", FALLBACK_LAYER_NOTES[layer])
    _fill(task, "module", _first_match(FALLBACK_MODULE_RULES, text))

    if len(task.get("description") or "") > FALLBACK_LONG_DESCRIPTION_LENGTH:
        _fill(task, "estimationNote", "Complex task - consider breaking into smaller subtasks")
    else:
        _fill(task, "estimationNote", _first_match(FALLBACK_NOTE_RULES, text))

    if re.search(r"performance|speed|fast|optimization", text):
        _fill(task, "performanceGoal", "Meet standard application performance requirements")


def post_process_tasks(
    document_type: Optional[str],
    tasks: List[Dict[str, Any]],
    document_id: str,
) -> List[Dict[str, Any]]:
    """
    Fill type-specific fields on freshly generated tasks.

    Values the generator already supplied are never overwritten. Provenance
    fields are set to the document id and the given type.

    Args:
        document_type: Resolved document type tag
        tasks: Generated tasks
        document_id: Source document id

    Returns:
        New list of processed task copies
    """
    family = resolve_adapter_family(document_type)
    processed = []

    for index, task in enumerate(tasks):
        updated = dict(task)
        updated["sourceDocumentId"] = document_id
        updated["sourceDocumentType"] = document_type or DocumentType.OTHER.value

        if family is AdapterFamily.PRD:
            _post_process_prd(updated, index)
        elif family is AdapterFamily.UX:
            _post_process_ux(updated)
        elif family is AdapterFamily.SDD:
            _post_process_sdd(updated)
        else:
            _post_process_fallback(updated)

        processed.append(updated)

    return processed


# ============================================================================
# TASK COUNT ESTIMATION
# ============================================================================


def _estimate_prd(text: str) -> int:
    count = 3
    count += _count(r"(?:feature|functionality|capability|requirement)s?:", text)
    count += int(_count(r"(?:as a|user story|story|shall|should|must).*(?:so that|in order to)", text) * 0.8)
    count += int(_count(r"^#+\s", text, re.MULTILINE) * 0.4)
    count += int(_count(r"api|integration|endpoint|service|webhook", text) * 0.3)
    count += int(_count(r"page|screen|form|button|interface|component", text) * 0.2)
    return count + _words_beyond(text, 2000, 500)


def _estimate_ux(text: str) -> int:
    count = 2
    count += _count(r"screen|page|view|layout|wireframe", text)
    count += int(_count(r"component|widget|button|form|input|card|modal", text) * 0.6)
    count += int(_count(r"click|hover|tap|animation|transition|gesture", text) * 0.4)
    count += int(_count(r"responsive|mobile|tablet|desktop|breakpoint", text) * 0.3)
    count += int(_count(r"accessibility|a11y|screen reader|keyboard|aria", text) * 0.5)
    return count + _words_beyond(text, 1500, 300)


def _estimate_sdd(text: str) -> int:
    count = 4
    count += int(_count(r"module|service|component|layer|tier", text) * 0.8)
    count += int(_count(r"api|endpoint|service|interface|contract", text) * 0.6)
    count += int(_count(r"database|table|schema|entity|model|migration", text) * 0.7)
    count += int(_count(r"deployment|docker|kubernetes|server|cloud|infrastructure", text) * 0.5)
    count += int(_count(r"integration|external.*service|third.*party|webhook", text) * 0.8)
    count += int(_count(r"security|authentication|authorization|encryption", text) * 0.4)
    return count + _words_beyond(text, 2500, 400)


def _estimate_fallback(text: str) -> int:
    count = 3
    count += int(_count(r"^(?:#+\s|\d+\.)", text, re.MULTILINE) * 0.5)
    count += int(_count(r"requirement|must|should|shall|need to|has to", text) * 0.3)
    count += int(_count(r"feature|functionality|capability|function", text) * 0.4)
    count += int(_count(r"implement|build|create|develop|code|setup", text) * 0.2)
    count += int(_count(r"^(?:[-*+]\s|\d+\.\s)", text, re.MULTILINE) * 0.1)
    return count + _words_beyond(text, 1000, 400)


def estimate_task_count(document_type: Optional[str], document_text: Optional[str]) -> int:
    """
    Estimate how many top-level tasks a document should produce.

    Returns:
        Count clamped to the family's bounds (PRD 3-25, UX 2-20, SDD 4-30,
        fallback 3-20); the family default for empty text
    """
    family = resolve_adapter_family(document_type)
    minimum, maximum, empty_default = TASK_COUNT_BOUNDS[family]

    if not isinstance(document_text, str) or not document_text.strip():
        return empty_default

    if family is AdapterFamily.PRD:
        estimate = _estimate_prd(document_text)
    elif family is AdapterFamily.UX:
        estimate = _estimate_ux(document_text)
    elif family is AdapterFamily.SDD:
        estimate = _estimate_sdd(document_text)
    else:
        estimate = _estimate_fallback(document_text)

    return max(minimum, min(estimate, maximum))
