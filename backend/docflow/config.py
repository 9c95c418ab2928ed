"""
Project Configuration

Loads the per-project configuration file (``.docflow/config.json``) that lists
the document sources to process and the run-wide defaults:

    {
        "documentSources": [
            {"id": "prd", "type": "PRD", "path": "docs/prd.md"},
            {"id": "ux", "type": "auto", "path": "docs/ux.md", "parentId": "prd",
             "parserConfig": {"numTasks": 8}, "llmFallback": true}
        ],
        "global": {
            "defaultTag": "master",
            "defaultTasksPerDocument": 10,
            "enableLLMClassification": true,
            "classificationThreshold": 0.65,
            "failFast": true
        }
    }

Environment variables (loaded from .env by the application):
    DOCFLOW_LLM_MODEL: Chat model used by the LLM collaborators
    DOCFLOW_PROJECT_ROOT: Default project root for API requests
"""

import json
import logging
import os
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

logger = logging.getLogger(__name__)


CONFIG_DIR = ".docflow"
CONFIG_FILENAME = "config.json"
TASKS_RELATIVE_PATH = os.path.join(CONFIG_DIR, "tasks", "tasks.json")

DEFAULT_LLM_MODEL = "gpt-4o-mini"
AUTO_DOCUMENT_TYPE = "auto"


# ============================================================================
# CONFIGURATION MODELS
# ============================================================================


class ParserConfig(BaseModel):
    """Per-source parser overrides."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    num_tasks: Optional[int] = Field(None, alias="numTasks", gt=0)


class DocumentSource(BaseModel):
    """
    One configured input document.

    Attributes:
        id: Unique source identifier
        type: Recognized document type tag, or "auto" to classify at run time
        path: File path, relative paths resolve against the project root
        parent_id: Id of the parent source, absent for roots
        parser_config: Per-source parser overrides
        llm_fallback: Per-source override for LLM classification fallback
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: str = Field(..., min_length=1)
    type: str = AUTO_DOCUMENT_TYPE
    path: str
    parent_id: Optional[str] = Field(None, alias="parentId")
    parser_config: ParserConfig = Field(default_factory=ParserConfig, alias="parserConfig")
    llm_fallback: Optional[bool] = Field(None, alias="llmFallback")


class GlobalSettings(BaseModel):
    """Run-wide defaults."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    default_tag: str = Field("master", alias="defaultTag")
    default_tasks_per_document: Optional[int] = Field(None, alias="defaultTasksPerDocument", gt=0)
    enable_llm_classification: bool = Field(True, alias="enableLLMClassification")
    classification_threshold: float = Field(0.65, alias="classificationThreshold", ge=0.0, le=1.0)
    fail_fast: bool = Field(True, alias="failFast")


class ProjectConfig(BaseModel):
    """Top-level project configuration."""

    model_config = ConfigDict(populate_by_name=True)

    document_sources: List[DocumentSource] = Field(default_factory=list, alias="documentSources")
    global_settings: GlobalSettings = Field(default_factory=GlobalSettings, alias="global")

    @field_validator("document_sources", mode="before")
    @classmethod
    def _coerce_sources(cls, value):
        if value is None:
            return []
        if not isinstance(value, list):
            logger.warning("[Config] documentSources is not a list, ignoring it")
            return []
        return value


# ============================================================================
# LOADERS AND PATH HELPERS
# ============================================================================


def config_path(project_root: str) -> str:
    return os.path.join(project_root, CONFIG_DIR, CONFIG_FILENAME)


def tasks_path(project_root: str) -> str:
    return os.path.join(project_root, TASKS_RELATIVE_PATH)


def resolve_document_path(project_root: str, path: str) -> str:
    """Resolve a source path against the project root unless it is absolute."""
    return path if os.path.isabs(path) else os.path.join(project_root, path)


def load_project_config(project_root: str) -> ProjectConfig:
    """
    Load ``.docflow/config.json`` from the project root.

    A missing or malformed file is logged and yields the default configuration.
    Schema violations (for example a source without a path) raise pydantic's
    ValidationError since the run cannot proceed meaningfully.

    Args:
        project_root: Project root directory

    Returns:
        Parsed ProjectConfig
    """
    path = config_path(project_root)
    if not os.path.exists(path):
        logger.warning(f"[Config] No configuration found at {path}, using defaults")
        return ProjectConfig()

    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        logger.warning(f"[Config] Could not read {path}: {e}. Using defaults.")
        return ProjectConfig()

    if not isinstance(raw, dict):
        logger.warning(f"[Config] {path} does not contain an object, using defaults")
        return ProjectConfig()

    return ProjectConfig.model_validate(raw)


def get_llm_model() -> str:
    return os.getenv("DOCFLOW_LLM_MODEL", DEFAULT_LLM_MODEL)


def get_default_project_root() -> str:
    return os.getenv("DOCFLOW_PROJECT_ROOT", ".")
