"""
Task Merger Constants and Enums

This module defines the merge strategies, default thresholds and the field
lists used when fingerprinting and consolidating duplicate tasks.
"""

import re
from enum import Enum


class MergeStrategy(str, Enum):
    """How a merge decision was reached."""

    HASH = "hash"          # Identical normalized content
    SEMANTIC = "semantic"  # Token overlap above the similarity threshold
    LLM = "llm"            # Borderline overlap confirmed by the arbiter


DEFAULT_MERGE_CONFIG = {
    "similarity_threshold": 0.85,
    # Pairs scoring above this floor (but below the threshold) go to the arbiter
    "llm_band_floor": 0.5,
    # Minimum arbiter confidence for an affirmative decision to count
    "llm_confidence_floor": 0.7,
}

# Fields that make up the exact-duplicate content hash
HASH_FIELDS = ("title", "description", "screen", "component", "sourceDocumentType")

# Flat metadata fields unioned across a merged group
MERGEABLE_METADATA_FIELDS = (
    "screen",
    "component",
    "epicId",
    "module",
    "layer",
    "viewport",
    "infraZone",
)

# Provenance fields that become sets after a merge
PROVENANCE_FIELDS = ("sourceDocumentId", "sourceDocumentType")

DESCRIPTION_SEPARATOR = " | "

LEADING_VERB_PATTERN = re.compile(r"^(implement|create|add|build|setup|configure)\s+")
TRAILING_NOUN_PATTERN = re.compile(r"\s+(implementation|setup|configuration)$")
PUNCTUATION_PATTERN = re.compile(r"[^\w\s]")
WHITESPACE_PATTERN = re.compile(r"\s+")

# Shorter tokens are dropped before computing similarity
MIN_TOKEN_LENGTH = 3
