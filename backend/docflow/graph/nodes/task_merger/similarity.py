"""Lexical similarity between two tasks."""

from typing import Any, Dict, Set

from .constants import MIN_TOKEN_LENGTH


def tokenize(text: str) -> Set[str]:
    """Lowercased whitespace tokens, dropping anything shorter than three characters."""
    return {token for token in text.lower().split() if len(token) >= MIN_TOKEN_LENGTH}


def calculate_similarity(task_a: Dict[str, Any], task_b: Dict[str, Any]) -> float:
    """
    Jaccard similarity over the title and description tokens of two tasks.

    Two empty token sets score 1.0, exactly one empty set scores 0.0.
    """
    tokens_a = tokenize(f"{task_a.get('title') or ''} {task_a.get('description') or ''}")
    tokens_b = tokenize(f"{task_b.get('title') or ''} {task_b.get('description') or ''}")

    if not tokens_a and not tokens_b:
        return 1.0
    if not tokens_a or not tokens_b:
        return 0.0

    return len(tokens_a & tokens_b) / len(tokens_a | tokens_b)
