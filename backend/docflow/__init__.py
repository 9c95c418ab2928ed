"""
docflow - multi-document task consolidation service.

Turns project documents (PRDs, UX specs, SDDs) into a single de-duplicated,
priority-ranked task backlog.
"""

__version__ = "0.1.0"
