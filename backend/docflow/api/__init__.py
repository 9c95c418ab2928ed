"""HTTP API for the consolidation pipeline."""
