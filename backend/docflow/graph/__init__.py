"""LangGraph workflow for document processing and task consolidation."""
