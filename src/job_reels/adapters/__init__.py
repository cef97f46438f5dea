"""Adapters for external collaborators (LLM, content, renderers, publishers)."""
