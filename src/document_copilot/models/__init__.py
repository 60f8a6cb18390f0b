"""Pydantic models for the Document Copilot service."""
