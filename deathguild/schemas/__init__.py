"""Pydantic models passed between components."""
