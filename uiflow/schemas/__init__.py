"""Pydantic models shared across uiflow."""
