"""Logging, configuration, redaction and tracing helpers."""
