"""Probe execution, logging and error types."""
