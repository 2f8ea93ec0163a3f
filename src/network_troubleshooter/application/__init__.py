"""Diagnostic decision engine: checks, verdicts and run sequencing."""
