"""Observability: structured logging for harness runs."""
