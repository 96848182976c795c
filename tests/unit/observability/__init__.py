"""Tests for the observability package (logging, metrics, tracing)."""
