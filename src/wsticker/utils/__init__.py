"""Shared helpers: durations and logging."""
