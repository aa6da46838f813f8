"""Shared HTTP, streaming and logging helpers."""
