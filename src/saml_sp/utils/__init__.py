"""Shared utilities: exceptions and timestamp helpers."""
