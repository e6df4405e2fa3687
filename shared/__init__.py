"""Shared logging, metrics and model utilities."""
