"""Bulk note export and batched save-to-service CLI."""

__version__ = "0.1.0"
