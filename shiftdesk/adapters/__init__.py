"""Persistence, config and export adapters."""
