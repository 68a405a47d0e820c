"""Shift lifecycle and quality-audit engine for cleaning operations."""

from .app import create_app

__all__ = ["create_app"]
