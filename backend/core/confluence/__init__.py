"""Confluence scoring (pure logic, no I/O)."""

from core.confluence.engine import ConfluenceEngine, volume_factor

__all__ = ["ConfluenceEngine", "volume_factor"]
