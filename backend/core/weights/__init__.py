"""Adaptive indicator weighting (pure logic, no I/O)."""

from core.weights.manager import AdaptiveWeightManager, project_to_bounds

__all__ = ["AdaptiveWeightManager", "project_to_bounds"]
