"""Artifact generators for dependency-radar-core."""

from artifacts.generators.imports import ImportGraphGenerator

__all__ = ["ImportGraphGenerator"]
