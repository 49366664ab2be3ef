"""
Common types shared across the image squaring pipeline.

This module provides standardized value types for the geometry and raster
stages, ensuring consistency and type safety between modules.
"""

from src.common.types import BoundingBox, ControlPoint, PixelBuffer

__all__ = ["BoundingBox", "ControlPoint", "PixelBuffer"]
