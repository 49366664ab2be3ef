"""
Data types and structures for the Squaring module.

Provides type-safe containers for configuration and results.
"""

from dataclasses import dataclass
from enum import Enum

import numpy as np

from src.common.types import BoundingBox, PixelBuffer
from src.squaring.projection import Projection


class SolverMethod(Enum):
    """Strategies for the 4-point projective solve."""

    CLOSED_FORM = "closed_form"  # Fixed rational formula over named terms
    LINEAR_SYSTEM = "linear_system"  # 8x8 system solved by numpy.linalg


class OutputFormat(Enum):
    """Encodings supported for the squared image."""

    PNG = "png"
    WEBP = "webp"
    BMP = "bmp"
    TIFF = "tiff"
    JPEG = "jpeg"  # No alpha channel; transparent fill becomes black

    @property
    def extension(self) -> str:
        """File extension understood by cv2.imencode."""
        return ".jpg" if self is OutputFormat.JPEG else f".{self.value}"


@dataclass(frozen=True)
class HomographyConfig:
    """Configuration for the projective solve."""

    method: SolverMethod
    epsilon: float  # Minimum |denominator| before DegenerateProjection


@dataclass(frozen=True)
class OutputConfig:
    """Configuration for encoding the squared image."""

    format: OutputFormat
    png_compression: int  # 0 (fast) .. 9 (small)
    jpeg_quality: int  # 1 .. 100


@dataclass(frozen=True)
class SquaringConfig:
    """Complete squaring module configuration."""

    homography: HomographyConfig
    output: OutputConfig


@dataclass(frozen=True)
class SquaringResult:
    """
    Output from the squaring pipeline.

    Attributes:
        image: The rectified RGBA raster of size bbox.width x bbox.height.
        quadrilateral: Hull points in canonical order, shape (4, 2).
        bounding_box: Crop region and output size.
        projection: Maps crop-local source pixels to output pixels.
        sampling_projection: Maps output pixels back to crop-local source
            pixels; the map the image was resampled through.
    """

    image: PixelBuffer
    quadrilateral: np.ndarray
    bounding_box: BoundingBox
    projection: Projection
    sampling_projection: Projection

    @property
    def width(self) -> int:
        return self.image.width

    @property
    def height(self) -> int:
        return self.image.height
