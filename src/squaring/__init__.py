"""
Image Squaring: perspective rectification of a user-marked quadrilateral.

Maps the quadrilateral delimited by four caller-supplied corners onto an
axis-aligned rectangle the size of its bounding box.

Pipeline stages:
1. Geometric validation (strictly convex quadrilateral)
2. Canonical ordering (left end of the topmost edge first)
3. Homography solve (unit-square closed form, composed with pixel scaling)
4. Rectification (nearest-neighbor inverse warp, transparent fill)
"""

from src.squaring.config_loader import load_config
from src.squaring.errors import (
    DataUrlDecodeError,
    DegenerateProjection,
    ImageDecodeError,
    ImageEncodeError,
    InvalidQuadrilateral,
    SquaringError,
)
from src.squaring.geometric_validator import validate_quadrilateral
from src.squaring.homography import compute_rectifying_projection, compute_sampling_projection
from src.squaring.ordering import canonical_order, compute_bounding_box, order_and_bound
from src.squaring.processor import SquaringProcessor, process_image
from src.squaring.projection import Projection
from src.squaring.rectifier import rectify
from src.squaring.types import (
    OutputFormat,
    SolverMethod,
    SquaringConfig,
    SquaringResult,
)

__all__ = [
    "SquaringProcessor",
    "process_image",
    "load_config",
    "validate_quadrilateral",
    "canonical_order",
    "compute_bounding_box",
    "order_and_bound",
    "compute_rectifying_projection",
    "compute_sampling_projection",
    "rectify",
    "Projection",
    "OutputFormat",
    "SolverMethod",
    "SquaringConfig",
    "SquaringResult",
    "SquaringError",
    "InvalidQuadrilateral",
    "DegenerateProjection",
    "DataUrlDecodeError",
    "ImageDecodeError",
    "ImageEncodeError",
]
