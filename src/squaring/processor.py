"""
Main processor for the Squaring module.

Orchestrates the complete pipeline:
1. Geometric validation (strict convexity of the four points)
2. Canonical ordering + bounding box
3. Homography solve
4. Rectification (inverse warp)

Implements fail-fast strategy: the first failure aborts the invocation and
no partial image is produced.
"""

import logging
from pathlib import Path
from typing import Iterable, Optional, Union

import numpy as np

from src.common.types import PixelBuffer
from src.squaring.config_loader import load_config
from src.squaring.geometric_validator import to_point_array, validate_quadrilateral
from src.squaring.homography import compute_sampling_projection
from src.squaring.ordering import order_and_bound
from src.squaring.raster_io import decode_payload, encode_image
from src.squaring.rectifier import rectify
from src.squaring.types import SquaringConfig, SquaringResult

logger = logging.getLogger(__name__)

ControlPoints = Union[np.ndarray, Iterable]


class SquaringProcessor:
    """
    Squares up a quadrilateral region of an image.

    The processor holds only its (immutable) configuration, so one instance
    can serve concurrent requests.

    Example:
        >>> processor = SquaringProcessor()
        >>> points = [(20, 10), (80, 30), (70, 90), (10, 70)]
        >>> result = processor.process(image, points)
        >>> result.width, result.height
        (70, 80)
    """

    def __init__(
        self,
        config: Optional[SquaringConfig] = None,
        config_path: Optional[Path] = None,
    ):
        """
        Initialize the squaring processor.

        Args:
            config: Pre-loaded configuration object. If None, will load from file.
            config_path: Path to config file. If None, uses default location.
        """
        if config is not None:
            self.config = config
            logger.info("Using provided configuration")
        else:
            self.config = load_config(config_path) if config_path else load_config()
            logger.info("Loaded configuration from file")

    def process(self, image: PixelBuffer, control_points: ControlPoints) -> SquaringResult:
        """
        Execute the geometric pipeline on a decoded image.

        Args:
            image: Source raster.
            control_points: Exactly four (x, y) corners, any order.

        Returns:
            SquaringResult with the rectified image and intermediate geometry.

        Raises:
            InvalidQuadrilateral: If the points are not in strict convex position.
            DegenerateProjection: If no finite projection exists.
        """
        logger.info("[Stage 1/4] Geometric Validation")
        hull = validate_quadrilateral(control_points)

        logger.info("[Stage 2/4] Canonical Ordering")
        ordered, bbox = order_and_bound(hull)
        logger.info(
            f"First corner {tuple(ordered[0].tolist())}, output size {bbox.width}x{bbox.height}"
        )

        logger.info("[Stage 3/4] Homography Solve")
        epsilon = self.config.homography.epsilon
        sampling = compute_sampling_projection(
            ordered, bbox, method=self.config.homography.method, epsilon=epsilon
        )
        projection = sampling.invert(epsilon=epsilon)

        logger.info("[Stage 4/4] Rectification")
        squared = rectify(image, bbox, sampling)

        return SquaringResult(
            image=squared,
            quadrilateral=ordered,
            bounding_box=bbox,
            projection=projection,
            sampling_projection=sampling,
        )

    def process_payload(
        self, payload: Union[str, bytes], control_points: ControlPoints
    ) -> bytes:
        """
        Decode a payload, square it, and encode the result.

        Control points are validated before the payload is decoded so bad
        geometry fails without any pixel work.

        Args:
            payload: Data URL string or raw encoded image bytes.
            control_points: Exactly four (x, y) corners, any order.

        Returns:
            Encoded image bytes in the configured output format.

        Raises:
            SquaringError: Any of its subclasses, naming the failing stage.
        """
        points = to_point_array(control_points)
        validate_quadrilateral(points)

        image = decode_payload(payload)
        logger.info(f"Decoded source image {image.width}x{image.height}")

        result = self.process(image, points)

        output = self.config.output
        encoded = encode_image(
            result.image,
            output.format,
            png_compression=output.png_compression,
            jpeg_quality=output.jpeg_quality,
        )
        logger.info(
            f"Squared image encoded as {output.format.value} ({len(encoded)} bytes)"
        )

        return encoded


def process_image(
    payload: Union[str, bytes],
    control_points: ControlPoints,
    config: Optional[SquaringConfig] = None,
) -> bytes:
    """
    Convenience function for one-shot squaring of an encoded image.

    Args:
        payload: Data URL (e.g. ``data:image/jpeg;base64,...``) or raw bytes.
        control_points: Four corners, as (x, y) pairs or {"x", "y"} mappings.
        config: Optional custom configuration. Uses default if None.

    Returns:
        Encoded squared image (PNG by default).

    Example:
        >>> png = process_image(data_uri, [{"x": 20, "y": 10}, {"x": 80, "y": 30},
        ...                                {"x": 70, "y": 90}, {"x": 10, "y": 70}])
    """
    processor = SquaringProcessor(config=config)
    return processor.process_payload(payload, control_points)
