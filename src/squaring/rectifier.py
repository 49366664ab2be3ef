"""
Rectifier (warp engine)

Crops the source to the bounding box and resamples it through the inverse
of the rectifying projection with nearest-neighbor sampling. Destination
pixels that map outside the cropped source are transparent black.
"""

import logging

import numpy as np

from src.common.types import BoundingBox, PixelBuffer
from src.squaring.projection import Projection

logger = logging.getLogger(__name__)

TRANSPARENT = np.array([0, 0, 0, 0], dtype=np.uint8)


def crop_to_bbox(image: PixelBuffer, bbox: BoundingBox) -> np.ndarray:
    """
    Cut the bounding box region out of the source.

    Returns an array of exactly ``bbox.height x bbox.width``. The part of
    the box outside the image is filled transparent so it reads as
    "outside the source" during sampling.
    """
    src = image.to_numpy()
    cropped = np.zeros((bbox.height, bbox.width, 4), dtype=np.uint8)

    x0, y0 = max(bbox.x_min, 0), max(bbox.y_min, 0)
    x1, y1 = min(bbox.x_max, image.width), min(bbox.y_max, image.height)

    if x0 < x1 and y0 < y1:
        cropped[y0 - bbox.y_min : y1 - bbox.y_min, x0 - bbox.x_min : x1 - bbox.x_min] = (
            src[y0:y1, x0:x1]
        )
    else:
        logger.warning(f"Bounding box {bbox} does not overlap the source image")

    return cropped


def warp(source: np.ndarray, sampling: Projection, width: int, height: int) -> np.ndarray:
    """
    Inverse-warp an RGBA array.

    For every destination pixel (dx, dy) the sampling projection gives a
    real-valued source coordinate, which is rounded to the nearest pixel.

    ``cv2.warpPerspective`` with ``WARP_INVERSE_MAP | INTER_NEAREST`` is not
    used here: it resolves a zero homogeneous weight to coordinate 0 and
    samples through negative weights (points behind the projection's
    horizon), which would copy source pixels into areas that must stay
    transparent.

    Args:
        source: RGBA array of shape (H, W, 4).
        sampling: Backward mapping, destination -> source.
        width: Destination width.
        height: Destination height.

    Returns:
        RGBA array of shape (height, width, 4).
    """
    m = sampling.matrix
    src_h, src_w = source.shape[:2]

    dx, dy = np.meshgrid(
        np.arange(width, dtype=np.float64), np.arange(height, dtype=np.float64)
    )

    num_x = m[0, 0] * dx + m[0, 1] * dy + m[0, 2]
    num_y = m[1, 0] * dx + m[1, 1] * dy + m[1, 2]
    weight = m[2, 0] * dx + m[2, 1] * dy + m[2, 2]

    valid = weight > 0
    with np.errstate(divide="ignore", invalid="ignore"):
        sx = np.where(valid, np.rint(num_x / weight), -1.0)
        sy = np.where(valid, np.rint(num_y / weight), -1.0)

    inside = valid & (sx >= 0) & (sx < src_w) & (sy >= 0) & (sy < src_h)

    output = np.broadcast_to(TRANSPARENT, (height, width, 4)).copy()
    output[inside] = source[sy[inside].astype(np.intp), sx[inside].astype(np.intp)]

    logger.debug(
        f"Warped {int(inside.sum())}/{width * height} pixels from source, "
        "rest transparent"
    )

    return output


def rectify(image: PixelBuffer, bbox: BoundingBox, sampling: Projection) -> PixelBuffer:
    """
    Produce the squared image.

    Args:
        image: Source raster (RGBA).
        bbox: Crop region; also the output size.
        sampling: Output pixel -> crop-local source mapping, as returned by
            ``compute_sampling_projection``.

    Returns:
        RGBA PixelBuffer of size bbox.width x bbox.height.

    Example:
        >>> squared = rectify(image, bbox, sampling)
        >>> (squared.width, squared.height) == bbox.size
        True
    """
    cropped = crop_to_bbox(image, bbox)
    warped = warp(cropped, sampling, bbox.width, bbox.height)

    logger.info(f"Rectified region {bbox.to_tuple()} to {bbox.width}x{bbox.height}")

    return PixelBuffer(data=warped)
