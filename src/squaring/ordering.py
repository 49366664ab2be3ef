"""
Canonical point ordering for the Squaring module.

Rotates a validated hull so traversal starts at a reproducible corner:
the left end of the topmost edge. The same four clicks therefore always
square the same way, whatever order they were placed in.
"""

import logging
from typing import Tuple

import numpy as np

from src.common.types import BoundingBox

logger = logging.getLogger(__name__)


def find_first_corner(quad: np.ndarray) -> int:
    """
    Index of the vertex that should come first in canonical order.

    The topmost edge is the one whose midpoint has the smallest y (y grows
    downward); its left endpoint is the first corner.

    Ties between edges with the same midpoint y go to the edge whose left
    endpoint has the smaller x (then smaller y). An edge whose endpoints
    share the same x starts at the upper endpoint.

    Midpoints are compared as exact halves rather than truncated integers;
    truncation would let two edges with different midpoints tie, and the
    winner would then depend on where the hull starts.

    Args:
        quad: Ordered polygon of shape (4, 2).

    Returns:
        Index into ``quad``.
    """
    pts = np.asarray(quad)
    n = len(pts)

    best_key = None
    first = 0
    for i in range(n):
        j = (i + 1) % n
        (xi, yi), (xj, yj) = pts[i], pts[j]
        mid_y = (float(yi) + float(yj)) / 2.0

        if xi < xj or (xi == xj and yi <= yj):
            start = i
        else:
            start = j

        key = (mid_y, float(pts[start][0]), float(pts[start][1]))
        if best_key is None or key < best_key:
            best_key = key
            first = start

    return first


def canonical_order(quad: np.ndarray) -> np.ndarray:
    """
    Rotate the hull so it starts at the canonical first corner.

    Cyclic order (and therefore winding) is preserved.

    Args:
        quad: Hull of shape (4, 2) from ``validate_quadrilateral``.

    Returns:
        New array of shape (4, 2) starting at the first corner.

    Example:
        >>> quad = np.array([[90, 90], [10, 90], [10, 10], [90, 10]])
        >>> canonical_order(quad).tolist()
        [[10, 10], [90, 10], [90, 90], [10, 90]]
    """
    pts = np.asarray(quad)
    first = find_first_corner(pts)
    ordered = np.roll(pts, -first, axis=0)

    logger.debug(f"Canonical order starts at index {first}: {ordered.tolist()}")

    return ordered


def compute_bounding_box(quad: np.ndarray) -> BoundingBox:
    """Axis-aligned bounding box of the four points."""
    return BoundingBox.from_points(quad)


def order_and_bound(quad: np.ndarray) -> Tuple[np.ndarray, BoundingBox]:
    """
    Canonical order plus the bounding box of the four points.

    Returns:
        Tuple of (ordered_quad, bounding_box).
    """
    ordered = canonical_order(quad)
    bbox = compute_bounding_box(ordered)

    logger.debug(f"Bounding box: {bbox}")

    return ordered, bbox
