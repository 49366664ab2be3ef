"""
Geometric validation functions for the Squaring module.

Validates that the four caller-supplied control points form a strictly
convex quadrilateral before any projective solve is attempted.
"""

import logging
from typing import Iterable, Union

import cv2
import numpy as np

from src.common.types import ControlPoint
from src.squaring.errors import InvalidQuadrilateral

logger = logging.getLogger(__name__)


def to_point_array(points: Union[np.ndarray, Iterable]) -> np.ndarray:
    """
    Convert control points in any accepted shape to an int32 array.

    Args:
        points: ControlPoint objects, ``{"x", "y"}`` mappings, or (x, y) pairs.

    Returns:
        Array of shape (N, 2), dtype int32.
    """
    if isinstance(points, np.ndarray):
        if points.size and (points.ndim != 2 or points.shape[1] != 2):
            raise InvalidQuadrilateral(
                f"Expected control points of shape (N, 2), got {points.shape}"
            )
        items = list(points)
    else:
        items = list(points)

    try:
        control_points = [ControlPoint.from_any(p) for p in items]
    except (KeyError, TypeError, ValueError) as e:
        raise InvalidQuadrilateral(f"Malformed control point: {e}") from e

    if not control_points:
        return np.zeros((0, 2), dtype=np.int32)
    return np.array([p.to_tuple() for p in control_points], dtype=np.int32)


def signed_area(quad: np.ndarray) -> float:
    """
    Shoelace sum of an ordered polygon (twice the signed area).

    In image coordinates (y down) a positive value means the vertices run
    clockwise as seen on screen.
    """
    pts = np.asarray(quad, dtype=np.float64)
    x, y = pts[:, 0], pts[:, 1]
    return float(np.sum(x * np.roll(y, -1) - np.roll(x, -1) * y))


def edge_cross_products(quad: np.ndarray) -> np.ndarray:
    """
    Cross products of consecutive edges (P_i -> P_i+1) x (P_i+1 -> P_i+2).

    All entries share one strict sign iff the polygon is strictly convex.
    """
    pts = np.asarray(quad, dtype=np.float64)
    v1 = np.roll(pts, -1, axis=0) - pts
    v2 = np.roll(pts, -2, axis=0) - np.roll(pts, -1, axis=0)
    return v1[:, 0] * v2[:, 1] - v1[:, 1] * v2[:, 0]


def validate_quadrilateral(points: Union[np.ndarray, Iterable]) -> np.ndarray:
    """
    Compute the convex hull of four control points and check it is a quad.

    The hull must keep all four input points as vertices: a point strictly
    inside the triangle of the others, a duplicate point, or three collinear
    points all leave fewer than four hull vertices (or a zero-length turn)
    and are rejected.

    Args:
        points: Exactly four control points in any order.

    Returns:
        int32 array of shape (4, 2): the hull, clockwise as seen on screen
        (for an upright rectangle: TL, TR, BR, BL up to rotation).

    Raises:
        InvalidQuadrilateral: If there are not exactly four points or they
            are not in strict convex position.

    Example:
        >>> hull = validate_quadrilateral([(10, 90), (90, 10), (10, 10), (90, 90)])
        >>> sorted(map(tuple, hull.tolist()))
        [(10, 10), (10, 90), (90, 10), (90, 90)]
    """
    pts = to_point_array(points)

    if pts.shape != (4, 2):
        raise InvalidQuadrilateral(
            f"Expected exactly 4 control points, got {len(pts)}"
        )

    hull = cv2.convexHull(pts.reshape(-1, 1, 2)).reshape(-1, 2)

    if len(hull) != 4:
        logger.warning(
            f"Convex hull has {len(hull)} vertices, input points: {pts.tolist()}"
        )
        raise InvalidQuadrilateral(
            "Non-convex quadrilateral: the four points must all be corners "
            f"of their convex hull (hull has {len(hull)} vertices)"
        )

    crosses = edge_cross_products(hull)
    if not (np.all(crosses > 0) or np.all(crosses < 0)):
        logger.warning(f"Degenerate hull turns. Cross products: {crosses.tolist()}")
        raise InvalidQuadrilateral(
            "Non-convex quadrilateral: three of the points are collinear"
        )

    if signed_area(hull) < 0:
        hull = hull[::-1]

    hull = np.ascontiguousarray(hull, dtype=np.int32)
    logger.debug(f"Validated quadrilateral hull: {hull.tolist()}")

    return hull
