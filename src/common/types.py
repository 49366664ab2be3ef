"""
Common type definitions for the image squaring pipeline.

This module provides Pydantic-based type definitions for the value data
exchanged between pipeline stages: control points, bounding boxes and
RGBA pixel buffers.

These types provide:
- Type validation and conversion
- Immutable values (one instance per invocation, never shared state)
- Integration with numpy arrays and OpenCV
"""

from typing import Any, Mapping, Tuple, Union

import cv2
import numpy as np
from pydantic import BaseModel, Field, field_validator, model_validator


class ControlPoint(BaseModel):
    """
    A caller-supplied corner in source-image pixel space.

    Origin is the top-left corner of the image and y grows downward.

    Attributes:
        x: X-coordinate (horizontal).
        y: Y-coordinate (vertical, increasing down the page).

    Example:
        >>> point = ControlPoint(x=100, y=200)
        >>> point.to_tuple()
        (100, 200)
        >>> ControlPoint.from_any({"x": 10.6, "y": 3})
        ControlPoint(x=11, y=3)
    """

    model_config = {"frozen": True}

    x: int = Field(..., description="X-coordinate (horizontal)")
    y: int = Field(..., description="Y-coordinate (vertical)")

    @field_validator("x", "y", mode="before")
    @classmethod
    def _convert_to_int(cls, v: Union[int, float]) -> int:
        """
        Convert coordinate to int, rounding if float.

        Args:
            v: Coordinate value (int or float).

        Returns:
            Integer coordinate.
        """
        if isinstance(v, (int, float, np.integer, np.floating)) and not isinstance(
            v, bool
        ):
            return int(round(float(v)))
        raise ValueError(f"Coordinate must be numeric, got {type(v)}")

    @classmethod
    def from_any(cls, value: Any) -> "ControlPoint":
        """
        Build a ControlPoint from the shapes callers commonly send.

        Accepts an existing ControlPoint, a ``{"x": .., "y": ..}`` mapping
        (the JSON shape of the host front end), or an ``(x, y)`` sequence.

        Raises:
            ValueError: If the value has none of the accepted shapes.
        """
        if isinstance(value, ControlPoint):
            return value
        if isinstance(value, Mapping):
            return cls(x=value["x"], y=value["y"])
        coords = list(np.asarray(value).reshape(-1))
        if len(coords) != 2:
            raise ValueError(f"Expected 2 coordinates, got {len(coords)}")
        return cls(x=coords[0], y=coords[1])

    def to_numpy(self, dtype: type = np.int32) -> np.ndarray:
        """Convert to a numpy array of shape (2,)."""
        return np.array([self.x, self.y], dtype=dtype)

    def to_tuple(self) -> Tuple[int, int]:
        """Convert to tuple (x, y)."""
        return (self.x, self.y)

    def __repr__(self) -> str:
        return f"ControlPoint(x={self.x}, y={self.y})"


class BoundingBox(BaseModel):
    """
    Axis-aligned rectangle spanning the four quadrilateral points.

    Defines both the source crop region and the output image size. Unlike
    a detection box it may extend past the image (or start at negative
    coordinates); the rectifier treats that area as outside the source.

    Attributes:
        x_min: Minimum X-coordinate (left edge).
        y_min: Minimum Y-coordinate (top edge).
        x_max: Maximum X-coordinate (right edge).
        y_max: Maximum Y-coordinate (bottom edge).

    Example:
        >>> bbox = BoundingBox(x_min=10, y_min=10, x_max=90, y_max=70)
        >>> bbox.width, bbox.height
        (80, 60)
    """

    model_config = {"frozen": True}

    x_min: int = Field(..., description="Minimum X-coordinate (left edge)")
    y_min: int = Field(..., description="Minimum Y-coordinate (top edge)")
    x_max: int = Field(..., description="Maximum X-coordinate (right edge)")
    y_max: int = Field(..., description="Maximum Y-coordinate (bottom edge)")

    @model_validator(mode="after")
    def _validate_bbox(self) -> "BoundingBox":
        """
        Validate bbox coordinates after initialization.

        Raises:
            ValueError: If the box has no area.
        """
        if self.x_min >= self.x_max:
            raise ValueError(
                f"Invalid bbox: x_min ({self.x_min}) must be < x_max ({self.x_max})"
            )
        if self.y_min >= self.y_max:
            raise ValueError(
                f"Invalid bbox: y_min ({self.y_min}) must be < y_max ({self.y_max})"
            )
        return self

    @classmethod
    def from_points(cls, points: Union[np.ndarray, list]) -> "BoundingBox":
        """
        Compute the bounding box of a set of (x, y) points.

        Args:
            points: Array-like of shape (N, 2).

        Returns:
            BoundingBox instance.
        """
        pts = np.asarray(points).reshape(-1, 2)
        return cls(
            x_min=int(pts[:, 0].min()),
            y_min=int(pts[:, 1].min()),
            x_max=int(pts[:, 0].max()),
            y_max=int(pts[:, 1].max()),
        )

    def to_tuple(self) -> Tuple[int, int, int, int]:
        """Convert to tuple (x_min, y_min, x_max, y_max)."""
        return (self.x_min, self.y_min, self.x_max, self.y_max)

    @property
    def width(self) -> int:
        """Get bounding box width (x_max - x_min)."""
        return self.x_max - self.x_min

    @property
    def height(self) -> int:
        """Get bounding box height (y_max - y_min)."""
        return self.y_max - self.y_min

    @property
    def size(self) -> Tuple[int, int]:
        """Get (width, height)."""
        return (self.width, self.height)

    def __repr__(self) -> str:
        return (
            f"BoundingBox(x_min={self.x_min}, y_min={self.y_min}, "
            f"x_max={self.x_max}, y_max={self.y_max}, "
            f"width={self.width}, height={self.height})"
        )


class PixelBuffer(BaseModel):
    """
    Type-safe wrapper for an RGBA raster (8 bits per channel).

    This is the unit exchanged between Raster I/O and the Rectifier.

    Attributes:
        data: numpy array of shape (H, W, 4), dtype uint8, channel order RGBA.

    Example:
        >>> rgb = np.zeros((480, 640, 3), dtype=np.uint8)
        >>> buffer = PixelBuffer.from_array(rgb)
        >>> buffer.width, buffer.height
        (640, 480)
    """

    model_config = {"arbitrary_types_allowed": True, "frozen": True}

    data: np.ndarray = Field(..., description="RGBA image data as numpy array")

    @field_validator("data")
    @classmethod
    def _validate_image(cls, v: np.ndarray) -> np.ndarray:
        """
        Validate that the numpy array is an RGBA uint8 image.

        Raises:
            ValueError: If array is not a valid RGBA image.
        """
        if not isinstance(v, np.ndarray):
            raise ValueError(f"Expected numpy.ndarray, got {type(v)}")

        if v.size == 0:
            raise ValueError("Image array is empty")

        if v.ndim != 3 or v.shape[2] != 4:
            raise ValueError(f"Expected RGBA image of shape (H, W, 4), got {v.shape}")

        if v.dtype != np.uint8:
            raise ValueError(
                f"Expected uint8 dtype for image, got {v.dtype}. "
                "Images should be in range [0, 255]"
            )

        return v

    @classmethod
    def from_array(cls, array: np.ndarray) -> "PixelBuffer":
        """
        Build an RGBA buffer from a grayscale, RGB or RGBA array.

        Color-only layouts are promoted to RGBA with full opacity.

        Args:
            array: uint8 array of shape (H, W), (H, W, 1), (H, W, 3) or (H, W, 4).
                   Three-channel input is taken to be RGB.

        Raises:
            ValueError: If the layout is not one of the above.
        """
        array = np.asarray(array)
        if array.ndim == 3 and array.shape[2] == 1:
            array = np.ascontiguousarray(array[:, :, 0])

        if array.ndim == 2:
            array = cv2.cvtColor(array, cv2.COLOR_GRAY2RGBA)
        elif array.ndim == 3 and array.shape[2] == 3:
            array = cv2.cvtColor(array, cv2.COLOR_RGB2RGBA)
        elif not (array.ndim == 3 and array.shape[2] == 4):
            raise ValueError(f"Unsupported image layout with shape {array.shape}")

        return cls(data=np.ascontiguousarray(array))

    @property
    def shape(self) -> Tuple[int, ...]:
        """Get image shape (H, W, 4)."""
        return self.data.shape

    @property
    def height(self) -> int:
        """Get image height in pixels."""
        return int(self.data.shape[0])

    @property
    def width(self) -> int:
        """Get image width in pixels."""
        return int(self.data.shape[1])

    def to_numpy(self) -> np.ndarray:
        """Get underlying numpy array."""
        return self.data

    def __repr__(self) -> str:
        return f"PixelBuffer(shape={self.shape}, dtype={self.data.dtype})"
