"""
Error types for the squaring pipeline.

Every failure aborts the whole invocation; ``str(error)`` is the message
reported back to the caller.
"""


class SquaringError(ValueError):
    """Base class for all squaring failures."""


class InvalidQuadrilateral(SquaringError):
    """The four control points are not in strict convex position."""


class DegenerateProjection(SquaringError):
    """The projective solve or its inversion hit a (near) zero denominator."""


class DataUrlDecodeError(SquaringError):
    """The image payload is not a well-formed data URL."""


class ImageDecodeError(SquaringError):
    """The payload bytes could not be decoded as an image."""


class ImageEncodeError(SquaringError):
    """The output raster could not be encoded."""
