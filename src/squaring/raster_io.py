"""
Raster I/O

Decodes embedded image payloads (data URLs or raw bytes) into RGBA pixel
buffers and encodes squared results back to file formats. OpenCV does the
format sniffing and codec work; channel order is converted to RGBA at the
boundary so the rest of the pipeline never sees BGR.
"""

import base64
import binascii
import logging
import re
from pathlib import Path
from typing import Optional, Union
from urllib.parse import unquote_to_bytes

import cv2
import numpy as np

from src.common.types import PixelBuffer
from src.squaring.errors import DataUrlDecodeError, ImageDecodeError, ImageEncodeError
from src.squaring.types import OutputFormat

logger = logging.getLogger(__name__)

DATA_URL_PREFIX = "data:"
_ASCII_WHITESPACE = re.compile(r"[\t\n\f\r ]+")


def _forgiving_base64_decode(text: str) -> bytes:
    """
    Base64 decoding that ignores ASCII whitespace and missing padding.

    Raises:
        DataUrlDecodeError: On characters outside the base64 alphabet or an
            impossible length.
    """
    text = _ASCII_WHITESPACE.sub("", text)
    if len(text) % 4 == 0 and text.endswith("=="):
        text = text[:-2]
    elif len(text) % 4 == 0 and text.endswith("="):
        text = text[:-1]

    if len(text) % 4 == 1:
        raise DataUrlDecodeError("Invalid base64 payload length in data URL")

    text += "=" * (-len(text) % 4)
    try:
        return base64.b64decode(text, validate=True)
    except (binascii.Error, ValueError) as e:
        raise DataUrlDecodeError(f"Invalid base64 payload in data URL: {e}") from e


def decode_data_url(uri: str) -> bytes:
    """
    Extract the body of a ``data:[<mediatype>][;base64],<data>`` URL.

    Args:
        uri: The data URL, e.g. as produced by a browser FileReader.

    Returns:
        Decoded body bytes.

    Raises:
        DataUrlDecodeError: If the URL is malformed.

    Example:
        >>> decode_data_url("data:text/plain;base64,aGk=")
        b'hi'
    """
    if not isinstance(uri, str):
        raise DataUrlDecodeError(f"Expected data URL string, got {type(uri).__name__}")

    stripped = uri.strip()
    if stripped[: len(DATA_URL_PREFIX)].lower() != DATA_URL_PREFIX:
        raise DataUrlDecodeError("Not a data URL: missing 'data:' scheme")

    header, sep, body = stripped[len(DATA_URL_PREFIX) :].partition(",")
    if not sep:
        raise DataUrlDecodeError("Not a data URL: missing ',' separator")

    params = [p.strip() for p in header.split(";")]
    is_base64 = len(params) > 1 and params[-1].lower() == "base64"

    logger.debug(
        f"Data URL media type '{params[0] or 'text/plain'}', "
        f"base64={is_base64}, {len(body)} encoded chars"
    )

    if is_base64:
        # Percent-escapes are allowed in base64 bodies too
        return _forgiving_base64_decode(unquote_to_bytes(body).decode("ascii", "replace"))
    return unquote_to_bytes(body)


def _to_rgba(decoded: np.ndarray) -> np.ndarray:
    """Convert an OpenCV-decoded array (gray / BGR / BGRA, 8 or 16 bit) to RGBA8."""
    if decoded.dtype == np.uint16:
        decoded = (decoded >> 8).astype(np.uint8)
    elif decoded.dtype != np.uint8:
        decoded = cv2.normalize(decoded, None, 0, 255, cv2.NORM_MINMAX).astype(np.uint8)

    if decoded.ndim == 3 and decoded.shape[2] == 1:
        decoded = np.ascontiguousarray(decoded[:, :, 0])

    if decoded.ndim == 2:
        return cv2.cvtColor(decoded, cv2.COLOR_GRAY2RGBA)
    if decoded.shape[2] == 3:
        return cv2.cvtColor(decoded, cv2.COLOR_BGR2RGBA)
    if decoded.shape[2] == 4:
        return cv2.cvtColor(decoded, cv2.COLOR_BGRA2RGBA)

    raise ImageDecodeError(f"Unsupported channel layout {decoded.shape}")


def decode_image(data: bytes) -> PixelBuffer:
    """
    Decode encoded image bytes, sniffing the format from the content.

    Args:
        data: Encoded image (PNG, JPEG, WebP, BMP, TIFF, ...).

    Returns:
        RGBA PixelBuffer.

    Raises:
        ImageDecodeError: If the bytes are empty or not a decodable image.
    """
    if not data:
        raise ImageDecodeError("Image payload is empty")

    buffer = np.frombuffer(data, dtype=np.uint8)
    try:
        decoded = cv2.imdecode(buffer, cv2.IMREAD_UNCHANGED)
    except cv2.error as e:
        raise ImageDecodeError(f"Could not decode image payload: {e}") from e

    if decoded is None or decoded.size == 0:
        raise ImageDecodeError(
            f"Could not decode image payload ({len(data)} bytes): unknown or corrupt format"
        )

    rgba = _to_rgba(decoded)
    logger.debug(f"Decoded image {rgba.shape[1]}x{rgba.shape[0]} from {len(data)} bytes")

    return PixelBuffer(data=rgba)


def decode_payload(payload: Union[str, bytes, bytearray]) -> PixelBuffer:
    """
    Decode either a data URL string or raw image bytes.

    Raises:
        DataUrlDecodeError: For malformed data URLs.
        ImageDecodeError: For undecodable image content.
    """
    if isinstance(payload, str):
        return decode_image(decode_data_url(payload))
    if isinstance(payload, (bytes, bytearray)):
        return decode_image(bytes(payload))
    raise ImageDecodeError(f"Unsupported payload type: {type(payload).__name__}")


def encode_image(
    image: PixelBuffer,
    fmt: Union[OutputFormat, str] = OutputFormat.PNG,
    png_compression: int = 3,
    jpeg_quality: int = 95,
) -> bytes:
    """
    Encode an RGBA buffer.

    JPEG has no alpha channel, so transparent pixels come out black.

    Args:
        image: Raster to encode.
        fmt: Target format.
        png_compression: zlib level for PNG (0-9).
        jpeg_quality: Quality for JPEG (1-100).

    Returns:
        Encoded bytes.

    Raises:
        ImageEncodeError: If the format is unknown or encoding fails.
    """
    try:
        fmt = OutputFormat(fmt)
    except ValueError as e:
        raise ImageEncodeError(f"Unsupported output format: {fmt}") from e

    rgba = image.to_numpy()
    params = []
    if fmt is OutputFormat.JPEG:
        pixels = cv2.cvtColor(rgba, cv2.COLOR_RGBA2BGR)
        params = [cv2.IMWRITE_JPEG_QUALITY, int(jpeg_quality)]
    else:
        pixels = cv2.cvtColor(rgba, cv2.COLOR_RGBA2BGRA)
        if fmt is OutputFormat.PNG:
            params = [cv2.IMWRITE_PNG_COMPRESSION, int(png_compression)]

    try:
        ok, encoded = cv2.imencode(fmt.extension, pixels, params)
    except cv2.error as e:
        raise ImageEncodeError(f"Failed to encode {fmt.value}: {e}") from e

    if not ok:
        raise ImageEncodeError(f"Failed to encode {fmt.value} image")

    logger.debug(f"Encoded {image.width}x{image.height} image as {fmt.value} ({encoded.size} bytes)")

    return encoded.tobytes()


def format_from_path(path: Path) -> OutputFormat:
    """Pick the output format from a file suffix."""
    suffix = path.suffix.lower().lstrip(".")
    aliases = {"jpg": "jpeg", "tif": "tiff"}
    try:
        return OutputFormat(aliases.get(suffix, suffix))
    except ValueError as e:
        raise ImageEncodeError(f"Unsupported output file type: '{path.suffix}'") from e


def read_image(path: Path) -> PixelBuffer:
    """
    Load an image file into an RGBA buffer.

    Raises:
        FileNotFoundError: If the file does not exist.
        ImageDecodeError: If it cannot be decoded.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Image file not found: {path}")
    return decode_image(path.read_bytes())


def write_image(
    image: PixelBuffer,
    path: Path,
    fmt: Optional[Union[OutputFormat, str]] = None,
    png_compression: int = 3,
    jpeg_quality: int = 95,
) -> Path:
    """
    Encode and write an image, inferring the format from the suffix.

    Args:
        image: Raster to write.
        path: Destination file; parent directories are created.
        fmt: Explicit format, overriding the suffix.
        png_compression: zlib level for PNG (0-9).
        jpeg_quality: Quality for JPEG (1-100).

    Returns:
        The written path.
    """
    path = Path(path)
    data = encode_image(
        image,
        fmt if fmt is not None else format_from_path(path),
        png_compression=png_compression,
        jpeg_quality=jpeg_quality,
    )
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)
    logger.info(f"Wrote {path} ({len(data)} bytes)")
    return path
