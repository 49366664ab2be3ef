"""
Command-line interface for squaring up an image file.

Usage:
    python -m src.squaring.cli --image photo.jpg \\
        --points 20,10 80,30 70,90 10,70 --out squared.png
"""

import argparse
import logging
from pathlib import Path
from typing import List, Optional, Tuple

from src.squaring.processor import SquaringProcessor
from src.squaring.raster_io import read_image, write_image
from src.utils.logging_config import setup_logging

logger = logging.getLogger(__name__)


def parse_point(text: str) -> Tuple[int, int]:
    """Parse an ``x,y`` command-line token."""
    try:
        x, y = (int(v) for v in text.split(","))
    except ValueError as e:
        raise argparse.ArgumentTypeError(
            f"Invalid point '{text}': expected integers as x,y"
        ) from e
    return x, y


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Square up a quadrilateral region of an image",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("--image", type=Path, required=True, help="Input image file")
    parser.add_argument(
        "--points",
        type=parse_point,
        nargs=4,
        required=True,
        metavar="X,Y",
        help="The 4 corners of the region, in any order",
    )
    parser.add_argument(
        "--out",
        type=Path,
        default=None,
        help="Output file (default: <image>_squared.png next to the input)",
    )
    parser.add_argument(
        "--config", type=Path, default=None, help="Path to a squaring config.yaml"
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    return parser


def default_output_path(image_path: Path) -> Path:
    return image_path.with_name(f"{image_path.stem}_squared.png")


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point. Returns the process exit status."""
    args = build_parser().parse_args(argv)
    setup_logging(logging.DEBUG if args.verbose else logging.INFO)

    out_path = args.out or default_output_path(args.image)

    try:
        processor = SquaringProcessor(config_path=args.config)
        image = read_image(args.image)
        result = processor.process(image, args.points)
        output = processor.config.output
        write_image(
            result.image,
            out_path,
            png_compression=output.png_compression,
            jpeg_quality=output.jpeg_quality,
        )
    except (FileNotFoundError, ValueError) as e:
        # SquaringError is a ValueError, as are config loader failures
        logger.error(f"Squaring failed: {e}")
        print(f"\n❌ Squaring failed: {e}")
        return 1

    print(f"✓ Saved {result.width}x{result.height} image to {out_path}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
