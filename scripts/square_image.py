#!/usr/bin/env python3
"""
Square up an image from the command line.

Usage:
    python scripts/square_image.py --image card.jpg \
        --points 20,10 80,30 70,90 10,70 --out card_squared.png
"""

import sys
from pathlib import Path

# Add project root to path
PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from src.squaring.cli import main  # noqa: E402

if __name__ == "__main__":
    raise SystemExit(main())
