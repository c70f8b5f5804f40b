"""Example: list and diff the packages of ``docker save`` archives.

Usage:
    docker save debian:9 -o debian9.tar
    docker save debian:10 -o debian10.tar
    python examples/analyze_archive.py debian9.tar [debian10.tar]
"""

import asyncio
import logging
import sys

# Add parent directory to path
sys.path.insert(0, "src")

from container_inventory import (
    AnalyzerConfig,
    InventoryError,
    analyze_image,
    diff_images,
    prepare_image_from_archive,
    to_json,
)
from container_inventory.utils import setup_logging

setup_logging("info")
logger = logging.getLogger(__name__)

# Kernel-provided trees never carry packages
EXCLUDE = ("/proc", "/sys", "/dev")


async def analyze(archive: str) -> None:
    """Print the inventory of a single image."""
    config = AnalyzerConfig(exclude=EXCLUDE)

    try:
        with await prepare_image_from_archive(archive, config) as image:
            logger.info(f"Extracted {image.source} to {image.fs_path}")
            report = await analyze_image(image, config)
            print(to_json(report))
    except InventoryError as e:
        logger.error(f"Analysis failed: {e}")


async def compare(archive1: str, archive2: str) -> None:
    """Print the package differences between two images."""
    config = AnalyzerConfig(exclude=EXCLUDE)

    try:
        with await prepare_image_from_archive(archive1, config) as image1:
            with await prepare_image_from_archive(archive2, config) as image2:
                report = await diff_images(image1, image2, config)
                print(to_json(report))
    except InventoryError as e:
        logger.error(f"Diff failed: {e}")


if __name__ == "__main__":
    if len(sys.argv) == 2:
        asyncio.run(analyze(sys.argv[1]))
    elif len(sys.argv) == 3:
        asyncio.run(compare(sys.argv[1], sys.argv[2]))
    else:
        print(__doc__)
        sys.exit(1)
