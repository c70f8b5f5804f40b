"""Example: squash layer tarballs and compare the result with a directory.

Usage:
    python examples/squash_layers.py OUTPUT_DIR LAYER.tar [LAYER.tar ...]
    python examples/squash_layers.py --compare DIR_A DIR_B
"""

import logging
import sys

# Add parent directory to path
sys.path.insert(0, "src")

from container_inventory import ExtractionError, extract_layers
from container_inventory.utils import compare, setup_logging, snapshot

setup_logging("debug")
logger = logging.getLogger(__name__)


def squash(output_dir: str, layers: list[str]) -> None:
    """Apply layers in order onto ``output_dir``."""
    try:
        extract_layers(layers, output_dir)
        logger.info(f"✓ Squashed {len(layers)} layers into {output_dir}")
    except ExtractionError as e:
        logger.error(f"Extraction failed: {e}")
        sys.exit(1)


def show_differences(dir_a: str, dir_b: str) -> None:
    """Print the paths that differ between two trees."""
    diff, identical = compare(snapshot(dir_a), snapshot(dir_b))
    if identical:
        print("Trees are identical")
        return

    for label, paths in (("+", diff.added), ("-", diff.removed), ("~", diff.changed)):
        for path in paths:
            print(f"{label} {path}")


if __name__ == "__main__":
    if len(sys.argv) == 4 and sys.argv[1] == "--compare":
        show_differences(sys.argv[2], sys.argv[3])
    elif len(sys.argv) >= 3:
        squash(sys.argv[1], sys.argv[2:])
    else:
        print(__doc__)
        sys.exit(1)
