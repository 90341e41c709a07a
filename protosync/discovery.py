"""
Schema file discovery.

Walks a list of root directories and returns every .proto file found, root
by root. Within a root, directories and files are visited in sorted order so
that repeated runs see the same sequence.
"""
import logging
import os
from pathlib import Path
from typing import Iterable, List

logger = logging.getLogger(__name__)

DEFAULT_EXTENSION = "proto"


def discover(roots: Iterable[Path], extension: str = DEFAULT_EXTENSION) -> List[Path]:
    """
    Find schema files under each root.

    Args:
        roots: Directories to walk, in the order their results should appear
        extension: File extension to match exactly, without the dot

    Returns:
        Paths of matching regular files
    """
    suffix = f".{extension.lstrip('.')}"
    found: List[Path] = []

    for root in roots:
        root = Path(root)
        if not root.is_dir():
            logger.warning(f"Schema root {root} does not exist, skipping")
            continue

        count = 0
        for dirpath, dirnames, filenames in os.walk(root):
            dirnames.sort()
            for filename in sorted(filenames):
                path = Path(dirpath) / filename
                if path.suffix == suffix and path.is_file():
                    found.append(path)
                    count += 1
        logger.debug(f"Found {count} {suffix} files under {root}")

    return found
