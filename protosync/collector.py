"""
Collection of compiler output.

The compiler writes every namespace into one flat directory that may also
hold unrelated output. Files belonging to the namespace prefix are copied
into a per-version directory, which is wiped first so nothing stale survives.
"""
import logging
import os
import shutil
from pathlib import Path
from typing import Dict, List, Tuple

logger = logging.getLogger(__name__)


class FileCopyFailed(Exception):
    """Raised after collection when one or more files could not be copied."""

    def __init__(self, errors: List[Tuple[Path, OSError]]):
        self.errors = list(errors)
        details = "; ".join(f"{path}: {error}" for path, error in self.errors)
        super().__init__(f"{len(self.errors)} compiled file(s) failed to copy: {details}")


def reset_dir(path: Path) -> None:
    """Remove path entirely (if present) and recreate it empty."""
    try:
        shutil.rmtree(path)
    except FileNotFoundError:
        pass
    path.mkdir(parents=True, exist_ok=True)


def collect(
    source_dir: Path,
    target_dir: Path,
    namespace_prefix: str,
    delimiter: str = "."
) -> List[Path]:
    """
    Copy namespace files from source_dir into a fresh target_dir.

    Directory structure under source_dir is flattened. Every copy is
    attempted before failures are reported; a file name found in more than
    one directory is a failure, the first copy in walk order is kept.

    Args:
        source_dir: Compiler output directory
        target_dir: Destination, fully replaced
        namespace_prefix: Leading namespace token, e.g. "tendermint"
        delimiter: Separator following the prefix in file names

    Returns:
        Sorted paths of the copied files

    Raises:
        FileCopyFailed: If any copy failed
    """
    source_dir = Path(source_dir)
    target_dir = Path(target_dir)
    reset_dir(target_dir)

    name_prefix = f"{namespace_prefix}{delimiter}"
    copied: List[Path] = []
    sources: Dict[str, Path] = {}
    errors: List[Tuple[Path, OSError]] = []

    for dirpath, dirnames, filenames in os.walk(source_dir):
        dirnames.sort()
        for filename in sorted(filenames):
            if not filename.startswith(name_prefix):
                continue
            source = Path(dirpath) / filename
            if not source.is_file():
                continue
            if filename in sources:
                duplicate = FileExistsError(f"{filename} also found at {sources[filename]}")
                errors.append((source, duplicate))
                continue
            sources[filename] = source
            destination = target_dir / filename
            try:
                shutil.copyfile(source, destination)
            except OSError as e:
                errors.append((source, e))
                continue
            copied.append(destination)

    if errors:
        for path, error in errors:
            logger.error(f"Error while copying compiled file {path}: {error}")
        raise FileCopyFailed(errors)

    logger.info(f"Collected {len(copied)} {namespace_prefix} files into {target_dir}")
    return sorted(copied)
