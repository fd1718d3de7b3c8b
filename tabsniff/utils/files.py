"""
Temporary store handling for the sniff pipeline.

Remote and stdin samples are written to named temporary files that outlive
the handle that created them, so they can be reopened by the reader
configuration.  Each one must be removed exactly once when the invocation
ends; ``release_store`` is idempotent so the cleanup step can run on every
exit path without double-deleting.
"""

from __future__ import annotations

import logging
import shutil
import tempfile
from pathlib import Path

from tabsniff.configs.exceptions import SourceIOError
from tabsniff.models.models import SampleSource

logger = logging.getLogger(__name__)

TEMP_PREFIX = "tabsniff-"


def new_temp_store(suffix: str = ".csv") -> Path:
    """
    Create an empty named temporary file and return its path.

    The caller owns the file and must remove it (see ``release_store`` /
    ``remove_quietly``).

    Raises:
        SourceIOError: If the file cannot be created.
    """
    try:
        with tempfile.NamedTemporaryFile(prefix=TEMP_PREFIX, suffix=suffix, delete=False) as f:
            return Path(f.name)
    except OSError as e:
        raise SourceIOError(f"Cannot create temporary file: {e}") from e


def release_store(source: SampleSource | None) -> bool:
    """
    Delete the temporary store behind ``source``, once.

    Non-temporary stores (local input files) are never touched.

    Returns:
        True if a file was deleted by this call.
    """
    if source is None or not source.is_temporary or source.released:
        return False
    source.released = True
    removed = remove_quietly(source.store_path)
    if removed:
        logger.debug("Released temporary store %s", source.store_path)
    return removed


def remove_quietly(path: Path | str) -> bool:
    """Remove ``path`` if it exists; a missing file is not an error."""
    try:
        Path(path).unlink()
    except FileNotFoundError:
        return False
    except OSError as e:
        logger.warning("Could not remove temporary file %s: %s", path, e)
        return False
    return True


def save_copy(source_path: Path | str, dest_path: Path | str) -> Path:
    """
    Copy ``source_path`` to ``dest_path``, creating parent folders.

    Returns:
        The destination path.

    Raises:
        SourceIOError: If the copy fails.
    """
    source = Path(source_path)
    dest = Path(dest_path)
    try:
        dest.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(source, dest)
    except OSError as e:
        raise SourceIOError(
            f"Failed to save sample {source} → {dest}: {e}",
            source=str(source),
        ) from e
    return dest
