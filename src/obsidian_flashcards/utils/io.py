"""Atomic text file writes for state files."""

import os
import tempfile
from collections.abc import Iterator
from contextlib import contextmanager, suppress
from pathlib import Path
from typing import TextIO

from obsidian_flashcards.utils.logging import get_logger

logger = get_logger(__name__)


@contextmanager
def atomic_write(path: Path, encoding: str = "utf-8") -> Iterator[TextIO]:
    """Write a text file so readers see either the old or the new content.

    The content goes to a temporary file next to ``path``, is fsynced and
    then replaces ``path``. On any error the temporary file is removed and
    ``path`` is left as it was.

    Example:
        with atomic_write(vault / ".flashcards" / "labels.json") as f:
            json.dump(label_map.to_dict(), f)
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    # Same directory as the target: a rename across filesystems is not atomic
    fd, temp_name = tempfile.mkstemp(dir=path.parent, prefix=f".tmp_{path.name}_")
    temp_path = Path(temp_name)

    try:
        with os.fdopen(fd, "w", encoding=encoding) as f:
            yield f
            f.flush()
            os.fsync(f.fileno())
        temp_path.replace(path)
    except Exception as e:
        with suppress(OSError):
            temp_path.unlink()
        logger.error("atomic_write_failed", path=str(path), error=str(e))
        raise
