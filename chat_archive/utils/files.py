"""Idempotent file output."""

import logging
import os
import tempfile
from pathlib import Path

logger = logging.getLogger(__name__)


def write_if_changed(path: Path, content: str) -> bool:
    """Write ``content`` to ``path`` only if the bytes differ from what is there.

    Parent directories are created as needed and the file is replaced
    atomically.

    Returns:
        bool: True if the file was created or rewritten, False if it already
        held exactly ``content``.

    Raises:
        OSError: If the file cannot be read or written.
    """
    path = Path(path)
    data = content.encode("utf-8")
    if path.is_file() and path.read_bytes() == data:
        logger.debug(f"Unchanged: {path}")
        return False

    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(prefix=".tmp_page_", dir=str(path.parent))
    try:
        with os.fdopen(fd, "wb") as tmpf:
            tmpf.write(data)
        # mkstemp creates 0600 files; published pages must be world-readable.
        os.chmod(tmp_path, 0o644)
        os.replace(tmp_path, path)
    finally:
        if os.path.exists(tmp_path):
            os.remove(tmp_path)
    logger.debug(f"Wrote {path}")
    return True
