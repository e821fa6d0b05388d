"""
Status file writer for the edge daemon.

Writes the latest status document to a configurable path after every
snapshot update, giving Docker HEALTHCHECK, a sidecar web server, or an
operator a read-only view of the cached snapshot without talking to the
daemon.

The file is replaced atomically (write to a sibling temp file, then
rename), so readers never see a partial document.

CHANGELOG:
- 2026-10-16: Write the status document instead of poll/upload timestamps

TODO:
- None
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

logger = logging.getLogger(__name__)


class StatusFileWriter:
    """Writes the status document to a file.

    Args:
        path: Filesystem path for the status JSON file. Accepts str or Path.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def write(self, document: str) -> bool:
        """Replace the status file with *document*.

        Returns:
            ``True`` on success; ``False`` if the filesystem refused the write.
        """
        tmp = self.path.with_name(self.path.name + ".tmp")
        try:
            tmp.write_text(document)
            os.replace(tmp, self.path)
        except OSError:
            logger.warning("Failed to write status file %s", self.path, exc_info=True)
            return False
        return True
