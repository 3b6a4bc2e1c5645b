"""Change detection for the schedule file.

A fingerprint is a cheap comparable string derived from the schedule file:

- "mtime": whole-second modification time. Rewriting the file with identical
  content counts as a change, and a second edit within the same second as
  the previous check is missed.
- "sha256": digest of the file content. Only real content changes count.

The last seen fingerprint is persisted in a scratch file between polls.
"""

import hashlib
import logging
from pathlib import Path
from typing import Literal

logger = logging.getLogger(__name__)

FingerprintMode = Literal["mtime", "sha256"]


def compute_fingerprint(path: Path, mode: FingerprintMode = "mtime") -> str | None:
    """Fingerprint a schedule file.

    Returns:
        The fingerprint, or None if the file does not exist.

    Raises:
        OSError: If the file exists but cannot be read.
    """
    try:
        if mode == "sha256":
            return hashlib.sha256(path.read_bytes()).hexdigest()
        return str(int(path.stat().st_mtime))
    except FileNotFoundError:
        return None


class FingerprintStore:
    """Scratch file holding the last recorded fingerprint."""

    def __init__(self, path: Path):
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    def read(self) -> str | None:
        try:
            value = self._path.read_text().strip()
        except FileNotFoundError:
            return None
        except OSError as e:
            logger.warning(
                "fingerprint_read_failed",
                extra={"file.path": str(self._path), "error.message": str(e)},
            )
            return None
        return value or None

    def write(self, value: str) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(f"{value}\n")

    def clear(self) -> None:
        self._path.unlink(missing_ok=True)
