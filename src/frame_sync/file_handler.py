"""Metadata store: the one JSON document that describes the art library.

The sync engine treats the document as an opaque versioned file. It reads
whole documents (from disk or from a git revision) to diff them, and never
edits individual fields.
"""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

from charset_normalizer import from_bytes

logger = logging.getLogger(__name__)


def empty_document() -> dict[str, Any]:
    return {"version": "1.0", "images": {}, "tvs": [], "tags": []}


# =============================================================================
# Decoding
# =============================================================================


def decode_bytes(raw: bytes) -> str:
    """Decode document bytes with automatic encoding detection.

    Empty input decodes to ``""``; undetectable input falls back to UTF-8
    with replacement characters.
    """
    if not raw:
        return ""
    best = from_bytes(raw).best()
    if best is None:
        return raw.decode("utf-8", errors="replace")
    return str(best)


def parse_document(text: str | None) -> dict[str, Any]:
    """Parse document text, treating missing or blank text as empty.

    Raises:
        ValueError: If the text is not a JSON object.
    """
    if text is None or not text.strip():
        return empty_document()
    data = json.loads(text)
    if not isinstance(data, dict):
        raise ValueError(
            f"Metadata document must be a JSON object, got {type(data).__name__}"
        )
    return data


# =============================================================================
# Store
# =============================================================================


class MetadataStore:
    """Read/write access to the metadata document, last writer wins."""

    def __init__(self, repo: Path, metadata_file: str = "metadata.json"):
        self.repo = Path(repo)
        self.path = self.repo / metadata_file

    def read(self) -> dict[str, Any]:
        if not self.path.exists():
            return empty_document()
        return parse_document(decode_bytes(self.path.read_bytes()))

    def write(self, document: dict[str, Any]) -> None:
        """Atomically replace the document (temp file + rename)."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(
            dir=str(self.path.parent), prefix=".metadata_", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(document, fh, indent=2, ensure_ascii=False)
                fh.write("\n")
            os.replace(tmp_path, str(self.path))
        except BaseException:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
            raise

    def ensure_layout(self, library_dir: str, thumbs_dir: str) -> list[str]:
        """Create the library and thumbnail directories and an empty document.

        Returns:
            Repository-relative paths that were created.
        """
        created = []
        for name in (library_dir, thumbs_dir):
            directory = self.repo / name
            if not directory.exists():
                directory.mkdir(parents=True)
                created.append(name)
        if not self.path.exists():
            self.write(empty_document())
            created.append(self.path.name)
        if created:
            logger.info("Initialized library layout: %s", ", ".join(created))
        return created
