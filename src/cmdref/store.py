"""File persistence for checklist reference documents."""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path

from .errors import ValidationError
from .markdown import parse_document, render_document
from .models import Document

logger = logging.getLogger(__name__)


class DocumentStore:
    """Load and atomically save one Markdown reference document."""

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)

    def exists(self) -> bool:
        """Return whether the backing file exists."""
        return self.path.is_file()

    def read_text(self) -> str:
        """Return raw file text, or an empty string when the file is missing."""
        if not self.exists():
            logger.debug("Reference file %s does not exist yet; starting empty.", self.path)
            return ""
        try:
            return self.path.read_text(encoding="utf-8-sig")
        except UnicodeDecodeError as exc:
            raise ValidationError(f"{self.path} is not valid UTF-8: {exc.reason} at byte {exc.start}.") from exc

    def load(self) -> Document:
        """Parse the backing file into a document."""
        document = parse_document(self.read_text())
        logger.debug(
            "Loaded %s: %d headings, %d entries.",
            self.path,
            len(document.sections),
            len(document.entries()),
        )
        return document

    def save(self, document: Document) -> None:
        """Render and write the document, replacing the file atomically."""
        self.write_text(render_document(document))

    def write_text(self, text: str) -> None:
        """Write raw text through a temporary file in the same directory."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        handle, temp_name = tempfile.mkstemp(prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent)
        try:
            with os.fdopen(handle, "w", encoding="utf-8", newline="\n") as stream:
                stream.write(text)
            os.replace(temp_name, self.path)
        except BaseException:
            Path(temp_name).unlink(missing_ok=True)
            raise
        logger.debug("Wrote %d bytes to %s.", len(text.encode("utf-8")), self.path)
