"""Load the bundled starter reference from package resources."""

from __future__ import annotations

from importlib import resources

from .markdown import parse_document
from .models import Document

CONTENT_PACKAGE = "cmdref.content"
STARTER_FILE = "COMMANDS.md"


def load_starter_text() -> str:
    """Return the bundled starter Markdown."""
    return resources.files(CONTENT_PACKAGE).joinpath(STARTER_FILE).read_text(encoding="utf-8-sig")


def load_starter_document() -> Document:
    """Parse the bundled starter reference."""
    return parse_document(load_starter_text())
