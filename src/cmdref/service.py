"""Application service tying the reference file to document operations."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, replace
from datetime import UTC, datetime
from pathlib import Path
from typing import cast

from . import __version__
from . import document as ops
from .content_loader import load_starter_text
from .document import DEFAULT_LANGUAGE, DocumentSummary
from .errors import DocumentExistsError, ValidationError
from .models import CodeBlock, Document, Entry
from .store import DocumentStore

EXPORT_FORMAT_VERSION = 1

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExportSummary:
    """Summary emitted by JSON export."""

    path: Path
    section_count: int
    entry_count: int


@dataclass(frozen=True)
class ImportSummary:
    """Summary emitted by JSON import."""

    path: Path
    added: int
    skipped: int


class ReferenceService:
    """Load, change and save one reference document per call."""

    def __init__(self, path: Path | str) -> None:
        self.store = DocumentStore(path)

    @property
    def path(self) -> Path:
        return self.store.path

    def document(self) -> Document:
        """Return the current document."""
        return self.store.load()

    def init(self, force: bool = False) -> Path:
        """Write the bundled starter reference to the document path."""
        if self.store.exists() and not force:
            raise DocumentExistsError(f"{self.path} already exists (use --force to overwrite).")
        self.store.write_text(load_starter_text())
        logger.info("Initialized %s from starter content.", self.path)
        return self.path

    def append_entry(
        self,
        heading: str,
        label: str,
        description: str = "",
        example: str | None = None,
        *,
        language: str = DEFAULT_LANGUAGE,
        note: str = "",
    ) -> Document:
        """Append an entry and persist the document."""
        updated = ops.append_entry(
            self.document(), heading, label, description, example, language=language, note=note
        )
        self.store.save(updated)
        logger.info("Added '%s' under '%s'.", label.strip(), heading.strip())
        return updated

    def toggle(self, label: str, heading: str | None = None) -> Document:
        """Flip one entry's checkbox and persist the document."""
        updated = ops.toggle(self.document(), label, heading)
        self.store.save(updated)
        logger.info("Toggled '%s'.", label.strip())
        return updated

    def set_checked(self, label: str, checked: bool, heading: str | None = None) -> Document:
        """Set one entry's checkbox and persist the document."""
        updated = ops.set_checked(self.document(), label, checked, heading)
        self.store.save(updated)
        logger.info("Marked '%s' as %s.", label.strip(), "checked" if checked else "unchecked")
        return updated

    def search(self, query: str) -> list[Entry]:
        """Return entries matching a free-text query."""
        return ops.search(self.document(), query)

    def summary(self) -> DocumentSummary:
        """Return checklist progress counts."""
        return ops.summarize(self.document())

    def export_json(self, export_path: Path | str) -> ExportSummary:
        """Export the document to a JSON file."""
        document = self.document()
        payload = {
            "format_version": EXPORT_FORMAT_VERSION,
            "exported_at": datetime.now(UTC).isoformat(),
            "source": {
                "app_version": __version__,
                "document": str(self.path),
            },
            "title": document.title,
            "sections": [
                {
                    "title": section.title,
                    "entries": [_entry_to_dict(entry) for entry in section.entries],
                }
                for section in document.sections
            ],
        }

        path = Path(export_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
        return ExportSummary(
            path=path,
            section_count=len(document.sections),
            entry_count=len(document.entries()),
        )

    def import_json(self, import_path: Path | str) -> ImportSummary:
        """Merge entries from a JSON export, skipping labels already present under the same heading."""
        path = Path(import_path)
        try:
            raw_obj: object = json.loads(path.read_text(encoding="utf-8-sig"))
        except UnicodeDecodeError as exc:
            raise ValidationError(f"Import file is not valid UTF-8: {exc.reason} at byte {exc.start}.") from exc
        except json.JSONDecodeError as exc:
            raise ValidationError(f"Import file is not valid JSON: {exc}") from exc
        if not isinstance(raw_obj, dict):
            raise ValidationError("Import file root must be a JSON object.")
        raw = cast(dict[str, object], raw_obj)

        format_version = _coerce_int(raw.get("format_version", 0))
        if format_version is None:
            raise ValidationError("Import file has invalid format_version.")
        if format_version > EXPORT_FORMAT_VERSION:
            raise ValidationError(
                f"Import file format version {format_version} is newer than supported {EXPORT_FORMAT_VERSION}."
            )

        document = self.document()
        title = _clean_line(raw.get("title"))
        if not document.title and title:
            document = replace(document, title=title)

        added = 0
        skipped = 0
        for entry in _normalize_entries(raw.get("sections")):
            section = document.section(entry.heading)
            if section is not None and any(existing.label == entry.label for existing in section.entries):
                skipped += 1
                continue
            document = ops.add_entry(document, entry)
            added += 1

        self.store.save(document)
        logger.info("Imported %d entries from %s (%d skipped).", added, path, skipped)
        return ImportSummary(path=path, added=added, skipped=skipped)


def _entry_to_dict(entry: Entry) -> dict[str, object]:
    return {
        "label": entry.label,
        "description": entry.description,
        "checked": entry.checked,
        "examples": [{"language": block.language, "code": block.code} for block in entry.examples],
        "note": entry.note,
    }


def _normalize_entries(raw: object) -> list[Entry]:
    """Normalize raw sections from an import payload into entries, dropping malformed rows."""
    if not isinstance(raw, list):
        return []
    entries: list[Entry] = []
    for section_item in cast(list[object], raw):
        if not isinstance(section_item, dict):
            continue
        section = cast(dict[str, object], section_item)
        title = _clean_line(section.get("title"))
        if not title:
            continue
        raw_entries: object = section.get("entries")
        if not isinstance(raw_entries, list):
            continue
        for entry_item in cast(list[object], raw_entries):
            if not isinstance(entry_item, dict):
                continue
            row = cast(dict[str, object], entry_item)
            label = _clean_line(row.get("label"))
            if not label:
                continue
            raw_description: object = row.get("description", "")
            description = _clean_line(raw_description) if isinstance(raw_description, str) else ""
            if description is None:
                continue
            note: object = row.get("note", "")
            if not isinstance(note, str):
                note = ""
            entries.append(
                Entry(
                    heading=title,
                    label=label,
                    description=description,
                    checked=_coerce_bool(row.get("checked", False)),
                    examples=_normalize_examples(row.get("examples")),
                    note=note,
                )
            )
    return entries


def _normalize_examples(raw: object) -> tuple[CodeBlock, ...]:
    if not isinstance(raw, list):
        return ()
    blocks: list[CodeBlock] = []
    for item in cast(list[object], raw):
        if not isinstance(item, dict):
            continue
        block = cast(dict[str, object], item)
        code: object = block.get("code")
        if not isinstance(code, str) or not code.strip():
            continue
        language = _clean_line(block.get("language", ""))
        if language is None or "`" in language:
            language = ""
        blocks.append(CodeBlock(language=language, code=code.strip("\n")))
    return tuple(blocks)


def _clean_line(value: object) -> str | None:
    """Return a stripped one-line string, or None when value is not one."""
    if not isinstance(value, str):
        return None
    try:
        return ops.single_line(value, "Field")
    except ValidationError:
        return None


def _coerce_bool(value: object) -> bool:
    """Accept real booleans and 0/1 only; anything else imports as unchecked."""
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return value == 1
    return False


def _coerce_int(value: object, default: int | None = None) -> int | None:
    """Coerce value to int for import normalization."""
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            return default
    return default
