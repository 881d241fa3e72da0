"""Pure operations over reference documents: append, toggle, search, summarize."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, replace

from .errors import NotFoundError, ValidationError
from .models import CodeBlock, Document, Entry, Section

DEFAULT_LANGUAGE = "sql"
NEW_SECTION_LEVEL = 2


@dataclass(frozen=True)
class SectionSummary:
    """Checklist counts for one heading."""

    title: str
    total: int
    checked: int

    @property
    def remaining(self) -> int:
        return self.total - self.checked

    @property
    def percent(self) -> float:
        return 100.0 if self.total == 0 else (100.0 * self.checked / self.total)


@dataclass(frozen=True)
class DocumentSummary:
    """Checklist counts for a whole document with per-heading breakdown."""

    sections: tuple[SectionSummary, ...]
    total: int
    checked: int

    @property
    def percent(self) -> float:
        return 100.0 if self.total == 0 else (100.0 * self.checked / self.total)


def append_entry(
    document: Document,
    heading: str,
    label: str,
    description: str = "",
    example: str | None = None,
    *,
    language: str = DEFAULT_LANGUAGE,
    note: str = "",
) -> Document:
    """Append a new unchecked entry under `heading`, creating the heading if absent."""
    heading_text = single_line(heading, "Heading", required=True)
    examples: tuple[CodeBlock, ...] = ()
    if example is not None and example.strip():
        examples = (CodeBlock(language=single_line(language, "Language"), code=example.strip("\n")),)
    entry = Entry(
        heading=heading_text,
        label=single_line(label, "Label", required=True),
        description=single_line(description, "Description"),
        checked=False,
        examples=examples,
        note=note,
    )
    return add_entry(document, entry)


def add_entry(document: Document, entry: Entry) -> Document:
    """Append a prepared entry last under its heading, enforcing label uniqueness."""
    heading = single_line(entry.heading, "Heading", required=True)
    label = single_line(entry.label, "Label", required=True)
    description = single_line(entry.description, "Description")
    examples: list[CodeBlock] = []
    for block in entry.examples:
        language = single_line(block.language, "Language")
        if "`" in language:
            raise ValidationError("Language must not contain backticks.")
        code = block.code.replace("\r\n", "\n").replace("\r", "\n")
        examples.append(CodeBlock(language=language, code=code))
    note = "\n".join(line.rstrip() for line in entry.note.strip().splitlines())
    entry = replace(
        entry,
        heading=heading,
        label=label,
        description=description,
        examples=tuple(examples),
        note=note,
    )

    section = document.section(heading)
    if section is None:
        created = Section(title=heading, level=NEW_SECTION_LEVEL, entries=(entry,))
        return replace(document, sections=document.sections + (created,))

    if any(existing.label == label for existing in section.entries):
        raise ValidationError(f"Entry '{label}' already exists under '{heading}'.")
    updated = replace(section, entries=section.entries + (entry,))
    return _replace_section(document, section, updated)


def toggle(document: Document, label: str, heading: str | None = None) -> Document:
    """Flip the checked state of the first entry matching `label`."""
    return _update_first(document, label, heading, lambda entry: replace(entry, checked=not entry.checked))


def set_checked(document: Document, label: str, checked: bool, heading: str | None = None) -> Document:
    """Set the checked state of the first entry matching `label`."""
    return _update_first(document, label, heading, lambda entry: replace(entry, checked=checked))


def find_entries(document: Document, label: str, heading: str | None = None) -> list[Entry]:
    """Return entries with an exactly matching label, in document order."""
    wanted = label.strip()
    return [entry for section in _sections_for(document, heading) for entry in section.entries if entry.label == wanted]


def get_entry(document: Document, label: str, heading: str | None = None) -> Entry:
    """Return the first entry matching `label` or raise NotFoundError."""
    matches = find_entries(document, label, heading)
    if not matches:
        raise NotFoundError(_not_found_message(label, heading))
    return matches[0]


def search(document: Document, query: str) -> list[Entry]:
    """Case-insensitive substring search over labels, descriptions, notes and code."""
    needle = query.strip().lower()
    if not needle:
        raise ValidationError("Search query is required.")
    matches: list[Entry] = []
    for entry in document.entries():
        haystack = [entry.label, entry.description, entry.note, *(block.code for block in entry.examples)]
        if any(needle in item.lower() for item in haystack):
            matches.append(entry)
    return matches


def summarize(document: Document) -> DocumentSummary:
    """Return checked/total counts per heading, in document order."""
    rows = tuple(
        SectionSummary(
            title=section.title,
            total=len(section.entries),
            checked=len([entry for entry in section.entries if entry.checked]),
        )
        for section in document.sections
    )
    return DocumentSummary(
        sections=rows,
        total=sum(row.total for row in rows),
        checked=sum(row.checked for row in rows),
    )


def _update_first(
    document: Document,
    label: str,
    heading: str | None,
    change: Callable[[Entry], Entry],
) -> Document:
    wanted = label.strip()
    for section in _sections_for(document, heading):
        for position, entry in enumerate(section.entries):
            if entry.label != wanted:
                continue
            entries = list(section.entries)
            entries[position] = change(entry)
            return _replace_section(document, section, replace(section, entries=tuple(entries)))
    raise NotFoundError(_not_found_message(label, heading))


def _sections_for(document: Document, heading: str | None) -> list[Section]:
    if heading is None:
        return list(document.sections)
    section = document.section(heading.strip())
    if section is None:
        raise NotFoundError(f"No heading named '{heading.strip()}'.")
    return [section]


def _replace_section(document: Document, old: Section, new: Section) -> Document:
    sections = tuple(new if item is old else item for item in document.sections)
    return replace(document, sections=sections)


def _not_found_message(label: str, heading: str | None) -> str:
    if heading is None:
        return f"No entry labelled '{label.strip()}'."
    return f"No entry labelled '{label.strip()}' under '{heading.strip()}'."


def single_line(value: str, field_name: str, *, required: bool = False) -> str:
    """Strip a one-line field, rejecting embedded line breaks and (optionally) empty values.

    Any character `str.splitlines` breaks on counts, so `\\u2028` or form feeds
    are refused along with `\\n` and `\\r`.
    """
    text = value.strip()
    if required and not text:
        raise ValidationError(f"{field_name} is required.")
    if len(text.splitlines()) > 1:
        raise ValidationError(f"{field_name} must be a single line.")
    return text
