"""Core domain models for checklist-style command reference documents."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class CodeBlock:
    """One fenced code block attached to an entry."""

    language: str
    code: str


@dataclass(frozen=True)
class Entry:
    """One documented command or SQL construct."""

    heading: str
    label: str
    description: str = ""
    checked: bool = False
    examples: tuple[CodeBlock, ...] = ()
    note: str = ""

    @property
    def example(self) -> CodeBlock | None:
        """First fenced block, if any."""
        return self.examples[0] if self.examples else None


@dataclass(frozen=True)
class Section:
    """Heading with its ordered entries."""

    title: str
    level: int = 2
    intro: tuple[str, ...] = ()
    entries: tuple[Entry, ...] = ()


@dataclass(frozen=True)
class Document:
    """Ordered sections making up a reference file."""

    title: str = ""
    preamble: tuple[str, ...] = ()
    sections: tuple[Section, ...] = ()

    @property
    def headings(self) -> list[str]:
        """Section titles in document order."""
        return [section.title for section in self.sections]

    def section(self, title: str) -> Section | None:
        """Return section by exact title."""
        for section in self.sections:
            if section.title == title:
                return section
        return None

    def entries(self) -> list[Entry]:
        """All entries in document order."""
        return [entry for section in self.sections for entry in section.entries]
