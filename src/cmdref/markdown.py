"""Parse and render checklist Markdown reference documents."""

from __future__ import annotations

import re

from .models import CodeBlock, Document, Entry, Section

HEADING_RE = re.compile(r"^(#{1,6})[ \t]+(.*?)[ \t]*$")
ITEM_RE = re.compile(r"^[-*+] \[([ xX])\](?:[ \t]+(.*))?$")
FENCE_RE = re.compile(r"^([ \t]*)(`{3,}|~{3,})[ \t]*([^`]*?)[ \t]*$")
QUOTE_RE = re.compile(r"^[ \t]*>[ \t]?(.*)$")
CODE_SPAN_RE = re.compile(r"^(`+)(.+?)(?<!`)\1(?!`)(.*)$")
SEPARATORS = (" - ", " — ", " – ")
DESCRIPTION_PREFIXES = ("- ", "— ", "– ", ": ")


class _EntryBuilder:
    """Mutable accumulator for one entry while its lines are being read."""

    def __init__(self, heading: str, label: str, description: str, checked: bool) -> None:
        self.heading = heading
        self.label = label
        self.description = description
        self.checked = checked
        self.examples: list[CodeBlock] = []
        self.note_lines: list[str] = []

    def build(self) -> Entry:
        return Entry(
            heading=self.heading,
            label=self.label,
            description=self.description,
            checked=self.checked,
            examples=tuple(self.examples),
            note="\n".join(_trim_blank_lines(self.note_lines)),
        )


class _SectionBuilder:
    """Mutable accumulator for one section."""

    def __init__(self, title: str, level: int) -> None:
        self.title = title
        self.level = level
        self.intro: list[str] = []
        self.entries: list[Entry] = []
        self.current: _EntryBuilder | None = None

    def flush(self) -> None:
        if self.current is not None:
            self.entries.append(self.current.build())
            self.current = None

    def build(self) -> Section:
        self.flush()
        return Section(
            title=self.title,
            level=self.level,
            intro=tuple(_trim_blank_lines(self.intro)),
            entries=tuple(self.entries),
        )


def parse_document(text: str) -> Document:
    """Parse checklist Markdown into a document."""
    # Only \n and \r are line breaks in the file; \u2028 and friends stay inline.
    lines = text.lstrip("\ufeff").replace("\r\n", "\n").replace("\r", "\n").split("\n")
    if lines[-1] == "":
        lines.pop()
    title = ""
    preamble: list[str] = []
    sections: list[Section] = []
    current: _SectionBuilder | None = None

    index = 0
    while index < len(lines):
        line = lines[index].rstrip()

        fence = FENCE_RE.match(line)
        if fence:
            block_lines, closed, index = _read_fence(lines, index, fence.group(2))
            if current is not None and current.current is not None:
                inner = block_lines[1:-1] if closed else block_lines[1:]
                body = [_dedent(item, fence.group(1)) for item in inner]
                current.current.examples.append(CodeBlock(language=fence.group(3), code="\n".join(body)))
            else:
                target = preamble if current is None else current.intro
                target.extend(item.rstrip() for item in block_lines)
            continue

        heading = HEADING_RE.match(line)
        if heading and heading.group(2):
            level = len(heading.group(1))
            heading_text = heading.group(2)
            if level == 1 and not title and current is None:
                title = heading_text
            else:
                if current is not None:
                    sections.append(current.build())
                current = _SectionBuilder(heading_text, level)
            index += 1
            continue

        item = ITEM_RE.match(line)
        if item and current is not None and (item.group(2) or "").strip():
            current.flush()
            label, description = split_item_text(item.group(2))
            current.current = _EntryBuilder(
                heading=current.title,
                label=label,
                description=description,
                checked=item.group(1) in ("x", "X"),
            )
            index += 1
            continue

        if current is not None and current.current is not None:
            if line.strip():
                quote = QUOTE_RE.match(line)
                current.current.note_lines.append(quote.group(1).rstrip() if quote else line.strip())
        elif current is not None:
            current.intro.append(line)
        else:
            preamble.append(line)
        index += 1

    if current is not None:
        sections.append(current.build())

    return Document(title=title, preamble=tuple(_trim_blank_lines(preamble)), sections=tuple(sections))


def render_document(document: Document) -> str:
    """Render a document back to checklist Markdown."""
    blocks: list[list[str]] = []
    if document.title:
        blocks.append([f"# {document.title}"])
    if document.preamble:
        blocks.append(list(document.preamble))
    for section in document.sections:
        blocks.append([f"{'#' * section.level} {section.title}"])
        if section.intro:
            blocks.append(list(section.intro))
        if section.entries:
            lines: list[str] = []
            for entry in section.entries:
                lines.extend(render_entry(entry))
            blocks.append(lines)

    out: list[str] = []
    for block in blocks:
        if out:
            out.append("")
        out.extend(block)
    return "\n".join(out) + "\n" if out else ""


def render_entry(entry: Entry) -> list[str]:
    """Render one entry with its code blocks and note."""
    mark = "x" if entry.checked else " "
    head = f"- [{mark}] {format_label(entry.label)}"
    if entry.description:
        head += f" - {entry.description}"
    lines = [head]
    for block in entry.examples:
        fence = _fence_for(block.code)
        lines.append(f"  {fence}{block.language}")
        lines.extend(f"  {code_line}" if code_line else "" for code_line in block.code.split("\n"))
        lines.append(f"  {fence}")
    if entry.note:
        lines.extend(f"  > {note_line}" if note_line else "  >" for note_line in entry.note.split("\n"))
    return lines


def format_label(label: str) -> str:
    """Wrap a label in the shortest backtick run it does not contain."""
    runs = {len(match) for match in re.findall(r"`+", label)}
    width = 1
    while width in runs:
        width += 1
    ticks = "`" * width
    pad = label.startswith("`") or label.endswith("`") or (label.startswith(" ") and label.endswith(" "))
    if pad:
        return f"{ticks} {label} {ticks}"
    return f"{ticks}{label}{ticks}"


def split_item_text(text: str) -> tuple[str, str]:
    """Split checklist item text into (label, description)."""
    text = text.strip()
    span = CODE_SPAN_RE.match(text)
    if span:
        label = span.group(2)
        if len(label) > 2 and label.startswith(" ") and label.endswith(" ") and label.strip():
            label = label[1:-1]
        return label, _strip_description(span.group(3))

    cut = -1
    cut_width = 0
    for separator in SEPARATORS:
        position = text.find(separator)
        if position != -1 and (cut == -1 or position < cut):
            cut = position
            cut_width = len(separator)
    if cut == -1:
        return text, ""
    return text[:cut].strip(), text[cut + cut_width :].strip()


def _strip_description(rest: str) -> str:
    rest = rest.strip()
    if rest in ("-", "—", "–", ":"):
        return ""
    for prefix in DESCRIPTION_PREFIXES:
        if rest.startswith(prefix):
            return rest[len(prefix) :].strip()
    return rest


def _read_fence(lines: list[str], start: int, marker: str) -> tuple[list[str], bool, int]:
    """Collect an opening fence, its body and closing fence; an unclosed fence runs to the end."""
    collected = [lines[start]]
    index = start + 1
    while index < len(lines):
        collected.append(lines[index])
        index += 1
        if _closes(collected[-1], marker):
            return collected, True, index
    return collected, False, index


def _closes(line: str, marker: str) -> bool:
    stripped = line.strip()
    if not stripped or stripped[0] != marker[0]:
        return False
    return len(stripped) >= len(marker) and stripped == stripped[0] * len(stripped)


def _dedent(line: str, indent: str) -> str:
    if line.startswith(indent):
        return line[len(indent) :]
    return line.lstrip(" \t")


def _fence_for(code: str) -> str:
    longest = 0
    for line in code.split("\n"):
        stripped = line.lstrip()
        run = len(stripped) - len(stripped.lstrip("`"))
        longest = max(longest, run)
    return "`" * max(3, longest + 1)


def _trim_blank_lines(lines: list[str]) -> list[str]:
    start = 0
    end = len(lines)
    while start < end and not lines[start].strip():
        start += 1
    while end > start and not lines[end - 1].strip():
        end -= 1
    return lines[start:end]
