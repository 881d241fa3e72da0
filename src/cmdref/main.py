"""CLI entrypoint for the command reference checklist."""

from __future__ import annotations

import argparse
import logging
from collections.abc import Callable
from pathlib import Path

from . import __version__
from .document import DEFAULT_LANGUAGE, get_entry
from .errors import CmdrefError, NotFoundError
from .markdown import render_document
from .models import Document, Entry
from .service import ReferenceService

InputFn = Callable[[str], str]
PrintFn = Callable[[str], None]
Handler = Callable[[ReferenceService, argparse.Namespace, PrintFn], int]
DEFAULT_DOCUMENT_PATH = Path("COMMANDS.md")
MENU_QUIT_COMMANDS = {"q"}
MENU_BACK_COMMANDS = {"b"}
LOG_FORMAT = "%(levelname)s %(name)s: %(message)s"


class QuitApp(Exception):
    """Signal immediate app exit from nested menu flows."""


def _service(path: Path) -> ReferenceService:
    """Create app service for one reference file."""
    return ReferenceService(path)


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser with all subcommands."""
    parser = argparse.ArgumentParser(prog="cmdref", description="Maintain a Markdown command checklist")
    parser.add_argument("--file", default=str(DEFAULT_DOCUMENT_PATH), help="reference document (default: %(default)s)")
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    commands = parser.add_subparsers(dest="command")

    init = commands.add_parser("init", help="write the bundled PostgreSQL starter reference")
    init.add_argument("--force", action="store_true", help="overwrite an existing file")

    show = commands.add_parser("show", help="print the document or one heading")
    show.add_argument("--heading", help="only this heading")

    add = commands.add_parser("add", help="append an entry under a heading")
    add.add_argument("heading")
    add.add_argument("label")
    add.add_argument("description", nargs="?", default="")
    add.add_argument("--example", help="code for a fenced example block")
    add.add_argument("--lang", default=DEFAULT_LANGUAGE, help="example block language (default: %(default)s)")
    add.add_argument("--note", default="", help="note shown under the entry")

    for name, help_text in (
        ("toggle", "flip an entry's checkbox"),
        ("check", "mark an entry done"),
        ("uncheck", "mark an entry not done"),
    ):
        sub = commands.add_parser(name, help=help_text)
        sub.add_argument("label")
        sub.add_argument("--heading", help="only look under this heading")

    commands.add_parser("status", help="show checked/total per heading")

    search = commands.add_parser("search", help="find entries by text")
    search.add_argument("query")

    export = commands.add_parser("export", help="write the document as JSON")
    export.add_argument("path")

    import_ = commands.add_parser("import", help="merge entries from a JSON export")
    import_.add_argument("path")

    commands.add_parser("shell", help="interactive menu (default)")
    return parser


def run(argv: list[str] | None = None, print_fn: PrintFn = print) -> int:
    """Run the CLI application."""
    args = build_parser().parse_args(argv)
    _configure_logging(args.verbose)
    service = _service(Path(args.file))
    command = args.command or "shell"
    if command == "shell":
        return shell(service, print_fn=print_fn)
    try:
        return COMMANDS[command](service, args, print_fn)
    except (CmdrefError, OSError) as exc:
        print_fn(f"Error: {exc}")
        return 1


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(level=logging.DEBUG if verbose else logging.WARNING, format=LOG_FORMAT)
    if verbose:
        logging.getLogger("cmdref").setLevel(logging.DEBUG)


def _cmd_init(service: ReferenceService, args: argparse.Namespace, print_fn: PrintFn) -> int:
    path = service.init(force=args.force)
    summary = service.summary()
    print_fn(f"Wrote {path} ({len(summary.sections)} headings, {summary.total} entries).")
    return 0


def _cmd_show(service: ReferenceService, args: argparse.Namespace, print_fn: PrintFn) -> int:
    document = service.document()
    if args.heading:
        section = document.section(args.heading.strip())
        if section is None:
            raise NotFoundError(f"No heading named '{args.heading.strip()}'.")
        document = Document(sections=(section,))
    text = render_document(document)
    if not text:
        print_fn(f"{service.path} has no entries yet.")
        return 0
    print_fn(text.rstrip("\n"))
    return 0


def _cmd_add(service: ReferenceService, args: argparse.Namespace, print_fn: PrintFn) -> int:
    service.append_entry(
        args.heading,
        args.label,
        args.description,
        args.example,
        language=args.lang,
        note=args.note,
    )
    print_fn(f"Added {args.label.strip()} under '{args.heading.strip()}'.")
    return 0


def _cmd_toggle(service: ReferenceService, args: argparse.Namespace, print_fn: PrintFn) -> int:
    document = service.toggle(args.label, args.heading)
    print_fn(_format_entry(get_entry(document, args.label, args.heading)))
    return 0


def _cmd_check(service: ReferenceService, args: argparse.Namespace, print_fn: PrintFn) -> int:
    document = service.set_checked(args.label, True, args.heading)
    print_fn(_format_entry(get_entry(document, args.label, args.heading)))
    return 0


def _cmd_uncheck(service: ReferenceService, args: argparse.Namespace, print_fn: PrintFn) -> int:
    document = service.set_checked(args.label, False, args.heading)
    print_fn(_format_entry(get_entry(document, args.label, args.heading)))
    return 0


def _cmd_status(service: ReferenceService, args: argparse.Namespace, print_fn: PrintFn) -> int:
    _status_flow(service, print_fn)
    return 0


def _cmd_search(service: ReferenceService, args: argparse.Namespace, print_fn: PrintFn) -> int:
    _print_matches(service.search(args.query), print_fn)
    return 0


def _cmd_export(service: ReferenceService, args: argparse.Namespace, print_fn: PrintFn) -> int:
    summary = service.export_json(args.path)
    print_fn(f"Exported {summary.entry_count} entries in {summary.section_count} headings to {summary.path}")
    return 0


def _cmd_import(service: ReferenceService, args: argparse.Namespace, print_fn: PrintFn) -> int:
    summary = service.import_json(args.path)
    print_fn(f"Imported {summary.added} entries from {summary.path}")
    if summary.skipped:
        print_fn(f"- skipped (already present): {summary.skipped}")
    return 0


COMMANDS: dict[str, Handler] = {
    "init": _cmd_init,
    "show": _cmd_show,
    "add": _cmd_add,
    "toggle": _cmd_toggle,
    "check": _cmd_check,
    "uncheck": _cmd_uncheck,
    "status": _cmd_status,
    "search": _cmd_search,
    "export": _cmd_export,
    "import": _cmd_import,
}


def shell(service: ReferenceService, input_fn: InputFn = input, print_fn: PrintFn = print) -> int:
    """Run persistent menu-driven shell."""
    try:
        while True:
            print_fn("\n=== Command Reference ===")
            print_fn(f"File: {service.path}")
            print_fn("1) Browse headings")
            print_fn("2) Add entry")
            print_fn("3) Toggle entry")
            print_fn("4) Search")
            print_fn("5) Status")
            print_fn("q) Quit")
            choice = input_fn("Choose: ").strip().lower()

            if choice in MENU_QUIT_COMMANDS:
                return 0
            try:
                if choice == "1":
                    _browse_flow(service, input_fn, print_fn)
                elif choice == "2":
                    _add_flow(service, input_fn, print_fn)
                elif choice == "3":
                    _toggle_flow(service, input_fn, print_fn)
                elif choice == "4":
                    _search_flow(service, input_fn, print_fn)
                elif choice == "5":
                    _status_flow(service, print_fn)
                else:
                    print_fn("Invalid choice.")
            except (CmdrefError, OSError) as exc:
                print_fn(f"Error: {exc}")
    except (QuitApp, EOFError):
        return 0


def _browse_flow(service: ReferenceService, input_fn: InputFn, print_fn: PrintFn) -> None:
    """Pick a heading, list its entries and optionally toggle one."""
    document = service.document()
    if not document.sections:
        print_fn("No headings yet. Add an entry first.")
        return

    print_fn("\n=== Headings ===")
    for idx, section in enumerate(document.sections, start=1):
        done = len([entry for entry in section.entries if entry.checked])
        print_fn(f"{idx}) {section.title} ({done}/{len(section.entries)})")
    print_fn("b) Back")
    print_fn("q) Quit")
    choice = input_fn("Choose heading: ").strip().lower()
    if choice in MENU_BACK_COMMANDS:
        return
    if choice in MENU_QUIT_COMMANDS:
        raise QuitApp()
    if not choice.isdigit() or not (0 <= int(choice) - 1 < len(document.sections)):
        print_fn("Invalid choice.")
        return

    section = document.sections[int(choice) - 1]
    while True:
        print_fn(f"\n=== {section.title} ===")
        if not section.entries:
            print_fn("No entries under this heading.")
            return
        for idx, entry in enumerate(section.entries, start=1):
            print_fn(f"{idx:>2}) {_format_entry(entry)}")
        print_fn("b) Back")
        print_fn("q) Quit")
        pick = input_fn("Toggle entry #: ").strip().lower()
        if pick in MENU_BACK_COMMANDS:
            return
        if pick in MENU_QUIT_COMMANDS:
            raise QuitApp()
        if not pick.isdigit() or not (0 <= int(pick) - 1 < len(section.entries)):
            print_fn("Invalid choice.")
            continue
        target = section.entries[int(pick) - 1]
        try:
            updated = service.toggle(target.label, section.title)
        except CmdrefError as exc:
            print_fn(f"Could not toggle entry: {exc}")
            return
        refreshed = updated.section(section.title)
        if refreshed is None:
            return
        section = refreshed


def _add_flow(service: ReferenceService, input_fn: InputFn, print_fn: PrintFn) -> None:
    """Prompt for a new entry and append it."""
    headings = service.document().headings
    print_fn("\n=== Add Entry ===")
    for idx, title in enumerate(headings, start=1):
        print_fn(f"{idx}) {title}")
    heading = input_fn("Heading (number or new name): ").strip()
    if heading.isdigit() and 0 <= int(heading) - 1 < len(headings):
        heading = headings[int(heading) - 1]
    label = input_fn("Command: ").strip()
    description = input_fn("Description: ").strip()
    example = input_fn("Example (blank = none): ").strip()
    try:
        service.append_entry(heading, label, description, example or None)
    except CmdrefError as exc:
        print_fn(f"Could not add entry: {exc}")
        return
    print_fn(f"Added {label} under '{heading}'.")


def _toggle_flow(service: ReferenceService, input_fn: InputFn, print_fn: PrintFn) -> None:
    """Toggle an entry by its label."""
    label = input_fn("Command to toggle: ").strip()
    if not label:
        print_fn("Command is required.")
        return
    try:
        document = service.toggle(label)
    except CmdrefError as exc:
        print_fn(f"Could not toggle entry: {exc}")
        return
    print_fn(_format_entry(get_entry(document, label)))


def _search_flow(service: ReferenceService, input_fn: InputFn, print_fn: PrintFn) -> None:
    query = input_fn("Search: ").strip()
    try:
        matches = service.search(query)
    except CmdrefError as exc:
        print_fn(f"Search failed: {exc}")
        return
    _print_matches(matches, print_fn)


def _status_flow(service: ReferenceService, print_fn: PrintFn) -> None:
    """Print per-heading checklist progress."""
    summary = service.summary()
    print_fn("\n=== Checklist Status ===")
    if not summary.sections:
        print_fn("No headings yet.")
        return
    heading_width = max(len("Heading"), max(len(row.title) for row in summary.sections))
    done_width = max(len("Done"), max(len(str(row.checked)) for row in summary.sections))
    total_width = max(len("Total"), max(len(str(row.total)) for row in summary.sections))
    header = f"{'Heading':<{heading_width}} {'Done':>{done_width}} {'Total':>{total_width}} {'%':>4}"
    print_fn(header)
    print_fn("-" * len(header))
    for row in summary.sections:
        print_fn(
            f"{row.title:<{heading_width}} "
            f"{row.checked:>{done_width}} "
            f"{row.total:>{total_width}} "
            f"{row.percent:>4.0f}"
        )
    print_fn("-" * len(header))
    print_fn(f"Overall: {summary.checked}/{summary.total} checked ({summary.percent:.1f}%)")


def _print_matches(matches: list[Entry], print_fn: PrintFn) -> None:
    if not matches:
        print_fn("No matching entries.")
        return
    for entry in matches:
        print_fn(f"{_format_entry(entry)}  ({entry.heading})")


def _format_entry(entry: Entry) -> str:
    mark = "x" if entry.checked else " "
    text = f"[{mark}] {entry.label}"
    if entry.description:
        text += f" - {entry.description}"
    return text


def main_entry() -> None:
    """Console script entrypoint."""
    raise SystemExit(run())


if __name__ == "__main__":  # pragma: no cover
    main_entry()
