import json
from pathlib import Path

import pytest

from cmdref.content_loader import load_starter_text
from cmdref.document import get_entry
from cmdref.errors import DocumentExistsError, NotFoundError, ValidationError
from cmdref.service import EXPORT_FORMAT_VERSION, ReferenceService, _coerce_int


def test_append_and_toggle_persist_to_file(tmp_path: Path) -> None:
    path = tmp_path / "COMMANDS.md"
    service = ReferenceService(path)
    service.append_entry("Schema Commands", "\\dn", "List schemas")
    service.append_entry("Index Commands", "\\di+", "List indexes with sizes")
    service.toggle("\\di+")

    text = path.read_text(encoding="utf-8")
    assert "## Index Commands\n\n- [x] `\\di+` - List indexes with sizes\n" in text

    reloaded = ReferenceService(path).document()
    assert reloaded.headings == ["Schema Commands", "Index Commands"]
    assert get_entry(reloaded, "\\di+").checked is True


def test_failed_append_leaves_file_untouched(sample_file: Path, sample_text: str) -> None:
    service = ReferenceService(sample_file)
    with pytest.raises(ValidationError):
        service.append_entry("Schema Commands", "", "no label")
    with pytest.raises(NotFoundError):
        service.toggle("\\dx")
    assert sample_file.read_text(encoding="utf-8") == sample_text


def test_set_checked_via_service(sample_file: Path) -> None:
    service = ReferenceService(sample_file)
    document = service.set_checked("\\dt", False, heading="Schema Commands")
    assert get_entry(document, "\\dt").checked is False
    assert "- [ ] `\\dt` - List tables" in sample_file.read_text(encoding="utf-8")


def test_search_and_summary(sample_file: Path) -> None:
    service = ReferenceService(sample_file)
    assert [entry.label for entry in service.search("schema")] == ["\\dn", "\\dt"]
    summary = service.summary()
    assert (summary.checked, summary.total) == (1, 2)


def test_init_writes_starter_and_refuses_overwrite(tmp_path: Path) -> None:
    path = tmp_path / "ref" / "COMMANDS.md"
    service = ReferenceService(path)
    assert service.init() == path
    assert path.read_text(encoding="utf-8") == load_starter_text()

    path.write_text("## Mine\n", encoding="utf-8")
    with pytest.raises(DocumentExistsError):
        service.init()
    assert path.read_text(encoding="utf-8") == "## Mine\n"

    service.init(force=True)
    assert path.read_text(encoding="utf-8") == load_starter_text()


def test_export_import_round_trip(sample_file: Path, tmp_path: Path) -> None:
    source = ReferenceService(sample_file)
    export_path = tmp_path / "out" / "commands.json"
    exported = source.export_json(export_path)
    assert (exported.section_count, exported.entry_count) == (1, 2)

    payload = json.loads(export_path.read_text(encoding="utf-8"))
    assert payload["format_version"] == EXPORT_FORMAT_VERSION
    assert payload["title"] == "Reference"
    assert payload["sections"][0]["entries"][1] == {
        "label": "\\dt",
        "description": "List tables",
        "checked": True,
        "examples": [{"language": "sql", "code": "\\dt inventory.*"}],
        "note": "Pattern filters by schema.",
    }

    target = ReferenceService(tmp_path / "copy.md")
    imported = target.import_json(export_path)
    assert (imported.added, imported.skipped) == (2, 0)
    copied = target.document()
    assert copied.title == "Reference"
    assert copied.sections == source.document().sections


def test_import_skips_existing_labels(sample_file: Path, tmp_path: Path) -> None:
    payload = {
        "format_version": 1,
        "sections": [
            {"title": "Schema Commands", "entries": [{"label": "\\dn"}, {"label": "\\dn+", "checked": True}]},
            {"title": "Index Commands", "entries": [{"label": "\\di"}]},
        ],
    }
    import_path = tmp_path / "in.json"
    import_path.write_text(json.dumps(payload), encoding="utf-8")

    service = ReferenceService(sample_file)
    summary = service.import_json(import_path)
    assert (summary.added, summary.skipped) == (2, 1)
    document = service.document()
    assert [entry.label for entry in document.sections[0].entries] == ["\\dn", "\\dt", "\\dn+"]
    assert get_entry(document, "\\dn+").checked is True
    assert document.title == "Reference"


def test_import_ignores_malformed_rows(tmp_path: Path) -> None:
    payload = {
        "format_version": "1",
        "sections": [
            "not-a-section",
            {"title": "", "entries": [{"label": "x"}]},
            {"title": "Ok", "entries": "nope"},
            {
                "title": "Good",
                "entries": [
                    {"label": ""},
                    {"label": "multi\nline"},
                    42,
                    {
                        "label": "kept",
                        "description": ["bad"],
                        "note": 7,
                        "examples": [{"code": ""}, "x", {"code": "SELECT 1;", "language": "s`ql"}],
                    },
                ],
            },
        ],
    }
    import_path = tmp_path / "messy.json"
    import_path.write_text(json.dumps(payload), encoding="utf-8")

    service = ReferenceService(tmp_path / "COMMANDS.md")
    summary = service.import_json(import_path)
    assert summary.added == 1
    entry = service.document().entries()[0]
    assert (entry.heading, entry.label, entry.description, entry.note) == ("Good", "kept", "", "")
    assert [(block.language, block.code) for block in entry.examples] == [("", "SELECT 1;")]


def test_import_rejects_newer_format_version(tmp_path: Path) -> None:
    import_path = tmp_path / "future.json"
    import_path.write_text(json.dumps({"format_version": EXPORT_FORMAT_VERSION + 1}), encoding="utf-8")
    with pytest.raises(ValidationError, match="newer than supported"):
        ReferenceService(tmp_path / "COMMANDS.md").import_json(import_path)


def test_import_rejects_bad_roots(tmp_path: Path) -> None:
    service = ReferenceService(tmp_path / "COMMANDS.md")
    cases = {
        "list.json": ("[]", "root must be a JSON object"),
        "version.json": ('{"format_version": "abc"}', "invalid format_version"),
        "broken.json": ("{", "not valid JSON"),
    }
    for name, (content, message) in cases.items():
        path = tmp_path / name
        path.write_text(content, encoding="utf-8")
        with pytest.raises(ValidationError, match=message):
            service.import_json(path)
    assert not (tmp_path / "COMMANDS.md").exists()


def test_coerce_int_helper() -> None:
    assert _coerce_int(True) == 1
    assert _coerce_int(3) == 3
    assert _coerce_int(2.9) == 2
    assert _coerce_int("7") == 7
    assert _coerce_int("x") is None
    assert _coerce_int("x", default=0) == 0
    assert _coerce_int(None) is None


def test_import_skips_rows_with_line_breaks(tmp_path: Path) -> None:
    payload = {
        "format_version": 1,
        "title": "Two\rlines",
        "sections": [
            {"title": "Bad\u2028heading", "entries": [{"label": "x"}]},
            {
                "title": "S",
                "entries": [
                    {"label": "a", "description": "one\rtwo"},
                    {"label": "b\x0cc"},
                    {"label": "d", "description": "fine", "examples": [{"code": "SELECT 1;\r\nSELECT 2;"}]},
                ],
            },
        ],
    }
    import_path = tmp_path / "breaks.json"
    import_path.write_text(json.dumps(payload), encoding="utf-8")

    service = ReferenceService(tmp_path / "COMMANDS.md")
    assert service.import_json(import_path).added == 1
    document = service.document()
    assert document.title == ""
    assert [(entry.heading, entry.label, entry.description, entry.note) for entry in document.entries()] == [
        ("S", "d", "fine", "")
    ]
    assert document.entries()[0].examples[0].code == "SELECT 1;\nSELECT 2;"


def test_import_checked_accepts_only_booleans_and_zero_one(tmp_path: Path) -> None:
    values = [True, False, 1, 0, "false", "true", 2, None]
    payload = {
        "format_version": 1,
        "sections": [
            {"title": "S", "entries": [{"label": f"e{i}", "checked": value} for i, value in enumerate(values)]}
        ],
    }
    import_path = tmp_path / "checked.json"
    import_path.write_text(json.dumps(payload), encoding="utf-8")

    service = ReferenceService(tmp_path / "COMMANDS.md")
    service.import_json(import_path)
    assert [entry.checked for entry in service.document().entries()] == [
        True, False, True, False, False, False, False, False
    ]


def test_import_rejects_non_utf8_file(tmp_path: Path) -> None:
    import_path = tmp_path / "latin1.json"
    import_path.write_bytes(b'{"title": "caf\xe9"}')
    with pytest.raises(ValidationError, match="not valid UTF-8"):
        ReferenceService(tmp_path / "COMMANDS.md").import_json(import_path)
