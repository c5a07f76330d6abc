"""On-disk documentation layout."""

from __future__ import annotations

from pathlib import Path

from docbranch.layout import DocLayout


def test_doc_path_mirrors_source_tree() -> None:
    layout = DocLayout()

    assert layout.doc_path_for("src/utils/helpers.ts") == "docs/src/utils/helpers.md"
    assert layout.doc_path_for("main.go") == "docs/main.md"
    assert layout.doc_path_for("src\\win\\app.cs") == "docs/src/win/app.md"


def test_is_doc_path_covers_docs_tree_and_index() -> None:
    layout = DocLayout()

    assert layout.is_doc_path("docs/src/a.md") is True
    assert layout.is_doc_path("./DOCUMENTATION_INDEX.md") is True
    assert layout.is_doc_path("src/docs.py") is False
    assert layout.is_doc_path("docsite/index.md") is False


def test_source_commit_round_trip_and_corruption(tmp_path: Path) -> None:
    layout = DocLayout()
    assert layout.read_source_commit(tmp_path) is None

    layout.write_source_commit(tmp_path, "abc123")
    assert layout.read_source_commit(tmp_path) == "abc123"

    (tmp_path / layout.state_path).write_text("{not json", encoding="utf-8")
    assert layout.read_source_commit(tmp_path) is None
