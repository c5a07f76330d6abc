"""Source classifier behaviour."""

from __future__ import annotations

import pytest

from docbranch.classifier import SourceClassifier, is_documentable


@pytest.mark.parametrize(
    "path",
    ["src/app.py", "main.go", "web/components/Button.tsx", "lib\\legacy.js", "./src/lib.rs"],
)
def test_source_files_are_documentable(path: str) -> None:
    assert is_documentable(path) is True


@pytest.mark.parametrize(
    "path",
    [
        "README.md",
        "package.json",
        "node_modules/pkg/index.js",
        "dist/bundle.js",
        "docs/src/app.md",
        "src/__pycache__/app.py",
        "Makefile",
        "src/",
        "",
        "   ",
        "/etc/app.py",
        "C:/repo/app.py",
        "../outside.py",
        "src/../../escape.py",
        "bad\x00name.py",
    ],
)
def test_non_sources_are_rejected(path: str) -> None:
    assert is_documentable(path) is False


@pytest.mark.parametrize("value", [None, 42, b"src/app.py", ["src/app.py"], object()])
def test_non_string_inputs_never_raise(value: object) -> None:
    assert is_documentable(value) is False


def test_custom_tables_override_defaults() -> None:
    classifier = SourceClassifier(extensions=["md", ".PY"], exclude_patterns=["vendor"])

    assert classifier.is_documentable("notes/guide.md") is True
    assert classifier.is_documentable("src/App.PY") is True
    assert classifier.is_documentable("vendor/lib.py") is False
    assert classifier.is_documentable("src/app.go") is False
