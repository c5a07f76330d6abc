"""Decides whether a repository path is a documentable source file."""

from __future__ import annotations

from fnmatch import fnmatchcase
from pathlib import PurePosixPath
from typing import Iterable, Sequence

DEFAULT_EXTENSIONS: Sequence[str] = (
    ".js",
    ".jsx",
    ".ts",
    ".tsx",
    ".py",
    ".java",
    ".cpp",
    ".c",
    ".cc",
    ".cxx",
    ".go",
    ".rs",
    ".php",
    ".rb",
    ".cs",
    ".swift",
    ".kt",
    ".scala",
    ".vue",
    ".svelte",
)

DEFAULT_EXCLUDE_PATTERNS: Sequence[str] = (
    "node_modules",
    ".git",
    ".next",
    "dist",
    "build",
    ".env*",
    "venv",
    "env",
    ".vscode",
    ".idea",
    "logs",
    "coverage",
    ".nyc_output",
    "__pycache__",
    "*.pyc",
    "*.log",
    "*.tmp",
    ".DS_Store",
    "package-lock.json",
    "yarn.lock",
    "pnpm-lock.yaml",
    ".gitignore",
    "*.md",
    "*.json",
    "*.yml",
    "*.yaml",
    "*.xml",
    "*.txt",
    "*.lock",
    "docs",
    "scripts",
)


class SourceClassifier:
    """Extension allow-list plus per-segment exclusion globs."""

    def __init__(
        self,
        extensions: Iterable[str] | None = None,
        exclude_patterns: Iterable[str] | None = None,
    ) -> None:
        chosen = DEFAULT_EXTENSIONS if extensions is None else extensions
        self.extensions = frozenset(_normalise_extension(ext) for ext in chosen if ext)
        patterns = DEFAULT_EXCLUDE_PATTERNS if exclude_patterns is None else exclude_patterns
        self.exclude_patterns = tuple(pattern.strip().strip("/") for pattern in patterns if pattern.strip())

    def is_documentable(self, path: object) -> bool:
        """Return True when ``path`` names a source file worth documenting.

        Never raises: anything that is not a plain relative file path inside
        the repository is simply not documentable.
        """
        if not isinstance(path, str):
            return False
        normalized = path.strip().replace("\\", "/")
        if not normalized or normalized.endswith("/") or "\x00" in normalized:
            return False
        if normalized.startswith("/") or (len(normalized) > 1 and normalized[1] == ":"):
            return False

        parts = [part for part in normalized.split("/") if part not in ("", ".")]
        if not parts or ".." in parts:
            return False
        if self.is_excluded(parts):
            return False

        suffix = PurePosixPath(parts[-1]).suffix.lower()
        return bool(suffix) and suffix in self.extensions

    def is_excluded(self, parts: Sequence[str]) -> bool:
        for part in parts:
            for pattern in self.exclude_patterns:
                if fnmatchcase(part, pattern):
                    return True
        return False


def _normalise_extension(ext: str) -> str:
    ext = ext.strip().lower()
    return ext if ext.startswith(".") else f".{ext}"


_DEFAULT_CLASSIFIER = SourceClassifier()


def is_documentable(path: object) -> bool:
    """Classify ``path`` against the default extension and exclusion tables."""
    return _DEFAULT_CLASSIFIER.is_documentable(path)


__all__ = [
    "DEFAULT_EXCLUDE_PATTERNS",
    "DEFAULT_EXTENSIONS",
    "SourceClassifier",
    "is_documentable",
]
