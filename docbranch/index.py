"""Cumulative documentation index (``DOCUMENTATION_INDEX.md``)."""

from __future__ import annotations

import re
from datetime import UTC, datetime
from pathlib import Path, PurePosixPath
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from .layout import DocLayout
from .logging import get_logger
from .models import IndexEntry

ROOT_DIRECTORY = ""
ROOT_HEADING = "### Root Directory"
SYNOPSIS_LIMIT = 80

_TITLE = "# Documentation Index"
_DESCRIPTION = (
    "This is the complete documentation index for the project, "
    "generated automatically from the source code."
)
_NAVIGATION = "## Quick Navigation"
_ENTRY_PATTERN = re.compile(
    r"^- \*\*\[(?P<name>(?:\\.|[^\]\\])+)\]\((?P<link>(?:\\.|[^)\\])*)\)\*\*"
    r"(?: `(?P<source>[^`]+)`)?"
    r"(?: - (?P<synopsis>.*))?$"
)
_ESCAPED = re.compile(r"\\(.)")

IndexKey = Tuple[str, str]


class IndexBuilder:
    """Parses, upserts and renders the documentation index."""

    def __init__(
        self,
        root: Path,
        layout: DocLayout | None = None,
        *,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.root = Path(root)
        self.layout = layout or DocLayout()
        self._clock = clock or (lambda: datetime.now(UTC))
        self.logger = get_logger("index")

    def merge_and_render(
        self,
        existing_text: str,
        newly_documented: Iterable[str],
        removed: Iterable[str] = (),
    ) -> str:
        """Fold newly documented sources into the parsed index and render it."""
        entries = self.parse(existing_text)

        for source_path in removed:
            key = self.key_for(source_path)
            if entries.pop(key, None) is not None:
                self.logger.info("Removed index entry for %s", source_path)

        for source_path in newly_documented:
            entry = self.entry_for(source_path)
            if entry.key in entries:
                self.logger.debug("Updated index entry: %s", source_path)
            else:
                self.logger.debug("Added index entry: %s", source_path)
            entries[entry.key] = entry

        return self.render(entries)

    def update_file(self, newly_documented: Iterable[str], removed: Iterable[str] = ()) -> Path:
        """Read, merge and rewrite the index file in the working copy."""
        path = self.root / self.layout.index_file
        existing = path.read_text(encoding="utf-8") if path.is_file() else ""
        path.write_text(self.merge_and_render(existing, newly_documented, removed), encoding="utf-8")
        self.logger.info("Documentation index updated: %s", self.layout.index_file)
        return path

    def key_for(self, source_path: str) -> IndexKey:
        source = PurePosixPath(source_path.replace("\\", "/"))
        directory = source.parent.as_posix()
        return (ROOT_DIRECTORY if directory == "." else directory, source.stem)

    def entry_for(self, source_path: str) -> IndexEntry:
        directory, file_name = self.key_for(source_path)
        doc_link = self.layout.doc_path_for(source_path)
        return IndexEntry(
            directory=directory,
            file_name=file_name,
            source_path=source_path.replace("\\", "/"),
            doc_link=doc_link,
            synopsis=self.synopsis_for(self.root / doc_link) or "",
        )

    @staticmethod
    def synopsis_for(doc_path: Path) -> Optional[str]:
        """First non-blank, non-heading line of a generated doc, truncated."""
        try:
            text = doc_path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError):
            return None
        for raw_line in text.splitlines():
            line = raw_line.strip()
            if not line or line.startswith("#"):
                continue
            if len(line) > SYNOPSIS_LIMIT:
                return line[:SYNOPSIS_LIMIT].rstrip() + "..."
            return line
        return None

    # ------------------------------------------------------------------
    # Parsing and rendering

    @staticmethod
    def parse(text: str) -> Dict[IndexKey, IndexEntry]:
        """Reconstruct entries from a rendered index; unknown lines are ignored."""
        entries: Dict[IndexKey, IndexEntry] = {}
        directory: Optional[str] = None
        for raw_line in text.splitlines():
            line = raw_line.rstrip()
            if line.startswith("### "):
                directory = _parse_heading(line)
                continue
            if line.startswith("## ") or line.startswith("# ") or line == "---":
                directory = None
                continue
            if directory is None or not line.startswith("- **["):
                continue
            match = _ENTRY_PATTERN.match(line)
            if not match:
                continue
            name = _unescape(match.group("name"))
            source = match.group("source") or (name if directory == ROOT_DIRECTORY else f"{directory}/{name}")
            entry = IndexEntry(
                directory=directory,
                file_name=name,
                source_path=source,
                doc_link=_unescape(match.group("link")),
                synopsis=(match.group("synopsis") or "").strip(),
            )
            entries[entry.key] = entry
        return entries

    def render(self, entries: Dict[IndexKey, IndexEntry]) -> str:
        by_directory: Dict[str, List[IndexEntry]] = {}
        for entry in entries.values():
            by_directory.setdefault(entry.directory, []).append(entry)

        lines = [
            _TITLE,
            "",
            _DESCRIPTION,
            "",
            f"**Total documented files**: {len(entries)}",
            f"**Directories**: {len(by_directory)}",
            "",
            _NAVIGATION,
            "",
        ]
        for directory in sorted(by_directory):
            lines.append(ROOT_HEADING if directory == ROOT_DIRECTORY else f"### {directory}/")
            lines.append("")
            for entry in sorted(by_directory[directory], key=lambda item: item.file_name):
                lines.append(entry.rendered_line)
            lines.append("")

        timestamp = self._clock().isoformat(timespec="seconds").replace("+00:00", "Z")
        lines.extend(
            [
                "---",
                "",
                "*This documentation was generated automatically from the source code.*",
                "",
                f"*Last updated: {timestamp}*",
                "",
            ]
        )
        return "\n".join(lines)


def _unescape(text: str) -> str:
    return _ESCAPED.sub(r"\1", text)


def _parse_heading(line: str) -> Optional[str]:
    if line.strip() == ROOT_HEADING:
        return ROOT_DIRECTORY
    title = line[4:].strip()
    if title.endswith("/") and len(title) > 1:
        return title[:-1]
    return None


__all__ = ["IndexBuilder", "ROOT_DIRECTORY", "SYNOPSIS_LIMIT"]
