"""On-disk layout of generated documentation.

The index parser depends on this layout, so changing it breaks existing
documentation branches.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Optional

DOCS_DIR = "docs"
INDEX_FILE = "DOCUMENTATION_INDEX.md"
STATE_FILE = ".docbranch-state.json"
_STATE_VERSION = 1


@dataclass(frozen=True)
class DocLayout:
    """Maps source paths to documentation artifacts inside a working copy."""

    docs_dir: str = DOCS_DIR
    index_file: str = INDEX_FILE
    state_file: str = STATE_FILE

    def doc_path_for(self, source_path: str) -> str:
        """Return `docs/<source dir>/<stem>.md` relative to the repository root."""
        source = PurePosixPath(source_path.replace("\\", "/"))
        parent = source.parent.as_posix()
        if parent in ("", "."):
            return f"{self.docs_dir}/{source.stem}.md"
        return f"{self.docs_dir}/{parent}/{source.stem}.md"

    def doc_exists(self, root: Path, source_path: str) -> bool:
        return (root / self.doc_path_for(source_path)).is_file()

    def is_doc_path(self, path: str) -> bool:
        normalized = path.replace("\\", "/")
        if normalized.startswith("./"):
            normalized = normalized[2:]
        return normalized == self.index_file or normalized.startswith(f"{self.docs_dir}/")

    @property
    def state_path(self) -> str:
        return f"{self.docs_dir}/{self.state_file}"

    def read_source_commit(self, root: Path) -> Optional[str]:
        """Return the upstream commit recorded by the last run, if any."""
        try:
            payload = json.loads((root / self.state_path).read_text(encoding="utf-8"))
        except FileNotFoundError:
            return None
        except (OSError, ValueError):
            return None
        if not isinstance(payload, dict) or payload.get("version") != _STATE_VERSION:
            return None
        commit = payload.get("source_commit")
        return commit if isinstance(commit, str) and commit else None

    def write_source_commit(self, root: Path, commit: str) -> Path:
        path = root / self.state_path
        path.parent.mkdir(parents=True, exist_ok=True)
        payload = {"version": _STATE_VERSION, "source_commit": commit}
        path.write_text(json.dumps(payload, indent=2, sort_keys=True) + "\n", encoding="utf-8")
        return path


__all__ = ["DOCS_DIR", "INDEX_FILE", "STATE_FILE", "DocLayout"]
