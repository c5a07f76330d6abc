"""Core data models shared across docbranch components."""

from __future__ import annotations

import re
import shutil
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional, Tuple


@dataclass
class RepoConfig:
    """A single documentation run request."""

    url: str
    token: Optional[str] = None
    target_path: Optional[str] = None
    branch: str = "docs-generation"
    main_branch: Optional[str] = None
    overwrite: bool = False


@dataclass
class RepoHandle:
    """Working copy owned by exactly one run."""

    path: Path
    url: str
    workspace: Path
    keep: bool = False

    def cleanup(self) -> bool:
        """Remove the working copy unless retention was requested."""
        if self.keep:
            return False
        shutil.rmtree(self.workspace, ignore_errors=True)
        return True


class BranchPhase(str, Enum):
    NO_BRANCH = "no_branch"
    LOCAL_ONLY = "local_only"
    REMOTE_EXISTS = "remote_exists"
    CHECKED_OUT = "checked_out"
    MERGED = "merged"


@dataclass
class DocBranchState:
    """What the repository says about the documentation branch in this run."""

    branch: str
    exists_local: bool = False
    exists_remote: bool = False
    has_docs: bool = False
    last_doc_commit: Optional[str] = None
    phase: BranchPhase = BranchPhase.NO_BRANCH

    @property
    def exists(self) -> bool:
        return self.exists_local or self.exists_remote


@dataclass(frozen=True)
class ChangeSet:
    """Documentable paths touched upstream since the last documentation commit."""

    changed_files: frozenset[str] = frozenset()
    new_files: frozenset[str] = frozenset()
    is_incremental: bool = False

    @classmethod
    def full_scan(cls) -> "ChangeSet":
        return cls()

    @property
    def is_empty(self) -> bool:
        return not self.changed_files and not self.new_files

    def touched(self) -> List[str]:
        return sorted(self.changed_files | self.new_files)


class WorkAction(str, Enum):
    CREATE = "create"
    UPDATE = "update"


@dataclass(frozen=True)
class DocWorkItem:
    source_path: str
    action: WorkAction


@dataclass
class DocumentationPlan:
    """Concrete worklist produced by the planner."""

    work_items: List[DocWorkItem] = field(default_factory=list)
    existing_docs: List[str] = field(default_factory=list)
    orphaned_docs: List[str] = field(default_factory=list)
    is_incremental: bool = False


_LINK_SPECIALS = re.compile(r"([\\\[\]()])")


def escape_link_text(text: str) -> str:
    """Backslash-escape characters that would end a Markdown link early."""
    return _LINK_SPECIALS.sub(r"\\\1", text)


@dataclass(frozen=True)
class IndexEntry:
    """One line of the documentation index."""

    directory: str
    file_name: str
    source_path: str
    doc_link: str
    synopsis: str = ""

    @property
    def key(self) -> Tuple[str, str]:
        return (self.directory, self.file_name)

    @property
    def rendered_line(self) -> str:
        name = escape_link_text(self.file_name)
        link = escape_link_text(self.doc_link)
        line = f"- **[{name}]({link})** `{self.source_path}`"
        if self.synopsis:
            line += f" - {self.synopsis}"
        return line


@dataclass(frozen=True)
class ProgressEvent:
    """Progress notification emitted while a run advances."""

    stage: str
    message: str
    completed: int = 0
    total: int = 0


@dataclass
class RunSummary:
    """Outcome of a full documentation run."""

    documented: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)
    removed: List[str] = field(default_factory=list)
    existing_docs: List[str] = field(default_factory=list)
    is_incremental: bool = False
    branch_ref: str = ""
    branch_url: Optional[str] = None
    committed: bool = False


__all__ = [
    "BranchPhase",
    "ChangeSet",
    "DocBranchState",
    "DocWorkItem",
    "DocumentationPlan",
    "IndexEntry",
    "ProgressEvent",
    "RepoConfig",
    "RepoHandle",
    "RunSummary",
    "WorkAction",
    "escape_link_text",
]
