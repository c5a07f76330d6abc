"""Change detection between the last documentation run and upstream."""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Set

from ..classifier import SourceClassifier
from ..layout import DocLayout
from ..logging import get_logger
from ..models import ChangeSet
from .transport import GitTransport

COMMIT_MARKER = "[docbranch] Generate documentation"

_NEW_STATUSES = {"A"}
_CHANGED_STATUSES = {"M", "D", "T"}


class ChangeDetector:
    """Maps upstream history onto documentable files."""

    def __init__(
        self,
        transport: GitTransport,
        classifier: SourceClassifier | None = None,
        layout: DocLayout | None = None,
    ) -> None:
        self.transport = transport
        self.classifier = classifier or SourceClassifier()
        self.layout = layout or DocLayout()
        self.logger = get_logger("changes")

    def compute_changes(self, last_doc_commit: Optional[str], upstream_tip: str) -> ChangeSet:
        """Return documentable files added or changed upstream since ``last_doc_commit``.

        Without a prior documentation commit the result is a non-incremental,
        empty set and callers fall back to a full repository scan.
        """
        if not last_doc_commit:
            self.logger.info("No previous documentation commit; a full scan is required")
            return ChangeSet.full_scan()

        changed: Set[str] = set()
        new: Set[str] = set()
        for status, path in self.transport.diff_name_status(last_doc_commit, upstream_tip):
            if not self.classifier.is_documentable(path):
                continue
            code = status[:1].upper()
            if code in _NEW_STATUSES:
                new.add(path)
            elif code in _CHANGED_STATUSES:
                changed.add(path)

        self.logger.info(
            "Found %d changed and %d new documentable files since %s",
            len(changed),
            len(new),
            last_doc_commit[:8],
        )
        return ChangeSet(
            changed_files=frozenset(changed),
            new_files=frozenset(new),
            is_incremental=True,
        )

    def find_last_doc_commit(self) -> Optional[str]:
        """Locate the commit the current documentation was generated against."""
        recorded = self.layout.read_source_commit(Path(self.transport.repo_path))
        if recorded and self.transport.object_exists(f"{recorded}^{{commit}}"):
            self.logger.debug("Using recorded source commit %s", recorded[:8])
            return recorded
        if recorded:
            self.logger.warning("Recorded source commit %s is missing; searching history", recorded[:8])

        marked = self.transport.log(grep=COMMIT_MARKER)
        if marked:
            self.logger.debug("Using marked documentation commit %s", marked[0][:8])
            return marked[0]

        touched = self.transport.log(paths=[self.layout.index_file])
        if touched:
            self.logger.debug("Using last commit touching %s: %s", self.layout.index_file, touched[0][:8])
            return touched[0]
        return None


__all__ = ["COMMIT_MARKER", "ChangeDetector"]
