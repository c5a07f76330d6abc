"""Turns detected changes into a documentation worklist."""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional

from .classifier import SourceClassifier
from .errors import TargetPathError
from .layout import DocLayout
from .logging import get_logger
from .models import ChangeSet, DocWorkItem, DocumentationPlan, WorkAction
from .scanner import SourceScanner


class DocumentationPlanner:
    """Decides which files to (re)document in the current working copy."""

    def __init__(
        self,
        root: Path,
        classifier: SourceClassifier | None = None,
        scanner: SourceScanner | None = None,
        layout: DocLayout | None = None,
    ) -> None:
        self.root = Path(root)
        self.classifier = classifier or SourceClassifier()
        self.scanner = scanner or SourceScanner(self.classifier)
        self.layout = layout or DocLayout()
        self.logger = get_logger("planner")

    def plan(
        self,
        change_set: ChangeSet,
        target_path: Optional[str] = None,
        overwrite: bool = False,
    ) -> DocumentationPlan:
        target = self._resolve_target(target_path)
        if change_set.is_incremental:
            return self._plan_incremental(change_set)
        return self._plan_full_scan(target, overwrite)

    def _resolve_target(self, target_path: Optional[str]) -> Path:
        if not target_path or target_path.strip() in ("", ".", "/"):
            return self.root
        target = (self.root / target_path.strip().strip("/")).resolve()
        root = self.root.resolve()
        if target != root and root not in target.parents:
            raise TargetPathError(f"Target path escapes the repository: {target_path}")
        if not target.is_dir():
            raise TargetPathError(f"Target path does not exist: {target_path}")
        return target

    def _plan_full_scan(self, target: Path, overwrite: bool) -> DocumentationPlan:
        self.logger.info("Scanning all source files in %s", target)
        work_items: List[DocWorkItem] = []
        existing_docs: List[str] = []
        for source_path in self.scanner.scan(self.root, target):
            if not overwrite and self.layout.doc_exists(self.root, source_path):
                existing_docs.append(source_path)
                continue
            work_items.append(DocWorkItem(source_path, WorkAction.CREATE))

        self.logger.info(
            "Full scan: %d files to document, %d with existing docs",
            len(work_items),
            len(existing_docs),
        )
        return DocumentationPlan(
            work_items=sorted(work_items, key=lambda item: item.source_path),
            existing_docs=sorted(existing_docs),
            is_incremental=False,
        )

    def _plan_incremental(self, change_set: ChangeSet) -> DocumentationPlan:
        work_items: List[DocWorkItem] = []
        orphaned: List[str] = []
        for source_path in change_set.touched():
            if not self.classifier.is_documentable(source_path):
                continue
            has_doc = self.layout.doc_exists(self.root, source_path)
            if not (self.root / source_path).is_file():
                if has_doc and not self._doc_shared(source_path):
                    orphaned.append(source_path)
                continue
            # Changed files are regenerated even when overwrite is off.
            action = WorkAction.UPDATE if has_doc else WorkAction.CREATE
            work_items.append(DocWorkItem(source_path, action))

        self.logger.info(
            "Incremental update: %d files to document, %d orphaned docs",
            len(work_items),
            len(orphaned),
        )
        return DocumentationPlan(
            work_items=work_items,
            orphaned_docs=orphaned,
            is_incremental=True,
        )

    def _doc_shared(self, source_path: str) -> bool:
        """True when another live source maps to the same doc artifact."""
        source = self.root / source_path
        if not source.parent.is_dir():
            return False
        for sibling in source.parent.glob(f"{source.stem}.*"):
            rel_path = sibling.relative_to(self.root).as_posix()
            if sibling.is_file() and self.classifier.is_documentable(rel_path):
                return True
        return False


__all__ = ["DocumentationPlanner"]
