"""Documentation branch acquisition and upstream reconciliation."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from ..errors import GitCommandError, MergeConflictError, ReconcileError
from ..index import IndexBuilder
from ..layout import DocLayout
from ..logging import get_logger
from ..models import BranchPhase, ChangeSet, DocBranchState
from .diff import ChangeDetector
from .transport import GitTransport

MERGE_MESSAGE = "Merge latest changes from {branch} into documentation branch"


class BranchReconciler:
    """Owns the documentation branch for a single run.

    Phases advance ``NO_BRANCH/LOCAL_ONLY/REMOTE_EXISTS -> CHECKED_OUT -> MERGED``.
    All state is re-derived from the repository; nothing survives the run.
    """

    def __init__(
        self,
        transport: GitTransport,
        detector: ChangeDetector | None = None,
        layout: DocLayout | None = None,
        *,
        remote: str = "origin",
    ) -> None:
        self.transport = transport
        self.layout = layout or DocLayout()
        self.detector = detector or ChangeDetector(transport, layout=self.layout)
        self.remote = remote
        self.logger = get_logger("reconciler")
        self.state: Optional[DocBranchState] = None
        self.upstream_tip: Optional[str] = None

    @property
    def root(self) -> Path:
        return Path(self.transport.repo_path)

    def ensure_branch(self, name: str) -> DocBranchState:
        """Check out the documentation branch, creating it when needed."""
        if (
            self.state is not None
            and self.state.branch == name
            and self.state.phase in (BranchPhase.CHECKED_OUT, BranchPhase.MERGED)
        ):
            return self.state

        self.logger.info("Setting up documentation branch %s", name)
        self.transport.fetch(self.remote, prune=True)
        exists_local = self.transport.ref_exists(f"refs/heads/{name}")
        exists_remote = self.transport.ref_exists(f"refs/remotes/{self.remote}/{name}")
        state = DocBranchState(branch=name, exists_local=exists_local, exists_remote=exists_remote)

        if exists_remote:
            state.phase = BranchPhase.REMOTE_EXISTS
            self.logger.info("Found existing remote branch %s/%s", self.remote, name)
            if exists_local:
                self.transport.checkout(name)
                self.transport.pull(name, self.remote)
            else:
                self.transport.checkout_new_branch(name, f"{self.remote}/{name}", track=True)
        elif exists_local:
            state.phase = BranchPhase.LOCAL_ONLY
            self.logger.info("Found local branch %s", name)
            self.transport.checkout(name)
        else:
            self.logger.info("Creating new documentation branch %s", name)
            self.transport.checkout_new_branch(name)

        state.phase = BranchPhase.CHECKED_OUT
        self.state = state
        return state

    def has_existing_docs(self) -> bool:
        """Record and return whether the checked-out branch carries generated docs.

        A branch created by this run never does. Otherwise the branch needs a
        state marker or an index with entries; plain ``docs/*.md`` files from the
        project itself do not count.
        """
        state = self._require_state(BranchPhase.CHECKED_OUT, BranchPhase.MERGED)
        has_docs = False
        if state.exists_local or state.exists_remote:
            has_docs = self.layout.read_source_commit(self.root) is not None
            if not has_docs:
                index_path = self.root / self.layout.index_file
                if index_path.is_file():
                    entries = IndexBuilder.parse(index_path.read_text(encoding="utf-8"))
                    has_docs = bool(entries)
        state.has_docs = has_docs
        if has_docs:
            self.logger.info("Found existing documentation on %s", state.branch)
        return has_docs

    def reconcile_with_upstream(self, main_branch: str) -> ChangeSet:
        """Merge upstream into the documentation branch and report what changed."""
        state = self._require_state(BranchPhase.CHECKED_OUT)
        if not state.has_docs:
            raise ReconcileError(
                f"Branch {state.branch} has no generated documentation; run a full scan instead"
            )

        upstream_ref = f"{self.remote}/{main_branch}"
        self.logger.info("Merging latest changes from %s into %s", main_branch, state.branch)
        self.transport.fetch(self.remote, main_branch)
        self.upstream_tip = self.transport.rev_parse(upstream_ref)

        state.last_doc_commit = self.detector.find_last_doc_commit()
        change_set = self.detector.compute_changes(state.last_doc_commit, self.upstream_tip)

        self._merge(upstream_ref, main_branch)
        state.phase = BranchPhase.MERGED
        return change_set

    def detect_main_branch(self, fallback: str = "main") -> str:
        return self.transport.default_branch(self.remote) or fallback

    # ------------------------------------------------------------------
    # Internals

    def _merge(self, upstream_ref: str, main_branch: str) -> None:
        try:
            self.transport.merge(upstream_ref, no_ff=True, no_commit=True)
        except GitCommandError as exc:
            conflicts = self.transport.conflicted_paths()
            if not conflicts:
                raise
            foreign = [path for path in conflicts if not self.layout.is_doc_path(path)]
            if foreign:
                self.transport.abort_merge()
                raise MergeConflictError(
                    f"Merging {upstream_ref} conflicts outside documentation paths: "
                    + ", ".join(foreign),
                    paths=foreign,
                ) from exc
            self.logger.warning("Resolving %d documentation conflicts in favour of the docs branch", len(conflicts))
            self.transport.keep_head_versions(conflicts)

        if not self.transport.merge_in_progress():
            self.logger.info("Documentation branch already contains %s", upstream_ref)
            return

        upstream_doc_edits = self.transport.staged_paths(
            [f"{self.layout.docs_dir}/", self.layout.index_file], against="HEAD"
        )
        owned = [path for path in upstream_doc_edits if self.transport.object_exists(f"HEAD:{path}")]
        if owned:
            self.logger.debug("Keeping docs branch versions of %s", ", ".join(owned))
            self.transport.checkout_paths("HEAD", owned)

        if not self.transport.staged_paths():
            self.logger.info("Merge of %s produced no changes; skipping merge commit", upstream_ref)
            self.transport.abort_merge()
            return

        self.transport.commit(MERGE_MESSAGE.format(branch=main_branch))
        self.logger.info("Merged %s", upstream_ref)

    def _require_state(self, *phases: BranchPhase) -> DocBranchState:
        if self.state is None or self.state.phase not in phases:
            current = self.state.phase.value if self.state else BranchPhase.NO_BRANCH.value
            expected = ", ".join(phase.value for phase in phases)
            raise ReconcileError(f"Documentation branch is in phase {current}; expected {expected}")
        return self.state


__all__ = ["BranchReconciler", "MERGE_MESSAGE"]
