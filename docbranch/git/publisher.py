"""Commits generated documentation and pushes it to the documentation branch."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from ..errors import (
    GitCommandError,
    MergeConflictError,
    classify_git_error,
    is_conflict,
    is_non_fast_forward,
)
from ..layout import DocLayout
from ..logging import get_logger
from .diff import COMMIT_MARKER
from .transport import GitTransport, add_token_to_url

COMMIT_MESSAGE = f"""{COMMIT_MARKER}

Generated source file documentation under docs/ and refreshed
DOCUMENTATION_INDEX.md."""

RESOLVE_MESSAGE = f"{COMMIT_MARKER} (resolve documentation conflicts)"


class CommitComposer:
    """Stages documentation artifacts, commits them and pushes with one retry."""

    def __init__(
        self,
        transport: GitTransport,
        layout: DocLayout | None = None,
        *,
        remote: str = "origin",
        remote_url: Optional[str] = None,
    ) -> None:
        self.transport = transport
        self.layout = layout or DocLayout()
        self.remote = remote
        self.remote_url = remote_url
        self.logger = get_logger("publisher")

    def commit_and_push(self, branch: str, remote_auth: Optional[str] = None) -> bool:
        """Commit staged documentation and push it; returns False for no-op runs."""
        root = Path(self.transport.repo_path)
        artifacts = [
            path
            for path in (self.layout.docs_dir, self.layout.index_file)
            if (root / path).exists()
        ]
        if not artifacts:
            self.logger.info("No documentation files to commit")
            return False

        self.transport.add(artifacts, all_changes=True)
        if not self.transport.staged_paths():
            self.logger.info("No documentation changes to commit")
            return False

        self.transport.commit(COMMIT_MESSAGE)
        self.logger.info("Committed documentation on %s", branch)

        if remote_auth and self.remote_url:
            self.transport.set_remote_url(add_token_to_url(self.remote_url, remote_auth), self.remote)

        self._push_with_retry(branch)
        return True

    # ------------------------------------------------------------------
    # Internals

    def _push_with_retry(self, branch: str) -> None:
        try:
            self.transport.push(branch, self.remote, set_upstream=True)
        except GitCommandError as exc:
            if not is_non_fast_forward(exc):
                raise classify_git_error(exc) from exc
            self.logger.warning("Push rejected because %s/%s moved; pulling and retrying", self.remote, branch)
        else:
            self.logger.info("Pushed documentation to %s/%s", self.remote, branch)
            return

        try:
            self.transport.pull(branch, self.remote, rebase=False)
        except GitCommandError as exc:
            if not is_conflict(exc):
                raise classify_git_error(exc) from exc
            self._resolve_pull_conflicts(exc)

        try:
            self.transport.push(branch, self.remote, set_upstream=True)
        except GitCommandError as exc:
            raise classify_git_error(exc) from exc
        self.logger.info("Pushed documentation to %s/%s after merging remote changes", self.remote, branch)

    def _resolve_pull_conflicts(self, cause: GitCommandError) -> None:
        conflicts = self.transport.conflicted_paths()
        foreign = [path for path in conflicts if not self.layout.is_doc_path(path)]
        if not conflicts or foreign:
            if self.transport.merge_in_progress():
                self.transport.abort_merge()
            paths = foreign or conflicts
            raise MergeConflictError(
                "Remote documentation branch conflicts outside documentation paths: "
                + (", ".join(paths) if paths else str(cause)),
                paths=paths,
            ) from cause

        self.logger.warning("Keeping local versions of %d conflicted documentation files", len(conflicts))
        self.transport.keep_head_versions(conflicts)
        self.transport.commit(RESOLVE_MESSAGE)


__all__ = ["COMMIT_MESSAGE", "CommitComposer", "RESOLVE_MESSAGE"]
