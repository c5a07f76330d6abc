"""Pipeline orchestration for documentation branch runs."""

from __future__ import annotations

import time
from pathlib import Path
from typing import Callable, List, Optional

from .access import AccessChecker, parse_github_url
from .classifier import SourceClassifier
from .config import DocBranchConfig
from .errors import ConfigurationError, DocBranchError, GenerationError
from .git.diff import ChangeDetector
from .git.publisher import CommitComposer
from .git.reconciler import BranchReconciler
from .git.transport import GitTransport, Runner, clone
from .index import IndexBuilder
from .layout import DocLayout
from .llm.summarizer import Summarizer
from .logging import get_logger
from .models import (
    ChangeSet,
    DocumentationPlan,
    DocWorkItem,
    ProgressEvent,
    RepoConfig,
    RepoHandle,
    RunSummary,
)
from .planner import DocumentationPlanner
from .scanner import SourceScanner

ProgressCallback = Callable[[ProgressEvent], None]


class Orchestrator:
    """Coordinates one documentation run from clone to push."""

    def __init__(
        self,
        config: DocBranchConfig,
        summarizer: Summarizer | None = None,
        *,
        access_checker: AccessChecker | None = None,
        runner: Runner | None = None,
        sleep: Callable[[float], None] = time.sleep,
        progress: ProgressCallback | None = None,
        layout: DocLayout | None = None,
    ) -> None:
        self.config = config
        self.summarizer = summarizer or Summarizer.from_config(config)
        self.access_checker = access_checker
        self.layout = layout or DocLayout()
        self.classifier = SourceClassifier(
            config.extensions or None,
            config.exclude_patterns or None,
        )
        self._runner = runner
        self._sleep = sleep
        self._progress = progress
        self.logger = get_logger("orchestrator")

    def run(self, repo_config: RepoConfig) -> RunSummary:
        """Document ``repo_config.url`` and push the result to its documentation branch."""
        self._validate_request(repo_config)
        self._check_access(repo_config)

        self._emit("clone", f"Cloning {repo_config.url}")
        handle = clone(
            repo_config.url,
            self.config.workspace_dir,
            token=repo_config.token,
            keep=self.config.keep_workdir,
            runner=self._runner,
        )
        try:
            return self._run_in(handle, repo_config)
        except DocBranchError as exc:
            self.logger.error("Documentation run failed (%s): %s", exc.kind.value, exc)
            raise
        finally:
            if handle.cleanup():
                self.logger.debug("Removed working copy %s", handle.workspace)
            else:
                self.logger.info("Kept working copy at %s", handle.path)

    def preview(self, repo_config: RepoConfig) -> DocumentationPlan:
        """List what a full run would document, without touching any branch."""
        self._validate_request(repo_config)
        self._emit("clone", f"Cloning {repo_config.url}")
        handle = clone(
            repo_config.url,
            self.config.workspace_dir,
            token=repo_config.token,
            keep=self.config.keep_workdir,
            runner=self._runner,
        )
        try:
            planner = self._planner(handle.path)
            return planner.plan(ChangeSet.full_scan(), repo_config.target_path, overwrite=False)
        finally:
            handle.cleanup()

    # ------------------------------------------------------------------
    # Stages

    def _run_in(self, handle: RepoHandle, repo_config: RepoConfig) -> RunSummary:
        root = handle.path
        transport = GitTransport(root, runner=self._runner)
        detector = ChangeDetector(transport, self.classifier, self.layout)
        reconciler = BranchReconciler(transport, detector, self.layout)

        branch = repo_config.branch or self.config.branch
        self._emit("branch", f"Preparing documentation branch {branch}")
        reconciler.ensure_branch(branch)

        if reconciler.has_existing_docs():
            main_branch = (
                repo_config.main_branch
                or self.config.main_branch
                or reconciler.detect_main_branch()
            )
            self._emit("branch", f"Merging {main_branch} into {branch}")
            change_set = reconciler.reconcile_with_upstream(main_branch)
            source_commit = reconciler.upstream_tip or transport.rev_parse("HEAD")
        else:
            change_set = ChangeSet.full_scan()
            source_commit = transport.rev_parse("HEAD")

        target_path = repo_config.target_path or self.config.target_path
        overwrite = repo_config.overwrite or self.config.overwrite
        plan = self._planner(root).plan(change_set, target_path, overwrite=overwrite)
        self._emit(
            "plan",
            f"{len(plan.work_items)} files to document, {len(plan.existing_docs)} already documented",
            total=len(plan.work_items),
        )

        summary = RunSummary(
            existing_docs=list(plan.existing_docs),
            is_incremental=plan.is_incremental,
            branch_ref=branch,
            branch_url=self._branch_url(repo_config.url, branch),
        )
        summary.removed = self._prune_orphans(root, plan.orphaned_docs)
        self._document(root, plan.work_items, summary)

        if plan.work_items and not summary.documented:
            raise GenerationError(
                f"Documentation generation failed for all {len(plan.work_items)} files"
            )

        indexed = list(summary.documented)
        if not plan.is_incremental:
            indexed.extend(plan.existing_docs)
        if indexed or summary.removed:
            self._emit("index", "Updating documentation index")
            IndexBuilder(root, self.layout).update_file(sorted(indexed), summary.removed)

        if indexed or summary.removed or plan.is_incremental:
            self.layout.write_source_commit(root, source_commit)

        self._emit("commit", f"Committing documentation to {branch}")
        composer = CommitComposer(transport, self.layout, remote_url=repo_config.url)
        summary.committed = composer.commit_and_push(branch, remote_auth=repo_config.token)

        self._emit(
            "done",
            f"Documented {len(summary.documented)} files, {len(summary.failed)} failed",
            completed=len(summary.documented),
            total=len(plan.work_items),
        )
        self.logger.info(
            "Run complete: %d documented, %d failed, %d removed, %d already documented",
            len(summary.documented),
            len(summary.failed),
            len(summary.removed),
            len(summary.existing_docs),
        )
        return summary

    def _document(self, root: Path, work_items: List[DocWorkItem], summary: RunSummary) -> None:
        total = len(work_items)
        delay = self.config.summarize.request_delay
        for position, item in enumerate(work_items):
            if position and delay > 0:
                self._sleep(delay)
            self._emit("document", f"Documenting {item.source_path}", completed=position, total=total)
            try:
                content = (root / item.source_path).read_text(encoding="utf-8", errors="ignore")
            except OSError as exc:
                self.logger.error("Could not read %s: %s", item.source_path, exc)
                summary.failed.append(item.source_path)
                continue

            markdown = self.summarizer.summarize(item.source_path, content)
            if markdown is None:
                summary.failed.append(item.source_path)
                continue

            doc_path = root / self.layout.doc_path_for(item.source_path)
            doc_path.parent.mkdir(parents=True, exist_ok=True)
            doc_path.write_text(markdown, encoding="utf-8")
            summary.documented.append(item.source_path)
            self.logger.info("Documented %s (%s)", item.source_path, item.action.value)

    def _prune_orphans(self, root: Path, orphaned: List[str]) -> List[str]:
        removed: List[str] = []
        for source_path in orphaned:
            doc_path = root / self.layout.doc_path_for(source_path)
            if doc_path.is_file():
                doc_path.unlink()
                self.logger.info("Removed documentation for deleted source %s", source_path)
            removed.append(source_path)
        return removed

    # ------------------------------------------------------------------
    # Helpers

    def _planner(self, root: Path) -> DocumentationPlanner:
        scanner = SourceScanner(self.classifier, self.config.exclude_paths)
        return DocumentationPlanner(root, self.classifier, scanner, self.layout)

    def _validate_request(self, repo_config: RepoConfig) -> None:
        if not repo_config.url or not repo_config.url.strip():
            raise ConfigurationError("Repository URL is required")
        branch = repo_config.branch or self.config.branch
        if not branch or branch.startswith("-") or " " in branch or ".." in branch:
            raise ConfigurationError(f"Invalid documentation branch name: {branch!r}")

    def _check_access(self, repo_config: RepoConfig) -> None:
        if not (self.config.validate_access and self.access_checker and repo_config.token):
            return
        if not _is_github_url(repo_config.url):
            self.logger.debug("Skipping access check for non-GitHub remote %s", repo_config.url)
            return
        self._emit("access", "Validating repository access")
        self.access_checker.validate(repo_config.url, repo_config.token)

    @staticmethod
    def _branch_url(url: str, branch: str) -> Optional[str]:
        if not _is_github_url(url):
            return None
        owner, repo = parse_github_url(url)
        return f"https://github.com/{owner}/{repo}/tree/{branch}"

    def _emit(self, stage: str, message: str, *, completed: int = 0, total: int = 0) -> None:
        self.logger.debug("[%s] %s", stage, message)
        if self._progress is not None:
            self._progress(ProgressEvent(stage=stage, message=message, completed=completed, total=total))


def _is_github_url(url: str) -> bool:
    try:
        parse_github_url(url)
    except ConfigurationError:
        return False
    return "github.com" in url


__all__ = ["Orchestrator", "ProgressCallback"]
