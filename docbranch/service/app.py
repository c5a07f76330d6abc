"""FastAPI application entrypoint for docbranch service mode."""

from __future__ import annotations

import asyncio
import threading
import uuid
from collections import deque
from dataclasses import asdict, dataclass, field
from typing import Any, Callable, Deque, Dict, List, Optional

from fastapi import Depends, FastAPI, HTTPException
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ..access import AccessChecker, AccessReport
from ..config import load_config
from ..errors import ConfigurationError, DocBranchError, FailureKind
from ..git.transport import purge_workspace
from ..logging import get_logger
from ..models import DocumentationPlan, ProgressEvent, RepoConfig, RunSummary
from ..orchestrator import Orchestrator, ProgressCallback

OrchestratorFactory = Callable[[Optional[ProgressCallback]], Orchestrator]
WorkspaceCleaner = Callable[[], List[str]]

MAX_JOB_EVENTS = 50
MAX_JOBS = 100

_STATUS_CODES = {
    FailureKind.CONFIGURATION: 400,
    FailureKind.BAD_CREDENTIAL: 401,
    FailureKind.INSUFFICIENT_SCOPE: 403,
    FailureKind.NOT_FOUND: 404,
    FailureKind.DIVERGED: 409,
    FailureKind.CONFLICT: 409,
    FailureKind.RATE_LIMITED: 429,
    FailureKind.NETWORK: 502,
}


class GenerateRequest(BaseModel):
    repo_url: str
    github_token: Optional[str] = None
    target_path: Optional[str] = None
    branch: Optional[str] = None
    main_branch: Optional[str] = None
    overwrite: bool = False


class GenerateResponse(BaseModel):
    job_id: str


class PreviewRequest(BaseModel):
    repo_url: str
    github_token: Optional[str] = None
    target_path: Optional[str] = None


class PreviewResponse(BaseModel):
    files: List[str]
    existing_docs: List[str]
    total: int


class AccessRequest(BaseModel):
    repo_url: str
    github_token: str


class HealthResponse(BaseModel):
    status: str


class CleanupResponse(BaseModel):
    success: bool
    removed: List[str]


@dataclass
class Job:
    """Progress record of one background run; only the latest events are kept."""

    job_id: str
    status: str = "pending"
    events: Deque[ProgressEvent] = field(default_factory=lambda: deque(maxlen=MAX_JOB_EVENTS))
    summary: Optional[RunSummary] = None
    error: Optional[str] = None
    error_kind: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "job_id": self.job_id,
            "status": self.status,
            "events": [asdict(event) for event in self.events],
            "summary": asdict(self.summary) if self.summary else None,
            "error": self.error,
            "error_kind": self.error_kind,
        }


class JobStore:
    """Thread-safe registry of runs started by this process.

    At most ``max_jobs`` records are retained; the oldest finished jobs are
    evicted first, running jobs never are.
    """

    def __init__(self, max_jobs: int = MAX_JOBS) -> None:
        self.max_jobs = max_jobs
        self._jobs: Dict[str, Job] = {}
        self._lock = threading.Lock()

    def create(self) -> Job:
        job = Job(job_id=uuid.uuid4().hex)
        with self._lock:
            self._jobs[job.job_id] = job
            self._evict_finished()
        return job

    def active_count(self) -> int:
        with self._lock:
            return sum(1 for job in self._jobs.values() if job.status in ("pending", "running"))

    def _evict_finished(self) -> None:
        excess = len(self._jobs) - self.max_jobs
        if excess <= 0:
            return
        finished = [
            job_id for job_id, job in self._jobs.items() if job.status in ("completed", "failed")
        ]
        for job_id in finished[:excess]:
            del self._jobs[job_id]

    def get(self, job_id: str) -> Optional[Job]:
        with self._lock:
            return self._jobs.get(job_id)

    def start(self, job_id: str) -> None:
        with self._lock:
            self._jobs[job_id].status = "running"

    def record(self, job_id: str, event: ProgressEvent) -> None:
        with self._lock:
            self._jobs[job_id].events.append(event)

    def finish(
        self,
        job_id: str,
        *,
        summary: Optional[RunSummary] = None,
        error: Optional[DocBranchError] = None,
    ) -> None:
        with self._lock:
            job = self._jobs[job_id]
            if error is not None:
                job.status = "failed"
                job.error = str(error)
                job.error_kind = error.kind.value
            else:
                job.status = "completed"
                job.summary = summary

    def snapshot(self, job_id: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            job = self._jobs.get(job_id)
            return job.to_dict() if job else None


def _default_orchestrator(progress: Optional[ProgressCallback] = None) -> Orchestrator:
    return Orchestrator(load_config(), access_checker=AccessChecker(), progress=progress)


def _default_cleaner() -> List[str]:
    return purge_workspace(load_config().workspace_dir)


def create_app(
    orchestrator_factory: OrchestratorFactory = _default_orchestrator,
    access_checker_factory: Callable[[], AccessChecker] = AccessChecker,
    jobs: JobStore | None = None,
    workspace_cleaner: WorkspaceCleaner = _default_cleaner,
) -> FastAPI:
    """Create the FastAPI application exposing docbranch operations."""

    app = FastAPI(title="docbranch Service", version="1.0.0")
    store = jobs or JobStore()
    logger = get_logger("service")

    async def get_access_checker() -> AccessChecker:
        return access_checker_factory()

    def _run_job(job_id: str, repo_config: RepoConfig) -> None:
        store.start(job_id)
        try:
            orchestrator = orchestrator_factory(lambda event: store.record(job_id, event))
            summary = orchestrator.run(repo_config)
        except DocBranchError as exc:
            store.finish(job_id, error=exc)
            return
        except Exception as exc:  # pragma: no cover - keeps the job record consistent
            logger.exception("Job %s crashed", job_id)
            store.finish(job_id, error=DocBranchError(str(exc)))
            return
        store.finish(job_id, summary=summary)

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        return HealthResponse(status="ok")

    @app.post("/generate", response_model=GenerateResponse, status_code=202)
    async def generate(payload: GenerateRequest) -> GenerateResponse:
        if not payload.repo_url.strip():
            raise ConfigurationError("Repository URL is required")
        repo_config = RepoConfig(
            url=payload.repo_url,
            token=payload.github_token,
            target_path=payload.target_path,
            main_branch=payload.main_branch,
            overwrite=payload.overwrite,
        )
        if payload.branch:
            repo_config.branch = payload.branch
        job = store.create()
        worker = threading.Thread(
            target=_run_job,
            args=(job.job_id, repo_config),
            name=f"docbranch-job-{job.job_id[:8]}",
            daemon=True,
        )
        worker.start()
        logger.info("Started job %s for %s", job.job_id, payload.repo_url)
        return GenerateResponse(job_id=job.job_id)

    @app.get("/status/{job_id}")
    async def status(job_id: str) -> Dict[str, Any]:
        snapshot = store.snapshot(job_id)
        if snapshot is None:
            raise HTTPException(status_code=404, detail=f"Unknown job {job_id}")
        return snapshot

    @app.post("/preview", response_model=PreviewResponse)
    async def preview(payload: PreviewRequest) -> PreviewResponse:
        def _run_preview() -> DocumentationPlan:
            orchestrator = orchestrator_factory(None)
            return orchestrator.preview(
                RepoConfig(
                    url=payload.repo_url,
                    token=payload.github_token,
                    target_path=payload.target_path,
                )
            )

        loop = asyncio.get_running_loop()
        plan = await loop.run_in_executor(None, _run_preview)
        files = [item.source_path for item in plan.work_items]
        return PreviewResponse(
            files=files,
            existing_docs=plan.existing_docs,
            total=len(files) + len(plan.existing_docs),
        )

    @app.post("/access-check")
    async def access_check(
        payload: AccessRequest,
        checker: AccessChecker = Depends(get_access_checker),
    ) -> Dict[str, Any]:
        def _validate() -> AccessReport:
            return checker.validate(payload.repo_url, payload.github_token, require_push=False)

        loop = asyncio.get_running_loop()
        report = await loop.run_in_executor(None, _validate)
        return {"success": True, **report.to_dict()}

    @app.post("/cleanup", response_model=CleanupResponse)
    async def cleanup() -> CleanupResponse:
        if store.active_count():
            raise HTTPException(status_code=409, detail="Jobs are still running; retry when they finish")
        loop = asyncio.get_running_loop()
        removed = await loop.run_in_executor(None, workspace_cleaner)
        logger.info("Workspace cleanup removed %d entries", len(removed))
        return CleanupResponse(success=True, removed=removed)

    @app.exception_handler(DocBranchError)
    async def docbranch_error_handler(
        _: Any, exc: DocBranchError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=_STATUS_CODES.get(exc.kind, 500),
            content={"detail": str(exc), "kind": exc.kind.value},
        )

    return app


def run_service(
    host: str = "127.0.0.1", port: int = 8000
) -> None:  # pragma: no cover - integration path
    import uvicorn

    app = create_app()
    uvicorn.run(app, host=host, port=port)


__all__ = ["Job", "JobStore", "MAX_JOB_EVENTS", "MAX_JOBS", "create_app", "run_service"]
