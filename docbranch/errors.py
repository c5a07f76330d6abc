"""Typed errors raised by docbranch pipeline stages."""

from __future__ import annotations

import re
from enum import Enum
from typing import Iterable, Sequence


class FailureKind(str, Enum):
    """Root causes an operator needs to tell apart."""

    CONFIGURATION = "configuration"
    BAD_CREDENTIAL = "bad_credential"
    INSUFFICIENT_SCOPE = "insufficient_scope"
    NOT_FOUND = "not_found"
    RATE_LIMITED = "rate_limited"
    NETWORK = "network"
    DIVERGED = "diverged"
    CONFLICT = "conflict"
    GENERATION = "generation"
    UNKNOWN = "unknown"


class DocBranchError(RuntimeError):
    """Base class for every error raised by the pipeline."""

    kind: FailureKind = FailureKind.UNKNOWN

    def __init__(self, message: str, *, kind: FailureKind | None = None) -> None:
        super().__init__(message)
        if kind is not None:
            self.kind = kind


class ConfigurationError(DocBranchError):
    """Invalid repository reference or run settings; raised before any mutation."""

    kind = FailureKind.CONFIGURATION


class TargetPathError(ConfigurationError):
    """The requested target directory does not exist in the working copy."""


class AuthenticationError(DocBranchError):
    """Credentials were rejected, lack permission, or the resource is hidden."""

    kind = FailureKind.BAD_CREDENTIAL


class RateLimitError(DocBranchError):
    kind = FailureKind.RATE_LIMITED


class TransportError(DocBranchError):
    kind = FailureKind.NETWORK


class PushRejectedError(DocBranchError):
    """The remote branch has diverged from the local documentation branch."""

    kind = FailureKind.DIVERGED


class MergeConflictError(DocBranchError):
    """A merge produced conflicts that cannot be resolved automatically."""

    kind = FailureKind.CONFLICT

    def __init__(self, message: str, paths: Iterable[str] = ()) -> None:
        super().__init__(message)
        self.paths: tuple[str, ...] = tuple(sorted(paths))


class ReconcileError(DocBranchError):
    """Branch reconciliation was invoked from an invalid state."""


class GenerationError(DocBranchError):
    """Every planned work item failed to produce documentation."""

    kind = FailureKind.GENERATION


_CREDENTIAL_PATTERN = re.compile(r"(https?://)[^/@\s]+@")


def redact(text: str) -> str:
    """Strip credentials embedded in remote URLs."""
    return _CREDENTIAL_PATTERN.sub(r"\1***@", text)


class GitCommandError(DocBranchError):
    """A git invocation exited with a non-zero status."""

    def __init__(
        self,
        args: Sequence[str],
        returncode: int,
        *,
        stdout: str = "",
        stderr: str = "",
    ) -> None:
        self.command = [redact(str(arg)) for arg in args]
        self.returncode = returncode
        self.stdout = redact(stdout or "")
        self.stderr = redact(stderr or "")
        detail = self.stderr.strip() or self.stdout.strip() or f"exit code {returncode}"
        super().__init__(f"`{' '.join(self.command)}` failed: {detail}")

    @property
    def output(self) -> str:
        return f"{self.stdout}\n{self.stderr}"


_NON_FAST_FORWARD_MARKERS = ("non-fast-forward", "fetch first", "[rejected]", "updates were rejected")
_CONFLICT_MARKERS = ("conflict", "unmerged", "not possible because you have unmerged files")
_RATE_LIMIT_MARKERS = ("rate limit",)
_BAD_CREDENTIAL_MARKERS = (
    "authentication failed",
    "invalid username or password",
    "could not read username",
    "error: 401",
)
_SCOPE_MARKERS = ("error: 403", "permission denied", "permission to", "denied to", "write access")
_NOT_FOUND_MARKERS = ("error: 404", "repository not found", "not found", "does not appear to be a git repository")
_NETWORK_MARKERS = (
    "could not resolve host",
    "connection timed out",
    "connection refused",
    "failed to connect",
    "network is unreachable",
    "the remote end hung up",
    "early eof",
)


def is_non_fast_forward(error: GitCommandError) -> bool:
    text = error.output.lower()
    return any(marker in text for marker in _NON_FAST_FORWARD_MARKERS)


def is_conflict(error: GitCommandError) -> bool:
    text = error.output.lower()
    return any(marker in text for marker in _CONFLICT_MARKERS)


def classify_git_error(error: GitCommandError) -> DocBranchError:
    """Map a failed git command to the error taxonomy, keeping the original detail."""
    text = error.output.lower()
    message = str(error)
    if any(marker in text for marker in _RATE_LIMIT_MARKERS):
        return RateLimitError(message)
    if any(marker in text for marker in _BAD_CREDENTIAL_MARKERS):
        return AuthenticationError(message, kind=FailureKind.BAD_CREDENTIAL)
    if any(marker in text for marker in _SCOPE_MARKERS):
        return AuthenticationError(message, kind=FailureKind.INSUFFICIENT_SCOPE)
    if is_non_fast_forward(error):
        return PushRejectedError(message)
    if is_conflict(error):
        return MergeConflictError(message)
    if any(marker in text for marker in _NOT_FOUND_MARKERS):
        return AuthenticationError(message, kind=FailureKind.NOT_FOUND)
    if any(marker in text for marker in _NETWORK_MARKERS):
        return TransportError(message)
    return TransportError(message, kind=FailureKind.UNKNOWN)


__all__ = [
    "AuthenticationError",
    "ConfigurationError",
    "DocBranchError",
    "FailureKind",
    "GenerationError",
    "GitCommandError",
    "MergeConflictError",
    "PushRejectedError",
    "RateLimitError",
    "ReconcileError",
    "TargetPathError",
    "TransportError",
    "classify_git_error",
    "is_conflict",
    "is_non_fast_forward",
    "redact",
]
