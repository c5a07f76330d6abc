"""Repository access validation against the GitHub REST API."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Tuple
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

from .errors import (
    AuthenticationError,
    ConfigurationError,
    FailureKind,
    RateLimitError,
    TransportError,
)
from .logging import get_logger

GITHUB_API_URL = "https://api.github.com"
TOKEN_HELP_URL = "https://github.com/settings/tokens/new"

_REPO_PATTERN = re.compile(r"github\.com[/:]([^/]+)/([^/]+?)(?:\.git)?/?$")

# (status, headers, body)
HttpResponse = Tuple[int, Dict[str, str], str]
Fetcher = Callable[[str, Dict[str, str]], HttpResponse]


@dataclass
class AccessReport:
    """What the token is allowed to do on the repository."""

    full_name: str
    private: bool = False
    push: bool = False
    pull: bool = False
    admin: bool = False
    owner_login: str = ""
    owner_type: str = ""
    scopes: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, object]:
        return {
            "full_name": self.full_name,
            "private": self.private,
            "permissions": {"push": self.push, "pull": self.pull, "admin": self.admin},
            "owner": {"login": self.owner_login, "type": self.owner_type},
            "scopes": list(self.scopes),
        }


def parse_github_url(url: str) -> Tuple[str, str]:
    """Return ``(owner, repo)`` for a GitHub repository URL."""
    match = _REPO_PATTERN.search((url or "").strip())
    if not match:
        raise ConfigurationError(
            "Invalid GitHub repository URL format. Expected: https://github.com/owner/repository"
        )
    return match.group(1), match.group(2)


def _urllib_fetch(url: str, headers: Dict[str, str]) -> HttpResponse:
    request = Request(url, headers=headers, method="GET")
    try:
        with urlopen(request, timeout=30) as response:  # type: ignore[arg-type]
            body = response.read().decode("utf-8", errors="ignore")
            return response.status, {k.lower(): v for k, v in response.headers.items()}, body
    except HTTPError as exc:
        body = exc.read().decode("utf-8", errors="ignore") if exc.fp else ""
        headers_out = {k.lower(): v for k, v in (exc.headers or {}).items()}
        return exc.code, headers_out, body
    except URLError as exc:  # pragma: no cover - depends on network
        raise TransportError(f"GitHub API request failed: {exc.reason}") from exc


class AccessChecker:
    """Classifies token problems before any clone is attempted."""

    def __init__(self, fetch: Fetcher | None = None, *, api_url: str = GITHUB_API_URL) -> None:
        self._fetch = fetch or _urllib_fetch
        self.api_url = api_url.rstrip("/")
        self.logger = get_logger("access")

    def validate(self, url: str, token: str, *, require_push: bool = True) -> AccessReport:
        if not token:
            raise ConfigurationError("A GitHub token is required to check repository access")
        owner, repo = parse_github_url(url)
        self.logger.info("Validating access to repository %s/%s", owner, repo)

        status, headers, body = self._get("/user", token)
        if status == 401:
            raise AuthenticationError(
                f"Invalid GitHub token. Generate a new token at {TOKEN_HELP_URL}",
                kind=FailureKind.BAD_CREDENTIAL,
            )
        self._raise_for_rate_limit(status, body)
        if status >= 400:
            raise TransportError(f"Failed to validate GitHub token: HTTP {status}", kind=FailureKind.UNKNOWN)
        scopes = [scope.strip() for scope in headers.get("x-oauth-scopes", "").split(",") if scope.strip()]
        if scopes:
            self.logger.debug("Token scopes: %s", ", ".join(scopes))

        status, _, body = self._get(f"/repos/{owner}/{repo}", token)
        if status == 401:
            raise AuthenticationError("Invalid GitHub token", kind=FailureKind.BAD_CREDENTIAL)
        self._raise_for_rate_limit(status, body)
        if status == 403:
            raise AuthenticationError(
                "GitHub token does not have sufficient permissions for this repository; "
                "it needs 'repo' scope for private repositories or 'public_repo' for public ones",
                kind=FailureKind.INSUFFICIENT_SCOPE,
            )
        if status == 404:
            raise AuthenticationError(
                f"Repository {owner}/{repo} does not exist or the token cannot see it",
                kind=FailureKind.NOT_FOUND,
            )
        if status >= 400:
            raise TransportError(f"GitHub API error: HTTP {status}", kind=FailureKind.UNKNOWN)

        report = self._report(body, owner, repo, scopes)
        if report.private and scopes and "repo" not in scopes:
            raise AuthenticationError(
                f"{report.full_name} is private and the token lacks the 'repo' scope",
                kind=FailureKind.INSUFFICIENT_SCOPE,
            )
        if require_push and not report.push:
            raise AuthenticationError(
                f"Token has no push access to {report.full_name}; it cannot create the documentation branch",
                kind=FailureKind.INSUFFICIENT_SCOPE,
            )
        self.logger.info("Repository access confirmed for %s", report.full_name)
        return report

    # ------------------------------------------------------------------
    # Internals

    def _get(self, path: str, token: str) -> HttpResponse:
        headers = {
            "Authorization": f"Bearer {token}",
            "Accept": "application/vnd.github.v3+json",
            "User-Agent": "docbranch",
        }
        return self._fetch(f"{self.api_url}{path}", headers)

    @staticmethod
    def _raise_for_rate_limit(status: int, body: str) -> None:
        if status in (403, 429) and "rate limit" in body.lower():
            raise RateLimitError("GitHub API rate limit exceeded. Wait a few minutes and try again.")

    @staticmethod
    def _report(body: str, owner: str, repo: str, scopes: List[str]) -> AccessReport:
        try:
            payload = json.loads(body) if body else {}
        except json.JSONDecodeError as exc:
            raise TransportError("GitHub API returned invalid JSON", kind=FailureKind.UNKNOWN) from exc
        if not isinstance(payload, dict):
            payload = {}
        permissions = payload.get("permissions") if isinstance(payload.get("permissions"), dict) else {}
        owner_data = payload.get("owner") if isinstance(payload.get("owner"), dict) else {}
        return AccessReport(
            full_name=str(payload.get("full_name") or f"{owner}/{repo}"),
            private=bool(payload.get("private")),
            push=bool(permissions.get("push")),
            pull=bool(permissions.get("pull")),
            admin=bool(permissions.get("admin")),
            owner_login=str(owner_data.get("login") or owner),
            owner_type=str(owner_data.get("type") or ""),
            scopes=scopes,
        )


__all__ = ["AccessChecker", "AccessReport", "GITHUB_API_URL", "parse_github_url"]
