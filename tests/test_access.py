"""GitHub access validation."""

from __future__ import annotations

import json

import pytest

from docbranch.access import AccessChecker, parse_github_url
from docbranch.errors import AuthenticationError, ConfigurationError, FailureKind, RateLimitError

_REPO = {
    "full_name": "acme/widgets",
    "private": False,
    "permissions": {"push": True, "pull": True, "admin": False},
    "owner": {"login": "acme", "type": "Organization"},
}


def _fetcher(responses):  # type: ignore[no-untyped-def]
    calls = []

    def fetch(url, headers):  # type: ignore[no-untyped-def]
        calls.append((url, headers))
        for suffix, response in responses.items():
            if url.endswith(suffix):
                return response
        raise AssertionError(f"unexpected request {url}")

    fetch.calls = calls  # type: ignore[attr-defined]
    return fetch


def test_parse_github_url_variants() -> None:
    assert parse_github_url("https://github.com/acme/widgets") == ("acme", "widgets")
    assert parse_github_url("https://github.com/acme/widgets.git") == ("acme", "widgets")
    assert parse_github_url("git@github.com:acme/widgets.git") == ("acme", "widgets")
    with pytest.raises(ConfigurationError):
        parse_github_url("https://gitlab.com/acme/widgets")


def test_validate_returns_report() -> None:
    fetch = _fetcher(
        {
            "/user": (200, {"x-oauth-scopes": "repo, workflow"}, "{}"),
            "/repos/acme/widgets": (200, {}, json.dumps(_REPO)),
        }
    )

    report = AccessChecker(fetch).validate("https://github.com/acme/widgets", "ghp_x")

    assert report.full_name == "acme/widgets"
    assert report.push is True
    assert report.scopes == ["repo", "workflow"]
    assert report.to_dict()["owner"] == {"login": "acme", "type": "Organization"}
    assert fetch.calls[0][1]["Authorization"] == "Bearer ghp_x"


def test_invalid_token_is_bad_credential() -> None:
    fetch = _fetcher({"/user": (401, {}, '{"message": "Bad credentials"}')})

    with pytest.raises(AuthenticationError) as excinfo:
        AccessChecker(fetch).validate("https://github.com/acme/widgets", "nope")

    assert excinfo.value.kind is FailureKind.BAD_CREDENTIAL


def test_rate_limit_is_reported() -> None:
    fetch = _fetcher(
        {
            "/user": (200, {}, "{}"),
            "/repos/acme/widgets": (403, {}, '{"message": "API rate limit exceeded"}'),
        }
    )

    with pytest.raises(RateLimitError):
        AccessChecker(fetch).validate("https://github.com/acme/widgets", "ghp_x")


@pytest.mark.parametrize(
    ("status", "kind"),
    [(403, FailureKind.INSUFFICIENT_SCOPE), (404, FailureKind.NOT_FOUND)],
)
def test_repository_errors_are_classified(status: int, kind: FailureKind) -> None:
    fetch = _fetcher(
        {
            "/user": (200, {}, "{}"),
            "/repos/acme/widgets": (status, {}, '{"message": "nope"}'),
        }
    )

    with pytest.raises(AuthenticationError) as excinfo:
        AccessChecker(fetch).validate("https://github.com/acme/widgets", "ghp_x")

    assert excinfo.value.kind is kind


def test_missing_push_permission_is_insufficient_scope() -> None:
    repo = dict(_REPO, permissions={"push": False, "pull": True, "admin": False})
    fetch = _fetcher(
        {
            "/user": (200, {}, "{}"),
            "/repos/acme/widgets": (200, {}, json.dumps(repo)),
        }
    )
    checker = AccessChecker(fetch)

    with pytest.raises(AuthenticationError) as excinfo:
        checker.validate("https://github.com/acme/widgets", "ghp_x")

    assert excinfo.value.kind is FailureKind.INSUFFICIENT_SCOPE
    assert checker.validate("https://github.com/acme/widgets", "ghp_x", require_push=False).pull is True


def test_private_repo_without_repo_scope_is_rejected() -> None:
    repo = dict(_REPO, private=True)
    fetch = _fetcher(
        {
            "/user": (200, {"x-oauth-scopes": "public_repo"}, "{}"),
            "/repos/acme/widgets": (200, {}, json.dumps(repo)),
        }
    )

    with pytest.raises(AuthenticationError) as excinfo:
        AccessChecker(fetch).validate("https://github.com/acme/widgets", "ghp_x")

    assert excinfo.value.kind is FailureKind.INSUFFICIENT_SCOPE
