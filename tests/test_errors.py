"""Classification of failed git commands."""

from __future__ import annotations

import pytest

from docbranch.errors import (
    AuthenticationError,
    FailureKind,
    GitCommandError,
    PushRejectedError,
    TransportError,
    classify_git_error,
)


@pytest.mark.parametrize(
    ("stderr", "kind"),
    [
        ("fatal: unable to access 'https://github.com/a/b/': The requested URL returned error: 401", FailureKind.BAD_CREDENTIAL),
        ("fatal: unable to access 'https://github.com/a/b/': The requested URL returned error: 403", FailureKind.INSUFFICIENT_SCOPE),
        ("fatal: unable to access 'https://github.com/a/b/': The requested URL returned error: 404", FailureKind.NOT_FOUND),
    ],
)
def test_http_status_errors_are_classified(stderr: str, kind: FailureKind) -> None:
    error = classify_git_error(GitCommandError(["git", "push"], 128, stderr=stderr))

    assert isinstance(error, AuthenticationError)
    assert error.kind is kind


def test_status_digits_inside_commit_ids_are_not_auth_failures() -> None:
    output = GitCommandError(
        ["git", "push"],
        1,
        stdout="abc4041..def4031  docs-generation -> docs-generation\n",
        stderr="fatal: the remote end hung up unexpectedly",
    )

    error = classify_git_error(output)

    assert type(error) is TransportError
    assert error.kind is FailureKind.NETWORK


def test_rejected_push_is_diverged() -> None:
    output = GitCommandError(
        ["git", "push"],
        1,
        stderr=" ! [rejected]        docs-generation -> docs-generation (fetch first)\nerror: failed to push some refs to 'ab4011'",
    )

    assert isinstance(classify_git_error(output), PushRejectedError)
