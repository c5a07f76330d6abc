"""CLI entrypoints for docbranch commands."""

from __future__ import annotations

import argparse
import json
import os
import sys
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from .access import AccessChecker
from .config import load_config
from .errors import DocBranchError
from .git.transport import purge_workspace
from .logging import configure_logging
from .models import ProgressEvent, RepoConfig, RunSummary
from .orchestrator import Orchestrator


def _add_verbose_option(
    parser: argparse.ArgumentParser, *, suppress_default: bool = False
) -> None:
    kwargs: dict[str, object] = {
        "action": "store_true",
        "help": "Increase log verbosity for troubleshooting.",
    }
    if suppress_default:
        kwargs["default"] = argparse.SUPPRESS
    else:
        kwargs["default"] = False
    parser.add_argument(
        "-v",
        "--verbose",
        **kwargs,
    )


def _add_repo_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("url", help="GitHub repository URL to document.")
    parser.add_argument(
        "--token",
        default=None,
        help="GitHub token with push access (defaults to $GITHUB_TOKEN).",
    )
    parser.add_argument(
        "--target-path",
        default=None,
        help="Only document files under this directory on full scans.",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to .docbranch.yml or the directory holding it.",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="docbranch",
        description="Generate per-file documentation and keep it on a dedicated branch.",
    )
    _add_verbose_option(parser)
    subparsers = parser.add_subparsers(dest="command", required=True)

    generate_parser = subparsers.add_parser(
        "generate",
        help="Document a repository and push the result to its documentation branch.",
    )
    _add_verbose_option(generate_parser, suppress_default=True)
    _add_repo_options(generate_parser)
    generate_parser.add_argument(
        "--branch",
        default=None,
        help="Documentation branch name (defaults to docs-generation).",
    )
    generate_parser.add_argument(
        "--main-branch",
        default=None,
        help="Upstream branch to merge from (defaults to the remote's default branch).",
    )
    generate_parser.add_argument(
        "--overwrite",
        action="store_true",
        help="Regenerate documentation that already exists on full scans.",
    )
    generate_parser.add_argument(
        "--keep-workdir",
        action="store_true",
        help="Keep the cloned working copy for debugging.",
    )

    preview_parser = subparsers.add_parser(
        "preview",
        help="List the files a full run would document without generating anything.",
    )
    _add_verbose_option(preview_parser, suppress_default=True)
    _add_repo_options(preview_parser)

    access_parser = subparsers.add_parser(
        "check-access",
        help="Verify that a token can read and push to a GitHub repository.",
    )
    _add_verbose_option(access_parser, suppress_default=True)
    access_parser.add_argument("url", help="GitHub repository URL.")
    access_parser.add_argument(
        "--token",
        default=None,
        help="GitHub token to check (defaults to $GITHUB_TOKEN).",
    )

    cleanup_parser = subparsers.add_parser(
        "cleanup",
        help="Remove every working copy left in the workspace directory.",
    )
    _add_verbose_option(cleanup_parser, suppress_default=True)
    cleanup_parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to .docbranch.yml or the directory holding it.",
    )

    serve_parser = subparsers.add_parser("serve", help="Run the HTTP service.")
    _add_verbose_option(serve_parser, suppress_default=True)
    serve_parser.add_argument("--host", default="127.0.0.1")
    serve_parser.add_argument("--port", type=int, default=8000)

    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for docbranch commands."""
    load_dotenv()
    parser = _build_parser()
    args = parser.parse_args(argv)

    configure_logging(verbose=bool(args.verbose))

    if args.command == "serve":
        from .service.app import run_service

        run_service(host=args.host, port=args.port)
        return

    if args.command == "cleanup":
        try:
            config = load_config(args.config)
        except DocBranchError as exc:
            parser.exit(1, f"docbranch cleanup failed ({exc.kind.value}): {exc}\n")
        removed = purge_workspace(config.workspace_dir)
        print(f"Removed {len(removed)} working copies from {config.workspace_dir}")
        return

    token = _resolve_token(args.token)

    try:
        if args.command == "check-access":
            if not token:
                parser.exit(1, "A GitHub token is required (--token or $GITHUB_TOKEN)\n")
            report = AccessChecker().validate(args.url, token)
            print(json.dumps(report.to_dict(), indent=2))
            return

        config = load_config(args.config)
        orchestrator = Orchestrator(
            config,
            access_checker=AccessChecker(),
            progress=_print_progress if args.verbose else None,
        )

        if args.command == "preview":
            plan = orchestrator.preview(
                RepoConfig(url=args.url, token=token, target_path=args.target_path)
            )
            for item in plan.work_items:
                print(item.source_path)
            print(
                f"{len(plan.work_items)} files to document, "
                f"{len(plan.existing_docs)} already documented"
            )
            return

        if args.keep_workdir:
            config.keep_workdir = True
        summary = orchestrator.run(
            RepoConfig(
                url=args.url,
                token=token,
                target_path=args.target_path,
                branch=args.branch or config.branch,
                main_branch=args.main_branch,
                overwrite=bool(args.overwrite),
            )
        )
    except DocBranchError as exc:
        parser.exit(
            1,
            f"docbranch {args.command} failed ({exc.kind.value}): {exc}\n"
            "Run with --verbose for more details.\n",
        )
    _print_summary(summary)


def _resolve_token(explicit: Optional[str]) -> Optional[str]:
    return explicit or os.getenv("GITHUB_TOKEN") or None


def _print_progress(event: ProgressEvent) -> None:
    counter = f" [{event.completed}/{event.total}]" if event.total else ""
    print(f"{event.stage}{counter}: {event.message}", file=sys.stderr)


def _print_summary(summary: RunSummary) -> None:
    mode = "incremental update" if summary.is_incremental else "full scan"
    print(f"Documentation {mode} on {summary.branch_ref}")
    print(f"  documented: {len(summary.documented)}")
    print(f"  failed: {len(summary.failed)}")
    if summary.removed:
        print(f"  removed: {len(summary.removed)}")
    if summary.existing_docs:
        print(f"  already documented: {len(summary.existing_docs)}")
    if not summary.committed:
        print("No documentation changes to commit")
    elif summary.branch_url:
        print(f"Pushed to {summary.branch_url}")


if __name__ == "__main__":
    main(sys.argv[1:])
