"""Operator commands for inspecting and repairing workspace indexes.

Usage examples:

    ragdesk resolve --workspace-id abc1234xyz --workspace-name Finance
    ragdesk ensure-index --workspace-id abc1234xyz --workspace-name Finance
    ragdesk reconcile --workspace-id abc1234xyz
    ragdesk search --workspace-id abc1234xyz --workspace-name Finance --query "Q3 revenue"
"""

from __future__ import annotations

import argparse
import json
import logging
from dataclasses import asdict
from typing import Any, Optional, Sequence

from ..config import load_settings
from ..container import ServiceContainer, build_container
from ..identifiers import resolve
from ..pipeline.context import format_documents_context

LOGGER = logging.getLogger(__name__)


def _emit(payload: Any) -> None:
    print(json.dumps(payload, indent=2, sort_keys=True))


def _add_workspace_arguments(parser: argparse.ArgumentParser, *, with_name: bool = True) -> None:
    parser.add_argument("--workspace-id", required=True, help="Workspace identifier.")
    if with_name:
        parser.add_argument(
            "--workspace-name",
            required=True,
            help="Workspace name used when the index was created.",
        )


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Manage ragdesk workspace indexes.")
    parser.add_argument(
        "--config",
        dest="config_path",
        default=None,
        help="Optional YAML settings file (environment variables still win).",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Set log verbosity.",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    resolve_parser = commands.add_parser("resolve", help="Print derived workspace identifiers.")
    _add_workspace_arguments(resolve_parser)

    ensure_parser = commands.add_parser("ensure-index", help="Create the workspace index if missing.")
    _add_workspace_arguments(ensure_parser)

    delete_parser = commands.add_parser("delete-index", help="Delete the workspace index.")
    _add_workspace_arguments(delete_parser)

    reconcile_parser = commands.add_parser("reconcile", help="Re-index every file of a workspace.")
    _add_workspace_arguments(reconcile_parser, with_name=False)

    search_parser = commands.add_parser("search", help="Query a workspace index.")
    _add_workspace_arguments(search_parser)
    search_parser.add_argument("--query", required=True, help="Query text.")
    search_parser.add_argument("--filter", default=None, help="Optional OData filter expression.")
    search_parser.add_argument(
        "--context",
        action="store_true",
        help="Print the formatted prompt context instead of JSON hits.",
    )
    return parser.parse_args(argv)


def run_command(args: argparse.Namespace, container: ServiceContainer) -> int:
    if args.command in ("ensure-index", "delete-index"):
        index_name = resolve(args.workspace_id, args.workspace_name).index_name
        if args.command == "ensure-index":
            ok = container.index_manager.ensure(index_name)
        else:
            ok = container.index_manager.delete(index_name)
        _emit({"index_name": index_name, "ok": ok})
        return 0 if ok else 1

    if args.command == "reconcile":
        report = container.reconciliation.run(args.workspace_id)
        payload = asdict(report)
        payload["succeeded"] = report.succeeded
        _emit(payload)
        return 0 if report.succeeded else 1

    if args.command == "search":
        index_name = resolve(args.workspace_id, args.workspace_name).index_name
        documents = container.retriever.search(index_name, args.query, args.filter)
        if args.context:
            print(format_documents_context(documents))
            return 0
        _emit(
            [
                {
                    "id": document.id,
                    "fileName": document.file_name,
                    "score": document.score,
                    "rerankerScore": document.reranker_score,
                }
                for document in documents
            ]
        )
        return 0

    raise ValueError(f"Unknown command: {args.command}")


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(levelname)s %(message)s",
        force=True,
    )
    if args.command == "resolve":
        _emit(asdict(resolve(args.workspace_id, args.workspace_name)))
        return 0

    container = build_container(load_settings(args.config_path))
    try:
        return run_command(args, container)
    finally:
        container.close()


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
