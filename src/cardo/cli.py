"""Command line interface for generating and recalling flashcards."""
from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import List, Optional

from cardo.common.config import load_environment, resolve_log_level
from cardo.ingestion.errors import CardoError, ValidationError
from cardo.ingestion.records import ConsolidationResult
from cardo.service import CardService
from cardo.storage.repository import QuerySummary

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
logger = logging.getLogger(__name__)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(level=resolve_log_level(verbose), format=LOG_FORMAT)


def _emit_error(message: str) -> None:
    print(message, file=sys.stderr)


def _render_json(payload: object) -> str:
    return json.dumps(payload, ensure_ascii=False, indent=2)


def _format_cards(result: ConsolidationResult) -> List[str]:
    lines: List[str] = []
    if result.phrases:
        lines.append("Phrases:")
        for phrase in result.phrases:
            lines.append(
                f"  {phrase.lexeme} [{phrase.phonetic_reading} / {phrase.phonetic_romanization}]"
                f" {phrase.english_meaning}"
            )
            lines.append(f"      {phrase.breakdown}")
    if result.atomic_units:
        lines.append("Kanji:")
        for unit in result.atomic_units:
            lines.append(
                f"  {unit.lexeme} [{unit.phonetic_reading} / {unit.phonetic_romanization}]"
                f" {unit.english_meaning}"
            )
    if not lines:
        lines.append("No cards stored.")
    return lines


def _format_summary(summary: QuerySummary) -> str:
    return (
        f"{summary.id:>4}  {summary.created_at}  {summary.domain}"
        f"  (requested {summary.count}; {summary.phrase_count} phrases,"
        f" {summary.atomic_unit_count} kanji)"
    )


def _run_cards(args: argparse.Namespace) -> int:
    with CardService.from_config(db_path=args.db_path) as service:
        query_id, result = service.generate_cards(
            args.domain, args.count, exclude_known=args.exclude_known
        )

    if args.format == "json":
        print(_render_json({"query_id": query_id, **result.as_dict()}))
    else:
        print(f"Query {query_id}: {len(result.phrases)} phrases, {len(result.atomic_units)} kanji")
        print("\n".join(_format_cards(result)))
    return 0


def _run_recall(args: argparse.Namespace) -> int:
    with CardService.from_config(db_path=args.db_path) as service:
        if args.list:
            summaries = service.list_queries()
            if args.format == "json":
                print(_render_json([summary.as_dict() for summary in summaries]))
            elif summaries:
                print("\n".join(_format_summary(summary) for summary in summaries))
            else:
                print("No queries stored yet.")
            return 0

        if args.all:
            result = service.recall_all()
            query_id = None
        elif args.query_id is not None:
            result = service.recall(args.query_id)
            query_id = args.query_id
        else:
            _emit_error("Provide a QUERY_ID, --all or --list.")
            return 2

    if args.format == "json":
        print(_render_json({"query_id": query_id, **result.as_dict()}))
    else:
        print("\n".join(_format_cards(result)))
    return 0


def _run_delete(args: argparse.Namespace) -> int:
    with_cards = not args.orphan_cards
    with CardService.from_config(db_path=args.db_path) as service:
        summary = service.get_query(args.query_id)
        if not args.force:
            print(_format_summary(summary))
            if with_cards:
                print("This will permanently delete the query and ALL associated cards.")
            else:
                print("This will delete the query only; its cards remain as orphans.")
            _emit_error("Use --force to proceed with deletion.")
            return 1
        service.delete_query(args.query_id, with_cards=with_cards)

    if args.format == "json":
        print(_render_json({"deleted": summary.as_dict(), "with_cards": with_cards}))
    else:
        suffix = "and all associated cards" if with_cards else "(cards orphaned)"
        print(f"Deleted query {args.query_id} {suffix}.")
    return 0


def _positive_int(raw: str) -> int:
    try:
        value = int(raw)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"Expected an integer, got {raw!r}") from exc
    if value <= 0:
        raise argparse.ArgumentTypeError("Count must be a positive integer.")
    return value


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cardo",
        description="Generate Japanese vocabulary flashcards with an LLM",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    parser.add_argument("--env-file", default=None, help="Explicit dotenv file to load")
    parser.add_argument(
        "--db-path", default=None, help="Catalogue database (default: CARDO_DB_PATH or data dir)"
    )
    parser.add_argument(
        "--format", choices=["text", "json"], default="text", help="Output format"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    cards = subparsers.add_parser("cards", help="Generate new flashcards for a domain")
    cards.add_argument("count", type=_positive_int, help="Number of phrases to request")
    cards.add_argument("domain", help="Domain such as 'train station' or 'restaurant menu'")
    cards.add_argument(
        "--exclude-known",
        action="store_true",
        help="Ask the model to avoid phrases already in the catalogue",
    )
    cards.set_defaults(handler=_run_cards)

    recall = subparsers.add_parser("recall", help="Show stored cards")
    recall.add_argument("query_id", nargs="?", type=int, help="Query to recall")
    recall.add_argument("--all", action="store_true", help="Cards from every query")
    recall.add_argument("--list", action="store_true", help="List stored queries")
    recall.set_defaults(handler=_run_recall)

    delete = subparsers.add_parser("delete", help="Delete a query")
    delete.add_argument("query_id", type=int, help="Query to delete")
    delete.add_argument(
        "--orphan-cards",
        action="store_true",
        help="Keep the query's cards, detached from any query",
    )
    delete.add_argument("--force", action="store_true", help="Skip the confirmation step")
    delete.set_defaults(handler=_run_delete)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = _build_parser()
    try:
        args = parser.parse_args(argv)
    except SystemExit as exc:  # pragma: no cover - delegated to argparse
        return int(exc.code or 0)

    try:
        load_environment(args.env_file)
    except FileNotFoundError as error:
        _emit_error(str(error))
        return 2
    _configure_logging(args.verbose)

    try:
        return args.handler(args)
    except ValidationError as error:
        _emit_error(f"Error: {error}")
        for issue in error.issues:
            _emit_error(f"  {issue}")
        return 1
    except CardoError as error:
        logger.debug("Command failed", exc_info=True)
        _emit_error(f"Error: {error}")
        return 1
    except (OSError, ValueError) as error:
        logger.error("Command failed", extra={"error": str(error)})
        _emit_error(str(error))
        return 2


if __name__ == "__main__":
    sys.exit(main())
