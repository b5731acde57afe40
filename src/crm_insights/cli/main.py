"""Main CLI entry point."""

import argparse
import json
import logging
import sys
from pathlib import Path


def main(argv: list[str] | None = None) -> None:
    """Parse args and dispatch to subcommands."""
    parser = argparse.ArgumentParser(prog="crm-insights", description="CRM spreadsheet ingestion and sales analytics")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    parser.add_argument(
        "--db",
        type=Path,
        default=None,
        help="Path to SQLite database (default: CRM_INSIGHTS_DB_PATH or crm_insights.db)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    # ingest
    ingest_parser = subparsers.add_parser("ingest", help="Ingest a CSV export for an owner")
    ingest_parser.add_argument("file", type=Path, help="CSV file (comma or semicolon delimited)")
    ingest_parser.add_argument("--owner", required=True, help="Owner id the rows belong to")
    ingest_parser.add_argument(
        "--aliases",
        type=Path,
        default=None,
        help="YAML alias overrides (default: CRM_INSIGHTS_ALIASES or built-in table)",
    )
    ingest_parser.add_argument(
        "--delimiter",
        choices=[",", ";"],
        default=None,
        help="Force delimiter instead of auto-detecting",
    )
    ingest_parser.add_argument(
        "--output",
        type=Path,
        default=None,
        help="Write the reloaded dataset as JSON to file",
    )

    # store
    store_parser = subparsers.add_parser("store", help="Query the opportunity store")
    store_parser.add_argument("action", choices=["list", "count"], help="List opportunities or show count")
    store_parser.add_argument("--owner", required=True)

    # profile
    profile_parser = subparsers.add_parser("profile", help="Print the analytical profile as JSON")
    profile_parser.add_argument("--owner", required=True)

    # query
    query_parser = subparsers.add_parser("query", help="Filter and group opportunities")
    query_parser.add_argument("--owner", required=True)
    query_parser.add_argument(
        "--group-by",
        nargs="*",
        default=[],
        help="Dimensions: seller lead_source funnel stage status region city product customer loss_reason month year",
    )
    for name in ("seller", "lead-source", "funnel", "region", "product"):
        query_parser.add_argument(f"--{name}", default=None, help="Substring filter")
    query_parser.add_argument("--status", choices=["Won", "Lost", "Open"], default=None)
    query_parser.add_argument("--year", type=int, default=None)
    query_parser.add_argument("--month", type=int, default=None)
    query_parser.add_argument("--question", default=None, help="Question text (sales words date by closing date)")

    # analyze
    analyze_parser = subparsers.add_parser("analyze", help="Executive report from the analytical profile")
    analyze_parser.add_argument("--owner", required=True)
    analyze_parser.add_argument(
        "--provider",
        choices=["openai", "gemini", "ollama", "template"],
        default=None,
        help="Text generation provider (default: CRM_INSIGHTS_LLM_PROVIDER or openai)",
    )

    # chat
    chat_parser = subparsers.add_parser("chat", help="Ask a question answered with the query tool")
    chat_parser.add_argument("--owner", required=True)
    chat_parser.add_argument("message", help="Question")

    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    from crm_insights.errors import CRMInsightsError

    handlers = {
        "ingest": _run_ingest,
        "store": _run_store,
        "profile": _run_profile,
        "query": _run_query,
        "analyze": _run_analyze,
        "chat": _run_chat,
    }
    try:
        handlers[args.command](args)
    except CRMInsightsError as e:
        print(json.dumps(e.to_dict(), ensure_ascii=False), file=sys.stderr)
        raise SystemExit(1)


def _service(args: argparse.Namespace):
    from crm_insights.config import Settings
    from crm_insights.service import InsightsService
    from crm_insights.store import SQLiteRowStore

    settings = Settings.from_env()
    updates: dict = {}
    if getattr(args, "db", None):
        updates["db_path"] = args.db
    if getattr(args, "aliases", None):
        updates["aliases_path"] = args.aliases
    if getattr(args, "delimiter", None):
        updates["delimiter"] = args.delimiter
    if updates:
        settings = settings.model_copy(update=updates)
    return InsightsService(SQLiteRowStore(settings.db_path), settings)


def _run_ingest(args: argparse.Namespace) -> None:
    """Run ingest command."""
    if not args.file.exists():
        raise SystemExit(f"File not found: {args.file}")
    service = _service(args)
    result = service.ingest(args.owner, args.file.read_bytes())
    print(
        f"Ingest: {result.rows_read} read, {result.accepted_count} accepted, "
        f"{result.duplicates_dropped} duplicates dropped, {result.rejected_count} rejected, "
        f"{result.stored_total} stored"
    )
    if args.output:
        output = json.dumps(
            [o.model_dump(mode="json") for o in result.opportunities],
            indent=2,
            ensure_ascii=False,
        )
        args.output.write_text(output, encoding="utf-8")
        print(f"Wrote {len(result.opportunities)} opportunities to {args.output}")


def _run_store(args: argparse.Namespace) -> None:
    """Run store command."""
    from crm_insights.store import fetch_all

    service = _service(args)
    if args.action == "count":
        print(service.store.count(args.owner))
        return
    opps = fetch_all(service.store, args.owner, service.settings.page_size)
    print(json.dumps([o.model_dump(mode="json") for o in opps], indent=2, ensure_ascii=False))


def _run_profile(args: argparse.Namespace) -> None:
    """Run profile command."""
    profile = _service(args).profile(args.owner)
    print(json.dumps(profile.model_dump(mode="json"), indent=2, ensure_ascii=False))


def _run_query(args: argparse.Namespace) -> None:
    """Run query command."""
    from pydantic import ValidationError

    from crm_insights.analytics import QueryRequest

    try:
        request = QueryRequest.model_validate(
            {
                "filters": {
                    "seller": args.seller,
                    "lead_source": args.lead_source,
                    "funnel": args.funnel,
                    "region": args.region,
                    "product": args.product,
                    "status": args.status,
                    "year": args.year,
                    "month": args.month,
                },
                "group_by": args.group_by,
            }
        )
    except ValidationError as e:
        raise SystemExit(f"Invalid query: {e}")
    result = _service(args).query(args.owner, request, question=args.question)
    print(json.dumps(result.model_dump(mode="json"), indent=2, ensure_ascii=False))


def _run_analyze(args: argparse.Namespace) -> None:
    """Run analyze command."""
    print(_service(args).analyze(args.owner, provider=args.provider))


def _run_chat(args: argparse.Namespace) -> None:
    """Run chat command."""
    outcome = _service(args).chat(args.owner, args.message)
    print(outcome.reply)


if __name__ == "__main__":
    main()
