# main.py
"""
Entry Point: Listing Diagnostic Pipeline

Purpose
-------
Operate the diagnostic pipeline from the command line:
  1) Create submissions (single flags or a JSON batch) and optionally run them.
  2) Run / reprocess / check submissions; promote to manual review.
  3) Drain downstream jobs (Markdown reports, KPI + sentiment facts).
  4) Print KPI and sentiment summaries for a property over a date range.

Design
------
- Configuration comes from the environment (`LISTING_*`, see
  src/inputs/settings.py); missing provider keys fail fast here.
- Provider selection is configuration-driven (`http|mock`, `openai|mock`).
- Output is JSON on stdout so runs can be piped or diffed.

Usage
-----
    python main.py submit --name Ana --email ana@example.com \
        --url https://www.airbnb.com/rooms/123 --platform airbnb --run
    python main.py submit --file data/sample/requests.json --run
    python main.py run <submission_id>
    python main.py status <submission_id>
    python main.py reprocess --all --limit 10
    python main.py drain-jobs
    python main.py kpi <submission_id> --start 2026-01-01 --end 2026-01-31
    python main.py sentiment <submission_id> --start 2026-01-01 --end 2026-01-31
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from datetime import date, timedelta
from typing import Any

from src.analytics.kpi import build_kpi_report
from src.analytics.sentiment import load_sentiment_summary, sentiment_insights
from src.core.errors import ConfigurationError, PipelineError
from src.core.telemetry import TelemetryEmitter
from src.inputs.inputs import InputsLoader
from src.inputs.settings import PipelineSettings, configure_logging, load_settings
from src.market.intelligence import StaticCompSource
from src.orchestrators.pipeline import DiagnosticPipeline
from src.schemas.models import SubmissionRequest
from src.storage import SqliteStore
from src.tools.analysis import AnalysisProvider, MockAnalysisProvider, OpenAIAnalysisProvider
from src.tools.scraping import HttpScrapingProvider, MockScrapingProvider, ScrapingProvider

logger = logging.getLogger("listing.cli")


def build_scraper(settings: PipelineSettings) -> ScrapingProvider:
    if settings.scrape_provider == "mock":
        return MockScrapingProvider()
    return HttpScrapingProvider(settings.scrape_api_url, settings.scrape_api_key, timeout_s=settings.scrape_timeout_s)


def build_analyzer(settings: PipelineSettings) -> AnalysisProvider:
    if settings.analysis_provider == "mock":
        return MockAnalysisProvider()
    return OpenAIAnalysisProvider(
        settings.openai_api_key,
        model=settings.analysis_model,
        timeout_s=settings.analysis_timeout_s,
    )


def build_pipeline(settings: PipelineSettings, comps_path: str | None = None) -> DiagnosticPipeline:
    comp_source = StaticCompSource(InputsLoader().load_comparables(comps_path)) if comps_path else None
    return DiagnosticPipeline(
        SqliteStore(settings.database_path),
        build_scraper(settings),
        build_analyzer(settings),
        settings,
        telemetry=TelemetryEmitter(settings.telemetry_consent),
        comp_source=comp_source,
    )


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse CLI arguments."""
    p = argparse.ArgumentParser(description="Listing Diagnostic Pipeline")
    p.add_argument("--comps", type=str, default=None, help="JSON file of comparable properties for market insight.")
    sub = p.add_subparsers(dest="command", required=True)

    s = sub.add_parser("submit", help="Create submission(s).")
    s.add_argument("--file", type=str, default=None, help="JSON file with one or more submission requests.")
    s.add_argument("--name", type=str, default=None)
    s.add_argument("--email", type=str, default=None)
    s.add_argument("--url", type=str, default=None, help="Full listing URL.")
    s.add_argument("--platform", type=str, default=None, help="booking|airbnb|vrbo|agoda|expedia|hotels")
    s.add_argument("--run", action="store_true", help="Run each created submission immediately.")

    for name, help_text in (
        ("run", "Run a submission through the pipeline."),
        ("status", "Show a submission's status."),
        ("request-review", "Promote a submission to manual review."),
    ):
        cmd = sub.add_parser(name, help=help_text)
        cmd.add_argument("submission_id")

    r = sub.add_parser("reprocess", help="Reset and re-run a submission (or all stuck ones).")
    r.add_argument("submission_id", nargs="?", default=None)
    r.add_argument("--all", action="store_true", help="Reprocess stuck submissions in batch.")
    r.add_argument("--limit", type=int, default=10)

    d = sub.add_parser("drain-jobs", help="Run pending report/KPI jobs.")
    d.add_argument("--limit", type=int, default=None)

    for name in ("kpi", "sentiment"):
        cmd = sub.add_parser(name, help=f"Print the {name} summary for a property.")
        cmd.add_argument("property_id")
        cmd.add_argument("--start", type=date.fromisoformat, default=None, help="YYYY-MM-DD (default: 30 days ago)")
        cmd.add_argument("--end", type=date.fromisoformat, default=None, help="YYYY-MM-DD (default: today)")

    return p.parse_args(argv)


def _print(obj: Any) -> None:
    if hasattr(obj, "model_dump"):
        obj = obj.model_dump(mode="json")
    elif isinstance(obj, list):
        obj = [o.model_dump(mode="json") if hasattr(o, "model_dump") else o for o in obj]
    print(json.dumps(obj, indent=2, ensure_ascii=False))


def _requests_from_args(args: argparse.Namespace) -> list[SubmissionRequest]:
    if args.file:
        return InputsLoader().load_requests(args.file)
    missing = [flag for flag in ("name", "email", "url", "platform") if not getattr(args, flag)]
    if missing:
        raise SystemExit(f"submit: missing --{', --'.join(missing)} (or use --file)")
    return [SubmissionRequest(name=args.name, email=args.email, property_url=args.url, platform=args.platform)]


def _date_range(args: argparse.Namespace) -> tuple[date, date]:
    end = args.end or date.today()
    start = args.start or end - timedelta(days=29)
    return start, end


def main(argv: list[str] | None = None) -> int:
    """Dispatch one CLI command. Returns the process exit code."""
    args = parse_args(argv)
    try:
        settings = load_settings()
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2
    configure_logging(settings.log_level)
    pipeline = build_pipeline(settings, comps_path=args.comps)

    if args.command == "submit":
        out = []
        for req in _requests_from_args(args):
            try:
                created = pipeline.create_submission(req)
            except PipelineError as e:
                logger.error("submission rejected: %s", e)
                out.append({"success": False, "message": str(e), "error_reason": e.reason.value})
                continue
            result = pipeline.run(created.id) if args.run else pipeline.check_status(created.id)
            out.append(result.model_dump(mode="json"))
        _print(out)
        return 0 if all(o.get("success") for o in out) else 1

    if args.command == "run":
        _print(pipeline.run(args.submission_id))
    elif args.command == "status":
        _print(pipeline.check_status(args.submission_id))
    elif args.command == "request-review":
        _print(pipeline.request_manual_review(args.submission_id))
    elif args.command == "reprocess":
        if args.all:
            _print(pipeline.reprocess_all_pending(limit=args.limit))
        elif args.submission_id:
            _print(pipeline.reprocess(args.submission_id))
        else:
            raise SystemExit("reprocess: give a submission id or --all")
    elif args.command == "drain-jobs":
        _print(pipeline.work_queue.drain(limit=args.limit))
    elif args.command == "kpi":
        start, end = _date_range(args)
        _print(build_kpi_report(pipeline.store, args.property_id, start, end))
    elif args.command == "sentiment":
        start, end = _date_range(args)
        summary = load_sentiment_summary(pipeline.store, args.property_id, start, end)
        _print({"summary": summary.model_dump(mode="json"), "insights": sentiment_insights(summary).model_dump(mode="json")})
    return 0


if __name__ == "__main__":
    sys.exit(main())
