#!/usr/bin/env python3
"""Tech News Aggregator entry point: scrape -> analyze -> digest, on demand or on a cron schedule."""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
import time
import traceback
from dataclasses import asdict, dataclass, field
from datetime import date

import config
from config import ConfigError, require_config

logger = logging.getLogger(__name__)

STAGES = ("scrape", "analyze", "digest", "topic-sync", "schedule")


class JsonFormatter(logging.Formatter):
    """
    Simple JSON log formatter.
    Produces machine readable pipeline logs for later analysis or monitoring.
    """

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if hasattr(record, "event"):
            payload["event"] = getattr(record, "event")
        if hasattr(record, "stage"):
            payload["stage"] = getattr(record, "stage")
        return json.dumps(payload, ensure_ascii=False)


@dataclass
class StageFailure:
    stage: str          # e.g. "scrape", "digest"
    error_type: str     # CONFIG, BACKEND, RUNTIME, ...
    message: str


@dataclass
class StageResult:
    """Outcome of one CLI stage run, written out as the run summary."""
    run_id: str
    date: str
    stage: str
    success: bool = False
    exit_reason: str = ""
    duration_seconds: float = 0.0
    saved_count: int = 0        # new articles stored by scrape
    analyzed_count: int = 0
    digest_type: str = ""
    digest_sent: bool = False
    topics_synced: int = 0
    articles_mapped: int = 0
    failures: list[StageFailure] = field(default_factory=list)


def configure_logging(log_format: str) -> None:
    handler = logging.StreamHandler()
    if log_format == "json":
        handler.setFormatter(JsonFormatter(datefmt="%Y-%m-%dT%H:%M:%S"))
    else:
        handler.setFormatter(
            logging.Formatter(
                "%(asctime)s [%(levelname)s] %(message)s",
                datefmt="%H:%M:%S",
            )
        )
    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(logging.INFO)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Tech News Aggregator: scrape, score and email tech news digests"
    )
    parser.add_argument(
        "--log-format",
        choices=["text", "json"],
        default="text",
        help="Log format (text|json)",
    )
    parser.add_argument(
        "--output-dir",
        default="output",
        help="Directory for run summaries (default: output)",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    scrape = sub.add_parser("scrape", help="Scrape all sources, then analyze new articles")
    scrape.add_argument(
        "--no-analyze",
        action="store_true",
        help="Only scrape; leave new articles for a later analyze run",
    )

    sub.add_parser("analyze", help="Score unanalyzed articles with the configured AI provider")

    digest = sub.add_parser("digest", help="Send a digest email")
    digest.add_argument("digest_type", choices=["morning", "evening"])
    digest.add_argument(
        "--dry-run",
        action="store_true",
        help="Print the digest to stdout without sending email or marking articles",
    )

    sub.add_parser("topic-sync", help="Extract topics and map articles onto them")
    sub.add_parser("schedule", help="Run all jobs on their cron schedules until stopped")
    return parser.parse_args(argv)


def _write_json(path: str, data: dict) -> None:
    with open(path, "w", encoding="utf-8") as handle:
        json.dump(data, handle, ensure_ascii=False, indent=2)


def _emit_summary(result: StageResult, output_dir: str) -> str:
    os.makedirs(output_dir, exist_ok=True)
    summary_path = os.path.join(output_dir, f"run-summary-{result.stage}-{result.date}.json")
    _write_json(summary_path, asdict(result))
    logger.info("[SUMMARY] Wrote run summary: %s", summary_path)
    return summary_path


def _append_failure(result: StageResult, error_type: str, message: str) -> None:
    result.failures.append(StageFailure(stage=result.stage, error_type=error_type, message=message))


# --- Component factories (read config at call time) ---

def build_client():
    from src.backend.client import BackendClient

    return BackendClient(
        config.BACKEND_API_URL,
        config.BACKEND_API_KEY,
        timeout=config.BACKEND_TIMEOUT_SECONDS,
    )


def build_provider():
    from src.analyzers.providers import create_provider

    return create_provider(config.AI_PROVIDER, config.get_provider_api_key())


def build_analyzer(provider=None):
    from src.analyzers.article_analyzer import ArticleAnalyzer

    return ArticleAnalyzer(provider or build_provider(), delay_seconds=config.ANALYZE_DELAY_SECONDS)


def build_extractor(provider=None):
    from src.analyzers.topic_extractor import TopicExtractor

    return TopicExtractor(provider or build_provider())


# --- Stages ---

def run_scrape(client, result: StageResult, analyze: bool = True) -> None:
    from src.pipeline.analyze import analyze_articles
    from src.pipeline.scrape import scrape_all

    result.saved_count = scrape_all(client)
    if not analyze or result.saved_count == 0:
        return
    valid, errors = config.validate_config("analyze")
    if not valid:
        logger.warning("[SCRAPE] Skipping analysis: %s", "; ".join(errors))
        return
    logger.info("[SCRAPE] Running analysis on new articles...")
    result.analyzed_count = analyze_articles(client, build_analyzer())


def run_analyze(client, result: StageResult) -> None:
    from src.pipeline.analyze import analyze_articles

    result.analyzed_count = analyze_articles(client, build_analyzer())


def run_digest(client, result: StageResult, digest_type: str, dry_run: bool = False) -> None:
    from src.pipeline.digest import build_emailer, send_digest

    result.digest_type = digest_type
    result.digest_sent = send_digest(digest_type, client, build_emailer(), dry_run=dry_run)
    if not result.digest_sent:
        _append_failure(result, "EMAIL", "Failed to send email")


def run_topic_sync(client, result: StageResult) -> None:
    from src.pipeline.topic_sync import run_topic_sync as sync

    result.topics_synced, result.articles_mapped = sync(client, build_extractor())


def run_schedule(client) -> None:
    """Run the long-lived scheduler; returns once SIGINT/SIGTERM is received."""
    import threading

    from src.pipeline.analyze import analyze_articles
    from src.pipeline.digest import build_emailer, send_digest
    from src.pipeline.scrape import scrape_all
    from src.pipeline.topic_sync import run_topic_sync as sync
    from src.scheduler import build_jobs, install_signal_handlers, run_scheduler

    provider = build_provider()
    analyzer = build_analyzer(provider)
    extractor = build_extractor(provider)
    emailer = build_emailer()

    def scrape_and_analyze():
        if scrape_all(client) > 0:
            logger.info("[SCHEDULER] Running analysis on new articles...")
            analyze_articles(client, analyzer)

    jobs = build_jobs(
        scrape=scrape_and_analyze,
        morning_digest=lambda: send_digest("morning", client, emailer),
        evening_digest=lambda: send_digest("evening", client, emailer),
        topic_sync=lambda: sync(client, extractor),
        scrape_schedule=config.SCRAPE_SCHEDULE,
        morning_schedule=config.DIGEST_MORNING_SCHEDULE,
        evening_schedule=config.DIGEST_EVENING_SCHEDULE,
        topic_sync_schedule=config.TOPIC_SYNC_SCHEDULE,
    )

    logger.info("=" * 60)
    logger.info("Tech News Aggregator Starting... | min_relevance=%s", config.MIN_RELEVANCE_SCORE)
    stop_event = threading.Event()
    install_signal_handlers(stop_event)
    run_scheduler(jobs, initial_job=scrape_and_analyze, stop_event=stop_event)


def run_stage(args: argparse.Namespace) -> StageResult:
    """Validate config, then run the requested one-shot stage."""
    today = date.today().strftime("%Y-%m-%d")
    result = StageResult(run_id=f"{today}-{int(time.time())}", date=today, stage=args.command)
    started = time.perf_counter()

    logger.info("=" * 60)
    logger.info("Tech News Aggregator | stage=%s run_id=%s", args.command, result.run_id)

    try:
        require_config(args.command)
    except ConfigError as exc:
        _append_failure(result, "CONFIG", str(exc))
        result.exit_reason = "configuration validation failed"
        result.duration_seconds = round(time.perf_counter() - started, 3)
        return result

    from src.backend.client import BackendError

    client = build_client()
    try:
        if args.command == "scrape":
            run_scrape(client, result, analyze=not args.no_analyze)
        elif args.command == "analyze":
            run_analyze(client, result)
        elif args.command == "digest":
            run_digest(client, result, args.digest_type, dry_run=args.dry_run)
        elif args.command == "topic-sync":
            run_topic_sync(client, result)
    except ConfigError as exc:
        _append_failure(result, "CONFIG", str(exc))
        result.exit_reason = "configuration validation failed"
    except BackendError as exc:
        _append_failure(result, "BACKEND", str(exc))
        result.exit_reason = f"{args.command} stage failed"
    finally:
        client.close()

    if not result.failures:
        result.success = True
        result.exit_reason = "completed"
    elif not result.exit_reason:
        result.exit_reason = f"{args.command} stage failed"
    result.duration_seconds = round(time.perf_counter() - started, 3)
    return result


def main(argv: list[str] | None = None) -> int:
    """Parse arguments, run the stage and report the outcome as an exit code."""
    args = parse_args(argv)
    configure_logging(args.log_format)

    if args.command == "schedule":
        try:
            require_config("schedule")
        except ConfigError as exc:
            logger.error("Configuration errors:\n  - %s", exc)
            return 1
        client = build_client()
        try:
            run_schedule(client)
        finally:
            client.close()
        return 0

    try:
        result = run_stage(args)
    except Exception as exc:
        logger.critical("Stage failed unexpectedly: %s", exc)
        traceback.print_exc()
        today = date.today().strftime("%Y-%m-%d")
        crash_result = StageResult(
            run_id=f"{today}-{int(time.time())}",
            date=today,
            stage=args.command,
            success=False,
            exit_reason="unhandled exception",
        )
        _append_failure(crash_result, "RUNTIME", str(exc))
        _emit_summary(crash_result, args.output_dir)
        return 1

    _emit_summary(result, args.output_dir)
    if result.success:
        logger.info(
            "Stage complete | stage=%s saved=%s analyzed=%s digest_sent=%s duration=%.2fs",
            result.stage,
            result.saved_count,
            result.analyzed_count,
            result.digest_sent,
            result.duration_seconds,
        )
        return 0

    logger.error(
        "Stage ended with issues | reason=%s failures=%s",
        result.exit_reason,
        len(result.failures),
    )
    return 1


if __name__ == "__main__":
    sys.exit(main())
