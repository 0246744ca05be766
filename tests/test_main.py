from __future__ import annotations

import json
import logging
from unittest.mock import MagicMock

import pytest

import config
import main
from config import ConfigError
from src.backend.client import BackendError


@pytest.fixture
def client(monkeypatch):
    fake = MagicMock()
    monkeypatch.setattr(main, "build_client", lambda: fake)
    monkeypatch.setattr(main, "require_config", lambda stage: None)
    monkeypatch.setattr(main, "build_analyzer", lambda provider=None: MagicMock(name="analyzer"))
    monkeypatch.setattr(main, "build_extractor", lambda provider=None: MagicMock(name="extractor"))
    return fake


def _summary(tmp_path, stage):
    files = list(tmp_path.glob(f"run-summary-{stage}-*.json"))
    assert len(files) == 1
    return json.loads(files[0].read_text(encoding="utf-8"))


def test_parse_args_digest():
    args = main.parse_args(["--log-format", "json", "digest", "evening", "--dry-run"])
    assert args.command == "digest"
    assert args.digest_type == "evening"
    assert args.dry_run is True
    assert args.log_format == "json"


def test_parse_args_rejects_unknown_digest_type():
    with pytest.raises(SystemExit):
        main.parse_args(["digest", "midnight"])


def test_scrape_runs_analysis_when_new_articles(client, tmp_path, monkeypatch):
    import src.pipeline.analyze as analyze
    import src.pipeline.scrape as scrape

    monkeypatch.setattr(scrape, "scrape_all", lambda c: 3)
    monkeypatch.setattr(analyze, "analyze_articles", lambda c, analyzer: 3)
    monkeypatch.setattr(config, "validate_config", lambda stage: (True, []))

    assert main.main(["--output-dir", str(tmp_path), "scrape"]) == 0

    summary = _summary(tmp_path, "scrape")
    assert summary["success"] is True
    assert summary["saved_count"] == 3
    assert summary["analyzed_count"] == 3
    client.close.assert_called_once()


def test_scrape_no_analyze_flag(client, tmp_path, monkeypatch):
    import src.pipeline.analyze as analyze
    import src.pipeline.scrape as scrape

    monkeypatch.setattr(scrape, "scrape_all", lambda c: 3)
    analyze_mock = MagicMock()
    monkeypatch.setattr(analyze, "analyze_articles", analyze_mock)

    assert main.main(["--output-dir", str(tmp_path), "scrape", "--no-analyze"]) == 0
    analyze_mock.assert_not_called()


def test_scrape_skips_analysis_without_provider_config(client, tmp_path, monkeypatch):
    import src.pipeline.analyze as analyze
    import src.pipeline.scrape as scrape

    monkeypatch.setattr(scrape, "scrape_all", lambda c: 2)
    analyze_mock = MagicMock()
    monkeypatch.setattr(analyze, "analyze_articles", analyze_mock)
    monkeypatch.setattr(config, "validate_config", lambda stage: (False, ["No API key"]))

    assert main.main(["--output-dir", str(tmp_path), "scrape"]) == 0
    analyze_mock.assert_not_called()


def test_digest_failure_exits_nonzero(client, tmp_path, monkeypatch):
    import src.pipeline.digest as digest

    monkeypatch.setattr(digest, "build_emailer", lambda: MagicMock())
    monkeypatch.setattr(digest, "send_digest", lambda *a, **k: False)

    assert main.main(["--output-dir", str(tmp_path), "digest", "morning"]) == 1

    summary = _summary(tmp_path, "digest")
    assert summary["digest_type"] == "morning"
    assert summary["failures"][0]["error_type"] == "EMAIL"


def test_topic_sync_records_counts(client, tmp_path, monkeypatch):
    import src.pipeline.topic_sync as topic_sync

    monkeypatch.setattr(topic_sync, "run_topic_sync", lambda c, extractor: (2, 14))

    assert main.main(["--output-dir", str(tmp_path), "topic-sync"]) == 0

    summary = _summary(tmp_path, "topic-sync")
    assert (summary["topics_synced"], summary["articles_mapped"]) == (2, 14)


def test_backend_error_fails_stage(client, tmp_path, monkeypatch):
    import src.pipeline.analyze as analyze

    def broken(c, analyzer):
        raise BackendError("AUTH", "Backend API error: 401 - bad key", status=401)

    monkeypatch.setattr(analyze, "analyze_articles", broken)

    assert main.main(["--output-dir", str(tmp_path), "analyze"]) == 1
    summary = _summary(tmp_path, "analyze")
    assert summary["failures"][0]["error_type"] == "BACKEND"


def test_config_error_exits_before_building_client(tmp_path, monkeypatch):
    def missing(stage):
        raise ConfigError("[analyze] BACKEND_API_URL is not set")

    build = MagicMock()
    monkeypatch.setattr(main, "require_config", missing)
    monkeypatch.setattr(main, "build_client", build)

    assert main.main(["--output-dir", str(tmp_path), "analyze"]) == 1
    build.assert_not_called()
    assert _summary(tmp_path, "analyze")["exit_reason"] == "configuration validation failed"


def test_unexpected_exception_writes_crash_summary(client, tmp_path, monkeypatch):
    import src.pipeline.scrape as scrape

    def crash(c):
        raise RuntimeError("unexpected")

    monkeypatch.setattr(scrape, "scrape_all", crash)

    assert main.main(["--output-dir", str(tmp_path), "scrape"]) == 1
    summary = _summary(tmp_path, "scrape")
    assert summary["exit_reason"] == "unhandled exception"
    assert summary["failures"][0]["error_type"] == "RUNTIME"


def test_json_formatter_includes_stage_extra():
    record = logging.LogRecord("main", logging.INFO, __file__, 1, "hello", None, None)
    record.stage = "digest"
    payload = json.loads(main.JsonFormatter().format(record))
    assert payload["message"] == "hello"
    assert payload["stage"] == "digest"
    assert payload["level"] == "INFO"
