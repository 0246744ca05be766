from datetime import datetime
from unittest.mock import MagicMock

import pytest

from src.models import Article
from src.pipeline.digest import digest_window_start, send_digest

NOW = datetime(2026, 3, 2, 9, 0, 30)


def _articles():
    return [
        Article(id=1, title="Mid", url="https://a", relevance_score=7.5, analyzed=True,
                should_comment=True, topics="AI", source_name="Reddit"),
        Article(id=2, title="Top", url="https://b", relevance_score=9.0, analyzed=True,
                should_comment=True, topics="Cloud", source_name="HackerNews"),
    ]


@pytest.fixture
def client():
    return MagicMock()


@pytest.fixture
def emailer():
    emailer = MagicMock()
    emailer.send_digest.return_value = True
    return emailer


def _run(client, emailer, **kwargs):
    return send_digest("morning", client, emailer, now=NOW, lookback_days=7, min_score=7,
                       max_articles=20, **kwargs)


def test_window_starts_at_midnight_lookback_days_ago():
    assert digest_window_start(NOW, 7) == datetime(2026, 2, 23, 0, 0, 0)


def test_zero_articles_sends_and_logs_nothing(client, emailer):
    client.get_digest_articles.return_value = []

    assert _run(client, emailer) is True
    emailer.send_digest.assert_not_called()
    client.create_digest_log.assert_not_called()
    client.mark_articles_in_digest.assert_not_called()


def test_success_marks_articles_then_logs(client, emailer):
    client.get_digest_articles.return_value = _articles()

    assert _run(client, emailer) is True

    client.get_digest_articles.assert_called_once_with(datetime(2026, 2, 23), 7, limit=20)
    data = emailer.send_digest.call_args.args[0]
    assert data.type == "morning"
    assert [a.title for a in data.articles] == ["Top", "Mid"]
    assert data.articles[0].topics == ["Cloud"]

    client.mark_articles_in_digest.assert_called_once_with([2, 1], NOW)
    log = client.create_digest_log.call_args.args[0]
    assert (log.type, log.article_count, log.success) == ("morning", 2, True)
    names = [c[0] for c in client.method_calls]
    assert names.index("mark_articles_in_digest") < names.index("create_digest_log")


def test_send_failure_logs_zero_count_and_leaves_articles(client, emailer):
    client.get_digest_articles.return_value = _articles()
    emailer.send_digest.return_value = False

    assert _run(client, emailer) is False

    client.mark_articles_in_digest.assert_not_called()
    log = client.create_digest_log.call_args.args[0]
    assert (log.article_count, log.success, log.error) == (0, False, "Failed to send email")


def test_already_included_articles_are_not_resent(client, emailer):
    stale = Article(id=9, title="Sent", url="https://s", relevance_score=9, analyzed=True,
                    should_comment=True, included_in_digest=True)
    client.get_digest_articles.return_value = [stale]

    assert _run(client, emailer) is True
    emailer.send_digest.assert_not_called()


def test_unexpected_error_is_logged_and_reraised(client, emailer):
    client.get_digest_articles.side_effect = RuntimeError("backend down")

    with pytest.raises(RuntimeError):
        _run(client, emailer)

    log = client.create_digest_log.call_args.args[0]
    assert (log.success, log.article_count, log.error) == (False, 0, "backend down")


def test_dry_run_prints_without_sending(client, emailer, capsys):
    client.get_digest_articles.return_value = _articles()

    assert _run(client, emailer, dry_run=True) is True

    assert "Tech News Digest - Morning Edition" in capsys.readouterr().out
    emailer.send_digest.assert_not_called()
    client.mark_articles_in_digest.assert_not_called()
    client.create_digest_log.assert_not_called()


def test_unknown_digest_type_rejected(client, emailer):
    with pytest.raises(ValueError):
        send_digest("midnight", client, emailer, now=NOW)
