"""Digest stage: email the top unsent articles and mark them as included."""

import logging
from datetime import datetime, timedelta

import config
from src.backend.client import BackendClient
from src.delivery.email_sender import DigestEmailer, render_digest_text
from src.models import DigestArticle, DigestData, DigestLog, DigestType

logger = logging.getLogger(__name__)

DIGEST_TYPES = ("morning", "evening")


def digest_window_start(now: datetime, lookback_days: int) -> datetime:
    """Midnight of the day lookback_days before now."""
    start = now - timedelta(days=lookback_days)
    return start.replace(hour=0, minute=0, second=0, microsecond=0)


def send_digest(digest_type: DigestType, client: BackendClient, emailer: DigestEmailer,
                now: datetime | None = None, dry_run: bool = False,
                lookback_days: int | None = None,
                min_score: float | None = None,
                max_articles: int | None = None) -> bool:
    """
    Build and send one digest.
    With no qualifying articles nothing is sent or logged and True is returned.
    On a failed send a failure log is written and False is returned; there is
    no retry within the run. Unexpected errors are logged and re-raised.
    """
    if digest_type not in DIGEST_TYPES:
        raise ValueError(f"Unknown digest type: {digest_type}")

    now = now or datetime.now()
    lookback_days = config.DIGEST_LOOKBACK_DAYS if lookback_days is None else lookback_days
    min_score = config.MIN_RELEVANCE_SCORE if min_score is None else min_score
    max_articles = config.DIGEST_MAX_ARTICLES if max_articles is None else max_articles

    logger.info(f"[DIGEST] Preparing {digest_type} digest...")

    try:
        start_time = digest_window_start(now, lookback_days)
        logger.info(f"[DIGEST] Time range: {start_time.isoformat()} to {now.isoformat()}")

        articles = client.get_digest_articles(start_time, min_score, limit=max_articles)
        # Guard against a backend that ignores the filter parameters
        articles = [
            a for a in articles
            if not a.included_in_digest and (a.relevance_score or 0) >= min_score
        ]
        articles.sort(key=lambda a: a.relevance_score or 0, reverse=True)
        articles = articles[:max_articles]
        logger.info(f"[DIGEST] Found {len(articles)} relevant articles")

        if not articles:
            logger.info("[DIGEST] No new relevant articles for this digest. Skipping email.")
            return True

        data = DigestData(
            articles=[DigestArticle.from_article(a) for a in articles],
            type=digest_type,
            date=now,
        )

        if dry_run:
            print("\n" + render_digest_text(data))
            logger.info("[DIGEST] Dry run output printed; articles left unmarked")
            return True

        success = emailer.send_digest(data)

        if success:
            client.mark_articles_in_digest([a.id for a in articles], now)
            client.create_digest_log(DigestLog(type=digest_type, article_count=len(articles), success=True))
            logger.info(
                f"[DIGEST] {digest_type.capitalize()} digest sent successfully! "
                f"Articles included: {len(articles)}"
            )
        else:
            client.create_digest_log(DigestLog(
                type=digest_type, article_count=0, success=False, error="Failed to send email",
            ))
            logger.error("[DIGEST] Failed to send digest email")

        return success

    except Exception as e:
        logger.error(f"[DIGEST] Error sending digest: {e}")
        try:
            client.create_digest_log(DigestLog(
                type=digest_type, article_count=0, success=False, error=str(e) or "Unknown error",
            ))
        except Exception as log_error:
            logger.error(f"[DIGEST] Could not record digest failure: {log_error}")
        raise


def build_emailer() -> DigestEmailer:
    return DigestEmailer(
        host=config.EMAIL_HOST,
        port=config.EMAIL_PORT,
        user=config.EMAIL_USER,
        password=config.EMAIL_PASSWORD,
        to_email=config.EMAIL_TO,
        from_email=config.EMAIL_FROM or None,
    )
