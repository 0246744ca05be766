"""Dev.to API articles plus Medium tag/publication RSS feeds."""

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime

import requests

from config import MEDIUM_FEEDS
from src.models import Article, parse_timestamp
from src.scrapers.http_utils import build_session, get_json, recent_cutoff
from src.scrapers.rss_scraper import fetch_feed, parse_feed_entries

logger = logging.getLogger(__name__)

DEV_TO_API = "https://dev.to/api/articles"
ARTICLE_LIMIT = 30
TOP_DAYS = 7
MEDIUM_ITEMS_PER_FEED = 10
MEDIUM_DELAY_SECONDS = 0.5


def devto_to_article(item: dict, source_id) -> Article:
    return Article(
        title=item.get("title") or "",
        url=item.get("url") or "",
        description=item.get("description") or "",
        content=item.get("body_markdown") or "",
        author=(item.get("user") or {}).get("name") or "",
        published_at=parse_timestamp(item.get("published_at")),
        source_id=source_id,
    )


def fetch_devto_articles(source_id, session: requests.Session | None = None) -> list[Article]:
    """Top Dev.to articles from the last week. Returns [] on failure."""
    logger.info("[DEVTO] Fetching Dev.to articles...")
    session = session or build_session()
    try:
        data = get_json(session, DEV_TO_API, params={"per_page": ARTICLE_LIMIT, "top": TOP_DAYS})
        articles = [devto_to_article(item, source_id) for item in data or []]
    except Exception as e:
        logger.error(f"[DEVTO] Error fetching Dev.to articles: {e}")
        return []

    logger.info(f"[DEVTO] Fetched {len(articles)} articles from Dev.to")
    return articles


def fetch_medium_articles(source_id, feeds: list[str] | None = None,
                          session: requests.Session | None = None,
                          now: datetime | None = None,
                          delay_seconds: float = MEDIUM_DELAY_SECONDS) -> list[Article]:
    """Recent items from the Medium feeds; failing feeds are skipped."""
    feeds = feeds or MEDIUM_FEEDS
    session = session or build_session()
    cutoff = recent_cutoff(now)
    articles: list[Article] = []

    logger.info(f"[MEDIUM] Fetching articles from {len(feeds)} Medium feeds...")
    for feed_url in feeds:
        try:
            feed = fetch_feed(feed_url, session)
            articles.extend(
                parse_feed_entries(feed, source_id, cutoff, max_items=MEDIUM_ITEMS_PER_FEED, now=now)
            )
            title = (feed.get("feed") or {}).get("title") or feed_url
            logger.info(f"[MEDIUM] Fetched articles from {title}")
        except Exception as e:
            logger.error(f"[MEDIUM] Error fetching feed {feed_url}: {e}")
            continue

        if delay_seconds:
            time.sleep(delay_seconds)

    logger.info(f"[MEDIUM] Total Medium articles fetched: {len(articles)}")
    return articles


def fetch_articles(source_id, session: requests.Session | None = None) -> list[Article]:
    """Fetch Dev.to and Medium concurrently and join the results."""
    devto_session = session or build_session()
    medium_session = session or build_session()
    with ThreadPoolExecutor(max_workers=2) as executor:
        devto_future = executor.submit(fetch_devto_articles, source_id, devto_session)
        medium_future = executor.submit(fetch_medium_articles, source_id, None, medium_session)
        return devto_future.result() + medium_future.result()
