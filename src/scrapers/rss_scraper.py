"""RSS feed aggregator for the tech blog feed list."""

import logging
from datetime import datetime, timezone
from typing import Optional

import feedparser
import requests

from config import TECH_BLOG_FEEDS
from src.models import Article
from src.scrapers.http_utils import (
    REQUEST_TIMEOUT_SECONDS,
    as_utc,
    build_session,
    html_to_text,
    recent_cutoff,
)

logger = logging.getLogger(__name__)


def parse_date(entry: dict) -> Optional[datetime]:
    """
    Parse the publication date of a feed entry.
    Tries 'published_parsed' first, then 'updated_parsed'.
    """
    for field in ("published_parsed", "updated_parsed"):
        parsed = entry.get(field)
        if parsed:
            try:
                return datetime(*parsed[:6], tzinfo=timezone.utc)
            except Exception:
                continue
    return None


def get_description(entry: dict, max_len: int = 500) -> str:
    """Plain-text teaser: summary > description > content."""
    if entry.get("summary"):
        text = entry.get("summary", "")
    elif entry.get("description"):
        text = entry.get("description", "")
    elif entry.get("content"):
        text = entry["content"][0].get("value", "")
    else:
        text = ""
    return html_to_text(text, max_len)


def get_content(entry: dict) -> str:
    """Full body text: content:encoded > summary."""
    if entry.get("content"):
        text = entry["content"][0].get("value", "")
    else:
        text = entry.get("summary", "") or entry.get("description", "")
    return html_to_text(text)


def fetch_feed(url: str, session: requests.Session) -> feedparser.FeedParserDict:
    resp = session.get(url, timeout=REQUEST_TIMEOUT_SECONDS)
    resp.raise_for_status()
    return feedparser.parse(resp.content)


def parse_feed_entries(feed, source_id, cutoff: datetime, max_items: int | None = None,
                       now: datetime | None = None) -> list[Article]:
    """Turn parsed feed entries into recent Articles."""
    now = now or datetime.now(tz=timezone.utc)
    feed_title = (feed.get("feed") or {}).get("title", "")
    articles: list[Article] = []

    entries = feed.get("entries", [])
    if max_items is not None:
        entries = entries[:max_items]

    for entry in entries:
        # Undated entries are treated as published now
        published = parse_date(entry) or now
        if as_utc(published) < cutoff:
            continue

        articles.append(Article(
            title=(entry.get("title") or "").strip() or "Untitled",
            url=(entry.get("link") or entry.get("id") or "").strip(),
            description=get_description(entry),
            content=get_content(entry),
            author=entry.get("author") or feed_title or "Unknown",
            published_at=published,
            source_id=source_id,
        ))
    return articles


def fetch_articles(source_id, feeds: list[str] | None = None,
                   session: requests.Session | None = None,
                   now: datetime | None = None) -> list[Article]:
    """
    Fetch recent articles from every configured tech blog feed.
    A failing feed is logged and skipped.
    """
    feeds = feeds or TECH_BLOG_FEEDS
    session = session or build_session()
    cutoff = recent_cutoff(now)
    articles: list[Article] = []

    logger.info(f"[RSS] Fetching articles from {len(feeds)} RSS feeds...")
    for feed_url in feeds:
        try:
            feed = fetch_feed(feed_url, session)
            if feed.get("bozo") and not feed.get("entries"):
                logger.warning(f"[RSS] Feed error for {feed_url}: {feed.get('bozo_exception')}")
                continue
            found = parse_feed_entries(feed, source_id, cutoff, now=now)
            articles.extend(found)
            title = (feed.get("feed") or {}).get("title") or feed_url
            logger.info(f"[RSS] Got {len(found)} recent items from {title}")
        except Exception as e:
            logger.error(f"[RSS] Failed to fetch {feed_url}: {e}")

    logger.info(f"[RSS] Total RSS articles fetched: {len(articles)}")
    return articles
