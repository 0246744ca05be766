"""Scrape stage: pull every enabled source and bulk-save new articles."""

import logging
from datetime import datetime, timezone
from typing import Callable
from urllib.parse import parse_qsl, urlencode, urlparse, urlunparse

from config import (
    DEFAULT_SOURCES,
    DEVTO_MEDIUM_SOURCE,
    HACKERNEWS_SOURCE,
    REDDIT_SOURCE,
    RSS_SOURCE,
    SourceDefinition,
)
from src.backend.client import BackendClient
from src.models import Article, Source
from src.scrapers import devto_scraper, hackernews_scraper, reddit_scraper, rss_scraper

logger = logging.getLogger(__name__)

Fetcher = Callable[[object], list[Article]]

AGGREGATORS: dict[str, Fetcher] = {
    HACKERNEWS_SOURCE: hackernews_scraper.fetch_articles,
    RSS_SOURCE: rss_scraper.fetch_articles,
    REDDIT_SOURCE: reddit_scraper.fetch_articles,
    DEVTO_MEDIUM_SOURCE: devto_scraper.fetch_articles,
}


def normalize_url(url: str) -> str:
    """Normalize a URL for in-run deduplication."""
    if not url:
        return ""
    parsed = urlparse(url.strip())
    netloc = parsed.netloc.lower()
    if netloc.endswith(":80"):
        netloc = netloc[:-3]
    if netloc.endswith(":443"):
        netloc = netloc[:-4]
    clean_query = urlencode(sorted(parse_qsl(parsed.query, keep_blank_values=True)))
    clean_path = parsed.path.rstrip("/") or "/"
    return urlunparse((parsed.scheme.lower(), netloc, clean_path, parsed.params, clean_query, ""))


def dedupe_articles(articles: list[Article]) -> list[Article]:
    """Drop repeated urls (first occurrence wins) and articles without a url."""
    seen: set[str] = set()
    deduped: list[Article] = []
    for article in articles:
        key = normalize_url(article.url)
        if not key or key in seen:
            continue
        seen.add(key)
        deduped.append(article)
    return deduped


def initialize_sources(client: BackendClient,
                       defaults: list[SourceDefinition] | None = None) -> list[Source]:
    """
    Return the enabled sources, creating any missing default source first.
    Upserts only happen for names the backend does not already know.
    """
    defaults = DEFAULT_SOURCES if defaults is None else defaults
    sources = client.get_sources(enabled=True)
    existing = {s.name for s in sources}
    missing = [d for d in defaults if d.name not in existing]

    if not missing:
        logger.info("[SCRAPE] All sources already exist, skipping initialization.")
        return sources

    logger.info(f"[SCRAPE] Creating {len(missing)} missing source(s)...")
    for definition in missing:
        client.upsert_source(definition.name, definition.source_type, definition.url, enabled=True)
    # Re-fetch to pick up ids of the new rows
    return client.get_sources(enabled=True)


def save_articles(client: BackendClient, articles: list[Article]) -> int:
    """Bulk-create articles; returns how many were new."""
    logger.info(f"[SCRAPE] Saving {len(articles)} articles to backend (bulk)...")
    if not articles:
        logger.info("[SCRAPE] No articles to save.")
        return 0

    created, skipped = client.bulk_create_articles(articles)
    logger.info(f"[SCRAPE] Saved {created} new articles, skipped {skipped} duplicates")
    return created


def scrape_all(client: BackendClient,
               aggregators: dict[str, Fetcher] | None = None) -> int:
    """
    Run every enabled source's aggregator and save the combined result.
    A failing source is logged and skipped; its last_scraped is left untouched.
    Returns the number of newly created articles.
    """
    aggregators = AGGREGATORS if aggregators is None else aggregators
    logger.info("[SCRAPE] Starting scraping process...")

    sources = initialize_sources(client)
    collected: list[Article] = []

    for source in sources:
        fetch = aggregators.get(source.name)
        if fetch is None:
            logger.warning(f"[SCRAPE] Unknown source type: {source.name}")
            continue

        logger.info(f"[SCRAPE] Scraping: {source.name}")
        try:
            articles = fetch(source.id)
            client.update_source_last_scraped(source.id, datetime.now(tz=timezone.utc))
            collected.extend(articles)
        except Exception as e:
            logger.error(f"[SCRAPE] Error scraping {source.name}: {e}")

    unique = dedupe_articles(collected)
    logger.info(f"[SCRAPE] Total articles collected: {len(collected)} (unique: {len(unique)})")

    saved = save_articles(client, unique)
    logger.info(f"[SCRAPE] Scraping complete! New articles to analyze: {saved}")
    return saved
