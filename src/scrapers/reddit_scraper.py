"""Reddit hot posts via the public JSON listing endpoints."""

import logging
import time
from datetime import datetime, timezone

import requests

from config import SUBREDDITS
from src.models import Article
from src.scrapers.http_utils import build_session, get_json, recent_cutoff

logger = logging.getLogger(__name__)

REDDIT_BASE = "https://www.reddit.com"
POST_LIMIT = 25
DESCRIPTION_LIMIT = 500
REQUEST_DELAY_SECONDS = 1.0


def post_to_article(post: dict, source_id) -> Article:
    """Convert a listing child's data dict into an Article."""
    if post.get("is_self"):
        url = f"{REDDIT_BASE}{post.get('permalink', '')}"
    else:
        url = post.get("url") or ""

    description = post.get("selftext") or post.get("title") or ""
    flair = post.get("link_flair_text")
    if flair:
        description = f"[{flair}] {description}"

    created = post.get("created_utc")
    return Article(
        title=post.get("title") or "",
        url=url,
        description=description[:DESCRIPTION_LIMIT],
        content=post.get("selftext") or "",
        author=post.get("author") or "",
        published_at=datetime.fromtimestamp(created, tz=timezone.utc) if created else None,
        source_id=source_id,
    )


def fetch_articles(source_id, subreddits: list[str] | None = None,
                   session: requests.Session | None = None,
                   now: datetime | None = None,
                   delay_seconds: float = REQUEST_DELAY_SECONDS) -> list[Article]:
    """Fetch posts from the last 24h across the subreddit list."""
    subreddits = subreddits or SUBREDDITS
    session = session or build_session()
    cutoff_ts = recent_cutoff(now).timestamp()
    articles: list[Article] = []

    logger.info(f"[REDDIT] Fetching posts from {len(subreddits)} subreddits...")
    for subreddit in subreddits:
        try:
            data = get_json(
                session,
                f"{REDDIT_BASE}/r/{subreddit}/hot.json",
                params={"limit": POST_LIMIT},
            )
            children = (data.get("data") or {}).get("children") or []
            for child in children:
                post = child.get("data") or {}
                if (post.get("created_utc") or 0) < cutoff_ts:
                    continue
                articles.append(post_to_article(post, source_id))
            logger.info(f"[REDDIT] Fetched {len(children)} posts from r/{subreddit}")
        except Exception as e:
            logger.error(f"[REDDIT] Error fetching r/{subreddit}: {e}")
            continue

        if delay_seconds:
            time.sleep(delay_seconds)

    logger.info(f"[REDDIT] Total Reddit posts fetched: {len(articles)}")
    return articles
