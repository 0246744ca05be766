"""HackerNews top stories via the public Firebase API."""

import logging
from datetime import datetime, timezone

import requests

from src.models import Article
from src.scrapers.http_utils import build_session, get_json

logger = logging.getLogger(__name__)

HN_API_BASE = "https://hacker-news.firebaseio.com/v0"
HN_ITEM_URL = "https://news.ycombinator.com/item?id={id}"
STORY_LIMIT = 30


def story_to_article(story: dict, source_id) -> Article | None:
    """Convert an HN item to an Article, or None when it should be skipped."""
    if not story or story.get("type") != "story":
        return None
    title = story.get("title") or ""
    if "who is hiring" in title.lower():
        return None

    # Ask HN / Show HN without a link point back at the discussion
    url = story.get("url") or HN_ITEM_URL.format(id=story.get("id"))
    published = story.get("time")

    return Article(
        title=title,
        url=url,
        description=story.get("text") or title,
        author=story.get("by") or "",
        published_at=datetime.fromtimestamp(published, tz=timezone.utc) if published else None,
        source_id=source_id,
    )


def fetch_articles(source_id, session: requests.Session | None = None,
                   limit: int = STORY_LIMIT) -> list[Article]:
    """
    Fetch the current top stories.
    A failure fetching the top-stories list propagates to the caller;
    individual story failures are logged and skipped.
    """
    logger.info("[HN] Fetching HackerNews top stories...")
    session = session or build_session()
    articles: list[Article] = []

    try:
        story_ids = get_json(session, f"{HN_API_BASE}/topstories.json") or []
    except Exception as e:
        logger.error(f"[HN] Error fetching top stories: {e}")
        raise

    for story_id in story_ids[:limit]:
        try:
            story = get_json(session, f"{HN_API_BASE}/item/{story_id}.json")
            article = story_to_article(story, source_id)
            if article:
                articles.append(article)
        except Exception as e:
            logger.error(f"[HN] Error fetching story {story_id}: {e}")

    logger.info(f"[HN] Fetched {len(articles)} articles from HackerNews")
    return articles
