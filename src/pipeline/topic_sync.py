"""Topic sync stage: cluster recent articles into topics and map articles onto them."""

import logging

import config
from src.analyzers.topic_extractor import TopicExtractor
from src.analyzers.topic_matcher import map_topics_to_ids
from src.backend.client import BackendClient
from src.models import ExistingTopic

logger = logging.getLogger(__name__)


def fetch_existing_topics(client: BackendClient) -> tuple[list[ExistingTopic], list[ExistingTopic]]:
    """Existing major and minor topics; either list is empty when its fetch fails."""
    majors: list[ExistingTopic] = []
    minors: list[ExistingTopic] = []
    try:
        majors = client.get_major_topics()
    except Exception as e:
        logger.error(f"[TOPIC-SYNC] Error fetching major topics: {e}")
    try:
        minors = client.get_minor_topics()
    except Exception as e:
        logger.error(f"[TOPIC-SYNC] Error fetching minor topics: {e}")

    logger.info(
        f"[TOPIC-SYNC] Found {len(majors)} existing major topics, {len(minors)} existing minor topics"
    )
    return majors, minors


def sync_topics(client: BackendClient, extractor: TopicExtractor,
                min_score: float | None = None, batch_size: int | None = None) -> int:
    """
    Extract topics from recent well-scored articles and push them to the backend.
    Returns the number of major topics the backend processed; 0 on any failure.
    """
    min_score = config.TOPIC_SYNC_MIN_SCORE if min_score is None else min_score
    batch_size = config.TOPIC_SYNC_BATCH_SIZE if batch_size is None else batch_size
    logger.info("[TOPIC-SYNC] Starting topic sync...")

    try:
        candidates = client.get_articles_needing_topic_mapping(limit=batch_size)
        recent = [a for a in candidates if (a.relevance_score or 0) >= min_score][:batch_size]
        if not recent:
            logger.info("[TOPIC-SYNC] No recent articles to analyze for topics")
            return 0

        logger.info(f"[TOPIC-SYNC] Found {len(recent)} recent articles")
        majors, minors = fetch_existing_topics(client)

        topics = extractor.extract_topics(recent, majors, minors)
        if not topics:
            logger.info("[TOPIC-SYNC] No topics extracted")
            return 0

        logger.info(f"[TOPIC-SYNC] Extracted {len(topics)} major topics")
        result = client.sync_topics(topics)
        if not result.get("success"):
            logger.error("[TOPIC-SYNC] Failed to sync topics")
            return 0

        processed = int(result.get("processed_count", 0) or 0)
        logger.info(f"[TOPIC-SYNC] Successfully synced {processed} topics")
        for item in result.get("results") or []:
            logger.info(f"[TOPIC-SYNC]   {item.get('major_topic')}")
        return processed
    except Exception as e:
        logger.error(f"[TOPIC-SYNC] Error: {e}")
        return 0


def sync_article_topics(client: BackendClient, batch_size: int | None = None) -> int:
    """
    Assign topic ids to articles by keyword overlap and push the mapping.
    Articles without a matching major topic are left alone.
    Returns the number of articles the backend updated; 0 on any failure.
    """
    batch_size = config.TOPIC_MAPPING_BATCH_SIZE if batch_size is None else batch_size
    logger.info("[TOPIC-SYNC] Starting article topic mapping...")

    try:
        majors, minors = fetch_existing_topics(client)
        articles = client.get_articles_needing_topic_mapping(limit=batch_size)
        if not articles:
            logger.info("[TOPIC-SYNC] No articles need topic mapping")
            return 0

        logger.info(f"[TOPIC-SYNC] Mapping topics for {len(articles)} articles...")
        mappings = [map_topics_to_ids(a.url, a.topics, majors, minors) for a in articles]
        valid = [m for m in mappings if m.major_topic_id is not None]
        if not valid:
            logger.info("[TOPIC-SYNC] No valid topic mappings found")
            return 0

        logger.info(f"[TOPIC-SYNC] Updating {len(valid)} articles with topic IDs...")
        result = client.update_article_topics(valid)
        if not result.get("success"):
            logger.error("[TOPIC-SYNC] Failed to update article topics")
            return 0

        updated = int(result.get("updated_count", 0) or 0)
        logger.info(f"[TOPIC-SYNC] Successfully updated {updated} articles with topic mappings")
        return updated
    except Exception as e:
        logger.error(f"[TOPIC-SYNC] Topic mapping error: {e}")
        return 0


def run_topic_sync(client: BackendClient, extractor: TopicExtractor) -> tuple[int, int]:
    """Topic extraction followed by article mapping."""
    synced = sync_topics(client, extractor)
    mapped = sync_article_topics(client)
    return synced, mapped
