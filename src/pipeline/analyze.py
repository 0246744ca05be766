"""Analyze stage: score unanalyzed articles and write the verdicts back in one batch."""

import logging
import time

import config
from src.analyzers.article_analyzer import ArticleAnalyzer
from src.backend.client import BackendClient
from src.models import AnalysisUpdate

logger = logging.getLogger(__name__)


def analyze_articles(client: BackendClient, analyzer: ArticleAnalyzer,
                     batch_size: int | None = None,
                     min_score: float | None = None,
                     delay_seconds: float | None = None) -> int:
    """
    Analyze up to batch_size unanalyzed articles.
    Every fetched article is marked analyzed, even when its analysis errors,
    so nothing is reprocessed forever. Returns the number analyzed.
    """
    batch_size = config.ANALYZE_BATCH_SIZE if batch_size is None else batch_size
    min_score = config.MIN_RELEVANCE_SCORE if min_score is None else min_score
    delay_seconds = config.ANALYZE_DELAY_SECONDS if delay_seconds is None else delay_seconds

    logger.info("[ANALYZE] Starting article analysis...")
    articles = client.get_unanalyzed_articles(limit=batch_size)
    if not articles:
        logger.info("[ANALYZE] No articles to analyze")
        return 0

    logger.info(f"[ANALYZE] Found {len(articles)} articles to analyze")

    updates: list[AnalysisUpdate] = []
    analyzed_count = 0
    relevant_count = 0

    for article in articles:
        try:
            logger.info(f"[ANALYZE] Analyzing: {article.title[:60]}...")
            verdict = analyzer.analyze_article(article)
            relevant = verdict.relevance_score >= min_score

            updates.append(AnalysisUpdate(
                article_id=article.id,
                relevance_score=verdict.relevance_score,
                topics=",".join(verdict.topics),
                reasoning=verdict.reasoning,
                should_comment=verdict.should_comment and relevant,
                suggested_response=verdict.suggested_response or "",
            ))
            analyzed_count += 1

            if relevant:
                relevant_count += 1
                logger.info(
                    f"[ANALYZE]   Score: {verdict.relevance_score}/10 - RELEVANT - "
                    f"Topics: {', '.join(verdict.topics)}"
                )
            else:
                logger.info(f"[ANALYZE]   Score: {verdict.relevance_score}/10 - Not relevant")

            if delay_seconds:
                time.sleep(delay_seconds)
        except Exception as e:
            logger.error(f"[ANALYZE] Error analyzing article {article.id}: {e}")
            updates.append(AnalysisUpdate(article_id=article.id))

    logger.info(f"[ANALYZE] Sending batch update for {len(updates)} articles...")
    updated = client.bulk_update_analysis(updates)
    logger.info(f"[ANALYZE] Batch update complete: {updated} articles updated")
    logger.info(
        f"[ANALYZE] Analysis complete! analyzed={analyzed_count} "
        f"relevant(score >= {min_score})={relevant_count}"
    )
    return analyzed_count
