"""
Relevance analyzer.
Scores a single article 0-10 through the configured LLM provider.
"""

import logging
import time

from src.analyzers.json_extract import extract_json
from src.analyzers.providers import ChatMessage, LLMProvider
from src.models import AnalysisResult, Article

logger = logging.getLogger(__name__)

CONTENT_LIMIT = 2000
MAX_TOKENS = 1024
DEFAULT_DELAY_SECONDS = 1.0

FALLBACK_SCORE = 5
FALLBACK_TOPIC = "uncategorized"
FALLBACK_REASONING = "Error during analysis"

ANALYSIS_PROMPT = """You are analyzing a tech news article to determine if it's worth commenting on. The user is interested in:
- AI systems, products, and developments
- General tech news and tech tips
- Invitations to hackathons, workshops, or coaching opportunities
- Programming and software development
- Emerging technologies and trends
- No-code backend platforms

Article Title: {title}
Article URL: {url}
Article Content: {content}

Please analyze this article and provide:
1. A relevance score from 0-10 (10 being highly relevant to the user's interests)
2. Main topics/categories (as a list)
3. A brief reasoning explaining why this is or isn't worth commenting on
4. Whether the user should comment (true/false)
5. If shouldComment is true, write a suggested comment/response the user could post. The comment should be:
   - Insightful and add value to the discussion
   - Professional but conversational in tone
   - 2-4 sentences long
   - Relevant to the article's main points

Consider scoring higher for:
- New AI product launches or significant AI developments
- Actionable tech tips and tutorials
- Hackathon/workshop/coaching announcements
- Breakthrough technologies or major industry news
- Content that invites discussion or has controversial viewpoints

Consider scoring lower for:
- General company news without technical substance
- Clickbait or sensationalized content
- Overly niche topics outside the user's interests
- Recycled or outdated information

Respond in this exact JSON format (no markdown, just the JSON object):
{{
  "relevanceScore": <number 0-10>,
  "topics": ["topic1", "topic2", "topic3"],
  "reasoning": "<your reasoning>",
  "shouldComment": <true or false>,
  "suggestedResponse": "<your suggested comment if shouldComment is true, otherwise null>"
}}"""


class AnalysisParseError(ValueError):
    """The model reply did not contain a usable verdict."""


def clamp_score(value, low: float = 0, high: float = 10) -> float:
    """Clamp a numeric score into [low, high]; non-numeric values raise."""
    if isinstance(value, bool):
        raise AnalysisParseError(f"Invalid score: {value!r}")
    try:
        score = float(value)
    except (TypeError, ValueError):
        raise AnalysisParseError(f"Invalid score: {value!r}")
    if score != score:  # NaN
        raise AnalysisParseError("Invalid score: NaN")
    return max(low, min(high, score))


def fallback_result() -> AnalysisResult:
    """Neutral verdict used whenever analysis fails."""
    return AnalysisResult(
        relevance_score=FALLBACK_SCORE,
        topics=[FALLBACK_TOPIC],
        reasoning=FALLBACK_REASONING,
        should_comment=False,
    )


def parse_analysis(text: str) -> AnalysisResult:
    """Turn a model reply into an AnalysisResult, clamping and defaulting fields."""
    data = extract_json(text)
    if data is None:
        raise AnalysisParseError("Failed to parse AI response")

    topics = data.get("topics")
    if isinstance(topics, str):
        topics = [t.strip() for t in topics.split(",") if t.strip()]
    elif isinstance(topics, list):
        topics = [str(t).strip() for t in topics if str(t).strip()]
    else:
        topics = []

    return AnalysisResult(
        relevance_score=clamp_score(data.get("relevanceScore")),
        topics=topics,
        reasoning=str(data.get("reasoning") or ""),
        should_comment=data.get("shouldComment") is True,
        suggested_response=data.get("suggestedResponse") or None,
    )


class ArticleAnalyzer:
    """Scores articles with an LLM and never raises past its own boundary."""

    def __init__(self, provider: LLMProvider, delay_seconds: float = DEFAULT_DELAY_SECONDS):
        self.provider = provider
        self.delay_seconds = delay_seconds
        logger.info(f"[ANALYZE] ArticleAnalyzer initialized with {provider.name}")

    def build_prompt(self, title: str, description: str, url: str, content: str | None = None) -> str:
        article_text = content or description or title
        return ANALYSIS_PROMPT.format(
            title=title,
            url=url,
            content=article_text[:CONTENT_LIMIT],
        )

    def analyze(self, title: str, description: str, url: str,
                content: str | None = None) -> AnalysisResult:
        """Analyze one article; returns the neutral fallback on any failure."""
        try:
            prompt = self.build_prompt(title, description, url, content)
            reply = self.provider.complete(
                [ChatMessage(role="user", content=prompt)],
                max_tokens=MAX_TOKENS,
            )
            return parse_analysis(reply)
        except Exception as e:
            logger.error(f"[ANALYZE] Error analyzing article with {self.provider.name}: {e}")
            return fallback_result()

    def analyze_article(self, article: Article) -> AnalysisResult:
        return self.analyze(
            article.title,
            article.description or "",
            article.url,
            article.content or None,
        )

    def analyze_many(self, articles: list[Article]) -> list[AnalysisResult]:
        """Analyze sequentially with a fixed delay between provider calls."""
        results: list[AnalysisResult] = []
        for idx, article in enumerate(articles):
            results.append(self.analyze_article(article))
            if self.delay_seconds and idx < len(articles) - 1:
                time.sleep(self.delay_seconds)
        return results
