"""Clusters recently scored articles into major/minor topics with the LLM."""

import logging
from typing import Iterable

from src.analyzers.json_extract import extract_json
from src.analyzers.providers import ChatMessage, LLMProvider
from src.models import Article, ExistingTopic, MinorTopic, TopicAnalysis

logger = logging.getLogger(__name__)

MAX_TOKENS = 2048
REASONING_LIMIT = 200
DEFAULT_IMPORTANCE = 5

TOPIC_PROMPT = """You are analyzing a batch of tech news articles to identify major themes and subtopics.
Your goal is to group these articles into coherent major topics with relevant minor subtopics.
{existing_majors}{existing_minors}

CRITICAL: If an existing topic matches what you want to categorize, you MUST use the EXACT existing topic name.
Only create a new topic name if nothing in the existing list is a good match.

Here are the articles analyzed recently:
{summaries}

Based on these articles, identify the major themes/topics and their subtopics. For each topic:
1. Identify a clear MAJOR TOPIC - FIRST check if an existing topic matches, use that exact name. Otherwise create a new one.
2. Rate its IMPORTANCE (0-10) based on how many articles relate to it and their relevance scores
3. Provide a RATIONALE explaining why this topic is important right now
4. List 2-4 MINOR SUBTOPICS - FIRST check existing minor topics, use exact names if they match.

Respond in this exact JSON format:
{{
  "topics": [
    {{
      "major_topic": "Major Topic Name (use existing name if matches)",
      "importance": 8.5,
      "rationale": "Why this major topic is important based on the articles",
      "minor_topics": [
        {{"name": "Minor Subtopic 1", "importance": 7.0, "rationale": "Why this subtopic matters"}},
        {{"name": "Minor Subtopic 2", "importance": 6.5, "rationale": "Why this subtopic matters"}}
      ]
    }}
  ]
}}

Focus on:
- REUSING existing topic names when they fit (this is critical to avoid duplicates!)
- Identifying 2-5 major topics that best represent the current news landscape
- Ensuring minor topics are specific enough to be actionable but broad enough to encompass multiple articles
- Providing insightful rationales that could inform blog post content

Respond with only the JSON object, no markdown formatting."""


def _importance(value) -> float:
    # Missing or zero importance falls back to the midpoint
    try:
        number = float(value or DEFAULT_IMPORTANCE)
    except (TypeError, ValueError):
        number = DEFAULT_IMPORTANCE
    return max(0.0, min(10.0, number))


def _existing_section(label: str, topics: Iterable[ExistingTopic]) -> str:
    names = [t.name for t in topics]
    if not names:
        return ""
    lines = "\n".join(f'- "{name}"' for name in names)
    return f"\n\nEXISTING {label} TOPICS IN DATABASE (USE THESE EXACT NAMES if applicable):\n{lines}"


def summarize_articles(articles: list[Article]) -> str:
    return "\n".join(
        f'{i}. "{a.title}" - Topics: {a.topics} - Score: {a.relevance_score or 0}/10'
        f" - Reasoning: {(a.reasoning or '')[:REASONING_LIMIT]}"
        for i, a in enumerate(articles, start=1)
    )


def parse_topics(text: str) -> list[TopicAnalysis]:
    data = extract_json(text)
    if data is None:
        raise ValueError("Failed to parse topic extraction response")

    raw_topics = data.get("topics")
    if not isinstance(raw_topics, list):
        return []

    topics: list[TopicAnalysis] = []
    for raw in raw_topics:
        if not isinstance(raw, dict):
            continue
        minors = [
            MinorTopic(
                name=m.get("name") or "Unknown",
                importance=_importance(m.get("importance")),
                rationale=m.get("rationale") or "",
            )
            for m in raw.get("minor_topics") or []
            if isinstance(m, dict)
        ]
        topics.append(TopicAnalysis(
            major_topic=raw.get("major_topic") or "Uncategorized",
            importance=_importance(raw.get("importance")),
            rationale=raw.get("rationale") or "",
            minor_topics=minors,
        ))
    return topics


class TopicExtractor:
    def __init__(self, provider: LLMProvider):
        self.provider = provider
        logger.info(f"[TOPICS] TopicExtractor initialized with {provider.name}")

    def build_prompt(self, articles: list[Article],
                     existing_majors: Iterable[ExistingTopic] = (),
                     existing_minors: Iterable[ExistingTopic] = ()) -> str:
        return TOPIC_PROMPT.format(
            existing_majors=_existing_section("MAJOR", existing_majors),
            existing_minors=_existing_section("MINOR", existing_minors),
            summaries=summarize_articles(articles),
        )

    def extract_topics(self, articles: list[Article],
                       existing_majors: Iterable[ExistingTopic] = (),
                       existing_minors: Iterable[ExistingTopic] = ()) -> list[TopicAnalysis]:
        """
        Ask the provider to cluster the articles.
        Reuse of existing names is only requested, not enforced.
        Returns [] on any network or parse failure.
        """
        if not articles:
            return []

        try:
            prompt = self.build_prompt(articles, existing_majors, existing_minors)
            reply = self.provider.complete(
                [ChatMessage(role="user", content=prompt)],
                max_tokens=MAX_TOKENS,
            )
            return parse_topics(reply)
        except Exception as e:
            logger.error(f"[TOPICS] Error extracting topics: {e}")
            return []
