"""
Keyword-overlap mapping from an article's topic text to stored topic ids.
This is a heuristic and can mis-assign articles.
"""

import re

from src.models import ExistingTopic, TopicMapping

MAX_MINOR_TOPICS = 4
BONUS_TERMS = ("ai", "developer", "software", "web", "cloud")
BONUS_POINTS = 2

_RE_NAME_SPLIT = re.compile(r"\s+|&")


def parse_keywords(topics_text: str | None) -> list[str]:
    if not topics_text:
        return []
    return [t.strip() for t in topics_text.lower().split(",") if t.strip()]


def _name_words(name: str) -> list[str]:
    return _RE_NAME_SPLIT.split(name.lower())


def _overlaps(keyword: str, words: list[str]) -> bool:
    # Empty fragments left by "A & B" splitting match every keyword
    return any(word in keyword or keyword in word for word in words)


def score_major_topic(keywords: list[str], topic_name: str) -> int:
    name = topic_name.lower()
    words = _name_words(topic_name)
    score = 0
    for keyword in keywords:
        if _overlaps(keyword, words):
            score += 1
        for term in BONUS_TERMS:
            if term in keyword and term in name:
                score += BONUS_POINTS
    return score


def match_minor_topics(keywords: list[str], minors: list[ExistingTopic]) -> list[int]:
    matched: list[int] = []
    for minor in minors:
        words = _name_words(minor.name)
        if any(_overlaps(keyword, words) for keyword in keywords):
            matched.append(minor.id)
    return matched[:MAX_MINOR_TOPICS]


def map_topics_to_ids(url: str, topics_text: str | None,
                      majors: list[ExistingTopic],
                      minors: list[ExistingTopic]) -> TopicMapping:
    """Pick the best-scoring major topic and every overlapping minor topic."""
    keywords = parse_keywords(topics_text)
    if not keywords:
        return TopicMapping(url=url, major_topic_id=None)

    best: tuple[int, ExistingTopic] | None = None
    for major in majors:
        score = score_major_topic(keywords, major.name)
        if score > 0 and (best is None or score > best[0]):
            best = (score, major)

    return TopicMapping(
        url=url,
        major_topic_id=best[1].id if best else None,
        minor_topic_ids=match_minor_topics(keywords, minors),
    )
