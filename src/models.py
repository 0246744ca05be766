"""Article, topic and digest data models used across the pipeline."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Literal

DigestType = Literal["morning", "evening"]


def parse_timestamp(value) -> datetime | None:
    """Parse an ISO-8601 string or epoch milliseconds coming from the backend."""
    if value in (None, ""):
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value / 1000)
    text = str(value).strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        return None


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


@dataclass
class Article:
    """
    A news item as it moves through the pipeline.
    Aggregators fill the first block; the backend and analyzer fill the rest.
    """
    title: str
    url: str                            # dedup key
    source_id: int | str | None = None
    description: str = ""
    content: str = ""
    author: str = ""
    published_at: datetime | None = None

    id: int | None = None
    analyzed: bool = False
    relevance_score: float | None = None
    topics: str = ""                    # comma separated
    reasoning: str = ""
    should_comment: bool = False
    suggested_response: str = ""
    included_in_digest: bool = False
    digest_sent_at: datetime | None = None
    created_at: datetime | None = None
    source_name: str = "unknown"

    @classmethod
    def from_backend(cls, data: dict) -> "Article":
        source = data.get("source")
        if isinstance(source, dict):
            source_name = source.get("name") or "unknown"
        else:
            source_name = source or "unknown"
        return cls(
            id=data.get("id"),
            title=data.get("title") or "",
            url=data.get("url") or "",
            source_id=data.get("source_id"),
            description=data.get("description") or "",
            content=data.get("content") or "",
            author=data.get("author") or "",
            published_at=parse_timestamp(data.get("published_at")),
            analyzed=bool(data.get("analyzed", False)),
            relevance_score=data.get("relevance_score"),
            topics=data.get("topics") or "",
            reasoning=data.get("reasoning") or "",
            should_comment=bool(data.get("should_comment", False)),
            suggested_response=data.get("suggested_response") or "",
            included_in_digest=bool(data.get("included_in_digest", False)),
            digest_sent_at=parse_timestamp(data.get("digest_sent_at")),
            created_at=parse_timestamp(data.get("created_at")),
            source_name=source_name,
        )

    def to_backend_create(self) -> dict:
        return {
            "source_id": self.source_id,
            "title": self.title,
            "url": self.url,
            "description": self.description or "",
            "content": self.content or "",
            "author": self.author or "",
            "published_at": _iso(self.published_at),
            "topics": self.topics or "",
        }

    @property
    def topic_list(self) -> list[str]:
        return [t.strip() for t in (self.topics or "").split(",") if t.strip()]


@dataclass
class AnalysisResult:
    """LLM verdict for a single article."""
    relevance_score: float
    topics: list[str] = field(default_factory=list)
    reasoning: str = ""
    should_comment: bool = False
    suggested_response: str | None = None


@dataclass
class AnalysisUpdate:
    """One row of the bulk analysis update sent back to the backend."""
    article_id: int
    analyzed: bool = True
    relevance_score: float | None = None
    topics: str = ""
    reasoning: str = ""
    should_comment: bool = False
    suggested_response: str = ""

    def to_backend(self) -> dict:
        return {
            "article_id": self.article_id,
            "analyzed": self.analyzed,
            "relevance_score": self.relevance_score,
            "topics": self.topics or "",
            "reasoning": self.reasoning or "",
            "should_comment": self.should_comment,
            "suggested_response": self.suggested_response or "",
        }


@dataclass
class MinorTopic:
    name: str
    importance: float
    rationale: str = ""


@dataclass
class TopicAnalysis:
    """A major topic with its minor subtopics, as clustered by the LLM."""
    major_topic: str
    importance: float
    rationale: str = ""
    minor_topics: list[MinorTopic] = field(default_factory=list)

    def to_backend(self) -> dict:
        return {
            "major_topic": self.major_topic,
            "importance": self.importance,
            "rationale": self.rationale,
            "minor_topics": [
                {"name": m.name, "importance": m.importance, "rationale": m.rationale}
                for m in self.minor_topics
            ],
        }


@dataclass
class ExistingTopic:
    id: int
    name: str
    description: str | None = None


@dataclass
class TopicMapping:
    """Topic ids assigned to one article by keyword matching."""
    url: str
    major_topic_id: int | None
    minor_topic_ids: list[int] = field(default_factory=list)

    def to_backend(self) -> dict:
        return {
            "url": self.url,
            "major_topic_id": self.major_topic_id,
            "minor_topic_ids": list(self.minor_topic_ids),
        }


@dataclass
class Source:
    name: str
    type: str
    url: str | None = None
    enabled: bool = True
    id: int | None = None
    last_scraped: datetime | None = None

    @classmethod
    def from_backend(cls, data: dict) -> "Source":
        return cls(
            id=data.get("id"),
            name=data.get("name") or "",
            type=data.get("type") or "",
            url=data.get("url"),
            enabled=bool(data.get("enabled", True)),
            last_scraped=parse_timestamp(data.get("last_scraped")),
        )


@dataclass
class DigestLog:
    """Append-only audit record for a digest run."""
    type: DigestType
    article_count: int
    success: bool
    error: str | None = None

    def to_backend(self) -> dict:
        return {
            "digest_type": self.type,
            "article_count": self.article_count,
            "success": self.success,
            "error": self.error,
        }


@dataclass
class DigestArticle:
    title: str
    url: str
    relevance_score: float
    source_name: str
    topics: list[str] = field(default_factory=list)
    reasoning: str = ""
    description: str | None = None
    author: str | None = None
    published_at: datetime | None = None
    suggested_response: str | None = None

    @classmethod
    def from_article(cls, article: Article) -> "DigestArticle":
        return cls(
            title=article.title,
            url=article.url,
            relevance_score=float(article.relevance_score or 0),
            source_name=article.source_name,
            topics=article.topic_list,
            reasoning=article.reasoning or "",
            description=article.description or None,
            author=article.author or None,
            published_at=article.published_at,
            suggested_response=article.suggested_response or None,
        )


@dataclass
class DigestData:
    articles: list[DigestArticle]
    type: DigestType
    date: datetime
