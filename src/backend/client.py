"""REST client for the no-code backend that stores articles, sources and topics."""

import logging
from datetime import datetime

import requests
from requests.adapters import HTTPAdapter
from urllib3.util import Retry

from config import ConfigError
from src.models import (
    AnalysisUpdate,
    Article,
    DigestLog,
    ExistingTopic,
    Source,
    TopicAnalysis,
    TopicMapping,
)

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 30.0


class BackendError(Exception):
    """Structured backend error with HTTP status and category metadata."""

    def __init__(self, category: str, message: str, status: int = 0):
        super().__init__(message)
        self.category = category
        self.message = message
        self.status = status


def classify_status(status: int) -> str:
    if status in (401, 403):
        return "AUTH"
    if status == 404:
        return "NOT_FOUND"
    if status in (400, 422):
        return "VALIDATION"
    if status == 429:
        return "RATE_LIMIT"
    if status >= 500:
        return "SERVER"
    return "API_ERROR"


def _build_session() -> requests.Session:
    """Session retrying idempotent GETs only; writes are sent once."""
    session = requests.Session()
    retries = Retry(
        total=3,
        backoff_factor=0.8,
        status_forcelist=(429, 500, 502, 503, 504),
        allowed_methods=("GET",),
    )
    adapter = HTTPAdapter(max_retries=retries)
    session.mount("https://", adapter)
    session.mount("http://", adapter)
    session.headers.update({"Content-Type": "application/json"})
    return session


class BackendClient:
    """
    Thin wrapper translating pipeline calls into backend endpoints.
    Every request carries the shared API key (query string for GET, body otherwise).
    There is no transactionality: a batch call either succeeds or raises.
    """

    def __init__(self, base_url: str, api_key: str,
                 timeout: float = DEFAULT_TIMEOUT_SECONDS,
                 session: requests.Session | None = None):
        if not base_url:
            raise ConfigError("BACKEND_API_URL not configured")
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self.session = session or _build_session()

    def close(self) -> None:
        self.session.close()

    # --- transport ---

    def _request(self, method: str, endpoint: str, params: dict | None = None,
                 payload: dict | None = None):
        url = f"{self.base_url}/{endpoint}"
        if method == "GET":
            params = {"api_key": self.api_key, **(params or {})}
            body = None
        else:
            body = {"api_key": self.api_key, **(payload or {})}

        try:
            resp = self.session.request(method, url, params=params, json=body, timeout=self.timeout)
        except requests.RequestException as e:
            raise BackendError("NETWORK", f"{method} {endpoint} failed: {e}") from e

        if not resp.ok:
            raise BackendError(
                classify_status(resp.status_code),
                f"Backend API error: {resp.status_code} - {resp.text[:500]}",
                status=resp.status_code,
            )
        if not resp.content:
            return None
        return resp.json()

    def _get(self, endpoint: str, **params):
        return self._request("GET", endpoint, params=params)

    def _post(self, endpoint: str, payload: dict):
        return self._request("POST", endpoint, payload=payload)

    # --- sources ---

    def get_sources(self, enabled: bool = True) -> list[Source]:
        data = self._get("get_sources", enabled=str(enabled).lower()) or []
        return [Source.from_backend(item) for item in data]

    def upsert_source(self, name: str, source_type: str, url: str | None = None,
                      enabled: bool = True) -> dict:
        return self._post("upsert_source", {
            "name": name,
            "type": source_type,
            "url": url,
            "enabled": enabled,
        })

    def update_source_last_scraped(self, source_id: int, when: datetime) -> dict:
        return self._request("PATCH", "update_source", payload={
            "source_id": source_id,
            "last_scraped": when.isoformat(),
        })

    # --- articles ---

    def bulk_create_articles(self, articles: list[Article]) -> tuple[int, int]:
        """Create articles; the backend skips urls it already stores."""
        result = self._post("bulk_create_articles", {
            "articles": [a.to_backend_create() for a in articles],
        }) or {}
        return int(result.get("created", 0) or 0), int(result.get("skipped", 0) or 0)

    def get_unanalyzed_articles(self, limit: int = 50) -> list[Article]:
        data = self._get("get_unanalyzed_articles", limit=limit) or []
        return [Article.from_backend(item) for item in data]

    def bulk_update_analysis(self, updates: list[AnalysisUpdate]) -> int:
        result = self._post("bulk_update_analysis", {
            "articles": [u.to_backend() for u in updates],
        }) or {}
        return int(result.get("updated", 0) or 0)

    def get_digest_articles(self, start_time: datetime, min_score: float,
                            limit: int = 20) -> list[Article]:
        """
        Digest candidates: analyzed, should_comment, score >= min_score,
        not yet included in a digest and created after start_time.
        """
        data = self._get(
            "get_digest_articles",
            start_time=start_time.isoformat(),
            min_relevance_score=min_score,
            limit=limit,
            included_in_digest="false",
        ) or []
        return [Article.from_backend(item) for item in data]

    def mark_articles_in_digest(self, article_ids: list[int], sent_at: datetime):
        return self._post("mark_articles_in_digest", {
            "article_ids": list(article_ids),
            "digest_sent_at": sent_at.isoformat(),
        })

    # --- digest log ---

    def create_digest_log(self, log: DigestLog) -> dict | None:
        result = self._post("create_digest_log", log.to_backend()) or {}
        return result.get("log")

    # --- topics ---

    def _get_topics(self, endpoint: str) -> list[ExistingTopic]:
        data = self._get(endpoint) or {}
        items = data.get("items", []) if isinstance(data, dict) else data
        return [
            ExistingTopic(id=t["id"], name=t.get("name") or "", description=t.get("description"))
            for t in items
        ]

    def get_major_topics(self) -> list[ExistingTopic]:
        return self._get_topics("major_topics")

    def get_minor_topics(self) -> list[ExistingTopic]:
        return self._get_topics("minor_topics")

    def get_articles_needing_topic_mapping(self, limit: int = 50) -> list[Article]:
        data = self._get("get_articles_needing_topic_mapping", limit=limit) or []
        return [Article.from_backend(item) for item in data]

    def sync_topics(self, topics: list[TopicAnalysis]) -> dict:
        return self._post("sync_topics", {"topics": [t.to_backend() for t in topics]}) or {}

    def update_article_topics(self, mappings: list[TopicMapping]) -> dict:
        return self._post("update_article_topics", {
            "articles": [m.to_backend() for m in mappings],
        }) or {}
