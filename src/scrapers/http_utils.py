"""Shared HTTP session and text helpers for the feed aggregators."""

import logging
import re
from datetime import datetime, timedelta, timezone

import requests
from bs4 import BeautifulSoup
from requests.adapters import HTTPAdapter
from urllib3.util import Retry

logger = logging.getLogger(__name__)

USER_AGENT = "tech-news-aggregator/1.0"
HEADERS = {
    "User-Agent": USER_AGENT,
    "Accept": "application/json, application/rss+xml, application/xml;q=0.9, */*;q=0.8",
}
REQUEST_TIMEOUT_SECONDS = 10
RECENT_WINDOW_HOURS = 24


def build_session() -> requests.Session:
    """Build a requests session with automatic retries for GETs."""
    session = requests.Session()
    retries = Retry(
        total=3,
        connect=3,
        read=3,
        backoff_factor=0.8,
        status_forcelist=(429, 500, 502, 503, 504),
        allowed_methods=("GET",),
    )
    adapter = HTTPAdapter(max_retries=retries)
    session.mount("https://", adapter)
    session.mount("http://", adapter)
    session.headers.update(HEADERS)
    return session


def get_json(session: requests.Session, url: str, params: dict | None = None):
    resp = session.get(url, params=params, timeout=REQUEST_TIMEOUT_SECONDS)
    resp.raise_for_status()
    return resp.json()


def html_to_text(text: str | None, max_len: int | None = None) -> str:
    """Strip HTML tags and collapse whitespace."""
    if not text:
        return ""
    if "<" in text:
        text = BeautifulSoup(text, "html.parser").get_text(" ")
    text = re.sub(r"\s+", " ", text).strip()
    if max_len is not None:
        return text[:max_len]
    return text


def recent_cutoff(now: datetime | None = None, hours: int = RECENT_WINDOW_HOURS) -> datetime:
    now = now or datetime.now(tz=timezone.utc)
    return now - timedelta(hours=hours)


def as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value
