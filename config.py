"""Central configuration for the Tech News Aggregator."""

import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()


class ConfigError(RuntimeError):
    """Raised when a stage starts without the settings it cannot run without."""


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    return int(raw) if raw else default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    return float(raw) if raw else default


# --- Backend (no-code REST backend) ---
BACKEND_API_URL = os.getenv("BACKEND_API_URL", "").rstrip("/")
BACKEND_API_KEY = os.getenv("BACKEND_API_KEY", "")
BACKEND_TIMEOUT_SECONDS = _env_float("BACKEND_TIMEOUT_SECONDS", 30.0)

# --- AI Provider Config ---
# One of: anthropic, openai, google
AI_PROVIDER = os.getenv("AI_PROVIDER", "anthropic").strip().lower()
ANTHROPIC_API_KEY = os.getenv("ANTHROPIC_API_KEY", "")
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY", "")
GOOGLE_AI_API_KEY = os.getenv("GOOGLE_AI_API_KEY", "")

ANTHROPIC_MODEL = os.getenv("ANTHROPIC_MODEL", "claude-sonnet-4-20250514")
OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-4o")
GOOGLE_MODEL = os.getenv("GOOGLE_MODEL", "gemini-2.0-flash")

SUPPORTED_PROVIDERS = ("anthropic", "openai", "google")

# --- Email Config ---
EMAIL_HOST = os.getenv("EMAIL_HOST", "")
EMAIL_PORT = _env_int("EMAIL_PORT", 587)
EMAIL_USER = os.getenv("EMAIL_USER", "")
EMAIL_PASSWORD = os.getenv("EMAIL_PASSWORD", "")
EMAIL_TO = os.getenv("EMAIL_TO", "")
EMAIL_FROM = os.getenv("EMAIL_FROM", "")

# --- Pipeline Config ---
MIN_RELEVANCE_SCORE = _env_float("MIN_RELEVANCE_SCORE", 7.0)
DIGEST_LOOKBACK_DAYS = _env_int("DIGEST_LOOKBACK_DAYS", 7)
DIGEST_MAX_ARTICLES = _env_int("DIGEST_MAX_ARTICLES", 20)
ANALYZE_BATCH_SIZE = _env_int("ANALYZE_BATCH_SIZE", 50)
ANALYZE_DELAY_SECONDS = _env_float("ANALYZE_DELAY_SECONDS", 1.0)
TOPIC_SYNC_MIN_SCORE = _env_float("TOPIC_SYNC_MIN_SCORE", 5.0)
TOPIC_SYNC_BATCH_SIZE = _env_int("TOPIC_SYNC_BATCH_SIZE", 50)
TOPIC_MAPPING_BATCH_SIZE = _env_int("TOPIC_MAPPING_BATCH_SIZE", 200)

# --- Schedules (cron expressions) ---
SCRAPE_SCHEDULE = os.getenv("SCRAPE_SCHEDULE", "0 */2 * * *")
DIGEST_MORNING_SCHEDULE = os.getenv("DIGEST_MORNING_SCHEDULE", "0 9 * * *")
DIGEST_EVENING_SCHEDULE = os.getenv("DIGEST_EVENING_SCHEDULE", "0 18 * * *")
TOPIC_SYNC_SCHEDULE = os.getenv("TOPIC_SYNC_SCHEDULE", "0 */6 * * *")


# --- Source Definitions ---
@dataclass
class SourceDefinition:
    name: str
    source_type: str  # "api", "rss", "scraper"
    url: str | None = None


HACKERNEWS_SOURCE = "HackerNews"
RSS_SOURCE = "Tech Blogs (RSS)"
REDDIT_SOURCE = "Reddit"
DEVTO_MEDIUM_SOURCE = "Dev.to/Medium"

DEFAULT_SOURCES: list[SourceDefinition] = [
    SourceDefinition(HACKERNEWS_SOURCE, "api", "https://hacker-news.firebaseio.com/v0"),
    SourceDefinition(RSS_SOURCE, "rss"),
    SourceDefinition(REDDIT_SOURCE, "api", "https://reddit.com"),
    SourceDefinition(DEVTO_MEDIUM_SOURCE, "rss"),
]

TECH_BLOG_FEEDS = [
    "https://techcrunch.com/feed/",
    "https://www.theverge.com/rss/index.xml",
    "https://arstechnica.com/feed/",
    "https://venturebeat.com/feed/",
    "https://www.wired.com/feed/rss",
    "https://www.cnet.com/rss/news/",
    "https://www.engadget.com/rss.xml",
    "https://www.zdnet.com/news/rss.xml",
    "https://techradar.com/rss",
]

SUBREDDITS = [
    "technology",
    "programming",
    "MachineLearning",
    "artificial",
    "webdev",
    "javascript",
    "typescript",
    "reactjs",
    "devops",
    "cybersecurity",
    "learnprogramming",
]

MEDIUM_FEEDS = [
    "https://medium.com/feed/tag/technology",
    "https://medium.com/feed/tag/programming",
    "https://medium.com/feed/tag/artificial-intelligence",
    "https://medium.com/feed/tag/web-development",
    "https://medium.com/feed/tag/software-engineering",
    "https://medium.com/feed/@towardsdatascience",
    "https://medium.com/feed/hackernoon",
]


def get_provider_api_key(provider_type: str | None = None) -> str:
    """Return the API key configured for the given (or active) provider."""
    provider_type = (provider_type or AI_PROVIDER).lower()
    keys = {
        "anthropic": ANTHROPIC_API_KEY,
        "openai": OPENAI_API_KEY,
        "google": GOOGLE_AI_API_KEY,
    }
    return keys.get(provider_type, "")


def validate_config(stage: str) -> tuple[bool, list[str]]:
    """
    Check the settings a stage needs.
    Returns (valid, errors); errors is a list of human readable problems.
    """
    errors: list[str] = []

    if not BACKEND_API_URL:
        errors.append("BACKEND_API_URL is not set")
    if not BACKEND_API_KEY:
        errors.append("BACKEND_API_KEY is not set")

    if stage in ("analyze", "topic-sync", "schedule"):
        if AI_PROVIDER not in SUPPORTED_PROVIDERS:
            errors.append(
                f"AI_PROVIDER '{AI_PROVIDER}' is not one of {', '.join(SUPPORTED_PROVIDERS)}"
            )
        elif not get_provider_api_key(AI_PROVIDER):
            errors.append(f"No API key found for provider: {AI_PROVIDER}")

    if stage in ("digest", "schedule"):
        missing = [
            name
            for name, value in (
                ("EMAIL_HOST", EMAIL_HOST),
                ("EMAIL_USER", EMAIL_USER),
                ("EMAIL_PASSWORD", EMAIL_PASSWORD),
                ("EMAIL_TO", EMAIL_TO),
            )
            if not value
        ]
        if missing:
            errors.append(f"Email configuration incomplete: {', '.join(missing)}")

    return not errors, errors


def require_config(stage: str) -> None:
    """Raise ConfigError when the stage cannot start."""
    valid, errors = validate_config(stage)
    if not valid:
        raise ConfigError(f"[{stage}] " + "; ".join(errors))
