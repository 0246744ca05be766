from unittest.mock import MagicMock

from config import SourceDefinition
from src.models import Article, Source
from src.pipeline.scrape import dedupe_articles, initialize_sources, normalize_url, scrape_all


def _client(sources):
    client = MagicMock()
    client.get_sources.return_value = sources
    client.bulk_create_articles.side_effect = lambda articles: (len(articles), 0)
    return client


def test_normalize_url():
    assert normalize_url("HTTPS://Example.com:443/post/?b=2&a=1#frag") == "https://example.com/post?a=1&b=2"
    assert normalize_url("") == ""


def test_dedupe_keeps_first_occurrence():
    articles = [
        Article(title="first", url="https://example.com/a"),
        Article(title="second", url="https://example.com/a/"),
        Article(title="no url", url=""),
        Article(title="other", url="https://example.com/b"),
    ]
    assert [a.title for a in dedupe_articles(articles)] == ["first", "other"]


def test_initialize_sources_creates_only_missing():
    client = MagicMock()
    client.get_sources.side_effect = [
        [Source(id=1, name="HackerNews", type="api")],
        [Source(id=1, name="HackerNews", type="api"), Source(id=2, name="Reddit", type="api")],
    ]
    defaults = [
        SourceDefinition("HackerNews", "api"),
        SourceDefinition("Reddit", "api", "https://reddit.com"),
    ]

    sources = initialize_sources(client, defaults)

    client.upsert_source.assert_called_once_with("Reddit", "api", "https://reddit.com", enabled=True)
    assert [s.id for s in sources] == [1, 2]


def test_initialize_sources_skips_when_all_exist():
    client = _client([Source(id=1, name="HackerNews", type="api")])
    initialize_sources(client, [SourceDefinition("HackerNews", "api")])
    client.upsert_source.assert_not_called()


def test_scrape_all_dedupes_across_sources_and_isolates_failures():
    sources = [
        Source(id=1, name="HackerNews", type="api"),
        Source(id=2, name="Reddit", type="api"),
        Source(id=3, name="Tech Blogs (RSS)", type="rss"),
        Source(id=4, name="Mystery", type="api"),
    ]
    client = _client(sources)

    def reddit_down(source_id):
        raise RuntimeError("reddit down")

    aggregators = {
        "HackerNews": lambda source_id: [Article(title="x", url="https://same.example/post", source_id=source_id)],
        "Reddit": reddit_down,
        "Tech Blogs (RSS)": lambda source_id: [
            Article(title="x again", url="https://same.example/post", source_id=source_id),
            Article(title="y", url="https://other.example", source_id=source_id),
        ],
    }

    saved = scrape_all(client, aggregators=aggregators)

    submitted = client.bulk_create_articles.call_args.args[0]
    assert [a.url for a in submitted] == ["https://same.example/post", "https://other.example"]
    assert saved == 2
    scraped_ids = [c.args[0] for c in client.update_source_last_scraped.call_args_list]
    assert scraped_ids == [1, 3]


def test_scrape_all_with_nothing_collected_skips_bulk_create():
    client = _client([Source(id=1, name="HackerNews", type="api")])
    assert scrape_all(client, aggregators={"HackerNews": lambda source_id: []}) == 0
    client.bulk_create_articles.assert_not_called()
