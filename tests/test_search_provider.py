"""
Tests for the search provider: validation, result parsing, retries and fallback
"""
import pytest
import requests
from unittest.mock import MagicMock, patch
from src.optimizer.config import OptimizerConfig
from src.optimizer.exceptions import ErrorKind, SearchServiceError
from src.optimizer.models import SearchResult
from src.optimizer.search_provider import (
    EXCLUDED_DOMAINS,
    GoogleSearchBackend,
    ResultFilter,
    SearchProvider,
    TavilySearchBackend,
)

RESULT_PAGE = """
<html><body>
  <div class="g">
    <a href="https://www.youtube.com/watch?v=coffee"><h3>Coffee video</h3></a>
  </div>
  <div class="g">
    <a href="https://blog.example.com/brew-coffee"><h3>How to   Brew
      Coffee</h3></a>
    <div class="VwiC3b">A complete\tguide to brewing.</div>
  </div>
  <div class="g">
    <a href="/url?q=relative"><h3>Relative link</h3></a>
  </div>
  <div class="g">
    <a href="https://blog.example.com/brew-coffee"><h3>Duplicate</h3></a>
  </div>
  <div class="g">
    <a href="https://news.beyondchats.com/coffee"><h3>Own site</h3></a>
  </div>
  <div class="g">
    <a href="https://coffee.org/no-title"></a>
  </div>
  <div class="tF2Cxc">
    <a href="https://coffee.org/french-press"><div class="LC20lb">French Press Basics</div></a>
    <span class="lEBKkf">Steep for four minutes.</span>
  </div>
  <div data-sokoban-container="1">
    <a href="https://third.example.net/pour-over"><h3>Pour Over</h3></a>
  </div>
</body></html>
"""


def make_response(status_code=200, text=""):
    response = MagicMock()
    response.status_code = status_code
    response.text = text
    return response


@pytest.fixture
def result_filter():
    return ResultFilter(EXCLUDED_DOMAINS + ["beyondchats.com"])


@pytest.fixture
def session():
    return MagicMock()


@pytest.fixture
def no_sleep():
    with patch('src.optimizer.utils.time.sleep') as sleep:
        yield sleep


def test_empty_query_rejected_before_network(session):
    """Whitespace-only queries fail validation without any request"""
    provider = SearchProvider(OptimizerConfig(), primary=GoogleSearchBackend(ResultFilter([]), session=session))

    for query in ["", "   ", "\n\t"]:
        with pytest.raises(SearchServiceError) as exc:
            provider.search(query, 2)
        assert exc.value.status_code == 400
        assert exc.value.kind is ErrorKind.VALIDATION

    session.get.assert_not_called()


@pytest.mark.parametrize("limit", [0, 21, -1, True, False, "2", 2.0])
def test_invalid_limit_rejected(session, limit):
    provider = SearchProvider(OptimizerConfig(), primary=GoogleSearchBackend(ResultFilter([]), session=session))
    with pytest.raises(SearchServiceError) as exc:
        provider.search("coffee", limit)
    assert exc.value.status_code == 400
    session.get.assert_not_called()


def test_parse_results_filters_and_deduplicates(result_filter):
    backend = GoogleSearchBackend(result_filter, session=MagicMock())
    results = backend.parse_results(RESULT_PAGE, 10)

    urls = [r.url for r in results]
    assert urls == [
        "https://blog.example.com/brew-coffee",
        "https://coffee.org/french-press",
        "https://third.example.net/pour-over",
    ]
    assert results[0].title == "How to Brew Coffee"
    assert results[0].snippet == "A complete guide to brewing."
    assert results[1].title == "French Press Basics"
    assert results[1].snippet == "Steep for four minutes."


def test_parse_results_stops_at_limit(result_filter):
    backend = GoogleSearchBackend(result_filter, session=MagicMock())
    results = backend.parse_results(RESULT_PAGE, 2)

    assert len(results) == 2
    assert len({r.url for r in results}) == 2
    assert not any(result_filter.is_excluded(r.url) for r in results)


def test_long_text_is_truncated(result_filter):
    html = f'<div class="g"><a href="https://a.com/x"><h3>{"t" * 800}</h3></a></div>'
    backend = GoogleSearchBackend(result_filter, session=MagicMock())
    results = backend.parse_results(html, 1)
    assert len(results[0].title) == 500


def test_exclusion_matches_host_not_substring(result_filter):
    assert result_filter.is_excluded("https://m.youtube.com/watch")
    assert result_filter.is_excluded("https://x.com/post")
    assert not result_filter.is_excluded("https://dropbox.com/x")
    assert not result_filter.is_valid_url("ftp://example.com")


def test_search_sends_query_and_result_count(session, result_filter):
    session.get.return_value = make_response(200, RESULT_PAGE)
    backend = GoogleSearchBackend(result_filter, session=session)

    backend.search("How to Brew Coffee", 2)

    _, kwargs = session.get.call_args
    assert kwargs["params"] == {"q": "How to Brew Coffee", "num": "6"}
    assert kwargs["timeout"] == 15.0


def test_transient_errors_are_retried(session, result_filter, no_sleep):
    session.get.side_effect = [
        requests.ConnectionError("reset"),
        make_response(503),
        make_response(200, RESULT_PAGE),
    ]
    backend = GoogleSearchBackend(result_filter, session=session)

    results = backend.search("coffee", 2)

    assert len(results) == 2
    assert session.get.call_count == 3
    assert [c.args[0] for c in no_sleep.call_args_list] == [1.0, 2.0]


def test_retries_exhausted_surface_as_500(session, result_filter, no_sleep):
    session.get.side_effect = requests.Timeout("slow")
    backend = GoogleSearchBackend(result_filter, session=session)

    with pytest.raises(SearchServiceError) as exc:
        backend.search("coffee", 2)

    assert session.get.call_count == 3
    assert exc.value.status_code == 500
    assert exc.value.cause is not None


@pytest.mark.parametrize("status,expected", [(404, 500), (429, 429), (403, 401)])
def test_client_errors_fail_immediately(session, result_filter, no_sleep, status, expected):
    session.get.return_value = make_response(status)
    backend = GoogleSearchBackend(result_filter, session=session)

    with pytest.raises(SearchServiceError) as exc:
        backend.search("coffee", 2)

    assert session.get.call_count == 1
    assert exc.value.status_code == expected
    no_sleep.assert_not_called()


def test_fallback_used_when_primary_raises():
    primary = MagicMock()
    primary.search.side_effect = SearchServiceError("blocked", 429)
    fallback = MagicMock()
    fallback.search.return_value = [SearchResult(title="T", url="https://a.com")]

    provider = SearchProvider(OptimizerConfig(), primary=primary, fallback=fallback)
    results = provider.search("  coffee  ", 2)

    assert results == [SearchResult(title="T", url="https://a.com")]
    fallback.search.assert_called_once_with("coffee", 2)


def test_empty_primary_result_does_not_trigger_fallback():
    primary = MagicMock()
    primary.search.return_value = []
    fallback = MagicMock()

    provider = SearchProvider(OptimizerConfig(), primary=primary, fallback=fallback)

    assert provider.search("coffee", 2) == []
    fallback.search.assert_not_called()


def test_primary_error_propagates_without_fallback():
    primary = MagicMock()
    primary.search.side_effect = SearchServiceError("down", 500)

    provider = SearchProvider(OptimizerConfig(), primary=primary)

    assert provider.fallback is None
    with pytest.raises(SearchServiceError) as exc:
        provider.search("coffee", 2)
    assert exc.value.status_code == 500


def test_fallback_created_when_key_configured():
    with patch('src.optimizer.search_provider.TavilyClient') as client_cls:
        provider = SearchProvider(OptimizerConfig(tavily_api_key="tvly-key"), primary=MagicMock())
    assert isinstance(provider.fallback, TavilySearchBackend)
    client_cls.assert_called_once_with(api_key="tvly-key")


def test_tavily_results_are_normalized(result_filter):
    client = MagicMock()
    client.search.return_value = {
        "results": [
            {"title": "Brewing  Guide", "url": "https://coffee.org/guide", "content": "Grind\nfresh", "score": 0.9},
            {"title": "Video", "url": "https://youtube.com/watch?v=1", "content": "", "score": 0.8},
            {"title": "Guide copy", "url": "https://coffee.org/guide", "content": "", "score": 0.7},
            {"title": "Second", "url": "https://beans.com/roast", "content": "Roast", "score": 0.6},
            {"title": "Third", "url": "https://third.com/x", "content": "", "score": 0.5},
        ]
    }
    backend = TavilySearchBackend("key", result_filter, client=client)

    results = backend.search("coffee", 2)

    client.search.assert_called_once_with(query="coffee", max_results=2)
    assert results == [
        SearchResult(title="Brewing Guide", url="https://coffee.org/guide", snippet="Grind fresh"),
        SearchResult(title="Second", url="https://beans.com/roast", snippet="Roast"),
    ]


def test_tavily_errors_are_classified(result_filter):
    class FakeInvalidKey(Exception):
        pass

    class FakeUsageLimit(Exception):
        pass

    client = MagicMock()
    backend = TavilySearchBackend("key", result_filter, client=client)

    with patch('src.optimizer.search_provider.InvalidAPIKeyError', FakeInvalidKey), \
         patch('src.optimizer.search_provider.UsageLimitExceededError', FakeUsageLimit):
        client.search.side_effect = FakeInvalidKey()
        with pytest.raises(SearchServiceError) as exc:
            backend.search("coffee", 2)
        assert exc.value.status_code == 401

        client.search.side_effect = FakeUsageLimit()
        with pytest.raises(SearchServiceError) as exc:
            backend.search("coffee", 2)
        assert exc.value.status_code == 429
        assert exc.value.is_rate_limited

        client.search.side_effect = RuntimeError("boom")
        with pytest.raises(SearchServiceError) as exc:
            backend.search("coffee", 2)
        assert exc.value.status_code == 500
