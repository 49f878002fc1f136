# src/optimizer/search_provider.py
"""
Web search for reference articles.

The primary backend scrapes a Google result page; when it raises and a
Tavily API key is configured, the Tavily search API is used instead.
"""
from typing import List, Optional, Iterable
from urllib.parse import urlparse
import logging

import requests
from bs4 import BeautifulSoup
from tavily import TavilyClient, InvalidAPIKeyError, UsageLimitExceededError

from .config import OptimizerConfig
from .exceptions import (
    OptimizerError,
    SearchServiceError,
    TransientNetworkError,
)
from .http_client import create_session, fetch_html
from .models import SearchResult
from .utils import retry, sanitize_text

logger = logging.getLogger(__name__)

GOOGLE_SEARCH_URL = "https://www.google.com/search"
MAX_LIMIT = 20
MAX_RETRIES = 2

EXCLUDED_DOMAINS = [
    "youtube.com",
    "facebook.com",
    "twitter.com",
    "x.com",
    "instagram.com",
    "tiktok.com",
    "pinterest.com",
]

# Result containers, tried in priority order
RESULT_SELECTORS = [".g", ".tF2Cxc", "div[data-sokoban-container]"]
TITLE_SELECTOR = "h3, .LC20lb, .DKV0Md"
SNIPPET_SELECTOR = ".VwiC3b, .s, .st, .lEBKkf"


def validate_query(query: str, limit: int) -> str:
    """Return the stripped query or raise a 400 SearchServiceError"""
    if not query or not query.strip():
        raise SearchServiceError("Search query cannot be empty", 400)
    if isinstance(limit, bool) or not isinstance(limit, int) or limit < 1 or limit > MAX_LIMIT:
        raise SearchServiceError(f"Limit must be between 1 and {MAX_LIMIT}", 400)
    return query.strip()


class ResultFilter:
    """Drops excluded hosts and duplicate URLs"""

    def __init__(self, excluded_domains: Iterable[str]):
        self.excluded_domains = [d.lower().lstrip('.') for d in excluded_domains if d]

    def is_excluded(self, url: str) -> bool:
        host = (urlparse(url).hostname or "").lower()
        return any(host == domain or host.endswith("." + domain)
                   for domain in self.excluded_domains)

    def is_valid_url(self, url: Optional[str]) -> bool:
        if not url or not url.startswith("http"):
            return False
        try:
            if not urlparse(url).hostname:
                return False
        except ValueError:
            return False
        return not self.is_excluded(url)

    def apply(self, results: Iterable[SearchResult], limit: int) -> List[SearchResult]:
        """Keep valid, distinct results in order, at most limit"""
        kept: List[SearchResult] = []
        seen = set()
        for result in results:
            if len(kept) >= limit:
                break
            if not self.is_valid_url(result.url) or result.url in seen:
                continue
            seen.add(result.url)
            kept.append(result)
        return kept


class GoogleSearchBackend:
    """Scrapes the Google result page"""
    name = "google"

    def __init__(self,
                 result_filter: ResultFilter,
                 timeout: float = 15.0,
                 session: Optional[requests.Session] = None):
        self.result_filter = result_filter
        self.timeout = timeout
        self.session = session or create_session()

    def search(self, query: str, limit: int) -> List[SearchResult]:
        params = {"q": query, "num": str(limit * 3)}
        try:
            html = self._fetch(params)
        except OptimizerError as e:
            raise SearchServiceError(
                f"Google search failed: {e.message}",
                self._status_for(e),
                cause=e,
            )

        results = self.parse_results(html, limit)
        if not results:
            logger.warning(f'No results found for query: "{query}"')
        return results

    @retry(max_attempts=MAX_RETRIES + 1, delay=1.0, retry_on=(TransientNetworkError,))
    def _fetch(self, params) -> str:
        return fetch_html(self.session, GOOGLE_SEARCH_URL, self.timeout,
                          params=params, require_ok=True)

    @staticmethod
    def _status_for(error: OptimizerError) -> int:
        if error.status_code in (401, 403):
            return 401
        if error.status_code == 429:
            return 429
        return 500

    def parse_results(self, html: str, limit: int) -> List[SearchResult]:
        """
        Parse Google result HTML

        Selectors are tried in order until limit distinct results are found.
        """
        soup = BeautifulSoup(html, "html.parser")
        results: List[SearchResult] = []
        seen = set()

        for selector in RESULT_SELECTORS:
            if len(results) >= limit:
                break

            for element in soup.select(selector):
                if len(results) >= limit:
                    break

                link = element.select_one("a[href]")
                url = link.get("href") if link else None
                if not self.result_filter.is_valid_url(url) or url in seen:
                    continue

                title_el = element.select_one(TITLE_SELECTOR)
                title = sanitize_text(title_el.get_text()) if title_el else ""
                if not title:
                    continue

                snippet_el = element.select_one(SNIPPET_SELECTOR)
                snippet = sanitize_text(snippet_el.get_text()) if snippet_el else ""

                seen.add(url)
                results.append(SearchResult(title=title, url=url, snippet=snippet))

        return results[:limit]


class TavilySearchBackend:
    """Keyed search API used as a fallback"""
    name = "tavily"

    def __init__(self, api_key: str, result_filter: ResultFilter, client: Optional[TavilyClient] = None):
        self.result_filter = result_filter
        self.client = client or TavilyClient(api_key=api_key)

    def search(self, query: str, limit: int) -> List[SearchResult]:
        try:
            response = self.client.search(query=query, max_results=limit)
        except InvalidAPIKeyError as e:
            raise SearchServiceError("Invalid Tavily API key", 401, cause=e)
        except UsageLimitExceededError as e:
            raise SearchServiceError("Tavily rate limit exceeded", 429, cause=e)
        except Exception as e:
            raise SearchServiceError(f"Tavily search failed: {str(e)}", 500, cause=e)

        return self._process_search_response(response or {}, limit)

    def _process_search_response(self, response: dict, limit: int) -> List[SearchResult]:
        """Normalize Tavily results to SearchResult"""
        results = []
        for item in response.get('results') or []:
            url = item.get('url')
            title = sanitize_text(item.get('title') or "")
            if not url or not title:
                continue
            results.append(SearchResult(
                title=title,
                url=url,
                snippet=sanitize_text(item.get('content') or ""),
            ))
        return self.result_filter.apply(results, limit)


class SearchProvider:
    """Search with fallback: Google first, then Tavily if configured"""

    def __init__(self,
                 config: OptimizerConfig,
                 primary: Optional[GoogleSearchBackend] = None,
                 fallback: Optional[TavilySearchBackend] = None):
        self.config = config
        self.result_filter = ResultFilter(EXCLUDED_DOMAINS + [config.site_domain])
        self.primary = primary or GoogleSearchBackend(self.result_filter, timeout=config.search_timeout)
        if fallback is None and config.has_search_fallback:
            fallback = TavilySearchBackend(config.tavily_api_key, self.result_filter)
        self.fallback = fallback

    def search(self, query: str, limit: int = 2) -> List[SearchResult]:
        """
        Search for reference articles

        Args:
            query: Search query
            limit: Number of results to return (1-20)

        Returns:
            At most limit results with unique, non-excluded URLs

        Raises:
            SearchServiceError: Carrying a 400/401/429/500 status
        """
        query = validate_query(query, limit)

        try:
            return self.primary.search(query, limit)
        except SearchServiceError as e:
            logger.error(f'Error searching Google for "{query}": {e.message}')
            if self.fallback is None:
                raise
            logger.warning("Google search failed, trying Tavily fallback...")

        try:
            results = self.fallback.search(query, limit)
        except SearchServiceError as e:
            logger.error(f'Tavily error for "{query}": {e.message}')
            raise

        logger.info(f"Tavily fallback returned {len(results)} results")
        return results
