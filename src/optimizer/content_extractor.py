# src/optimizer/content_extractor.py
"""
HTML fetching and main-content extraction.

Used for two jobs: pulling the body text of external reference pages, and
discovering original articles from the blog listing page.
"""
from typing import List, Optional
from datetime import datetime
from urllib.parse import urljoin
import logging

import requests
from bs4 import BeautifulSoup

from .config import OptimizerConfig
from .exceptions import ExtractionIncomplete, OptimizerError, ScrapeError
from .http_client import create_session, fetch_html
from .models import SourceArticle
from .utils import normalize_whitespace

logger = logging.getLogger(__name__)

NON_CONTENT_SELECTORS = "script, style, noscript, iframe, nav, header, footer, aside, .advertisement, .ads"

REFERENCE_CONTENT_SELECTORS = [
    "article",
    ".post-content",
    ".entry-content",
    ".article-content",
    "main",
    '[role="main"]',
]
REFERENCE_MIN_LENGTH = 200

DISCOVERY_CONTENT_SELECTORS = [
    "article .content",
    "article .post-content",
    ".article-content",
    "article p",
    ".entry-content",
]
DISCOVERY_MIN_LENGTH = 100

LISTING_ENTRY_SELECTOR = "article, .blog-post, .post-item"
PARAGRAPH_MIN_LENGTH = 50
EXCERPT_LENGTH = 200

DATE_FORMATS = ['%Y-%m-%d', '%B %d, %Y', '%b %d, %Y', '%d %B %Y', '%a, %d %b %Y %H:%M:%S GMT']


def strip_non_content(soup: BeautifulSoup) -> None:
    """Remove scripts, styles, navigation and ads in place"""
    for tag in soup.select(NON_CONTENT_SELECTORS):
        tag.decompose()


def extract_main_text(soup: BeautifulSoup, selectors: List[str], min_length: int) -> str:
    """
    Pick the first container whose text is longer than min_length

    Falls back to all paragraphs longer than 50 characters joined by blank
    lines; returns an empty string if there are none.
    """
    for selector in selectors:
        elements = soup.select(selector)
        if not elements:
            continue
        text = "\n\n".join(el.get_text() for el in elements).strip()
        if len(text) > min_length:
            return normalize_whitespace(text)

    paragraphs = [p.get_text().strip() for p in soup.find_all("p")]
    return normalize_whitespace("\n\n".join(p for p in paragraphs if len(p) > PARAGRAPH_MIN_LENGTH))


def parse_date(value: Optional[str]) -> Optional[datetime]:
    """Parse a published date, returning None when the format is unknown"""
    if not value:
        return None
    value = value.strip()
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        pass
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(value, fmt)
        except ValueError:
            continue
    logger.debug(f"Unrecognised date format: {value}")
    return None


def _first_text(soup: BeautifulSoup, *selectors: str) -> str:
    for selector in selectors:
        el = soup.select_one(selector)
        if el:
            text = el.get_text().strip()
            if text:
                return text
    return ""


def _meta(soup: BeautifulSoup, **attrs) -> Optional[str]:
    el = soup.find("meta", attrs=attrs)
    content = el.get("content") if el else None
    return content.strip() if content and content.strip() else None


class ContentExtractor:
    """Scrapes article pages"""

    def __init__(self, config: OptimizerConfig, session: Optional[requests.Session] = None):
        self.config = config
        self.timeout = config.scrape_timeout
        self.session = session or create_session()

    def _get(self, url: str) -> str:
        try:
            return fetch_html(self.session, url, self.timeout)
        except OptimizerError as e:
            raise ScrapeError(f"Failed to fetch {url}: {e.message}",
                              cause=e, kind=e.kind, status_code=e.status_code)

    def extract(self, url: str) -> str:
        """
        Scrape the main text of an external article

        Args:
            url: Article URL

        Returns:
            Normalized plain text, possibly empty

        Raises:
            ScrapeError: If the page cannot be fetched
        """
        try:
            html = self._get(url)
        except ScrapeError as e:
            logger.error(f"Error scraping external article {url}: {e.message}")
            raise

        soup = BeautifulSoup(html, "html.parser")
        strip_non_content(soup)
        return extract_main_text(soup, REFERENCE_CONTENT_SELECTORS, REFERENCE_MIN_LENGTH)

    def discover(self, limit: int = 5) -> List[SourceArticle]:
        """
        Scrape the last `limit` articles listed on the blog page

        Article pages that fail or are incomplete are skipped.

        Raises:
            ScrapeError: If the listing page itself cannot be fetched
        """
        listing_url = self.config.blog_url
        html = self._get(listing_url)
        soup = BeautifulSoup(html, "html.parser")

        entries = soup.select(LISTING_ENTRY_SELECTOR)
        # Listing is oldest-first in DOM order; keep the tail
        entries = entries[-limit:] if limit > 0 else []

        articles = []
        for entry in entries:
            link = entry.select_one("a[href]")
            if not link or not link.get("href"):
                continue
            article_url = urljoin(listing_url, link["href"])

            try:
                articles.append(self.scrape_article_page(article_url))
            except ExtractionIncomplete as e:
                logger.warning(f"Incomplete data for {article_url}: {e.message}")
            except ScrapeError as e:
                logger.error(f"Error scraping article {article_url}: {e.message}")

        logger.info(f"Discovered {len(articles)} articles from {listing_url}")
        return articles

    def scrape_article_page(self, url: str) -> SourceArticle:
        """
        Scrape one original article page

        Raises:
            ScrapeError: If the page cannot be fetched
            ExtractionIncomplete: If the page has no title or no content
        """
        soup = BeautifulSoup(self._get(url), "html.parser")

        title_el = soup.find("title")
        title = _first_text(soup, "h1", "article h1") or (title_el.get_text().strip() if title_el else "")
        author = (_first_text(soup, ".author-name", '[rel="author"]')
                  or _meta(soup, name="author"))
        time_el = soup.find("time", attrs={"datetime": True})
        date_string = ((time_el.get("datetime") if time_el else None)
                       or _first_text(soup, ".publish-date")
                       or _meta(soup, property="article:published_time"))
        description = _meta(soup, name="description") or _meta(soup, property="og:description")

        strip_non_content(soup)
        content = extract_main_text(soup, DISCOVERY_CONTENT_SELECTORS, DISCOVERY_MIN_LENGTH)

        if not title or not content:
            raise ExtractionIncomplete(f"Missing {'title' if not title else 'content'}")

        return SourceArticle(
            title=title,
            content=content,
            url=url,
            excerpt=description or content[:EXCERPT_LENGTH] + "...",
            author=author or None,
            published_date=parse_date(date_string),
        )
