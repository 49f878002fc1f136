"""
Tests for page extraction and blog discovery
"""
import pytest
import requests
from datetime import datetime
from unittest.mock import MagicMock
from bs4 import BeautifulSoup
from src.optimizer.config import OptimizerConfig
from src.optimizer.content_extractor import (
    ContentExtractor,
    REFERENCE_CONTENT_SELECTORS,
    REFERENCE_MIN_LENGTH,
    extract_main_text,
    parse_date,
)
from src.optimizer.exceptions import ErrorKind, ScrapeError

LONG_PARAGRAPH = "Freshly ground beans make a noticeable difference in every cup you brew at home. "
BLOG_URL = "https://blog.test/blogs"


def make_response(status_code=200, text=""):
    response = MagicMock()
    response.status_code = status_code
    response.text = text
    return response


def session_for(pages):
    """Session whose get() serves pages by URL; exceptions are raised"""
    session = MagicMock()

    def get(url, params=None, timeout=None):
        page = pages.get(url)
        if page is None:
            return make_response(404)
        if isinstance(page, Exception):
            raise page
        return make_response(200, page)

    session.get.side_effect = get
    return session


def article_page(title, body, extra_head=""):
    return f"""
    <html><head><title>{title} | Blog</title>{extra_head}</head>
    <body>
      <header><nav>Home Blog Contact</nav></header>
      <h1>{title}</h1>
      <article><div class="content">{body}</div></article>
      <footer>Copyright</footer>
    </body></html>
    """


@pytest.fixture
def config():
    return OptimizerConfig(blog_url=BLOG_URL)


def test_extract_uses_first_long_container(config):
    body = "<p>" + LONG_PARAGRAPH * 4 + "</p>"
    html = f"""
    <html><body>
      <nav>{"Menu item " * 40}</nav>
      <script>var tracking = "{'x' * 300}";</script>
      <article>{body}<p>Second   paragraph\twith  tabs.</p></article>
    </body></html>
    """
    extractor = ContentExtractor(config, session=session_for({"https://ref.test/a": html}))

    text = extractor.extract("https://ref.test/a")

    assert text.startswith("Freshly ground beans")
    assert "Second paragraph with tabs." in text
    assert "tracking" not in text
    assert "Menu item" not in text
    assert "  " not in text


def test_extract_falls_back_to_paragraphs_when_container_is_short(config):
    html = f"""
    <html><body>
      <article>Too short.</article>
      <div><p>{LONG_PARAGRAPH}</p><p>tiny</p><p>{LONG_PARAGRAPH.upper()}</p></div>
    </body></html>
    """
    extractor = ContentExtractor(config, session=session_for({"https://ref.test/b": html}))

    text = extractor.extract("https://ref.test/b")

    assert text == f"{LONG_PARAGRAPH.strip()}\n\n{LONG_PARAGRAPH.upper().strip()}"


def test_extract_returns_empty_without_long_paragraphs(config):
    html = "<html><body><main>Short.</main><p>Only short text here.</p></body></html>"
    extractor = ContentExtractor(config, session=session_for({"https://ref.test/c": html}))

    assert extractor.extract("https://ref.test/c") == ""


def test_extract_collapses_blank_lines():
    html = "<article>" + LONG_PARAGRAPH * 3 + "\n\n\n   \n\n" + LONG_PARAGRAPH * 2 + "</article>"
    text = extract_main_text(BeautifulSoup(html, "html.parser"), REFERENCE_CONTENT_SELECTORS, REFERENCE_MIN_LENGTH)
    assert "\n\n\n" not in text
    assert text.count("\n\n") == 1


def test_extract_propagates_fetch_errors(config):
    extractor = ContentExtractor(config, session=session_for({"https://ref.test/d": requests.Timeout("slow")}))

    with pytest.raises(ScrapeError) as exc:
        extractor.extract("https://ref.test/d")
    assert exc.value.kind is ErrorKind.TRANSIENT

    with pytest.raises(ScrapeError) as exc:
        extractor.extract("https://ref.test/missing")
    assert exc.value.status_code == 404


def test_extract_uses_scrape_timeout():
    session = session_for({"https://ref.test/e": "<p>x</p>"})
    ContentExtractor(OptimizerConfig(scrape_timeout=10.0), session=session).extract("https://ref.test/e")
    assert session.get.call_args.kwargs["timeout"] == 10.0


def test_discover_takes_tail_of_listing_and_skips_incomplete(config):
    listing = """
    <html><body>
      <article><a href="/blogs/first">First</a></article>
      <div class="blog-post"><a href="/blogs/second">Second</a></div>
      <div class="post-item"><a href="https://blog.test/blogs/third">Third</a></div>
      <article><a href="/blogs/fourth">Fourth</a></article>
    </body></html>
    """
    meta = ('<meta name="description" content="Why chatbots matter">'
            '<meta name="author" content="Jane Writer">'
            '<meta property="article:published_time" content="2024-03-05T10:00:00Z">')
    pages = {
        BLOG_URL: listing,
        "https://blog.test/blogs/first": article_page("First", LONG_PARAGRAPH * 3),
        "https://blog.test/blogs/second": article_page("Second Post", LONG_PARAGRAPH * 3, meta),
        "https://blog.test/blogs/third": "<html><body><h1>Third</h1><p>short</p></body></html>",
        "https://blog.test/blogs/fourth": requests.ConnectionError("reset"),
    }
    session = session_for(pages)
    extractor = ContentExtractor(config, session=session)

    articles = extractor.discover(limit=3)

    fetched = [c.args[0] for c in session.get.call_args_list]
    assert "https://blog.test/blogs/first" not in fetched
    assert [a.url for a in articles] == ["https://blog.test/blogs/second"]

    article = articles[0]
    assert article.title == "Second Post"
    assert article.content.startswith("Freshly ground beans")
    assert "Home Blog Contact" not in article.content
    assert article.excerpt == "Why chatbots matter"
    assert article.author == "Jane Writer"
    assert article.published_date.year == 2024


def test_discover_excerpt_defaults_to_content_prefix(config):
    pages = {
        BLOG_URL: '<article><a href="/blogs/one">One</a></article>',
        "https://blog.test/blogs/one": article_page("One", LONG_PARAGRAPH * 5),
    }
    articles = ContentExtractor(config, session=session_for(pages)).discover(limit=5)

    assert len(articles) == 1
    assert articles[0].excerpt == articles[0].content[:200] + "..."
    assert articles[0].author is None
    assert articles[0].published_date is None


def test_discover_raises_when_listing_unavailable(config):
    extractor = ContentExtractor(config, session=session_for({}))
    with pytest.raises(ScrapeError):
        extractor.discover(limit=5)


def test_parse_date():
    assert parse_date("2024-03-05") == datetime(2024, 3, 5)
    assert parse_date("March 5, 2024") == datetime(2024, 3, 5)
    assert parse_date("2024-03-05T10:00:00Z").tzinfo is not None
    assert parse_date("last week") is None
    assert parse_date(None) is None
