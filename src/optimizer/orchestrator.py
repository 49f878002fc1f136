# src/optimizer/orchestrator.py
"""
Batch optimization of stored articles.

For each source article: search for reference material, scrape it, rewrite
the article with the LLM (escalating through fallback models on rate
limits), append a references section and publish the result. Articles are
processed one at a time; a failure only affects its own article.
"""
from typing import Callable, Dict, List, Optional, Sequence
from dataclasses import dataclass, field
from enum import Enum
import logging
import time

from .config import OptimizerConfig
from .content_extractor import ContentExtractor
from .database.db import ArticleDatabase
from .escalation import escalate
from .exceptions import ConfigurationError, DuplicateArticleError, OptimizerError
from .models import OptimizedArticle, ReferenceDocument, SearchResult, SourceArticle
from .publisher import build_publisher
from .search_provider import SearchProvider
from .synthesizer import ContentSynthesizer

logger = logging.getLogger(__name__)


class ArticleState(Enum):
    """Per-article pipeline state"""
    PENDING = "pending"
    SEARCHING = "searching"
    SCRAPING = "scraping"
    SYNTHESIZING = "synthesizing"
    PUBLISHING = "publishing"
    DONE = "done"
    SKIPPED = "skipped"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (ArticleState.DONE, ArticleState.SKIPPED, ArticleState.FAILED)


@dataclass
class ArticleOutcome:
    """What happened to one source article"""
    article_id: Optional[str]
    title: str
    state: ArticleState = ArticleState.PENDING
    reason: Optional[str] = None
    published_id: Optional[str] = None
    strategy: Optional[str] = None
    rate_limited: bool = False
    reference_count: int = 0

    def advance(self, state: ArticleState):
        logger.debug(f'"{self.title}": {self.state.value} -> {state.value}')
        self.state = state

    def finish(self, state: ArticleState, reason: Optional[str] = None) -> "ArticleOutcome":
        self.advance(state)
        self.reason = reason
        return self


@dataclass
class BatchReport:
    """Outcomes of one optimization run"""
    outcomes: List[ArticleOutcome] = field(default_factory=list)
    cooldowns: int = 0

    def count(self, state: ArticleState) -> int:
        return sum(1 for outcome in self.outcomes if outcome.state is state)

    @property
    def counts(self) -> Dict[str, int]:
        return {state.value: self.count(state)
                for state in (ArticleState.DONE, ArticleState.SKIPPED, ArticleState.FAILED)}

    def summary(self) -> str:
        counts = self.counts
        return (f"{len(self.outcomes)} articles: {counts['done']} done, "
                f"{counts['skipped']} skipped, {counts['failed']} failed")


@dataclass
class IngestReport:
    """Result of discovering and storing original articles"""
    saved: List[str] = field(default_factory=list)
    errors: List[Dict[str, str]] = field(default_factory=list)


def format_references(references: Sequence[ReferenceDocument]) -> str:
    """Numbered markdown links, one per reference, in the given order"""
    section = "## References\n\n"
    section += "This article was optimized based on insights from:\n\n"
    for index, ref in enumerate(references, start=1):
        title = ref.title.replace("[", "\\[").replace("]", "\\]")
        section += f"{index}. [{title}]({ref.url})\n"
    return section


class ArticleOptimizer:
    """Drives search -> scrape -> synthesize -> publish for a batch of articles"""

    def __init__(self,
                 config: OptimizerConfig,
                 database: ArticleDatabase,
                 search_provider: Optional[SearchProvider] = None,
                 extractor: Optional[ContentExtractor] = None,
                 synthesizer: Optional[ContentSynthesizer] = None,
                 publisher=None,
                 sleep: Callable[[float], None] = time.sleep):
        self.config = config
        self.database = database
        self.search_provider = search_provider or SearchProvider(config)
        self.extractor = extractor or ContentExtractor(config)
        self.synthesizer = synthesizer or ContentSynthesizer(config)
        self.publisher = publisher or build_publisher(config, database)
        self.sleep = sleep

    def _pause(self, seconds: float, reason: str):
        if seconds > 0:
            logger.info(f"Waiting {seconds:g}s {reason}...")
            self.sleep(seconds)

    def run(self,
            limit: Optional[int] = None,
            exclude_optimized: bool = False,
            check_connection: bool = True) -> BatchReport:
        """
        Optimize a batch of source articles

        Args:
            limit: Batch size; defaults to config.batch_size
            exclude_optimized: Skip articles that already have a derivative
            check_connection: Verify the inference API before starting

        Returns:
            BatchReport with one outcome per article

        Raises:
            ConfigurationError: If the inference API is unreachable at startup
        """
        logger.info("Starting article optimization process...")

        if check_connection:
            logger.info("Testing inference API connection...")
            if not self.synthesizer.test_connection():
                raise ConfigurationError("Inference API connection check failed")

        articles = self.database.find_source_articles(
            limit=limit or self.config.batch_size,
            exclude_optimized=exclude_optimized,
        )
        report = BatchReport()
        if not articles:
            logger.warning("No articles found. Run discovery first.")
            return report

        logger.info(f"Found {len(articles)} articles to optimize")

        for i, article in enumerate(articles):
            logger.info(f"[{i + 1}/{len(articles)}] Processing: \"{article.title}\"")
            try:
                outcome = self.optimize_article(article)
            except Exception as e:
                logger.exception(f'Unexpected error optimizing "{article.title}"')
                outcome = ArticleOutcome(article.id, article.title).finish(ArticleState.FAILED, str(e))

            self._log_outcome(outcome)
            report.outcomes.append(outcome)

            if i < len(articles) - 1:
                if outcome.rate_limited:
                    report.cooldowns += 1
                    self._pause(self.config.rate_limit_cooldown, "after rate limit")
                self._pause(self.config.article_delay, "before next article")

        logger.info(f"Article optimization completed: {report.summary()}")
        return report

    def optimize_article(self, article: SourceArticle) -> ArticleOutcome:
        """
        Run one article through the pipeline

        Pipeline errors end in FAILED with the cause as reason; missing
        search results or references end in SKIPPED.
        """
        outcome = ArticleOutcome(article.id, article.title)
        try:
            outcome.advance(ArticleState.SEARCHING)
            results = self.search_provider.search(article.title, self.config.results_per_article)
            if not results:
                return outcome.finish(ArticleState.SKIPPED, "No search results found")
            logger.info(f"Found {len(results)} reference articles")

            outcome.advance(ArticleState.SCRAPING)
            references = self._collect_references(results)
            outcome.reference_count = len(references)
            if not references:
                return outcome.finish(ArticleState.SKIPPED, "Could not scrape any reference articles")

            outcome.advance(ArticleState.SYNTHESIZING)
            logger.info("Optimizing content with AI (this may take 30-60 seconds)...")
            result = escalate(
                self.synthesizer.strategies,
                lambda strategy: self.synthesizer.generate(strategy, article.title, article.content, references),
            )
            outcome.strategy = result.strategy.name
            outcome.rate_limited = result.rate_limited

            final_content = f"{result.text}\n\n{format_references(references)}"
            optimized = OptimizedArticle.from_source(article, final_content, references,
                                                     model=result.strategy.model)

            outcome.advance(ArticleState.PUBLISHING)
            outcome.published_id = self.publisher.publish(optimized)
            return outcome.finish(ArticleState.DONE)

        except DuplicateArticleError as e:
            return outcome.finish(ArticleState.FAILED, f"Duplicate article: {e.message}")
        except OptimizerError as e:
            outcome.rate_limited = outcome.rate_limited or e.is_rate_limited
            return outcome.finish(ArticleState.FAILED,
                                  f"{outcome.state.value} failed: {e.message}")

    def _collect_references(self, results: Sequence[SearchResult]) -> List[ReferenceDocument]:
        """Scrape each result in order; failures and empty pages are dropped"""
        references = []
        for index, result in enumerate(results):
            if index > 0:
                self._pause(self.config.scrape_delay, "between scrapes")
            try:
                content = self.extractor.extract(result.url)
            except OptimizerError as e:
                logger.warning(f"Failed: {result.url} ({e.message})")
                continue
            if not content:
                logger.warning(f"No usable content: {result.url}")
                continue
            references.append(ReferenceDocument(title=result.title, url=result.url, content=content))
            logger.info(f"Scraped: {result.title[:50]}")
        return references

    def _log_outcome(self, outcome: ArticleOutcome):
        message = f'"{outcome.title}" -> {outcome.state.value}'
        if outcome.reason:
            message += f" ({outcome.reason})"
        if outcome.state is ArticleState.DONE:
            logger.info(f"{message} via {outcome.strategy} model, "
                        f"{outcome.reference_count} references, id={outcome.published_id}")
        elif outcome.state is ArticleState.SKIPPED:
            logger.warning(message)
        else:
            logger.error(message)

    def ingest(self, limit: int = 5) -> IngestReport:
        """
        Discover original articles from the blog and store the new ones

        Raises:
            ScrapeError: If the listing page cannot be fetched
        """
        report = IngestReport()
        for article in self.extractor.discover(limit):
            try:
                if self.database.find_by_url(article.url):
                    report.errors.append({'url': article.url, 'message': "Article already exists"})
                    continue
                report.saved.append(self.database.save_source_article(article))
            except OptimizerError as e:
                report.errors.append({'url': article.url, 'message': e.message})

        logger.info(f"Successfully scraped and stored {len(report.saved)} articles")
        for error in report.errors:
            logger.warning(f"Not stored: {error['url']} ({error['message']})")
        return report
