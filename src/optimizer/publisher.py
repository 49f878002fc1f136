# src/optimizer/publisher.py
"""
Ways to write an optimized article: straight into the article store, or
through the create-article endpoint of the articles API.
"""
from typing import Optional
import logging

import requests

from .config import OptimizerConfig
from .database.db import ArticleDatabase
from .exceptions import DuplicateArticleError, PublishError
from .models import OptimizedArticle

logger = logging.getLogger(__name__)


class StorePublisher:
    """Writes derivatives through the article database"""

    def __init__(self, database: ArticleDatabase):
        self.database = database

    def publish(self, optimized: OptimizedArticle) -> str:
        return self.database.create_derivative(optimized)


class HttpPublisher:
    """POSTs derivatives to <api_base_url>/articles"""

    def __init__(self, api_base_url: str, timeout: float = 30.0, session: Optional[requests.Session] = None):
        self.endpoint = f"{api_base_url.rstrip('/')}/articles"
        self.timeout = timeout
        self.session = session or requests.Session()

    def publish(self, optimized: OptimizedArticle) -> str:
        """
        Create the article through the API

        Returns:
            Id of the created article (empty string if the API omits it)

        Raises:
            DuplicateArticleError: On 409 or a duplicate-key message
            PublishError: On any other failure
        """
        try:
            response = self.session.post(self.endpoint, json=optimized.to_api_payload(), timeout=self.timeout)
        except requests.RequestException as e:
            raise PublishError(f"Failed to reach {self.endpoint}: {str(e)}", cause=e)

        try:
            body = response.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}

        if not 200 <= response.status_code < 300:
            message = body.get('error') or body.get('message') or response.text[:200]
            if response.status_code == 409 or 'duplicate' in str(message).lower():
                raise DuplicateArticleError(f"Article already exists: {optimized.url}")
            raise PublishError(f"Publish failed with HTTP {response.status_code}: {message}",
                               status_code=response.status_code)

        data = body.get('data')
        if isinstance(data, dict):
            data = data.get('_id') or data.get('id')
        # some APIs answer with the bare id as data
        article_id = str(data) if isinstance(data, (str, int)) and not isinstance(data, bool) else ''
        logger.info(f"Published optimized article {article_id or optimized.url}")
        return article_id


def build_publisher(config: OptimizerConfig, database: Optional[ArticleDatabase] = None):
    """Pick the HTTP publisher when an API base URL is configured, else the store"""
    if config.publishes_over_http:
        logger.info(f"Publishing through {config.api_base_url}")
        return HttpPublisher(config.api_base_url)
    if database is None:
        raise PublishError("No article database available for publishing")
    return StorePublisher(database)
