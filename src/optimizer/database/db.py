"""
Article store backed by MongoDB.

Originals and their optimized derivatives live in one `articles`
collection; derivatives point back through `original_article_id`.
"""
from typing import List, Dict, Optional, Any
from datetime import datetime, timezone
import logging
from pymongo import ASCENDING, DESCENDING
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError, PyMongoError
from bson.objectid import ObjectId
from bson.errors import InvalidId
from ..exceptions import DatabaseError, DuplicateArticleError, ValidationError
from ..models import ArticleMetadata, OptimizedArticle, SourceArticle

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ('title', 'content', 'url')


def _object_id(article_id) -> ObjectId:
    if isinstance(article_id, ObjectId):
        return article_id
    try:
        return ObjectId(article_id)
    except (InvalidId, TypeError) as e:
        raise ValidationError(f"Invalid article id: {article_id!r}", cause=e)


class ArticleDatabase:
    """MongoDB article collection with create, read and cascading delete"""

    def __init__(self, db: Database, setup_indexes: bool = True):
        """Bind to the articles collection"""
        self.db = db
        self.articles = self.db.articles
        if setup_indexes:
            self._setup_indexes()
        logger.info("Article database initialized")

    def _setup_indexes(self):
        """Setup required database indexes"""
        try:
            self.articles.create_index([("url", ASCENDING)], unique=True)
            self.articles.create_index([("is_original", ASCENDING), ("created_at", DESCENDING)])
            self.articles.create_index([("original_article_id", ASCENDING)])
            self.articles.create_index([("title", ASCENDING)])
        except PyMongoError as e:
            logger.error(f"Index creation failed: {e}")
            raise DatabaseError(f"Index creation failed: {str(e)}", cause=e)

    def find_source_articles(self,
                             filter: Optional[Dict[str, Any]] = None,
                             limit: int = 5,
                             exclude_optimized: bool = False) -> List[SourceArticle]:
        """
        Get original articles eligible for optimization

        Args:
            filter: Extra MongoDB filter merged into {'is_original': True}
            limit: Maximum number of articles
            exclude_optimized: Skip originals that already have a derivative

        Returns:
            List of SourceArticle in insertion order
        """
        query: Dict[str, Any] = {'is_original': True}
        query.update(filter or {})
        try:
            if exclude_optimized:
                optimized_ids = [
                    _object_id(i) for i in self.articles.distinct('original_article_id')
                    if i
                ]
                if optimized_ids:
                    query['_id'] = {'$nin': optimized_ids}

            cursor = self.articles.find(query).sort([("_id", ASCENDING)]).limit(limit)
            articles = [SourceArticle.from_document(doc) for doc in cursor]
            logger.info(f"Found {len(articles)} source articles")
            return articles
        except PyMongoError as e:
            logger.error(f"Error finding source articles: {e}")
            raise DatabaseError(f"Failed to find source articles: {str(e)}", cause=e)

    def create_article(self, fields: Dict[str, Any]) -> str:
        """
        Insert an article document

        Args:
            fields: Article fields; title, content and url are required

        Returns:
            str: Inserted article id

        Raises:
            ValidationError: If a required field is missing
            DuplicateArticleError: If an article with the same URL exists
            DatabaseError: If the insert fails
        """
        missing = [name for name in REQUIRED_FIELDS if not fields.get(name)]
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

        now = datetime.now(timezone.utc)
        document = dict(fields)
        document.setdefault('is_original', True)
        document.setdefault('scraped_at', now)
        document.setdefault('created_at', now)
        document['updated_at'] = now
        body = document.get('updated_content') or document['content']
        document['metadata'] = ArticleMetadata.from_text(body).model_dump()

        try:
            article_id = str(self.articles.insert_one(document).inserted_id)
        except DuplicateKeyError as e:
            logger.warning(f"Article already exists: {document['url']}")
            raise DuplicateArticleError(f"Article already exists: {document['url']}", cause=e)
        except PyMongoError as e:
            logger.error(f"Error creating article: {e}")
            raise DatabaseError(f"Failed to create article: {str(e)}", cause=e)

        logger.info(f"Created article {article_id}: {document['title']}")
        return article_id

    def save_source_article(self, article: SourceArticle) -> str:
        """Store a discovered original article"""
        return self.create_article(article.to_document())

    def create_derivative(self, optimized: OptimizedArticle) -> str:
        """
        Store an optimized article linked to its source

        Raises:
            ValidationError: If the source article does not exist
            DuplicateArticleError: If the derivative URL is taken
        """
        if not optimized.original_article_id or not self.get_article(optimized.original_article_id):
            raise ValidationError(
                f"Source article {optimized.original_article_id} not found"
            )
        document = optimized.to_document()
        document['original_article_id'] = _object_id(optimized.original_article_id)
        document['is_original'] = False
        return self.create_article(document)

    def get_article(self, article_id) -> Optional[Dict]:
        """Get article by ID, or None if not found"""
        try:
            article = self.articles.find_one({'_id': _object_id(article_id)})
        except PyMongoError as e:
            logger.error(f"Error getting article {article_id}: {e}")
            raise DatabaseError(f"Failed to get article: {str(e)}", cause=e)
        if not article:
            logger.warning(f"Article {article_id} not found")
        return article

    def find_by_url(self, url: str) -> Optional[Dict]:
        """Get article by URL"""
        try:
            return self.articles.find_one({'url': url})
        except PyMongoError as e:
            raise DatabaseError(f"Failed to look up {url}: {str(e)}", cause=e)

    def list_derivatives(self, article_id) -> List[Dict]:
        """Optimized versions of an original, newest first"""
        try:
            return list(self.articles.find(
                {'original_article_id': _object_id(article_id)}
            ).sort([("created_at", DESCENDING)]))
        except PyMongoError as e:
            raise DatabaseError(f"Failed to list derivatives: {str(e)}", cause=e)

    def delete_article(self, article_id) -> Dict:
        """
        Delete an article; deleting an original also deletes its derivatives

        Returns:
            Dict with 'deleted' (bool) and 'derivatives_removed' (int)
        """
        oid = _object_id(article_id)
        try:
            article = self.articles.find_one_and_delete({'_id': oid})
            if not article:
                logger.warning(f"Article {article_id} not found")
                return {'deleted': False, 'derivatives_removed': 0}

            removed = 0
            if article.get('is_original', True):
                removed = self.articles.delete_many({'original_article_id': oid}).deleted_count

            logger.info(f"Deleted article {article_id} and {removed} derivatives")
            return {'deleted': True, 'derivatives_removed': removed}
        except PyMongoError as e:
            logger.error(f"Error deleting article {article_id}: {e}")
            raise DatabaseError(f"Failed to delete article: {str(e)}", cause=e)
