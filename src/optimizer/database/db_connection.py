"""
MongoDB connection management for the article optimizer.
"""
from typing import Optional
from pymongo import MongoClient
from pymongo.database import Database
import logging
from ..config import OptimizerConfig
from ..exceptions import DatabaseError

logger = logging.getLogger(__name__)


class DatabaseConnection:
    """Owns one MongoClient and the configured database"""

    def __init__(self, mongodb_uri: Optional[str], db_name: str = 'articles_db'):
        self._client: Optional[MongoClient] = None
        self._db: Optional[Database] = None
        self._initialize_connection(mongodb_uri, db_name)

    def _initialize_connection(self, mongodb_uri: Optional[str], db_name: str):
        """Initialize MongoDB connection"""
        if not mongodb_uri:
            raise DatabaseError("MONGODB_URI environment variable not set")
        try:
            self._client = MongoClient(mongodb_uri)
            self._db = self._client[db_name]
            logger.info(f"Connected to MongoDB database: {db_name}")
        except Exception as e:
            logger.error(f"Failed to connect to MongoDB: {str(e)}")
            raise DatabaseError(f"MongoDB connection failed: {str(e)}", cause=e)

    @property
    def client(self) -> MongoClient:
        """Get MongoDB client instance"""
        return self._client

    @property
    def db(self) -> Database:
        """Get database instance"""
        return self._db

    def close(self):
        """Close MongoDB connection"""
        if self._client:
            self._client.close()
            self._client = None
            self._db = None
            logger.info("MongoDB connection closed")


_connection: Optional[DatabaseConnection] = None


def get_connection(config: OptimizerConfig) -> DatabaseConnection:
    """Return the process-wide connection, creating it on first use"""
    global _connection
    if _connection is None or _connection.client is None:
        _connection = DatabaseConnection(config.mongodb_uri, config.mongodb_db_name)
    return _connection


def get_db(config: OptimizerConfig) -> Database:
    """Get the database instance"""
    return get_connection(config).db


def close_connection():
    """Close the process-wide connection if one is open"""
    global _connection
    if _connection is not None:
        _connection.close()
        _connection = None
