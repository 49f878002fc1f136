# src/optimizer/models.py

import math
from typing import List, Optional, Dict, Any
from datetime import datetime, timezone
from pydantic import BaseModel, ConfigDict, Field

WORDS_PER_MINUTE = 200


class SourceArticle(BaseModel):
    """Original article eligible for optimization"""
    model_config = ConfigDict(frozen=True)

    id: Optional[str] = None
    title: str
    content: str
    url: str
    excerpt: Optional[str] = None
    author: Optional[str] = None
    published_date: Optional[datetime] = None

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "SourceArticle":
        """Build from a stored article document"""
        return cls(
            id=str(doc['_id']) if doc.get('_id') is not None else None,
            title=doc.get('title', ''),
            content=doc.get('content', ''),
            url=doc.get('url', ''),
            excerpt=doc.get('excerpt'),
            author=doc.get('author'),
            published_date=doc.get('published_date'),
        )

    def to_document(self) -> Dict[str, Any]:
        """Fields for storing as an original article"""
        return {
            'title': self.title,
            'content': self.content,
            'url': self.url,
            'excerpt': self.excerpt,
            'author': self.author,
            'published_date': self.published_date,
            'is_original': True,
        }


class SearchResult(BaseModel):
    """Single ranked search hit"""
    model_config = ConfigDict(frozen=True)

    title: str
    url: str
    snippet: str = ""


class ReferenceDocument(BaseModel):
    """Scraped reference material used as a style exemplar"""
    model_config = ConfigDict(frozen=True)

    title: str
    url: str
    content: str


class Reference(BaseModel):
    """Title and URL of a reference used for a rewrite"""
    title: str
    url: str


class ArticleMetadata(BaseModel):
    """Derived reading statistics"""
    word_count: int = Field(ge=0)
    reading_time: int = Field(ge=0, description="Estimated reading time in minutes")

    @classmethod
    def from_text(cls, text: str) -> "ArticleMetadata":
        words = len(text.split()) if text else 0
        return cls(word_count=words, reading_time=math.ceil(words / WORDS_PER_MINUTE))


class OptimizedArticle(BaseModel):
    """Rewrite of one SourceArticle with its references section"""
    original_article_id: Optional[str]
    title: str
    content: str
    updated_content: str
    url: str
    author: Optional[str] = None
    references: List[Reference] = Field(default_factory=list)
    metadata: ArticleMetadata
    model: Optional[str] = None
    is_original: bool = False
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def from_source(cls,
                    source: SourceArticle,
                    updated_content: str,
                    references: List[ReferenceDocument],
                    model: Optional[str] = None,
                    created_at: Optional[datetime] = None) -> "OptimizedArticle":
        """Derive an optimized article; the URL gets a millisecond timestamp suffix to stay unique"""
        created_at = created_at or datetime.now(timezone.utc)
        suffix = int(created_at.timestamp() * 1000)
        return cls(
            original_article_id=source.id,
            title=f"{source.title} (Optimized)",
            content=source.content,
            updated_content=updated_content,
            url=f"{source.url}-optimized-{suffix}",
            author=source.author,
            references=[Reference(title=ref.title, url=ref.url) for ref in references],
            metadata=ArticleMetadata.from_text(updated_content),
            model=model,
            created_at=created_at,
        )

    def to_document(self) -> Dict[str, Any]:
        """Document shape used by the article store"""
        return self.model_dump()

    def to_api_payload(self) -> Dict[str, Any]:
        """Request body for the create-article endpoint"""
        return {
            'title': self.title,
            'content': self.content,
            'updatedContent': self.updated_content,
            'url': self.url,
            'isOriginal': self.is_original,
            'originalArticleId': self.original_article_id,
            'author': self.author,
            'references': [ref.model_dump() for ref in self.references],
        }
