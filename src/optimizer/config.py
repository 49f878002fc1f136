"""
Process-wide configuration for the article optimizer.

Loaded once from the environment (and a .env file, if present) and passed
to each component at construction.
"""
import os
import logging
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv
from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_INFERENCE_BASE_URL = "https://router.huggingface.co/v1"
DEFAULT_BLOG_URL = "https://beyondchats.com/blogs"


@dataclass(frozen=True)
class OptimizerConfig:
    """Credentials, endpoints and tunables for one optimizer run"""
    mongodb_uri: Optional[str] = None
    mongodb_db_name: str = "articles_db"

    tavily_api_key: Optional[str] = None
    inference_api_key: Optional[str] = None
    inference_base_url: str = DEFAULT_INFERENCE_BASE_URL
    primary_model: str = "mistralai/Mixtral-8x7B-Instruct-v0.1"
    fast_model: str = "mistralai/Mistral-7B-Instruct-v0.2"
    minimal_model: str = "google/flan-t5-xxl"

    api_base_url: Optional[str] = None
    publish_mode: str = "auto"

    blog_url: str = DEFAULT_BLOG_URL
    site_domain: str = "beyondchats.com"

    batch_size: int = 5
    results_per_article: int = 2
    scrape_delay: float = 1.0
    article_delay: float = 3.0
    rate_limit_cooldown: float = 60.0
    search_timeout: float = 15.0
    scrape_timeout: float = 10.0

    @property
    def has_search_fallback(self) -> bool:
        return bool(self.tavily_api_key)

    @property
    def publishes_over_http(self) -> bool:
        return bool(self.api_base_url) and self.publish_mode != "store"


def _get_int(name: str, default: int, minimum: int = 0) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}")
    if value < minimum:
        raise ConfigurationError(f"{name} must be >= {minimum}, got {value}")
    return value


def _get_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = float(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}")
    if value < 0:
        raise ConfigurationError(f"{name} must not be negative, got {value}")
    return value


def load_config(env_file: Optional[str] = None) -> OptimizerConfig:
    """
    Build an OptimizerConfig from environment variables.

    Args:
        env_file: Optional path to a .env file; defaults to dotenv's lookup

    Returns:
        OptimizerConfig

    Raises:
        ConfigurationError: If a numeric tunable is malformed or out of range
    """
    load_dotenv(env_file)

    publish_mode = os.getenv('PUBLISH_MODE', 'auto').lower()
    if publish_mode not in ('auto', 'store', 'http'):
        raise ConfigurationError(f"PUBLISH_MODE must be auto, store or http, got {publish_mode!r}")

    config = OptimizerConfig(
        mongodb_uri=os.getenv('MONGODB_URI'),
        mongodb_db_name=os.getenv('MONGODB_DB_NAME', 'articles_db'),
        tavily_api_key=os.getenv('TAVILY_API_KEY') or None,
        inference_api_key=os.getenv('HUGGING_FACE_API_KEY') or None,
        inference_base_url=os.getenv('INFERENCE_BASE_URL', DEFAULT_INFERENCE_BASE_URL),
        primary_model=os.getenv('PRIMARY_MODEL', OptimizerConfig.primary_model),
        fast_model=os.getenv('FAST_MODEL', OptimizerConfig.fast_model),
        minimal_model=os.getenv('MINIMAL_MODEL', OptimizerConfig.minimal_model),
        api_base_url=(os.getenv('API_BASE_URL') or '').rstrip('/') or None,
        publish_mode=publish_mode,
        blog_url=os.getenv('BLOG_URL', DEFAULT_BLOG_URL),
        site_domain=os.getenv('SITE_DOMAIN', 'beyondchats.com'),
        batch_size=_get_int('OPTIMIZER_BATCH_SIZE', 5, minimum=1),
        results_per_article=_get_int('OPTIMIZER_RESULTS_PER_ARTICLE', 2, minimum=1),
        scrape_delay=_get_float('OPTIMIZER_SCRAPE_DELAY', 1.0),
        article_delay=_get_float('OPTIMIZER_ARTICLE_DELAY', 3.0),
        rate_limit_cooldown=_get_float('OPTIMIZER_RATE_LIMIT_COOLDOWN', 60.0),
        search_timeout=_get_float('SEARCH_TIMEOUT', 15.0),
        scrape_timeout=_get_float('SCRAPE_TIMEOUT', 10.0),
    )

    if config.results_per_article > 20:
        raise ConfigurationError("OPTIMIZER_RESULTS_PER_ARTICLE must be <= 20")
    if publish_mode == 'http' and not config.api_base_url:
        raise ConfigurationError("PUBLISH_MODE=http requires API_BASE_URL")
    if not config.inference_api_key:
        logger.warning("HUGGING_FACE_API_KEY not configured")

    return config
