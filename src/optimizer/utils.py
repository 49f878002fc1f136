import re
import time
import logging
from functools import wraps
from typing import Callable, Tuple, Type, TypeVar, ParamSpec

logger = logging.getLogger(__name__)

P = ParamSpec('P')
T = TypeVar('T')

CONTROL_CHARS = re.compile(r'[\x00-\x08\x0b-\x1f\x7f]')
MAX_TEXT_LENGTH = 500


def retry(max_attempts: int = 3,
          delay: float = 1.0,
          retry_on: Tuple[Type[BaseException], ...] = (Exception,)) -> Callable:
    """
    Retry decorator for handling transient network errors

    Args:
        max_attempts: Maximum number of attempts, the first call included
        delay: Base delay in seconds; attempt n waits delay * n
        retry_on: Exception types worth another attempt; anything else
            propagates immediately

    Returns:
        Decorated function
    """
    def decorator(func: Callable[P, T]) -> Callable[P, T]:
        @wraps(func)
        def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
            attempts = 0
            while True:
                try:
                    return func(*args, **kwargs)
                except retry_on as e:
                    attempts += 1
                    if attempts >= max_attempts:
                        logger.error(f"Failed after {max_attempts} attempts: {str(e)}")
                        raise

                    logger.warning(
                        f"Request failed, retrying... ({attempts}/{max_attempts - 1}): {str(e)}"
                    )
                    time.sleep(delay * attempts)  # Linear backoff
        return wrapper
    return decorator


def sanitize_text(text: str, max_length: int = MAX_TEXT_LENGTH) -> str:
    """Strip control characters, collapse whitespace and truncate"""
    if not text:
        return ""
    text = CONTROL_CHARS.sub(" ", text)
    text = re.sub(r"\s+", " ", text).strip()
    return text[:max_length]


def normalize_whitespace(text: str) -> str:
    """Collapse space/tab runs and keep at most one blank line between paragraphs"""
    if not text:
        return ""
    text = re.sub(r"[ \t\f\v\r]+", " ", text)
    text = re.sub(r" *\n *", "\n", text)
    text = re.sub(r"\n{3,}", "\n\n", text)
    return text.strip()


def truncate(text: str, max_length: int, marker: str = "...") -> str:
    """Cut text to max_length characters, appending marker only when something was cut"""
    if len(text) <= max_length:
        return text
    return text[:max_length] + marker
