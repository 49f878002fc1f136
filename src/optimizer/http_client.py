"""
Shared HTTP fetching with failure classification.
"""
import logging
from typing import Dict, Optional

import requests

from .exceptions import (
    AuthError,
    OptimizerError,
    RateLimitError,
    TransientNetworkError,
)

logger = logging.getLogger(__name__)

USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)

BROWSER_HEADERS = {
    "User-Agent": USER_AGENT,
    "Accept-Language": "en-US,en;q=0.9",
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
    "Accept-Encoding": "gzip, deflate",
    "Connection": "keep-alive",
    "Upgrade-Insecure-Requests": "1",
}


def create_session(headers: Optional[Dict[str, str]] = None) -> requests.Session:
    """Create a requests session with browser-like default headers"""
    session = requests.Session()
    session.headers.update(headers or BROWSER_HEADERS)
    return session


def classify_status(status: int, url: str) -> OptimizerError:
    """Map a non-success HTTP status to a typed error"""
    message = f"HTTP {status} from {url}"
    if status == 429:
        return RateLimitError(message)
    if status in (401, 403):
        return AuthError(message, status_code=status)
    if 500 <= status < 600:
        return TransientNetworkError(message, status_code=status)
    return OptimizerError(message, status_code=status)


def fetch_html(session: requests.Session,
               url: str,
               timeout: float,
               params: Optional[Dict[str, str]] = None,
               require_ok: bool = False) -> str:
    """
    GET a page and return its body text

    Args:
        session: Session carrying default headers
        url: Page URL
        timeout: Timeout in seconds
        params: Optional query parameters
        require_ok: Accept only HTTP 200 instead of any 2xx

    Returns:
        Response body

    Raises:
        TransientNetworkError: No response, timeout, connection error or 5xx
        RateLimitError: HTTP 429
        AuthError: HTTP 401 or 403
        OptimizerError: Any other non-success status
    """
    try:
        response = session.get(url, params=params, timeout=timeout)
    except requests.Timeout as e:
        raise TransientNetworkError(f"Timed out fetching {url}", cause=e)
    except requests.ConnectionError as e:
        raise TransientNetworkError(f"Connection failed for {url}", cause=e)
    except requests.RequestException as e:
        raise OptimizerError(f"Request failed for {url}: {str(e)}", cause=e)

    ok = response.status_code == 200 if require_ok else 200 <= response.status_code < 300
    if not ok:
        raise classify_status(response.status_code, url)

    return response.text
