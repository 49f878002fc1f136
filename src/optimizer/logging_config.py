import logging
import os

NOISY_LOGGERS = ('urllib3', 'httpx', 'openai', 'pymongo')


def setup_logging(level: str = None):
    """Configure logging with a level set by the LOG_LEVEL environment variable (default: INFO)."""
    log_level = (level or os.getenv('LOG_LEVEL', 'INFO')).upper()
    logging.basicConfig(
        level=log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    logger = logging.getLogger(__name__)
    logger.info(f"Logging configured with level: {log_level}")
