# enrollment_portal/core/config.py
"""Application configuration using Pydantic."""
import logging
from typing import List, Literal, Optional

from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)

DEFAULT_ENCRYPTION_KEY = 'your-32-character-secret-key-here!'


class Settings(BaseSettings):
    firestore_project_id: Optional[str] = None
    firebase_credentials_path: Optional[str] = None
    encryption_key: str = DEFAULT_ENCRYPTION_KEY
    encryption_enabled: bool = True

    app_name: str = 'enrollment_portal'
    app_version: str = '1.0.0'
    environment: str = 'development'
    log_level: str = 'info'
    allowed_origins: List[str] = ['*']

    # Cache and query tuning
    cache_ttl: int = 300  # 5 minutes
    search_prefetch_limit: int = 100
    default_page_size: int = 20
    max_page_size: int = 100
    slow_operation_seconds: float = 2.0

    # Archive either flags the original as archived or removes it
    archive_strategy: Literal['flag', 'move'] = 'flag'

    # Rate limiting budgets (requests per window, window in seconds)
    rate_limit_general: int = 100
    rate_limit_general_window: int = 60
    rate_limit_auth: int = 5
    rate_limit_auth_window: int = 900
    rate_limit_api: int = 60
    rate_limit_api_window: int = 60

    model_config = {
        'env_file': '.env',
        'extra': 'ignore'
    }

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == 'production'


def encryption_key_is_secure(key: str) -> bool:
    """True when the key is set, long enough and not the shipped default."""
    return bool(key) and len(key) >= 32 and key != DEFAULT_ENCRYPTION_KEY


def check_encryption_key(config: Settings) -> bool:
    """Surface a misconfigured encryption key at startup.

    Logs a warning outside production and refuses to start in production.
    """
    if encryption_key_is_secure(config.encryption_key):
        return True
    message = 'ENCRYPTION_KEY is missing, too short or still the default value'
    if config.is_production:
        raise RuntimeError(f"{message}; refusing to start in production")
    logger.warning(f"{message}. Set ENCRYPTION_KEY in your .env file.")
    return False


settings = Settings()
