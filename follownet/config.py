from datetime import date
from functools import lru_cache
from typing import List, Optional

from pydantic_settings import BaseSettings

DEFAULT_KEYWORDS = [
    "citsci",
    "citizenscience",
    "citizensciences",
    "citizen science",
    "citizen sciences",
]


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # X/Twitter API
    x_bearer_token: str = ""
    x_api_base: str = "https://api.twitter.com/1.1"

    # Account search
    search_keywords: List[str] = DEFAULT_KEYWORDS
    search_max_results: int = 1000  # users/search never returns more
    search_page_size: int = 20

    # Follower ids
    followers_page_size: int = 5000
    max_followers_per_account: int = 75000

    # HTTP behaviour
    request_timeout: float = 1200.0  # wait up to 20 min for a slow response
    max_retries: int = 3
    request_rate_limit: float = 1.0  # requests per second
    rate_limit_margin: float = 1.0  # seconds added after a window reset
    max_rate_limit_wait: float = 900.0  # one full 15 min window

    # Link collection
    link_retry_passes: int = 1

    # Output
    output_dir: str = "data"
    snapshot_date: Optional[date] = None  # end of every node's time range

    class Config:
        env_file = ".env"
        case_sensitive = False


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
