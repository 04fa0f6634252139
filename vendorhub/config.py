"""
VendorHub — Configuration via environment variables.
"""

from pydantic_settings import BaseSettings
from pydantic import Field


class Settings(BaseSettings):
    """All settings read from env / .env file."""

    # Database
    database_url: str = Field(
        default="sqlite+aiosqlite:///./vendorhub.db",
        description="Async SQLAlchemy DB URL",
    )
    store_timeout_secs: float = Field(
        default=10.0,
        description="Upper bound for a single store call; a timeout counts as a fetch failure",
    )

    # The upstream identity provider forwards the user id in this header
    user_header: str = Field(default="X-User-Id")

    # Activity feed
    feed_default_limit: int = Field(default=5)
    feed_max_limit: int = Field(default=100)
    expiry_lookahead_days: int = Field(
        default=30, description="Contracts ending within this many days get an expiry warning"
    )
    feed_sample_fallback: bool = Field(
        default=True,
        description="Serve the labelled sample feed when every activity source fails",
    )

    # Dashboard aggregation
    aggregation_procedures: bool = Field(
        default=False,
        description="Try the server-side aggregation procedures before scanning in-app",
    )
    spend_display_divisor: int = Field(default=1000, description="Spend is reported in thousands")

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}


settings = Settings()
