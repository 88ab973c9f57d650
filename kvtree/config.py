"""
Configuration for kvtree.

Uses pydantic-settings for environment variable loading. Every setting is
read from KVTREE_<NAME>; the database URL is also read from REPLIT_DB_URL,
which hosted Replit environments provide.

Invariants:
    - All settings have defaults except db_url
    - The database URL carries credentials and is never logged
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Literal, Optional

import json_log_formatter
from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """kvtree configuration loaded from environment."""

    db_url: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("KVTREE_DB_URL", "REPLIT_DB_URL"),
        description="Base URL of the key-value service",
    )
    request_timeout: float = Field(default=30.0, description="HTTP request timeout seconds")
    init_marker_path: Path = Field(
        default=Path(".kvtree/init.marker"),
        description="First-run marker file, kept outside the store",
    )

    log_level: str = Field(default="INFO", description="DEBUG, INFO, WARNING, ERROR")
    log_format: Literal["text", "json"] = Field(default="text", description="Log line format")

    model_config = {"env_prefix": "KVTREE_", "populate_by_name": True}


def setup_logging(settings: Settings) -> None:
    """Configure root logging from settings.

    Args:
        settings: kvtree settings
    """
    level = getattr(logging, settings.log_level.upper(), logging.INFO)

    if settings.log_format == "json":
        formatter = json_log_formatter.JSONFormatter()
    else:
        formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    handler = logging.StreamHandler()
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers = [handler]

    # Reduce noise from libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
