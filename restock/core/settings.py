from __future__ import annotations

import os
from dataclasses import dataclass

from restock.core.errors import ConfigError


def _flag(name: str, default: str) -> bool:
    return os.environ.get(name, default) not in ("0", "false", "False", "")


@dataclass(frozen=True)
class Settings:
    # AWS
    aws_region: str = os.environ.get("AWS_REGION", "us-east-1")

    # DynamoDB tables
    pantry_table: str = os.environ.get("PANTRY_TABLE", "")
    grocery_table: str = os.environ.get("GROCERY_TABLE", "")
    # NameKey (hash) + Category (range) on the pantry table
    pantry_name_index: str = os.environ.get("PANTRY_NAME_INDEX", "NameCategoryIndex")
    # NameKey (hash) on the grocery table
    grocery_name_index: str = os.environ.get("GROCERY_NAME_INDEX", "NameKeyIndex")

    # Quarantine queue; blank disables quarantine
    dlq_url: str = os.environ.get("DLQ_URL", "")

    # Listing
    scan_page_limit: int = int(os.environ.get("SCAN_PAGE_LIMIT", "100"))
    grocery_cache_ttl_seconds: float = float(os.environ.get("GROCERY_CACHE_TTL_SECONDS", "30"))

    # Pipeline retry
    pipeline_max_attempts: int = int(os.environ.get("PIPELINE_MAX_ATTEMPTS", "3"))
    pipeline_base_delay_seconds: float = float(os.environ.get("PIPELINE_BASE_DELAY_SECONDS", "1.0"))

    # In-process stream consumer (non-Lambda deployments)
    enable_stream_consumer: bool = _flag("ENABLE_STREAM_CONSUMER", "0")
    stream_poll_seconds: float = float(os.environ.get("STREAM_POLL_SECONDS", "1.0"))

    log_enabled: bool = _flag("LOG_ENABLED", "1")
    metrics_enabled: bool = _flag("METRICS_ENABLED", "1")


S = Settings()

_ENV_NAMES = {
    "pantry_table": "PANTRY_TABLE",
    "grocery_table": "GROCERY_TABLE",
    "dlq_url": "DLQ_URL",
}


def require(field: str, settings: Settings | None = None) -> str:
    value = getattr(settings or S, field)
    if not value:
        raise ConfigError(f"{_ENV_NAMES.get(field, field.upper())} environment variable is not set")
    return value
