"""
Configuration for ElasticLog.
"""

import os
from dataclasses import dataclass, field
from typing import Dict, Mapping, Optional


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in ("true", "1", "yes")


@dataclass(frozen=True)
class ElasticLogConfig:
    """
    Settings for one ElasticLog instance.

    Args:
        host: Server address, either ``host:port`` or a full http(s) URL
        request_timeout_ms: Timeout applied to every HTTP request
        flush_interval_ms: Delay between two automatic bulk rounds
        index_bucket_interval_sec: Width of the time bucket appended to
            index names, 0 disables bucketing
        log_errors: Report errors through the default error channel
        username: Optional username for Basic Auth
        password: Optional password for Basic Auth
        headers: Additional headers sent with every request
        max_workers: Threads used for provisioning and bulk requests
    """

    host: str
    request_timeout_ms: int = 30000
    flush_interval_ms: int = 5000
    index_bucket_interval_sec: int = 3600
    log_errors: bool = True
    username: Optional[str] = None
    password: Optional[str] = None
    headers: Dict[str, str] = field(default_factory=dict)
    max_workers: int = 8

    def __post_init__(self) -> None:
        if not self.host or not self.host.strip():
            raise ValueError("host is required")
        if self.request_timeout_ms <= 0:
            raise ValueError("request_timeout_ms must be positive")
        if self.flush_interval_ms <= 0:
            raise ValueError("flush_interval_ms must be positive")
        if self.index_bucket_interval_sec < 0:
            raise ValueError("index_bucket_interval_sec must not be negative")
        if self.max_workers <= 0:
            raise ValueError("max_workers must be positive")
        if bool(self.username) != bool(self.password):
            raise ValueError("username and password must be given together")

    @property
    def base_url(self) -> str:
        host = self.host.strip().rstrip("/")
        if "://" not in host:
            host = f"http://{host}"
        return host

    @property
    def request_timeout(self) -> float:
        """Request timeout in seconds."""
        return self.request_timeout_ms / 1000.0

    @property
    def flush_interval(self) -> float:
        """Flush interval in seconds."""
        return self.flush_interval_ms / 1000.0

    @property
    def bucketing_enabled(self) -> bool:
        return self.index_bucket_interval_sec > 0


def load_config_from_env(
    environ: Optional[Mapping[str, str]] = None,
) -> ElasticLogConfig:
    """Build an ElasticLogConfig from ``ELASTICLOG_*`` environment variables.

    Pass ``environ`` for testability; when None, ``os.environ`` is read.
    Unset variables fall back to the dataclass defaults.
    """
    env = os.environ if environ is None else environ
    defaults = ElasticLogConfig(host="localhost:9200")
    return ElasticLogConfig(
        host=env.get("ELASTICLOG_HOST", defaults.host),
        request_timeout_ms=int(
            env.get("ELASTICLOG_REQUEST_TIMEOUT_MS", defaults.request_timeout_ms)
        ),
        flush_interval_ms=int(
            env.get("ELASTICLOG_FLUSH_INTERVAL_MS", defaults.flush_interval_ms)
        ),
        index_bucket_interval_sec=int(
            env.get(
                "ELASTICLOG_INDEX_BUCKET_INTERVAL_SEC",
                defaults.index_bucket_interval_sec,
            )
        ),
        log_errors=_parse_bool(env.get("ELASTICLOG_LOG_ERRORS", "true")),
        username=env.get("ELASTICLOG_USERNAME") or None,
        password=env.get("ELASTICLOG_PASSWORD") or None,
        max_workers=int(env.get("ELASTICLOG_MAX_WORKERS", defaults.max_workers)),
    )
