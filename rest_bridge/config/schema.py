from dataclasses import dataclass, field


@dataclass(frozen=True)
class BackendConfig:
    base_url: str = ""
    timeout_seconds: float = 30.0
    auth_header: str = "Authorization"
    auth_scheme: str = "Bearer"  # Empty sends the raw key
    user_agent: str = "rest-bridge/0.1"


@dataclass(frozen=True)
class RetryConfig:
    max_attempts: int = 3
    base_delay_seconds: float = 0.5
    max_delay_seconds: float = 8.0
    retryable_statuses: tuple[int, ...] = (429, 500, 502, 503, 504)


@dataclass(frozen=True)
class RateLimitConfig:
    max_concurrent: int = 4
    min_interval_seconds: float = 0.0


@dataclass(frozen=True)
class CacheConfig:
    ttl_seconds: float = 300.0
    max_entries: int = 1024  # 0 disables the bound


@dataclass(frozen=True)
class ServerConfig:
    name: str = "rest-bridge"
    version: str = "0.1.0"


@dataclass(frozen=True)
class LoggingConfig:
    level: str = "INFO"
    file: str | None = "logs/rest-bridge.log"
    max_bytes: int = 5_242_880
    backup_count: int = 3


@dataclass(frozen=True)
class AppConfig:
    backend: BackendConfig = field(default_factory=BackendConfig)
    retry: RetryConfig = field(default_factory=RetryConfig)
    rate_limit: RateLimitConfig = field(default_factory=RateLimitConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
