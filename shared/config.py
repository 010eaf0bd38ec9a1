"""
Shared configuration management for the HR services platform.
"""

from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BaseConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_prefix="HR_",
        env_file=".env",
        case_sensitive=False,
        extra="allow",
    )

    # Environment
    env: str = Field(default="development", description="development, staging or production")
    log_level: str = Field(default="info")

    # Security
    jwt_secret: str = Field(default="change-me", description="Shared HS256 signing secret")

    # Internal services
    worker_service_url: str = Field(default="http://localhost:3001")
    benefits_service_url: str = Field(default="http://localhost:3002")
    payroll_service_url: str = Field(default="http://localhost:3003")
    document_service_url: str = Field(default="http://localhost:3004")

    # Outbound calls
    upstream_timeout_seconds: float = Field(default=10.0, gt=0)
    proxy_timeout_seconds: float = Field(default=30.0, gt=0)
    lookup_retry_attempts: int = Field(default=3, ge=1)
    lookup_retry_base_delay: float = Field(default=0.2, ge=0)
    breaker_failure_threshold: int = Field(default=5, ge=1)
    breaker_recovery_timeout: float = Field(default=30.0, ge=0)

    # Rate limiting
    rate_limit_enabled: bool = Field(default=True)
    rate_limit_max_requests: int = Field(default=100, ge=1)
    rate_limit_window_seconds: int = Field(default=900, ge=1)
    rate_limit_trusted_proxies: List[str] = Field(
        default_factory=list, description="Peer addresses whose X-Forwarded-For is believed"
    )
    redis_url: str = Field(default="redis://localhost:6379/0")

    # Payroll store
    payroll_store: str = Field(default="memory", description="memory or postgres")
    postgres_dsn: Optional[str] = Field(default=None)
    payroll_batch_concurrency: int = Field(default=5, ge=1)

    @property
    def is_production(self) -> bool:
        return self.env.lower() == "production"

    @property
    def is_development(self) -> bool:
        return self.env.lower() in ("development", "local")


class ServiceConfig(BaseConfig):
    """Service-specific configuration."""

    service_name: str
    port: int
    host: str = "0.0.0.0"


def get_config(service_name: str, port: int, **overrides) -> ServiceConfig:
    """Get configuration for a specific service."""
    return ServiceConfig(service_name=service_name, port=port, **overrides)
