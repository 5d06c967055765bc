"""
Shared configuration management for the Kitchen Display Service.
"""

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BaseConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_prefix="KDS_",
        env_file=".env",
        case_sensitive=False,
        extra="allow"
    )
    
    # Environment
    env: str = Field(default="local")
    log_level: str = Field(default="info")
    
    # Order Service (source of truth)
    order_service_base_url: str = Field(default="http://localhost:8080/api/orders")
    http_timeout_seconds: float = Field(default=5.0, gt=0)

    # Polling
    polling_interval_ms: int = Field(default=3000, gt=0)
    
    # Shared cache tier (optional, cache only)
    redis_enabled: bool = Field(default=False)
    redis_url: str = Field(default="redis://localhost:6379/0")
    cache_ttl_seconds: int = Field(default=10, gt=0)
    
    # Messaging
    kafka_bootstrap: str = Field(default="localhost:9092")
    order_ready_topic: str = Field(default="order-ready")
    publisher_workers: int = Field(default=4, ge=1)

    # Metrics
    metrics_port: Optional[int] = Field(default=None)


class ServiceConfig(BaseConfig):
    """Service-specific configuration."""
    
    service_name: str
    port: int
    host: str = "0.0.0.0"
    
    def __init__(self, service_name: str, port: int, **kwargs):
        super().__init__(service_name=service_name, port=port, **kwargs)


def get_config(service_name: str, port: int, **overrides) -> ServiceConfig:
    """Get configuration for a specific service."""
    return ServiceConfig(service_name=service_name, port=port, **overrides)
