"""
Configuration for the Glue schema registry codec.

Uses pydantic-settings for environment variable loading. Every setting can be
passed explicitly or picked up from GLUE_SCHEMA_REGISTRY_* variables.

Invariants:
    - All settings have sensible defaults for local development
    - Credentials left unset fall back to the AWS credential chain
    - Secrets are never logged or exposed in error messages
"""

from __future__ import annotations

from typing import Any, Optional

from aiobotocore.config import AioConfig
from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings


class RegistrySettings(BaseSettings):
    """Registry connection settings loaded from environment."""

    registry_name: str = Field(default="default-registry", description="Glue registry name")

    # Transport
    region: Optional[str] = Field(default=None, description="AWS region (AWS chain if unset)")
    endpoint_url: Optional[str] = Field(default=None, description="Custom endpoint (LocalStack)")
    access_key_id: Optional[str] = Field(default=None, description="AWS access key ID")
    secret_access_key: Optional[SecretStr] = Field(default=None, description="AWS secret key")
    session_token: Optional[SecretStr] = Field(default=None, description="AWS session token")

    # Outbound call budget
    max_concurrent_calls: int = Field(default=1, description="Max concurrent registry calls")

    # Timeouts and retries are handled by botocore
    connect_timeout: float = Field(default=10.0, description="Connect timeout seconds")
    read_timeout: float = Field(default=30.0, description="Read timeout seconds")
    max_attempts: int = Field(default=3, description="Total attempts per call")

    model_config = {"env_prefix": "GLUE_SCHEMA_REGISTRY_"}

    def client_kwargs(self) -> dict[str, Any]:
        """Keyword arguments for session.create_client("glue", ...)."""
        kwargs: dict[str, Any] = {
            "config": AioConfig(
                connect_timeout=self.connect_timeout,
                read_timeout=self.read_timeout,
                retries={"max_attempts": self.max_attempts, "mode": "standard"},
            ),
        }
        if self.region:
            kwargs["region_name"] = self.region
        if self.endpoint_url:
            kwargs["endpoint_url"] = self.endpoint_url
        if self.access_key_id:
            kwargs["aws_access_key_id"] = self.access_key_id
            if self.secret_access_key is not None:
                kwargs["aws_secret_access_key"] = self.secret_access_key.get_secret_value()
            if self.session_token is not None:
                kwargs["aws_session_token"] = self.session_token.get_secret_value()
        return kwargs

    def log_fields(self) -> dict[str, Any]:
        """Non-secret settings for structured log records."""
        return {
            "registry_name": self.registry_name,
            "region": self.region,
            "endpoint": self.endpoint_url or "AWS",
            "max_concurrent_calls": self.max_concurrent_calls,
        }
