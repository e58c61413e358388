"""
Settings for the Route 53 Domains client.

Values come from ``ROUTE53_DOMAINS_*`` environment variables and are
validated when the settings object is built, so a bad configuration fails
before the first request is made.
"""
from typing import Optional

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from domain_registration_client.models import PollPolicy


class Settings(BaseSettings):
    """Client settings, each field read from ``ROUTE53_DOMAINS_<FIELD>``"""

    model_config = SettingsConfigDict(
        env_prefix="ROUTE53_DOMAINS_",
        env_ignore_empty=True,
        frozen=True,
    )

    # Route 53 Domains is only served from us-east-1
    region: str = "us-east-1"
    endpoint_url: Optional[str] = None
    profile: Optional[str] = None
    timeout: float = Field(default=30.0, gt=0)

    poll_initial_ms: int = Field(default=1000, gt=0)
    poll_max_ms: int = Field(default=30000, gt=0)
    poll_max_retries: int = Field(default=60, ge=1)

    @model_validator(mode="after")
    def _check_poll_bounds(self) -> "Settings":
        if self.poll_initial_ms > self.poll_max_ms:
            raise ValueError(
                f"poll_initial_ms ({self.poll_initial_ms}) must not exceed "
                f"poll_max_ms ({self.poll_max_ms})"
            )
        return self

    @property
    def poll_policy(self) -> PollPolicy:
        return PollPolicy(
            initial_interval_ms=self.poll_initial_ms,
            max_interval_ms=self.poll_max_ms,
            max_retries=self.poll_max_retries,
        )

    @property
    def resolved_endpoint_url(self) -> str:
        if self.endpoint_url:
            return self.endpoint_url.rstrip("/")
        return f"https://route53domains.{self.region}.amazonaws.com"


def create_settings_from_env(**overrides) -> Settings:
    """Build Settings from the environment; keyword overrides win"""
    return Settings(**overrides)
