"""Runtime configuration for the citation pipeline.

Every knob has a default and can be overridden through the environment
(``CITATIONS_CONCURRENCY=2``) or a ``.env`` file.
"""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class PipelineSettings(BaseSettings):
    """Pacing, concurrency and retry tunables."""

    model_config = SettingsConfigDict(
        env_prefix="CITATIONS_", env_file=".env", extra="ignore"
    )

    concurrency: int = Field(
        default=1, ge=1, description="Max concurrent classifications per source record"
    )
    base_delay_ms: int = Field(
        default=500, ge=0, description="Pacing delay before each classification call"
    )
    inter_record_delay_ms: int = Field(
        default=500, ge=0, description="Delay between source records"
    )
    retry_budget: int = Field(
        default=5, ge=1, description="Total attempts per provider call"
    )
    backoff_base_ms: int = Field(
        default=800, ge=0, description="Base backoff delay before the first retry"
    )
    backoff_max_ms: int = Field(
        default=30_000, ge=0, description="Upper bound on a single backoff delay"
    )
    request_timeout_s: float = Field(
        default=30.0, gt=0, description="Timeout for each provider or store request"
    )
    max_url_length: int = Field(
        default=2048, ge=1, description="URLs longer than this are skipped"
    )
    page_size: int = Field(
        default=500, ge=1, description="Source records fetched per listing page"
    )

    @property
    def base_delay_s(self) -> float:
        return self.base_delay_ms / 1000

    @property
    def inter_record_delay_s(self) -> float:
        return self.inter_record_delay_ms / 1000


class ProviderSettings(BaseSettings):
    """Credentials for classification providers and the hosted store."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    google_gemini_api_key: str = ""
    google_gemini_model: str = "gemini-2.5-flash"
    cerebras_api_key: str = ""
    cerebras_model: str = "llama3.1-8b"
    supabase_url: str = ""
    supabase_service_role_key: str = ""
