"""Configuration models for the TPA pricing-rule tooling.

All client, search, and designer behavior is controlled via Pydantic models defined here.
Configuration comes from a JSON file or from environment variables.
"""

from __future__ import annotations

import json
import os
from pathlib import Path

from pydantic import BaseModel, Field

ENV_BASE_URL = "TPA_PRICING_API_BASE_URL"
ENV_FALLBACK_BASE_URL = "API_BASE_URL"
ENV_API_KEY = "TPA_PRICING_API_KEY"
ENV_TIMEOUT = "TPA_PRICING_TIMEOUT"


class ClientConfig(BaseModel):
    """Connection settings for the pricing and procedures REST backend."""

    base_url: str = Field(default="", description="Backend root URL, e.g. 'https://tpa.example.com'")
    procedures_base_path: str | None = Field(
        default=None,
        description="Path prefix for procedure endpoints; '/api/v1' when a base URL is set, else '/api'",
    )
    timeout_seconds: float = Field(default=30.0, gt=0, description="Per-request timeout")
    api_key: str | None = Field(default=None, description="Sent as the X-API-Key header when set")

    @property
    def normalized_base_url(self) -> str:
        return self.base_url.rstrip("/")

    @property
    def procedures_path(self) -> str:
        if self.procedures_base_path is not None:
            return "/" + self.procedures_base_path.strip("/")
        return "/api/v1" if self.normalized_base_url else "/api"


class SearchConfig(BaseModel):
    """Debounce and paging defaults for the price-list and procedure lookups."""

    debounce_seconds: float = Field(
        default=0.3, ge=0, description="Quiet period before a typed search is sent"
    )
    price_list_page_size: int = Field(default=20, gt=0, description="Price lists per page")
    procedure_page_size: int = Field(default=10, gt=0, description="Procedures per page")


class DesignerConfig(BaseModel):
    """Defaults applied when a fresh rule form is created."""

    default_priority: int = Field(default=1, description="Priority of a new rule")
    default_point_value: float = Field(
        default=0.35, ge=0, description="Currency value of one point for POINT pricing previews"
    )


class PricingConfig(BaseModel):
    """Top-level configuration for the pricing-rule tooling."""

    client: ClientConfig = Field(default_factory=ClientConfig)
    search: SearchConfig = Field(default_factory=SearchConfig)
    designer: DesignerConfig = Field(default_factory=DesignerConfig)


def config_from_env(environ: dict[str, str] | None = None) -> PricingConfig:
    """Build a config from environment variables, falling back to defaults."""
    env = os.environ if environ is None else environ
    client_kwargs: dict[str, object] = {
        "base_url": env.get(ENV_BASE_URL) or env.get(ENV_FALLBACK_BASE_URL) or "",
    }
    if env.get(ENV_API_KEY):
        client_kwargs["api_key"] = env[ENV_API_KEY]
    if env.get(ENV_TIMEOUT):
        client_kwargs["timeout_seconds"] = float(env[ENV_TIMEOUT])
    return PricingConfig(client=ClientConfig(**client_kwargs))


def load_config(config_file: Path | None = None) -> PricingConfig:
    """Load config from a JSON file when given, otherwise from the environment.

    Args:
        config_file: Optional path to a JSON document shaped like :class:`PricingConfig`.

    Returns:
        The resolved configuration.

    Raises:
        FileNotFoundError: If ``config_file`` is given but does not exist.
    """
    if config_file is None:
        return config_from_env()
    if not config_file.exists():
        raise FileNotFoundError(f"Config file not found: {config_file}")
    raw = json.loads(config_file.read_text())
    return PricingConfig(**raw)
