"""Pydantic Settings for the API connectivity client.

All environment variables use the FACEIT_ prefix.
Example: FACEIT_API_BASE_URL=http://10.0.0.5:8000/api, FACEIT_FAILURE_THRESHOLD=5
"""

from __future__ import annotations

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings


class ClientSettings(BaseSettings):
    """Client configuration validated from environment variables."""

    # Diagnostics service
    port: int = 8002
    log_level: str = "INFO"

    # Candidate registry
    api_base_url: str = "http://localhost:8000/api"  # deployment default, always tried last
    candidate_urls: list[str] = [
        "http://localhost:8000/api",
        "http://127.0.0.1:8000/api",
        "http://192.168.1.111:8000/api",
    ]
    endpoints_path: str | None = None  # YAML file of named candidates

    # Prober
    probe_path: str = "/system/health/"
    probe_timeout_seconds: float = Field(default=5.0, gt=0)
    probe_strategy: Literal["sequential", "parallel"] = "sequential"

    # Request executor
    request_timeout_seconds: float = Field(default=30.0, gt=0)
    retry_on_not_found: bool = True

    # Health tracker
    failure_threshold: int = Field(default=3, ge=1)
    redetect_cooldown_seconds: int = Field(default=30, ge=0)

    # Connection monitor
    monitor_interval_seconds: int = Field(default=300, ge=1)  # 5 minutes
    history_size: int = Field(default=5, ge=1)

    model_config = {"env_prefix": "FACEIT_"}
