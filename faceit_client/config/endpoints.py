"""Candidate endpoint models and YAML loader.

Candidates are the backend base URLs the prober may try, each with a
human-readable name and a priority (lower is tried first).
"""

from __future__ import annotations

import logging
from pathlib import Path

import yaml
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class CandidateEndpoint(BaseModel):
    """One possible location of the backend API."""

    url: str = Field(min_length=1)
    name: str = ""
    priority: int = Field(default=1, ge=1)


DEFAULT_CANDIDATES: tuple[CandidateEndpoint, ...] = (
    CandidateEndpoint(url="http://localhost:8000/api", name="Localhost", priority=1),
    CandidateEndpoint(url="http://127.0.0.1:8000/api", name="Local IP", priority=2),
    CandidateEndpoint(url="http://192.168.1.111:8000/api", name="Network IP (WiFi)", priority=3),
)


def load_candidates(yaml_path: str) -> list[CandidateEndpoint]:
    """Parse a candidate endpoints YAML file into typed CandidateEndpoint objects.

    Args:
        yaml_path: Path to the YAML configuration file.

    Returns:
        The candidates in file order. If the file is missing or unusable,
        returns the built-in defaults.
    """
    path = Path(yaml_path)

    if not path.exists():
        logger.warning("Endpoints file not found at %s — using built-in defaults", yaml_path)
        return list(DEFAULT_CANDIDATES)

    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        logger.error("Failed to parse endpoints YAML at %s: %s", yaml_path, exc)
        return list(DEFAULT_CANDIDATES)

    if not isinstance(raw, dict) or not isinstance(raw.get("endpoints"), list):
        logger.warning("Endpoints YAML missing 'endpoints' list — using built-in defaults")
        return list(DEFAULT_CANDIDATES)

    candidates: list[CandidateEndpoint] = []
    for index, entry in enumerate(raw["endpoints"]):
        try:
            candidates.append(CandidateEndpoint.model_validate(entry))
        except Exception as exc:
            logger.error("Invalid endpoint entry #%d: %s — skipping", index, exc)

    if not candidates:
        logger.warning("Endpoints YAML at %s has no valid entries — using built-in defaults", yaml_path)
        return list(DEFAULT_CANDIDATES)

    return candidates
