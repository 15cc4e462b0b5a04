"""Configuration module — settings and candidate endpoints."""

from faceit_client.config.endpoints import CandidateEndpoint, load_candidates
from faceit_client.config.settings import ClientSettings

__all__ = [
    "CandidateEndpoint",
    "ClientSettings",
    "load_candidates",
]
