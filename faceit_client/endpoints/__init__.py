"""Candidate registry and reachability prober."""

from faceit_client.endpoints.prober import EndpointProber
from faceit_client.endpoints.registry import CandidateRegistry

__all__ = ["CandidateRegistry", "EndpointProber"]
