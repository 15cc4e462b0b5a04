"""FACE.IT API connectivity client — endpoint discovery and resilient requests."""

from faceit_client.connection import ApiConnection

__all__ = ["ApiConnection"]
