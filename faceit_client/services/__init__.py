"""Request execution, token storage and domain API call sites."""

from faceit_client.services.request_executor import Disposition, ResilientRequestExecutor
from faceit_client.services.school_api import SchoolApi
from faceit_client.services.token_store import InMemoryTokenStore, TokenStore

__all__ = [
    "Disposition",
    "InMemoryTokenStore",
    "ResilientRequestExecutor",
    "SchoolApi",
    "TokenStore",
]
