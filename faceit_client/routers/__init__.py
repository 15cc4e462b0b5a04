"""Diagnostics routers."""

from faceit_client.routers.connection import create_connection_router

__all__ = ["create_connection_router"]
