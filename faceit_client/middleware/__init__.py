"""Error hierarchy and FastAPI exception handlers."""

from faceit_client.middleware.error_handler import (
    ApiError,
    ClientError,
    NetworkError,
    NoReachableEndpointError,
    register_error_handlers,
)

__all__ = [
    "ApiError",
    "ClientError",
    "NetworkError",
    "NoReachableEndpointError",
    "register_error_handlers",
]
