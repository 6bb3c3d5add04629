"""HTTP adapter for the GitHub client operations.

Routes are mounted under ``/api/github`` and return ``{"error": message}``
bodies with a status derived from the operation's ErrorKind.
"""

from .routes import STATUS_BY_ERROR_KIND, ApiError, ServiceContainer, get_services, router

__all__ = [
    "ApiError",
    "STATUS_BY_ERROR_KIND",
    "ServiceContainer",
    "get_services",
    "router",
]
