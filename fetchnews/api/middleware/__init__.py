"""
API Middleware Package.

Exports authentication dependencies.
"""

from fetchnews.api.middleware.auth import get_runtime_settings, verify_admin_token

__all__ = [
    "verify_admin_token",
    "get_runtime_settings",
]
