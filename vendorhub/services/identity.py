"""
Identity — current-user lookup.

Sessions are issued and checked by the upstream identity provider; by the
time a request reaches us the provider has put the user id in a header.
"""

from fastapi import Request

from vendorhub.config import settings


def get_current_user_id(request: Request) -> str | None:
    """FastAPI dependency — the caller's user id, or None for anonymous/system calls."""
    user_id = request.headers.get(settings.user_header, "").strip()
    return user_id or None
