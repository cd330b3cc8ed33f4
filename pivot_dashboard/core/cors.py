"""CORS configuration for the dashboard frontend."""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple, Type

from fastapi.middleware.cors import CORSMiddleware

from pivot_dashboard.core.config import Settings

MiddlewareConfig = Tuple[Type[CORSMiddleware], Dict[str, Any]]


def _parse_csv(csv: str) -> List[str]:
    """Split a comma-separated string into trimmed items, omitting empties."""
    return [s.strip() for s in csv.split(",") if s and s.strip()]


def create_cors_middleware(settings: Settings) -> Optional[MiddlewareConfig]:
    """Return a ``CORSMiddleware`` configuration when origins are configured.

    The frontend only reads snapshots and posts refresh/ticker actions, so the
    allowed methods are limited to those. A ``*`` entry switches to
    ``allow_origin_regex`` with credentials off, since Starlette refuses
    credentials together with a wildcard origin list.
    """
    origins = _parse_csv(settings.CORS_ALLOW_ORIGINS or "")
    if not origins:
        return None

    kwargs: Dict[str, Any] = {
        "allow_methods": ["GET", "POST", "PUT"],
        "allow_headers": ["*"],
    }
    if "*" in origins:
        kwargs.update({"allow_origin_regex": ".*", "allow_credentials": False})
    else:
        kwargs.update({"allow_origins": origins, "allow_credentials": True})

    return CORSMiddleware, kwargs


__all__ = ["create_cors_middleware"]
