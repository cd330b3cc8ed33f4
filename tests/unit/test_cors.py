from fastapi.middleware.cors import CORSMiddleware

from pivot_dashboard.core.config import Settings
from pivot_dashboard.core.cors import create_cors_middleware


def test_cors_middleware_disabled_when_origins_empty():
    assert create_cors_middleware(Settings(CORS_ALLOW_ORIGINS="")) is None
    assert create_cors_middleware(Settings(CORS_ALLOW_ORIGINS=" , ")) is None


def test_cors_middleware_enabled_with_origins():
    middleware = create_cors_middleware(Settings(CORS_ALLOW_ORIGINS="http://localhost:3000, https://dash.example.com"))
    assert middleware is not None
    cls, options = middleware
    assert cls is CORSMiddleware
    assert options["allow_origins"] == ["http://localhost:3000", "https://dash.example.com"]
    assert options["allow_credentials"] is True
    assert options["allow_methods"] == ["GET", "POST", "PUT"]


def test_cors_middleware_wildcard_disables_credentials_and_uses_regex():
    cls, options = create_cors_middleware(Settings(CORS_ALLOW_ORIGINS="*"))
    assert cls is CORSMiddleware
    assert options["allow_origin_regex"] == ".*"
    assert options["allow_credentials"] is False
    assert "allow_origins" not in options
