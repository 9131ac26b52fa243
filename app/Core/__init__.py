"""Core package exposing shared configuration helpers."""

from .config import get_settings
from .secrets import get_secret, is_google_auth_configured, clear_secrets_cache

__all__ = ["get_settings", "get_secret", "is_google_auth_configured", "clear_secrets_cache"]
