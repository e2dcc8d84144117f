"""
Clinic placement configuration.

Settings come from environment variables (or .env), with mock modes for
running without Snowflake or an SMTP relay.
"""

from .settings import Settings, get_settings

__all__ = ["Settings", "get_settings"]
