"""
Application configuration using Pydantic settings.

Configuration is loaded from environment variables with sensible defaults.
Using Pydantic's BaseSettings means we get:
- Type validation at startup (fail fast if config is wrong)
- Documentation of what's required vs optional
- Easy testing with different configurations

Mock modes enable local development without Snowflake or an SMTP relay.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    For lists (tokens, emails, origins), use comma-separated values in env.
    """

    # API Configuration
    api_title: str = "Swim Clinic Placement API"

    # Authentication
    auth_tokens: str = Field(
        default="",
        description="Comma-separated token=email pairs accepted as bearer tokens."
    )
    admin_allow_emails: str = Field(
        default="",
        description="Comma-separated emails that are always admins, in addition to the admin collection."
    )

    # Snowflake Configuration
    snowflake_account: str = Field(
        default="",
        description="Snowflake account identifier"
    )
    snowflake_user: str = Field(
        default="",
        description="Snowflake service account username"
    )
    snowflake_password: str = Field(
        default="",
        description="Snowflake service account password"
    )
    snowflake_private_key_path: Optional[str] = Field(
        default=None,
        description="Path to RSA private key file for key-pair authentication"
    )
    snowflake_private_key_base64: Optional[str] = Field(
        default=None,
        description="Base64-encoded private key (for deployment, alternative to file path)"
    )
    snowflake_database: str = Field(
        default="SWIMSCHOOL",
        description="Snowflake database name"
    )
    snowflake_schema: str = Field(
        default="CLINIC",
        description="Snowflake schema name"
    )
    snowflake_warehouse: str = Field(
        default="COMPUTE_WH",
        description="Snowflake warehouse for query execution"
    )
    snowflake_role: Optional[str] = Field(
        default=None,
        description="Snowflake role to use (optional)"
    )
    snowflake_documents_table: str = Field(
        default="DOCUMENTS",
        description="Table holding all clinic documents"
    )
    snowflake_mock_mode: bool = Field(
        default=False,
        description="Use the in-memory document store instead of Snowflake."
    )

    # Notifications
    smtp_server: str = Field(default="", description="SMTP relay host")
    smtp_port: int = Field(default=25, description="SMTP relay port")
    smtp_user: Optional[str] = Field(default=None, description="SMTP username, if the relay needs one")
    smtp_password: Optional[str] = Field(default=None, description="SMTP password, if the relay needs one")
    sender_email: str = Field(default="", description="From address for notifications")
    notify_email: str = Field(
        default="",
        description="Where new-submission notifications go. Empty disables them."
    )
    notifications_mock_mode: bool = Field(
        default=False,
        description="Record notifications in memory instead of sending them."
    )

    # Clinic behavior
    default_season: str = Field(
        default="Winter Break 2025-26",
        description="Season assigned to submissions that do not name one"
    )
    default_lane_capacity: int = Field(
        default=3,
        description="Capacity assumed for a slot that has no placement yet"
    )
    max_recommended_slots: int = Field(
        default=10,
        description="How many slots to recommend per submission"
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )

    # CORS
    cors_origins: str = Field(
        default="http://localhost:3000",
        description="Comma-separated list of allowed CORS origins. Use * for development only."
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    @property
    def auth_tokens_map(self) -> dict[str, str]:
        """Parse token=email pairs. Malformed pairs are ignored."""
        tokens = {}
        for pair in self.auth_tokens.split(","):
            token, sep, email = pair.strip().partition("=")
            if sep and token.strip() and email.strip():
                tokens[token.strip()] = email.strip().lower()
        return tokens

    @property
    def admin_allow_emails_list(self) -> list[str]:
        return [email.strip().lower() for email in self.admin_allow_emails.split(",") if email.strip()]

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse comma-separated CORS origins into a list."""
        if self.cors_origins == "*":
            return ["*"]
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    def validate_required_fields(self) -> list[str]:
        """
        Validate that required fields are set based on mock mode settings.

        Returns list of missing required fields.
        This is separate from Pydantic validation because requirements
        depend on whether we're in mock mode.
        """
        missing = []

        if not self.auth_tokens_map:
            missing.append("AUTH_TOKENS")

        if not self.snowflake_mock_mode:
            if not self.snowflake_account:
                missing.append("SNOWFLAKE_ACCOUNT")
            if not self.snowflake_user:
                missing.append("SNOWFLAKE_USER")
            has_key = self.snowflake_private_key_path or self.snowflake_private_key_base64
            if not self.snowflake_password and not has_key:
                missing.append("SNOWFLAKE_PASSWORD or SNOWFLAKE_PRIVATE_KEY_PATH")

        if self.notify_email and not self.notifications_mock_mode:
            if not self.smtp_server:
                missing.append("SMTP_SERVER")
            if not self.sender_email:
                missing.append("SENDER_EMAIL")

        return missing


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Using lru_cache means we only load settings once per process.
    For tests, you can call get_settings.cache_clear() to reset.
    """
    return Settings()
