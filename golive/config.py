"""Configuration management using Pydantic Settings."""

import os

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

MAX_VIEWER_TOKEN_TTL_SECONDS = 7 * 24 * 60 * 60


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        # Only load .env file in development (not Lambda/production)
        env_file=".env" if os.getenv("AWS_EXECUTION_ENV") is None else None,
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # AWS Configuration
    aws_region: str = "us-east-1"
    aws_access_key_id: str | None = None
    aws_secret_access_key: str | None = None
    aws_session_token: str | None = None  # Required for temporary credentials
    aws_max_attempts: int = 3
    aws_connect_timeout: int = 5
    aws_read_timeout: int = 30

    @field_validator(
        "aws_access_key_id",
        "aws_secret_access_key",
        "aws_session_token",
        "teardown_function_name",
        mode="before",
    )
    @classmethod
    def convert_empty_string_to_none(cls, v):
        """Treat empty strings as unset (IAM role credentials, no teardown function)."""
        if v is None:
            return None
        if isinstance(v, str) and v.strip() == "":
            return None
        return v

    # DynamoDB Configuration
    dynamodb_endpoint_url: str | None = None
    dynamodb_table_events: str = "golive-events"
    dynamodb_table_viewers: str = "golive-viewers"
    dynamodb_table_payments: str = "golive-payments"
    dynamodb_table_sessions: str = "golive-sessions"
    dynamodb_table_admins: str = "golive-admins"
    dynamodb_table_event_secrets: str = "golive-event-secrets"

    # Credentials
    viewer_jwt_secret: str = "change-me-viewer-secret"
    viewer_token_ttl_seconds: int = 24 * 60 * 60
    admin_jwt_secret: str = "change-me-admin-secret"
    jwt_leeway_seconds: int = 10

    @field_validator("viewer_token_ttl_seconds")
    @classmethod
    def cap_viewer_token_ttl(cls, v: int) -> int:
        """Viewer credentials live at most seven days."""
        if v <= 0 or v > MAX_VIEWER_TOKEN_TTL_SECONDS:
            raise ValueError(
                f"viewer_token_ttl_seconds must be between 1 and {MAX_VIEWER_TOKEN_TTL_SECONDS}"
            )
        return v

    # Event secrets
    event_secret_key: str = "change-me-event-secret-key"
    bcrypt_rounds: int = 10
    allow_legacy_plaintext_passwords: bool = False
    identity_key_per_event_salt: bool = True

    # Payments
    stripe_secret_key: str = ""
    stripe_webhook_secret: str = ""
    stripe_webhook_tolerance_seconds: int = 300
    stripe_max_network_retries: int = 2
    frontend_url: str = "http://localhost:3000"
    payment_product_name: str = "Event access"

    # Workers
    password_email_function_name: str = "golive-send-event-password"
    provisioning_function_name: str | None = "golive-create-live-stream"

    # Object store
    vod_upload_bucket: str = "golive-vod-uploads"
    vod_output_bucket: str = "golive-vod-output"
    signed_url_ttl_seconds: int = 3600

    # Teardown
    teardown_poll_interval_seconds: int = 15
    teardown_budget_seconds: int = 15 * 60
    # A deletion still marked in progress this long after the budget ran out is abandoned
    teardown_stale_grace_seconds: int = 120
    # Lambda that runs teardowns; inside Lambda this defaults to the function itself.
    # Unset means teardown runs as a background task of the delete request.
    teardown_function_name: str | None = Field(
        None,
        validation_alias=AliasChoices("teardown_function_name", "aws_lambda_function_name"),
    )

    # Application Configuration
    log_level: str = "INFO"
    api_title: str = "GoLive Events API"
    api_version: str = "1.0.0"
    api_description: str = "Control plane for live and on-demand video events"

    # API Limits
    max_request_size_bytes: int = 512 * 1024  # 512KB
    default_list_limit: int = 50
    max_list_limit: int = 200


# Global settings instance
settings = Settings()
