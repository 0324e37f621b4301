"""
Application configuration settings loaded from environment variables.
Uses pydantic_settings for validation and type conversion.
"""
from functools import lru_cache
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings class with environment variable validation.

    Attributes:
        database_url: SQLAlchemy connection string
        secret_key: Secret key for session token signing
        algorithm: Algorithm used for session token signing (HS256)
        session_token_expire_days: Session token lifetime in days

        # Password reset OTP
        otp_length: Number of digits in a reset code
        otp_expire_seconds: Lifetime of a reset code
        otp_max_attempts: Wrong guesses allowed before a code is locked
        reset_token_expire_minutes: Lifetime of the token returned by verify-otp

        # Email settings
        mail_server: SMTP server hostname
        mail_port: SMTP server port
        mail_username: SMTP server username
        mail_password: SMTP server password
        mail_from: Sender email address
        mail_from_name: Sender display name
        mail_starttls: Whether to use STARTTLS
        mail_timeout: SMTP socket timeout in seconds
        mail_max_retries: Delivery attempts per message
        mail_retry_delay: Seconds between delivery attempts
        tolerate_delivery_failure: Report OTP issuance as successful even
            when the email could not be delivered

        # Firebase (federated sign-in)
        firebase_service_account_json: Service account JSON document
        firebase_service_account_path: Path to the service account JSON file
        firebase_project_id: Project id override
    """
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    # Database settings
    database_url: str = "sqlite:///./chirotrack.db"

    # Session token settings
    secret_key: str
    algorithm: str = "HS256"
    session_token_expire_days: int = 7

    # Password reset OTP settings
    otp_length: int = 5
    otp_expire_seconds: int = 180
    otp_max_attempts: int = 3
    reset_token_expire_minutes: int = 15

    # Email settings
    mail_server: Optional[str] = None
    mail_port: int = 587
    mail_username: Optional[str] = None
    mail_password: Optional[str] = None
    mail_from: Optional[str] = None
    mail_from_name: str = "ChiroTrack"
    mail_starttls: bool = True
    mail_timeout: int = 30
    mail_max_retries: int = 3
    mail_retry_delay: float = 2.0
    tolerate_delivery_failure: bool = True

    # Firebase settings
    firebase_service_account_json: Optional[str] = None
    firebase_service_account_path: Optional[str] = None
    firebase_project_id: Optional[str] = None

    # Application settings
    app_name: str = "ChiroTrack Backend API"
    cors_origins: List[str] = ["http://localhost:3000"]
    log_level: str = "INFO"


@lru_cache()
def get_settings() -> Settings:
    """
    Load settings from the environment once per process.

    Only the application factory calls this; everything else receives the
    settings object explicitly.
    """
    return Settings()
