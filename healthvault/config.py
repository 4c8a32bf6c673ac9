"""
Application configuration settings loaded from environment variables.
Uses pydantic_settings for validation and type conversion.
"""
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List, Literal, Optional

class Settings(BaseSettings):
    """
    Application settings class with environment variable validation.

    Attributes:
        database_url: SQLAlchemy connection string for the identity store
        secret_key: Secret used to sign access tokens
        refresh_secret_key: Distinct secret used to sign refresh tokens
        algorithm: Algorithm used for JWT encoding (typically HS256)
        access_token_expire_minutes: Access token lifetime in minutes
        refresh_token_expire_days: Refresh token (and session) lifetime in days
        password_min_length: Minimum accepted password length at signup

        # Verification settings
        verification_mode: "registry" checks doctor/staff claims against the
            credential registry, "domain" checks the email domain only
        doctor_email_domains: Allowed email domains for doctors in domain mode
        staff_email_domains: Allowed email domains for staff in domain mode

        # Firebase settings
        firebase_credentials_path: Service account JSON for the document store
            and the external identity provider (hybrid auth disabled when unset)
        firebase_project_id: Optional explicit project id
        registry_timeout_seconds: Upper bound for a single registry call

        # Upload settings
        storage_backend: "local" or "cloudinary"
        upload_dir: Root folder for locally stored verification documents
        max_upload_size_mb: Maximum verification document size

        # Bootstrap admin settings (optional)
        bootstrap_admin_email: Optional admin email for first admin creation
        bootstrap_admin_password: Optional admin password for first admin creation
    """
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    # Database settings
    database_url: str = "sqlite:///./healthvault.db"

    # JWT settings
    secret_key: str
    refresh_secret_key: str
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 15
    refresh_token_expire_days: int = 7
    password_min_length: int = 6

    # Verification settings
    verification_mode: Literal["registry", "domain"] = "registry"
    doctor_email_domains: List[str] = []
    staff_email_domains: List[str] = []

    # Firebase settings (document store + external identity provider)
    firebase_credentials_path: Optional[str] = None
    firebase_project_id: Optional[str] = None
    registry_timeout_seconds: float = 10.0

    # Upload settings
    storage_backend: Literal["local", "cloudinary"] = "local"
    upload_dir: str = "./uploads"
    max_upload_size_mb: int = 5

    # Cloudinary settings (only read when storage_backend is "cloudinary")
    cloudinary_cloud_name: Optional[str] = None
    cloudinary_api_key: Optional[str] = None
    cloudinary_api_secret: Optional[str] = None

    # HTTP settings
    cors_origins: List[str] = ["http://localhost:3000", "http://localhost:8080"]
    rate_limit_enabled: bool = True
    rate_limit_requests: int = 100
    rate_limit_window_seconds: int = 900
    expose_error_details: bool = False

    # Bootstrap admin settings (optional - only used for first admin creation)
    bootstrap_admin_email: Optional[str] = None
    bootstrap_admin_password: Optional[str] = None

    @property
    def max_upload_size_bytes(self) -> int:
        return self.max_upload_size_mb * 1024 * 1024

# Create settings instance
settings = Settings()
