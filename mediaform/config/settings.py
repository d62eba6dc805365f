"""
Settings for the form service, read from the environment and .env.

R2 and Snowflake each have a mock mode; with both on, the service runs
with no credentials at all.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Every field maps to the upper-cased environment variable of the same name."""

    api_title: str = "Media Form API"
    api_version: str = "v1"

    # Record store. Key-pair auth wins over the password when a key is set.
    snowflake_account: str = ""
    snowflake_user: str = ""
    snowflake_password: str = ""
    snowflake_private_key_path: Optional[str] = None
    snowflake_private_key_base64: Optional[str] = None
    snowflake_database: str = "MEDIAFORM"
    snowflake_schema: str = "SUBMISSIONS"
    snowflake_warehouse: str = "COMPUTE_WH"
    snowflake_role: Optional[str] = None
    snowflake_mock_mode: bool = False

    # Object store
    r2_account_id: str = ""
    r2_access_key_id: str = ""
    r2_secret_access_key: str = ""
    r2_bucket_name: str = "mediaform-uploads"
    r2_endpoint_url: Optional[str] = Field(
        default=None,
        description="Overrides the endpoint derived from r2_account_id",
    )
    r2_public_url: Optional[str] = Field(
        default=None,
        description="Public base URL of the bucket (r2.dev or custom domain); stored URLs start with it",
    )
    r2_mock_mode: bool = False

    # Submission limits
    max_files_per_kind: int = Field(
        default=10,
        ge=1,
        description="Most photos, and most videos, one submission may carry",
    )
    max_upload_size_mb: int = Field(
        default=100,
        ge=1,
        description="Cap on the combined size of all files in one submission",
    )
    max_concurrent_uploads: int = Field(
        default=4,
        ge=0,
        description="In-flight uploads per batch; 0 sends a whole batch at once",
    )

    log_level: str = "INFO"
    cors_origins: str = Field(default="*", description="Comma-separated origins")
    static_dir: str = Field(
        default="public",
        description="Form page directory; relative paths start at the project root",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    @property
    def cors_origins_list(self) -> list[str]:
        if self.cors_origins == "*":
            return ["*"]
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def r2_endpoint(self) -> str:
        if self.r2_endpoint_url:
            return self.r2_endpoint_url
        return f"https://{self.r2_account_id}.r2.cloudflarestorage.com"

    @property
    def max_upload_size_bytes(self) -> int:
        return self.max_upload_size_mb * 1024 * 1024

    def validate_required_fields(self) -> list[str]:
        """
        Names of the credentials still missing for the configured modes.

        Kept out of pydantic validation so a half-configured service can
        still start and report itself on /health/ready.
        """
        missing = []

        if not self.snowflake_mock_mode:
            if not self.snowflake_account:
                missing.append("SNOWFLAKE_ACCOUNT")
            if not self.snowflake_user:
                missing.append("SNOWFLAKE_USER")
            if not (
                self.snowflake_password
                or self.snowflake_private_key_path
                or self.snowflake_private_key_base64
            ):
                missing.append("SNOWFLAKE_PASSWORD or SNOWFLAKE_PRIVATE_KEY_PATH")

        if not self.r2_mock_mode:
            if not self.r2_account_id and not self.r2_endpoint_url:
                missing.append("R2_ACCOUNT_ID")
            if not self.r2_access_key_id:
                missing.append("R2_ACCESS_KEY_ID")
            if not self.r2_secret_access_key:
                missing.append("R2_SECRET_ACCESS_KEY")

        return missing


@lru_cache()
def get_settings() -> Settings:
    """Process-wide settings. Tests override it via app.dependency_overrides."""
    return Settings()
