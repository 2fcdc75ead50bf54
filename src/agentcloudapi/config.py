from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    # Database settings
    database_url: str | None = None
    sqlite_path: str = "./agentcloud_local.db"

    # Token and form protection secrets
    jwt_secret: str | None = None
    csrf_secret: str | None = None
    jwt_expiry_seconds: int = 60 * 60 * 24 * 7

    # Airbyte API settings
    airbyte_api_url: str = "http://localhost:8006/api/v1"
    airbyte_username: str = "airbyte"
    airbyte_password: str = ""
    airbyte_workspace_id: str | None = None
    airbyte_destination_id: str | None = None
    airbyte_timeout_seconds: float = 30.0

    # Uploaded files land here, one file per asset id
    asset_storage_path: str = "./assets"

    # Server settings
    host: str = "0.0.0.0"
    port: int = 8000

    # Environment setting
    environment: str = "production"
    log_level: str = "INFO"
    enable_scheduler: bool = True
    datasource_poll_minutes: int = 5

    def validate_required(self) -> None:
        required = ["jwt_secret"]
        missing = [r for r in required if not getattr(self, r)]
        if missing:
            raise RuntimeError(f"Missing required settings: {', '.join(missing)}")

    @property
    def sqlalchemy_url(self) -> str:
        """Database URL, falling back to a local SQLite file."""
        if self.database_url:
            return self.database_url
        return f"sqlite:///{self.sqlite_path}"

    @property
    def csrf_key(self) -> str:
        """Secret used to sign CSRF tokens, defaulting to the JWT secret."""
        return self.csrf_secret or self.jwt_secret

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()
settings.validate_required()
