"""
Configuration management for the Mosaic server
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="MOSAIC_",
        case_sensitive=False,
        # Allow extra fields for plugin-specific configs
        extra="allow",
    )

    # Document store ("memory://" or any SQLAlchemy URL)
    database_url: str = "memory://"
    sql_echo: bool = False

    # Plugins
    plugins_config_path: str | None = None

    # Auth
    auth_provider: str = "none"  # 'none', 'jwt'
    auth_config: dict = {}
    jwt_secret: str | None = None
    jwt_algorithm: str = "HS256"
    jwt_role_claim: str = "role"
    default_role: str | None = None  # role granted to callers in no-auth mode

    # Execution
    max_writes_per_mutation: int = 1

    # API Settings
    api_host: str = "0.0.0.0"
    api_port: int = 8090
    api_reload: bool = False
    cors_origins: list[str] = ["http://localhost:3000"]

    # Environment
    environment: str = "development"  # 'development', 'staging', 'production'
    debug: bool = False
    log_level: str = "INFO"


# Global settings instance
settings = Settings()
