"""
Base settings class for environment configuration.

Uses Pydantic Settings for automatic environment variable loading.
Extend this class for application-specific settings.

Example:
    from common.config import BaseAppSettings

    class Settings(BaseAppSettings):
        # App-specific settings
        TYPING_TTL_SECONDS: float = 5.0

    settings = Settings()
    print(settings.MONGODB_URI)
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class BaseAppSettings(BaseSettings):
    """
    Base settings class with common configuration options.

    Automatically loads values from environment variables.
    Extend this class for application-specific settings.
    """

    # ==========================================================================
    # Database Settings
    # ==========================================================================
    MONGODB_URI: str = "mongodb://localhost:27017"
    MONGODB_DATABASE: str = "circles"

    # "memory" keeps everything in process, "mongo" uses MONGODB_URI
    REPOSITORY_BACKEND: str = "memory"

    # ==========================================================================
    # Runtime Settings
    # ==========================================================================
    DEBUG: bool = False
    ENVIRONMENT: str = "development"  # development, staging, production
    LOG_LEVEL: str = "INFO"

    # ==========================================================================
    # Pydantic Settings Configuration
    # ==========================================================================
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="allow",  # Allow app-specific settings
        case_sensitive=True,
    )

    def validate_required(self) -> None:
        """
        Validate that required settings are configured.

        Raises:
            ValueError: If required settings are missing
        """
        errors = []

        if self.REPOSITORY_BACKEND not in ("memory", "mongo"):
            errors.append("REPOSITORY_BACKEND must be 'memory' or 'mongo'")

        if self.REPOSITORY_BACKEND == "mongo" and not self.MONGODB_URI:
            errors.append("MONGODB_URI is required when using the mongo backend")

        if errors:
            raise ValueError("Configuration errors:\n- " + "\n- ".join(errors))
