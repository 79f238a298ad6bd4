from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings can be configured via .env file or environment variables.
    """

    # Database
    DATABASE_URL: str
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20

    # Session tokens
    SECRET_KEY: str
    SESSION_TOKEN_ALGORITHM: str = "HS256"
    SESSION_EXPIRE_DAYS: int = 30

    # Credential hashing (passlib scheme names, comma-separated, first is default)
    PASSWORD_SCHEMES: str = "pbkdf2_sha256"

    # Application
    APP_NAME: str = "AccountHub API"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = True

    # CORS
    CORS_ORIGINS: str = ""
    CORS_ALLOW_CREDENTIALS: bool = True

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
    )

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS_ORIGINS from comma-separated string"""
        if not self.CORS_ORIGINS:
            return []
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]

    @property
    def password_schemes_list(self) -> list[str]:
        """Parse PASSWORD_SCHEMES from comma-separated string"""
        return [s.strip() for s in self.PASSWORD_SCHEMES.split(",") if s.strip()]


# Global settings instance
settings = Settings()
