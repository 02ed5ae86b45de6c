"""
Configuration management for the Rank Math Schema Generator.
Handles environment variables and application settings.
"""
import os
from typing import Optional, Union

from dotenv import load_dotenv
from sqlalchemy.engine import URL

load_dotenv()


class Config:
    """Application configuration loaded from environment variables."""

    # Server settings
    HOST: str = os.getenv("HOST", "0.0.0.0")
    PORT: int = int(os.getenv("PORT", "8000"))
    DEBUG: bool = os.getenv("DEBUG", "false").lower() == "true"

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    LOG_FORMAT: str = os.getenv("LOG_FORMAT", "json")  # json or console

    # Request settings (applies to every external call)
    REQUEST_TIMEOUT: int = int(os.getenv("REQUEST_TIMEOUT", "30"))
    MAX_RETRIES: int = int(os.getenv("MAX_RETRIES", "2"))

    # WordPress database (direct postmeta access)
    # Credentials are loaded from environment variables, NEVER hardcoded
    DATABASE_URL: Optional[str] = os.getenv("DATABASE_URL")
    DB_HOST: Optional[str] = os.getenv("DB_HOST")
    DB_PORT: int = int(os.getenv("DB_PORT", "3306"))
    DB_USER: Optional[str] = os.getenv("DB_USER")
    DB_PASSWORD: Optional[str] = os.getenv("DB_PASSWORD")
    DB_NAME: Optional[str] = os.getenv("DB_NAME")
    DB_TABLE_PREFIX: str = os.getenv("DB_TABLE_PREFIX", "wp_")
    DB_POOL_SIZE: int = int(os.getenv("DB_POOL_SIZE", "10"))

    # Backups
    BACKUPS_FILE: str = os.getenv("BACKUPS_FILE", os.path.join("data", "backups.json"))
    MAX_BACKUPS: int = int(os.getenv("MAX_BACKUPS", "50"))
    BACKUPS_PER_RECORD: int = int(os.getenv("BACKUPS_PER_RECORD", "5"))

    # AI generation (optional)
    CLAUDE_API_KEY: Optional[str] = os.getenv("CLAUDE_API_KEY")
    AI_MODEL: str = os.getenv("AI_MODEL", "claude-sonnet-4-20250514")
    AI_MAX_TOKENS: int = int(os.getenv("AI_MAX_TOKENS", "4000"))
    AI_TIMEOUT: int = int(os.getenv("AI_TIMEOUT", "90"))

    # Rank Math helper plugin (optional)
    HELPER_SITE_URL: Optional[str] = os.getenv("HELPER_SITE_URL")
    HELPER_TOKEN: Optional[str] = os.getenv("HELPER_TOKEN")

    # Generation defaults
    DEFAULT_COUNTRY: str = os.getenv("DEFAULT_COUNTRY", "US")
    CLASSIFIER_LOCATION_FLOOR: int = int(os.getenv("CLASSIFIER_LOCATION_FLOOR", "4"))
    ORG_CACHE_TTL: int = int(os.getenv("ORG_CACHE_TTL", "3600"))

    @classmethod
    def database_url(cls) -> Optional[Union[str, URL]]:
        """
        Build the SQLAlchemy URL for the WordPress database.

        DATABASE_URL wins when set; otherwise the DB_* variables become a
        mysql+pymysql URL object, so credentials need no escaping.
        """
        if cls.DATABASE_URL:
            return cls.DATABASE_URL
        if not cls.is_database_configured():
            return None
        return URL.create(
            "mysql+pymysql",
            username=cls.DB_USER,
            password=cls.DB_PASSWORD or None,
            host=cls.DB_HOST,
            port=cls.DB_PORT,
            database=cls.DB_NAME,
        )

    @classmethod
    def is_database_configured(cls) -> bool:
        """Check if database credentials are fully configured."""
        if cls.DATABASE_URL:
            return True
        return all([cls.DB_HOST, cls.DB_USER, cls.DB_NAME])

    @classmethod
    def get_missing_database_vars(cls) -> list:
        """Return list of missing database environment variables."""
        if cls.DATABASE_URL:
            return []
        missing = []
        if not cls.DB_HOST:
            missing.append("DB_HOST")
        if not cls.DB_USER:
            missing.append("DB_USER")
        if not cls.DB_NAME:
            missing.append("DB_NAME")
        return missing

    @classmethod
    def backup_storage_key(cls) -> str:
        """Key that scopes durable backups to one database."""
        return f"{cls.DB_HOST or 'local'}:{cls.DB_NAME or 'default'}"

    @classmethod
    def is_ai_configured(cls) -> bool:
        """Check if the Claude API key is configured."""
        return bool(cls.CLAUDE_API_KEY)

    @classmethod
    def is_helper_configured(cls) -> bool:
        """Check if the helper plugin site and token are configured."""
        return bool(cls.HELPER_SITE_URL and cls.HELPER_TOKEN)


config = Config()
