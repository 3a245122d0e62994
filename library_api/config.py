"""
API configuration settings.
"""

from typing import List

from pydantic import AliasChoices, Field, validator
from pydantic_settings import BaseSettings


class APIConfig(BaseSettings):
    """API configuration settings."""

    # API Settings
    api_title: str = "Library Book API"
    api_version: str = "1.0.0"

    # Server Settings
    host: str = "0.0.0.0"
    port: int = Field(default=8080, validation_alias=AliasChoices("port", "gin_port"))
    debug: bool = False

    # Database Settings
    mongodb_database: str = "library"
    mongodb_collection: str = "books"

    # Secret Settings
    secrets_mode: str = ""
    secret_encryption: bool = False
    plaintext_secret_path: str = "/var/secrets/mongoConnURL.txt"
    encrypted_secret_path: str = "/var/secrets/EncryptedMongoConnURL.data"
    kms_key_name: str = (
        "projects/javiercm-webapp/locations/europe-west1/"
        "keyRings/exercise/cryptoKeys/mongo-backup"
    )
    gcp_project_id: str = "javiercm-webapp"
    secret_id: str = "MongoConnURL"
    secret_version: str = "latest"
    uri_env_var: str = "MONGODB_URI"  # Variable holding the URI in env mode

    # CORS Settings
    cors_origins: List[str] = ["*"]

    # Logging
    log_level: str = "INFO"
    log_format: str = "json"

    model_config = {
        "env_file": ".env",
        "case_sensitive": False,
        "populate_by_name": True,
        "extra": "ignore"  # Ignore extra fields from .env
    }

    @validator('log_level')
    def validate_log_level(cls, v):
        """Ensure log level is valid."""
        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        if v.upper() not in valid_levels:
            raise ValueError(f'log_level must be one of: {valid_levels}')
        return v.upper()

    @validator('log_format')
    def validate_log_format(cls, v):
        """Ensure log format is valid."""
        valid_formats = ['json', 'console']
        if v.lower() not in valid_formats:
            raise ValueError(f'log_format must be one of: {valid_formats}')
        return v.lower()


# Global config instance
config = APIConfig()
