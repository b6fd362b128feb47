"""Receiver configuration via pydantic-settings."""

from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict

REQUIRED_VARIABLES = ("NRFCLOUD_WEBHOOK_SECRET", "DATABASE_ID", "COLLECTION_ID")


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # nRF Cloud
    nrfcloud_webhook_secret: str = ""

    # Target collection
    database_id: str = ""
    collection_id: str = ""

    # Appwrite
    appwrite_endpoint: str = "https://cloud.appwrite.io/v1"
    appwrite_project_id: str = ""
    appwrite_api_key: str = ""

    def missing_required(self) -> List[str]:
        """Names of the required environment variables that are unset or empty."""
        return [name for name in REQUIRED_VARIABLES if not getattr(self, name.lower())]


def get_settings() -> Settings:
    # Loaded per request so no configuration outlives a single invocation.
    return Settings()
