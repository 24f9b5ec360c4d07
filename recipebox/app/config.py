from __future__ import annotations

from typing import Optional

from pydantic import AnyUrl
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8-sig",
        case_sensitive=False,
        extra="ignore",
    )

    SUPABASE_URL: Optional[AnyUrl] = None
    SUPABASE_ANON_KEY: str = ""
    SPOONACULAR_API_KEY: str = ""
    SPOONACULAR_BASE_URL: str = "https://api.spoonacular.com"
    HTTP_TIMEOUT_SECONDS: float = 15.0
    RECIPE_IMAGES_BUCKET: str = "recipe-images"
    APP_ENV: str = "local"
    LOG_LEVEL: str = "INFO"

    def validate_backend(self) -> list[str]:
        """Return the list of missing backend settings."""
        errors = []
        if not self.SUPABASE_URL:
            errors.append("SUPABASE_URL is required")
        if not self.SUPABASE_ANON_KEY:
            errors.append("SUPABASE_ANON_KEY is required")
        return errors


settings = Settings()
