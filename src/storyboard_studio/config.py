from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Loads keys from process env, and also from a local .env file for convenience.
    model_config = SettingsConfigDict(env_prefix="", extra="ignore", env_file=".env", env_file_encoding="utf-8")

    data_dir: str = "data"
    state_filename: str = "storyboard_state.json"
    project_filename: str = "ai-storyboard-project.json"
    log_level: str = "INFO"

    # Keys. A key saved through the settings endpoint wins over this one.
    gemini_api_key: str | None = None

    # Models
    gemini_image_model: str = "imagen-4.0-generate-001"
    gemini_compose_model: str = "gemini-2.5-flash-image"

    # New assets
    asset_output_mime_type: str = "image/jpeg"
    asset_aspect_ratio: str = "1:1"


settings = Settings()
