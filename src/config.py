from __future__ import annotations

import os
from typing import List, Optional, Tuple, Type

from pydantic import field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

from utils.names import DEFAULT_FOLDER_NAME, slugify_name

THUMBNAILS_DIRNAME = "thumbnails"
UPLOAD_FIELD_NAME = "photos"
PUBLIC_PREFIX = "/uploads"


class Settings(BaseSettings):
    """Configuration settings for the application.

    Values are read, in order of priority, from constructor arguments,
    environment variables, ``.env`` and a YAML file (``config.yml`` unless
    ``EVENT_PHOTOS_CONFIG`` points elsewhere).
    """

    log_level: str = "INFO"
    log_file: Optional[str] = None
    log_max_bytes: int = 1024 * 1024
    log_backup_count: int = 3

    host: str = "0.0.0.0"
    port: int = 4000
    public_base_url: Optional[str] = None
    listen: bool = True
    cors_origins: List[str] = ["*"]

    upload_dir: str = "uploads"
    default_folder_name: str = DEFAULT_FOLDER_NAME
    thumbnail_width: int = 400
    max_files: int = 10
    max_file_size: int = 15 * 1024 * 1024
    partial_uploads: bool = False

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("default_folder_name")
    @classmethod
    def folder_name_as_slug(cls, value: str) -> str:
        """Store the default bucket as a slug, whatever was configured."""
        return slugify_name(value, default=DEFAULT_FOLDER_NAME)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: Type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> Tuple[PydanticBaseSettingsSource, ...]:
        yaml_file = os.getenv("EVENT_PHOTOS_CONFIG", "config.yml")
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            YamlConfigSettingsSource(settings_cls, yaml_file=yaml_file),
            file_secret_settings,
        )

    @property
    def base_url(self) -> str:
        """Public address used to build absolute links in responses."""
        base = self.public_base_url or f"http://localhost:{self.port}"
        return base.rstrip("/")


config = Settings()

__all__ = [
    "DEFAULT_FOLDER_NAME",
    "PUBLIC_PREFIX",
    "THUMBNAILS_DIRNAME",
    "UPLOAD_FIELD_NAME",
    "Settings",
    "config",
]
