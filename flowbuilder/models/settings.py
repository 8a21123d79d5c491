from __future__ import annotations

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class EditorConfig(BaseSettings):
    """Layout and viewport defaults for the workflow editor.

    Reads from environment variables with FLOWBUILDER_ prefix and .env files.
    """

    model_config = SettingsConfigDict(
        env_prefix="FLOWBUILDER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    duplicate_offset: float = 50
    trigger_x: float = 250
    trigger_y: float = 50
    step_x: float = 250
    first_step_y: float = 150
    step_spacing: float = 100
    min_zoom: float = Field(default=0.25, gt=0)
    max_zoom: float = Field(default=2.0, gt=0)
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
