"""Configuration management for DocMorph.

Every setting is read from a ``DOCMORPH_*`` environment variable or a
``.env`` file in the working directory.
"""

import re
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

HEX_COLOR = re.compile(r"^[0-9A-Fa-f]{6}$")


class Settings(BaseSettings):
    """DocMorph settings, one field per environment variable."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Logging
    log_level: str = Field(default="WARNING", alias="DOCMORPH_LOG_LEVEL")
    log_file: Optional[Path] = Field(default=None, alias="DOCMORPH_LOG_FILE")

    # LaTeX output
    latex_standalone: bool = Field(
        default=False,
        alias="DOCMORPH_LATEX_STANDALONE",
    )

    # DOCX output
    docx_body_font: str = Field(default="Calibri", alias="DOCMORPH_DOCX_BODY_FONT")
    docx_font_size: int = Field(default=11, alias="DOCMORPH_DOCX_FONT_SIZE")
    docx_code_font: str = Field(
        default="Courier New",
        alias="DOCMORPH_DOCX_CODE_FONT",
    )
    docx_link_color: str = Field(
        default="1155CC",
        alias="DOCMORPH_DOCX_LINK_COLOR",
    )

    @field_validator("docx_link_color")
    @classmethod
    def check_link_color(cls, value: str) -> str:
        """Accept ``RRGGBB`` with or without a leading '#'."""
        value = value.lstrip("#")
        if not HEX_COLOR.match(value):
            raise ValueError(f"expected a hex RGB colour like 1155CC, got {value!r}")
        return value.upper()


# Process-wide settings, built on first use
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Return the shared Settings, reading the environment on first call."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def load_settings(env_file: Optional[Path] = None) -> Settings:
    """Re-read settings, optionally from a specific .env file.

    The result replaces the shared instance returned by ``get_settings``.
    """
    global _settings
    _settings = Settings(_env_file=env_file) if env_file else Settings()
    return _settings
