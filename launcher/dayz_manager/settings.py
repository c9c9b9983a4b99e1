from __future__ import annotations
from pathlib import Path
from typing import Optional
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    config_path: Path = Field(default=Path("config.json"), alias="DAYZ_CONFIG")

    steamcmd_bin: str = Field(default="steamcmd", alias="STEAMCMD_BIN")
    git_bin: str = Field(default="git", alias="GIT_BIN")
    server_binary: str = Field(default="./DayZServer", alias="SERVER_BINARY")

    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_json: bool = Field(default=False, alias="LOG_JSON")
    log_file: Optional[Path] = Field(default=None, alias="LOG_FILE")

    server_app_id: int = Field(default=223350)

    model_config = SettingsConfigDict(extra="ignore", populate_by_name=True)
