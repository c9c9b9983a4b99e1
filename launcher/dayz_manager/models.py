from __future__ import annotations
from typing import List
from pydantic import BaseModel, Field, field_validator

WORKSHOP_GAME_ID = 221100


def _plain_name(v: str) -> str:
    """A single path component created directly under the install directory."""
    if not v.strip():
        raise ValueError("name must not be empty")
    if "/" in v or v in (".", ".."):
        raise ValueError(f"{v!r} must be a plain name, not a path")
    return v


class ModEntry(BaseModel):
    name: str
    app_id: int = Field(default=WORKSHOP_GAME_ID, description="Workshop namespace the item lives in")
    item_id: int

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        return _plain_name(v)

class ResourceEntry(BaseModel):
    type: str
    name: str
    url: str

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        return _plain_name(v)

class MissionEntry(BaseModel):
    path: str = Field(..., description="Mission source, relative to the install directory")
    exclude: List[str] = Field(default_factory=list)
    exclude_update: List[str] = Field(default_factory=list, description="Only applied once the mission is installed")

    @field_validator("path")
    @classmethod
    def validate_path(cls, v):
        if not v.strip():
            raise ValueError("path must not be empty")
        if v.startswith("/"):
            raise ValueError(f"{v!r} must be relative to the install directory")
        if ".." in v.split("/"):
            raise ValueError(f"{v!r} must stay inside the install directory")
        return v

class StartCommand(BaseModel):
    wrapper: str = ""
    port: int = 2301
    additional_flags: List[str] = Field(default_factory=list)

class BackupConfig(BaseModel):
    directory: str = ""
    prefix: str = ""
    retention_days: int = 5

class SystemdConfig(BaseModel):
    name: str = "dayz-server"
    description: str = "DayZ Server"
    niceness: int = -10
    restart_after: str = "6h"

class RootConfig(BaseModel):
    install_directory: str
    steam_username: str
    server_config: str = ""
    mods: List[ModEntry] = Field(default_factory=list)
    resources: List[ResourceEntry] = Field(default_factory=list)
    missions: List[MissionEntry] = Field(default_factory=list)
    start_command: StartCommand = Field(default_factory=StartCommand)
    backup: BackupConfig = Field(default_factory=BackupConfig)
    systemd: SystemdConfig = Field(default_factory=SystemdConfig)

    def git_resources(self) -> List[ResourceEntry]:
        return [r for r in self.resources if r.type == "git"]
