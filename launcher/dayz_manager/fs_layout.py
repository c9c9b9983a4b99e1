from __future__ import annotations
from dataclasses import dataclass
from pathlib import Path
from .models import RootConfig

PID_FILE_NAME = "dayzmanager-server.pid"
INSTALL_MARKER = ".dayzmanager.installed"

@dataclass(frozen=True)
class Layout:
    install_root: Path
    keys_dir: Path
    workshop_content: Path
    resources_dir: Path
    mpmissions: Path
    profiles: Path
    pid_file: Path
    server_cfg: Path

    def workshop_item_dir(self, app_id: int, item_id: int) -> Path:
        return self.workshop_content / str(app_id) / str(item_id)

    def mission_dest(self, mission_path: str) -> Path:
        return self.mpmissions / (self.install_root / mission_path).name

def build_layout(cfg: RootConfig) -> Layout:
    root = Path(cfg.install_directory)
    return Layout(
        install_root=root,
        keys_dir=root / "keys",
        workshop_content=root / "steamapps" / "workshop" / "content",
        resources_dir=root / "resources",
        mpmissions=root / "mpmissions",
        profiles=root / "profiles",
        pid_file=root / PID_FILE_NAME,
        server_cfg=root / "serverDZ.cfg",
    )
