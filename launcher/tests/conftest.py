import json
from pathlib import Path

import pytest

from dayz_manager.config_loader import load_config
from dayz_manager.errors import SteamCmdError
from dayz_manager.fs_layout import build_layout
from dayz_manager.settings import Settings


class FakeSteamCMD:
    """Stands in for steamcmd: materializes workshop items on disk."""

    def __init__(self, fail_items=(), logged_in=True):
        self.fail_items = set(fail_items)
        self.logged_in = logged_in
        self.downloads = []
        self.server_installs = []

    def workshop_download(self, install_dir, app_id, item_id):
        self.downloads.append((app_id, item_id))
        if item_id in self.fail_items:
            raise SteamCmdError("SteamCMD", f"SteamCMD failed (rc=5) for {item_id}", 5)
        item = Path(install_dir) / "steamapps" / "workshop" / "content" / str(app_id) / str(item_id)
        (item / "addons").mkdir(parents=True, exist_ok=True)
        keys = item / ("Keys" if item_id % 2 else "keys")
        keys.mkdir(exist_ok=True)
        (keys / f"mod{item_id}.bikey").write_text("key", encoding="utf-8")

    def install_server(self, install_dir):
        self.server_installs.append(Path(install_dir))
        Path(install_dir).mkdir(parents=True, exist_ok=True)

    def check_login(self):
        return self.logged_in

    def login(self):
        pass


@pytest.fixture
def config_data(tmp_path):
    return {
        "install_directory": str(tmp_path / "server"),
        "steam_username": "operator",
        "mods": [
            {"name": "@CF", "item_id": 1559212036},
            {"name": "@VPPAdminTools", "item_id": 1828439124},
        ],
        "resources": [
            {"type": "git", "name": "dayz-expansion", "url": "https://example.invalid/expansion.git"},
        ],
        "missions": [
            {
                "path": "missions/dayzOffline.chernarusplus",
                "exclude": ["storage_1/"],
                "exclude_update": ["db/messages.xml"],
            }
        ],
        "start_command": {"port": 2302, "additional_flags": ["dologs", "adminlog"]},
    }


@pytest.fixture
def config_file(tmp_path, config_data):
    path = tmp_path / "config.json"
    path.write_text(json.dumps(config_data), encoding="utf-8")
    return path


@pytest.fixture
def cfg(config_file):
    return load_config(config_file)


@pytest.fixture
def layout(cfg):
    layout = build_layout(cfg)
    layout.install_root.mkdir(parents=True, exist_ok=True)
    return layout


@pytest.fixture
def settings(config_file):
    return Settings(config_path=config_file)


@pytest.fixture
def steamcmd():
    return FakeSteamCMD()
