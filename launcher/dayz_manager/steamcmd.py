from __future__ import annotations
import subprocess
from pathlib import Path
from typing import List
from .settings import Settings
from .errors import SteamCmdError
from .process_runner import run_tool
from .logging_setup import get_logger

log = get_logger("dayz.manager.steamcmd")

class SteamCMD:
    def __init__(self, settings: Settings, username: str):
        self.settings = settings
        self.username = username
        self.bin = settings.steamcmd_bin

    def _run(self, args: List[str], *, capture: bool = True) -> None:
        run_tool("SteamCMD", [self.bin] + args, capture=capture, error_cls=SteamCmdError)

    def install_server(self, install_dir: Path) -> None:
        self._run([
            "+force_install_dir", str(install_dir),
            "+login", self.username,
            "+app_update", str(self.settings.server_app_id),
            "+quit",
        ])

    def workshop_download(self, install_dir: Path, app_id: int, item_id: int) -> None:
        self._run([
            "+force_install_dir", str(install_dir),
            "+login", self.username,
            "+workshop_download_item", str(app_id), str(item_id),
            "+quit",
        ])

    def check_login(self) -> bool:
        """True when cached credentials for the configured user still work."""
        cmd = [self.bin, "+@NoPromptForPassword", "1", "+login", self.username, "+quit"]
        log.info("Checking steam login for %s", self.username)
        try:
            proc = subprocess.run(cmd, capture_output=True, text=True)
        except FileNotFoundError as e:
            raise SteamCmdError("SteamCMD", f"Required command '{self.bin}' not found in PATH.") from e
        return proc.returncode == 0

    def login(self) -> None:
        # output stays attached to the terminal so steamcmd can prompt for the password
        self._run(["+login", self.username, "+quit"], capture=False)
