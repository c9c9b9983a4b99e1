from __future__ import annotations
import shutil
from pathlib import Path
from typing import Optional
from .settings import Settings
from .models import RootConfig
from .errors import ConfigurationError, SteamCmdError, StateConflict
from .logging_setup import get_logger
from .fs_layout import Layout, build_layout
from .config_loader import load_config
from .steamcmd import SteamCMD
from .vcs import Git
from .content_manager import ContentManager
from .resources import ResourceManager
from .missions import MissionManager
from .backup import BackupManager
from .supervisor import ServerSupervisor
from .systemd_unit import UNIT_DIR, install_unit, render_unit
from .liveness import ensure_server_not_running, is_server_running, read_pid
from .planner import Plan

log = get_logger("dayz.manager.orch")

class Orchestrator:
    def __init__(self, settings: Settings, cfg: Optional[RootConfig] = None,
                 steamcmd: Optional[SteamCMD] = None, git: Optional[Git] = None):
        self.settings = settings
        self._cfg = cfg
        self._steamcmd = steamcmd
        self._git = git

    @property
    def cfg(self) -> RootConfig:
        if self._cfg is None:
            self._cfg = load_config(self.settings.config_path)
        return self._cfg

    @property
    def layout(self) -> Layout:
        return build_layout(self.cfg)

    @property
    def steamcmd(self) -> SteamCMD:
        if self._steamcmd is None:
            self._steamcmd = SteamCMD(self.settings, self.cfg.steam_username)
        return self._steamcmd

    @property
    def git(self) -> Git:
        if self._git is None:
            self._git = Git(self.settings)
        return self._git

    # ---------------- Gates ----------------
    def ensure_not_running(self) -> None:
        ensure_server_not_running(self.layout.pid_file)

    def ensure_login(self) -> None:
        log.info("Checking steam login")
        if not self.steamcmd.check_login():
            raise SteamCmdError(
                "SteamCMD",
                f"Not logged in, please run 'dayz-manager -c {self.settings.config_path} login'",
            )
        log.info("Steam login successful")

    # ---------------- Steps ----------------
    def setup_server(self) -> None:
        self.steamcmd.install_server(self.layout.install_root)

    def sync_mods(self) -> None:
        ContentManager(self.layout, self.steamcmd).sync(self.cfg.mods)

    def sync_resources(self) -> None:
        ResourceManager(self.layout, self.git).sync(self.cfg.git_resources())

    def sync_missions(self) -> None:
        MissionManager(self.layout).sync(self.cfg.missions)

    def setup_server_config(self) -> None:
        name = self.cfg.server_config
        if not name:
            log.info("No server config specified, skipping...")
            return
        src = self.layout.install_root / name
        if not src.is_file():
            raise ConfigurationError(f"Server config {name} doesn't exist")
        dest = self.layout.server_cfg
        if dest.is_file():
            log.info("Backing up existing %s", dest.name)
            dest.replace(dest.with_name(dest.name + ".bak"))
        shutil.copyfile(src, dest)

    # ---------------- Commands ----------------
    def login(self) -> int:
        log.info("Setting up login through steamcmd")
        self.steamcmd.login()
        self.ensure_login()
        return 0

    def setup(self) -> int:
        self.ensure_not_running()
        self.ensure_login()

        root = self.layout.install_root
        log.info("Setting up DayZServer in %s...", root)
        if root.is_dir():
            raise StateConflict(
                f"Directory {root} already exists. Delete it or use 'update' instead of 'setup'."
            )
        log.info("  Creating directory %s", root)
        root.mkdir(parents=True)

        log.info("  Downloading DayZServer")
        self.setup_server()
        log.info("Setting up mods")
        self.sync_mods()
        log.info("Setting up resources")
        self.sync_resources()
        log.info("Setting up missions")
        self.sync_missions()
        log.info("Setting up server config")
        self.setup_server_config()
        log.info("Setup complete")
        return 0

    def update(self) -> int:
        self.ensure_not_running()
        self.ensure_login()
        self.backup(gate=False)

        log.info("Updating DayZ server in %s...", self.layout.install_root)
        self.setup_server()
        log.info("Updating mods")
        self.sync_mods()
        log.info("Updating resources")
        self.sync_resources()
        log.info("Updating missions")
        self.sync_missions()
        log.info("Update complete")
        return 0

    def start(self) -> int:
        self.ensure_not_running()
        return ServerSupervisor(self.settings, self.cfg, self.layout).run()

    def backup(self, gate: bool = True) -> int:
        if gate:
            self.ensure_not_running()
        BackupManager(self.cfg, self.layout).run()
        return 0

    def status(self) -> dict:
        pid_file = self.layout.pid_file
        running = is_server_running(pid_file)
        return {"running": running, "pid": read_pid(pid_file) if running else None}

    def plan(self) -> Plan:
        layout = self.layout
        actions = []
        actions += ContentManager(layout, self.steamcmd).plan(self.cfg.mods)
        actions += ResourceManager(layout, self.git).plan(self.cfg.git_resources())
        actions += MissionManager(layout).plan(self.cfg.missions)

        plan = Plan.build(actions, server_running=is_server_running(layout.pid_file))
        for a in plan.blockers():
            log.warning("Plan blocker: %s %s: %s", a.action, a.target, a.detail)
        return plan

    def systemd(self, manager: str, *, install: bool = False, unit_dir: Path = UNIT_DIR) -> str:
        self.ensure_not_running()
        content = render_unit(self.cfg, manager, self.settings.config_path.resolve())
        if install:
            install_unit(self.cfg, content, unit_dir=unit_dir)
        return content
