from __future__ import annotations
import getpass
import grp
import os
import shutil
from datetime import datetime
from pathlib import Path
from string import Template
from .models import RootConfig
from .process_runner import run_tool
from .logging_setup import get_logger

log = get_logger("dayz.manager.systemd")

UNIT_DIR = Path("/etc/systemd/system")

UNIT_TEMPLATE = Template("""\
[Unit]
Description=$description
Wants=network-online.target
After=syslog.target network.target nss-lookup.target network-online.target

[Service]
ExecStartPre=$manager -c $config update
ExecStart=$manager -c $config start
LimitNOFILE=100000
User=$user
Group=$group
Restart=on-failure
RestartSec=5s
RuntimeMaxSec=$restart_after
Nice=$niceness

[Install]
WantedBy=multi-user.target
""")

def render_unit(cfg: RootConfig, manager: str, config_path: Path,
                user: str | None = None, group: str | None = None) -> str:
    sd = cfg.systemd
    return UNIT_TEMPLATE.substitute(
        description=sd.description,
        manager=manager,
        config=str(config_path),
        user=user or getpass.getuser(),
        group=group or grp.getgrgid(os.getgid()).gr_name,
        restart_after=sd.restart_after,
        niceness=sd.niceness,
    )

def install_unit(cfg: RootConfig, content: str, unit_dir: Path = UNIT_DIR, reload: bool = True) -> Path:
    unit_path = unit_dir / f"{cfg.systemd.name}.service"
    if unit_path.exists():
        backup = unit_path.with_name(f"{unit_path.name}.bak.{datetime.now().strftime('%Y%m%d%H%M%S')}")
        log.info("Backing up existing systemd unit to: %s", backup)
        shutil.copy2(unit_path, backup)

    log.info("Generating systemd unit at: %s", unit_path)
    unit_path.write_text(content, encoding="utf-8")

    if reload:
        log.info("Reloading systemd daemon to detect new or changed service")
        run_tool("systemctl", ["systemctl", "daemon-reload"])
    log.info("Enable and start it with: systemctl enable --now %s.service", cfg.systemd.name)
    return unit_path
