from __future__ import annotations
import argparse
import json
import shutil
import sys
from pathlib import Path
import uvicorn
from .settings import Settings
from .logging_setup import setup_logging, get_logger
from .errors import DayZManagerError
from .orchestrator import Orchestrator
from .api import create_app

log = get_logger("dayz.manager.cli")

def _manager_path() -> str:
    return shutil.which("dayz-manager") or str(Path(sys.argv[0]).resolve())

def main(argv=None) -> int:
    parser = argparse.ArgumentParser(prog="dayz-manager")
    parser.add_argument("-c", "--config", type=Path, default=None, help="Path to config file (default: config.json)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable verbose output")
    sub = parser.add_subparsers(dest="cmd", required=True)

    sub.add_parser("login", help="Authenticate with steamcmd")
    sub.add_parser("setup", help="Set up the server")
    sub.add_parser("update", help="Update server and mods")
    sub.add_parser("start", help="Start the server")
    sub.add_parser("backup", help="Back up files")

    sd_p = sub.add_parser("systemd", help="Generate systemd unit file")
    sd_p.add_argument("--install", action="store_true", help="Write the unit to /etc/systemd/system and reload systemd")

    sub.add_parser("plan", help="Print a dry-run plan as JSON and exit")
    sub.add_parser("status", help="Print whether the server is running")

    api_p = sub.add_parser("api", help="Run read-only status API (FastAPI)")
    api_p.add_argument("--host", default="127.0.0.1")
    api_p.add_argument("--port", type=int, default=8000)

    args = parser.parse_args(argv)
    settings = Settings()
    if args.config is not None:
        settings.config_path = args.config
    if args.verbose:
        settings.log_level = "DEBUG"
    setup_logging(settings)

    orch = Orchestrator(settings)
    try:
        if args.cmd == "plan":
            plan = orch.plan().to_dict()
            print(json.dumps(plan, indent=2, ensure_ascii=False))
            return 0 if plan.get("ok", True) else 1

        if args.cmd == "status":
            print(json.dumps(orch.status()))
            return 0

        if args.cmd == "systemd":
            unit = orch.systemd(_manager_path(), install=args.install)
            if not args.install:
                print(unit, end="")
            return 0

        if args.cmd == "api":
            app = create_app(settings, orch)
            uvicorn.run(app, host=args.host, port=args.port, log_level=settings.log_level.lower())
            return 0

        return getattr(orch, args.cmd)()
    except DayZManagerError as e:
        log.error("%s", e)
        return 1
