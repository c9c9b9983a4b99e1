from __future__ import annotations
import os
from pathlib import Path
from typing import Optional
from .errors import StateConflict
from .logging_setup import get_logger

log = get_logger("dayz.manager.liveness")

def read_pid(pid_file: Path) -> Optional[int]:
    try:
        raw = pid_file.read_text(encoding="utf-8").strip()
    except FileNotFoundError:
        return None
    try:
        pid = int(raw)
    except ValueError:
        log.warning("PID file %s holds %r, treating it as stale", pid_file, raw)
        return None
    return pid if pid > 0 else None

def is_pid_alive(pid: int) -> bool:
    """Signal-0 probe: True only if the process exists and we may signal it."""
    try:
        os.kill(pid, 0)
    except (ProcessLookupError, PermissionError):
        return False
    return True

def is_server_running(pid_file: Path) -> bool:
    pid = read_pid(pid_file)
    if pid is None:
        return False
    return is_pid_alive(pid)

def ensure_server_not_running(pid_file: Path) -> None:
    log.info("Checking server isn't running")
    if is_server_running(pid_file):
        raise StateConflict("Server is running. Please kill and re-run command")
    log.info("Server isn't running")
