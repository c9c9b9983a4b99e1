from __future__ import annotations
import subprocess
from pathlib import Path
from typing import List, Optional, Type
from .errors import ExternalToolFailure
from .logging_setup import get_logger

log = get_logger("dayz.manager.proc")

def run_tool(name: str, cmd: List[str], *, cwd: Optional[Path] = None, capture: bool = True,
             error_cls: Type[ExternalToolFailure] = ExternalToolFailure) -> subprocess.CompletedProcess:
    """Run an external tool to completion, raising error_cls on a non-zero exit."""
    log.info("%s: %s", name, " ".join(cmd))
    try:
        proc = subprocess.run(cmd, cwd=str(cwd) if cwd else None, capture_output=capture, text=True)
    except FileNotFoundError as e:
        raise error_cls(name, f"Required command '{cmd[0]}' not found in PATH.") from e
    if capture:
        if proc.stdout:
            log.debug("%s stdout: %s", name, proc.stdout[-4000:])
        if proc.stderr:
            log.debug("%s stderr: %s", name, proc.stderr[-4000:])
    if proc.returncode != 0:
        raise error_cls(name, f"{name} failed (rc={proc.returncode}): {' '.join(cmd)}", proc.returncode,
                        output=(proc.stderr or "") if capture else "")
    return proc
