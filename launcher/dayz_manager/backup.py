from __future__ import annotations
import tarfile
import time
from datetime import datetime
from pathlib import Path
from typing import List, Optional
from .models import RootConfig
from .fs_layout import Layout
from .logging_setup import get_logger

log = get_logger("dayz.manager.backup")

TIMESTAMP_FMT = "%Y-%m-%d_%H-%M-%S"

class BackupManager:
    def __init__(self, cfg: RootConfig, layout: Layout):
        self.cfg = cfg
        self.layout = layout

    def backup_dirs(self) -> List[Path]:
        dirs = [self.layout.profiles]
        dirs += [self.layout.mission_dest(m.path) for m in self.cfg.missions]
        return dirs

    def run(self, now: Optional[datetime] = None) -> List[Path]:
        bc = self.cfg.backup
        if not bc.directory:
            log.info("Backups not configured")
            return []

        target_dir = Path(bc.directory)
        prefix = f"{bc.prefix}_" if bc.prefix else ""
        timestamp = (now or datetime.now()).strftime(TIMESTAMP_FMT)

        log.info("Backing up server")
        target_dir.mkdir(parents=True, exist_ok=True)

        archives: List[Path] = []
        for d in self.backup_dirs():
            if not d.exists():
                log.warning("  Skipping backup of %s, it doesn't exist", d)
                continue
            archive = target_dir / f"{prefix}{d.name}_{timestamp}.tar.gz"
            log.info("  Creating backup for %s", d.name)
            with tarfile.open(archive, "w:gz") as tar:
                tar.add(str(d), arcname=d.name)
            archives.append(archive)

        self.prune(target_dir, bc.retention_days)
        log.info("Backup completed")
        return archives

    @staticmethod
    def prune(target_dir: Path, retention_days: int) -> List[Path]:
        log.info("  Pruning backups older than %s days", retention_days)
        # same window as `find -mtime +N`: ages are counted in whole days
        cutoff = time.time() - (retention_days + 1) * 86400
        removed: List[Path] = []
        for p in target_dir.rglob("*.tar.gz"):
            if p.is_file() and p.stat().st_mtime < cutoff:
                p.unlink()
                removed.append(p)
        return removed
