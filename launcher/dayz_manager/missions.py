from __future__ import annotations
from dataclasses import dataclass
from pathlib import Path
from typing import List
from .models import MissionEntry
from .fs_layout import Layout, INSTALL_MARKER
from .mirror import MirrorOp, mirror_tree, plan_mirror, scan_tree
from .logging_setup import get_logger
from .planner import ERROR, INFO, PlanAction

log = get_logger("dayz.manager.missions")

@dataclass(frozen=True)
class MissionResult:
    source: Path
    dest: Path
    first_install: bool
    ops: List[MirrorOp]

class MissionManager:
    def __init__(self, layout: Layout):
        self.layout = layout

    def _paths(self, mission: MissionEntry):
        return self.layout.install_root / mission.path, self.layout.mission_dest(mission.path)

    @staticmethod
    def is_installed(dest: Path) -> bool:
        return (dest / INSTALL_MARKER).is_file()

    @staticmethod
    def exclude_patterns(mission: MissionEntry, installed: bool) -> List[str]:
        # the marker itself is never part of the source tree
        patterns = ["/" + INSTALL_MARKER] + list(mission.exclude)
        if installed:
            patterns += list(mission.exclude_update)
        return patterns

    def plan(self, missions: List[MissionEntry]) -> List[PlanAction]:
        actions: List[PlanAction] = []
        for m in missions:
            src, dest = self._paths(m)
            installed = self.is_installed(dest)
            if not src.is_dir():
                actions.append(PlanAction(
                    action="mirror_mission",
                    target=m.path,
                    detail="Mission source is missing",
                    paths={"src": str(src), "dst": str(dest)},
                    will_change=False,
                    severity=ERROR,
                ))
                continue
            ops = plan_mirror(scan_tree(src), scan_tree(dest), self.exclude_patterns(m, installed))
            actions.append(PlanAction(
                action="update_mission" if installed else "install_mission",
                target=m.path,
                detail="; ".join(f"{op.action} {op.path}" for op in ops) or "up to date",
                paths={"src": str(src), "dst": str(dest)},
                will_change=bool(ops) or not installed,
                severity=INFO,
            ))
        return actions

    def sync(self, missions: List[MissionEntry]) -> List[MissionResult]:
        # DayZServer doesn't always create mpmissions on install
        self.layout.mpmissions.mkdir(parents=True, exist_ok=True)
        return [self.sync_one(m) for m in missions]

    def sync_one(self, mission: MissionEntry) -> MissionResult:
        src, dest = self._paths(mission)
        dest.mkdir(parents=True, exist_ok=True)

        installed = self.is_installed(dest)
        if installed:
            log.info("Updating mission %s to %s", src, dest)
        else:
            log.info("Installing mission %s to %s", src, dest)

        ops = mirror_tree(src, dest, self.exclude_patterns(mission, installed))
        log.info("  %d change(s) applied to %s", len(ops), dest)

        (dest / INSTALL_MARKER).touch()
        return MissionResult(source=src, dest=dest, first_install=not installed, ops=ops)
