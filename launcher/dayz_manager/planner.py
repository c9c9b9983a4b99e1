"""
planner.py - dry-run report for `dayz-manager plan` and GET /plan
------------------------------------------------------------------
Each synchronizer describes what a setup/update would do to its part of the
install directory as PlanActions; Plan.build() folds them into one report.
"""

from __future__ import annotations
from dataclasses import dataclass, asdict, field
from typing import Any, Dict, List

INFO = "info"
WARN = "warn"
ERROR = "error"

RUNNING_NOTE = "Server is running; mutating commands will refuse to run."


@dataclass
class PlanAction:
    action: str               # install_mod, git_clone, mission_update, ...
    target: str               # mod name, resource name or mission path
    detail: str
    paths: Dict[str, str]
    will_change: bool
    severity: str = INFO

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class Plan:
    ok: bool
    actions: List[PlanAction]
    notes: List[str] = field(default_factory=list)

    @classmethod
    def build(cls, actions: List[PlanAction], server_running: bool = False) -> "Plan":
        notes = [RUNNING_NOTE] if server_running else []
        ok = not any(a.severity == ERROR for a in actions)
        return cls(ok=ok, actions=list(actions), notes=notes)

    def blockers(self) -> List[PlanAction]:
        return [a for a in self.actions if a.severity == ERROR]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ok": self.ok,
            "actions": [a.to_dict() for a in self.actions],
            "notes": list(self.notes),
        }
