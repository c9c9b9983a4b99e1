from __future__ import annotations
from pathlib import Path
from typing import List
from .models import ResourceEntry
from .fs_layout import Layout
from .vcs import Git
from .errors import GitError, StateConflict
from .logging_setup import get_logger
from .planner import ERROR, INFO, PlanAction

log = get_logger("dayz.manager.resources")

CLONE = "clone"
UPDATE = "update"
CONFLICT = "conflict"

class ResourceManager:
    def __init__(self, layout: Layout, git: Git):
        self.layout = layout
        self.git = git

    def target(self, resource: ResourceEntry) -> Path:
        return self.layout.resources_dir / resource.name

    def classify(self, resource: ResourceEntry) -> str:
        target = self.target(resource)
        if self.git.is_checkout(target):
            return UPDATE
        if target.exists() or target.is_symlink():
            return CONFLICT
        return CLONE

    def plan(self, resources: List[ResourceEntry]) -> List[PlanAction]:
        actions: List[PlanAction] = []
        for r in resources:
            kind = self.classify(r)
            actions.append(PlanAction(
                action=f"git_{kind}",
                target=r.name,
                detail={
                    CLONE: f"git clone {r.url}",
                    UPDATE: "git pull --ff-only",
                    CONFLICT: "Target exists but is not a git repo, remove it manually",
                }[kind],
                paths={"dst": str(self.target(r)), "url": r.url},
                will_change=kind != CONFLICT,
                severity=ERROR if kind == CONFLICT else INFO,
            ))
        return actions

    def sync(self, resources: List[ResourceEntry]) -> None:
        for r in resources:
            if r.type != "git":
                log.debug("Skipping resource %s of type %s", r.name, r.type)
                continue
            self.sync_one(r)

    def sync_one(self, resource: ResourceEntry) -> str:
        target = self.target(resource)
        kind = self.classify(resource)

        if kind == CONFLICT:
            raise StateConflict(
                f"Resource {target} already exists but is not a git repo, please manually remove it"
            )

        if kind == UPDATE:
            log.info("Git resource %s already cloned, updating.", resource.name)
            try:
                self.git.pull_ff_only(target)
            except GitError as e:
                if "fast-forward" in e.output.lower():
                    raise StateConflict(
                        f"Resource {resource.name} at {target} has diverged from its remote; "
                        "refusing to merge, resolve it manually"
                    ) from e
                raise
            return kind

        log.info("Cloning %s from %s...", resource.name, resource.url)
        target.parent.mkdir(parents=True, exist_ok=True)
        self.git.clone(resource.url, target)
        return kind
