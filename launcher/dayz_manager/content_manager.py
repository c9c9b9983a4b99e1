from __future__ import annotations
from dataclasses import dataclass
from pathlib import Path
from typing import List
from .models import ModEntry
from .fs_layout import Layout
from .steamcmd import SteamCMD
from .errors import SteamCmdError, StateConflict
from .logging_setup import get_logger
from .planner import INFO, PlanAction

log = get_logger("dayz.manager.content")

# mods ship their keys in either spelling
KEY_DIR_NAMES = ("keys", "Keys")
KEY_SUFFIX = ".bikey"

@dataclass(frozen=True)
class LinkResult:
    name: str
    link: Path
    source: Path
    keys: List[Path]

class ContentManager:
    def __init__(self, layout: Layout, steamcmd: SteamCMD):
        self.layout = layout
        self.steamcmd = steamcmd

    # ---------------- Planning ----------------
    def plan(self, mods: List[ModEntry]) -> List[PlanAction]:
        actions: List[PlanAction] = []
        for m in mods:
            src = self.layout.workshop_item_dir(m.app_id, m.item_id)
            dst = self.layout.install_root / m.name
            actions.append(PlanAction(
                action="update_mod" if src.exists() else "install_mod",
                target=f"{m.name} ({m.app_id}:{m.item_id})",
                detail="SteamCMD workshop_download_item, then relink mod and keys",
                paths={"src": str(src), "dst": str(dst)},
                will_change=not src.exists(),
                severity=INFO,
            ))
        return actions

    # ---------------- Sync ----------------
    def sync(self, mods: List[ModEntry]) -> List[LinkResult]:
        """Fetch every mod in order and rebuild its symlink and key links. Stops at the first failure."""
        self.layout.keys_dir.mkdir(parents=True, exist_ok=True)
        self.clear_key_links()

        results: List[LinkResult] = []
        for m in mods:
            results.append(self.sync_one(m))
        return results

    def sync_one(self, mod: ModEntry) -> LinkResult:
        src = self.layout.workshop_item_dir(mod.app_id, mod.item_id)
        dest = self.layout.install_root / mod.name

        if src.exists():
            log.info("Updating mod %s (Item ID: %s:%s)", mod.name, mod.app_id, mod.item_id)
        else:
            log.info("Installing mod %s (Item ID: %s:%s)", mod.name, mod.app_id, mod.item_id)

        try:
            self.steamcmd.workshop_download(self.layout.install_root, mod.app_id, mod.item_id)
        except SteamCmdError as e:
            raise SteamCmdError(
                e.tool, f"Downloading mod {mod.name} ({mod.app_id}:{mod.item_id}) failed: {e}",
                e.returncode, output=e.output,
            ) from e

        log.info("  Symlinking mod %s to %s", mod.name, dest)
        self._recreate_link(dest, src)

        log.info("  Symlinking mod %s keys to %s", mod.name, self.layout.keys_dir)
        keys = self._link_keys(src, mod.name)
        return LinkResult(name=mod.name, link=dest, source=src, keys=keys)

    def clear_key_links(self) -> int:
        log.info("Removing any existing symlinked keys")
        removed = 0
        for p in self.layout.keys_dir.iterdir():
            if p.is_symlink():
                p.unlink()
                removed += 1
        return removed

    # ---------------- Links ----------------
    def _recreate_link(self, link_path: Path, target: Path) -> None:
        if link_path.is_symlink():
            log.debug("Removing existing symlink %s", link_path)
            link_path.unlink()
        elif link_path.exists():
            raise StateConflict(
                f"{link_path} exists and is not a symlink, please manually remove it"
            )
        link_path.symlink_to(target, target_is_directory=True)

    def _find_keys(self, src: Path) -> List[Path]:
        found: List[Path] = []
        for dirname in KEY_DIR_NAMES:
            key_dir = src / dirname
            if not key_dir.is_dir():
                continue
            found.extend(sorted(p for p in key_dir.iterdir() if p.name.endswith(KEY_SUFFIX)))
        return found

    def _link_keys(self, src: Path, name: str) -> List[Path]:
        keys = self._find_keys(src)
        if not keys:
            log.warning("No keys found for mod %s in %s", name, src)
            return []

        linked: List[Path] = []
        for key_file in keys:
            target = self.layout.keys_dir / key_file.name
            if target.is_symlink():
                target.unlink()
            elif target.exists():
                log.warning("Not linking %s for mod %s: %s is not a symlink", key_file.name, name, target)
                continue
            target.symlink_to(key_file)
            linked.append(target)
        return linked
