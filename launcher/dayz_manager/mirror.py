"""
mirror.py - one-way, deletion-propagating directory mirror
----------------------------------------------------------
Works in two steps so the exclusion rules can be tested without a filesystem:

  scan_tree()   -> snapshot of a directory as {relpath: TreeEntry}
  plan_mirror() -> pure: (source snapshot, dest snapshot, patterns) -> [MirrorOp]
  apply_mirror()-> executes the ops

Exclude patterns follow rsync's --exclude conventions:
 - trailing "/"  : only matches directories (and so everything beneath them)
 - leading "/"   : anchored at the root of the mirrored tree
 - inner "/"     : matched against the whole relative path
 - otherwise     : matched against the last path component at any depth
"*" and "?" never match "/"; "**" does, and a pattern using it is matched
against the whole relative path.
Excluded paths are never copied, and never deleted from the destination.
"""

from __future__ import annotations
import os
import re
import shutil
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Dict, Iterable, List, Sequence
from .errors import MirrorError
from .logging_setup import get_logger

log = get_logger("dayz.manager.mirror")

COPY = "copy"
MKDIR = "mkdir"
DELETE_FILE = "delete_file"
DELETE_DIR = "delete_dir"


@dataclass(frozen=True)
class TreeEntry:
    is_dir: bool
    size: int = 0
    mtime: int = 0
    is_link: bool = False


@dataclass(frozen=True)
class MirrorOp:
    action: str
    path: str


@lru_cache(maxsize=None)
def _compile(pat: str) -> "re.Pattern[str]":
    """rsync wildcards: "*" and "?" stop at "/", "**" crosses it."""
    out: List[str] = []
    i, n = 0, len(pat)
    while i < n:
        c = pat[i]
        if c == "*":
            if pat.startswith("**", i):
                out.append(".*")
                i += 2
                continue
            out.append("[^/]*")
        elif c == "?":
            out.append("[^/]")
        elif c == "[":
            end = pat.find("]", i + 2)
            if end < 0:
                out.append(re.escape(c))
            else:
                body = pat[i + 1:end]
                if body.startswith("!"):
                    body = "^" + body[1:]
                out.append("[" + body.replace("\\", "\\\\") + "]")
                i = end + 1
                continue
        else:
            out.append(re.escape(c))
        i += 1
    return re.compile("".join(out))


def _matches(relpath: str, is_dir: bool, pattern: str) -> bool:
    dir_only = pattern.endswith("/")
    pat = pattern.rstrip("/")
    if not pat:
        return False
    if dir_only and not is_dir:
        return False
    if pat.startswith("/"):
        return _compile(pat.lstrip("/")).fullmatch(relpath) is not None
    if "/" in pat or "**" in pat:
        return _compile(pat).fullmatch(relpath) is not None
    return _compile(pat).fullmatch(relpath.rsplit("/", 1)[-1]) is not None


def is_excluded(relpath: str, is_dir: bool, patterns: Sequence[str]) -> bool:
    """True if relpath, or any directory above it, matches one of the patterns."""
    if not patterns:
        return False
    parts = relpath.split("/")
    for i in range(1, len(parts) + 1):
        prefix = "/".join(parts[:i])
        prefix_is_dir = is_dir if i == len(parts) else True
        if any(_matches(prefix, prefix_is_dir, p) for p in patterns):
            return True
    return False


def scan_tree(root: Path) -> Dict[str, TreeEntry]:
    entries: Dict[str, TreeEntry] = {}
    if not root.is_dir():
        return entries
    for dirpath, dirnames, filenames in os.walk(root):
        base = Path(dirpath)
        for name in dirnames + filenames:
            p = base / name
            rel = p.relative_to(root).as_posix()
            if p.is_symlink():
                entries[rel] = TreeEntry(is_dir=False, is_link=True)
            elif p.is_dir():
                entries[rel] = TreeEntry(is_dir=True)
            else:
                st = p.stat()
                entries[rel] = TreeEntry(is_dir=False, size=st.st_size, mtime=int(st.st_mtime))
    return entries


def _depth(relpath: str) -> int:
    return relpath.count("/")


def _under(relpath: str, parent: str) -> bool:
    return relpath.startswith(parent + "/")


def plan_mirror(source: Dict[str, TreeEntry], dest: Dict[str, TreeEntry],
                patterns: Sequence[str] = ()) -> List[MirrorOp]:
    """Operations that turn dest into source, leaving excluded paths alone."""
    # symlinks in the source are skipped, like rsync without --links
    src = {
        p: e for p, e in source.items()
        if not e.is_link and not is_excluded(p, e.is_dir, patterns)
    }
    protected = {p for p, e in dest.items() if is_excluded(p, e.is_dir, patterns)}

    deletes: List[MirrorOp] = []
    for path, entry in dest.items():
        if path in protected:
            continue
        want = src.get(path)
        if want is not None and want.is_dir == entry.is_dir and not entry.is_link:
            continue
        if entry.is_dir:
            if any(_under(p, path) for p in protected):
                log.warning("Keeping %s: it holds excluded content", path)
                continue
            deletes.append(MirrorOp(DELETE_DIR, path))
        else:
            deletes.append(MirrorOp(DELETE_FILE, path))
    deletes.sort(key=lambda op: (-_depth(op.path), op.path))

    kept_dirs = {p for p, e in dest.items() if e.is_dir} - {op.path for op in deletes}
    mkdirs: List[MirrorOp] = []
    copies: List[MirrorOp] = []
    for path in sorted(src, key=lambda p: (_depth(p), p)):
        entry = src[path]
        have = dest.get(path)
        if entry.is_dir:
            if path not in kept_dirs:
                mkdirs.append(MirrorOp(MKDIR, path))
            continue
        if have is not None and have.is_dir and path in kept_dirs:
            log.warning("Not copying %s: the destination directory holds excluded content", path)
            continue
        if have is None or have.is_dir or have.is_link or have.size != entry.size or have.mtime != entry.mtime:
            copies.append(MirrorOp(COPY, path))

    return deletes + mkdirs + copies


def apply_mirror(ops: Iterable[MirrorOp], src_root: Path, dest_root: Path) -> int:
    count = 0
    for op in ops:
        target = dest_root / op.path
        try:
            if op.action == DELETE_FILE:
                target.unlink(missing_ok=True)
            elif op.action == DELETE_DIR:
                target.rmdir()
            elif op.action == MKDIR:
                target.mkdir(parents=True, exist_ok=True)
            elif op.action == COPY:
                target.parent.mkdir(parents=True, exist_ok=True)
                shutil.copy2(src_root / op.path, target)
            else:
                raise MirrorError("mirror", f"Unknown mirror action {op.action!r}")
        except OSError as e:
            raise MirrorError("mirror", f"{op.action} {target} failed: {e}") from e
        count += 1
    return count


def mirror_tree(src_root: Path, dest_root: Path, patterns: Sequence[str] = ()) -> List[MirrorOp]:
    if not src_root.is_dir():
        raise MirrorError("mirror", f"Mirror source {src_root} doesn't exist")
    dest_root.mkdir(parents=True, exist_ok=True)
    ops = plan_mirror(scan_tree(src_root), scan_tree(dest_root), patterns)
    apply_mirror(ops, src_root, dest_root)
    return ops
