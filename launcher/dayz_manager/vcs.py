from __future__ import annotations
from pathlib import Path
from .settings import Settings
from .errors import GitError
from .process_runner import run_tool

class Git:
    def __init__(self, settings: Settings):
        self.bin = settings.git_bin

    @staticmethod
    def is_checkout(path: Path) -> bool:
        return (path / ".git").is_dir()

    def clone(self, url: str, target: Path) -> None:
        run_tool("git", [self.bin, "clone", url, str(target)], error_cls=GitError)

    def pull_ff_only(self, target: Path) -> None:
        # refuses divergent histories instead of merging
        run_tool("git", [self.bin, "-C", str(target), "pull", "--ff-only"], error_cls=GitError)
