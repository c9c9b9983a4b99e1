from __future__ import annotations


class DayZManagerError(Exception):
    """Base for every failure the manager reports to the operator."""


class ConfigurationError(DayZManagerError):
    pass


class ExternalToolFailure(DayZManagerError):
    def __init__(self, tool: str, message: str, returncode: int | None = None, output: str = ""):
        super().__init__(message)
        self.tool = tool
        self.returncode = returncode
        self.output = output


class SteamCmdError(ExternalToolFailure):
    pass


class GitError(ExternalToolFailure):
    pass


class MirrorError(ExternalToolFailure):
    pass


class StateConflict(DayZManagerError):
    """Installation state needs manual operator intervention."""
