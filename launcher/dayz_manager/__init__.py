"""
dayz_manager package
--------------------
Provisioning and supervision of a DayZ dedicated server installation on Linux.
Contains modules for configuration, SteamCMD and git integration, mod linking,
mission mirroring, backups, logging, and the server process supervisor.
"""

__version__ = "0.3.0"
