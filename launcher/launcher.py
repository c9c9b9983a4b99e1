#!/usr/bin/env python3
"""
DayZ Dedicated Server Manager
Thin script entry point for running from a checkout without installing.
"""

from dayz_manager.cli import main

if __name__ == "__main__":
    raise SystemExit(main())
