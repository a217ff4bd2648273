#!/usr/bin/env python3
"""Orgcheck - clock checks and clock conflict resolution for org files."""

from orgcheck.cli import main

if __name__ == "__main__":
    main()
