#!/usr/bin/env python3
"""Orgcheck CLI - clock checks and clock conflict resolution for org files."""

import asyncio

from pydantic_settings import CliApp, CliSubCommand, get_subcommand

from orgcheck.command.check import CheckCommand
from orgcheck.core.config import State
from orgcheck.core.log import logger


class CliState(State):
    """Check the clocks recorded in org-mode outline files.

    Finds clocks with wrong, long, running, negative or empty
    durations, and groups of clocks that overlap in time. Overlapping
    clocks can be resolved interactively; the files are patched in
    place, leaving everything but the edited clock lines untouched.

    Configuration sources (in priority order):
    1. Command-line arguments (--config.files.org_dir value)
    2. orgcheck.yaml in the current directory, then in the user
       config directory, then the packaged defaults
    3. .env file
    4. Environment variables
       (ORGCHECK_CONFIG__FILES__ORG_DIR=value)

    The [JSON] options allow setting multiple values at once:
      --config.checks '{"long_duration_limit": "8:00"}'
    """

    check: CliSubCommand[CheckCommand]

    def cli_cmd(self):
        """Dispatch to active subcommand, or show help if none
        provided."""
        subcommand = get_subcommand(self, is_required=False)

        if subcommand is None:
            import sys
            CliApp.run(CliState, cli_args=['--help'])
            sys.exit(1)

        # Use logger as context manager to ensure files are closed on exit
        with logger:
            exit_code = asyncio.run(subcommand.run_workflow(self))
            raise SystemExit(exit_code)


def main():
    """Main entry point for CLI."""
    CliApp.run(CliState)


if __name__ == "__main__":
    main()
