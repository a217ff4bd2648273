"""Check command - report clock problems and overlapping clocks."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator

from orgcheck.core.config import parse_hours_minutes
from orgcheck.core.log import logger

# Flag name -> config.checks field it overrides
CHECK_FLAGS = (
    "clock_conflicts",
    "duration_mismatch",
    "long_duration",
    "running_clock",
    "negative_duration",
    "zero_clocks",
)

EXIT_NO_FILES = 2


class CheckCommand(BaseModel):
    """Check clocks in outline files.

    Reports clocks whose stated duration is wrong, long, running,
    negative or empty, and groups of clocks that overlap in time.
    With --fix-clock-conflicts each group of overlapping clocks is
    presented in turn and the chosen fix is written back to the file.
    """

    clock_conflicts: bool = Field(
        default=True,
        alias="clock-conflicts",
        description="Report overlapping clocks",
    )
    fix_clock_conflicts: bool = Field(
        default=False,
        alias="fix-clock-conflicts",
        description=(
            "Resolve overlapping clocks interactively and patch the files"
        ),
    )
    recursive: bool = Field(
        default=False,
        description="Also scan subdirectories of the org directory",
    )
    org_dir: Path | None = Field(
        default=None,
        alias="org-dir",
        description="Directory with outline files (overrides config)",
    )
    org_file: list[Path] = Field(
        default_factory=list,
        alias="org-file",
        description="Check only this file; may be given more than once",
    )
    duration_mismatch: bool = Field(
        default=True,
        alias="duration-mismatch",
        description="Report stated durations that differ from start/end",
    )
    long_duration: bool = Field(
        default=True,
        alias="long-duration",
        description="Report clocks longer than the long duration limit",
    )
    long_duration_limit: str | None = Field(
        default=None,
        alias="long-duration-limit",
        description="Long duration limit as H:MM (overrides config)",
    )
    running_clock: bool = Field(
        default=True,
        alias="running-clock",
        description="Report clocks without an end",
    )
    negative_duration: bool = Field(
        default=True,
        alias="negative-duration",
        description="Report clocks ending before they start",
    )
    zero_clocks: bool = Field(
        default=True,
        alias="zero-clocks",
        description="Report closed clocks of zero length",
    )

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("long_duration_limit")
    @classmethod
    def _check_limit(cls, value: str | None) -> str | None:
        if value is not None:
            parse_hours_minutes(value)
        return value

    def apply_overrides(self, state: "State") -> None:
        """Copy the flags given on the command line into the config.

        Flags left at their defaults do not override YAML or env values.
        """
        given = self.model_fields_set
        config = state.config

        for name in CHECK_FLAGS:
            if name in given:
                setattr(config.checks, name, getattr(self, name))
        if self.long_duration_limit is not None:
            config.checks.long_duration_limit = self.long_duration_limit
        if "recursive" in given:
            config.files.recursive = self.recursive
        if self.org_dir is not None:
            config.files.org_dir = self.org_dir.expanduser()
        if self.org_file:
            config.files.org_files = list(self.org_file)

    async def run_workflow(self, state: "State") -> int:
        """Run the check.

        Args:
            state: State instance

        Returns:
            Exit code (0=clean, 1=problems or conflicts, 2=no files)
        """
        from orgcheck.clocks.checks import check_clocks
        from orgcheck.clocks.extract import extract_files
        from orgcheck.conflict.index import find_clusters
        from orgcheck.conflict.report import render_clusters
        from orgcheck.org.discovery import discover_files

        self.apply_overrides(state)
        config = state.config
        report = state.runtime.report
        fix = state.runtime.fix
        out = fix.output
        fix.now = fix.now or datetime.now()

        files = discover_files(
            config.files.org_dir,
            config.files.org_files,
            recursive=config.files.recursive,
            extensions=config.files.extensions,
        )
        if not files:
            logger.error(
                "No org files found",
                org_dir=str(config.files.org_dir),
            )
            return EXIT_NO_FILES

        with logger.span("check", files=len(files)):
            extraction = extract_files(files, report)
            report.files_scanned = len(extraction.sources)

            problems = check_clocks(extraction.clocks, config.checks)
            report.problems = len(problems)
            for problem in problems:
                out(problem.render())

            if config.checks.clock_conflicts or self.fix_clock_conflicts:
                clusters = find_clusters(
                    extraction.clocks,
                    now=fix.now,
                    policy=config.conflicts.running_clock_end,
                )
                report.conflicts = len(clusters)
                if clusters and not self.fix_clock_conflicts:
                    out(render_clusters(clusters))

        if self.fix_clock_conflicts and report.conflicts:
            from orgcheck.workflow.graph import create_workflow
            from orgcheck.workflow.nodes.scan import Scan

            fix.files = files
            fix.extraction = extraction
            workflow = create_workflow()
            async with workflow.iter(Scan(), state=state) as run:
                async for _node in run:
                    pass

        for item in report.skipped:
            out(item.describe())
        logger.info("Check complete", summary=report.summary())
        return report.exit_code
