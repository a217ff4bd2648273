"""Application state and configuration."""

from __future__ import annotations

import os
import re
from datetime import timedelta
from pathlib import Path
from typing import Any, Literal

import platformdirs
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from orgcheck.core.base import BaseConfig, BaseState
from orgcheck.core.log import Logger
from orgcheck.core.result import RunReport
from orgcheck.core.yaml_settings import YamlWithIncludesSettingsSource

# Modules usable in templates: {platformdirs.user_log_dir}, {Path.home}
TEMPLATE_NAMESPACE = {
    'os': os,
    'platformdirs': platformdirs,
    'Path': Path,
}


def parse_hours_minutes(value: str) -> timedelta:
    """Parse ``H:MM`` (hours may exceed 24, may be negative)."""
    match = re.fullmatch(r'\s*(-?)(\d+):([0-5]\d)\s*', value)
    if not match:
        raise ValueError(f"expected H:MM, got {value!r}")
    sign, hours, minutes = match.groups()
    delta = timedelta(hours=int(hours), minutes=int(minutes))
    return -delta if sign else delta


# ============================================================
# CONFIG MODELS (loaded from YAML/env/CLI)
# ============================================================

class FilesConfig(BaseConfig):
    """Which outline files are scanned."""

    org_dir: Path = Field(
        default_factory=lambda: Path.home() / "org",
        description="Directory scanned for outline files",
    )
    org_files: list[Path] = Field(
        default_factory=list,
        description=(
            "Explicit files to check; when set, org_dir is not scanned"
        ),
    )
    recursive: bool = Field(
        default=False,
        description="Descend into subdirectories of org_dir",
    )
    extensions: list[str] = Field(
        default_factory=lambda: [".org"],
        description="File suffixes picked up by the directory scan",
    )


class KnownLongDuration(BaseModel):
    """A long clock that is known and should not be reported."""

    file: str = Field(description="File name suffix, e.g. 'work.org'")
    duration: str = Field(description="Duration as H:MM, e.g. '12:59'")
    title: str = Field(description="Exact task title")


class ChecksConfig(BaseConfig):
    """Single-clock checks and conflict reporting switches."""

    duration_mismatch: bool = Field(
        default=True,
        description="Report stated durations that differ from start/end",
    )
    long_duration: bool = Field(
        default=True,
        description="Report clocks longer than long_duration_limit",
    )
    long_duration_limit: str = Field(
        default="10:00",
        description="Threshold for long clocks as H:MM",
    )
    running_clock: bool = Field(
        default=True, description="Report clocks without an end"
    )
    negative_duration: bool = Field(
        default=True, description="Report clocks ending before they start"
    )
    zero_clocks: bool = Field(
        default=True, description="Report closed clocks of zero length"
    )
    clock_conflicts: bool = Field(
        default=True, description="Report overlapping clocks"
    )
    known_long_durations: list[KnownLongDuration] = Field(
        default_factory=list,
        description="Long clocks that are not reported",
    )

    @field_validator('long_duration_limit')
    @classmethod
    def _check_limit(cls, value: str) -> str:
        parse_hours_minutes(value)
        return value

    @property
    def long_duration_threshold(self) -> timedelta:
        return parse_hours_minutes(self.long_duration_limit)


class ConflictConfig(BaseConfig):
    """Clock conflict detection settings."""

    running_clock_end: Literal["next_clock", "now"] = Field(
        default="next_clock",
        description=(
            "Where a running clock ends for overlap purposes: "
            "'next_clock' uses the next clock of the same task, falling "
            "back to the time of the run; 'now' always uses the time of "
            "the run"
        ),
    )


class Config(BaseConfig):
    """Application configuration loaded from YAML/env/CLI."""

    logger: Logger = Field(
        default=None,
        description="Logger configuration and runtime instance",
    )
    files: FilesConfig = Field(
        default_factory=FilesConfig,
        description="File selection",
    )
    checks: ChecksConfig = Field(
        default_factory=ChecksConfig,
        description="Checks to run",
    )
    conflicts: ConflictConfig = Field(
        default_factory=ConflictConfig,
        description="Clock conflict settings",
    )
    log_level: str = Field(
        default="info",
        alias="log-level",
        description=(
            "Console log level: 'trace', 'debug', 'info', "
            "'warn', 'error', 'fatal'"
        ),
    )
    log_root: Path = Field(
        default_factory=(
            lambda: Path(platformdirs.user_state_dir()) / "orgcheck"
        ),
        description=(
            "Root directory for log files "
            "(supports {platformdirs.*} templates)"
        ),
    )

    model_config = ConfigDict(populate_by_name=True)

    @model_validator(mode='after')
    def _setup_logger(self) -> 'Config':
        """Configure the global logger from the loaded settings."""
        from orgcheck.core.log import setup_logger

        if self.logger is None:
            self.logger = Logger(level=self.log_level)

        self.logger = setup_logger(
            log_root=self.log_root,
            run_name="check",
            level=self.logger.level,
            console=self.logger.console,
            file=self.logger.file,
        )
        return self

    def close(self):
        from orgcheck.core.log import logger
        if logger is not None:
            logger.close()
        super().close()


# ============================================================
# RUNTIME STATE MODELS (mutable during a run)
# ============================================================

class FixState(BaseState):
    """Interactive conflict resolution state."""

    engine: Any = Field(
        default=None,
        description="Current resolution engine state",
    )
    extraction: Any = Field(
        default=None,
        description="Clocks and sources from the latest scan",
    )
    files: list[Path] = Field(
        default_factory=list,
        description="Files read on every scan",
    )
    skipped_clusters: set = Field(
        default_factory=set,
        description="Keys of clusters kept as-is or failed to patch",
    )
    remaining: int = Field(
        default=0,
        description="Conflicts found by the latest scan",
    )
    prompt: Any = Field(
        default=input,
        description="Callable reading one line of user input",
    )
    output: Any = Field(
        default=print,
        description="Callable writing one line of output",
    )
    now: Any = Field(
        default=None,
        description="Reference time for running clocks",
    )

    model_config = ConfigDict(arbitrary_types_allowed=True)


class Runtime(BaseModel):
    """Runtime state grouped by concern."""

    report: RunReport = Field(
        default_factory=RunReport,
        description="Problems, conflicts and skips of this run",
    )
    fix: FixState = Field(
        default_factory=FixState,
        description="Interactive fix workflow state",
    )


# ============================================================
# STATE (config + runtime combined)
# ============================================================

class State(BaseSettings):
    """Complete application state: configuration plus runtime.

    Loads from (highest priority first) init arguments, YAML files
    with include support, .env, and ORGCHECK_* environment variables.
    """

    config: Config = Field(
        default_factory=Config,
        description="Application configuration (from YAML/env/CLI)",
    )
    runtime: Runtime = Field(
        default_factory=Runtime,
        description="Runtime state (mutates during a run)",
    )
    include: list[str] | None = Field(
        default=None,
        description=(
            "Additional YAML files to include and merge. "
            "Use --include on CLI or include: in YAML files."
        ),
    )

    model_config = SettingsConfigDict(
        yaml_file="orgcheck.yaml",
        env_file=".env",
        env_prefix="ORGCHECK_",
        env_nested_delimiter="__",
        cli_parse_args=True,
        cli_implicit_flags=True,
        cli_use_class_docs_for_groups=True,
        arbitrary_types_allowed=True,
        extra='ignore',
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            YamlWithIncludesSettingsSource(settings_cls),
            dotenv_settings,
            env_settings,
            file_secret_settings,
        )

    @model_validator(mode="after")
    def substitute_templates(self) -> "State":
        """Replace ``{config.*}``, ``{platformdirs.*}`` and ``{Path.*}``
        templates in every string and Path of the configuration."""
        self._substitute_recursive(self.config)
        return self

    def _substitute_recursive(self, obj: Any) -> None:
        if isinstance(obj, BaseModel):
            for field_name in obj.__class__.model_fields:
                value = getattr(obj, field_name)
                new_value = self._substitute_value(value)
                if new_value is not value:
                    setattr(obj, field_name, new_value)
        elif isinstance(obj, dict):
            for key in obj:
                obj[key] = self._substitute_value(obj[key])
        elif isinstance(obj, list):
            for i in range(len(obj)):
                obj[i] = self._substitute_value(obj[i])

    def _substitute_value(self, value: Any) -> Any:
        if isinstance(value, str):
            new = self._substitute_string(value)
            return value if new == value else new
        if isinstance(value, Path):
            new = self._substitute_string(str(value))
            return value if new == str(value) else Path(new).expanduser()
        if isinstance(value, (BaseModel, dict, list)):
            self._substitute_recursive(value)
        return value

    def _substitute_string(self, value: str) -> str:
        """Examples:
            "{config.files.org_dir}/archive" -> "/home/user/org/archive"
            "{platformdirs.user_log_dir}" -> "~/.local/state/orgcheck/log"
            "{Path.home}/notes" -> "/home/user/notes"
        """
        def replace_template(match):
            parts = match.group(1).split(".")

            if parts[0] in TEMPLATE_NAMESPACE:
                module = parts[0]
                obj = TEMPLATE_NAMESPACE[module]
                parts = parts[1:]
            else:
                module = None
                obj = self

            try:
                for part in parts:
                    obj = getattr(obj, part)
                if callable(obj):
                    if module == 'platformdirs':
                        obj = obj('orgcheck', appauthor=False)
                    else:
                        obj = obj()
                return str(obj)
            except (AttributeError, TypeError):
                return match.group(0)

        return re.sub(r'\{([A-Za-z._]+)\}', replace_template, value)


__all__ = ["State", "Config", "BaseConfig", "BaseState"]
