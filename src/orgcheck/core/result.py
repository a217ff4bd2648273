"""Result types accumulated over one run."""

from pathlib import Path

from pydantic import BaseModel, Field

from orgcheck.core.errors import OrgCheckError


class SkippedItem(BaseModel):
    """A record, file or patch that was skipped, and why."""

    kind: str
    reason: str
    file: Path | None = None
    line: int | None = None

    def describe(self) -> str:
        if self.file is None:
            where = ""
        elif self.line is None:
            where = f"[{self.file}] "
        else:
            where = f"[{self.file}:{self.line}] "
        return f"{where}{self.kind.upper()}: {self.reason}"


class RunReport(BaseModel):
    """Everything a run reported, skipped or failed."""

    files_scanned: int = 0
    problems: int = 0
    conflicts: int = 0
    resolutions_applied: int = 0
    skipped: list[SkippedItem] = Field(default_factory=list)

    def skip(self, error: OrgCheckError) -> SkippedItem:
        """Record a recoverable error as a skipped item."""
        item = SkippedItem(
            kind=error.kind,
            reason=error.reason,
            file=error.file,
            line=error.line,
        )
        self.skipped.append(item)
        return item

    @property
    def clean(self) -> bool:
        return not (self.problems or self.conflicts or self.skipped)

    @property
    def exit_code(self) -> int:
        return 0 if self.clean else 1

    def summary(self) -> str:
        return (
            f"{self.files_scanned} files, {self.problems} problems, "
            f"{self.conflicts} conflicts, "
            f"{self.resolutions_applied} resolutions applied, "
            f"{len(self.skipped)} skipped"
        )
