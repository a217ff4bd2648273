"""Find outline files and read them once."""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from pathlib import Path

from orgcheck.core.errors import IOFailure
from orgcheck.core.log import logger
from orgcheck.core.result import RunReport


@dataclass(frozen=True)
class SourceFile:
    """File content as read at extraction time.

    ``checksum`` is the SHA-256 of the raw bytes; patches compare it
    against the file on disk before writing.
    """

    path: Path
    text: str
    checksum: str


def checksum_bytes(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def discover_files(
    org_dir: Path,
    org_files: list[Path] | None = None,
    recursive: bool = False,
    extensions: list[str] | None = None,
) -> list[Path]:
    """Return the files to check.

    An explicit ``org_files`` list wins over scanning ``org_dir``.
    Directory results are sorted so runs are reproducible.
    """
    if org_files:
        return [Path(f).expanduser() for f in org_files]

    suffixes = {ext.lower() for ext in (extensions or [".org"])}
    org_dir = Path(org_dir).expanduser()
    if not org_dir.is_dir():
        logger.warn("Org directory not found", org_dir=str(org_dir))
        return []

    candidates = org_dir.rglob("*") if recursive else org_dir.iterdir()
    files = [
        path for path in candidates
        if path.is_file() and path.suffix.lower() in suffixes
    ]
    return sorted(files)


def read_source(path: Path) -> SourceFile:
    """Read one file.

    Raises:
        IOFailure: If the file cannot be read or is not UTF-8
    """
    try:
        data = path.read_bytes()
    except OSError as e:
        raise IOFailure(f"cannot read file: {e.strerror or e}", file=path) from e
    try:
        text = data.decode("utf-8")
    except UnicodeDecodeError as e:
        raise IOFailure(f"not valid UTF-8: {e.reason}", file=path) from e
    return SourceFile(path=path, text=text, checksum=checksum_bytes(data))


def read_sources(paths: list[Path], report: RunReport) -> list[SourceFile]:
    """Read every file, recording unreadable ones in ``report``."""
    sources = []
    for path in paths:
        try:
            sources.append(read_source(path))
        except IOFailure as e:
            logger.warn("Skipping unreadable file", file=str(path), reason=e.reason)
            report.skip(e)
    logger.debug("Read org files", count=len(sources))
    return sources
