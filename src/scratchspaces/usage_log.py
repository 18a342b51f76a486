"""
Append-only usage logs.

Each attribution becomes one TOML array-of-tables entry keyed by the
space path:

    [["/depot/scratchspaces/<owner>/<key>"]]
    time = 2026-10-18T09:30:00+00:00
    parent_projects = ["/env/Project.toml"]

Entries are written with a single append so that several processes can
log to the same file without corrupting each other's entries. The file
is never read back on the write path.
"""

from __future__ import annotations

import logging
import tomllib
from pathlib import Path
from typing import Union

import tomli_w
from pydantic import ValidationError

from .errors import UsageLogWriteError
from .models import USAGE_LOG_NAME, UsageEntry

logger = logging.getLogger("scratchspaces.usage_log")


def append_usage(
    space_path: Union[str, Path],
    entry: UsageEntry,
    log_name: str = USAGE_LOG_NAME,
) -> Path:
    """Append one attribution entry to a space's usage log.

    Args:
        space_path: The space directory. Must already exist.
        entry: The attribution to record.
        log_name: File name of the log inside the space.

    Returns:
        Path: The log file written to.

    Raises:
        UsageLogWriteError: If the space is gone or the write fails.
    """
    space_dir = Path(space_path)
    if not space_dir.is_dir():
        raise UsageLogWriteError(f"Space {space_dir} does not exist; not logging usage")

    log_file = space_dir / log_name
    chunk = tomli_w.dumps({str(space_dir): [entry.to_toml()]})
    try:
        with log_file.open("a", encoding="utf-8") as fh:
            fh.write(chunk)
    except OSError as exc:
        raise UsageLogWriteError(f"Could not append to {log_file}: {exc}") from exc
    return log_file


def read_usage(
    space_path: Union[str, Path],
    log_name: str = USAGE_LOG_NAME,
) -> list[UsageEntry]:
    """Load every entry from a space's usage log, oldest first.

    A missing log reads as empty. A corrupt log is logged and read as
    empty, since the log is advisory.
    """
    log_file = Path(space_path) / log_name
    if not log_file.exists():
        return []
    try:
        data = tomllib.loads(log_file.read_text(encoding="utf-8"))
    except (tomllib.TOMLDecodeError, OSError) as exc:
        logger.warning("Unreadable usage log %s: %s", log_file, exc)
        return []

    entries: list[UsageEntry] = []
    for records in data.values():
        if not isinstance(records, list):
            continue
        for record in records:
            try:
                entries.append(UsageEntry.model_validate(record))
            except ValidationError:
                logger.debug("Skipping malformed usage entry in %s", log_file)
    entries.sort(key=lambda e: e.time)
    return entries
