"""
Provenance stamps for MTZ history records.

Each conversion may append one history line recording the tool, its
version and when it ran, e.g.::

    mtz2json v1.0.9 run on Mon Oct 19 11:10:00 2026

The line is padded to the fixed 80-character MTZ record width.
"""

from datetime import datetime, timezone
from typing import Optional

from . import __version__
from .constants import MTZ_RECORD_LENGTH
from .model import Record

# Longest job description that still leaves room for the timestamp
MAX_JOB_LENGTH = 55

# Length of a ctime() string, e.g. "Mon Oct 19 11:10:00 2026"
CTIME_LENGTH = 24


def job_string(tool: str, version: str = __version__) -> str:
    """Describe a run of the given tool."""
    return f"{tool} v{version} run on"


def make_timestamp(job: str, when: Optional[datetime] = None) -> str:
    """
    Build a fixed-width history line.

    Args:
        job: Job description; cut to MAX_JOB_LENGTH characters
        when: Time of the run. Defaults to now (UTC).

    Returns:
        "<job> <ctime>" right-padded with spaces to MTZ_RECORD_LENGTH

    Example:
        >>> stamp = make_timestamp("mtz2json v1.0.9 run on", datetime(2026, 10, 19, 11, 10))
        >>> stamp.rstrip()
        'mtz2json v1.0.9 run on Mon Oct 19 11:10:00 2026'
        >>> len(stamp)
        80
    """
    if when is None:
        when = datetime.now(timezone.utc)
    line = f"{job[:MAX_JOB_LENGTH]} {when.ctime()[:CTIME_LENGTH]}"
    return line.ljust(MTZ_RECORD_LENGTH)[:MTZ_RECORD_LENGTH]


def stamp_record(record: Record, tool: str, when: Optional[datetime] = None) -> str:
    """
    Append a provenance line for tool to the record's history.

    Returns:
        The line that was added
    """
    line = make_timestamp(job_string(tool), when)
    record.add_history_line(line)
    return line
