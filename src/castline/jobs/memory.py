"""Process memory usage, for the worker's memory budget check."""

import os
from pathlib import Path
import resource
import sys

_STATM = Path("/proc/self/statm")


def current_memory_usage() -> int:
    """Resident set size of this process in bytes.

    Reads ``/proc/self/statm`` where available and otherwise falls back to
    the peak RSS reported by ``getrusage``.
    """
    try:
        resident_pages = int(_STATM.read_text().split()[1])
    except (OSError, IndexError, ValueError):
        peak = resource.getrusage(resource.RUSAGE_SELF).ru_maxrss
        # ru_maxrss is in bytes on macOS and kilobytes elsewhere.
        return peak if sys.platform == "darwin" else peak * 1024
    return resident_pages * os.sysconf("SC_PAGE_SIZE")
