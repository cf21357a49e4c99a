"""
Resident memory readings for budget checks and release reports.
"""

import os

import psutil


def rss_bytes(pid: int | None = None) -> int:
    """
    Return the resident set size of a process in bytes.

    Args:
        pid: Process to inspect (default: the current process)

    Returns:
        RSS in bytes, or 0 when the process cannot be inspected. A zero
        reading never trips a memory ceiling.
    """
    try:
        return psutil.Process(pid if pid is not None else os.getpid()).memory_info().rss
    except (psutil.NoSuchProcess, psutil.AccessDenied, psutil.ZombieProcess):
        return 0
