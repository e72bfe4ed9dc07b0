"""Supporting infrastructure module."""

from llmsync.support.directory import (
    cleanup_old_logs,
    get_logs_dir,
    get_project_root,
    get_state_dir,
)
from llmsync.support.lock import RunLock

__all__ = [
    "RunLock",
    "cleanup_old_logs",
    "get_logs_dir",
    "get_project_root",
    "get_state_dir",
]
