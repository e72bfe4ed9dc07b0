"""Project directory management for llmsync."""

import subprocess
from datetime import datetime, timedelta
from pathlib import Path

from llmsync.core.constants import RETENTION, SYNC

STATE_EXCLUDE_ENTRY = f"/{SYNC.state_dir}/"


def get_project_root(cwd: Path | None = None) -> Path:
    """Return the git work tree root, or the working directory outside git."""
    cwd = cwd or Path.cwd()
    try:
        result = subprocess.run(
            ["git", "rev-parse", "--show-toplevel"],
            capture_output=True,
            text=True,
            check=False,
            cwd=cwd,
        )
    except FileNotFoundError:
        return cwd
    if result.returncode != 0 or not result.stdout.strip():
        return cwd
    return Path(result.stdout.strip())


def get_state_dir(root: Path) -> Path:
    """Get the state directory, creating .llmsync/ if needed.

    Inside a git work tree, `/.llmsync/` is added to `info/exclude` so run
    state and logs are never staged. Tracked files are left untouched.
    """
    state_dir = root / SYNC.state_dir
    state_dir.mkdir(parents=True, exist_ok=True)
    _ensure_excluded(root)
    return state_dir


def get_logs_dir(root: Path) -> Path:
    """Get logs directory, creating .llmsync/logs/ if needed."""
    logs_dir = get_state_dir(root) / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    return logs_dir


def cleanup_old_logs(logs_dir: Path, retention_days: int = RETENTION.logs_days) -> int:
    """Remove log files older than retention_days.

    Args:
        logs_dir: Directory containing log files.
        retention_days: Number of days to retain logs.

    Returns:
        Number of files deleted.
    """
    if not logs_dir.exists():
        return 0

    cutoff = datetime.now() - timedelta(days=retention_days)
    deleted = 0

    for log_file in logs_dir.glob("*.log"):
        try:
            # Parse date from filename: YYYY-MM-DD-HH:MM.log
            file_date = datetime.strptime(log_file.stem[:10], "%Y-%m-%d")
            if file_date < cutoff:
                log_file.unlink()
                deleted += 1
        except (ValueError, OSError):
            continue

    return deleted


def _git_exclude_file(root: Path) -> Path | None:
    """info/exclude of the repository whose work tree root is root, if any."""
    try:
        result = subprocess.run(
            ["git", "rev-parse", "--show-toplevel", "--git-path", "info/exclude"],
            capture_output=True,
            text=True,
            check=False,
            cwd=root,
        )
    except FileNotFoundError:
        return None
    lines = result.stdout.splitlines()
    if result.returncode != 0 or len(lines) != 2:
        return None
    toplevel, exclude = lines
    if Path(toplevel).resolve() != root.resolve():
        return None
    return root / exclude


def _ensure_excluded(root: Path) -> None:
    """Add /.llmsync/ to the repository's info/exclude if not already present."""
    exclude = _git_exclude_file(root)
    if exclude is None:
        return
    content = exclude.read_text() if exclude.exists() else ""
    entries = {line.strip() for line in content.splitlines()}
    if entries & {STATE_EXCLUDE_ENTRY, STATE_EXCLUDE_ENTRY.lstrip("/")}:
        return
    exclude.parent.mkdir(parents=True, exist_ok=True)
    prefix = content.rstrip("\n") + "\n" if content.strip() else content
    exclude.write_text(f"{prefix}{STATE_EXCLUDE_ENTRY}\n")
