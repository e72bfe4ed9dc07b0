"""Git post-commit hook installation."""

from __future__ import annotations

import logging
import stat
import subprocess
import sys
from pathlib import Path

from llmsync.core.errors import LLMSyncError

logger = logging.getLogger(__name__)

HOOK_NAME = "post-commit"
HOOK_MARKER = "# llmsync post-commit hook"

HOOK_TEMPLATE = """\
#!/bin/sh
{marker}
# Regenerates derived documents and records them in a follow-up commit.
# Sync commits carry an LLMS-Sync trailer and are skipped by the run itself.
"{python}" -m llmsync sync --hook || true
"""


class HookInstallError(LLMSyncError):
    """The post-commit hook could not be installed."""


def hooks_dir(root: Path) -> Path:
    """Resolve the repository's hooks directory (honors core.hooksPath)."""
    result = subprocess.run(
        ["git", "rev-parse", "--git-path", "hooks"],
        capture_output=True,
        text=True,
        check=False,
        cwd=root,
    )
    if result.returncode != 0 or not result.stdout.strip():
        raise HookInstallError(f"{root} is not a git repository")
    path = Path(result.stdout.strip())
    return path if path.is_absolute() else root / path


def render_hook(python: str | None = None) -> str:
    return HOOK_TEMPLATE.format(marker=HOOK_MARKER, python=python or sys.executable)


def install_hook(root: Path, *, force: bool = False) -> Path:
    """Write an executable post-commit hook that runs `llmsync sync --hook`.

    An existing llmsync hook is rewritten in place. A foreign hook is only
    replaced with force.

    Raises:
        HookInstallError: Outside a git repository, or a foreign hook exists.
    """
    hook_path = hooks_dir(root) / HOOK_NAME
    if hook_path.exists() and not force:
        existing = hook_path.read_text(errors="replace")
        if HOOK_MARKER not in existing:
            raise HookInstallError(
                f"{hook_path} already exists; use --force to replace it"
            )

    hook_path.parent.mkdir(parents=True, exist_ok=True)
    hook_path.write_text(render_hook())
    mode = hook_path.stat().st_mode
    hook_path.chmod(mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    logger.info("Installed %s hook at %s", HOOK_NAME, hook_path)
    return hook_path
