"""CLI entry point for llmsync."""

import argparse
import logging
import sys
from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as get_version
from pathlib import Path

from dotenv import load_dotenv
from rich.panel import Panel
from rich.table import Table

from llmsync.config import SyncSettings, load_settings
from llmsync.console import console, print_error, print_path, print_success
from llmsync.core import LLMSyncError, PriorityTier, RunOutcome, SyncRun
from llmsync.hooks import install_hook
from llmsync.orchestrator import create_orchestrator
from llmsync.registry import DocumentRegistry
from llmsync.summarize import MarkdownSummarizer, Summarizer
from llmsync.support import cleanup_old_logs, get_logs_dir, get_project_root, get_state_dir
from llmsync.tracker import WorkflowStateTracker
from llmsync.utils import close_logging, setup_logging

logger = logging.getLogger(__name__)

try:
    VERSION = get_version("llms-sync")
except PackageNotFoundError:
    VERSION = "0.0.0"

OUTCOME_STYLES = {
    RunOutcome.COMMITTED: "success",
    RunOutcome.NO_CHANGE: "muted",
    RunOutcome.SKIPPED: "muted",
    RunOutcome.FAILED: "error",
}


def _create_parser() -> argparse.ArgumentParser:
    """Create and return the argument parser."""
    parser = argparse.ArgumentParser(
        prog="llmsync",
        description="Generate character-limited LLM documents and sync them after commits.",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable debug logging to console",
    )
    parser.add_argument(
        "--root",
        type=Path,
        help="Project root (default: git work tree of the current directory)",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    sync = sub.add_parser("sync", help="Regenerate derived documents and commit changes")
    sync.add_argument(
        "--dry-run",
        action="store_true",
        help="Generate and report changes without staging or committing",
    )
    sync.add_argument(
        "--hook",
        action="store_true",
        help="Running from the post-commit hook; only print on failure",
    )
    sync.add_argument(
        "--summarizer",
        choices=["markdown", "lm"],
        default="markdown",
        help="Summarizer backend (default: markdown)",
    )

    status = sub.add_parser("status", help="Show derived documents and their stages")
    status.add_argument("--category", help="Only show this category")
    status.add_argument(
        "--tier",
        choices=[t.value for t in PriorityTier],
        help="Only show this priority tier",
    )

    hook = sub.add_parser("install-hook", help="Install the git post-commit hook")
    hook.add_argument(
        "--force",
        action="store_true",
        help="Replace an existing post-commit hook",
    )
    return parser


# Load environment variables
load_dotenv()


def _get_summarizer(name: str) -> Summarizer:
    if name == "lm":
        # dspy is heavy; only import it when asked for
        from llmsync.summarize.lm import LMSummarizer

        return LMSummarizer()
    return MarkdownSummarizer()


def _print_run(run: SyncRun, root: Path) -> None:
    assert run.outcome is not None
    style = OUTCOME_STYLES[run.outcome]
    lines = [f"[{style}]Outcome:[/{style}] {run.outcome}"]
    if run.triggering_commit_id:
        lines.append(f"[muted]Trigger:[/muted] [path]{run.triggering_commit_id[:12]}[/]")
    lines.append(f"[muted]Generated:[/muted] {run.generated}")
    if run.failed_documents:
        lines.append(f"[warning]Failed:[/warning] {', '.join(run.failed_documents)}")
    for path in sorted(run.changed_paths):
        try:
            shown = Path(path).relative_to(root)
        except ValueError:
            shown = Path(path)
        lines.append(f"[muted]Changed:[/muted] [path]{shown}[/]")
    if run.commit_id:
        lines.append(f"[muted]Commit:[/muted] [path]{run.commit_id[:12]}[/]")
    if run.failed_stage:
        lines.append(f"[error]Failed during:[/error] {run.failed_stage}")
    if run.error:
        lines.append(f"[error]Error:[/error] {run.error}")

    console.print(
        Panel(
            "\n".join(lines),
            title=f"[{style}]llmsync[/{style}]",
            border_style="red" if run.outcome == RunOutcome.FAILED else "green",
        )
    )


def run_sync(
    root: Path,
    settings: SyncSettings,
    *,
    summarizer: Summarizer,
    dry_run: bool = False,
    quiet: bool = False,
) -> int:
    """Run one sync and return the process exit code."""
    orchestrator = create_orchestrator(
        root, settings, summarizer, state_dir=get_state_dir(root)
    )
    try:
        run = orchestrator.run(dry_run=dry_run)
    finally:
        orchestrator.close()

    if not quiet or not run.ok:
        _print_run(run, root)
    return 0 if run.ok else 1


def _short_time(timestamp: str | None) -> str:
    return timestamp[:16].replace("T", " ") if timestamp else "-"


def show_status(
    root: Path,
    settings: SyncSettings,
    *,
    category: str | None = None,
    tier: PriorityTier | None = None,
) -> int:
    """Print a table of derived documents with their workflow stages."""
    registry = DocumentRegistry(root / settings.source_dir, root / settings.derived_dir)
    tracker = WorkflowStateTracker.in_dir(get_state_dir(root))
    docs = registry.find(category=category, tier=tier)
    if not docs:
        console.print("[muted]No derived documents found[/muted]")
        return 0

    table = Table(title="Derived documents", header_style="heading")
    table.add_column("Document", no_wrap=True)
    table.add_column("Limit", justify="right")
    table.add_column("Category")
    table.add_column("Tier")
    table.add_column("Stage")
    table.add_column("Updated", style="muted")
    for doc in docs:
        stage = tracker.stage(doc.document_id, doc.character_limit)
        table.add_row(
            doc.document_id,
            str(doc.character_limit),
            doc.category,
            f"[tier.{doc.priority_tier}]{doc.priority_tier}[/] ({doc.priority_score})",
            str(stage),
            _short_time(doc.last_update),
        )
    console.print(table)

    pending = tracker.pending_sync()
    if pending:
        console.print(f"[warning]{len(pending)} document(s) not yet synced[/warning]")
    return 0


def main(argv: list[str] | None = None) -> int:
    """Run llmsync with the given arguments and return an exit code."""
    parser = _create_parser()
    args = parser.parse_args(argv)

    root = (args.root or get_project_root()).resolve()
    hook_mode = args.command == "sync" and args.hook
    if not hook_mode:
        console.print(f"[heading]llmsync[/heading] [muted](v{VERSION})[/muted]")

    logs_dir = get_logs_dir(root)
    cleanup_old_logs(logs_dir)  # Clean old logs first
    log_path = setup_logging(logs_dir, verbose=args.verbose)
    logger.info("llmsync (v%s) %s in %s", VERSION, args.command, root)

    try:
        if args.command == "install-hook":
            hook_path = install_hook(root, force=args.force)
            print_success("Installed post-commit hook")
            print_path("Hook", str(hook_path))
            return 0

        settings = load_settings(root)
        if args.command == "status":
            return show_status(
                root,
                settings,
                category=args.category,
                tier=PriorityTier(args.tier) if args.tier else None,
            )
        return run_sync(
            root,
            settings,
            summarizer=_get_summarizer(args.summarizer),
            dry_run=args.dry_run,
            quiet=hook_mode,
        )
    except LLMSyncError as e:
        logger.error("%s", e)
        print_error(str(e))
        return 1
    finally:
        # Only show log path if file was actually created
        close_logging()
        if args.verbose and log_path.exists():
            print_path("Debug log", str(log_path))


def run() -> None:
    sys.exit(main())


if __name__ == "__main__":
    run()
