"""Console output formatting utilities for deployflow."""

from __future__ import annotations

import sys
from typing import Dict, Iterable, Optional

from ..errors import ConfigurationError, ExecutionError
from ..model import ExecutionLevel


class Console:
    """Centralized console output formatting."""

    def __init__(self, debug: bool = False):
        """
        Initialize console formatter.

        Args:
            debug: If True, show detailed output including stack traces
        """
        self.debug = debug

    def print_header(self, title: str) -> None:
        """Print a section header."""
        print(f"\n{title}")
        print("-" * len(title))

    def print_pipeline_loaded(self, name: str, source: str, stage_count: int, action_count: int) -> None:
        print("\nPIPELINE LOADED")
        print(f"Pipeline: {name}")
        print(f"Source: {source}")
        print(f"Stages: {stage_count}")
        print(f"Actions: {action_count}")
        print()

    def print_levels(self, levels: Iterable[ExecutionLevel]) -> None:
        """Print the execution plan, one line per barrier level."""
        self.print_header("EXECUTION LEVELS")
        for i, level in enumerate(levels, start=1):
            actions = ", ".join(level.action_ids)
            print(f"  {i:>2}. {level.stage} @ runOrder {level.run_order}: {actions}")

    def print_action(self, action_id: str) -> None:
        print(f"ACTION: {action_id}")

    def print_results(self, results: Dict[str, str]) -> None:
        """Print final results summary."""
        print("\n" + "=" * 40)
        print("RESULTS")
        print("=" * 40)
        for action, status in results.items():
            status_display = status.upper() if status != "ok" else "SUCCESS"
            print(f"  {action}: {status_display}")

    def print_execution_failure(self, error: ExecutionError) -> None:
        print(f"\nACTION FAILED: {error.action}", file=sys.stderr)
        print(f"Stage: {error.stage} (runOrder {error.run_order})", file=sys.stderr)
        print(f"Error: {error.message}", file=sys.stderr)
        print("Later levels were not started.", file=sys.stderr)

    def print_configuration_error(self, error: ConfigurationError) -> None:
        """Print a declaration error with the identifiers needed to find it."""
        self.print_error(
            error.kind,
            error.message,
            details=[f"{k}={v}" for k, v in error.details.items()],
        )

    def print_error(
        self,
        title: str,
        message: str,
        details: Optional[list[str]] = None,
        suggestion: Optional[str] = None,
    ) -> None:
        """
        Print structured error message.

        Args:
            title: Error title
            message: Main error message
            details: Optional list of detail lines
            suggestion: Optional suggestion for user
        """
        print(f"\nERROR: {title}", file=sys.stderr)
        print(f"{message}", file=sys.stderr)
        if details:
            for detail in details:
                print(f"  {detail}", file=sys.stderr)
        if suggestion:
            print(f"\n{suggestion}", file=sys.stderr)

    def print_exception(self, exc: Exception) -> None:
        """Print exception, with full traceback only in debug mode."""
        if self.debug:
            import traceback
            traceback.print_exc()
        else:
            print(f"Error: {exc}", file=sys.stderr)

    def print_info(self, message: str) -> None:
        """Print informational message."""
        print(message)

    def print_debug(self, message: str) -> None:
        """Print debug message (only if debug mode enabled)."""
        if self.debug:
            print(f"[DEBUG] {message}", file=sys.stderr)


# Global console instance (will be initialized by CLI)
_console: Optional[Console] = None


def get_console() -> Console:
    """Get the global console instance."""
    global _console
    if _console is None:
        _console = Console()
    return _console


def set_console(console: Console) -> None:
    """Set the global console instance."""
    global _console
    _console = console
