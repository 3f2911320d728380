"""Console output formatting utilities for simprov."""

from __future__ import annotations

import sys
from typing import TYPE_CHECKING, List, Optional

from ..errors import hint_for

if TYPE_CHECKING:
    from ..errors import ProvisionError
    from ..model import EnvironmentProbe, RunReport


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

    def print_run_started(self, bucket: str, region: str, step_count: int) -> None:
        """Print run start information."""
        print("\nPROVISIONING STARTED")
        print(f"Bucket: {bucket}")
        print(f"Region: {region}")
        print(f"Steps: {step_count}")
        print()

    def print_probe(self, probe: "EnvironmentProbe") -> None:
        if probe.failed:
            print("PROBE: instance class unknown (treated as non-accelerated)")
            return
        kind = "accelerated" if probe.has_accelerator else "not accelerated"
        print(f"PROBE: {probe.instance_class} ({kind}, via {probe.source})")

    def print_step(self, order: int, name: str) -> None:
        """Print step start message."""
        print(f"\nSTEP {order}: {name}")

    def print_success(self, detail: str = "") -> None:
        """Print success message."""
        if detail:
            print(f"STATUS: success ({detail})")
        else:
            print("STATUS: success")

    def print_skipped(self, reason: str) -> None:
        print(f"STATUS: skipped ({reason})")

    def print_failure(self, name: str, error: "ProvisionError") -> None:
        """
        Print failure message.

        Args:
            name: Step name
            error: The structured error that stopped the run
        """
        print(f"STEP FAILED: {name}")
        exit_code = error.details.get("exit_code")
        if exit_code is not None:
            print(f"Exit code: {exit_code}")
        expected = error.details.get("expected")
        if expected:
            print(f"Expected: {expected}")
        hint = hint_for(error.kind)
        if hint:
            print(f"Hint: {hint}")
        if self.debug:
            print(f"Error details: {error}")
        else:
            print(f"Error: {error.message.splitlines()[0] if error.message else 'Unknown error'}")

    def print_warning(self, message: str) -> None:
        print(f"WARNING: {message}", file=sys.stderr)

    def print_plan_step(self, order: int, name: str, reason: Optional[str]) -> None:
        """Print one line of a dry-run plan."""
        if reason is None:
            print(f"  {order:>2}. {name} (will run)")
        else:
            print(f"  {order:>2}. {name} (skip: {reason})")

    def print_results(self, report: "RunReport") -> None:
        """Print final results summary."""
        print("\n" + "=" * 40)
        print("RESULTS")
        print("=" * 40)
        for step, status in report.statuses().items():
            print(f"  {step}: {status.upper()}")
        if report.failed_step:
            print(f"\nRun stopped at: {report.failed_step}")

    def print_summary(self, follow_ups: List[str], restart_required: bool) -> None:
        """Print the manual follow-up actions."""
        if restart_required:
            print("\nRESTART REQUIRED")
        if not follow_ups:
            return
        print("\nNEXT STEPS")
        for i, item in enumerate(follow_ups, 1):
            print(f"  {i}. {item}")

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
