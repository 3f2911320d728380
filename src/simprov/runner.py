# runner.py
from __future__ import annotations

import logging
from typing import Any, Callable, List, Optional

from .config import Settings
from .errors import ArtifactMissing, InstallerError, ProvisionError, ToolMissing, TransferError
from .model import ActionResult, EnvironmentProbe, RunContext, RunReport, Step, StepOutcome, StepStatus
from .ui.console import Console, get_console

logger = logging.getLogger(__name__)

PlanBuilder = Callable[[Settings], List[Step]]
Prober = Callable[[Settings], EnvironmentProbe]


# ----------------------------------------------------------------------
# Plan checks
# ----------------------------------------------------------------------

def ordered(steps: List[Step]) -> List[Step]:
    """Return steps sorted by order, rejecting duplicate names or orders."""
    names = set()
    orders = set()
    for s in steps:
        if s.name in names:
            raise ValueError(f"Duplicate step name: {s.name}")
        if s.order in orders:
            raise ValueError(f"Duplicate step order {s.order} ({s.name})")
        names.add(s.name)
        orders.add(s.order)
    return sorted(steps, key=lambda s: s.order)


# ----------------------------------------------------------------------
# Execution primitives
# ----------------------------------------------------------------------

def check_skip(step: Step, ctx: RunContext) -> Optional[str]:
    """
    Returns the skip reason if the step is already satisfied, else None.

    An OSError while checking (path inaccessible, etc.) means "not done yet".
    """
    try:
        answer = step.skip_if(ctx)
    except OSError as e:
        logger.debug("precondition check for %s raised %s, treating as not done", step.name, e)
        return None
    if not answer:
        return None
    return answer if isinstance(answer, str) else "already satisfied"


def _as_provision_error(step: Step, exc: Exception) -> ProvisionError:
    if isinstance(exc, TransferError):
        return ProvisionError(kind="transfer_failed", step=step.name, message=str(exc))
    if isinstance(exc, InstallerError):
        return ProvisionError(
            kind="installer_failed",
            step=step.name,
            message=str(exc),
            details={"exit_code": exc.exit_code},
        )
    if isinstance(exc, ToolMissing):
        return ProvisionError(
            kind="tool_missing",
            step=step.name,
            message=str(exc),
            details={"expected": exc.expected},
        )
    if isinstance(exc, ArtifactMissing):
        return ProvisionError(
            kind="artifact_missing",
            step=step.name,
            message=str(exc),
            details={"expected": exc.expected},
        )
    return ProvisionError(kind="step_failed", step=step.name, message=f"{type(exc).__name__}: {exc}")


def run_step(step: Step, ctx: RunContext) -> StepOutcome:
    """
    Run one step. Returns the outcome, raises ProvisionError on failure.
    """
    reason = check_skip(step, ctx)
    if reason is not None:
        return StepOutcome(step=step.name, status=StepStatus.SKIPPED, reason=reason)

    try:
        result = step.action(ctx) or ActionResult()
    except ProvisionError as e:
        if e.step is None:
            e.step = step.name
        raise
    except Exception as e:
        raise _as_provision_error(step, e) from e

    if step.verify is not None:
        check = step.description or step.name
        try:
            holds = step.verify(ctx)
        except Exception as e:
            raise ProvisionError(
                kind="verify_failed",
                step=step.name,
                message=f"post-condition check raised {type(e).__name__}: {e}",
                details={"check": check},
            ) from e
        if not holds:
            raise ProvisionError(
                kind="verify_failed",
                step=step.name,
                message="post-condition does not hold after the action ran",
                details={"check": check},
            )

    return StepOutcome(
        step=step.name,
        status=StepStatus.SUCCESS,
        restart_required=result.restart_required,
        detail=result.detail,
    )


# ----------------------------------------------------------------------
# Driver loop
# ----------------------------------------------------------------------

def run_steps(
    steps: List[Step],
    ctx: RunContext,
    *,
    console: Console | None = None,
) -> RunReport:
    """
    Execute steps strictly in order, fail-fast.

    Every step re-checks its own precondition; there is no "already ran" flag.
    The first failure stops the run and is recorded on the report.
    """
    console = console or get_console()
    report = RunReport(probe=ctx.probe, outcomes=ctx.outcomes)

    for step in ordered(steps):
        console.print_step(step.order, step.name)
        try:
            outcome = run_step(step, ctx)
        except ProvisionError as e:
            ctx.outcomes.append(StepOutcome(step=step.name, status=StepStatus.FAILURE, reason=e.message))
            report.failed_step = step.name
            report.error = str(e)
            console.print_failure(step.name, e)
            break

        ctx.outcomes.append(outcome)
        if outcome.status is StepStatus.SKIPPED:
            console.print_skipped(outcome.reason)
        else:
            console.print_success(outcome.detail)

    return report


def resolve_probe(probe: EnvironmentProbe, settings: Settings, console: Console) -> EnvironmentProbe:
    """Apply the configured probe-failure policy."""
    if not probe.failed:
        return probe
    if settings.probe_failure == "abort":
        raise ProvisionError(
            kind="probe_failed",
            step="probe",
            message="could not determine the instance class",
            details={"error": probe.error},
        )
    if settings.probe_failure == "warn":
        console.print_warning(f"Instance probe failed ({probe.error}); continuing without accelerator steps")
    return probe


def provision(
    settings: Settings,
    *,
    build_plan: PlanBuilder,
    prober: Prober,
    store: Any = None,
    shell: Callable[..., Any] | None = None,
    follow_ups: Callable[[RunReport, Settings], List[str]] | None = None,
    console: Console | None = None,
) -> RunReport:
    """Probe once, build the ordered plan, run it."""
    console = console or get_console()
    steps = build_plan(settings)
    console.print_run_started(bucket=settings.bucket, region=settings.region, step_count=len(steps))

    probe = resolve_probe(prober(settings), settings, console)
    console.print_probe(probe)

    ctx = RunContext(settings=settings, probe=probe, store=store, shell=shell)
    report = run_steps(steps, ctx, console=console)
    if report.ok and follow_ups is not None:
        report.follow_ups = follow_ups(report, settings)
    return report
