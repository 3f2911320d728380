# dsl.py
from __future__ import annotations

from dataclasses import replace
from pathlib import Path
from typing import List, Optional

from .model import Action, RemoteArtifact, SkipCheck, Step, Verify


# ---------------------------------------------------------------------
# Step helper
# ---------------------------------------------------------------------

def step(
    name: str,
    *,
    skip_if: SkipCheck,
    action: Action,
    verify: Optional[Verify] = None,
    description: str = "",
    order: int = 0,
) -> Step:
    """Declare a step. order=0 means "position in the plan decides"."""
    if not name:
        raise ValueError("step name must not be empty")
    return Step(
        order=order,
        name=name,
        skip_if=skip_if,
        action=action,
        verify=verify,
        description=description,
    )


def artifact(name: str, source: str, destination: str | Path, *, expect: str = "exists") -> RemoteArtifact:
    if expect not in ("exists", "extracted", "executed"):
        raise ValueError(f"artifact({name!r}): unknown expectation {expect!r}")
    return RemoteArtifact(name=name, source=source, destination=Path(destination), expect=expect)


# ---------------------------------------------------------------------
# Plan helper
# ---------------------------------------------------------------------

def plan(*steps: Step) -> List[Step]:
    """
    Plan definition helper. Steps without an explicit order are numbered
    by their position (1-based), so the declared sequence is the run order.

        plan(
            step("chocolatey", skip_if=..., action=...),
            step("awscli", skip_if=..., action=...),
        )
    """
    out: List[Step] = []
    for i, s in enumerate(steps, 1):
        out.append(s if s.order else replace(s, order=i))
    return out
