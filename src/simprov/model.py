# model.py
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union

# skip_if may answer with a plain bool or with a reason string (truthy = skip)
SkipCheck = Callable[["RunContext"], Union[bool, str, None]]
Action = Callable[["RunContext"], Optional["ActionResult"]]
Verify = Callable[["RunContext"], bool]


class StepStatus(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class Step:
    """A single idempotent unit of provisioning work."""
    order: int
    name: str
    skip_if: SkipCheck
    action: Action
    verify: Verify | None = None
    description: str = ""


@dataclass(frozen=True)
class ActionResult:
    """What an action hands back to the runner (optional)."""
    restart_required: bool = False
    detail: str = ""


@dataclass
class StepOutcome:
    step: str
    status: StepStatus
    reason: str = ""
    restart_required: bool = False
    detail: str = ""


@dataclass(frozen=True)
class EnvironmentProbe:
    """
    Result of asking the host what it is.

    source:
      - "imdsv2": token-authenticated metadata lookup
      - "imdsv1": token-less fallback
      - "none":   probe failed, treated as non-accelerated
    """
    instance_class: Optional[str]
    has_accelerator: bool
    source: str = "none"
    error: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.source == "none"


@dataclass(frozen=True)
class RemoteArtifact:
    """
    A named object fetched from object storage or a URL.

    source:  "s3://bucket/key" or "https://..."
    expect:  "exists" | "extracted" | "executed"
    """
    name: str
    source: str
    destination: Path
    expect: str = "exists"

    @property
    def is_s3(self) -> bool:
        return self.source.startswith("s3://")

    @property
    def bucket(self) -> str:
        return self.source[len("s3://"):].split("/", 1)[0]

    @property
    def key(self) -> str:
        parts = self.source[len("s3://"):].split("/", 1)
        return parts[1] if len(parts) > 1 else ""


@dataclass
class RunContext:
    """
    Everything a step may look at while it runs.

    Holds values, not globals: settings and the probe are set once at the
    start of a run, outcomes grow as steps complete. store and shell are the
    object-storage client and the process launcher steps use.
    """
    settings: Any
    probe: EnvironmentProbe
    store: Any = None
    shell: Optional[Callable[..., Any]] = None
    outcomes: List[StepOutcome] = field(default_factory=list)

    def outcome(self, name: str) -> Optional[StepOutcome]:
        for o in self.outcomes:
            if o.step == name:
                return o
        return None


@dataclass
class RunReport:
    probe: EnvironmentProbe
    outcomes: List[StepOutcome] = field(default_factory=list)
    failed_step: Optional[str] = None
    error: Optional[str] = None
    follow_ups: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.failed_step is None

    @property
    def restart_required(self) -> bool:
        return any(o.restart_required for o in self.outcomes)

    def statuses(self) -> Dict[str, str]:
        return {o.step: o.status.value for o in self.outcomes}
