# errors.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional


@dataclass
class ProvisionError(Exception):
    """
    Structured provisioning error with enough context for:
      - clean CLI output
      - naming the step that stopped the run
      - debugging without full tracebacks
    """
    kind: str
    step: str | None
    message: str
    details: dict = field(default_factory=dict)

    def __str__(self) -> str:
        lines = [f"{self.kind}: {self.message}"]
        if self.step:
            lines.append(f"step={self.step}")
        for k, v in self.details.items():
            lines.append(f"{k}={v}")
        return "\n".join(lines)


class TransferError(Exception):
    """Raised when a download from object storage or a URL fails."""
    pass


class ProbeError(Exception):
    """Raised when the instance metadata service cannot be reached."""
    pass


@dataclass
class InstallerError(Exception):
    cmd: List[str]
    exit_code: int
    stderr: str = ""

    def __str__(self) -> str:
        return f"installer failed (exit={self.exit_code}): {' '.join(self.cmd)}"


@dataclass
class ArtifactMissing(Exception):
    what: str
    expected: str

    def __str__(self) -> str:
        return f"{self.what} not found at expected path: {self.expected}"


class ToolMissing(ArtifactMissing):
    """A command-line tool an earlier step should have installed is not on this host."""


# Hints shown under a failure, keyed by error kind
ERROR_HINTS: Dict[str, str] = {
    "transfer_failed": "Check network access and AWS credentials, then rerun.",
    "installer_failed": "Inspect the installer log, fix the cause, then rerun.",
    "artifact_missing": "Check the archive contents in the bucket, then rerun.",
    "tool_missing": "The tool is installed by an earlier step; install it manually or rerun.",
    "verify_failed": "The step ran but its result is not visible; rerun or install manually.",
    "probe_failed": "Metadata service unreachable; rerun with --probe-failure assume-none to continue.",
}


def hint_for(kind: str) -> Optional[str]:
    return ERROR_HINTS.get(kind)
