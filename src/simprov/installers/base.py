# installers/base.py
from __future__ import annotations

import logging
import os
import shutil
import subprocess
from pathlib import Path
from typing import Iterable, List, Optional

from ..errors import InstallerError

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------
# Process execution
# ---------------------------------------------------------------------

def run_installer(
    cmd: List[str],
    *,
    interactive: bool = False,
    check: bool = True,
    timeout: Optional[float] = None,
) -> subprocess.CompletedProcess:
    """
    Run an external installer or tool to completion.

    interactive=True attaches the child to the terminal (prompts, credential
    entry); otherwise output is captured so it can be shown on failure.
    Raises InstallerError on a non-zero exit when check is set.
    """
    logger.debug("exec: %s", " ".join(cmd))
    proc = subprocess.run(
        cmd,
        shell=False,
        text=True,
        capture_output=not interactive,
        timeout=timeout,
    )
    if check and proc.returncode != 0:
        stderr = (proc.stderr or "")[-4000:]
        raise InstallerError(cmd=list(cmd), exit_code=proc.returncode, stderr=stderr)
    return proc


# ---------------------------------------------------------------------
# Precondition helpers
# ---------------------------------------------------------------------

def find_binary(name: str, known_paths: Iterable[str | Path] = ()) -> Optional[Path]:
    """Locate a binary on PATH or at one of its usual install locations."""
    found = shutil.which(name)
    if found:
        return Path(found)
    for p in known_paths:
        path = Path(os.path.expandvars(str(p)))
        if path.is_file():
            return path
    return None


def binary_present(name: str, known_paths: Iterable[str | Path] = ()) -> bool:
    return find_binary(name, known_paths) is not None
