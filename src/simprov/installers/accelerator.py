# installers/accelerator.py
from __future__ import annotations

import logging
from pathlib import PurePosixPath
from typing import Callable

from ..dsl import artifact, step
from ..model import ActionResult, RunContext, Step
from ..storage import retrieve, scratch_dir

logger = logging.getLogger(__name__)

DRIVER_FLAGS = ["-s", "-noreboot"]


def accelerator_visible(shell: Callable) -> bool:
    """
    Ask the vendor tool whether the OS already sees a GPU.

    A missing nvidia-smi raises FileNotFoundError, which the runner reads as
    "not done yet".
    """
    proc = shell(["nvidia-smi", "-L"], check=False)
    return proc.returncode == 0 and "GPU" in (proc.stdout or "")


def accelerator_driver_step() -> Step:
    """
    Vendor driver install, only on accelerated instance classes.

    Installing the driver needs a restart before the GPU shows up, so the
    action reports restart_required and does not verify in the same run.
    """
    def satisfied(ctx: RunContext):
        probe = ctx.probe
        if not probe.has_accelerator:
            if probe.instance_class:
                return f"instance class {probe.instance_class} has no accelerator"
            return "instance class unknown"
        if accelerator_visible(ctx.shell):
            return "accelerator already visible"
        return False

    def install(ctx: RunContext):
        s = ctx.settings
        key = ctx.store.latest_key(s.driver_bucket, s.driver_prefix, ".exe")
        logger.debug("selected driver package s3://%s/%s", s.driver_bucket, key)
        with scratch_dir("simprov-driver-") as tmp:
            exe = retrieve(
                artifact("gpu-driver", s.s3_uri(key, bucket=s.driver_bucket), tmp / PurePosixPath(key).name, expect="executed"),
                ctx.store,
            )
            ctx.shell([str(exe), *DRIVER_FLAGS])
        return ActionResult(restart_required=True, detail="driver installed, restart pending")

    return step(
        "accelerator-driver",
        skip_if=satisfied,
        action=install,
        description="GPU driver installer exited cleanly",
    )
