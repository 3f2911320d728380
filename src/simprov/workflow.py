# workflow.py
# The workstation plan: what gets installed, in which order.
from __future__ import annotations

from typing import List

from .config import Settings
from .dsl import plan
from .installers import (
    accelerator_driver_step,
    chocolatey_step,
    credentials_step,
    license_server_step,
    simulation_suite_step,
    tool_steps,
    vpn_client_step,
)
from .model import EnvironmentProbe, RunReport, Step, StepStatus
from .probe import probe_environment


def build_plan(settings: Settings) -> List[Step]:
    return plan(
        chocolatey_step(),
        *tool_steps(),
        credentials_step(),
        vpn_client_step(),
        accelerator_driver_step(),
        simulation_suite_step(),
        license_server_step(),
    )


def default_prober(settings: Settings) -> EnvironmentProbe:
    return probe_environment(
        base_url=settings.metadata_url,
        timeout=settings.probe_timeout,
        pattern=settings.accelerator_pattern,
    )


def follow_ups(report: RunReport, settings: Settings) -> List[str]:
    """Manual actions left for the operator after a successful run."""
    items: List[str] = []

    driver = next((o for o in report.outcomes if o.step == "accelerator-driver"), None)
    if report.restart_required:
        items.append("Restart the instance to finish the GPU driver installation.")
    if report.probe.has_accelerator and driver is not None and driver.status is StepStatus.SUCCESS:
        items.append("After the restart, run `nvidia-smi` to confirm the GPU is visible.")

    items.append(f"Connect the VPN client using the self-service portal at {settings.vpn_portal}.")
    items.append(f"Confirm the license server {settings.license_server} is reachable over the VPN.")
    items.append(f"Start the simulation suite from {settings.install_root}.")
    return items
