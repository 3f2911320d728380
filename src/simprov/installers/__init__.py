from .accelerator import accelerator_driver_step
from .credentials import credentials_step
from .license import license_server_step
from .packages import chocolatey_step, tool_step, tool_steps
from .suite import simulation_suite_step
from .vpn import vpn_client_step

__all__ = [
    "accelerator_driver_step",
    "chocolatey_step",
    "credentials_step",
    "license_server_step",
    "simulation_suite_step",
    "tool_step",
    "tool_steps",
    "vpn_client_step",
]
