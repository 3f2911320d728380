# installers/license.py
from __future__ import annotations

from typing import Callable, Optional

from ..dsl import step
from ..model import ActionResult, RunContext, Step

MACHINE_ENV_KEY = r"HKLM\SYSTEM\CurrentControlSet\Control\Session Manager\Environment"


def machine_variable(shell: Callable, name: str) -> Optional[str]:
    """
    Read a machine-wide environment variable from the registry.

    setx /M writes there without touching the running process, so
    os.environ cannot tell whether an earlier run already set it.
    """
    proc = shell(["reg", "query", MACHINE_ENV_KEY, "/v", name], check=False)
    if proc.returncode != 0:
        return None
    # "    NAME    REG_SZ    value"
    for line in (proc.stdout or "").splitlines():
        parts = line.split(None, 2)
        if len(parts) == 3 and parts[0].lower() == name.lower() and parts[1].startswith("REG_"):
            return parts[2].strip()
    return None


def license_server_step() -> Step:
    """Point the suite at its license server through a machine-wide variable."""
    def matches(ctx: RunContext) -> bool:
        s = ctx.settings
        return machine_variable(ctx.shell, s.license_env_var) == s.license_server

    def current(ctx: RunContext):
        if matches(ctx):
            return f"{ctx.settings.license_env_var} already set"
        return False

    def configure(ctx: RunContext):
        s = ctx.settings
        ctx.shell(["setx", s.license_env_var, s.license_server, "/M"])
        return ActionResult(detail=f"{s.license_env_var}={s.license_server}")

    return step(
        "license-server",
        skip_if=current,
        action=configure,
        verify=matches,
        description="machine license variable set",
    )
