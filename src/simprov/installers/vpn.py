# installers/vpn.py
from __future__ import annotations

from pathlib import PurePosixPath

from ..dsl import artifact, step
from ..model import ActionResult, RunContext, Step
from ..storage import retrieve, scratch_dir

VPN_EXE = "AWSVPNClient.exe"


def vpn_client_step() -> Step:
    def installed(ctx: RunContext) -> bool:
        return (ctx.settings.vpn_install_dir / VPN_EXE).is_file()

    def install(ctx: RunContext):
        s = ctx.settings
        with scratch_dir("simprov-vpn-") as tmp:
            msi = retrieve(
                artifact("vpn-client", s.s3_uri(s.vpn_key), tmp / PurePosixPath(s.vpn_key).name, expect="executed"),
                ctx.store,
            )
            ctx.shell(["msiexec", "/i", str(msi), "/qn", "/norestart"])
        return ActionResult(detail=f"connect via {s.vpn_portal}")

    return step(
        "vpn-client",
        skip_if=lambda ctx: "VPN client already installed" if installed(ctx) else False,
        action=install,
        verify=installed,
        description=f"{VPN_EXE} in VPN install directory",
    )
