# installers/packages.py
from __future__ import annotations

from pathlib import Path
from typing import List, Optional

from ..dsl import step
from ..errors import ToolMissing
from ..model import RunContext, Step
from .base import binary_present, find_binary

CHOCO_PATHS = [r"%ProgramData%\chocolatey\bin\choco.exe", r"C:\ProgramData\chocolatey\bin\choco.exe"]

CHOCO_BOOTSTRAP = (
    "Set-ExecutionPolicy Bypass -Scope Process -Force; "
    "[System.Net.ServicePointManager]::SecurityProtocol = "
    "[System.Net.ServicePointManager]::SecurityProtocol -bor 3072; "
    "iex ((New-Object System.Net.WebClient).DownloadString('https://community.chocolatey.org/install.ps1'))"
)

# package -> (binary, usual install locations)
TOOLS = {
    "awscli": ("aws", [r"C:\Program Files\Amazon\AWSCLIV2\aws.exe"]),
    "7zip": ("7z", [r"C:\Program Files\7-Zip\7z.exe"]),
}


def choco_exe() -> Path:
    exe = find_binary("choco", CHOCO_PATHS)
    if exe is None:
        raise ToolMissing(what="choco", expected=CHOCO_PATHS[-1])
    return exe


def tool_binary(package: str) -> Optional[Path]:
    """Where the binary of a tool package lives on this host, if anywhere."""
    binary, known = TOOLS[package]
    return find_binary(binary, known)


def tool_exe(package: str) -> Path:
    exe = tool_binary(package)
    if exe is None:
        binary, known = TOOLS[package]
        raise ToolMissing(what=binary, expected=str(known[0]))
    return exe


def chocolatey_step() -> Step:
    def install(ctx: RunContext):
        ctx.shell([
            "powershell",
            "-NoProfile",
            "-InputFormat", "None",
            "-ExecutionPolicy", "Bypass",
            "-Command", CHOCO_BOOTSTRAP,
        ])

    return step(
        "package-manager",
        skip_if=lambda ctx: "choco already installed" if binary_present("choco", CHOCO_PATHS) else False,
        action=install,
        verify=lambda ctx: binary_present("choco", CHOCO_PATHS),
        description="choco.exe present",
    )


def tool_step(package: str) -> Step:
    """One `choco install` step per tool, skipped when the binary is already there."""
    if package not in TOOLS:
        raise ValueError(f"Unknown tool package: {package}")
    binary = TOOLS[package][0]

    def install(ctx: RunContext):
        ctx.shell([str(choco_exe()), "install", package, "-y", "--no-progress"])

    return step(
        f"install-{package}",
        skip_if=lambda ctx: f"{binary} already installed" if tool_binary(package) else False,
        action=install,
        verify=lambda ctx: tool_binary(package) is not None,
        description=f"{binary} present",
    )


def tool_steps(packages: List[str] | None = None) -> List[Step]:
    return [tool_step(p) for p in (packages or list(TOOLS))]
