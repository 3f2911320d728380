# installers/credentials.py
from __future__ import annotations

import configparser
from pathlib import Path

from ..dsl import step
from ..model import RunContext, Step
from .packages import tool_exe


def has_profile(config_dir: Path, profile: str = "default") -> bool:
    """
    True when the credentials file already holds a key for profile.

    Values are only checked for presence, never read out.
    """
    creds = config_dir / "credentials"
    if not creds.is_file():
        return False
    parser = configparser.ConfigParser()
    parser.read(creds, encoding="utf-8")
    return parser.has_option(profile, "aws_access_key_id")


def credentials_step(profile: str = "default") -> Step:
    """
    Interactive `aws configure`. The CLI stores what the operator types;
    this step only checks afterwards that a profile exists.
    """
    def configure(ctx: RunContext):
        cmd = [str(tool_exe("awscli")), "configure"]
        if profile != "default":
            cmd += ["--profile", profile]
        ctx.shell(cmd, interactive=True)

    def done(ctx: RunContext):
        if has_profile(ctx.settings.aws_config_dir, profile):
            return f"profile '{profile}' already configured"
        return False

    return step(
        "cloud-credentials",
        skip_if=done,
        action=configure,
        verify=lambda ctx: has_profile(ctx.settings.aws_config_dir, profile),
        description=f"credentials for profile '{profile}'",
    )
