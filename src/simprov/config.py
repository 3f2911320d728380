# config.py
from __future__ import annotations

import os
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Mapping, Optional

ENV_PREFIX = "SIMPROV_"

PROBE_POLICIES = ("assume-none", "warn", "abort")


@dataclass(frozen=True)
class Settings:
    """
    Run configuration. Precedence: CLI option > SIMPROV_* env var > default.

    access_token is read once at startup and handed to whatever needs it.
    It is excluded from repr so it never ends up in logs or tracebacks.
    """
    bucket: str = "simprov-artifacts"
    vpn_portal: str = "https://self-service.clientvpn.amazonaws.com"
    license_server: str = "27000@license.internal"
    region: str = "us-east-1"

    driver_bucket: str = "ec2-windows-nvidia-drivers"
    driver_prefix: str = "latest/"
    vpn_key: str = "vpn/AWS_VPN_Client.msi"
    suite_key: str = "suite/SimulationSuite.zip"
    suite_installer: str = "setup.exe"

    install_root: Path = Path(r"C:\Program Files\SimulationSuite")
    vpn_install_dir: Path = Path(r"C:\Program Files\Amazon\AWS VPN Client")
    aws_config_dir: Path = field(default_factory=lambda: Path.home() / ".aws")
    license_env_var: str = "LM_LICENSE_FILE"

    accelerator_pattern: str = r"^(g|p)\d"
    probe_timeout: float = 2.0
    probe_failure: str = "assume-none"
    metadata_url: str = "http://169.254.169.254"

    access_token: Optional[str] = field(default=None, repr=False)

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> "Settings":
        env = os.environ if env is None else env
        values = {}
        for f in fields(cls):
            raw = env.get(ENV_PREFIX + f.name.upper())
            if raw is None or raw == "":
                continue
            values[f.name] = _coerce(f.name, raw)
        return cls(**values).validated()

    def with_overrides(self, **overrides) -> "Settings":
        """Apply non-None overrides (e.g. from CLI options)."""
        clean = {k: _coerce(k, v) if isinstance(v, str) else v for k, v in overrides.items() if v is not None}
        return replace(self, **clean).validated()

    def validated(self) -> "Settings":
        if self.probe_failure not in PROBE_POLICIES:
            raise ValueError(
                f"probe_failure must be one of {', '.join(PROBE_POLICIES)}, got {self.probe_failure!r}"
            )
        if self.probe_timeout <= 0:
            raise ValueError("probe_timeout must be positive")
        for name in ("bucket", "vpn_portal", "license_server"):
            if not getattr(self, name).strip():
                raise ValueError(f"{name} must not be empty")
        return self

    def s3_uri(self, key: str, bucket: str | None = None) -> str:
        return f"s3://{bucket or self.bucket}/{key}"


def _coerce(name: str, raw: str):
    if name in ("install_root", "vpn_install_dir", "aws_config_dir"):
        return Path(raw)
    if name == "probe_timeout":
        try:
            return float(raw)
        except ValueError:
            raise ValueError(f"probe_timeout must be a number, got {raw!r}") from None
    return raw
