import subprocess
import zipfile
from pathlib import Path

import pytest

from simprov.config import Settings
from simprov.errors import InstallerError, TransferError
from simprov.installers import base, packages
from simprov.model import EnvironmentProbe
from simprov.ui.console import Console, set_console


@pytest.fixture(autouse=True)
def quiet_console():
    console = Console(debug=False)
    set_console(console)
    yield console


@pytest.fixture
def settings(tmp_path):
    return Settings(
        bucket="test-bucket",
        vpn_portal="https://vpn.example.test",
        license_server="27000@lic.example.test",
        install_root=tmp_path / "suite",
        vpn_install_dir=tmp_path / "vpn",
        aws_config_dir=tmp_path / ".aws",
        license_env_var="SIMPROV_TEST_LICENSE",
    )


def make_probe(instance_class):
    if instance_class is None:
        return EnvironmentProbe(instance_class=None, has_accelerator=False, source="none", error="timed out")
    accelerated = instance_class.startswith(("g", "p"))
    return EnvironmentProbe(instance_class=instance_class, has_accelerator=accelerated, source="imdsv2")


class FakeStore:
    """Object store that writes small stand-ins for the real artifacts."""

    def __init__(self, installer_name="setup.exe"):
        self.downloads = []
        self.fail_keys = set()
        self.installer_name = installer_name

    def download(self, bucket, key, destination):
        self.downloads.append((bucket, key))
        if key in self.fail_keys:
            raise TransferError(f"Failed to download s3://{bucket}/{key}: simulated")
        destination.parent.mkdir(parents=True, exist_ok=True)
        if key.endswith(".zip"):
            with zipfile.ZipFile(destination, "w") as zf:
                if self.installer_name:
                    zf.writestr(f"SimulationSuite/{self.installer_name}", b"MZ")
                zf.writestr("SimulationSuite/readme.txt", b"suite")
        else:
            destination.write_bytes(b"MZ")
        return destination

    def latest_key(self, bucket, prefix, suffix=".exe"):
        return f"{prefix}552.55_grid_win10_win11_server2022_dch_64bit_international.exe"


class FakeMachine:
    """
    Stands in for the Windows host: each command the steps launch leaves the
    same trace on disk a real installer would, so precondition checks see it.
    """

    def __init__(self, tmp_path, settings, monkeypatch):
        self.settings = settings
        self.commands = []
        self.fail_on = None
        self.gpu_visible = False
        self.driver_installed = False
        # machine-wide environment as stored in the registry
        self.registry = {}

        self.choco = tmp_path / "choco" / "choco.exe"
        self.tools = {
            "awscli": tmp_path / "tools" / "aws.exe",
            "7zip": tmp_path / "tools" / "7z.exe",
        }
        monkeypatch.setattr(base.shutil, "which", lambda name: None)
        monkeypatch.setattr(packages, "CHOCO_PATHS", [str(self.choco)])
        monkeypatch.setattr(
            packages,
            "TOOLS",
            {
                "awscli": ("aws", [str(self.tools["awscli"])]),
                "7zip": ("7z", [str(self.tools["7zip"])]),
            },
        )

    @staticmethod
    def _touch(path: Path):
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(b"")

    def __call__(self, cmd, *, interactive=False, check=True, timeout=None):
        self.commands.append(list(cmd))
        exe = Path(cmd[0]).name.lower()

        if exe == "nvidia-smi":
            if not self.gpu_visible:
                raise FileNotFoundError("nvidia-smi")
            return subprocess.CompletedProcess(cmd, 0, stdout="GPU 0: NVIDIA A10G (UUID: GPU-1)\n", stderr="")

        if exe == "reg":
            name = cmd[-1]
            if name not in self.registry:
                return subprocess.CompletedProcess(cmd, 1, stdout="", stderr="ERROR: The system was unable to find the specified registry key or value.")
            out = f"\r\n{cmd[2]}\r\n    {name}    REG_SZ    {self.registry[name]}\r\n"
            return subprocess.CompletedProcess(cmd, 0, stdout=out, stderr="")

        if self.fail_on and self.fail_on(cmd):
            if check:
                raise InstallerError(cmd=list(cmd), exit_code=1603, stderr="simulated failure")
            return subprocess.CompletedProcess(cmd, 1603, stdout="", stderr="simulated failure")

        if exe == "powershell":
            self._touch(self.choco)
        elif exe == "choco.exe" and cmd[1] == "install":
            self._touch(self.tools[cmd[2]])
        elif exe == "aws.exe" and "configure" in cmd:
            creds = self.settings.aws_config_dir / "credentials"
            creds.parent.mkdir(parents=True, exist_ok=True)
            creds.write_text("[default]\naws_access_key_id = AKIDEXAMPLE\naws_secret_access_key = x\n")
        elif exe == "msiexec":
            self._touch(self.settings.vpn_install_dir / "AWSVPNClient.exe")
        elif exe.endswith("_international.exe"):
            self.driver_installed = True
        elif exe == "setup.exe":
            self._touch(self.settings.install_root / "bin" / "suite.exe")
        elif exe == "setx" and "/M" in cmd:
            self.registry[cmd[1]] = cmd[2]
        return subprocess.CompletedProcess(cmd, 0, stdout="", stderr="")


@pytest.fixture
def store():
    return FakeStore()


@pytest.fixture
def machine(tmp_path, settings, monkeypatch):
    return FakeMachine(tmp_path, settings, monkeypatch)


@pytest.fixture(name="make_probe")
def make_probe_fixture():
    return make_probe
