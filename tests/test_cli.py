import os

import pytest
from click.testing import CliRunner

from simprov import cli as cli_module
from simprov.cli import cli
from simprov.dsl import plan, step
from simprov.errors import InstallerError, TransferError
from simprov.model import ActionResult


@pytest.fixture
def runner(monkeypatch):
    for name in list(os.environ):
        if name.startswith("SIMPROV_"):
            monkeypatch.delenv(name)
    return CliRunner()


@pytest.fixture
def fake_probe(monkeypatch, make_probe):
    def use(instance_class):
        monkeypatch.setattr(cli_module, "default_prober", lambda settings: make_probe(instance_class))
    return use


def test_probe_command(runner, fake_probe):
    fake_probe("g5.xlarge")
    result = runner.invoke(cli, ["probe"])
    assert result.exit_code == 0
    assert "PROBE: g5.xlarge (accelerated, via imdsv2)" in result.output


def test_probe_command_unknown(runner, fake_probe):
    fake_probe(None)
    result = runner.invoke(cli, ["probe"])
    assert result.exit_code == 0
    assert "instance class unknown" in result.output


def test_run_success_prints_summary(runner, fake_probe, monkeypatch):
    fake_probe("g5.xlarge")
    monkeypatch.setattr(
        cli_module,
        "build_plan",
        lambda settings: plan(
            step("accelerator-driver", skip_if=lambda c: False, action=lambda c: ActionResult(restart_required=True)),
            step("license-server", skip_if=lambda c: "already set", action=lambda c: None),
        ),
    )
    result = runner.invoke(cli, ["run", "--vpn-portal", "https://vpn.cli.test"])

    assert result.exit_code == 0, result.output
    assert "RESULTS" in result.output
    assert "accelerator-driver: SUCCESS" in result.output
    assert "license-server: SKIPPED" in result.output
    assert "RESTART REQUIRED" in result.output
    assert "https://vpn.cli.test" in result.output


def test_run_failure_exits_nonzero(runner, fake_probe, monkeypatch):
    fake_probe("c5.4xlarge")
    reached = []

    def fail(c):
        raise InstallerError(cmd=["msiexec", "/i", "x.msi"], exit_code=1603)

    monkeypatch.setattr(
        cli_module,
        "build_plan",
        lambda settings: plan(
            step("vpn-client", skip_if=lambda c: False, action=fail),
            step("simulation-suite", skip_if=lambda c: False, action=lambda c: reached.append(1)),
        ),
    )
    result = runner.invoke(cli, ["run"])

    assert result.exit_code == 1
    assert "STEP FAILED: vpn-client" in result.output
    assert "Exit code: 1603" in result.output
    assert "Run stopped at: vpn-client" in result.output
    assert reached == []


def test_run_aborts_on_probe_failure_when_asked(runner, fake_probe, monkeypatch):
    fake_probe(None)
    monkeypatch.setattr(cli_module, "build_plan", lambda settings: [])
    result = runner.invoke(cli, ["run", "--probe-failure", "abort"])
    assert result.exit_code == 1
    assert "probe_failed" in result.output
    assert "--probe-failure assume-none" in result.output


def test_invalid_configuration(runner, monkeypatch):
    monkeypatch.setenv("SIMPROV_PROBE_TIMEOUT", "soon")
    result = runner.invoke(cli, ["probe"])
    assert result.exit_code == 1


def test_plan_lists_steps_without_running(runner, fake_probe, monkeypatch):
    fake_probe("c5.4xlarge")
    ran = []
    monkeypatch.setattr(
        cli_module,
        "build_plan",
        lambda settings: plan(
            step("a", skip_if=lambda c: "present", action=lambda c: ran.append("a")),
            step("b", skip_if=lambda c: False, action=lambda c: ran.append("b")),
        ),
    )
    result = runner.invoke(cli, ["plan"])

    assert result.exit_code == 0
    assert "1. a (skip: present)" in result.output
    assert "2. b (will run)" in result.output
    assert ran == []


def test_fetch_uses_token_from_environment(runner, monkeypatch, tmp_path):
    seen = {}

    def fake_retrieve(artifact, store=None, token=None):
        seen["source"] = artifact.source
        seen["token"] = token
        return artifact.destination

    monkeypatch.setattr(cli_module, "retrieve", fake_retrieve)
    monkeypatch.setenv("SIMPROV_ACCESS_TOKEN", "s3cr3t")
    dest = tmp_path / "provision.py"
    result = runner.invoke(cli, ["fetch", "https://example.test/provision.py", str(dest)])

    assert result.exit_code == 0
    assert seen == {"source": "https://example.test/provision.py", "token": "s3cr3t"}
    assert "s3cr3t" not in result.output


def test_fetch_failure(runner, monkeypatch, tmp_path):
    def broken(artifact, store=None, token=None):
        raise TransferError("Download failed: 404 Not Found")

    monkeypatch.setattr(cli_module, "retrieve", broken)
    result = runner.invoke(cli, ["fetch", "https://example.test/x", str(tmp_path / "x")])
    assert result.exit_code == 1
