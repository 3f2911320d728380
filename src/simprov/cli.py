# cli.py
from __future__ import annotations

import logging
import sys
from pathlib import Path

import click

from simprov.config import PROBE_POLICIES, Settings
from simprov.errors import ProvisionError, TransferError, hint_for
from simprov.installers.base import run_installer
from simprov.model import RunContext
from simprov.runner import check_skip, ordered, provision
from simprov.dsl import artifact
from simprov.storage import ObjectStore, retrieve
from simprov.ui.console import Console, get_console, set_console
from simprov.workflow import build_plan, default_prober, follow_ups


def settings_options(f):
    """Options shared by every command that builds Settings."""
    options = [
        click.option("--bucket", default=None, help="Bucket holding the VPN installer and suite archive"),
        click.option("--vpn-portal", default=None, help="VPN self-service portal address"),
        click.option("--license-server", default=None, help="License server, e.g. 27000@host"),
        click.option("--region", default=None, help="AWS region for object storage"),
        click.option("--install-dir", "install_root", default=None, type=click.Path(path_type=Path), help="Suite install directory"),
        click.option("--probe-timeout", default=None, type=float, help="Seconds per metadata call"),
        click.option(
            "--probe-failure",
            default=None,
            type=click.Choice(PROBE_POLICIES),
            help="What to do when the instance class cannot be determined",
        ),
    ]
    for option in reversed(options):
        f = option(f)
    return f


def load_settings(**overrides) -> Settings:
    """Environment first, then CLI overrides. Exits on invalid configuration."""
    console = get_console()
    try:
        return Settings.from_env().with_overrides(**overrides)
    except ValueError as e:
        console.print_error(
            "Invalid configuration",
            str(e),
            suggestion="Fix the option or the SIMPROV_* environment variable and rerun.",
        )
        sys.exit(1)


@click.group()
@click.option(
    "--debug",
    is_flag=True,
    default=False,
    help="Enable debug mode (show stack traces and detailed output)",
)
@click.pass_context
def cli(ctx, debug):
    """simprov: provision a Windows simulation workstation."""
    console = Console(debug=debug)
    set_console(console)
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug


@cli.command()
@settings_options
@click.pass_context
def run(ctx, **options):
    """Run every provisioning step in order, skipping what is already done."""
    console = get_console()
    settings = load_settings(**options)

    try:
        report = provision(
            settings,
            build_plan=build_plan,
            prober=default_prober,
            store=ObjectStore(region_name=settings.region),
            shell=run_installer,
            follow_ups=follow_ups,
            console=console,
        )
    except KeyboardInterrupt:
        console.print_info("\nInterrupted by user")
        sys.exit(130)
    except ProvisionError as e:
        console.print_error("Provisioning aborted", str(e), suggestion=hint_for(e.kind))
        sys.exit(1)

    console.print_results(report)
    if not report.ok:
        console.print_info("\nFix the problem above and rerun; completed steps will be skipped.")
        sys.exit(1)
    console.print_summary(report.follow_ups, report.restart_required)


@cli.command()
@settings_options
@click.pass_context
def plan(ctx, **options):
    """Show the steps and whether each would run, without changing anything."""
    console = get_console()
    settings = load_settings(**options)

    probe = default_prober(settings)
    console.print_probe(probe)
    run_ctx = RunContext(settings=settings, probe=probe, shell=run_installer)

    console.print_header("PLAN")
    for s in ordered(build_plan(settings)):
        console.print_plan_step(s.order, s.name, check_skip(s, run_ctx))


@cli.command()
@settings_options
@click.pass_context
def probe(ctx, **options):
    """Print the instance class and whether it carries an accelerator."""
    console = get_console()
    settings = load_settings(**options)
    result = default_prober(settings)
    console.print_probe(result)
    if result.failed:
        console.print_debug(f"probe error: {result.error}")


@cli.command()
@click.argument("url")
@click.argument("dest", type=click.Path(dir_okay=False, path_type=Path))
@click.pass_context
def fetch(ctx, url, dest):
    """Download URL to DEST, authenticating with SIMPROV_ACCESS_TOKEN if set."""
    console = get_console()
    settings = load_settings()
    try:
        retrieve(artifact("provisioning-script", url, dest), store=None, token=settings.access_token)
    except TransferError as e:
        console.print_error(
            "Download failed",
            str(e),
            suggestion="Check the URL and, for private sources, SIMPROV_ACCESS_TOKEN.",
        )
        sys.exit(1)
    console.print_info(f"Saved {dest}")


if __name__ == "__main__":
    cli()
