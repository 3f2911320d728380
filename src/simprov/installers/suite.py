# installers/suite.py
from __future__ import annotations

import logging
from pathlib import Path, PurePosixPath
from typing import Optional

from ..dsl import artifact, step
from ..errors import ArtifactMissing
from ..model import ActionResult, RunContext, Step
from ..storage import dir_populated, extract, retrieve, scratch_dir

logger = logging.getLogger(__name__)


def find_installer(root: Path, name: str) -> Optional[Path]:
    """First file under root whose name matches (case-insensitive), shallowest first."""
    wanted = name.lower()
    matches = [p for p in root.rglob("*") if p.is_file() and p.name.lower() == wanted]
    if not matches:
        return None
    return min(matches, key=lambda p: (len(p.parts), str(p)))


def simulation_suite_step() -> Step:
    """
    Fetch the multi-gigabyte suite archive to a scratch directory, extract it,
    run the installer inside, and remove the scratch copy.
    """
    def install(ctx: RunContext):
        s = ctx.settings
        with scratch_dir("simprov-suite-") as tmp:
            suite = artifact("simulation-suite", s.s3_uri(s.suite_key), tmp / PurePosixPath(s.suite_key).name, expect="extracted")
            archive = retrieve(suite, ctx.store)
            extracted = extract(suite, archive, tmp / "extracted")

            installer = find_installer(extracted, s.suite_installer)
            if installer is None:
                raise ArtifactMissing(what="suite installer", expected=str(extracted / s.suite_installer))

            logger.debug("running suite installer %s", installer)
            ctx.shell([str(installer), "/quiet", f"INSTALLDIR={s.install_root}"])
        return ActionResult(detail=f"installed to {s.install_root}")

    return step(
        "simulation-suite",
        skip_if=lambda ctx: (
            "install directory already populated" if dir_populated(ctx.settings.install_root) else False
        ),
        action=install,
        verify=lambda ctx: dir_populated(ctx.settings.install_root),
        description="suite install directory populated",
    )
