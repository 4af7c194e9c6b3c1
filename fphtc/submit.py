"""Submission of the split up/down calculations to the batch queue."""

from __future__ import annotations

import itertools
import subprocess
from collections.abc import Callable
from pathlib import Path


def run_script(i: int, j: int, k: int) -> str:
    """Shell script that queues the up and down jobs of step (i, j, k)."""
    step = f"{i}_{j}_{k}"
    return (
        "#!/bin/bash\n"
        f"cd ./{step}/up\n"
        "qsub rvasp.sh\n"
        "cd ../../\n"
        f"cd ./{step}/down\n"
        "qsub rvasp.sh\n"
        "cd ../../\n"
    )


def _execute(script: Path) -> None:
    subprocess.run([str(script)], cwd=script.parent, check=False)


def submit_jobs(
    workdir: str | Path,
    n_x: int,
    n_y: int,
    n_z: int,
    runner: Callable[[Path], object] | None = None,
) -> list[tuple[int, int, int]]:
    """Write run.sh for every step in workdir and run it; return the steps submitted."""
    workdir = Path(workdir)
    script = workdir / "run.sh"
    run = runner or _execute
    submitted: list[tuple[int, int, int]] = []
    for i, j, k in itertools.product(range(n_x), range(n_y), range(n_z)):
        script.write_text(run_script(i, j, k))
        script.chmod(0o777)
        run(script)
        submitted.append((i, j, k))
    return submitted