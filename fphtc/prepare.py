"""Splitting relaxed interface structures into upper and lower slab calculations."""

from __future__ import annotations

import itertools
import shutil
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from pathlib import Path

from fphtc.poscar import Poscar, read_poscar, upper_mask


@dataclass(frozen=True)
class StepSettings:
    """Contents of in.dat: layer sites, step counts and step sizes."""

    n_layers: int
    compress: int
    face_sites: tuple[float, ...]
    move_site: float
    n_z: int
    n_z_down: int
    n_z_up: int
    z_initial: float
    n_x: int
    n_y: int
    step_z_down: float
    step_z_up: float


def _taker(tokens: Iterator[str]) -> Callable[[Callable[[str], object], str], object]:
    def take(kind: Callable[[str], object], what: str) -> object:
        try:
            token = next(tokens)
        except StopIteration:
            raise ValueError(f"settings end before {what}") from None
        try:
            return kind(token)
        except ValueError:
            raise ValueError(f"bad value for {what}: {token!r}") from None

    return take


def read_settings(path: str | Path) -> StepSettings:
    """Read the whitespace-separated settings file in.dat."""
    take = _taker(iter(Path(path).read_text().split()))
    n_layers = take(int, "number of layers")
    compress = take(int, "compress switch")
    face_sites = tuple(take(float, "face site") for _ in range(max(n_layers - 1, 0)))
    move_site = take(float, "moving face site")
    n_z = int(take(float, "number of z steps"))
    return StepSettings(
        n_layers=n_layers,
        compress=compress,
        face_sites=face_sites,
        move_site=move_site,
        n_z=n_z,
        n_z_down=take(int, "number of downward z steps"),
        n_z_up=take(int, "number of upward z steps"),
        z_initial=take(float, "initial interface distance"),
        n_x=take(int, "number of x steps"),
        n_y=take(int, "number of y steps"),
        step_z_down=take(float, "downward z step"),
        step_z_up=take(float, "upward z step"),
    )


def _job_name(script_text: str) -> str:
    tokens = script_text.split()
    for first, second, name in zip(tokens, tokens[1:], tokens[2:]):
        if first == "#PBS" and second == "-N":
            return name
    return ""


def rename_job(script_text: str, suffix: str) -> str:
    """Rewrite the '#PBS -N' line of a job script to carry the given suffix."""
    name = _job_name(script_text)
    lines = [
        f"#PBS -N {name}_{suffix}" if "#PBS" in line and "-N" in line else line
        for line in script_text.splitlines()
    ]
    return "\n".join(lines) + "\n"


def _head_report(cell: Poscar) -> str:
    rows = ["    The information of the POSCAR head.", f"    {cell.comment}", f"    {cell.scale:g}"]
    rows.extend("    " + "".join(f"{v:g} " for v in vector) for vector in cell.lattice)
    return "\n".join(rows)


def create_poscars(
    workdir: str | Path, log: Callable[[str], object] | None = None
) -> StepSettings:
    """Split every relaxed step structure into up/ and down/ calculations.

    Atoms above the moving face site of the initial POSCAR go to the upper slab;
    the same atom indices are taken from each step's CONTCAR.
    """
    workdir = Path(workdir)
    say = log or (lambda _message: None)
    settings = read_settings(workdir / "in.dat")
    initial = read_poscar(workdir / "POSCAR")
    say(_head_report(initial))

    mask = upper_mask(initial, settings.move_site)
    upper_counts = initial.subset(mask).counts
    say(
        "\n".join(f"    {name}: {count}" for name, count in zip(initial.elements, upper_counts))
        + f"\n    atoms moved: {sum(upper_counts)}"
    )
    lower = [not keep for keep in mask]

    script_path = workdir / "rvasp.sh"
    script = script_path.read_text()
    steps = itertools.product(range(settings.n_x), range(settings.n_y), range(settings.n_z))
    for i, j, k in steps:
        step = f"{i}_{j}_{k}"
        stepdir = workdir / step
        relaxed = read_poscar(stepdir / "CONTCAR")
        if len(relaxed.atoms) != len(mask):
            raise ValueError(
                f"{step}/CONTCAR has {len(relaxed.atoms)} atoms, POSCAR has {len(mask)}"
            )
        for side, keep in (("up", mask), ("down", lower)):
            target = stepdir / side
            target.mkdir(exist_ok=True)
            (target / "POSCAR").write_text(relaxed.subset(keep).to_text())
            shutil.copyfile(workdir / "KPOINTS", target / "KPOINTS")
            job = target / "rvasp.sh"
            job.write_text(rename_job(script, f"{step}_{side}"))
            shutil.copymode(script_path, job)
            shutil.copyfile(workdir / f"INCAR_{side}", target / "INCAR")
            shutil.copyfile(workdir / f"POTCAR_{side}", target / "POTCAR")
    return settings