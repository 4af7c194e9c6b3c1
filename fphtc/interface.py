"""Differential charge restricted to the gap between the two slabs."""

from __future__ import annotations

import itertools
from collections.abc import Sequence
from pathlib import Path

from fphtc.chgcar import DIFF_DIR, planar_profile, read_chgcar
from fphtc.poscar import Poscar, read_poscar

INTERFACE_PROFILE_DIR = "DiffCHGAll_z_Interface"
"""Directory that receives the signed interface plane profiles."""

INTERFACE_ABS_PROFILE_DIR = "DiffCHGAll_z_abs_Interface"
"""Directory that receives the absolute interface plane profiles."""

INTERFACE_SUM_FILE = "DiffCHG_Sum_Interface.dat"
"""Listing of the interface charge sums, k outermost, then i, then j."""

_PROFILE_HEADER = "zz(A)            DiffCHG(e)"
_ALL_HEADER = "Interface-Distance(A)  DiffCHG(e) from 00 to ij"

Cube = list[list[list[float]]]


def _g12(value: float) -> str:
    return f"{value:.12g}"


def interface_bounds(up: Poscar, down: Poscar) -> tuple[float, float]:
    """Fractional heights bounding the gap: top of the lower slab, bottom of the upper one.

    The lower bound is never below 0 and the upper bound never above 1.
    """
    lower = max([0.0, *(atom.z for atom in down.atoms)])
    upper = min([1.0, *(atom.z for atom in up.atoms)])
    return lower, upper


def _profile_text(profile: Sequence[tuple[float, float, float]], column: int) -> str:
    rows = "".join(f"{_g12(plane[0])}     {_g12(plane[column])}\n" for plane in profile)
    return _PROFILE_HEADER + "\n" + rows


def summarize_interface_profiles(
    workdir: str | Path,
    n_x: int,
    n_y: int,
    n_z: int,
    c: float,
    z: Sequence[float],
) -> Cube:
    """Sum the absolute differential charge between the slabs for every step.

    The gap of step i_j_k is taken from i_j_k/up/CONTCAR and i_j_k/down/CONTCAR;
    the charge comes from DiffCHGAll/DiffCHG_i_j_k. Plane profiles and the summary
    files are written into workdir. Returns the sums indexed [i][j][k].
    """
    workdir = Path(workdir)
    if len(z) < n_z:
        raise ValueError(f"{n_z} interface distances needed, {len(z)} given")

    profile_dir = workdir / INTERFACE_PROFILE_DIR
    abs_dir = workdir / INTERFACE_ABS_PROFILE_DIR
    profile_dir.mkdir(exist_ok=True)
    abs_dir.mkdir(exist_ok=True)

    sums: dict[tuple[int, int, int], float] = {}
    for step in itertools.product(range(n_x), range(n_y), range(n_z)):
        name = "_".join(str(n) for n in step)
        stepdir = workdir / name
        lower, upper = interface_bounds(
            read_poscar(stepdir / "up" / "CONTCAR"),
            read_poscar(stepdir / "down" / "CONTCAR"),
        )
        chg = read_chgcar(workdir / DIFF_DIR / f"DiffCHG_{name}")
        profile = planar_profile(chg, c, lower * c, upper * c)
        sums[step] = sum(plane[2] for plane in profile)
        (profile_dir / f"DiffCHG_z_{name}").write_text(_profile_text(profile, 1))
        (abs_dir / f"DiffCHG_z_abs{name}").write_text(_profile_text(profile, 2))

    cells = list(itertools.product(range(n_x), range(n_y)))
    listing = "\n" + "".join(
        "".join(f"{_g12(sums[(i, j, k)])} " for i, j in cells) + "\n" for k in range(n_z)
    )
    (workdir / INTERFACE_SUM_FILE).write_text(listing)

    table = _ALL_HEADER + "\n" + "".join(
        _g12(z[k]) + "".join(f" {_g12(sums[(i, j, k)])}" for i, j in cells) + "\n"
        for k in range(n_z)
    )
    (workdir / "d_DiffCHG_Interface").write_text(table)

    return [[[sums[(i, j, k)] for k in range(n_z)] for j in range(n_y)] for i in range(n_x)]