"""Differential charge surfaces over the lateral step grid, in CHG format."""

from __future__ import annotations

import math
from collections.abc import Sequence
from pathlib import Path

from fphtc.datafiles import RunData

BOHR = 0.5291772108
"""Bohr radius in angstrom."""

DCS_TITLE = "This file is DCS (e in VESTA), and takes the CHG format."
"""Comment line of every surface file."""

Grid = Sequence[Sequence[float]]


def _g12(value: float) -> str:
    return f"{value:.12g}"


def dcs_text(
    a: float,
    b: float,
    c: float,
    theta_ab: float,
    grid: Grid,
    title: str = DCS_TITLE,
) -> str:
    """CHG-format file of grid[i][j], scaled by the cell volume over the Bohr volume."""
    if not grid or not grid[0]:
        raise ValueError("surface grid is empty")
    n_x, n_y = len(grid), len(grid[0])
    if any(len(row) != n_y for row in grid):
        raise ValueError("surface grid rows differ in length")
    volume = a * b * math.sin(theta_ab) * c
    factor = volume / BOHR**3
    lines = [
        title,
        "1.0",
        f"{_g12(a)}  0  0",
        f"{_g12(b * math.cos(theta_ab))} {_g12(b * math.sin(theta_ab))} 0",
        f"0  0  {_g12(c)}",
        "He",
        "1 ",
        "Direct ",
        "0  0  0 ",
        "",
        f"{n_x}  {n_y}  1 ",
    ]
    lines.extend(
        "".join(f" {_g12(grid[i][j] * factor)}" for i in range(n_x)) for j in range(n_y)
    )
    return "\n".join(lines) + "\n"


def _check_cells(values: Sequence[Sequence[object]], run: RunData, what: str) -> None:
    if len(values) < run.n_x or any(len(row) < run.n_y for row in values[: run.n_x]):
        raise ValueError(f"{what} cover fewer cells than the {run.n_x} x {run.n_y} step grid")


def write_dcs_series(
    workdir: str | Path, run: RunData, sums: Sequence[Sequence[Sequence[float]]], interface: bool = False
) -> list[Path]:
    """Write one surface file per interface distance from sums[i][j][k]."""
    _check_cells(sums, run, "sums")
    if any(len(series) < run.n_z for row in sums[: run.n_x] for series in row[: run.n_y]):
        raise ValueError("every series needs one value per interface distance")
    suffix = "_Interface" if interface else ""
    outdir = Path(workdir) / f"DCS_Dengju{suffix}"
    outdir.mkdir(exist_ok=True)
    written: list[Path] = []
    for k in range(run.n_z):
        grid = [[sums[i][j][k] for j in range(run.n_y)] for i in range(run.n_x)]
        target = outdir / f"CHG_DCS_Dengju{run.z[k]:g}{suffix}.vasp"
        target.write_text(dcs_text(run.a, run.b, run.c, run.theta_ab, grid))
        written.append(target)
    return written


def write_dcs_load(
    workdir: str | Path, run: RunData, fz: float, values: Grid, interface: bool = False
) -> Path:
    """Write the surface file of values[i][j] obtained under load fz."""
    _check_cells(values, run, "values")
    suffix = "_Interface" if interface else ""
    outdir = Path(workdir) / f"DCS_Fz{suffix}"
    outdir.mkdir(exist_ok=True)
    grid = [[values[i][j] for j in range(run.n_y)] for i in range(run.n_x)]
    target = outdir / f"CHG_DCS_Fz{fz:g}{suffix}.vasp"
    target.write_text(dcs_text(run.a, run.b, run.c, run.theta_ab, grid))
    return target