"""Reading of the step grid, interface distances, energies and charge sums of a run."""

from __future__ import annotations

import itertools
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

MAX_X = 15
"""Largest number of lateral steps along a."""

MAX_Y = 15
"""Largest number of lateral steps along b."""

MAX_Z = 100
"""Largest number of interface distances."""

Cube = list[list[list[float]]]


@dataclass
class RunData:
    """Step grid, cell geometry, interface distances and per-step quantities of a run.

    ``energy`` covers (n_x + 1) x (n_y + 1) cells; the sums cover n_x x n_y cells.
    All grids are indexed [i][j][k].
    """

    n_x: int
    n_y: int
    n_z: int
    a: float
    b: float
    c: float
    theta_ab: float
    step_x: float
    step_y: float
    step_z_down: float
    step_z_up: float
    z: list[float]
    energy: Cube
    sums: Cube | None = None
    interface_sums: Cube | None = None


def _reader(path: Path, skip_header: bool = False) -> Callable[[Callable[[str], object], str], object]:
    text = path.read_text()
    if skip_header:
        text = text.partition("\n")[2]
    tokens = iter(text.split())

    def take(kind: Callable[[str], object], what: str) -> object:
        try:
            token = next(tokens)
        except StopIteration:
            raise ValueError(f"{path.name} ends before {what}") from None
        try:
            return kind(token)
        except ValueError:
            raise ValueError(f"{path.name}: bad value for {what}: {token!r}") from None

    return take


def _read_sums(path: Path, n_x: int, n_y: int, n_z: int) -> Cube:
    """Read values listed with k outermost, then i, then j."""
    take = _reader(path)
    cube: Cube = [[[0.0] * n_z for _ in range(n_y)] for _ in range(n_x)]
    for k, i, j in itertools.product(range(n_z), range(n_x), range(n_y)):
        cube[i][j][k] = take(float, "charge sums")
    return cube


def read_run_data(workdir: str | Path, with_sums: bool = False) -> RunData:
    """Read temp.dat and temp1.dat, and with_sums also the charge sum listings."""
    workdir = Path(workdir)
    take = _reader(workdir / "temp.dat", skip_header=True)
    n_x = take(int, "Nx")
    n_y = take(int, "Ny")
    n_z = take(int, "Nz")
    a = take(float, "a")
    b = take(float, "b")
    c = take(float, "c")
    theta_ab = take(float, "theta_ab")
    step_x = take(float, "x step")
    step_y = take(float, "y step")
    step_z_down = take(float, "downward z step")
    step_z_up = take(float, "upward z step")

    if not (0 < n_x <= MAX_X and 0 < n_y <= MAX_Y and 0 < n_z <= MAX_Z):
        raise ValueError(
            f"Nx, Ny or Nz out of range ({n_x}, {n_y}, {n_z}); "
            f"need 0<Nx<={MAX_X}, 0<Ny<={MAX_Y} and 0<Nz<={MAX_Z}"
        )
    z = [take(float, "interface distances") for _ in range(n_z)]

    sums = interface_sums = None
    if with_sums:
        sums = _read_sums(workdir / "DiffCHG_Sum.dat", n_x, n_y, n_z)
        interface_sums = _read_sums(workdir / "DiffCHG_Sum_Interface.dat", n_x, n_y, n_z)

    take_energy = _reader(workdir / "temp1.dat")
    energy = [
        [[take_energy(float, "energies") for _ in range(n_z)] for _ in range(n_y + 1)]
        for _ in range(n_x + 1)
    ]

    return RunData(
        n_x=n_x,
        n_y=n_y,
        n_z=n_z,
        a=a,
        b=b,
        c=c,
        theta_ab=theta_ab,
        step_x=step_x,
        step_y=step_y,
        step_z_down=step_z_down,
        step_z_up=step_z_up,
        z=z,
        energy=energy,
        sums=sums,
        interface_sums=interface_sums,
    )