"""Charge density grids (CHGCAR) and the differential charge built from them."""

from __future__ import annotations

import itertools
from collections.abc import Callable, Iterator, Sequence
from dataclasses import dataclass
from pathlib import Path

DIFF_DIR = "DiffCHGAll"
"""Directory that receives the differential charge files DiffCHG_i_j_k."""

PROFILE_DIR = "DiffCHGAll_z"
"""Directory that receives the signed plane profiles DiffCHG_z_i_j_k."""

ABS_PROFILE_DIR = "DiffCHGAll_z_abs"
"""Directory that receives the absolute plane profiles DiffCHG_z_absi_j_k."""

_PROFILE_HEADER = "zz(A)            DiffCHG(e)"
_ALL_HEADER = "Interface-Distance(A)  DiffCHG(e) from 00 to ij"

Vector = tuple[float, float, float]
Cube = list[list[list[float]]]
Profile = list[tuple[float, float, float]]


def _g(value: float) -> str:
    return f"{value:g}"


def _g12(value: float) -> str:
    return f"{value:.12g}"


@dataclass
class Chgcar:
    """A charge density file: structure header and grid values, x running fastest."""

    comment: str
    scale: float
    lattice: tuple[Vector, Vector, Vector]
    elements: list[str]
    counts: list[int]
    mode: str
    positions: list[Vector]
    grid: tuple[int, int, int]
    values: list[float]

    @property
    def size(self) -> int:
        """Number of grid points."""
        nx, ny, nz = self.grid
        return nx * ny * nz


def _taker(tokens: Iterator[str]) -> Callable[[Callable[[str], object], str], object]:
    def take(kind: Callable[[str], object], what: str) -> object:
        try:
            token = next(tokens)
        except StopIteration:
            raise ValueError(f"charge file ends before {what}") from None
        try:
            return kind(token)
        except ValueError:
            raise ValueError(f"bad value for {what}: {token!r}") from None

    return take


def _vector(line: str) -> Vector:
    fields = line.split()
    if len(fields) < 3:
        raise ValueError(f"lattice vector needs three numbers: {line!r}")
    try:
        x, y, z = (float(f) for f in fields[:3])
    except ValueError:
        raise ValueError(f"lattice vector is not numeric: {line!r}") from None
    return x, y, z


def parse_chgcar(text: str) -> Chgcar:
    """Parse a CHGCAR; anything after the grid values (augmentation data) is ignored."""
    lines = text.splitlines()
    if len(lines) < 7:
        raise ValueError("charge file is truncated in its header")
    comment = lines[0]
    try:
        scale = float(lines[1].split()[0])
    except (IndexError, ValueError):
        raise ValueError(f"bad scale line: {lines[1]!r}") from None
    lattice = (_vector(lines[2]), _vector(lines[3]), _vector(lines[4]))
    elements = lines[5].split()
    if not elements:
        raise ValueError("charge file has no element names")

    tokens = iter("\n".join(lines[6:]).split())
    take = _taker(tokens)
    counts = [take(int, "atom counts") for _ in elements]
    mode = take(str, "coordinate mode")
    positions = [
        (take(float, "atom position"), take(float, "atom position"), take(float, "atom position"))
        for _ in range(sum(counts))
    ]
    grid = (take(int, "grid size"), take(int, "grid size"), take(int, "grid size"))
    if any(n <= 0 for n in grid):
        raise ValueError(f"grid dimensions must be positive: {grid}")
    nx, ny, nz = grid
    size = nx * ny * nz
    values = [take(float, "grid values") for _ in range(size)]
    return Chgcar(comment, scale, lattice, elements, counts, mode, positions, grid, values)


def read_chgcar(path: str | Path) -> Chgcar:
    """Read and parse a charge density file."""
    return parse_chgcar(Path(path).read_text())


def difference_text(total: Chgcar, up: Chgcar, down: Chgcar, name: str) -> str:
    """Charge file holding total - up - down, with the header of total and name as comment."""
    if up.grid != total.grid or down.grid != total.grid:
        raise ValueError(
            f"grids differ: total {total.grid}, up {up.grid}, down {down.grid}"
        )
    header = [name, _g(total.scale)]
    header.extend(" ".join(_g(v) for v in vector) for vector in total.lattice)
    header.append(" ".join(total.elements))
    header.append("".join(f"{count} " for count in total.counts))
    header.append(total.mode)
    header.extend(" ".join(_g(v) for v in position) for position in total.positions)
    header.append("")
    header.append(" ".join(str(n) for n in total.grid))

    diffs = [t - u - d for t, u, d in zip(total.values, up.values, down.values)]
    rows = [
        "".join(f"{_g12(v)} " for v in diffs[start : start + 5])
        for start in range(0, len(diffs), 5)
    ]
    body = "\n".join(rows)
    if diffs and len(diffs) % 5 == 0:
        body += "\n"
    return "\n".join(header) + "\n" + body


def _steps(n_x: int, n_y: int, n_z: int) -> Iterator[tuple[int, int, int]]:
    return itertools.product(range(n_x), range(n_y), range(n_z))


def write_differences(
    workdir: str | Path,
    n_x: int,
    n_y: int,
    n_z: int,
    start: tuple[int, int, int] = (0, 0, 0),
) -> list[Path]:
    """Write DiffCHG_i_j_k for every step from start onwards into DiffCHGAll.

    Each step combines i_j_k/CHGCAR with i_j_k/up/CHGCAR and i_j_k/down/CHGCAR.
    """
    workdir = Path(workdir)
    outdir = workdir / DIFF_DIR
    outdir.mkdir(exist_ok=True)
    first = tuple(start)
    written: list[Path] = []
    for step in _steps(n_x, n_y, n_z):
        if step < first:
            continue
        name = "_".join(str(n) for n in step)
        stepdir = workdir / name
        total = read_chgcar(stepdir / "CHGCAR")
        up = read_chgcar(stepdir / "up" / "CHGCAR")
        down = read_chgcar(stepdir / "down" / "CHGCAR")
        target = outdir / f"DiffCHG_{name}"
        target.write_text(difference_text(total, up, down, f"DiffCHG_{name}"))
        written.append(target)
    return written


def planar_profile(
    chg: Chgcar, c: float, lower: float | None = None, upper: float | None = None
) -> Profile:
    """Per xy plane: (height, net charge, absolute charge), both divided by the grid size.

    Planes whose height lies outside [lower, upper] (in the units of c) count as zero.
    """
    nx, ny, nz = chg.grid
    count = chg.size
    values = iter(chg.values)
    profile: Profile = []
    for n in range(nz):
        zz = n * c / nz
        block = list(itertools.islice(values, nx * ny))
        inside = (lower is None or zz >= lower) and (upper is None or zz <= upper)
        if inside:
            net = sum(block)
            absolute = sum(abs(v) for v in block)
        else:
            net = absolute = 0.0
        profile.append((zz, net / count, absolute / count))
    return profile


def _profile_text(profile: Profile, column: int) -> str:
    rows = [f"{_g12(plane[0])}     {_g12(plane[column])}" for plane in profile]
    return _PROFILE_HEADER + "\n" + "".join(row + "\n" for row in rows)


def _sum_listing(values: dict[tuple[int, int, int], float]) -> str:
    parts: list[str] = []
    for (_, _, k), value in values.items():
        if k == 0:
            parts.append("\n")
        parts.append(f"{_g12(value)} ")
        if (k + 1) % 5 == 0:
            parts.append("\n")
    return "".join(parts)


def _table(header: str, rows: Sequence[str]) -> str:
    return header + "\n" + "".join(row + "\n" for row in rows)


def _cube(values: dict[tuple[int, int, int], float], n_x: int, n_y: int, n_z: int) -> Cube:
    return [[[values[(i, j, k)] for k in range(n_z)] for j in range(n_y)] for i in range(n_x)]


def summarize_profiles(
    workdir: str | Path,
    n_x: int,
    n_y: int,
    n_z: int,
    c: float,
    z: Sequence[float],
    energy: Sequence[Sequence[Sequence[float]]],
    minimum: tuple[int, int],
) -> tuple[Cube, Cube, Cube]:
    """Reduce every DiffCHG file to plane profiles and write the summary tables.

    Returns the absolute sums, the sums of absolute plane charges, and the
    deviations of each cell's plane profile from that of the minimum cell,
    each indexed [i][j][k].
    """
    workdir = Path(workdir)
    if len(z) < n_z:
        raise ValueError(f"{n_z} interface distances needed, {len(z)} given")
    if len(energy) < n_x or any(len(row) < n_y for row in energy[:n_x]):
        raise ValueError("energy grid is smaller than the step grid")
    i_min, j_min = minimum
    if not (0 <= i_min < n_x and 0 <= j_min < n_y):
        raise ValueError(f"minimum cell {minimum} lies outside the step grid")

    profile_dir = workdir / PROFILE_DIR
    abs_dir = workdir / ABS_PROFILE_DIR
    profile_dir.mkdir(exist_ok=True)
    abs_dir.mkdir(exist_ok=True)

    profiles: dict[tuple[int, int, int], Profile] = {}
    sums: dict[tuple[int, int, int], float] = {}
    sun: dict[tuple[int, int, int], float] = {}
    for step in _steps(n_x, n_y, n_z):
        name = "_".join(str(n) for n in step)
        chg = read_chgcar(workdir / DIFF_DIR / f"DiffCHG_{name}")
        profile = planar_profile(chg, c)
        profiles[step] = profile
        sums[step] = sum(plane[2] for plane in profile)
        sun[step] = sum(abs(plane[1]) for plane in profile)
        (profile_dir / f"DiffCHG_z_{name}").write_text(_profile_text(profile, 1))
        (abs_dir / f"DiffCHG_z_abs{name}").write_text(_profile_text(profile, 2))

    (workdir / "DiffCHG_Sum.dat").write_text(_sum_listing(sums))
    (workdir / "DiffCHG_Sum_Sun.dat").write_text(_sum_listing(sun))

    cells = list(itertools.product(range(n_x), range(n_y)))
    heights = [_g12(z[k]) for k in range(n_z)]

    def all_rows(values: dict[tuple[int, int, int], float]) -> list[str]:
        return [
            heights[k] + "".join(f" {_g12(values[(i, j, k)])}" for i, j in cells)
            for k in range(n_z)
        ]

    (workdir / "d_DiffCHG_All").write_text(_table(_ALL_HEADER, all_rows(sums)))
    (workdir / "d_DiffCHG_All_Sun").write_text(_table(_ALL_HEADER, all_rows(sun)))

    def delta_energy(i: int, j: int, k: int) -> float:
        return energy[i][j][k] - energy[i_min][j_min][k]

    def paired_rows(values: dict[tuple[int, int, int], float], own: bool) -> list[str]:
        rows = []
        for k in range(n_z):
            cellwise = "".join(
                f" {_g12(values[(i, j, k)] if own else values[(i_min, j_min, k)])}"
                f" {_g12(delta_energy(i, j, k))}"
                for i, j in cells
            )
            rows.append(heights[k] + cellwise)
        return rows

    tag = f"{i_min}_{j_min}"
    (workdir / f"d_DiffCHG_{tag}_DeltaEnergy").write_text(
        _table(
            f"Interface-Distance(A) DiffCHG_{tag}(e)    DeltaEnergy(eV)",
            paired_rows(sums, own=False),
        )
    )
    (workdir / f"d_DiffCHG{tag}_DeltaEnergy_Sun").write_text(
        _table(
            f"Interface-Distance(A) DiffCHG_Sun{tag}(e)    DeltaEnergy(eV)",
            paired_rows(sun, own=False),
        )
    )

    delta: dict[tuple[int, int, int], float] = {}
    for i, j, k in _steps(n_x, n_y, n_z):
        reference = profiles[(i_min, j_min, k)]
        delta[(i, j, k)] = sum(
            abs(own[1] - ref[1]) for own, ref in zip(profiles[(i, j, k)], reference)
        )
    delta_rows = [
        f"{heights[k]}   " + "".join(f"{_g12(delta[(i, j, k)])}   " for i, j in cells)
        for k in range(n_z)
    ]
    (workdir / "d_Delta_DiffCHG_Sum_Sun").write_text(
        _table(
            "Interface Distace (A)   DeltaDiffCHG_Sun from 00 to ij (e)", delta_rows
        )
    )
    (workdir / f"d_Delta_DiffCHG{tag}_DeltaEnergy_Sun").write_text(
        _table(
            f"Interface-Distance(A) DeltaDiffCHG_Sun{tag}(e)    DeltaEnergy(eV)",
            paired_rows(delta, own=True),
        )
    )

    return _cube(sums, n_x, n_y, n_z), _cube(sun, n_x, n_y, n_z), _cube(delta, n_x, n_y, n_z)