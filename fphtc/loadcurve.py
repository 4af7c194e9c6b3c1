"""Slope model of energy against interface distance, and its inversion under load."""

from __future__ import annotations

import math
from bisect import bisect_left
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field

SUBSTEPS = 10000
"""Number of integration sub-steps inside one interval of interface distance."""

_FLAT = 1e-6
_FIT_TOLERANCE = 1e-4
_INITIAL_MAX_ALL = 100000000.0
_INITIAL_MIN_ALL = -1000000.0
_INITIAL_Z_MAX_ALL = 10.0
_INITIAL_Z_MIN_ALL = 0.0

Grid = list[list[float]]


class LoadRangeError(ValueError):
    """Raised when a load cannot be matched on the fitted curves."""


@dataclass(frozen=True)
class FitPoint:
    """One data point of a cell compared with the energy rebuilt from slopes."""

    cell: tuple[int, int]
    z: float
    energy: float
    fitted: float

    @property
    def delta(self) -> float:
        """Absolute fit error, with errors below 1e-4 reported as zero."""
        difference = abs(self.fitted - self.energy)
        return 0.0 if difference < _FIT_TOLERANCE else difference


def _bent_slope(
    z0: float, z1: float, zd: float, s0: float, sd: float, s1: float
) -> Callable[[float], float]:
    """Slope that runs linearly s0 -> sd on [z0, zd] and sd -> s1 on [zd, z1]."""

    def slope(zz: float) -> float:
        if zd > z0 and (zz <= zd or zd >= z1):
            return ((zz - z0) * sd + (zd - zz) * s0) / (zd - z0)
        return ((z1 - zz) * sd + (zz - zd) * s1) / (z1 - zd)

    return slope


def _area(slope: Callable[[float], float], lo: float, hi: float, zd: float) -> float:
    """Exact integral of the bent slope between lo and hi."""
    if lo < zd < hi:
        return (slope(lo) + slope(zd)) / 2 * (zd - lo) + (slope(zd) + slope(hi)) / 2 * (hi - zd)
    return (slope(lo) + slope(hi)) / 2 * (hi - lo)


def _trapezoid_sum(
    slope: Callable[[float], float], z0: float, z1: float, zd: float, steps: int
) -> float:
    """Trapezoid sum over the first ``steps`` of SUBSTEPS equal sub-steps of [z0, z1]."""
    if steps <= 0:
        return 0.0
    h = (z1 - z0) / SUBSTEPS
    total = _area(slope, z0, z0 + steps * h, zd)
    m = math.floor((zd - z0) / h)
    if 0 <= m < steps:
        a = z0 + m * h
        b = a + h
        if a < zd < b:
            # the sub-step holding the bend is not integrated exactly by the trapezoid
            total += (slope(a) + slope(b)) / 2 * h - _area(slope, a, b, zd)
    return total


def _steps_below(z0: float, dz: float, limit: float) -> int:
    """Count sub-step nodes z0 + m/SUBSTEPS*dz, m < SUBSTEPS, that lie below limit."""

    def node(m: int) -> float:
        return z0 + m / SUBSTEPS * dz

    m = math.ceil((limit - z0) / dz * SUBSTEPS) if math.isfinite(limit) else 0
    m = max(0, min(SUBSTEPS, m))
    while m > 0 and node(m - 1) >= limit:
        m -= 1
    while m < SUBSTEPS and node(m) < limit:
        m += 1
    return m


def _point_slopes(secants: Sequence[float]) -> tuple[list[float], list[float]]:
    """Slopes at the data points, and their weighted counterparts used for inversion."""
    n = len(secants) + 1
    points = [0.0] * n
    origins = [0.0] * n
    for k in range(1, n - 1):
        before, after = secants[k - 1], secants[k]
        middle = (before + after) / 2.0
        points[k] = middle
        if after != before:
            weight = abs((before - middle) / (after - before))
            origins[k] = (1 - weight) * before + weight * after
        else:
            origins[k] = middle
    return points, origins


@dataclass
class LoadCurves:
    """Energy curves E(z) for every lateral cell, with slope model and load range.

    ``energy[i][j][k]`` is the energy of cell (i, j) at interface distance ``z[k]``.
    """

    z: Sequence[float]
    energy: Sequence[Sequence[Sequence[float]]]
    secant_slopes: list[list[list[float]]] = field(init=False, repr=False)
    point_slopes: list[list[list[float]]] = field(init=False, repr=False)
    origin_slopes: list[list[list[float]]] = field(init=False, repr=False)
    max_load: float = field(init=False)
    min_load: float = field(init=False)
    z_at_max_load: float = field(init=False)
    z_at_min_load: float = field(init=False)

    def __post_init__(self) -> None:
        z = [float(v) for v in self.z]
        if len(z) < 2:
            raise ValueError("at least two interface distances are needed")
        if any(b <= a for a, b in zip(z, z[1:])):
            raise ValueError("interface distances must increase strictly")
        energy = [[[float(v) for v in curve] for curve in row] for row in self.energy]
        if not energy or not energy[0]:
            raise ValueError("energy grid is empty")
        width = len(energy[0])
        for row in energy:
            if len(row) != width:
                raise ValueError("energy grid rows differ in length")
            if any(len(curve) != len(z) for curve in row):
                raise ValueError("every energy curve needs one value per interface distance")
        self.z = z
        self.energy = energy

        self.secant_slopes = [
            [
                [(curve[k + 1] - curve[k]) / (z[k + 1] - z[k]) for k in range(len(z) - 1)]
                for curve in row
            ]
            for row in energy
        ]
        self.point_slopes = []
        self.origin_slopes = []
        for row in self.secant_slopes:
            pairs = [_point_slopes(secants) for secants in row]
            self.point_slopes.append([points for points, _ in pairs])
            self.origin_slopes.append([origins for _, origins in pairs])
        self._find_load_range()

    def _find_load_range(self) -> None:
        max_all, z_max_all = _INITIAL_MAX_ALL, _INITIAL_Z_MAX_ALL
        min_all, z_min_all = _INITIAL_MIN_ALL, _INITIAL_Z_MIN_ALL
        for row in self.secant_slopes:
            for secants in row:
                cell_max = cell_min = 0.0
                z_max = z_min = 0.0
                for zk, slope in zip(self.z, secants):
                    if slope > cell_max:
                        cell_max, z_max = slope, zk
                    if slope < cell_min:
                        cell_min, z_min = slope, zk
                if cell_max < max_all:
                    max_all, z_max_all = cell_max, z_max
                if cell_min > min_all:
                    min_all, z_min_all = cell_min, z_min
        self.max_load, self.z_at_max_load = max_all, z_max_all
        self.min_load, self.z_at_min_load = min_all, z_min_all

    def fit(self) -> list[FitPoint]:
        """Rebuild every curve by integrating the slope model and compare with the data."""
        z = self.z
        points: list[FitPoint] = []
        for i, row in enumerate(self.energy):
            for j, curve in enumerate(row):
                secants = self.secant_slopes[i][j]
                slopes = self.point_slopes[i][j]
                fitted = curve[1]
                for k in range(1, len(z) - 2):
                    z0, z1 = z[k], z[k + 1]
                    spread = abs(slopes[k + 1] - secants[k]) + abs(secants[k] - slopes[k])
                    fraction = abs((secants[k] - slopes[k + 1]) / spread) if spread else 0.0
                    zd = z0 + fraction * (z1 - z0)
                    slope = _bent_slope(z0, z1, zd, slopes[k], secants[k], slopes[k + 1])
                    fitted += _trapezoid_sum(slope, z0, z1, zd, SUBSTEPS)
                    points.append(FitPoint((i, j), z1, curve[k + 1], fitted))
        return points

    def locate(self, fz: float) -> list[list[tuple[int, float]]]:
        """For every cell, the bracketing interval index and the distance where the slope is fz."""
        if fz > self.max_load or fz < self.min_load:
            raise LoadRangeError(
                f"load {fz} is outside the range [{self.min_load}, {self.max_load}]"
            )
        z = self.z
        grid: list[list[tuple[int, float]]] = []
        for i, row in enumerate(self.point_slopes):
            located: list[tuple[int, float]] = []
            for j, slopes in enumerate(row):
                for k in range(1, len(z) - 2):
                    if min(slopes[k], slopes[k + 1]) <= fz <= max(slopes[k], slopes[k + 1]):
                        break
                else:
                    raise LoadRangeError(f"load {fz} cannot be found for cell ({i}, {j})")
                origins = self.origin_slopes[i][j]
                rise = origins[k + 1] - origins[k]
                if rise:
                    distance = (
                        fz * (z[k + 1] - z[k]) + z[k] * origins[k + 1] - z[k + 1] * origins[k]
                    ) / rise
                else:
                    distance = z[k]
                located.append((k, distance))
            grid.append(located)
        return grid

    def energy_under_load(self, fz: float) -> Grid:
        """Energy of every cell at the distance matching load fz, less the work fz*z."""
        z = self.z
        result: Grid = []
        for i, row in enumerate(self.locate(fz)):
            energies: list[float] = []
            for j, (k, distance) in enumerate(row):
                curve = self.energy[i][j]
                secants = self.secant_slopes[i][j]
                slopes = self.point_slopes[i][j]
                z0, z1 = z[k], z[k + 1]
                dz = z1 - z0
                # the upper limit is shifted by the row index over the sub-step count
                steps = _steps_below(z0, dz, distance - i / SUBSTEPS)
                rise = slopes[k + 1] - slopes[k]
                zd = z0 if abs(rise) < _FLAT else z0 + abs((secants[k] - slopes[k + 1]) / rise) * dz
                if abs(zd - z0) < _FLAT or abs(zd - z1) < _FLAT:
                    gain = dz / SUBSTEPS * (
                        steps * slopes[k] + rise * steps * (steps - 1) / (2 * SUBSTEPS)
                    )
                else:
                    slope = _bent_slope(z0, z1, zd, slopes[k], secants[k], slopes[k + 1])
                    gain = _trapezoid_sum(slope, z0, z1, zd, steps)
                energies.append(curve[k] + gain - fz * distance)
            result.append(energies)
        return result

    def interpolate_sums(self, fz: float, sums: Sequence[Sequence[Sequence[float]]]) -> Grid:
        """Interpolate per-cell series ``sums[i][j][k]`` at the distance matching load fz."""
        located = self.locate(fz)
        z = self.z
        if len(sums) > len(located) or any(len(row) > len(located[0]) for row in sums):
            raise ValueError("sums cover more cells than the energy grid")
        result: Grid = []
        for i, row in enumerate(sums):
            values: list[float] = []
            for j, series in enumerate(row):
                if len(series) < len(z):
                    raise ValueError("every series needs one value per interface distance")
                k, distance = located[i][j]
                below = bisect_left(z, distance) - 1
                if below >= 0:
                    k = below
                k = min(k, len(z) - 2)
                slope = (series[k + 1] - series[k]) / (z[k + 1] - z[k])
                values.append(series[k] + slope * (distance - z[k]))
            result.append(values)
        return result