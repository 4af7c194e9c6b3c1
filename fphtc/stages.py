"""The stages of a differential charge run, each reported to a log book."""

from __future__ import annotations

import sys
from dataclasses import dataclass
from pathlib import Path
from typing import TextIO

from fphtc.chgcar import summarize_profiles, write_differences
from fphtc.datafiles import RunData, read_run_data
from fphtc.dcs import write_dcs_series
from fphtc.prepare import StepSettings, create_poscars
from fphtc.submit import submit_jobs

LOG_FILE = "log.out"
"""Name of the log file kept in the working directory."""

SUN_SUM_FILE = "DiffCHG_Sum_Sun.dat"
"""Listing of the summed absolute plane charges, written by the profile stage."""

_BAR = "    " + "/" * 89
_EMPTY = "    //" + " " * 85 + "//"

Cube = list[list[list[float]]]


def _framed(text: str) -> list[str]:
    rows = [f"    //  {line.ljust(83)}//" for line in text.splitlines() or [""]]
    return [_BAR, _EMPTY, *rows, _EMPTY, _BAR]


@dataclass
class Logbook:
    """Appends messages to a log file and echoes them to a stream (stdout by default)."""

    path: Path
    stream: TextIO | None = None
    truncate: bool = False

    def __post_init__(self) -> None:
        self.path = Path(self.path)
        if self.truncate:
            self.path.write_text("")

    def _emit(self, text: str) -> None:
        with self.path.open("a") as handle:
            handle.write(text)
        out = self.stream if self.stream is not None else sys.stdout
        out.write(text)

    def __call__(self, message: str) -> None:
        self._emit(message + "\n")

    def banner(self, text: str) -> None:
        """Write text inside a box of slashes, with a blank line before and after."""
        self._emit("\n" + "".join(line + "\n" for line in _framed(text)) + "\n")

    def note(self, text: str) -> None:
        """Write indented text with a blank line before and after."""
        body = "".join(f"    {line}\n" for line in text.splitlines() or [""])
        self._emit("\n" + body + "\n")


def _report_run(log: Logbook, run: RunData) -> None:
    lines = [
        f"    Nx:       {run.n_x}",
        f"    Ny:       {run.n_y}",
        f"    Nz:       {run.n_z}",
        f"    fStep_x_real:        {run.step_x:.12g} angstrom",
        f"    fStep_y_real:        {run.step_y:.12g} angstrom",
        f"    fStep_z_real_down:   {run.step_z_down:.12g} angstrom",
        f"    fStep_z_real_up:     {run.step_z_up:.12g} angstrom",
        "    Distance_interface:   ",
    ]
    lines.extend(
        "".join(f"      {value:.12g} " for value in run.z[start : start + 5])
        for start in range(0, len(run.z), 5)
    )
    log("\n" + "\n".join(lines))


def prepare_stage(workdir: str | Path, log: Logbook) -> StepSettings:
    """Split every relaxed step structure into its up and down calculations."""
    log.banner("This program is creating POSCAR files.")
    settings = create_poscars(workdir, log)
    log(
        "\n".join(
            [
                "",
                "    The information to create POSCARs.",
                f"    iNofStep_x:  {settings.n_x}",
                f"    iNofStep_y:  {settings.n_y}",
                f"    iNofStep_z:  {settings.n_z}",
                f"    fStep_z_real_down:{settings.step_z_down:g}",
                f"    fStep_z_real_up:{settings.step_z_up:g}",
                "    The number of the created POSCAR files:"
                f"{settings.n_x * settings.n_y * settings.n_z}",
            ]
        )
    )
    log.banner("Creating POSCARs has been done.")
    return settings


def submit_stage(workdir: str | Path, log: Logbook, runner=None) -> list[tuple[int, int, int]]:
    """Queue the up and down calculations of every step."""
    log.banner("This program is calling VASP to calculate the total energy of systems.")
    run = read_run_data(workdir)
    _report_run(log, run)
    submitted = submit_jobs(workdir, run.n_x, run.n_y, run.n_z, runner)
    log.banner(
        "Please wait until the VASP calculation is finished and use the post processor to\n"
        "process the data."
    )
    return submitted


def difference_stage(
    workdir: str | Path, log: Logbook, start: tuple[int, int, int] = (0, 0, 0)
) -> list[Path]:
    """Write the differential charge of every step from start onwards."""
    log.banner("This program is outputting DiffCHG.")
    run = read_run_data(workdir)
    _report_run(log, run)
    written = write_differences(workdir, run.n_x, run.n_y, run.n_z, tuple(start))
    log.banner("All DiffCHG have been output.")
    return written


def profile_stage(
    workdir: str | Path, log: Logbook, minimum: tuple[int, int]
) -> tuple[Cube, Cube, Cube]:
    """Reduce the differential charges to plane profiles and summary tables."""
    log.banner("This program is outputting DiffCHG_z.")
    run = read_run_data(workdir)
    _report_run(log, run)
    result = summarize_profiles(
        workdir, run.n_x, run.n_y, run.n_z, run.c, run.z, run.energy, tuple(minimum)
    )
    log.banner("All DiffCHG_z have been output.")
    return result


def _read_sun_sums(path: Path, n_x: int, n_y: int, n_z: int) -> Cube:
    """Read the summed plane charges, listed with i outermost, then j, then k."""
    tokens = path.read_text().split()
    needed = n_x * n_y * n_z
    if len(tokens) < needed:
        raise ValueError(f"{path.name} holds {len(tokens)} values, {needed} needed")
    try:
        values = iter([float(token) for token in tokens[:needed]])
    except ValueError:
        raise ValueError(f"{path.name} holds a value that is not a number") from None
    return [[[next(values) for _ in range(n_z)] for _ in range(n_y)] for _ in range(n_x)]


def dcs_stage(workdir: str | Path, log: Logbook) -> list[Path]:
    """Write one differential charge surface per interface distance."""
    workdir = Path(workdir)
    log.banner("This program is outputting the DCS with interface distance.")
    run = read_run_data(workdir)
    _report_run(log, run)
    sums = _read_sun_sums(workdir / SUN_SUM_FILE, run.n_x, run.n_y, run.n_z)
    written = write_dcs_series(workdir, run, sums)
    log.banner("The DCS with interface distance have been output.")
    return written