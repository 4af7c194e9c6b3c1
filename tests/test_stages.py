import io
from pathlib import Path

import pytest

from fphtc.chgcar import read_chgcar
from fphtc.dcs import dcs_text
from fphtc.poscar import read_poscar
from fphtc.stages import (
    Logbook,
    dcs_stage,
    difference_stage,
    prepare_stage,
    profile_stage,
    submit_stage,
)

A, B, C, THETA = 4.0, 5.0, 20.0, 1.5707963
Z = (3.0, 3.5)


def make_log(tmp_path: Path) -> tuple[Logbook, io.StringIO]:
    stream = io.StringIO()
    return Logbook(tmp_path / "log.out", stream=stream), stream


def write_run(tmp_path: Path, n_x: int = 1, n_y: int = 1, z=Z) -> None:
    numbers = [n_x, n_y, len(z), A, B, C, THETA, 0.1, 0.1, 0.1, 0.1]
    (tmp_path / "temp.dat").write_text(
        "header\n" + " ".join(str(v) for v in numbers) + "\n" + " ".join(str(v) for v in z) + "\n"
    )
    count = (n_x + 1) * (n_y + 1) * len(z)
    (tmp_path / "temp1.dat").write_text(" ".join(str(-10.0 + 0.5 * n) for n in range(count)))


def chgcar_text(values) -> str:
    return (
        "chg\n1.0\n4 0 0\n0 5 0\n0 0 20\nHe\n1\nDirect\n0 0 0\n\n1 1 2\n"
        + " ".join(str(v) for v in values)
        + "\n"
    )


TOTALS = {0: [1.0, -2.0], 1: [0.75, 0.5]}
UPS = {0: [0.25, 0.5], 1: [0.125, 0.25]}
DOWNS = {0: [0.25, 0.5], 1: [0.125, 1.0]}


def write_charges(tmp_path: Path) -> None:
    for k in (0, 1):
        step = tmp_path / f"0_0_{k}"
        (step / "up").mkdir(parents=True)
        (step / "down").mkdir()
        (step / "CHGCAR").write_text(chgcar_text(TOTALS[k]))
        (step / "up" / "CHGCAR").write_text(chgcar_text(UPS[k]))
        (step / "down" / "CHGCAR").write_text(chgcar_text(DOWNS[k]))


def test_banner_frames_text_in_file_and_stream(tmp_path):
    log, stream = make_log(tmp_path)
    log.banner("Creating POSCARs has been done.")
    written = (tmp_path / "log.out").read_text()
    assert written == stream.getvalue()
    framed = [line for line in written.splitlines() if line]
    assert len(framed) == 5
    assert len({len(line) for line in framed}) == 1
    assert "Creating POSCARs has been done." in framed[2]
    assert framed[0] == "    " + "/" * 89


def test_note_and_call_append(tmp_path):
    log, stream = make_log(tmp_path)
    log.note("You donot select to call VASP.")
    log("plain")
    written = (tmp_path / "log.out").read_text()
    assert written == "\n    You donot select to call VASP.\n\nplain\n"
    assert stream.getvalue() == written


def test_truncate_empties_log(tmp_path):
    (tmp_path / "log.out").write_text("old")
    log = Logbook(tmp_path / "log.out", stream=io.StringIO(), truncate=True)
    log("new")
    assert (tmp_path / "log.out").read_text() == "new\n"


def test_submit_stage_runs_every_step(tmp_path):
    write_run(tmp_path, n_x=2, n_y=1)
    log, stream = make_log(tmp_path)
    calls = []
    steps = submit_stage(tmp_path, log, runner=calls.append)
    assert steps == [(0, 0, 0), (0, 0, 1), (1, 0, 0), (1, 0, 1)]
    assert len(calls) == 4
    assert "qsub rvasp.sh" in (tmp_path / "run.sh").read_text()
    assert "Nx:       2" in stream.getvalue()


def test_difference_stage_writes_total_minus_parts(tmp_path):
    write_run(tmp_path)
    write_charges(tmp_path)
    log, _ = make_log(tmp_path)
    paths = difference_stage(tmp_path, log)
    assert [p.name for p in paths] == ["DiffCHG_0_0_0", "DiffCHG_0_0_1"]
    for k, path in enumerate(paths):
        expected = [t - u - d for t, u, d in zip(TOTALS[k], UPS[k], DOWNS[k])]
        assert read_chgcar(path).values == pytest.approx(expected)


def test_difference_stage_starts_at_given_step(tmp_path):
    write_run(tmp_path)
    write_charges(tmp_path)
    log, _ = make_log(tmp_path)
    paths = difference_stage(tmp_path, log, start=(0, 0, 1))
    assert [p.name for p in paths] == ["DiffCHG_0_0_1"]


def test_profile_stage_invariants(tmp_path):
    write_run(tmp_path)
    write_charges(tmp_path)
    log, _ = make_log(tmp_path)
    difference_stage(tmp_path, log)
    sums, sun, delta = profile_stage(tmp_path, log, (0, 0))
    for k in range(len(Z)):
        assert sums[0][0][k] >= sun[0][0][k] - 1e-12
        assert delta[0][0][k] == 0.0
    assert (tmp_path / "d_DiffCHG_All").read_text().startswith(
        "Interface-Distance(A)  DiffCHG(e) from 00 to ij\n"
    )
    assert (tmp_path / "DiffCHG_Sum_Sun.dat").exists()


def test_profile_stage_rejects_minimum_outside_grid(tmp_path):
    write_run(tmp_path)
    write_charges(tmp_path)
    log, _ = make_log(tmp_path)
    difference_stage(tmp_path, log)
    with pytest.raises(ValueError):
        profile_stage(tmp_path, log, (3, 0))


def test_dcs_stage_writes_one_surface_per_distance(tmp_path):
    write_run(tmp_path)
    (tmp_path / "DiffCHG_Sum_Sun.dat").write_text("\n0.5 0.25 ")
    log, _ = make_log(tmp_path)
    paths = dcs_stage(tmp_path, log)
    assert [p.name for p in paths] == ["CHG_DCS_Dengju3.vasp", "CHG_DCS_Dengju3.5.vasp"]
    assert paths[0].read_text() == dcs_text(A, B, C, THETA, [[0.5]])
    assert paths[1].read_text() == dcs_text(A, B, C, THETA, [[0.25]])


def test_dcs_stage_needs_sum_listing(tmp_path):
    write_run(tmp_path)
    log, _ = make_log(tmp_path)
    with pytest.raises(FileNotFoundError):
        dcs_stage(tmp_path, log)


def test_dcs_stage_rejects_short_listing(tmp_path):
    write_run(tmp_path)
    (tmp_path / "DiffCHG_Sum_Sun.dat").write_text("0.5")
    log, _ = make_log(tmp_path)
    with pytest.raises(ValueError):
        dcs_stage(tmp_path, log)


def test_prepare_stage_splits_structures(tmp_path):
    (tmp_path / "in.dat").write_text("2 0 0.5 0.5 1 0 1 3.0 1 1 0.1 0.1\n")
    structure = (
        "cell\n1.0\n4 0 0\n0 5 0\n0 0 20\nHe Ar\n1 1\nDirect\n"
        "0.1 0.1 0.2\n0.3 0.3 0.8\n"
    )
    (tmp_path / "POSCAR").write_text(structure)
    step = tmp_path / "0_0_0"
    step.mkdir()
    (step / "CONTCAR").write_text(structure)
    (tmp_path / "rvasp.sh").write_text("#!/bin/bash\n#PBS -N job\nrun\n")
    for name in ("KPOINTS", "INCAR_up", "INCAR_down", "POTCAR_up", "POTCAR_down"):
        (tmp_path / name).write_text(name + "\n")
    log, stream = make_log(tmp_path)
    settings = prepare_stage(tmp_path, log)
    assert (settings.n_x, settings.n_y, settings.n_z) == (1, 1, 1)
    up = read_poscar(step / "up" / "POSCAR")
    down = read_poscar(step / "down" / "POSCAR")
    assert [a.element for a in up.atoms] == ["Ar"]
    assert [a.element for a in down.atoms] == ["He"]
    assert "#PBS -N job_0_0_0_up" in (step / "up" / "rvasp.sh").read_text()
    assert "Creating POSCARs has been done." in stream.getvalue()