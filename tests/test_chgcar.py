from pathlib import Path

import pytest

from fphtc.chgcar import (
    ABS_PROFILE_DIR,
    DIFF_DIR,
    PROFILE_DIR,
    difference_text,
    parse_chgcar,
    planar_profile,
    read_chgcar,
    summarize_profiles,
    write_differences,
)

VALUES = [1.0, -2.0, 3.0, -4.0, 0.5, 0.25, -0.125, 2.0]
ZEROS = [0.0] * 8


def chgcar_text(values, grid=(2, 2, 2), trailer=True):
    text = (
        "test cell\n"
        "1.0\n"
        "4.0 0.0 0.0\n"
        "0.0 4.0 0.0\n"
        "0.0 0.0 10.0\n"
        "He Ne\n"
        "1 1\n"
        "Direct\n"
        "0.0 0.0 0.1\n"
        "0.5 0.5 0.6\n"
        "\n"
        + " ".join(str(n) for n in grid)
        + "\n"
        + " ".join(str(v) for v in values)
        + "\n"
    )
    if trailer:
        text += "augmentation occupancies 1 2\n0.1 0.2\n"
    return text


def test_parse_reads_header_and_grid():
    chg = parse_chgcar(chgcar_text(VALUES))
    assert chg.grid == (2, 2, 2)
    assert chg.size == 8
    assert chg.elements == ["He", "Ne"]
    assert chg.counts == [1, 1]
    assert chg.mode == "Direct"
    assert chg.positions[1] == (0.5, 0.5, 0.6)
    assert chg.values == VALUES


def test_parse_rejects_truncated_grid():
    with pytest.raises(ValueError):
        parse_chgcar(chgcar_text(VALUES[:5], trailer=False))


def test_parse_rejects_zero_grid():
    with pytest.raises(ValueError):
        parse_chgcar(chgcar_text([], grid=(0, 2, 2), trailer=False))


def test_difference_round_trip_keeps_total_when_parts_are_empty():
    total = parse_chgcar(chgcar_text(VALUES))
    empty = parse_chgcar(chgcar_text(ZEROS))
    diff = parse_chgcar(difference_text(total, empty, empty, "DiffCHG_0_0_0"))
    assert diff.comment == "DiffCHG_0_0_0"
    assert diff.grid == total.grid
    assert diff.positions == total.positions
    assert diff.values == pytest.approx(VALUES)


def test_difference_vanishes_when_up_equals_total():
    total = parse_chgcar(chgcar_text(VALUES))
    empty = parse_chgcar(chgcar_text(ZEROS))
    diff = parse_chgcar(difference_text(total, total, empty, "d"))
    assert diff.values == pytest.approx(ZEROS)


def test_difference_rejects_mismatched_grids():
    total = parse_chgcar(chgcar_text(VALUES))
    other = parse_chgcar(chgcar_text(VALUES, grid=(1, 2, 4)))
    with pytest.raises(ValueError):
        difference_text(total, other, total, "d")


def test_planar_profile_heights_and_totals():
    chg = parse_chgcar(chgcar_text(VALUES))
    profile = planar_profile(chg, 10.0)
    assert [plane[0] for plane in profile] == [0.0, 5.0]
    absolute = sum(plane[2] for plane in profile) * chg.size
    assert absolute == pytest.approx(sum(abs(v) for v in VALUES))
    net = sum(plane[1] for plane in profile) * chg.size
    assert net == pytest.approx(sum(VALUES))


def test_planar_profile_bounds_zero_outside_planes():
    chg = parse_chgcar(chgcar_text(VALUES))
    profile = planar_profile(chg, 10.0, lower=4.0)
    assert profile[0][1:] == (0.0, 0.0)
    assert profile[1] == planar_profile(chg, 10.0)[1]


def _make_steps(workdir: Path, n_z: int):
    for k in range(n_z):
        stepdir = workdir / f"0_0_{k}"
        (stepdir / "up").mkdir(parents=True)
        (stepdir / "down").mkdir()
        (stepdir / "CHGCAR").write_text(chgcar_text(VALUES))
        (stepdir / "up" / "CHGCAR").write_text(chgcar_text(ZEROS))
        (stepdir / "down" / "CHGCAR").write_text(chgcar_text(ZEROS))


def test_write_differences_starts_at_given_step(tmp_path):
    _make_steps(tmp_path, 2)
    written = write_differences(tmp_path, 1, 1, 2, start=(0, 0, 1))
    assert [p.name for p in written] == ["DiffCHG_0_0_1"]
    assert not (tmp_path / DIFF_DIR / "DiffCHG_0_0_0").exists()
    assert read_chgcar(written[0]).values == pytest.approx(VALUES)


def test_summarize_profiles_writes_tables(tmp_path):
    _make_steps(tmp_path, 2)
    write_differences(tmp_path, 1, 1, 2)
    energy = [[[1.0, 2.0]]]
    sums, sun, delta = summarize_profiles(tmp_path, 1, 1, 2, 10.0, [3.0, 3.5], energy, (0, 0))

    reference = planar_profile(read_chgcar(tmp_path / DIFF_DIR / "DiffCHG_0_0_0"), 10.0)
    assert sums[0][0][0] == pytest.approx(sum(p[2] for p in reference))
    assert sun[0][0][1] == pytest.approx(sum(abs(p[1]) for p in reference))
    assert delta[0][0] == [0.0, 0.0]

    assert len((tmp_path / "DiffCHG_Sum.dat").read_text().split()) == 2
    assert len((tmp_path / "d_DiffCHG_All").read_text().splitlines()) == 3
    assert (tmp_path / PROFILE_DIR / "DiffCHG_z_0_0_1").exists()
    assert (tmp_path / ABS_PROFILE_DIR / "DiffCHG_z_abs0_0_1").exists()

    rows = (tmp_path / "d_DiffCHG_0_0_DeltaEnergy").read_text().splitlines()[1:]
    assert [float(row.split()[-1]) for row in rows] == [0.0, 0.0]


def test_summarize_profiles_rejects_minimum_outside_grid(tmp_path):
    with pytest.raises(ValueError):
        summarize_profiles(tmp_path, 1, 1, 1, 10.0, [3.0], [[[0.0]]], (2, 0))