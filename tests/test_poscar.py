import math

import pytest

from fphtc.poscar import (
    SPLIT_COMMENT,
    Atom,
    parse_poscar,
    read_poscar,
    upper_mask,
)

DIRECT = """test cell
1.0
10.0 0.0 0.0
0.0 10.0 0.0
0.0 0.0 20.0
Mo S
1 2
Direct
0.0 0.0 0.1
0.5 0.5 0.2
0.25 0.25 0.6
"""

SELECTIVE = """selective cell
1.0
10.0 0.0 0.0
0.0 10.0 0.0
0.0 0.0 20.0
Mo
2
Selective dynamics
Direct
0.1 0.1 0.1 F F F
0.2 0.2 0.7 T T T
"""

CARTESIAN = """cartesian cell
1.0
10.0 0.0 0.0
0.0 10.0 0.0
0.0 0.0 20.0
Mo
1
Cartesion
2.5 5.0 4.0
"""


def test_parse_direct_assigns_elements_in_order():
    cell = parse_poscar(DIRECT)
    assert cell.elements == ["Mo", "S"]
    assert cell.counts == [1, 2]
    assert [atom.element for atom in cell.atoms] == ["Mo", "S", "S"]
    assert cell.atoms[2].z == 0.6
    assert cell.selective is False


def test_parse_geometry():
    cell = parse_poscar(DIRECT)
    assert cell.lengths == (10.0, 10.0, 20.0)
    assert cell.theta_ab == pytest.approx(math.pi / 2)


def test_negative_coordinate_is_wrapped():
    text = DIRECT.replace("0.0 0.0 0.1", "-0.25 0.0 0.1")
    cell = parse_poscar(text)
    assert cell.atoms[0].x == pytest.approx(0.75)


def test_cartesian_converted_to_direct():
    cell = parse_poscar(CARTESIAN)
    atom = cell.atoms[0]
    assert (atom.x, atom.y, atom.z) == pytest.approx((0.25, 0.5, 0.2))


def test_selective_flags_kept():
    cell = parse_poscar(SELECTIVE)
    assert cell.selective is True
    assert cell.atoms[0].flags == ("F", "F", "F")
    assert cell.atoms[1].flags == ("T", "T", "T")
    assert "Selective dynamics\nDirect\n" in cell.to_text()


def test_round_trip_direct():
    cell = parse_poscar(DIRECT)
    again = parse_poscar(cell.to_text())
    assert again.atoms == cell.atoms
    assert again.elements == cell.elements
    assert again.counts == cell.counts
    assert again.lattice == cell.lattice
    assert again.scale == cell.scale


def test_round_trip_selective():
    cell = parse_poscar(SELECTIVE)
    again = parse_poscar(cell.to_text())
    assert again.atoms == cell.atoms
    assert again.selective is True


def test_upper_mask_uses_threshold():
    cell = parse_poscar(DIRECT)
    assert upper_mask(cell, 0.5) == [False, False, True]
    assert upper_mask(cell, 0.0) == [True, True, True]


def test_subset_drops_empty_species_from_text():
    cell = parse_poscar(DIRECT)
    upper = cell.subset(upper_mask(cell, 0.5))
    assert upper.counts == [0, 1]
    text = upper.to_text()
    assert text.splitlines()[0] == SPLIT_COMMENT
    parsed = parse_poscar(text)
    assert parsed.elements == ["S"]
    assert parsed.counts == [1]
    assert parsed.atoms == [Atom("S", 0.25, 0.25, 0.6)]


def test_subset_halves_cover_all_atoms():
    cell = parse_poscar(DIRECT)
    mask = upper_mask(cell, 0.15)
    upper = cell.subset(mask)
    lower = cell.subset(not keep for keep in mask)
    assert len(upper.atoms) + len(lower.atoms) == len(cell.atoms)
    assert [u + d for u, d in zip(upper.counts, lower.counts)] == cell.counts


def test_subset_rejects_wrong_mask_length():
    cell = parse_poscar(DIRECT)
    with pytest.raises(ValueError):
        cell.subset([True])


def test_unknown_mode_rejected():
    with pytest.raises(ValueError):
        parse_poscar(DIRECT.replace("Direct", "Fractional"))


def test_missing_atom_lines_rejected():
    truncated = "\n".join(DIRECT.splitlines()[:-1]) + "\n"
    with pytest.raises(ValueError):
        parse_poscar(truncated)


def test_truncated_header_rejected():
    with pytest.raises(ValueError):
        parse_poscar("only\n1.0\n")


def test_read_poscar_matches_parse(tmp_path):
    path = tmp_path / "POSCAR"
    path.write_text(DIRECT)
    assert read_poscar(path) == parse_poscar(DIRECT)