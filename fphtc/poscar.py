"""Reading, splitting and writing of VASP structure files (POSCAR/CONTCAR)."""

from __future__ import annotations

import math
from collections.abc import Iterable
from dataclasses import dataclass, replace
from itertools import chain, repeat
from pathlib import Path

SPLIT_COMMENT = "# data file written by fphtc"
"""Comment line written at the top of every split structure."""

_DIRECT = {"Direct", "direct"}
_CARTESIAN = {"Cartesion", "cartesion", "Cartesian", "cartesian"}
_SELECTIVE = {"Selective", "selective"}
_DEFAULT_FLAGS = ("T", "T", "T")

Vector = tuple[float, float, float]


def _fmt(value: float) -> str:
    """Format a number with six significant digits, as a plain stream would."""
    return f"{value:g}"


def _wrap(value: float) -> float:
    """Bring a fractional coordinate back into the cell by at most one period."""
    if value < 0:
        value += 1
    if value > 1:
        value -= 1
    return value


def _norm(vector: Vector) -> float:
    return math.sqrt(sum(v * v for v in vector))


@dataclass
class Atom:
    """One atom with fractional coordinates and optional selective-dynamics flags."""

    element: str
    x: float
    y: float
    z: float
    flags: tuple[str, str, str] | None = None


@dataclass
class Poscar:
    """A structure: lattice, species, counts and atoms in fractional coordinates."""

    comment: str
    scale: float
    lattice: tuple[Vector, Vector, Vector]
    elements: list[str]
    counts: list[int]
    atoms: list[Atom]
    selective: bool = False

    @property
    def lengths(self) -> Vector:
        """Lengths of the three cell vectors, scaled."""
        a, b, c = (_norm(v) * self.scale for v in self.lattice)
        return a, b, c

    @property
    def theta_ab(self) -> float:
        """Angle between the first two cell vectors, in radians."""
        va, vb = self.lattice[0], self.lattice[1]
        dot = sum(p * q for p, q in zip(va, vb))
        return math.acos(dot / (_norm(va) * _norm(vb)))

    @property
    def interface_area(self) -> float:
        """Half the area spanned by the first two cell vectors."""
        a, b, _ = self.lengths
        return a * b * math.sin(self.theta_ab) / 2

    def to_text(self) -> str:
        """Render the structure in direct coordinates, omitting species with no atoms."""
        lines = [self.comment, f"{_fmt(self.scale)} "]
        lines.extend(" ".join(_fmt(v) for v in vector) + " " for vector in self.lattice)
        shown = [(name, count) for name, count in zip(self.elements, self.counts) if count != 0]
        lines.append("".join(f"{name} " for name, _ in shown))
        lines.append("".join(f"{count} " for _, count in shown))
        if self.selective:
            lines.append("Selective dynamics")
        lines.append("Direct")
        for atom in self.atoms:
            fields = [_fmt(atom.x), _fmt(atom.y), _fmt(atom.z)]
            if self.selective:
                fields.extend(atom.flags or _DEFAULT_FLAGS)
            lines.append(" ".join(fields))
        return "\n".join(lines) + "\n"

    def subset(self, mask: Iterable[bool]) -> Poscar:
        """Structure holding only the atoms whose mask entry is true."""
        mask = list(mask)
        if len(mask) != len(self.atoms):
            raise ValueError(
                f"mask has {len(mask)} entries but the structure has {len(self.atoms)} atoms"
            )
        chosen = [replace(atom) for atom, keep in zip(self.atoms, mask) if keep]
        counts = [sum(1 for atom in chosen if atom.element == name) for name in self.elements]
        return replace(
            self,
            comment=SPLIT_COMMENT,
            elements=list(self.elements),
            counts=counts,
            atoms=chosen,
        )


def _floats(line: str, count: int, what: str) -> list[float]:
    fields = line.split()
    if len(fields) < count:
        raise ValueError(f"{what} needs {count} numbers: {line!r}")
    try:
        return [float(f) for f in fields[:count]]
    except ValueError:
        raise ValueError(f"{what} holds a value that is not a number: {line!r}") from None


def _first_word(line: str) -> str:
    fields = line.split()
    return fields[0] if fields else ""


def parse_poscar(text: str) -> Poscar:
    """Parse a POSCAR or CONTCAR; Cartesian positions are converted to direct ones."""
    lines = text.splitlines()
    if len(lines) < 8:
        raise ValueError("structure file is truncated before the coordinate mode line")
    comment = lines[0]
    (scale,) = _floats(lines[1], 1, "scale line")
    va, vb, vc = (tuple(_floats(lines[n], 3, "lattice vector")) for n in (2, 3, 4))
    lattice = (va, vb, vc)

    elements = lines[5].split()
    if not elements:
        raise ValueError("structure file has no element names")
    count_fields = lines[6].split()
    if len(count_fields) < len(elements):
        raise ValueError("fewer atom counts than element names")
    try:
        counts = [int(f) for f in count_fields[: len(elements)]]
    except ValueError:
        raise ValueError(f"atom counts are not integers: {lines[6]!r}") from None

    selective = _first_word(lines[7]) in _SELECTIVE
    start = 8
    mode = _first_word(lines[7])
    if selective:
        if len(lines) < 9:
            raise ValueError("structure file ends after the selective dynamics line")
        mode = _first_word(lines[8])
        start = 9
    if mode in _DIRECT:
        cartesian = False
    elif mode in _CARTESIAN:
        cartesian = True
    else:
        raise ValueError(f"unknown coordinate mode {mode!r}")

    total = sum(counts)
    rows = [line for line in lines[start:] if line.strip()]
    if len(rows) < total:
        raise ValueError(f"expected {total} atom lines, found {len(rows)}")

    a, b, c = (_norm(v) * scale for v in lattice)
    names = chain.from_iterable(repeat(name, count) for name, count in zip(elements, counts))
    atoms: list[Atom] = []
    for name, row in zip(names, rows[:total]):
        x, y, z = _floats(row, 3, "atom position")
        if cartesian:
            x, y, z = x / a, y / b, z / c
        flags = None
        if selective:
            fields = row.split()
            if len(fields) < 6:
                raise ValueError(f"atom line lacks selective dynamics flags: {row!r}")
            flags = (fields[3], fields[4], fields[5])
        atoms.append(Atom(name, _wrap(x), _wrap(y), _wrap(z), flags))

    return Poscar(comment, scale, lattice, elements, counts, atoms, selective)


def read_poscar(path: str | Path) -> Poscar:
    """Read and parse a structure file."""
    return parse_poscar(Path(path).read_text())


def upper_mask(poscar: Poscar, threshold: float) -> list[bool]:
    """Mark the atoms whose fractional z lies above the threshold."""
    return [atom.z > threshold for atom in poscar.atoms]