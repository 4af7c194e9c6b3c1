"""Interactive command that runs the stages of a differential charge calculation."""

from __future__ import annotations

import argparse
import sys
from collections.abc import Sequence
from pathlib import Path
from typing import TextIO

from fphtc.stages import (
    LOG_FILE,
    Logbook,
    dcs_stage,
    difference_stage,
    prepare_stage,
    profile_stage,
    submit_stage,
)

_WELCOME = (
    "Welcome to the differential charge platform.\n"
    "\n"
    "The platform calculates the differential charge (DiffCHG) of an\n"
    "interface. It must be executed in a folder where the interface\n"
    "high-throughput run has already been executed."
)

_SKIP = 2


class _InputEnded(Exception):
    """Raised when the answers run out before a question is answered."""


class _Answers:
    """Whitespace-separated answers read from a text stream, line by line."""

    def __init__(self, stream: TextIO) -> None:
        self._stream = stream
        self._pending: list[str] = []

    def wait(self) -> None:
        """Consume one line, whatever it holds."""
        self._stream.readline()

    def ints(self, count: int, what: str) -> list[int]:
        while len(self._pending) < count:
            line = self._stream.readline()
            if not line:
                raise _InputEnded(f"input ended before {what}")
            self._pending.extend(line.split())
        tokens, self._pending = self._pending[:count], self._pending[count:]
        try:
            return [int(token) for token in tokens]
        except ValueError:
            raise ValueError(f"{what} must be integers, got {' '.join(tokens)!r}") from None


def _wanted(answers: _Answers, log: Logbook, topic: str) -> bool:
    """Ask whether to run a stage; any answer but 2 runs it."""
    print(f"    If you want to {topic}, please input 1.")
    print(f"    If you want to skip the step to {topic}, please input 2.")
    (choice,) = answers.ints(1, f"the choice to {topic}")
    if choice == _SKIP:
        log.note(f"You do not select to {topic}.")
        return False
    return True


def _run(workdir: Path, answers: _Answers) -> None:
    log = Logbook(workdir / LOG_FILE, truncate=True)
    log.banner(_WELCOME)
    print("    Press Enter to continue...")
    answers.wait()

    if _wanted(answers, log, "create POSCAR files"):
        prepare_stage(workdir, log)

    if _wanted(answers, log, "call VASP"):
        submit_stage(workdir, log)

    if _wanted(answers, log, "output DiffCHG"):
        print("Please input i, j, k.")
        start = tuple(answers.ints(3, "the starting step i, j, k"))
        difference_stage(workdir, log, start)

    if _wanted(answers, log, "output DiffCHG_z"):
        print(
            "Please enter i and j with the minimum energy position to calculate the "
            "differential charge density and delta differential charge density:"
        )
        minimum = tuple(answers.ints(2, "the minimum energy cell i, j"))
        profile_stage(workdir, log, minimum)

    if _wanted(answers, log, "output the DCS with interface distance"):
        dcs_stage(workdir, log)

    log.banner("The program has been done. Thank you for using this program!")


def main(argv: Sequence[str] | None = None) -> int:
    """Run the stages chosen on standard input; return the exit status."""
    parser = argparse.ArgumentParser(
        prog="fphtc",
        description="Differential charge stages of an interface high-throughput run.",
    )
    parser.add_argument(
        "-C",
        "--workdir",
        type=Path,
        default=Path("."),
        help="folder of the run (default: the current folder)",
    )
    args = parser.parse_args(argv)
    try:
        _run(args.workdir, _Answers(sys.stdin))
    except (_InputEnded, ValueError, OSError) as error:
        print(f"fphtc: {error}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())