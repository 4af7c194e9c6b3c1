# fphtc

Tools for computing differential charge densities across a solid–solid
interface from a grid of first-principles (VASP) calculations.

The workflow runs in a directory where a sliding-interface
high-throughput calculation has already been carried out: each grid
point `i_j_k` (lateral steps `i`, `j`, interface-distance step `k`) has
its own folder `i_j_k/` holding a relaxed `CONTCAR` and a `CHGCAR`.

The package has no dependencies outside the standard library.

## Install

    pip install .

For the tests:

    pip install .[test]
    pytest

## Running the workflow

    fphtc-diffchg [-C WORKDIR]

`-C/--workdir` names the run folder (default: the current folder).
The command clears `log.out` in that folder, then walks through its
stages in order. Before each stage it reads an answer from standard
input: `2` skips the stage, any other integer runs it.

1. **Prepare** – reads `in.dat` and the initial `POSCAR`; atoms above
   the moving face site go to the upper slab. For every step the
   `CONTCAR` is split into `i_j_k/up/POSCAR` and `i_j_k/down/POSCAR`,
   and `KPOINTS`, `INCAR_up`/`INCAR_down`, `POTCAR_up`/`POTCAR_down`
   and a copy of `rvasp.sh` with its `#PBS -N` name suffixed by
   `_i_j_k_up` or `_i_j_k_down` are placed beside them.
2. **Submit** – for every step writes `run.sh`, which runs
   `qsub rvasp.sh` in the `up/` and `down/` folders, and executes it.
3. **Differences** – asks for a starting step `i j k`, then writes
   `DiffCHGAll/DiffCHG_i_j_k` (total charge minus the two slab charges)
   for every step from that one onwards.
4. **Profiles** – asks for the minimum-energy cell `i j`, reduces each
   difference to plane profiles along `c` (`DiffCHGAll_z/`,
   `DiffCHGAll_z_abs/`) and writes `DiffCHG_Sum.dat`,
   `DiffCHG_Sum_Sun.dat`, `d_DiffCHG_All`, `d_DiffCHG_All_Sun`, the
   `*_DeltaEnergy*` tables and `d_Delta_DiffCHG_Sum_Sun`.
5. **DCS maps** – reads `DiffCHG_Sum_Sun.dat` and writes one CHG-format
   map per interface distance into `DCS_Dengju/`, ready to view in
   VESTA.

Stages 2 to 5 read `temp.dat` (grid sizes, cell geometry, step sizes and
interface distances) and `temp1.dat` (energies), which come from the
preceding high-throughput run. Progress is appended to `log.out` and
echoed to standard output. On a missing or malformed input the command
prints the error and exits with status 1.

## Using it as a library

- `fphtc.poscar` – `Atom`, `Poscar` (`to_text`, `subset`, `lengths`,
  `theta_ab`, `interface_area`), `parse_poscar`, `read_poscar`,
  `upper_mask`. Cartesian positions are converted to direct ones.
- `fphtc.prepare` – `StepSettings`, `read_settings`, `rename_job`,
  `create_poscars`.
- `fphtc.submit` – `run_script`, `submit_jobs` (takes an optional
  `runner` called with the script path instead of executing it).
- `fphtc.chgcar` – `Chgcar`, `parse_chgcar`, `read_chgcar`,
  `difference_text`, `write_differences`, `planar_profile`,
  `summarize_profiles`.
- `fphtc.datafiles` – `RunData`, `read_run_data`.
- `fphtc.interface` – `interface_bounds` and
  `summarize_interface_profiles`, which sum the differential charge only
  between the top of the lower slab and the bottom of the upper slab,
  writing `DiffCHG_Sum_Interface.dat` and `d_DiffCHG_Interface`.
- `fphtc.dcs` – `dcs_text`, `write_dcs_series`, `write_dcs_load`.
- `fphtc.loadcurve` – `LoadCurves` builds a slope model of energy
  against interface distance for every lateral cell and its load range
  (`max_load`, `min_load`). `fit` compares the rebuilt curves with the
  data as `FitPoint`s; `locate`, `energy_under_load` and
  `interpolate_sums` give the distance, the energy less the work, and
  interpolated charge sums under a normal load. Loads outside the range
  raise `LoadRangeError`.
- `fphtc.stages` – `Logbook` and the stage functions the command runs.

```python
from fphtc.datafiles import read_run_data
from fphtc.loadcurve import LoadCurves, LoadRangeError

run = read_run_data(".")
curves = LoadCurves(run.z, run.energy)
try:
    energies = curves.energy_under_load(curves.max_load)
except LoadRangeError as error:
    print(error)
```

## What it does not do

- The command does not run the interface-restricted profiles or any of
  the load-based analysis; `fphtc.interface`, `fphtc.loadcurve` and
  `write_dcs_load` are available only as library calls.
- It does not produce `temp.dat` or `temp1.dat`, run the first-principles
  calculations itself, or wait for queued jobs to finish.
- It does not plot; the maps are written as files for an external viewer.