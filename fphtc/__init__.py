"""Differential charge density workflow for interface calculations: structures, charge grids, load curves and DCS maps."""

__version__ = "26.1.0"
__all__ = ["__version__"]