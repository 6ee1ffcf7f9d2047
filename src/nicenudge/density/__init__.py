"""Kernel density estimates and density-based observation filters."""

from nicenudge.density.filter import (
    Dens1dFilter,
    Dens2dFilter,
    DensityFilter,
    dens1d_filter,
    dens1d_filter_g,
    dens2d_filter,
    dens2d_filter_g,
)
from nicenudge.density.kde import Density1D, Density2D, kde1d, kde2d, select_bandwidth

__all__ = [
    "Dens1dFilter",
    "Dens2dFilter",
    "Density1D",
    "Density2D",
    "DensityFilter",
    "dens1d_filter",
    "dens1d_filter_g",
    "dens2d_filter",
    "dens2d_filter_g",
    "kde1d",
    "kde2d",
    "select_bandwidth",
]
