"""
nanohmm plotting package.

Submodules:
    - plot.colors: Color constants
    - plot.matrix: Lattice heatmaps with the Viterbi path overlaid

Example imports:
    from nanohmm.plot import plot_lattice
    from nanohmm.plot.colors import STATE_COLORS
"""

from .colors import NT_COLOR, STATE_COLORS, HEATMAP_COLORMAPS
from .matrix import lattice_layers, plot_lattice

__all__ = [
    "NT_COLOR",
    "STATE_COLORS",
    "HEATMAP_COLORMAPS",
    "lattice_layers",
    "plot_lattice",
]
