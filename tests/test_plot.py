"""
test_plot.py — Smoke tests for the lattice heatmaps

Skipped when the plotting extras are not installed.
"""

import pytest
import numpy as np

matplotlib = pytest.importorskip("matplotlib")
pytest.importorskip("seaborn")
matplotlib.use("Agg")

import matplotlib.pyplot as plt  # noqa: E402

from nanohmm.aligners import profile_hmm_align  # noqa: E402
from nanohmm.plot import STATE_COLORS, lattice_layers, plot_lattice  # noqa: E402


LEVELS = [60.0, 60.5, 70.0, 69.5, 60.0]


class TestLatticeLayers:

    def test_layer_shapes(self, make_data):
        result = profile_hmm_align("ACA", make_data(LEVELS), return_data=True)
        layers = lattice_layers(result.data.lattice)
        assert set(layers) == {"M", "E", "K"}
        for layer in layers.values():
            assert layer.shape == (6, 3)

    def test_layers_match_lattice_cells(self, make_data):
        result = profile_hmm_align("ACA", make_data(LEVELS), return_data=True)
        lattice = result.data.lattice
        layers = lattice_layers(lattice)
        # kmer 1 lives in block 2
        assert layers["M"][3, 1] == lattice.get(3, 6)
        assert layers["E"][4, 1] == lattice.get(4, 7)
        np.testing.assert_array_equal(layers["K"][0], np.full(3, -np.inf))


class TestPlotLattice:

    def test_returns_three_panels(self, make_data):
        data = make_data(LEVELS)
        result = profile_hmm_align("ACA", data, return_data=True)
        fig = plot_lattice(result, "ACA", data)
        try:
            assert len(fig.axes) == 3
            assert [ax.get_title() for ax in fig.axes] == ["Match", "Event split", "Kmer skip"]
        finally:
            plt.close(fig)

    def test_requires_lattice_data(self, make_data):
        data = make_data(LEVELS)
        result = profile_hmm_align("ACA", data)
        with pytest.raises(ValueError, match="return_data=True"):
            plot_lattice(result, "ACA", data)

    def test_state_colors_cover_alignment(self, make_data):
        result = profile_hmm_align("ACA", make_data(LEVELS))
        assert {s.state for s in result.states} <= set(STATE_COLORS)
