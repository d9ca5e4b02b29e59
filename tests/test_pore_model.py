"""
test_pore_model.py — Tests for the emission model, events and reads
"""

import math

import numpy as np
import pytest

from nanohmm.default import LOG_PROBABILITY_BACKGROUND
from nanohmm.kmers import kmer_rank
from nanohmm.parameters import TransitionParameters
from nanohmm.pore_model import (
    EventTable,
    GaussianParameters,
    PoreModel,
    ScalingParameters,
    SquiggleRead,
    log_normal_pdf,
    log_probability_background,
    log_probability_event_insert,
    log_probability_match,
)


class TestGaussian:

    def test_log_normal_pdf_at_mean(self):
        gp = GaussianParameters(mean=10.0, stdv=2.0)
        expected = -0.5 * math.log(2 * math.pi) - math.log(2.0)
        assert log_normal_pdf(10.0, gp) == pytest.approx(expected)

    def test_log_normal_pdf_one_sd_away(self):
        gp = GaussianParameters(mean=10.0, stdv=2.0)
        assert log_normal_pdf(12.0, gp) == pytest.approx(log_normal_pdf(10.0, gp) - 0.5)
        assert log_normal_pdf(8.0, gp) == pytest.approx(log_normal_pdf(12.0, gp))


class TestPoreModel:

    def test_scaled_parameters(self, scaled_model):
        gp = scaled_model.get_scaled_parameters(kmer_rank("C"))
        assert gp.mean == pytest.approx(70.0 * 1.1 + 5.0)
        assert gp.stdv == pytest.approx(2.5 * 1.2)

    def test_wrong_table_size_raises(self):
        with pytest.raises(ValueError, match="needs 16 levels"):
            PoreModel(k=2, level_mean=np.zeros(4), level_stdv=np.ones(4))

    def test_nonpositive_stdv_raises(self):
        with pytest.raises(ValueError, match="strictly positive"):
            PoreModel(k=1, level_mean=np.zeros(4), level_stdv=[1.0, 0.0, 1.0, 1.0])

    def test_from_file(self, tmp_path):
        lines = ["# kmer\tlevel_mean\tlevel_stdv"]
        # written out of rank order on purpose
        for kmer, mean in [("T", 85.0), ("A", 60.0), ("G", 62.0), ("C", 70.0)]:
            lines.append(f"{kmer}\t{mean}\t1.5")
        path = tmp_path / "toy.model"
        path.write_text("\n".join(lines) + "\n")

        model = PoreModel.from_file(path, scaling=ScalingParameters(shift=1.0))
        assert model.k == 1
        assert list(model.level_mean) == [60.0, 70.0, 62.0, 85.0]
        assert model.get_scaled_parameters(0).mean == pytest.approx(61.0)

    def test_from_file_missing_kmers_raises(self, tmp_path):
        path = tmp_path / "short.model"
        path.write_text("AA\t60.0\t1.0\nAC\t61.0\t1.0\n")
        with pytest.raises(ValueError, match="expected 16 kmers"):
            PoreModel.from_file(path)


class TestEventsAndReads:

    def test_event_table_lengths_must_match(self):
        with pytest.raises(ValueError):
            EventTable(level=[1.0, 2.0], stdv=[0.1], start=[0.0, 0.1], length=[0.1, 0.1])

    def test_from_levels(self):
        events = EventTable.from_levels([60.0, 61.0, 62.0], dwell=0.5)
        assert len(events) == 3
        assert list(events.start) == [0.0, 0.5, 1.0]

    def test_read_needs_one_entry_per_strand(self, toy_model):
        events = EventTable.from_levels([60.0])
        with pytest.raises(ValueError):
            SquiggleRead([events, events], [toy_model], [TransitionParameters()])

    def test_drift_corrected_level(self, toy_model):
        model = toy_model.with_scaling(ScalingParameters(drift=2.0))
        events = EventTable.from_levels([60.0, 60.0, 60.0], dwell=0.5)
        read = SquiggleRead([events], [model], [TransitionParameters()])
        assert read.get_drift_corrected_level(0, 0) == pytest.approx(60.0)
        assert read.get_drift_corrected_level(2, 0) == pytest.approx(58.0)


class TestEmissions:

    def test_match_and_event_insert_agree(self, toy_model):
        events = EventTable.from_levels([61.0, 72.0])
        read = SquiggleRead([events], [toy_model], [TransitionParameters()])
        rank = kmer_rank("A")
        expected = log_normal_pdf(61.0, toy_model.get_scaled_parameters(rank))
        assert log_probability_match(read, rank, 0, 0) == pytest.approx(expected)
        assert log_probability_event_insert(read, rank, 0, 0) == pytest.approx(expected)

    def test_background_is_constant(self, toy_model):
        events = EventTable.from_levels([61.0, 72.0])
        read = SquiggleRead([events], [toy_model], [TransitionParameters()])
        assert log_probability_background(read, 0, 0) == LOG_PROBABILITY_BACKGROUND
        assert log_probability_background(read, 1, 0) == LOG_PROBABILITY_BACKGROUND
