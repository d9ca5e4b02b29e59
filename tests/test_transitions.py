"""
test_transitions.py — Tests for per-block transitions and flanking vectors
"""

import math

import numpy as np
import pytest

from nanohmm.default import LOG_PROBABILITY_BACKGROUND as BG
from nanohmm.dp_core import (
    HMMInputData,
    calculate_skip_probability,
    calculate_transitions,
    get_rank,
    make_post_flanking,
    make_pre_flanking,
)
from nanohmm.parameters import get_skip_probability
from nanohmm.pore_model import EventTable, SquiggleRead


class TestInputData:
    """Validation of the event window."""

    def test_num_events_and_indices(self, make_data):
        data = make_data([60.0] * 6, start=1, stop=4)
        assert data.num_events == 4
        assert [data.event_index(i) for i in range(4)] == [1, 2, 3, 4]

    def test_reverse_window(self, make_data):
        data = make_data([60.0] * 6, start=4, stop=1, stride=-1)
        assert data.num_events == 4
        assert [data.event_index(i) for i in range(4)] == [4, 3, 2, 1]

    @pytest.mark.parametrize("start,stop,stride", [
        (0, 3, 2),     # stride must be +-1
        (3, 0, 1),     # stop behind start
        (0, 3, -1),    # stop ahead of start walking backward
        (0, 9, 1),     # stop outside the events
        (-1, 2, 1),    # start outside the events
    ])
    def test_inconsistent_window_raises(self, make_data, start, stop, stride):
        with pytest.raises(ValueError):
            make_data([60.0] * 5, start=start, stop=stop, stride=stride)

    def test_strand_out_of_range_raises(self, toy_model, params):
        read = SquiggleRead([EventTable.from_levels([60.0])], [toy_model], [params])
        with pytest.raises(ValueError, match="strand"):
            HMMInputData(read, strand=1, event_start_idx=0, event_stop_idx=0, event_stride=1)


class TestTransitions:
    """Seven log-probabilities per block."""

    def test_outgoing_probabilities_sum_to_one(self, make_data):
        data = make_data([60.0, 61.0])
        for bt in calculate_transitions(4, "AGCT", data):
            assert math.exp(bt.lp_mm) + math.exp(bt.lp_me) + math.exp(bt.lp_mk) == pytest.approx(1.0)
            assert math.exp(bt.lp_ee) + math.exp(bt.lp_em) == pytest.approx(1.0)
            assert math.exp(bt.lp_kk) + math.exp(bt.lp_km) == pytest.approx(1.0)

    def test_all_log_probabilities_nonpositive(self, make_data):
        data = make_data([60.0, 61.0])
        for bt in calculate_transitions(4, "AGCT", data):
            for v in vars(bt).values():
                assert v <= 0.0
                assert not math.isnan(v)

    def test_single_kmer_cannot_be_skipped(self, make_data, params):
        data = make_data([60.0, 61.0])
        (bt,) = calculate_transitions(1, "A", data)
        assert bt.lp_mk == -math.inf
        assert bt.lp_kk == -math.inf
        assert bt.lp_km == 0.0
        assert bt.lp_me == pytest.approx(math.log(params.trans_m_to_e_not_k))
        assert bt.lp_mm == pytest.approx(math.log(1 - params.trans_m_to_e_not_k))

    def test_values_for_later_blocks(self, make_data, params, toy_model):
        data = make_data([60.0, 61.0])
        transitions = calculate_transitions(2, "AG", data)
        p_skip = get_skip_probability(params, 60.0, 62.0)
        bt = transitions[1]
        assert bt.lp_mk == pytest.approx(math.log(p_skip))
        assert bt.lp_me == pytest.approx(math.log((1 - p_skip) * params.trans_m_to_e_not_k))
        assert bt.lp_kk == pytest.approx(math.log(p_skip))
        assert bt.lp_km == pytest.approx(math.log(1 - p_skip))
        assert bt.lp_ee == pytest.approx(math.log(params.trans_e_to_e))
        assert bt.lp_em == pytest.approx(math.log(1 - params.trans_e_to_e))

    def test_similar_levels_skip_more(self, make_data):
        data = make_data([60.0, 61.0])
        # A -> G differ by 2 pA, A -> T by 25 pA
        assert (calculate_skip_probability("AG", data, 0, 1)
                > calculate_skip_probability("AT", data, 0, 1))

    def test_zero_kmers_raises(self, make_data):
        with pytest.raises(ValueError):
            calculate_transitions(0, "", make_data([60.0]))

    def test_rc_ranks(self, make_data):
        data = make_data([60.0], rc=True)
        # the reverse complement of A is T
        assert get_rank(data, "AC", 0) == 3
        assert get_rank(data, "AC", 1) == 2


class TestFlanks:
    """Background flanks that make the alignment local."""

    def test_pre_flank_values(self, make_data, params):
        data = make_data([60.0] * 4)
        pre = make_pre_flanking(data, params, 0, 4)
        assert pre.shape == (5,)
        assert pre[0] == pytest.approx(math.log(0.2))
        assert pre[1] == pytest.approx(math.log(0.8) + BG + math.log(0.8))
        for i in range(2, 5):
            assert pre[i] == pytest.approx(pre[i - 1] + math.log(0.2) + BG)

    def test_post_flank_values(self, make_data, params):
        data = make_data([60.0] * 4)
        post = make_post_flanking(data, params, 0, 4)
        assert post.shape == (4,)
        assert post[3] == pytest.approx(math.log(0.2))
        assert post[2] == pytest.approx(math.log(0.8) + BG + math.log(0.8))
        for i in range(1, -1, -1):
            assert post[i] == pytest.approx(post[i + 1] + math.log(0.2) + BG)

    def test_flanks_are_monotone(self, make_data, params):
        data = make_data([60.0] * 8)
        pre = make_pre_flanking(data, params, 0, 8)
        post = make_post_flanking(data, params, 0, 8)
        assert np.all(np.diff(pre) <= 0)
        assert np.all(np.diff(post[::-1]) <= 0)
        assert np.all(pre <= 0) and np.all(post <= 0)

    def test_reverse_window(self, make_data, params):
        data = make_data([60.0] * 5, stride=-1)
        post = make_post_flanking(data, params, data.event_start_idx, 5)
        assert post.shape == (5,)

    def test_empty_window_raises(self, make_data, params):
        data = make_data([60.0])
        with pytest.raises(ValueError):
            make_pre_flanking(data, params, 0, 0)

    def test_post_flank_needs_two_events(self, make_data, params):
        data = make_data([60.0])
        with pytest.raises(ValueError, match="at least 2"):
            make_post_flanking(data, params, 0, 1)

    def test_post_flank_tail_mismatch_raises(self, make_data, params):
        data = make_data([60.0] * 5, start=0, stop=3)
        with pytest.raises(ValueError, match="expected 3"):
            make_post_flanking(data, params, 1, 4)
