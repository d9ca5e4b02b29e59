"""
validation.py — independent baselines and regression helpers for nanohmm

This module provides a brute-force evaluation of the profile HMM by
explicit path enumeration, a term-by-term re-scorer for alignments and
an event simulator for randomized tests.

The goals are:

  1. Verify that the Forward fill equals the log-sum, over every path
     the HMM topology allows, of that path's probability.

  2. Verify that the Viterbi fill equals the best of those path scores,
     and that re-scoring the backtracked alignment reproduces it.

This module is independent of dp_core: transitions, flanks and
emissions are recomputed here from the model parameters so that bugs
in the lattice fill cannot mask each other during testing.  Enumeration
is exponential; keep sequences and event windows tiny.
"""
from __future__ import annotations

import math
from typing import Iterator, List, Optional, Sequence, Tuple

import numpy as np

from .aligners import AlignmentState, profile_hmm_align, profile_hmm_score
from .default import LOG_PROBABILITY_BACKGROUND
from .dp_core import HMMInputData
from .kmers import kmer_rank, num_kmers_in, rc_kmer_rank
from .parameters import get_skip_probability
from .pore_model import EventTable, PoreModel

# A node of the HMM: (row, kmer_idx, state) with state in 'M', 'E', 'K'.
# Row r >= 1 has consumed events 0..r-1 of the window.
Node = Tuple[int, int, str]
START: Node = (0, -1, "M")


def _log(p: float) -> float:
    return math.log(p) if p > 0 else -math.inf


class _Model:
    """Probabilities of one alignment instance, recomputed from scratch."""

    def __init__(self, sequence: str, data: HMMInputData):
        pm = data.pore_model
        params = data.parameters
        self.data = data
        self.num_kmers = num_kmers_in(sequence, pm.k)
        self.num_events = data.num_events
        if self.num_kmers < 1:
            raise ValueError("Sequence holds no kmers")

        rank = rc_kmer_rank if data.rc else kmer_rank
        self.ranks = [rank(sequence[i:i + pm.k]) for i in range(self.num_kmers)]
        s = pm.scaling
        self.means = [pm.level_mean[r] * s.scale + s.shift for r in self.ranks]
        self.stdvs = [pm.level_stdv[r] * s.var for r in self.ranks]

        # p_skip[i]: probability that kmer i is skipped coming from kmer i-1
        self.p_skip = [0.0] + [
            get_skip_probability(params, self.means[i - 1], self.means[i])
            for i in range(1, self.num_kmers)
        ]
        self.params = params

        events = data.read.events[data.strand]
        t0 = events.start[0]
        self.levels = [
            events.level[idx] - (events.start[idx] - t0) * s.drift
            for idx in (data.event_index(i) for i in range(self.num_events))
        ]

    def transition(self, src: str, dst: str, kmer: int) -> float:
        """Log-probability of src -> dst, where dst sits in block kmer."""
        p_skip = self.p_skip[kmer]
        p_me = (1 - p_skip) * self.params.trans_m_to_e_not_k
        table = {
            ("M", "M"): 1 - p_me - p_skip,
            ("M", "E"): p_me,
            ("M", "K"): p_skip,
            ("E", "M"): 1 - self.params.trans_e_to_e,
            ("E", "E"): self.params.trans_e_to_e,
            ("K", "M"): 1 - p_skip,
            ("K", "K"): p_skip,
        }
        return _log(table.get((src, dst), 0.0))

    def emission(self, row: int, kmer: int, state: str) -> float:
        if state == "K":
            return 0.0
        z = (self.levels[row - 1] - self.means[kmer]) / self.stdvs[kmer]
        return -0.5 * math.log(2 * math.pi) - math.log(self.stdvs[kmer]) - 0.5 * z * z

    def post_flank(self, row: int) -> float:
        """Log-probability of emitting events row..n-1 from the background."""
        p = self.params
        trailing = self.num_events - row
        if trailing == 0:
            return math.log(p.trans_start_to_pre)
        return (math.log(1 - p.trans_start_to_pre) + math.log(1 - p.trans_pre_self)
                + trailing * LOG_PROBABILITY_BACKGROUND
                + (trailing - 1) * math.log(p.trans_pre_self))

    def successors(self, node: Node) -> Iterator[Node]:
        row, kmer, state = node
        if row < self.num_events and kmer + 1 < self.num_kmers:
            yield (row + 1, kmer + 1, "M")
        if row < self.num_events and kmer >= 0 and state in ("M", "E"):
            yield (row + 1, kmer, "E")
        if row >= 1 and kmer + 1 < self.num_kmers and state in ("M", "K"):
            yield (row, kmer + 1, "K")

    def end(self, node: Node, global_alignment: bool) -> float:
        row, kmer, state = node
        if kmer != self.num_kmers - 1 or row < 1:
            return -math.inf
        if global_alignment:
            return 0.0 if (row == self.num_events and state == "M") else -math.inf
        return math.log(1.0 / self.num_kmers) + self.post_flank(row)


def enumerate_paths(
    sequence: str,
    data: HMMInputData,
    global_alignment: bool = False,
) -> Iterator[Tuple[List[Node], float]]:
    """
    Yield (nodes, log_probability) for every complete alignment path
    with non-zero probability.
    """
    model = _Model(sequence, data)

    def walk(node: Node, path: List[Node], lp: float):
        lp_end = model.end(node, global_alignment)
        if lp_end > -math.inf:
            yield list(path), lp + lp_end
        for nxt in model.successors(node):
            lp_step = model.transition(node[2], nxt[2], nxt[1]) + model.emission(*nxt)
            if lp_step == -math.inf:
                continue
            path.append(nxt)
            yield from walk(nxt, path, lp + lp_step)
            path.pop()

    yield from walk(START, [], 0.0)


def naive_forward(sequence: str, data: HMMInputData, global_alignment: bool = False) -> float:
    """Log-sum of the probabilities of all paths (Forward by enumeration)."""
    scores = [lp for _, lp in enumerate_paths(sequence, data, global_alignment)]
    if not scores:
        return -math.inf
    return float(np.logaddexp.reduce(scores))


def naive_viterbi(
    sequence: str,
    data: HMMInputData,
    global_alignment: bool = False,
) -> Tuple[float, Optional[List[Node]]]:
    """Best path score and its nodes (Viterbi by enumeration)."""
    best, best_path = -math.inf, None
    for path, lp in enumerate_paths(sequence, data, global_alignment):
        if lp > best:
            best, best_path = lp, path
    return best, best_path


def count_paths(sequence: str, data: HMMInputData, global_alignment: bool = False) -> int:
    return sum(1 for _ in enumerate_paths(sequence, data, global_alignment))


def score_alignment(
    sequence: str,
    data: HMMInputData,
    states: Sequence[AlignmentState],
    global_alignment: bool = False,
) -> float:
    """
    Re-score an alignment by summing its transition, emission and end
    terms one step at a time.

    Raises ValueError if a step is not a legal transition.
    """
    model = _Model(sequence, data)
    node = START
    lp = 0.0
    for s in states:
        row = (s.event_idx - data.event_start_idx) * data.event_stride + 1
        nxt = (row, s.kmer_idx, s.state)
        if nxt not in set(model.successors(node)):
            raise ValueError(f"Illegal step {node} -> {nxt}")
        lp += model.transition(node[2], nxt[2], nxt[1]) + model.emission(*nxt)
        node = nxt
    return lp + model.end(node, global_alignment)


# ---------------------------------------------------------------------------
# Simulation
# ---------------------------------------------------------------------------

def simulate_events(
    sequence: str,
    pore_model: PoreModel,
    rng: np.random.Generator,
    p_skip: float = 0.05,
    p_split: float = 0.15,
    dwell: float = 0.01,
) -> EventTable:
    """
    Draw events for sequence from pore_model.

    Each kmer is skipped with probability p_skip; otherwise it emits one
    event plus a geometric number of split events (continuation
    probability p_split).  Levels are Gaussian under the scaled model.
    """
    levels: List[float] = []
    for i in range(num_kmers_in(sequence, pore_model.k)):
        if i > 0 and rng.random() < p_skip:
            continue
        gp = pore_model.get_scaled_parameters(kmer_rank(sequence[i:i + pore_model.k]))
        while True:
            levels.append(rng.normal(gp.mean, gp.stdv))
            if rng.random() >= p_split:
                break
    return EventTable.from_levels(levels, dwell=dwell)


# ---------------------------------------------------------------------------
# Comparison helpers
# ---------------------------------------------------------------------------

def check_forward_vs_naive(
    sequence: str,
    data: HMMInputData,
    global_alignment: bool = False,
) -> Tuple[float, float]:
    """
    Returns
    -------
    fill_score : float
        profile_hmm_score (Forward fill).
    naive_score : float
        naive_forward (enumeration).
    """
    return (
        profile_hmm_score(sequence, data, global_alignment=global_alignment),
        naive_forward(sequence, data, global_alignment),
    )


def check_viterbi_vs_naive(
    sequence: str,
    data: HMMInputData,
    global_alignment: bool = False,
) -> Tuple[float, float]:
    """Viterbi fill score and the best enumerated path score."""
    result = profile_hmm_align(sequence, data, global_alignment=global_alignment)
    best, _ = naive_viterbi(sequence, data, global_alignment)
    return result.score, best


def check_alignment_rescoring(
    sequence: str,
    data: HMMInputData,
    global_alignment: bool = False,
    atol: float = 1e-6,
) -> Tuple[bool, str]:
    """
    Check that the backtracked Viterbi alignment re-scores to the
    reported Viterbi score.

    Returns
    -------
    (valid, message)
    """
    result = profile_hmm_align(sequence, data, global_alignment=global_alignment)
    if result.score == -math.inf:
        if result.states:
            return False, "impossible alignment reported a non-empty path"
        return True, "OK"
    try:
        rescored = score_alignment(sequence, data, result.states, global_alignment)
    except ValueError as exc:
        return False, str(exc)
    if not math.isclose(rescored, result.score, abs_tol=atol):
        return False, f"re-scored path {rescored} != Viterbi score {result.score}"
    return True, "OK"
