"""
dp_core.py — profile HMM dynamic programming core

This module implements the lattice fill of a profile HMM that aligns a
window of nanopore events to a candidate sequence.  Each kmer of the
sequence owns a block of three states:

    Match        the event was emitted by this kmer
    EventSplit   an extra event emitted by the same kmer
    KmerSkip     the kmer produced no event (silent)

The same recursion computes the Forward probability or the Viterbi
alignment depending on the output strategy it is handed (see outputs.py).
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import List

import numpy as np

from .kmers import kmer_rank, num_kmers_in, rc_kmer_rank
from .lattice import PS_EVENT_SPLIT, PS_KMER_SKIP, PS_MATCH, PS_NUM_STATES
from .outputs import NEG_INF, ProfileHMMOutput
from .parameters import TransitionParameters, get_skip_probability
from .pore_model import (
    PoreModel,
    SquiggleRead,
    log_probability_background,
    log_probability_event_insert,
    log_probability_match,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Input and transition containers
# ---------------------------------------------------------------------------

@dataclass
class HMMInputData:
    """
    One alignment instance: a window of events on one strand of a read.

    Attributes
    ----------
    read : SquiggleRead
        Events, calibrated pore models and transition parameters.
    strand : int
        Strand of the read to align (0 template, 1 complement).
    event_start_idx, event_stop_idx : int
        First and last event of the window, both inclusive.
    event_stride : int
        +1 to walk the events forward, -1 to walk them backward.
    rc : bool
        If True, kmers are ranked by their reverse complement.
    """
    read: SquiggleRead
    strand: int
    event_start_idx: int
    event_stop_idx: int
    event_stride: int
    rc: bool = False

    def __post_init__(self):
        if self.event_stride not in (1, -1):
            raise ValueError(f"event_stride must be +1 or -1, got {self.event_stride}")
        if not (0 <= self.strand < self.read.num_strands):
            raise ValueError(
                f"strand {self.strand} out of range for a read with {self.read.num_strands} strand(s)"
            )
        n = len(self.read.events[self.strand])
        for name in ("event_start_idx", "event_stop_idx"):
            idx = getattr(self, name)
            if not (0 <= idx < n):
                raise ValueError(f"{name}={idx} outside the {n} events of strand {self.strand}")
        if (self.event_stop_idx - self.event_start_idx) * self.event_stride < 0:
            raise ValueError(
                f"Event window {self.event_start_idx}..{self.event_stop_idx} "
                f"cannot be walked with stride {self.event_stride}"
            )

    @property
    def num_events(self) -> int:
        return abs(self.event_stop_idx - self.event_start_idx) + 1

    @property
    def pore_model(self) -> PoreModel:
        return self.read.pore_model[self.strand]

    @property
    def parameters(self) -> TransitionParameters:
        return self.read.parameters[self.strand]

    def event_index(self, i: int) -> int:
        """Event index of the i-th event of the window (0-based)."""
        return self.event_start_idx + i * self.event_stride


@dataclass
class BlockTransitions:
    """Log transition probabilities into one kmer block."""
    # from the match state of the previous block
    lp_mm: float
    lp_me: float
    lp_mk: float
    # from the event split state
    lp_ee: float
    lp_em: float
    # from the kmer skip state
    lp_kk: float
    lp_km: float


def _log(p: float) -> float:
    return math.log(p) if p > 0.0 else NEG_INF


def get_rank(data: HMMInputData, sequence: str, ki: int) -> int:
    """Rank of the ki-th kmer of sequence, oriented as the data requires."""
    k = data.pore_model.k
    kmer = sequence[ki:ki + k]
    return rc_kmer_rank(kmer) if data.rc else kmer_rank(kmer)


# ---------------------------------------------------------------------------
# Transitions
# ---------------------------------------------------------------------------

def calculate_skip_probability(sequence: str, data: HMMInputData, ki: int, kj: int) -> float:
    """Probability of skipping kmer kj when coming from kmer ki."""
    pm = data.pore_model
    level_i = pm.get_scaled_parameters(get_rank(data, sequence, ki))
    level_j = pm.get_scaled_parameters(get_rank(data, sequence, kj))
    return get_skip_probability(data.parameters, level_i.mean, level_j.mean)


def calculate_transitions(num_kmers: int, sequence: str, data: HMMInputData) -> List[BlockTransitions]:
    """
    Log transition probabilities into each of the num_kmers blocks.

    The first block has no predecessor kmer, so it cannot be skipped.
    """
    if num_kmers < 1:
        raise ValueError(f"calculate_transitions needs at least one kmer, got {num_kmers}")
    parameters = data.parameters

    transitions = []
    for ki in range(num_kmers):
        p_skip = calculate_skip_probability(sequence, data, ki - 1, ki) if ki > 0 else 0.0

        # from the match state of the previous block
        p_mk = p_skip
        p_me = (1 - p_skip) * parameters.trans_m_to_e_not_k
        p_mm = 1.0 - p_me - p_mk

        # from the event split state; split -> skip is not allowed
        p_ee = parameters.trans_e_to_e
        p_em = 1.0 - p_ee

        # from the kmer skip state; skip -> split is not allowed
        p_kk = p_skip
        p_km = 1.0 - p_skip

        transitions.append(BlockTransitions(
            lp_mm=_log(p_mm),
            lp_me=_log(p_me),
            lp_mk=_log(p_mk),
            lp_ee=_log(p_ee),
            lp_em=_log(p_em),
            lp_kk=_log(p_kk),
            lp_km=_log(p_km),
        ))
    return transitions


# ---------------------------------------------------------------------------
# Flanking probabilities
# ---------------------------------------------------------------------------

def make_pre_flanking(
    data: HMMInputData,
    parameters: TransitionParameters,
    e_start: int,
    num_events: int,
) -> np.ndarray:
    """
    pre_flank[i] is the log-probability of emitting the first i events
    from the background before the alignment starts.
    """
    if num_events < 1:
        raise ValueError(f"make_pre_flanking needs a non-empty event window, got {num_events}")
    pre_flank = np.zeros(num_events + 1, dtype=float)

    # no skipping
    pre_flank[0] = math.log(parameters.trans_start_to_pre)

    # skipping the first event: into the background, emit, out to the silent pre state
    pre_flank[1] = (math.log(1 - parameters.trans_start_to_pre)
                    + log_probability_background(data.read, e_start, data.strand)
                    + math.log(1 - parameters.trans_pre_self))

    for i in range(2, num_events + 1):
        event_idx = e_start + (i - 1) * data.event_stride
        pre_flank[i] = (math.log(parameters.trans_pre_self)
                        + log_probability_background(data.read, event_idx, data.strand)
                        + pre_flank[i - 1])
    return pre_flank


def make_post_flanking(
    data: HMMInputData,
    parameters: TransitionParameters,
    e_start: int,
    num_events: int,
) -> np.ndarray:
    """
    post_flank[i] is the log-probability that event i was the last one
    aligned and the remaining events are emitted from the background.
    """
    if num_events < 2:
        raise ValueError(f"make_post_flanking needs at least 2 events, got {num_events}")
    post_flank = np.zeros(num_events, dtype=float)

    # all events aligned
    post_flank[num_events - 1] = math.log(parameters.trans_start_to_pre)

    # all events aligned but the last
    event_idx = e_start + (num_events - 1) * data.event_stride
    if event_idx != data.event_stop_idx:
        raise ValueError(
            f"Last event of the window is {event_idx}, expected {data.event_stop_idx}"
        )
    post_flank[num_events - 2] = (math.log(1 - parameters.trans_start_to_pre)
                                  + log_probability_background(data.read, event_idx, data.strand)
                                  + math.log(1 - parameters.trans_pre_self))

    for i in range(num_events - 3, -1, -1):
        event_idx = e_start + (i + 1) * data.event_stride
        post_flank[i] = (math.log(parameters.trans_pre_self)
                         + log_probability_background(data.read, event_idx, data.strand)
                         + post_flank[i + 1])
    return post_flank


# ---------------------------------------------------------------------------
# Lattice fill
# ---------------------------------------------------------------------------

def _check_output_shape(sequence: str, data: HMMInputData, output: ProfileHMMOutput) -> int:
    """Validate the output storage against the inputs; return the kmer count."""
    if output.num_columns % PS_NUM_STATES != 0:
        raise ValueError(f"Lattice has {output.num_columns} columns, not a multiple of {PS_NUM_STATES}")
    num_kmers = output.num_columns // PS_NUM_STATES - 2
    expected_kmers = num_kmers_in(sequence, data.pore_model.k)
    if num_kmers < 1 or num_kmers != expected_kmers:
        raise ValueError(
            f"Lattice is sized for {num_kmers} kmers but the sequence has {expected_kmers}"
        )
    if output.num_rows - 1 != data.num_events:
        raise ValueError(
            f"Lattice has {output.num_rows} rows but the window holds {data.num_events} events"
        )
    return num_kmers


def _fill(sequence: str, data: HMMInputData, output: ProfileHMMOutput, local: bool) -> float:
    num_kmers = _check_output_shape(sequence, data, output)
    num_blocks = num_kmers + 2
    last_kmer_idx = num_kmers - 1
    num_events = output.num_rows - 1
    e_start = data.event_start_idx
    read, strand = data.read, data.strand

    transitions = calculate_transitions(num_kmers, sequence, data)
    kmer_ranks = [get_rank(data, sequence, ki) for ki in range(num_kmers)]

    if local:
        pre_flank = make_pre_flanking(data, data.parameters, e_start, num_events)
        post_flank = make_post_flanking(data, data.parameters, e_start, num_events)
        lp_sm = lp_ms = math.log(1.0 / num_kmers)

    trace = logger.isEnabledFor(logging.DEBUG)

    for row in range(1, output.num_rows):
        event_idx = e_start + (row - 1) * data.event_stride

        # block 0 is the start state and the last block the end state
        for block in range(1, num_blocks - 1):
            kmer_idx = block - 1
            bt = transitions[kmer_idx]
            prev_block_offset = PS_NUM_STATES * (block - 1)
            curr_block_offset = PS_NUM_STATES * block

            rank = kmer_ranks[kmer_idx]
            lp_emission_m = log_probability_match(read, rank, event_idx, strand)
            lp_emission_e = log_probability_event_insert(read, rank, event_idx, strand)

            # state PS_MATCH
            m_m = bt.lp_mm + output.get(row - 1, prev_block_offset + PS_MATCH)
            m_e = bt.lp_em + output.get(row - 1, prev_block_offset + PS_EVENT_SPLIT)
            m_k = bt.lp_km + output.get(row - 1, prev_block_offset + PS_KMER_SKIP)
            # local entry at any kmer (lp_sm + pre_flank[row - 1]) stays disabled
            m_s = NEG_INF
            output.update_4(row, curr_block_offset + PS_MATCH, m_m, m_e, m_k, m_s, lp_emission_m)

            # state PS_EVENT_SPLIT
            e_m = bt.lp_me + output.get(row - 1, curr_block_offset + PS_MATCH)
            e_e = bt.lp_ee + output.get(row - 1, curr_block_offset + PS_EVENT_SPLIT)
            output.update_4(row, curr_block_offset + PS_EVENT_SPLIT, e_m, e_e, NEG_INF, NEG_INF, lp_emission_e)

            # state PS_KMER_SKIP, silent so it stays on this row
            k_m = bt.lp_mk + output.get(row, prev_block_offset + PS_MATCH)
            k_k = bt.lp_kk + output.get(row, prev_block_offset + PS_KMER_SKIP)
            output.update_4(row, curr_block_offset + PS_KMER_SKIP, k_m, NEG_INF, k_k, NEG_INF, 0.0)

            # transition from the last kmer directly to the end of the alignment
            if local and kmer_idx == last_kmer_idx:
                for state in (PS_MATCH, PS_EVENT_SPLIT, PS_KMER_SKIP):
                    col = curr_block_offset + state
                    lp = lp_ms + output.get(row, col) + post_flank[row - 1]
                    output.update_end(lp, row, col)

            if trace:
                logger.debug(
                    "row %d block %d event %d kmer %d rank %d\n"
                    "\ttransitions p_mx [%.3f %.3f %.3f] p_ex [%.3f %.3f] p_kx [%.3f %.3f]\n"
                    "\tPS_MATCH prev [%.2f %.2f %.2f] -> %.2f\n"
                    "\tPS_EVENT_SPLIT prev [%.2f %.2f] -> %.2f\n"
                    "\tPS_KMER_SKIP prev [%.2f %.2f] -> %.2f\n"
                    "\temission %.2f %.2f",
                    row, block, event_idx, kmer_idx, rank,
                    bt.lp_mm, bt.lp_me, bt.lp_mk, bt.lp_em, bt.lp_ee, bt.lp_km, bt.lp_kk,
                    output.get(row - 1, prev_block_offset + PS_MATCH),
                    output.get(row - 1, prev_block_offset + PS_EVENT_SPLIT),
                    output.get(row - 1, prev_block_offset + PS_KMER_SKIP),
                    output.get(row, curr_block_offset + PS_MATCH),
                    output.get(row - 1, curr_block_offset + PS_MATCH),
                    output.get(row - 1, curr_block_offset + PS_EVENT_SPLIT),
                    output.get(row, curr_block_offset + PS_EVENT_SPLIT),
                    output.get(row, prev_block_offset + PS_MATCH),
                    output.get(row, prev_block_offset + PS_KMER_SKIP),
                    output.get(row, curr_block_offset + PS_KMER_SKIP),
                    lp_emission_m, lp_emission_e,
                )
                if local:
                    logger.debug(
                        "[%d %d] start: %.2f pre: %.2f post: %.2f end: %.2f",
                        event_idx, kmer_idx, lp_sm + pre_flank[row - 1] + lp_emission_m,
                        pre_flank[row - 1], post_flank[row - 1], output.get_end(),
                    )

    if not local:
        last_event_row = output.num_rows - 1
        match_state_last_block = PS_NUM_STATES * (num_blocks - 2) + PS_MATCH
        output.update_end(
            output.get(last_event_row, match_state_last_block),
            last_event_row,
            match_state_last_block,
        )
    return output.get_end()


def profile_hmm_fill_generic_local(sequence: str, data: HMMInputData, output: ProfileHMMOutput) -> float:
    """
    Fill the lattice allowing the alignment to end after any event, with
    the trailing events emitted from the background.

    Parameters
    ----------
    sequence : str
        Candidate sequence; it must hold exactly as many kmers as the
        lattice has non-terminal blocks.
    data : HMMInputData
        Event window, strand and orientation.
    output : ProfileHMMOutput
        Strategy bound to an initialized lattice of shape
        (num_events + 1) x 3 * (num_kmers + 2).

    Returns
    -------
    float
        output.get_end() after the fill.
    """
    return _fill(sequence, data, output, local=True)


def profile_hmm_fill_generic_global(sequence: str, data: HMMInputData, output: ProfileHMMOutput) -> float:
    """
    Fill the lattice requiring the alignment to consume every event and
    end in the match state of the last kmer.
    """
    return _fill(sequence, data, output, local=False)


def profile_hmm_fill_generic(sequence: str, data: HMMInputData, output: ProfileHMMOutput) -> float:
    return profile_hmm_fill_generic_local(sequence, data, output)
