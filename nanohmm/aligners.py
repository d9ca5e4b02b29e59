"""
aligners.py — user-facing scoring and alignment helpers for nanohmm

Each function allocates and initializes the lattice for one alignment
instance, binds it to the appropriate output strategy, runs the fill and
packages the result:

  * profile_hmm_score   Forward log-probability of the events given
                        the sequence.
  * profile_hmm_align   Viterbi score plus the best alignment of events
                        to kmers, recovered from the backtrace.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

import numpy as np
from numpy.typing import DTypeLike

from .dp_core import (
    HMMInputData,
    profile_hmm_fill_generic_global,
    profile_hmm_fill_generic_local,
)
from .kmers import num_kmers_in
from .lattice import (
    Lattice,
    PS_EVENT_SPLIT,
    PS_KMER_SKIP,
    PS_MATCH,
    PS_NUM_STATES,
    STATE_NAMES,
    allocate_backtrace,
    allocate_lattice,
    initialize_forward,
    initialize_viterbi,
)
from .outputs import ProfileHMMForwardOutput, ProfileHMMViterbiOutput

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Result containers
# ---------------------------------------------------------------------------

@dataclass
class AlignmentState:
    """
    One step of a Viterbi alignment.

    Attributes
    ----------
    event_idx : int
        Event index in the read.  Kmer-skip steps carry the index of the
        event at their row, though they emit nothing.
    kmer_idx : int
        Kmer index in the candidate sequence.
    l_fm : float
        Lattice value at this step.
    state : str
        'M' (match), 'E' (event split) or 'K' (kmer skip).
    """
    event_idx: int
    kmer_idx: int
    l_fm: float
    state: str


@dataclass
class LatticeData:
    """Filled Viterbi lattice and backtrace."""
    lattice: Lattice
    backtrace: Lattice


@dataclass
class AlignmentResult:
    """
    Result of a Viterbi alignment.

    Attributes
    ----------
    score : float
        Log-probability of the best alignment (-inf if none exists).
    states : list of AlignmentState
        The best alignment in event order.
    end_cell : (row, col) or None
        Lattice cell the best alignment ends in.
    data : LatticeData or None
        Full lattice and backtrace, if requested.
    """
    score: float
    states: List[AlignmentState] = field(default_factory=list)
    end_cell: Optional[Tuple[int, int]] = None
    data: Optional[LatticeData] = None

    def matched_kmers(self) -> List[Tuple[int, int]]:
        """(event_idx, kmer_idx) pairs of the match steps."""
        return [(s.event_idx, s.kmer_idx) for s in self.states if s.state == "M"]


# ---------------------------------------------------------------------------
# Backtrack
# ---------------------------------------------------------------------------

def backtrack(data: HMMInputData, output: ProfileHMMViterbiOutput) -> List[AlignmentState]:
    """
    Walk the backtrace from the best end cell to the start row.

    Returns the states in event order.  An output with no finite end
    score yields an empty list.
    """
    row, col = output.get_end_cell()
    if row is None or output.get_end() == -np.inf:
        return []

    alignment: List[AlignmentState] = []
    while row > 0:
        event_idx = data.event_index(row - 1)
        block = col // PS_NUM_STATES
        curr_ps = col % PS_NUM_STATES
        alignment.append(AlignmentState(
            event_idx=event_idx,
            kmer_idx=block - 1,
            l_fm=output.get(row, col),
            state=STATE_NAMES[curr_ps],
        ))

        next_ps = output.bm.get(row, col)
        if curr_ps == PS_MATCH:
            row -= 1
            col -= PS_NUM_STATES
        elif curr_ps == PS_EVENT_SPLIT:
            row -= 1
        elif curr_ps == PS_KMER_SKIP:
            col -= PS_NUM_STATES
        col = PS_NUM_STATES * (col // PS_NUM_STATES) + next_ps

    alignment.reverse()
    return alignment


# ---------------------------------------------------------------------------
# Drivers
# ---------------------------------------------------------------------------

def _num_kmers(sequence: str, data: HMMInputData) -> int:
    num_kmers = num_kmers_in(sequence, data.pore_model.k)
    if num_kmers < 1:
        raise ValueError(
            f"Sequence of length {len(sequence)} holds no {data.pore_model.k}-mers"
        )
    return num_kmers


def profile_hmm_score(
    sequence: str,
    data: HMMInputData,
    global_alignment: bool = False,
    dtype: DTypeLike = np.float64,
) -> float:
    """
    Forward log-probability that sequence generated the event window.

    Parameters
    ----------
    sequence : str
        Candidate nucleotide sequence.
    data : HMMInputData
        Event window to score.
    global_alignment : bool, default False
        If True, every event must be aligned and the alignment must end
        at the last kmer.  Otherwise trailing events may be absorbed by
        the background flank.
    dtype : numpy dtype, default float64
        Lattice cell type.
    """
    num_kmers = _num_kmers(sequence, data)
    fm = allocate_lattice(data.num_events, num_kmers, dtype=dtype)
    initialize_forward(fm)

    output = ProfileHMMForwardOutput(fm)
    fill = profile_hmm_fill_generic_global if global_alignment else profile_hmm_fill_generic_local
    score = fill(sequence, data, output)
    logger.debug(
        "forward %s: %d events x %d kmers -> %.4f",
        "global" if global_alignment else "local", data.num_events, num_kmers, score,
    )
    return score


def profile_hmm_align(
    sequence: str,
    data: HMMInputData,
    global_alignment: bool = False,
    return_data: bool = False,
    dtype: DTypeLike = np.float64,
) -> AlignmentResult:
    """
    Best (Viterbi) alignment of the event window to sequence.

    Parameters
    ----------
    sequence : str
        Candidate nucleotide sequence.
    data : HMMInputData
        Event window to align.
    global_alignment : bool, default False
        See profile_hmm_score.
    return_data : bool, default False
        If True, attach the filled lattice and backtrace.
    dtype : numpy dtype, default float64
        Lattice cell type.

    Returns
    -------
    AlignmentResult
    """
    num_kmers = _num_kmers(sequence, data)
    fm = allocate_lattice(data.num_events, num_kmers, dtype=dtype)
    bm = allocate_backtrace(data.num_events, num_kmers)
    initialize_viterbi(fm, bm)

    output = ProfileHMMViterbiOutput(fm, bm)
    fill = profile_hmm_fill_generic_global if global_alignment else profile_hmm_fill_generic_local
    score = fill(sequence, data, output)
    states = backtrack(data, output)
    logger.debug(
        "viterbi %s: %d events x %d kmers -> %.4f over %d states",
        "global" if global_alignment else "local", data.num_events, num_kmers, score, len(states),
    )

    end_row, end_col = output.get_end_cell()
    return AlignmentResult(
        score=score,
        states=states,
        end_cell=(end_row, end_col) if end_row is not None else None,
        data=LatticeData(fm, bm) if return_data else None,
    )
