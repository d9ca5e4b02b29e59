"""
outputs.py — accumulation strategies for the profile HMM fill

The lattice recursion in dp_core is written once against the
ProfileHMMOutput protocol.  The strategy decides how predecessor values
are combined:

  * ProfileHMMForwardOutput sums them in log space (Forward algorithm),
    giving the marginal log-probability over all alignments.
  * ProfileHMMViterbiOutput keeps the maximum and records which branch
    produced it (Viterbi algorithm), giving the best single alignment.
"""
from __future__ import annotations

import math
from typing import Optional, Protocol, Tuple

from .lattice import (
    Lattice,
    PS_EVENT_SPLIT,
    PS_KMER_SKIP,
    PS_MATCH,
    PS_PRE_SOFT,
)

NEG_INF = -math.inf


def add_logs(a: float, b: float) -> float:
    """
    log(exp(a) + exp(b)) without leaving log space.

    -inf is the identity, and two -inf operands give -inf (never NaN).
    """
    if a == NEG_INF:
        return b
    if b == NEG_INF:
        return a
    if a > b:
        return a + math.log1p(math.exp(b - a))
    return b + math.log1p(math.exp(a - b))


class ProfileHMMOutput(Protocol):
    """Operations the fill engine needs from an accumulation strategy."""

    @property
    def num_rows(self) -> int: ...

    @property
    def num_columns(self) -> int: ...

    def update_4(self, row: int, col: int, m: float, e: float, k: float, s: float,
                 lp_emission: float) -> None: ...

    def update_end(self, v: float, row: int, col: int) -> None: ...

    def get(self, row: int, col: int) -> float: ...

    def get_end(self) -> float: ...


# ---------------------------------------------------------------------------
# Forward
# ---------------------------------------------------------------------------

class ProfileHMMForwardOutput:
    """
    Sum strategy: each cell holds the log of the summed probability of
    every partial path reaching it.
    """

    def __init__(self, fm: Lattice):
        self.fm = fm
        self.lp_end = NEG_INF

    @property
    def num_rows(self) -> int:
        return self.fm.n_rows

    @property
    def num_columns(self) -> int:
        return self.fm.n_cols

    def update_4(self, row, col, m, e, k, s, lp_emission):
        total = add_logs(add_logs(m, e), add_logs(k, s)) + lp_emission
        self.fm.set(row, col, total)

    def update_end(self, v, row, col):
        self.lp_end = add_logs(self.lp_end, v)

    def get(self, row, col):
        return self.fm.get(row, col)

    def get_end(self):
        return self.lp_end


# ---------------------------------------------------------------------------
# Viterbi
# ---------------------------------------------------------------------------

class ProfileHMMViterbiOutput:
    """
    Max strategy: each cell holds the best partial path score, and the
    backtrace matrix holds the state of the predecessor that produced it.

    Ties go to the first branch in the order match, event-split,
    kmer-skip, local entry.
    """

    def __init__(self, fm: Lattice, bm: Lattice):
        if fm.shape != bm.shape:
            raise ValueError(
                f"Backtrace shape {bm.shape} does not match lattice shape {fm.shape}"
            )
        self.fm = fm
        self.bm = bm
        self.lp_end = NEG_INF
        self.end_row: Optional[int] = None
        self.end_col: Optional[int] = None

    @property
    def num_rows(self) -> int:
        return self.fm.n_rows

    @property
    def num_columns(self) -> int:
        return self.fm.n_cols

    def update_4(self, row, col, m, e, k, s, lp_emission):
        best = max(m, e, k, s)
        self.fm.set(row, col, best + lp_emission)

        if best == m:
            from_state = PS_MATCH
        elif best == e:
            from_state = PS_EVENT_SPLIT
        elif best == k:
            from_state = PS_KMER_SKIP
        else:
            from_state = PS_PRE_SOFT
        self.bm.set(row, col, from_state)

    def update_end(self, v, row, col):
        if v > self.lp_end:
            self.lp_end = v
            self.end_row = row
            self.end_col = col

    def get(self, row, col):
        return self.fm.get(row, col)

    def get_end(self):
        return self.lp_end

    def get_end_cell(self) -> Tuple[Optional[int], Optional[int]]:
        """(row, col) of the cell the best alignment ends in."""
        return self.end_row, self.end_col
