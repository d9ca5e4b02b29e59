"""
lattice.py — flat row-major storage for the profile HMM dynamic program

Rows are events (row 0 is the start sentinel) and columns are blocks of
three profile states, one block per kmer plus a start and an end block:

    column = PS_NUM_STATES * block + state

Each Lattice is one contiguous numpy buffer addressed through an explicit
(row, col) -> row * n_cols + col mapping.  The fill only ever touches the
current and previous row and the current and previous block.
"""
from __future__ import annotations

import numpy as np
from numpy.typing import DTypeLike, NDArray

# Profile states within a block
PS_MATCH = 0
PS_EVENT_SPLIT = 1
PS_KMER_SKIP = 2
PS_NUM_STATES = 3

# Backtrace-only code for the (disabled) local entry branch
PS_PRE_SOFT = 3

STATE_NAMES = {
    PS_MATCH: "M",
    PS_EVENT_SPLIT: "E",
    PS_KMER_SKIP: "K",
    PS_PRE_SOFT: "S",
}


class Lattice:
    """
    A rows x columns matrix stored as a flat row-major buffer.

    Parameters
    ----------
    n_rows, n_cols : int
        Matrix shape.
    dtype : numpy dtype, default float64
        Cell type (float for scores, uint8 for backtraces).
    """

    def __init__(self, n_rows: int, n_cols: int, dtype: DTypeLike = np.float64):
        if n_rows <= 0 or n_cols <= 0:
            raise ValueError(f"Lattice shape must be positive, got {n_rows} x {n_cols}")
        self.n_rows = n_rows
        self.n_cols = n_cols
        self.buffer = np.zeros(n_rows * n_cols, dtype=dtype)

    def __repr__(self) -> str:
        return f"Lattice({self.n_rows} x {self.n_cols}, dtype={self.buffer.dtype})"

    @property
    def shape(self):
        return (self.n_rows, self.n_cols)

    def offset(self, row: int, col: int) -> int:
        return row * self.n_cols + col

    def get(self, row: int, col: int):
        return self.buffer[row * self.n_cols + col].item()

    def set(self, row: int, col: int, value) -> None:
        self.buffer[row * self.n_cols + col] = value

    def fill(self, value) -> None:
        self.buffer.fill(value)

    def as_array(self) -> NDArray:
        """(n_rows, n_cols) view sharing the buffer."""
        return self.buffer.reshape(self.n_rows, self.n_cols)


# ---------------------------------------------------------------------------
# Allocation and initialization
# ---------------------------------------------------------------------------

def lattice_shape(num_events: int, num_kmers: int):
    """(rows, columns) of the lattice for an event window and sequence."""
    return num_events + 1, PS_NUM_STATES * (num_kmers + 2)


def allocate_lattice(num_events: int, num_kmers: int, dtype: DTypeLike = np.float64) -> Lattice:
    n_rows, n_cols = lattice_shape(num_events, num_kmers)
    return Lattice(n_rows, n_cols, dtype=dtype)


def allocate_backtrace(num_events: int, num_kmers: int) -> Lattice:
    n_rows, n_cols = lattice_shape(num_events, num_kmers)
    return Lattice(n_rows, n_cols, dtype=np.uint8)


def initialize_forward(fm: Lattice) -> None:
    """
    Every cell impossible except the match state of the start block at
    row 0, which holds log(1).
    """
    fm.fill(-np.inf)
    fm.set(0, PS_MATCH, 0.0)


def initialize_viterbi(fm: Lattice, bm: Lattice) -> None:
    initialize_forward(fm)
    bm.fill(0)
