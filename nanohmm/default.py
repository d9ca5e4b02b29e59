"""
default.py — Default parameters for nanohmm

Provides the DNA alphabet, the background emission constant and the
model-wide transition parameters used throughout examples, scripts
and tests.
"""

import numpy as np

# DNA alphabet
BASES = np.array(["A", "C", "G", "T"])
ALPHABET_TO_INDEX = {b: i for i, b in enumerate(BASES)}
COMPLEMENT = {"A": "T", "C": "G", "G": "C", "T": "A"}

## Log-probability of an event emitted by the unmodeled background
LOG_PROBABILITY_BACKGROUND = -3.0

## Model-wide transition parameters
TRANS_M_TO_E_NOT_K = 0.15
TRANS_E_TO_E = 0.33
TRANS_START_TO_PRE = 0.2
TRANS_PRE_SELF = 0.2

## Skip probabilities are binned by |mean_i - mean_j| in pA
SKIP_BIN_WIDTH = 0.5
NUM_SKIP_BINS = 30


def default_skip_probabilities(num_bins: int = NUM_SKIP_BINS) -> np.ndarray:
    """
    Decreasing skip-probability table, one entry per level-difference bin.

    Kmers with near-identical expected levels are the ones most often
    merged into a single event, so the first bins carry the highest
    probability and the tail levels off at a small floor.
    """
    centers = (np.arange(num_bins) + 0.5) * SKIP_BIN_WIDTH
    return 0.05 + 0.35 * np.exp(-centers / 1.5)

