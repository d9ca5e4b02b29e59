"""
parameters.py — model-wide transition parameters

TransitionParameters carries the fixed probabilities that shape every
block of the profile HMM, plus the binned table used to estimate how
likely a kmer is to be skipped given the expected levels of it and its
predecessor.  One instance is held per strand of a read.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Union

import numpy as np
from numpy.typing import NDArray

from . import default

logger = logging.getLogger(__name__)


@dataclass
class TransitionParameters:
    """
    Fixed transition parameters of the profile HMM.

    Attributes
    ----------
    trans_m_to_e_not_k : float
        Probability of leaving a match state for the event-split state,
        given the next kmer is not skipped.
    trans_e_to_e : float
        Probability of staying in the event-split state.
    trans_start_to_pre : float
        Probability of committing to the first aligned block without
        absorbing any events into the background flank.
    trans_pre_self : float
        Probability of staying in the background flank state.
    skip_bin_width : float
        Width of one bin of |level_i - level_j|.
    skip_probabilities : (B,) array
        Skip probability per level-difference bin.
    """

    trans_m_to_e_not_k: float = default.TRANS_M_TO_E_NOT_K
    trans_e_to_e: float = default.TRANS_E_TO_E
    trans_start_to_pre: float = default.TRANS_START_TO_PRE
    trans_pre_self: float = default.TRANS_PRE_SELF
    skip_bin_width: float = default.SKIP_BIN_WIDTH
    skip_probabilities: NDArray[np.floating] = field(
        default_factory=default.default_skip_probabilities
    )

    def __post_init__(self):
        self.skip_probabilities = np.asarray(self.skip_probabilities, dtype=float)

        for name in ("trans_m_to_e_not_k", "trans_e_to_e",
                     "trans_start_to_pre", "trans_pre_self"):
            p = getattr(self, name)
            if not (0.0 < p < 1.0):
                raise ValueError(f"{name} must lie in (0, 1), got {p}")
        if self.skip_bin_width <= 0:
            raise ValueError(f"skip_bin_width must be positive, got {self.skip_bin_width}")
        if self.skip_probabilities.ndim != 1 or self.skip_probabilities.size == 0:
            raise ValueError("skip_probabilities must be a non-empty 1-D table")
        if np.any(self.skip_probabilities < 0.0) or np.any(self.skip_probabilities >= 1.0):
            raise ValueError("skip_probabilities must lie in [0, 1)")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "trans_m_to_e_not_k": self.trans_m_to_e_not_k,
            "trans_e_to_e": self.trans_e_to_e,
            "trans_start_to_pre": self.trans_start_to_pre,
            "trans_pre_self": self.trans_pre_self,
            "skip_bin_width": self.skip_bin_width,
            "skip_probabilities": self.skip_probabilities.tolist(),
        }

    @classmethod
    def from_dict(cls, values: Dict[str, Any]) -> "TransitionParameters":
        """Build parameters from a mapping; missing keys keep their defaults."""
        known = {
            "trans_m_to_e_not_k", "trans_e_to_e", "trans_start_to_pre",
            "trans_pre_self", "skip_bin_width", "skip_probabilities",
        }
        unknown = set(values) - known
        if unknown:
            raise ValueError(f"Unknown transition parameters: {sorted(unknown)}")
        return cls(**values)


def get_skip_bin(parameters: TransitionParameters, level_1: float, level_2: float) -> int:
    """Bin of |level_1 - level_2|, clamped to the last bin of the table."""
    bin_idx = int(abs(level_1 - level_2) / parameters.skip_bin_width)
    return min(bin_idx, parameters.skip_probabilities.size - 1)


def get_skip_probability(
    parameters: TransitionParameters,
    level_1: float,
    level_2: float,
) -> float:
    """
    Probability that moving between kmers with expected levels level_1
    and level_2 produces no event for the second kmer.
    """
    return float(parameters.skip_probabilities[get_skip_bin(parameters, level_1, level_2)])


# ---------------------------------------------------------------------------
# JSON persistence
# ---------------------------------------------------------------------------

def load_parameters(path: Union[str, Path]) -> TransitionParameters:
    """Read TransitionParameters from a JSON object file."""
    path = Path(path)
    with open(path, "r") as f:
        values = json.load(f)
    if not isinstance(values, dict):
        raise ValueError(f"{path}: expected a JSON object of transition parameters")
    parameters = TransitionParameters.from_dict(values)
    logger.info(f"Loaded transition parameters from {path}")
    return parameters


def save_parameters(parameters: TransitionParameters, path: Union[str, Path]) -> None:
    """Write TransitionParameters to path as JSON."""
    with open(path, "w") as f:
        json.dump(parameters.to_dict(), f, indent=2)
