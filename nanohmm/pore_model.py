"""
pore_model.py — emission model, events and reads

A PoreModel holds, for every kmer rank, the Gaussian distribution of the
current level expected while that kmer occupies the pore.  A read's
calibration (shift, scale, drift, var) maps the model onto the read's
own signal scale.  Events are the segmented measurements of one strand
of a read; a SquiggleRead bundles the events, calibrated model and
transition parameters of each strand (0 = template, 1 = complement).

The emission log-probabilities consumed by the HMM fill live here too:
match and event-split emissions are the Gaussian density of the
drift-corrected event level, while background emissions are a constant.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Sequence, Union

import numpy as np
from numpy.typing import NDArray

from .default import LOG_PROBABILITY_BACKGROUND
from .kmers import ALPHABET_SIZE, kmer_rank
from .parameters import TransitionParameters

logger = logging.getLogger(__name__)

_LOG_INV_SQRT_2PI = -0.5 * math.log(2.0 * math.pi)


@dataclass(frozen=True)
class GaussianParameters:
    mean: float
    stdv: float


def log_normal_pdf(x: float, params: GaussianParameters) -> float:
    """Natural log of the Normal(mean, stdv) density at x."""
    z = (x - params.mean) / params.stdv
    return _LOG_INV_SQRT_2PI - math.log(params.stdv) - 0.5 * z * z


@dataclass(frozen=True)
class ScalingParameters:
    """
    Per-read calibration of a pore model.

    mean' = level_mean * scale + shift
    stdv' = level_stdv * var
    and each event level is corrected by  - drift * (elapsed time).
    """
    shift: float = 0.0
    scale: float = 1.0
    drift: float = 0.0
    var: float = 1.0


# ---------------------------------------------------------------------------
# Pore model
# ---------------------------------------------------------------------------

@dataclass
class PoreModel:
    """
    Expected current level distribution per kmer rank.

    Attributes
    ----------
    k : int
        Kmer length.
    level_mean, level_stdv : (4**k,) arrays
        Unscaled Gaussian parameters, indexed by kmer rank.
    scaling : ScalingParameters
        Calibration of this model to one strand of one read.
    """
    k: int
    level_mean: NDArray[np.floating]
    level_stdv: NDArray[np.floating]
    scaling: ScalingParameters = field(default_factory=ScalingParameters)

    def __post_init__(self):
        self.level_mean = np.asarray(self.level_mean, dtype=float)
        self.level_stdv = np.asarray(self.level_stdv, dtype=float)
        expected = ALPHABET_SIZE ** self.k
        if self.level_mean.shape != (expected,) or self.level_stdv.shape != (expected,):
            raise ValueError(
                f"PoreModel with k={self.k} needs {expected} levels, "
                f"got mean {self.level_mean.shape} and stdv {self.level_stdv.shape}"
            )
        if np.any(self.level_stdv <= 0):
            raise ValueError("PoreModel level_stdv must be strictly positive")
        if self.scaling.var <= 0 or self.scaling.scale <= 0:
            raise ValueError(f"Invalid scaling {self.scaling}: scale and var must be positive")

    @property
    def num_ranks(self) -> int:
        return self.level_mean.size

    def get_scaled_parameters(self, rank: int) -> GaussianParameters:
        """Gaussian level parameters for rank, mapped onto the read's scale."""
        s = self.scaling
        return GaussianParameters(
            mean=float(self.level_mean[rank]) * s.scale + s.shift,
            stdv=float(self.level_stdv[rank]) * s.var,
        )

    def with_scaling(self, scaling: ScalingParameters) -> "PoreModel":
        """Copy of this model calibrated with scaling."""
        return PoreModel(self.k, self.level_mean, self.level_stdv, scaling)

    @classmethod
    def from_file(
        cls,
        model_path: Union[str, Path],
        scaling: Optional[ScalingParameters] = None,
    ) -> "PoreModel":
        """
        Load a model from a tab-separated file of
        kmer, level_mean, level_stdv lines ('#' starts a comment).

        Every kmer of the model's length must be present exactly once.
        """
        model_path = Path(model_path)
        entries = {}
        with open(model_path, "r") as f:
            for line in f:
                line = line.strip()
                if not line or line.startswith("#"):
                    continue
                parts = line.split("\t")
                if len(parts) < 3:
                    raise ValueError(f"{model_path}: malformed model line {line!r}")
                kmer = parts[0].upper()
                if kmer in entries:
                    raise ValueError(f"{model_path}: duplicate kmer {kmer}")
                entries[kmer] = (float(parts[1]), float(parts[2]))

        if not entries:
            raise ValueError(f"{model_path}: no model entries")
        k = len(next(iter(entries)))
        expected = ALPHABET_SIZE ** k
        if len(entries) != expected or any(len(kmer) != k for kmer in entries):
            raise ValueError(
                f"{model_path}: expected {expected} kmers of length {k}, got {len(entries)}"
            )

        level_mean = np.empty(expected, dtype=float)
        level_stdv = np.empty(expected, dtype=float)
        for kmer, (mean, stdv) in entries.items():
            rank = kmer_rank(kmer)
            level_mean[rank] = mean
            level_stdv[rank] = stdv

        logger.info(f"Loaded {expected} {k}-mer levels from {model_path}")
        return cls(k, level_mean, level_stdv, scaling or ScalingParameters())


# ---------------------------------------------------------------------------
# Events and reads
# ---------------------------------------------------------------------------

@dataclass
class EventTable:
    """
    Segmented events of one strand.

    Attributes
    ----------
    level, stdv : (n,) arrays
        Mean and standard deviation of the signal over each event.
    start, length : (n,) arrays
        Start time and duration of each event, in seconds.
    """
    level: NDArray[np.floating]
    stdv: NDArray[np.floating]
    start: NDArray[np.floating]
    length: NDArray[np.floating]

    def __post_init__(self):
        self.level = np.asarray(self.level, dtype=float)
        self.stdv = np.asarray(self.stdv, dtype=float)
        self.start = np.asarray(self.start, dtype=float)
        self.length = np.asarray(self.length, dtype=float)
        n = self.level.size
        if any(a.shape != (n,) for a in (self.stdv, self.start, self.length)):
            raise ValueError("EventTable columns must be 1-D arrays of equal length")

    def __len__(self) -> int:
        return self.level.size

    @classmethod
    def from_levels(cls, levels: Sequence[float], dwell: float = 0.01) -> "EventTable":
        """Events with the given levels, zero stdv and a fixed dwell time."""
        levels = np.asarray(levels, dtype=float)
        n = levels.size
        return cls(
            level=levels,
            stdv=np.zeros(n),
            start=np.arange(n) * dwell,
            length=np.full(n, dwell),
        )


@dataclass
class SquiggleRead:
    """
    Events, calibrated pore model and transition parameters per strand.

    Each attribute is a sequence indexed by strand.  A 1D read simply
    carries a single entry in each.
    """
    events: Sequence[EventTable]
    pore_model: Sequence[PoreModel]
    parameters: Sequence[TransitionParameters]

    def __post_init__(self):
        n = len(self.events)
        if n == 0 or len(self.pore_model) != n or len(self.parameters) != n:
            raise ValueError(
                "SquiggleRead needs one event table, pore model and parameter set per strand"
            )

    @property
    def num_strands(self) -> int:
        return len(self.events)

    def get_drift_corrected_level(self, event_idx: int, strand: int) -> float:
        events = self.events[strand]
        drift = self.pore_model[strand].scaling.drift
        elapsed = events.start[event_idx] - events.start[0]
        return float(events.level[event_idx] - elapsed * drift)


# ---------------------------------------------------------------------------
# Emission log-probabilities
# ---------------------------------------------------------------------------

def log_probability_match(read: SquiggleRead, kmer_rank: int, event_idx: int, strand: int) -> float:
    """Log-probability that event_idx was emitted by kmer_rank."""
    level = read.get_drift_corrected_level(event_idx, strand)
    gp = read.pore_model[strand].get_scaled_parameters(kmer_rank)
    return log_normal_pdf(level, gp)


def log_probability_event_insert(read: SquiggleRead, kmer_rank: int, event_idx: int, strand: int) -> float:
    """Log-probability of an extra (split) event emitted by the same kmer."""
    return log_probability_match(read, kmer_rank, event_idx, strand)


def log_probability_background(read: SquiggleRead, event_idx: int, strand: int) -> float:
    """Log-probability of an event under the unmodeled background."""
    return LOG_PROBABILITY_BACKGROUND
