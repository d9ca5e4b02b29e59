"""
conftest.py — Shared pytest fixtures for the nanohmm test suite

Provides a toy 1-mer pore model, the transition parameters used across
tests, a factory for single-strand alignment instances and seeded random
number generators.
"""

import pytest
import numpy as np

from nanohmm.dp_core import HMMInputData
from nanohmm.parameters import TransitionParameters
from nanohmm.pore_model import EventTable, PoreModel, ScalingParameters, SquiggleRead


# ---------------------------------------------------------------------------
# Model fixtures
# ---------------------------------------------------------------------------

# Expected levels per 1-mer rank (A, C, G, T)
TOY_LEVEL_MEAN = [60.0, 70.0, 62.0, 85.0]
TOY_LEVEL_STDV = [2.0, 2.5, 2.0, 3.0]


@pytest.fixture
def toy_model() -> PoreModel:
    """1-mer model with well separated A/C/T levels and G close to A."""
    return PoreModel(k=1, level_mean=TOY_LEVEL_MEAN, level_stdv=TOY_LEVEL_STDV)


@pytest.fixture
def params() -> TransitionParameters:
    """Transition parameters used by the hand-computed scenarios."""
    return TransitionParameters(
        trans_m_to_e_not_k=0.1,
        trans_e_to_e=0.3,
        trans_start_to_pre=0.2,
        trans_pre_self=0.2,
    )


@pytest.fixture
def make_data(toy_model, params):
    """
    Factory fixture: build an HMMInputData over the given event levels.

    By default the window spans every event walked forward.
    """
    def _make_data(levels, start=None, stop=None, stride=1, rc=False,
                   model=None, parameters=None):
        events = EventTable.from_levels(levels)
        read = SquiggleRead(
            events=[events],
            pore_model=[model or toy_model],
            parameters=[parameters or params],
        )
        n = len(levels)
        if start is None:
            start = 0 if stride == 1 else n - 1
        if stop is None:
            stop = n - 1 if stride == 1 else 0
        return HMMInputData(read, strand=0, event_start_idx=start,
                            event_stop_idx=stop, event_stride=stride, rc=rc)
    return _make_data


@pytest.fixture
def scaled_model(toy_model) -> PoreModel:
    """The toy model calibrated to a read with a shifted, stretched scale."""
    return toy_model.with_scaling(ScalingParameters(shift=5.0, scale=1.1, drift=0.0, var=1.2))


# ---------------------------------------------------------------------------
# Random number generator fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def rng():
    """Seeded random generator for reproducible tests."""
    return np.random.default_rng(888)


@pytest.fixture
def random_dna_factory():
    """Factory fixture returning a function to generate random DNA strings."""
    bases = np.array(["A", "C", "G", "T"])

    def _random_dna(length: int, rng: np.random.Generator) -> str:
        return "".join(rng.choice(bases, size=length))
    return _random_dna


@pytest.fixture
def random_levels_factory():
    """Factory fixture returning event levels drawn around the toy model range."""
    def _random_levels(n: int, rng: np.random.Generator) -> list:
        return list(rng.uniform(55.0, 90.0, size=n))
    return _random_levels
