"""
nanohmm: profile HMM alignment of nanopore events to candidate sequences.
"""

import logging

# =============================================================================
# CORE ALIGNMENT
# =============================================================================

from .aligners import (
    AlignmentResult,
    AlignmentState,
    LatticeData,
    backtrack,
    profile_hmm_align,
    profile_hmm_score,
)

from .dp_core import (
    BlockTransitions,
    HMMInputData,
    calculate_skip_probability,
    calculate_transitions,
    make_pre_flanking,
    make_post_flanking,
    profile_hmm_fill_generic,
    profile_hmm_fill_generic_local,
    profile_hmm_fill_generic_global,
)

from .outputs import (
    add_logs,
    ProfileHMMOutput,
    ProfileHMMForwardOutput,
    ProfileHMMViterbiOutput,
)

from .lattice import (
    Lattice,
    PS_MATCH,
    PS_EVENT_SPLIT,
    PS_KMER_SKIP,
    PS_PRE_SOFT,
    PS_NUM_STATES,
    allocate_lattice,
    allocate_backtrace,
    initialize_forward,
    initialize_viterbi,
)


# =============================================================================
# MODEL AND CONFIGURATION
# =============================================================================

from .parameters import (
    TransitionParameters,
    get_skip_probability,
    load_parameters,
    save_parameters,
)

from .pore_model import (
    EventTable,
    GaussianParameters,
    PoreModel,
    ScalingParameters,
    SquiggleRead,
    log_normal_pdf,
)

from .kmers import (
    kmer_rank,
    rc_kmer_rank,
    reverse_complement,
    sequence_ranks,
)


# =============================================================================
# VALIDATION AND TESTING
# =============================================================================

from .validation import (
    naive_forward,
    naive_viterbi,
    score_alignment,
    simulate_events,
)

from .log import setup_logging

logging.getLogger(__name__).addHandler(logging.NullHandler())


# =============================================================================
# PLOTTING (requires both matplotlib and seaborn -- install with pip install nanohmm[plot])
# =============================================================================
def _missing_plot_dep(func_name: str) -> ImportError:
    return ImportError(
        f"{func_name} requires plotting dependencies.\n"
        'Install with: pip install "nanohmm[plot]"'
    )

try:
    from .plot import plot_lattice
    PLOT_AVAILABLE = True
except ImportError:
    def plot_lattice(*args, **kwargs):
        raise _missing_plot_dep("plot_lattice")
    PLOT_AVAILABLE = False


__version__ = "0.1.0"

__all__ = [
    # Core alignment
    "AlignmentResult",
    "AlignmentState",
    "LatticeData",
    "backtrack",
    "profile_hmm_align",
    "profile_hmm_score",
    # DP core
    "BlockTransitions",
    "HMMInputData",
    "calculate_skip_probability",
    "calculate_transitions",
    "make_pre_flanking",
    "make_post_flanking",
    "profile_hmm_fill_generic",
    "profile_hmm_fill_generic_local",
    "profile_hmm_fill_generic_global",
    # Output strategies
    "add_logs",
    "ProfileHMMOutput",
    "ProfileHMMForwardOutput",
    "ProfileHMMViterbiOutput",
    # Lattice
    "Lattice",
    "PS_MATCH",
    "PS_EVENT_SPLIT",
    "PS_KMER_SKIP",
    "PS_PRE_SOFT",
    "PS_NUM_STATES",
    "allocate_lattice",
    "allocate_backtrace",
    "initialize_forward",
    "initialize_viterbi",
    # Model and configuration
    "TransitionParameters",
    "get_skip_probability",
    "load_parameters",
    "save_parameters",
    "EventTable",
    "GaussianParameters",
    "PoreModel",
    "ScalingParameters",
    "SquiggleRead",
    "log_normal_pdf",
    "kmer_rank",
    "rc_kmer_rank",
    "reverse_complement",
    "sequence_ranks",
    # Validation
    "naive_forward",
    "naive_viterbi",
    "score_alignment",
    "simulate_events",
    # Logging
    "setup_logging",
    # Plotting
    "PLOT_AVAILABLE",
    "plot_lattice",
]
